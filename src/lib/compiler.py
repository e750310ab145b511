"""
Compiler for highlight templates

Turns a template string into a render function evaluated once per highlight
group. The token tree is built once; each call walks it against one
TemplateData record (or any mapping of variable names to values).

Rendering is total: every template and every record produce a string.
"""

import re
from collections.abc import Mapping, Sized
from typing import Any, Callable, List, Literal, Optional, Union

from ..models.annotations import TemplateData, dataValue_get
from ..models.filters import PipelineCache
from ..models.tokens import CondToken, TextToken, Token, VarToken
from .filters import filters_apply, value_stringify
from .log import LOG
from .tokenizer import Tokenizer


QuotingStyle = Literal["auto", "manual"]
RenderData = Union[TemplateData, Mapping]
RenderFn = Callable[[RenderData], str]

NOTE_PLACEHOLDER = re.compile(r"\{\{\s*note\s*[|}]")
QUOTED_LINE = re.compile(r"^\s*>")


def noteQuotingStyle_detect(template: str) -> QuotingStyle:
    """
    Decide who quotes the note

    "manual" when some line holding a note placeholder already starts with
    a quote marker (the template author quotes it), "auto" otherwise.

    Example:
        >>> noteQuotingStyle_detect("> {{note}}")
        'manual'
        >>> noteQuotingStyle_detect("{{#note}}{{note}}{{/note}}")
        'auto'
    """
    for line in template.splitlines():
        if NOTE_PLACEHOLDER.search(line) and QUOTED_LINE.match(line):
            return "manual"
    return "auto"


def note_render(value: Any, quoting: QuotingStyle) -> str:
    """Note text with every line prefixed '> ' in auto mode"""
    text = value_stringify(value)
    if not text:
        return ""
    if quoting == "manual":
        return text
    return "\n".join(f"> {line}" for line in text.split("\n"))


def value_isTruthy(value: Any) -> bool:
    """
    Truthiness used by {{#key}} blocks

    Falsy: None, "", 0, 0.0, False, empty sequences and mappings.
    Everything else is truthy, including whitespace-only strings.
    """
    if value is None or value is False:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, (str, bytes)):
        return len(value) > 0
    if isinstance(value, (Mapping, Sized)):
        return len(value) > 0
    return True


class Compiler:
    """
    Compiles a highlight template into a render function

    Attributes:
        template: Source template
        tokens: Parsed token tree
        anomalies: Syntax recoveries noticed while tokenizing
        quoting: Note quoting style detected from the template
        cache: Optional filter-pipeline cache shared by every render
    """

    def __init__(
        self,
        template: str,
        cache: Optional[PipelineCache] = None,
        max_depth: Optional[int] = None,
    ) -> None:
        self.template = template or ""
        self.cache = cache
        tokenizer = Tokenizer(self.template, max_depth=max_depth)
        self.tokens: List[Token] = tokenizer.tokenize()
        self.anomalies = tokenizer.anomalies
        self.quoting: QuotingStyle = noteQuotingStyle_detect(self.template)
        LOG(
            f"Compiled template: {len(self.tokens)} top-level tokens, "
            f"note quoting '{self.quoting}'",
            level=3,
        )

    def compile(self) -> RenderFn:
        """Render function bound to this compiled template"""
        def render(data: RenderData) -> str:
            return self.tokens_render(self.tokens, data)

        return render

    def tokens_render(self, tokens: List[Token], data: RenderData) -> str:
        """
        Recursively evaluate a token sequence against one record

        Args:
            tokens: Token sequence (root or a block body)
            data: TemplateData or mapping of variable values

        Returns:
            Rendered text
        """
        parts: List[str] = []
        for token in tokens:
            if isinstance(token, TextToken):
                parts.append(token.value)
            elif isinstance(token, VarToken):
                parts.append(self.variable_render(token, data))
            elif isinstance(token, CondToken):
                if value_isTruthy(dataValue_get(data, token.key)):
                    parts.append(self.tokens_render(list(token.body), data))
        return "".join(parts)

    def variable_render(self, token: VarToken, data: RenderData) -> str:
        value = dataValue_get(data, token.key)
        if token.key == "note":
            value = note_render(value, self.quoting)
        return filters_apply(value, token.filters, cache=self.cache)


def compile(
    template: str,
    cache: Optional[PipelineCache] = None,
) -> RenderFn:
    """
    Compile a template string into a render function

    Args:
        template: Template text
        cache: Optional filter-pipeline cache (get/set by string key)

    Returns:
        Function mapping TemplateData (or a mapping) to rendered text

    Example:
        >>> render = compile("p.{{pageno}}: {{highlight|upper}}")
        >>> render({"pageno": 3, "highlight": "hi"})
        'p.3: HI'
    """
    return Compiler(template, cache=cache).compile()

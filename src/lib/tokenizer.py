"""
Tokenizer for {{mustache}}-style highlight templates

Transforms a template string into an ordered token tree.

Syntax:
    {{key}}                       variable
    {{key|filter|filter:arg}}     variable with filter pipeline
    {{#key}} ... {{/key}}         conditional block
    {{#if key}} ... {{/if}}       conditional block, explicit form

Key features:
- Single left-to-right scan, no backtracking
- Explicit stack of block frames, each owning its child tokens
- Total: malformed syntax never raises, it degrades to literal text
- Recoveries are recorded as SyntaxAnomaly entries for the validator

Example:
    >>> tokens = tokenize("p. {{pageno}}{{#note}} - {{note}}{{/note}}")
    >>> [type(t).__name__ for t in tokens]
    ['TextToken', 'VarToken', 'CondToken']
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..models.tokens import (
    TextToken,
    VarToken,
    CondToken,
    Token,
    AnomalyKind,
    SyntaxAnomaly,
)
from ..config import appsettings
from .log import LOG


TAG_OPEN = "{{"
TAG_CLOSE = "}}"

VARIABLE_KEY = re.compile(r"^\w+$")


@dataclass
class BlockFrame:
    """
    One open conditional block during tokenizing

    Attributes:
        closerKey: Key the closing tag must carry ("if" for {{#if x}})
        condKey: Variable the block tests
        body: Child tokens owned by this frame until it closes
        parentLenAtOpen: Length of the enclosing sequence when the block opened
        openOffset: Template offset of the opening {{
    """
    closerKey: str
    condKey: str
    parentLenAtOpen: int
    openOffset: int
    body: List[Token] = field(default_factory=list)


class Tokenizer:
    """
    Tokenizer for highlight template syntax

    Handles:
    - Variables with filter pipelines
    - Nested conditional blocks (both {{#key}} and {{#if key}} forms)
    - Nesting limit (deeper openers become literal text)
    - Graceful recovery from every kind of malformed tag
    """

    def __init__(self, template: str, max_depth: Optional[int] = None):
        """
        Initialize tokenizer with template text

        Args:
            template: Raw template string
            max_depth: Maximum number of simultaneously open blocks
                       (default: appsettings.max_template_nesting)

        Attributes:
            template: Template being tokenized
            max_depth: Nesting limit
            position: Current scan offset
            root: Top-level token sequence
            stack: Open block frames, innermost last
            anomalies: Recovered syntax problems, in template order
        """
        self.template = template or ""
        self.max_depth = max_depth if max_depth is not None else appsettings.max_template_nesting
        self.position = 0
        self.root: List[Token] = []
        self.stack: List[BlockFrame] = []
        self.anomalies: List[SyntaxAnomaly] = []

    def tokenize(self) -> List[Token]:
        """
        Tokenize the template into an ordered token tree

        Returns:
            Root token sequence. A template without {{ }} syntax yields a
            single TextToken equal to the input (or nothing when empty).
        """
        template = self.template
        self.position = 0
        self.root = []
        self.stack = []
        self.anomalies = []

        while self.position < len(template):
            open_pos = template.find(TAG_OPEN, self.position)
            if open_pos == -1:
                self.text_push(template[self.position:])
                break
            if open_pos > self.position:
                self.text_push(template[self.position:open_pos])

            close_pos = template.find(TAG_CLOSE, open_pos + len(TAG_OPEN))
            if close_pos == -1:
                self.anomaly_record(AnomalyKind.UNTERMINATED_TAG, open_pos, template[open_pos:])
                self.text_push(template[open_pos:])
                break

            raw_tag = template[open_pos + len(TAG_OPEN):close_pos].strip()
            tag_end = close_pos + len(TAG_CLOSE)
            literal = template[open_pos:tag_end]

            if raw_tag.startswith("#"):
                self.block_open(raw_tag[1:].strip(), open_pos, literal)
            elif raw_tag.startswith("/"):
                self.block_close(raw_tag[1:].strip(), open_pos, literal)
            else:
                self.variable_push(raw_tag, open_pos, literal)

            self.position = tag_end

        self.unclosed_recover()
        return self.root

    def current_get(self) -> List[Token]:
        """Token sequence new tokens are appended to"""
        return self.stack[-1].body if self.stack else self.root

    def text_push(self, text: str) -> None:
        """Append literal text; empty strings are dropped"""
        if text:
            self.current_get().append(TextToken(text))

    def block_open(self, key: str, open_pos: int, literal: str) -> None:
        """
        Open a conditional block frame

        ``{{#if x}}`` expects ``{{/if}}``; ``{{#x}}`` expects ``{{/x}}``.
        An empty key or a full stack turns the tag into literal text.
        """
        closer_key = key
        cond_key = key
        if key.startswith("if "):
            closer_key = "if"
            cond_key = key[3:].strip()

        if not cond_key:
            self.anomaly_record(AnomalyKind.EMPTY_BLOCK_KEY, open_pos, literal)
            self.text_push(literal)
            return
        if len(self.stack) >= self.max_depth:
            self.anomaly_record(AnomalyKind.DEPTH_EXCEEDED, open_pos, literal)
            self.text_push(literal)
            return

        self.stack.append(BlockFrame(
            closerKey=closer_key,
            condKey=cond_key,
            parentLenAtOpen=len(self.current_get()),
            openOffset=open_pos,
        ))

    def block_close(self, key: str, open_pos: int, literal: str) -> None:
        """
        Close the innermost block if ``key`` matches its expected closer

        On match the frame's body moves into a new CondToken appended to the
        enclosing sequence. A mismatch is literal text; the stack is unchanged.
        """
        top: Optional[BlockFrame] = self.stack[-1] if self.stack else None
        if top is None or top.closerKey != key:
            self.anomaly_record(AnomalyKind.STRAY_CLOSER, open_pos, literal)
            self.text_push(literal)
            return

        frame = self.stack.pop()
        self.current_get().append(CondToken(key=frame.condKey, body=tuple(frame.body)))

    def variable_push(self, raw_tag: str, open_pos: int, literal: str) -> None:
        """
        Append a variable reference, or literal text if the key is malformed
        """
        parts = [part.strip() for part in raw_tag.split("|")]
        parts = [part for part in parts if part]
        key = parts[0] if parts else ""

        if not VARIABLE_KEY.match(key):
            self.anomaly_record(AnomalyKind.MALFORMED_TAG, open_pos, literal)
            self.text_push(literal)
            return

        filters = tuple(parts[1:]) or None
        self.current_get().append(VarToken(key=key, filters=filters))

    def unclosed_recover(self) -> None:
        """
        Replace unterminated blocks with literal text

        Everything from the outermost unclosed opener to the end of the
        template becomes one TextToken in the sequence that opener lived in.
        """
        if not self.stack:
            return

        first = self.stack[0]
        self.anomaly_record(
            AnomalyKind.UNCLOSED_BLOCK, first.openOffset, self.template[first.openOffset:]
        )
        del self.root[first.parentLenAtOpen:]
        self.root.append(TextToken(self.template[first.openOffset:]))
        self.stack = []

    def anomaly_record(self, kind: AnomalyKind, offset: int, raw: str) -> None:
        """Record a recovered syntax problem"""
        self.anomalies.append(SyntaxAnomaly(kind=kind, offset=offset, raw=raw))
        LOG(f"Template {kind.value} at offset {offset}: {raw[:40]!r}", level=3)


def tokenize(template: str, max_depth: Optional[int] = None) -> List[Token]:
    """
    Tokenize a template string

    Never raises: malformed or unmatched syntax degrades to literal text.

    Args:
        template: Raw template string
        max_depth: Maximum conditional nesting depth (default from settings)

    Returns:
        Ordered root token sequence
    """
    return Tokenizer(template, max_depth=max_depth).tokenize()


def tokens_serialize(tokens: List[Token]) -> str:
    """
    Serialize a token tree back to canonical template text

    Variables become ``{{key|f1|f2}}`` and blocks ``{{#key}}...{{/key}}``.
    Re-tokenizing the result yields the same tree.

    Example:
        >>> tokens_serialize(tokenize("{{#if note}}{{ note | upper }}{{/if}}"))
        '{{#note}}{{note|upper}}{{/note}}'
    """
    parts: List[str] = []
    for token in tokens:
        if isinstance(token, TextToken):
            parts.append(token.value)
        elif isinstance(token, VarToken):
            parts.append(TAG_OPEN + "|".join((token.key,) + (token.filters or ())) + TAG_CLOSE)
        elif isinstance(token, CondToken):
            parts.append(f"{TAG_OPEN}#{token.key}{TAG_CLOSE}")
            parts.append(tokens_serialize(list(token.body)))
            parts.append(f"{TAG_OPEN}/{token.key}{TAG_CLOSE}")
    return "".join(parts)

"""
Static template validation

Inspects a template without rendering it. Errors mark a template that
would produce useless output (no highlight text, no page) or that relies on
filters that do not exist; warnings point out syntax the tokenizer had to
recover from and other things that render silently wrong.
"""

from typing import Iterable, List, Set

from ..models.annotations import TEMPLATE_VARIABLES
from ..models.filters import filterSpec_split
from ..models.tokens import AnomalyKind, CondToken, SyntaxAnomaly, Token, VarToken
from ..models.validation import ValidationResult
from .filters import FilterRegistry, filter_registry, truncate_length
from .tokenizer import Tokenizer


ANOMALY_MESSAGES = {
    AnomalyKind.UNTERMINATED_TAG: "Unterminated tag (missing '}}') is rendered as text",
    AnomalyKind.EMPTY_BLOCK_KEY: "Block tag without a key is rendered as text",
    AnomalyKind.DEPTH_EXCEEDED: "Block nested too deeply is rendered as text",
    AnomalyKind.STRAY_CLOSER: "Closing tag without a matching opener is rendered as text",
    AnomalyKind.MALFORMED_TAG: "Malformed tag is rendered as text",
    AnomalyKind.UNCLOSED_BLOCK: "Unclosed block: everything from it onwards is rendered as text",
}


def tokens_walk(tokens: Iterable[Token]) -> Iterable[Token]:
    """Depth-first walk over a token tree"""
    for token in tokens:
        yield token
        if isinstance(token, CondToken):
            yield from tokens_walk(token.body)


def variables_extract(tokens: List[Token]) -> Set[str]:
    """Every variable and block key referenced anywhere in the tree"""
    return {
        token.key
        for token in tokens_walk(tokens)
        if isinstance(token, (VarToken, CondToken))
    }


def filterSpecs_extract(tokens: List[Token]) -> List[str]:
    """All filter specs in template order, duplicates kept"""
    specs: List[str] = []
    for token in tokens_walk(tokens):
        if isinstance(token, VarToken) and token.filters:
            specs.extend(token.filters)
    return specs


def filters_extract(tokens: List[Token]) -> Set[str]:
    """Names of every filter used in the tree"""
    return {filterSpec_split(spec)[0] for spec in filterSpecs_extract(tokens)}


def anomaly_describe(anomaly: SyntaxAnomaly) -> str:
    raw = anomaly.raw if len(anomaly.raw) <= 40 else anomaly.raw[:40] + "…"
    return f"{ANOMALY_MESSAGES[anomaly.kind]} at offset {anomaly.offset}: {raw!r}"


def template_validate(
    template: str, registry: FilterRegistry = filter_registry
) -> ValidationResult:
    """
    Validate a template

    Errors:
        - neither {{highlight}} nor {{highlightPlain}} is referenced
        - {{pageno}} is not referenced
        - a filter name is not registered (also warned: it will be ignored)

    Warnings:
        - recovered syntax problems
        - filters that need an argument used without one
        - ``truncate`` with a non-numeric length
        - variables the renderer never provides

    Returns:
        ValidationResult; ``isValid`` iff there are no errors

    Example:
        >>> result = template_validate("{{pageno}}")
        >>> result.isValid, len(result.errors)
        (False, 1)
    """
    result = ValidationResult()
    tokenizer = Tokenizer(template or "")
    tokens = tokenizer.tokenize()

    variables = variables_extract(tokens)
    if "highlight" not in variables and "highlightPlain" not in variables:
        result.errors.append("Missing required variable: {{highlight}} or {{highlightPlain}}")
        result.suggestions.append(
            "Add {{highlight}} for styled text or {{highlightPlain}} for plain text"
        )
    if "pageno" not in variables:
        result.errors.append("Missing required variable: {{pageno}}")
        result.suggestions.append("Add {{pageno}} to show page numbers")

    for name in sorted(filters_extract(tokens)):
        if registry.get(name) is None:
            result.errors.append(f"Unknown filter '{name}'")
            result.warnings.append(f"The filter '{name}' is not recognised and will be ignored.")

    for anomaly in tokenizer.anomalies:
        result.warnings.append(anomaly_describe(anomaly))

    seen: Set[str] = set()
    for spec_text in filterSpecs_extract(tokens):
        if spec_text in seen:
            continue
        seen.add(spec_text)
        name, arg = filterSpec_split(spec_text)
        spec = registry.get(name)
        if spec is None:
            continue
        if spec.requires_arg and not arg:
            result.warnings.append(f"The filter '{name}' expects an argument, e.g. {spec.examples[0]}")
        elif name == "truncate" and truncate_length(arg) is None:
            result.warnings.append(
                f"'{spec_text}' has a non-numeric length; the value will not be truncated"
            )

    for key in sorted(variables - TEMPLATE_VARIABLES):
        result.warnings.append(f"Unknown variable '{key}' always renders empty")

    result.isValid = not result.errors
    return result

"""
Token tree models

Type-safe structures produced by the Tokenizer and consumed by the
Compiler and Validator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class TextToken:
    """
    Literal template text, emitted unchanged

    Also used for every piece of malformed syntax the tokenizer refuses to
    interpret (stray closers, bad variable keys, unterminated blocks).

    Attributes:
        value: Raw text, delimiters included when it came from a rejected tag
    """
    value: str


@dataclass(frozen=True)
class VarToken:
    """
    Variable reference: {{key}} or {{key|filter1|filter2:arg}}

    Attributes:
        key: Variable name (matches ^\\w+$)
        filters: Filter specs in application order, or None when unfiltered

    Example:
        {{note|stripHTML|truncate:40}} →
        VarToken(key="note", filters=("stripHTML", "truncate:40"))
    """
    key: str
    filters: Optional[Tuple[str, ...]] = None


@dataclass(frozen=True)
class CondToken:
    """
    Conditional block: {{#key}}...{{/key}} or {{#if key}}...{{/if}}

    The body is rendered only when the value looked up under ``key`` is truthy.

    Attributes:
        key: Condition variable name
        body: Fully parsed child tokens
    """
    key: str
    body: Tuple["Token", ...] = ()


Token = Union[TextToken, VarToken, CondToken]


class AnomalyKind(Enum):
    """
    Kinds of malformed syntax the tokenizer recovers from

    Recovery always produces literal text; the kind only explains why.
    """
    UNTERMINATED_TAG = "unterminated_tag"   # {{ without a closing }}
    EMPTY_BLOCK_KEY = "empty_block_key"     # {{#}} or {{#if }}
    DEPTH_EXCEEDED = "depth_exceeded"       # opener beyond max nesting
    STRAY_CLOSER = "stray_closer"           # {{/x}} not matching the open block
    MALFORMED_TAG = "malformed_tag"         # {{not a key}}
    UNCLOSED_BLOCK = "unclosed_block"       # {{#x}} never closed


@dataclass(frozen=True)
class SyntaxAnomaly:
    """
    One recovered syntax problem

    Attributes:
        kind: What went wrong
        offset: Character offset of the offending tag in the template
        raw: Offending tag text (or the remainder, for unclosed blocks)
    """
    kind: AnomalyKind
    offset: int
    raw: str

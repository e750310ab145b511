"""
Filter specification and metadata models

Defines the structure and categories of template filters for the
registry, validation and documentation.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol


FilterFn = Callable[[str], str]


class FilterCategory(Enum):
    """
    Categories of template filters

    Used for organization and documentation generation.
    """
    HTML = "html"            # stripHTML, br2nl, escapeHtml, unescapeHtml
    TEXT = "text"            # lower, upper, truncate
    MARKDOWN = "markdown"    # quote, escape
    DATE = "date"            # dateFormat
    IDENTITY = "identity"    # fallback for unknown names


@dataclass(frozen=True)
class FilterSpec:
    """
    Specification for a template filter

    Attributes:
        name: Filter name as written in templates (before any ':')
        category: Category for organization
        description: Human-readable description
        apply: Pure transform (value, arg) -> value
        requires_arg: Whether the filter expects a ':arg' part
        examples: Example usage strings
    """
    name: str
    category: FilterCategory
    description: str
    apply: Callable[[str, Optional[str]], str]
    requires_arg: bool = False
    examples: List[str] = field(default_factory=list)


# Unknown filter names resolve to this spec: the value passes through unchanged
IDENTITY_FILTER = FilterSpec(
    name="identity",
    category=FilterCategory.IDENTITY,
    description="Unknown filter; value passes through unchanged",
    apply=lambda value, arg=None: value,
)


class PipelineCache(Protocol):
    """
    Minimal cache capability for compiled filter pipelines

    Anything with get/set by string key qualifies: an LruCache, an
    adapter over a dict, or a test double counting hits.
    """

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> Any:
        ...


def filterSpec_split(spec: str) -> tuple[str, Optional[str]]:
    """
    Split a filter spec into name and optional argument

    Only the first ':' separates; later colons belong to the argument.

    Example:
        >>> filterSpec_split("truncate:40")
        ('truncate', '40')
        >>> filterSpec_split("upper")
        ('upper', None)
    """
    name, sep, arg = spec.partition(":")
    if not sep:
        return name.strip(), None
    return name.strip(), arg.strip()

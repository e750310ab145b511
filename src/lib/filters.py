"""
Filter registry and filter pipelines

Each filter is a pure string -> string transform, optionally taking an
argument written after a colon: ``{{highlight|stripHTML|truncate:80}}``.
Filters apply left to right. Unknown names resolve to the identity filter,
so a typo never breaks a render; the validator reports it instead.
"""

import math
import re
from typing import Any, Dict, List, Optional, Sequence

from ..models.filters import (
    FilterSpec,
    FilterCategory,
    FilterFn,
    IDENTITY_FILTER,
    PipelineCache,
    filterSpec_split,
)
from .dates import date_format
from .log import LOG
from .strings import html_escape, html_strip, html_unescape, markdown_escape


ELLIPSIS = "…"
BR_TAG = re.compile(r"<br\s*/?\s*>", re.IGNORECASE)
LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def truncate_length(arg: Optional[str]) -> Optional[float]:
    """
    Parse the ``truncate`` argument

    Numeric strings are used as-is; otherwise a leading integer is accepted
    ("12px" → 12). Anything else means "no truncation".

    Returns:
        Cut length, or None when the argument is unusable
    """
    if arg is None:
        return None
    try:
        length = float(arg.strip())
        if math.isfinite(length):
            return length
    except ValueError:
        pass
    match = LEADING_INT.match(arg)
    if match:
        return float(int(match.group(0)))
    return None


def truncate_apply(value: str, arg: Optional[str] = None) -> str:
    """Hard character cut with an ellipsis, only when a cut happened"""
    length = truncate_length(arg)
    if length is None or length <= 0 or len(value) <= length:
        return value
    return value[:int(length)] + ELLIPSIS


def quote_apply(value: str, arg: Optional[str] = None) -> str:
    """Prefix lines with '> '; blank lines become a bare '>'"""
    return "\n".join(
        ">" if not line.strip() else f"> {line}" for line in value.split("\n")
    )


class FilterRegistry:
    """
    Registry of filter specifications

    Maps filter names to FilterSpec objects. Built once at import time and
    treated as read-only afterwards (see ``filter_registry``).
    """

    def __init__(self) -> None:
        """Initialize the registry and register all built-in filters"""
        self.specs: Dict[str, FilterSpec] = {}
        self.htmlFilters_register()
        self.textFilters_register()
        self.markdownFilters_register()
        self.dateFilters_register()

    def register(self, spec: FilterSpec) -> None:
        """Register a filter specification"""
        self.specs[spec.name] = spec

    def get(self, name: str) -> Optional[FilterSpec]:
        """
        Get filter spec by exact (case-sensitive) name

        Returns:
            FilterSpec or None if the name is not registered
        """
        return self.specs.get(name)

    def resolve(self, name: str) -> FilterSpec:
        """Get filter spec by name, falling back to the identity filter"""
        return self.specs.get(name, IDENTITY_FILTER)

    def names(self) -> List[str]:
        """Registered filter names, in registration order"""
        return list(self.specs)

    def filters_listByCategory(self, category: FilterCategory) -> List[FilterSpec]:
        """Get all filters in a category"""
        return [spec for spec in self.specs.values() if spec.category == category]

    def htmlFilters_register(self) -> None:
        """Register HTML-related filters"""
        self.register(FilterSpec(
            name="stripHTML",
            category=FilterCategory.HTML,
            description="Remove HTML tags and decode entities",
            apply=lambda value, arg=None: html_strip(value),
            examples=["{{highlight|stripHTML}}"],
        ))
        self.register(FilterSpec(
            name="br2nl",
            category=FilterCategory.HTML,
            description="Convert <br> tags to newlines",
            apply=lambda value, arg=None: BR_TAG.sub("\n", value),
            examples=["{{highlight|br2nl}}"],
        ))
        self.register(FilterSpec(
            name="escapeHtml",
            category=FilterCategory.HTML,
            description="Escape HTML entities",
            apply=lambda value, arg=None: html_escape(value),
            examples=["{{note|escapeHtml}}"],
        ))
        self.register(FilterSpec(
            name="unescapeHtml",
            category=FilterCategory.HTML,
            description="Unescape HTML entities",
            apply=lambda value, arg=None: html_unescape(value),
            examples=["{{highlightPlain|unescapeHtml}}"],
        ))

    def textFilters_register(self) -> None:
        """Register plain text filters"""
        self.register(FilterSpec(
            name="truncate",
            category=FilterCategory.TEXT,
            description="Truncate to N characters",
            apply=truncate_apply,
            requires_arg=True,
            examples=["{{highlight|truncate:80}}"],
        ))
        self.register(FilterSpec(
            name="lower",
            category=FilterCategory.TEXT,
            description="Convert to lowercase",
            apply=lambda value, arg=None: value.lower(),
            examples=["{{chapter|lower}}"],
        ))
        self.register(FilterSpec(
            name="upper",
            category=FilterCategory.TEXT,
            description="Convert to uppercase",
            apply=lambda value, arg=None: value.upper(),
            examples=["{{chapter|upper}}"],
        ))

    def markdownFilters_register(self) -> None:
        """Register Markdown filters"""
        self.register(FilterSpec(
            name="quote",
            category=FilterCategory.MARKDOWN,
            description="Prefix lines with > for Markdown quotes",
            apply=quote_apply,
            examples=["{{highlightPlain|br2nl|quote}}"],
        ))
        self.register(FilterSpec(
            name="escape",
            category=FilterCategory.MARKDOWN,
            description="Escape Markdown special characters",
            apply=lambda value, arg=None: markdown_escape(value),
            examples=["{{chapter|escape}}"],
        ))

    def dateFilters_register(self) -> None:
        """Register date filters"""
        self.register(FilterSpec(
            name="dateFormat",
            category=FilterCategory.DATE,
            description="Format date string (e.g. YYYYMMDDHHmmss)",
            apply=lambda value, arg=None: date_format(value, arg),
            requires_arg=True,
            examples=["{{datetime|dateFormat:YYYY-MM-DD}}"],
        ))


# Process-wide registry, read-only after import
filter_registry = FilterRegistry()


def value_stringify(value: Any) -> str:
    """
    Convert a template value to text

    None → "", booleans → "true"/"false", integral floats without ".0",
    sequences joined with ", ".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ", ".join(value_stringify(item) for item in value)
    return str(value)


def pipeline_compile(
    filter_specs: Sequence[str], registry: FilterRegistry = filter_registry
) -> FilterFn:
    """
    Compose filter specs into a single left-to-right function

    Unknown filter names become identity steps.

    Example:
        >>> pipeline_compile(["truncate:1", "upper"])("ab")
        'A…'
    """
    steps = []
    for spec_text in filter_specs:
        name, arg = filterSpec_split(spec_text)
        spec = registry.resolve(name)
        steps.append((spec.apply, arg))

    def pipeline(value: str) -> str:
        for apply, arg in steps:
            value = apply(value, arg)
        return value

    return pipeline


def filters_apply(
    value: Any,
    filter_specs: Optional[Sequence[str]] = None,
    cache: Optional[PipelineCache] = None,
) -> str:
    """
    Stringify a value and run it through a filter pipeline

    Args:
        value: Raw template value (None renders as "")
        filter_specs: Filter specs in application order
        cache: Optional pipeline cache keyed by the joined specs

    Returns:
        Filtered string
    """
    text = value_stringify(value)
    if not filter_specs:
        return text

    key = "|".join(filter_specs)
    pipeline = cache.get(key) if cache is not None else None
    if pipeline is None:
        pipeline = pipeline_compile(filter_specs)
        if cache is not None:
            cache.set(key, pipeline)
            LOG(f"Compiled filter pipeline '{key}'", level=3)
    return pipeline(text)

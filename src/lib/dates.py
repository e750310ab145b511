"""
Date formatting for template data and the dateFormat filter

Supported patterns:
    None            stable en-US short date   "Jan 2, 2024"
    "locale"        system locale date        strftime("%x")
    "daily-note"    daily note wiki link      "[[2024-01-02]]"
    braced mask     "{YYYY}/{MM}/{DD} {HH}:{mm}:{ss}"
    bare mask       "YYYYMMDDHHmmss" (braces cannot appear inside a template tag)

Unparseable input or an unknown braced token yields an empty string.
"""

import re
from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional, Union


MONTHS_SHORT = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

MASK_FIELDS: dict[str, Callable[[datetime], str]] = {
    "YYYY": lambda d: f"{d.year:04d}",
    "MM": lambda d: f"{d.month:02d}",
    "DD": lambda d: f"{d.day:02d}",
    "HH": lambda d: f"{d.hour:02d}",
    "mm": lambda d: f"{d.minute:02d}",
    "ss": lambda d: f"{d.second:02d}",
}

BRACED_TOKEN = re.compile(r"\{([^}]*)\}")
BARE_TOKEN = re.compile(r"YYYY|MM|DD|HH|mm|ss")

FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
)


def date_parse(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """
    Parse a date-like value

    Accepts datetimes, Unix timestamps (seconds), ISO-8601 strings
    (including a trailing "Z") and a few common human formats.

    Returns:
        Parsed datetime, or None when the value is not a date
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


@lru_cache(maxsize=64)
def mask_compile(mask: str) -> Optional[Callable[[datetime], str]]:
    """
    Compile a date mask into a formatter

    Braced masks replace ``{TOKEN}``; masks without braces replace bare
    tokens. Returns None when a braced token is not supported.
    """
    if "{" in mask:
        if any(token not in MASK_FIELDS for token in BRACED_TOKEN.findall(mask)):
            return None
        return lambda d: BRACED_TOKEN.sub(lambda m: MASK_FIELDS[m.group(1)](d), mask)
    return lambda d: BARE_TOKEN.sub(lambda m: MASK_FIELDS[m.group(0)](d), mask)


def date_format(
    value: Union[str, int, float, datetime, None],
    pattern: Optional[str] = None,
) -> str:
    """
    Format a date-like value

    Args:
        value: Date string, timestamp or datetime
        pattern: None, "locale", "daily-note", or a braced/bare mask

    Returns:
        Formatted date, or "" when the value or the mask is invalid

    Example:
        >>> date_format("2024-01-02 13:14:15")
        'Jan 2, 2024'
        >>> date_format("2024-01-02 13:14:15", "daily-note")
        '[[2024-01-02]]'
        >>> date_format("2024-01-02 13:14:15", "YYYYMMDDHHmmss")
        '20240102131415'
    """
    date = date_parse(value)
    if date is None:
        return ""

    if not pattern:
        return f"{MONTHS_SHORT[date.month - 1]} {date.day}, {date.year}"
    if pattern == "locale":
        return date.strftime("%x")
    if pattern == "daily-note":
        return f"[[{date.year:04d}-{date.month:02d}-{date.day:02d}]]"

    formatter = mask_compile(pattern)
    if formatter is None:
        return ""
    return formatter(date)

"""
Highlight styling: reader colours and decorations to Markdown-safe HTML

Palette colours map to CSS variables (``--khl-<name>`` / ``--on-khl-<name>``)
so vault themes can restyle them. Hex colours get a black or white
foreground, whichever has the better WCAG contrast ratio.
"""

import re
from typing import Optional, Tuple

from .strings import html_escape


COLOR_NAMES: Tuple[str, ...] = (
    "red",
    "orange",
    "yellow",
    "green",
    "olive",
    "cyan",
    "blue",
    "purple",
    "gray",
)

HEX3 = re.compile(r"^#?([\da-f])([\da-f])([\da-f])$", re.IGNORECASE)
HEX6 = re.compile(r"^#?([\da-f]{2})([\da-f]{2})([\da-f]{2})$", re.IGNORECASE)

RGB = Tuple[int, int, int]


def bgVar_make(name: str) -> str:
    return f"var(--khl-{name})"


def fgVar_make(name: str) -> str:
    return f"var(--on-khl-{name})"


def color_normalize(raw: Optional[str]) -> Optional[str]:
    """
    Map a reader colour to a palette name

    Example:
        >>> color_normalize(" Grey ")
        'gray'
        >>> color_normalize("#ff0000") is None
        True
    """
    if not raw:
        return None
    name = raw.strip().lower()
    if name == "grey":
        name = "gray"
    return name if name in COLOR_NAMES else None


def hex_toRgb(color: str) -> Optional[RGB]:
    """Parse #rgb / #rrggbb (leading # optional)"""
    match = HEX3.match(color)
    if match:
        return tuple(int(x * 2, 16) for x in match.groups())  # type: ignore[return-value]
    match = HEX6.match(color)
    if match:
        return tuple(int(x, 16) for x in match.groups())  # type: ignore[return-value]
    return None


def luminance_compute(rgb: RGB) -> float:
    """WCAG relative luminance of an sRGB colour"""
    channels = []
    for value in rgb:
        c = value / 255
        channels.append(c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4)
    return 0.2126 * channels[0] + 0.7152 * channels[1] + 0.0722 * channels[2]


def contrast_compute(a: RGB, b: RGB) -> float:
    """WCAG contrast ratio (1-21)"""
    lighter, darker = sorted((luminance_compute(a), luminance_compute(b)), reverse=True)
    return (lighter + 0.05) / (darker + 0.05)


def bestBW_pick(color: str) -> Optional[str]:
    """Black or white foreground with the better contrast, None if not hex"""
    rgb = hex_toRgb(color)
    if rgb is None:
        return None
    if contrast_compute((0, 0, 0), rgb) >= contrast_compute((255, 255, 255), rgb):
        return "#000"
    return "#fff"


def highlight_style(text: str, color: Optional[str] = None, drawer: Optional[str] = None) -> str:
    """
    Render highlight text as HTML styled after the reader's decoration

    Paragraphs (separated by a backslash in reader exports) are escaped and
    joined with ``<br><br>``.

    Args:
        text: Raw highlight text
        color: Palette name or hex colour
        drawer: "underscore", "strikeout", "invert", "lighten" or None

    Returns:
        Styled HTML, or "" for blank text

    Example:
        >>> highlight_style("Hi", "yellow")
        '<mark style="background:var(--khl-yellow);color:var(--on-khl-yellow);">Hi</mark>'
    """
    if not text or not text.strip():
        return ""

    paragraphs = [html_escape(p.strip()) for p in text.split("\\")]
    content = "<br><br>".join(p for p in paragraphs if p)

    palette = color_normalize(color)

    if drawer == "underscore":
        return f"<u>{content}</u>"
    if drawer == "strikeout":
        return f"<s>{content}</s>"
    if drawer == "invert":
        fg = bgVar_make(palette) if palette else "var(--text-accent)"
        return f'<mark style="background:transparent;color:{fg};">{content}</mark>'

    # "lighten", no drawer, or anything unknown
    if drawer == "lighten" and palette == "gray":
        # the reader's default highlight: no colour markup
        return content
    if color and (palette or hex_toRgb(color)):
        bg = bgVar_make(palette) if palette else color
        fg = fgVar_make(palette) if palette else bestBW_pick(color)
        return f'<mark style="background:{bg};color:{fg or "inherit"};">{content}</mark>'
    return content

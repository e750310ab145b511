"""
String primitives shared by filters, styling and merging

Domain-agnostic helpers: HTML escaping and stripping, Markdown escaping,
whitespace normalization.
"""

import html
import re


HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
}

HTML_SPECIALS = re.compile(r"[&<>\"']")
ENCODED_SPECIALS = re.compile(r"&(?:amp|lt|gt|quot|#39);")
HTML_TAG = re.compile(r"<[^>]*>")
MARKDOWN_SPECIALS = re.compile(r"([\\`*_{}\[\]()#+\-.!|>~])")
WHITESPACE_RUN = re.compile(r"\s+")

_DECODED = {encoded: char for char, encoded in HTML_ENTITIES.items()}


def html_escape(text: str) -> str:
    """
    Escape the five HTML special characters

    Example:
        >>> html_escape("<b>Tom & 'Jerry'</b>")
        '&lt;b&gt;Tom &amp; &#39;Jerry&#39;&lt;/b&gt;'
    """
    return HTML_SPECIALS.sub(lambda m: HTML_ENTITIES[m.group(0)], text)


def html_unescape(text: str) -> str:
    """Decode all HTML entities (named and numeric)"""
    return html.unescape(text)


def html_strip(text: str) -> str:
    """
    Remove HTML tags after decoding the five basic entities

    Entity-encoded tags such as ``&lt;h1&gt;`` are decoded first so they are
    stripped as well instead of reappearing as markup.

    Example:
        >>> html_strip("<p>a &lt;b&gt;bold&lt;/b&gt; &amp; c</p>")
        'a bold & c'
    """
    decoded = ENCODED_SPECIALS.sub(lambda m: _DECODED[m.group(0)], text)
    return HTML_TAG.sub("", decoded)


def markdown_escape(text: str) -> str:
    """
    Backslash-escape Markdown special characters

    Example:
        >>> markdown_escape("*bold* [link](x)")
        '\\\\*bold\\\\* \\\\[link\\\\]\\\\(x\\\\)'
    """
    return MARKDOWN_SPECIALS.sub(r"\\\1", text)


def whitespace_normalize(text: str) -> str:
    """Trim and collapse every whitespace run into one space"""
    return WHITESPACE_RUN.sub(" ", str(text).strip())

"""
highlightdown - Highlight template engine

Renders e-reader highlights to Markdown through a small template language.
"""

__version__ = "1.0.0"

from .lib import (
    tokenize,
    compile,
    filters_apply,
    annotations_render,
    template_validate,
    TemplateLibrary,
    LruCache,
    LOG,
    state_connectToLogger,
)

__all__ = [
    "tokenize",
    "compile",
    "filters_apply",
    "annotations_render",
    "template_validate",
    "TemplateLibrary",
    "LruCache",
    "LOG",
    "state_connectToLogger",
    "__version__",
]

"""
highlightdown - Highlight template engine

Renders e-reader highlights to Markdown through a small template language.
"""

__version__ = "1.0.0"

from .tokenizer import Tokenizer, tokenize, tokens_serialize
from .filters import FilterRegistry, filter_registry, filters_apply
from .compiler import Compiler, compile, value_isTruthy
from .renderer import annotations_render, group_render
from .validator import template_validate
from .templates import TemplateLibrary, TemplateError, CompiledTemplate
from .cache import LruCache
from .log import LOG, state_connectToLogger

__all__ = [
    "Tokenizer",
    "tokenize",
    "tokens_serialize",
    "FilterRegistry",
    "filter_registry",
    "filters_apply",
    "Compiler",
    "compile",
    "value_isTruthy",
    "annotations_render",
    "group_render",
    "template_validate",
    "TemplateLibrary",
    "TemplateError",
    "CompiledTemplate",
    "LruCache",
    "LOG",
    "state_connectToLogger",
    "__version__",
]

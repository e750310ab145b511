"""
Models package for highlightdown

Contains data structures and type definitions for the rendering pipeline.
"""

from .state import ProgramState, pipeline
from .tokens import TextToken, VarToken, CondToken, Token, AnomalyKind, SyntaxAnomaly
from .filters import FilterSpec, FilterCategory, IDENTITY_FILTER, PipelineCache
from .annotations import (
    Annotation,
    HighlightGroup,
    ChapterBucket,
    TemplateData,
    TEMPLATE_VARIABLES,
    CONTIGUOUS,
    GAP,
)
from .validation import ValidationResult

__all__ = [
    "ProgramState",
    "pipeline",
    "TextToken",
    "VarToken",
    "CondToken",
    "Token",
    "AnomalyKind",
    "SyntaxAnomaly",
    "FilterSpec",
    "FilterCategory",
    "IDENTITY_FILTER",
    "PipelineCache",
    "Annotation",
    "HighlightGroup",
    "ChapterBucket",
    "TemplateData",
    "TEMPLATE_VARIABLES",
    "CONTIGUOUS",
    "GAP",
    "ValidationResult",
]

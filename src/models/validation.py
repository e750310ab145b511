"""
Template validation result model
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class ValidationResult:
    """
    Findings from statically inspecting a template

    Attributes:
        isValid: True iff ``errors`` is empty
        errors: Problems that should block saving the template
        warnings: Advisory findings (never affect isValid)
        suggestions: Hints for fixing the errors
    """
    isValid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

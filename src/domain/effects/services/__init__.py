"""
Effects Domain Services.

    - ParameterBinder: params -> ParameterBinding (pure)
    - ErrorClassifier: remote code -> SubmissionOutcome
"""

from src.domain.effects.services.error_classifier import (
    ClassifiedResponse,
    ErrorClassifier,
    SubmissionOutcome,
)
from src.domain.effects.services.parameter_binder import ParameterBinder

__all__ = [
    "ParameterBinder",
    "ErrorClassifier",
    "ClassifiedResponse",
    "SubmissionOutcome",
]

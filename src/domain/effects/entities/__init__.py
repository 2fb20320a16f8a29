"""
Effects Entities.

    - EffectDefinition: immutable catalog entry
    - SubmissionMode: APP or GRAPH request shape
"""

from src.domain.effects.entities.effect_definition import EffectDefinition, SubmissionMode

__all__ = ["EffectDefinition", "SubmissionMode"]

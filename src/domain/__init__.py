"""
Domain Layer - Core Business Logic

Heart of the EffectFlow orchestration layer. Contains the effect catalog model,
parameter binding rules, remote outcome classification and the task state
machine. Framework-independent and highly testable.

Architecture:
    - Clean Architecture: Domain Layer is the center, no external dependencies
    - Domain-Driven Design: Entities, Value Objects, Services
    - Dependency Inversion: Domain defines rules, Infrastructure performs I/O

Subdomains:
    - effects: Effect catalog, parameter specs, node bindings, binder, classifier
    - tasks: Task entity, state machine and lifecycle policies
    - shared: Cross-subdomain concepts (exceptions)

Usage:
    >>> from src.domain import EffectDefinition, Task, DomainException
    >>> from src.domain.effects.services import ParameterBinder
"""

from .effects import EffectCatalog, EffectDefinition, SubmissionMode
from .shared import DomainException
from .tasks import ErrorKind, Task, TaskState

__all__ = [
    # Effects Subdomain
    "EffectDefinition",
    "EffectCatalog",
    "SubmissionMode",
    # Tasks Subdomain
    "Task",
    "TaskState",
    "ErrorKind",
    # Shared Domain
    "DomainException",
]

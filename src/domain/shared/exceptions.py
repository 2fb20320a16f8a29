"""
Domain Layer Exceptions

This module defines the exception hierarchy for the Domain Layer.
All domain-specific exceptions inherit from DomainException.

Responsibility:
    - Base exception class for domain errors
    - Typed validation errors raised before any network call
    - Typed submission errors surfaced after the remote service answered
    - Clear separation from framework exceptions

Architecture Notes:
    - Part of Shared Domain (used across effects and tasks subdomains)
    - API Layer maps each family to an HTTP status code (see src/api/main.py)
    - Infrastructure Layer raises its own transport exceptions and converts
      them to TransientSubmissionError once retries are exhausted

Hierarchy:
    DomainException
    ├── ValidationError                 (local, never retried)
    │   ├── MissingParameterError
    │   ├── InvalidParameterValueError
    │   ├── CatalogValidationError
    │   ├── UnknownEffectError
    │   └── UnsupportedRegionError
    ├── RemoteConfigurationError        (remote rejected node bindings)
    ├── TransientSubmissionError        (retries exhausted)
    └── InvalidTaskTransitionError      (state machine guard)
"""

from typing import Optional


class DomainException(Exception):
    """
    Root of every error the effects and tasks domains raise on purpose.

    Application code catches it to tell expected failures from bugs;
    src/api/main.py turns it into an ErrorResponse. Raw transport problems
    stay in RemoteTransportError / RemoteResponseError until the dispatcher
    classifies them.

    Examples:
        >>> str(DomainException("catalog not loaded"))
        'DomainException: catalog not loaded'
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r})"


# ============================================================================
# VALIDATION ERRORS - local, pre-network, never retried
# ============================================================================


class ValidationError(DomainException):
    """
    Base class for local validation failures.

    Raised synchronously before any network call is made. A ValidationError
    is never retried: the caller must fix the request (or the catalog).
    """


class MissingParameterError(ValidationError):
    """
    Raised when a node binding references a parameter that is absent
    from the request and has no declared default.

    Attributes:
        param_key: Key of the missing parameter (e.g. "image_240")

    Examples:
        >>> raise MissingParameterError("image_240")
    """

    def __init__(self, param_key: str, catalog_id: Optional[str] = None) -> None:
        """
        Initialize missing parameter error.

        Args:
            param_key: Key of the missing parameter
            catalog_id: Effect the parameter belongs to (optional)
        """
        self.param_key = param_key
        self.catalog_id = catalog_id
        message = f"Missing required parameter '{param_key}'"
        if catalog_id:
            message += f" for effect '{catalog_id}'"
        super().__init__(message)


class InvalidParameterValueError(ValidationError):
    """
    Raised when a parameter value cannot be coerced to its declared kind.

    This exception is raised when:
    - A number kind receives a non-numeric string or a boolean
    - An integer wire field receives a fractional number
    - A number is outside the declared minimum/maximum
    - A select value is not one of the declared options
    - An image reference is empty

    Examples:
        >>> raise InvalidParameterValueError("steps", "abc", "expected a number")
    """

    def __init__(self, param_key: str, value: object, reason: str) -> None:
        """
        Initialize invalid parameter value error.

        Args:
            param_key: Key of the offending parameter
            value: Value as received from the caller
            reason: Short description of the rule that was violated
        """
        self.param_key = param_key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for parameter '{param_key}': {reason}")


class CatalogValidationError(ValidationError):
    """
    Raised when an effect definition violates a catalog authoring invariant.

    This exception is raised at catalog-load time when:
    - Two node bindings target the same (node_id, field_name) pair
    - A node binding references an undeclared parameter
    - The workflow identifier is empty or not representable as a string
    - A wire type does not fit the parameter kind

    Attributes:
        catalog_id: Effect whose definition is invalid (optional)
        errors: List of every violation found in the definition

    Examples:
        >>> raise CatalogValidationError(
        ...     "Invalid effect definition",
        ...     catalog_id="bg-replace",
        ...     errors=["duplicate node target (37, model)"],
        ... )
    """

    def __init__(
        self,
        message: str,
        catalog_id: Optional[str] = None,
        errors: Optional[list[str]] = None,
    ) -> None:
        self.catalog_id = catalog_id
        self.errors = errors or []
        if catalog_id:
            message = f"{message} (effect '{catalog_id}')"
        if self.errors:
            message = f"{message}:\n" + "\n".join(f"  - {err}" for err in self.errors)
        super().__init__(message)


class UnknownEffectError(ValidationError):
    """Raised when a catalog id is not present in the current catalog snapshot."""

    def __init__(self, catalog_id: str) -> None:
        self.catalog_id = catalog_id
        super().__init__(f"Effect '{catalog_id}' is not in the catalog")


class UnsupportedRegionError(ValidationError):
    """
    Raised when a region code has no endpoint in the region table.

    Attributes:
        region: Requested region code
        supported: Region codes that are configured
    """

    def __init__(self, region: str, supported: Optional[list[str]] = None) -> None:
        self.region = region
        self.supported = supported or []
        message = f"Unsupported region '{region}'"
        if self.supported:
            message += f" (supported: {', '.join(self.supported)})"
        super().__init__(message)


# ============================================================================
# SUBMISSION ERRORS - raised after the remote service answered
# ============================================================================


class RemoteConfigurationError(DomainException):
    """
    Raised when the remote service reports that the effect's node bindings
    do not match its workflow ("node info mismatch").

    Non-retryable: the effect catalog must be fixed and redeployed.

    Attributes:
        catalog_id: Effect that was submitted
        task_id: Local task id, already marked FAILED
        diagnostic_code: Raw remote status code, kept for support
    """

    def __init__(
        self,
        message: str,
        catalog_id: Optional[str] = None,
        task_id: Optional[str] = None,
        diagnostic_code: Optional[int] = None,
    ) -> None:
        self.catalog_id = catalog_id
        self.task_id = task_id
        self.diagnostic_code = diagnostic_code
        super().__init__(message)


class TransientSubmissionError(DomainException):
    """
    Raised when a submission kept failing transiently (timeout, connection
    error, 5xx, queue full) and every retry attempt was used.

    Attributes:
        attempts: Number of attempts made
        task_id: Local task id, already marked FAILED
        diagnostic_code: Last remote status code, if the remote answered
    """

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        task_id: Optional[str] = None,
        diagnostic_code: Optional[int] = None,
    ) -> None:
        self.attempts = attempts
        self.task_id = task_id
        self.diagnostic_code = diagnostic_code
        super().__init__(message)


class InvalidTaskTransitionError(DomainException):
    """Raised when a task is asked to move backwards or out of a terminal state."""

    def __init__(self, task_id: str, current: str, requested: str) -> None:
        self.task_id = task_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Task {task_id} cannot move from {current} to {requested}"
        )

"""
Error Classifier Domain Service

The single place that interprets the remote service's numeric status codes.

Responsibility:
    - Map remote codes to a closed outcome taxonomy
    - Keep the mapping table externally configurable
    - Preserve the raw code for diagnostics

Architecture Notes:
    - Part of Effects subdomain
    - Consumed by the Task Dispatcher; nothing else reads remote codes
    - Codes not in the table classify as UNKNOWN and carry the raw code

Default Table (remote service behaviour observed in production):
    0    -> ACCEPTED               task runs normally
    433  -> ACCEPTED_WITH_WARNING  input validation failed, task started anyway
    421  -> TRANSIENT              task queue full, retry later
    803  -> CONFIGURATION_ERROR    node info mismatch, catalog must be fixed
"""

import json
import logging
import os
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Final, Mapping, Optional

logger = logging.getLogger(__name__)


class SubmissionOutcome(str, Enum):
    """Closed taxonomy of submission outcomes."""

    ACCEPTED = "accepted"
    ACCEPTED_WITH_WARNING = "accepted_with_warning"
    TRANSIENT = "transient"
    CONFIGURATION_ERROR = "configuration_error"
    UNKNOWN = "unknown"

    @property
    def is_accepted(self) -> bool:
        return self in (SubmissionOutcome.ACCEPTED, SubmissionOutcome.ACCEPTED_WITH_WARNING)


SUCCESS_CODE: Final[int] = 0
VALIDATION_WARNING_CODE: Final[int] = 433
QUEUE_FULL_CODE: Final[int] = 421
NODE_INFO_MISMATCH_CODE: Final[int] = 803

DEFAULT_CODE_TABLE: Final[Mapping[int, SubmissionOutcome]] = MappingProxyType(
    {
        SUCCESS_CODE: SubmissionOutcome.ACCEPTED,
        VALIDATION_WARNING_CODE: SubmissionOutcome.ACCEPTED_WITH_WARNING,
        QUEUE_FULL_CODE: SubmissionOutcome.TRANSIENT,
        NODE_INFO_MISMATCH_CODE: SubmissionOutcome.CONFIGURATION_ERROR,
    }
)

OVERRIDES_ENV_VAR: Final[str] = "REMOTE_STATUS_CODE_OVERRIDES"


@dataclass(frozen=True)
class ClassifiedResponse:
    """
    Typed outcome of one remote response.

    Attributes:
        outcome: Classified outcome
        code: Raw remote code (None when the body had no code)
        message: Remote message, kept for logs and warnings
    """

    outcome: SubmissionOutcome
    code: Optional[int]
    message: Optional[str] = None


class ErrorClassifier:
    """
    Maps remote status codes to SubmissionOutcome.

    Examples:
        >>> classifier = ErrorClassifier()
        >>> classifier.classify(421).outcome
        <SubmissionOutcome.TRANSIENT: 'transient'>
        >>> classifier.classify(999).outcome
        <SubmissionOutcome.UNKNOWN: 'unknown'>

        >>> # Deployment adds a newly observed code without a release
        >>> # REMOTE_STATUS_CODE_OVERRIDES='{"1001": "transient"}'
        >>> ErrorClassifier.from_env().classify(1001).outcome
        <SubmissionOutcome.TRANSIENT: 'transient'>
    """

    def __init__(self, code_table: Optional[Mapping[int, SubmissionOutcome]] = None) -> None:
        self.code_table: Mapping[int, SubmissionOutcome] = MappingProxyType(
            dict(code_table if code_table is not None else DEFAULT_CODE_TABLE)
        )

    @classmethod
    def with_overrides(cls, overrides: Mapping[Any, Any]) -> "ErrorClassifier":
        """
        Build a classifier whose table is the defaults merged with overrides.

        Args:
            overrides: {code: outcome} with code as int or numeric str and
                outcome as SubmissionOutcome or its value

        Raises:
            ValueError: If a code is not an integer or an outcome is unknown
        """
        table = dict(DEFAULT_CODE_TABLE)
        for raw_code, raw_outcome in overrides.items():
            try:
                code = int(raw_code)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Status code override key must be an integer, got {raw_code!r}") from e
            table[code] = SubmissionOutcome(raw_outcome)
        return cls(table)

    @classmethod
    def from_env(cls) -> "ErrorClassifier":
        """
        Build a classifier from REMOTE_STATUS_CODE_OVERRIDES (JSON object).

        An unreadable override is logged and ignored so a bad deployment
        variable never takes the service down.
        """
        raw = os.getenv(OVERRIDES_ENV_VAR)
        if not raw:
            return cls()
        try:
            overrides = json.loads(raw)
            if not isinstance(overrides, dict):
                raise ValueError("overrides must be a JSON object")
            classifier = cls.with_overrides(overrides)
        except ValueError as e:
            logger.error(f"Ignoring invalid {OVERRIDES_ENV_VAR}: {e}")
            return cls()

        logger.info(f"Remote status code table loaded with {len(overrides)} override(s)")
        return classifier

    def classify(self, code: Any, message: Optional[str] = None) -> ClassifiedResponse:
        """
        Classify one remote code.

        Args:
            code: Code from the response body (int, numeric str or None)
            message: Remote message (optional)

        Returns:
            ClassifiedResponse; codes that are missing, malformed or not in the
            table classify as UNKNOWN
        """
        try:
            numeric = int(code) if code is not None and not isinstance(code, bool) else None
        except (TypeError, ValueError):
            numeric = None

        if numeric is None:
            return ClassifiedResponse(SubmissionOutcome.UNKNOWN, None, message)

        outcome = self.code_table.get(numeric, SubmissionOutcome.UNKNOWN)
        return ClassifiedResponse(outcome, numeric, message)

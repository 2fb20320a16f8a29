"""
Tests for ErrorClassifier Domain Service.
Covers: default code table, unknown codes, overrides, environment configuration.
"""

import pytest

from src.domain.effects.services import ErrorClassifier, SubmissionOutcome
from src.domain.effects.services.error_classifier import OVERRIDES_ENV_VAR


# ============================================================================
# DEFAULT TABLE
# ============================================================================


@pytest.mark.parametrize(
    "code,outcome",
    [
        (0, SubmissionOutcome.ACCEPTED),
        (433, SubmissionOutcome.ACCEPTED_WITH_WARNING),
        (421, SubmissionOutcome.TRANSIENT),
        (803, SubmissionOutcome.CONFIGURATION_ERROR),
        ("421", SubmissionOutcome.TRANSIENT),
    ],
)
def test_default_table(code, outcome):
    classified = ErrorClassifier().classify(code, "msg")

    assert classified.outcome is outcome
    assert classified.code == int(code)
    assert classified.message == "msg"


def test_unlisted_code_is_unknown_and_keeps_raw_code():
    classified = ErrorClassifier().classify(999)

    assert classified.outcome is SubmissionOutcome.UNKNOWN
    assert classified.code == 999


@pytest.mark.parametrize("code", [None, "abc", True])
def test_missing_or_malformed_code_is_unknown(code):
    classified = ErrorClassifier().classify(code)

    assert classified.outcome is SubmissionOutcome.UNKNOWN
    assert classified.code is None


def test_is_accepted():
    assert SubmissionOutcome.ACCEPTED.is_accepted
    assert SubmissionOutcome.ACCEPTED_WITH_WARNING.is_accepted
    assert not SubmissionOutcome.TRANSIENT.is_accepted
    assert not SubmissionOutcome.UNKNOWN.is_accepted


def test_code_table_is_read_only():
    classifier = ErrorClassifier()

    with pytest.raises(TypeError):
        classifier.code_table[500] = SubmissionOutcome.TRANSIENT


# ============================================================================
# OVERRIDES
# ============================================================================


def test_with_overrides_adds_and_replaces_codes():
    classifier = ErrorClassifier.with_overrides({"1001": "transient", 433: "accepted"})

    assert classifier.classify(1001).outcome is SubmissionOutcome.TRANSIENT
    assert classifier.classify(433).outcome is SubmissionOutcome.ACCEPTED
    assert classifier.classify(803).outcome is SubmissionOutcome.CONFIGURATION_ERROR


def test_with_overrides_rejects_bad_entries():
    with pytest.raises(ValueError, match="must be an integer"):
        ErrorClassifier.with_overrides({"x": "transient"})

    with pytest.raises(ValueError):
        ErrorClassifier.with_overrides({"1001": "retry-later"})


def test_from_env_reads_overrides(monkeypatch):
    monkeypatch.setenv(OVERRIDES_ENV_VAR, '{"1001": "transient"}')

    assert ErrorClassifier.from_env().classify(1001).outcome is SubmissionOutcome.TRANSIENT


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", '{"x": "transient"}'])
def test_from_env_ignores_invalid_overrides(monkeypatch, raw):
    monkeypatch.setenv(OVERRIDES_ENV_VAR, raw)

    classifier = ErrorClassifier.from_env()

    assert classifier.classify(421).outcome is SubmissionOutcome.TRANSIENT
    assert classifier.classify(1001).outcome is SubmissionOutcome.UNKNOWN


def test_from_env_without_variable_uses_defaults(monkeypatch):
    monkeypatch.delenv(OVERRIDES_ENV_VAR, raising=False)

    assert ErrorClassifier.from_env().classify(803).outcome is SubmissionOutcome.CONFIGURATION_ERROR

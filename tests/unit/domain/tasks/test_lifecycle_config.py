"""
Tests for Task Lifecycle Configuration.
Covers: retry backoff, adaptive polling, cache TTL rules, environment overrides.
"""

import pytest

from src.domain.tasks import CacheTtlPolicy, LifecycleConfig, PollingPolicy, RetryPolicy
from src.domain.tasks.lifecycle_config import (
    SUBMIT_MAX_ATTEMPTS,
    TASK_MAX_AGE_SECONDS,
)


# ============================================================================
# TESTS - RetryPolicy
# ============================================================================


def test_retry_policy_default_delays():
    policy = RetryPolicy.default()

    assert policy.max_attempts == SUBMIT_MAX_ATTEMPTS == 3
    assert policy.delays() == [0.5, 1.0]


def test_retry_policy_doubles_until_cap():
    policy = RetryPolicy(max_attempts=6, base_delay=0.5, max_delay=8.0)

    assert policy.delays() == [0.5, 1.0, 2.0, 4.0, 8.0]
    assert policy.delay_for(1) == 0.5


def test_retry_policy_rejects_flat_delays_at_the_cap():
    """Delays must keep growing: a policy that would repeat the cap is invalid."""
    with pytest.raises(ValueError, match="strictly increasing"):
        RetryPolicy(max_attempts=7, base_delay=0.5, max_delay=8.0)


@pytest.mark.parametrize(
    "kwargs,message",
    [
        ({"max_attempts": 0}, "max_attempts"),
        ({"base_delay": 0}, "base_delay"),
        ({"multiplier": 1.0}, "multiplier"),
        ({"base_delay": 2.0, "max_delay": 1.0}, "max_delay"),
    ],
)
def test_retry_policy_validation(kwargs, message):
    with pytest.raises(ValueError, match=message):
        RetryPolicy(**kwargs)


# ============================================================================
# TESTS - PollingPolicy
# ============================================================================


@pytest.mark.parametrize(
    "age,expected",
    [
        (0, 1.5),
        (-5, 1.5),  # clock skew
        (30, 3.0),  # 1.5 * (1 + 30 / 30)
        (60, 4.5),
        (1000, 10.0),  # capped
    ],
)
def test_next_interval_grows_with_age(age, expected):
    assert PollingPolicy.default().next_interval(age) == pytest.approx(expected)


@pytest.mark.parametrize("failures,expected", [(0, 2.0), (1, 2.0), (2, 4.0), (3, 8.0), (4, 10.0)])
def test_failure_backoff_is_exponential_and_capped(failures, expected):
    assert PollingPolicy.default().failure_backoff(failures) == expected


def test_is_expired_at_max_age():
    policy = PollingPolicy(max_task_age=600)

    assert not policy.is_expired(599.9)
    assert policy.is_expired(600)
    assert PollingPolicy.default().max_task_age == TASK_MAX_AGE_SECONDS


def test_polling_policy_validation():
    with pytest.raises(ValueError, match="max_interval"):
        PollingPolicy(initial_interval=5.0, max_interval=1.0)


# ============================================================================
# TESTS - CacheTtlPolicy
# ============================================================================


def test_status_ttl_is_short_while_running_long_when_terminal():
    ttl = CacheTtlPolicy.default()

    assert ttl.status_ttl(is_terminal=False) == 10
    assert ttl.status_ttl(is_terminal=True) == 3600


def test_record_ttl_outlives_polling_while_running():
    ttl = CacheTtlPolicy.default()

    assert ttl.record_ttl(is_terminal=False, max_task_age=1800) == 2100
    assert ttl.record_ttl(is_terminal=True, max_task_age=1800) == 3600


def test_terminal_status_ttl_cannot_be_shorter_than_running():
    with pytest.raises(ValueError, match="terminal_status_ttl"):
        CacheTtlPolicy(running_status_ttl=60, terminal_status_ttl=30)


# ============================================================================
# TESTS - LifecycleConfig
# ============================================================================


def test_from_env_reads_overrides(monkeypatch):
    monkeypatch.setenv("SUBMIT_MAX_ATTEMPTS", "2")
    monkeypatch.setenv("POLL_INITIAL_INTERVAL_MS", "500")
    monkeypatch.setenv("POLL_MAX_INTERVAL_MS", "4000")
    monkeypatch.setenv("TASK_MAX_AGE_SECONDS", "120")
    monkeypatch.setenv("STATUS_TTL_RUNNING", "5")

    config = LifecycleConfig.from_env()

    assert config.retry.max_attempts == 2
    assert config.polling.initial_interval == 0.5
    assert config.polling.max_interval == 4.0
    assert config.polling.max_task_age == 120
    assert config.ttl.running_status_ttl == 5


def test_from_env_rejects_non_numeric_values(monkeypatch):
    monkeypatch.setenv("TASK_MAX_AGE_SECONDS", "half an hour")

    with pytest.raises(ValueError):
        LifecycleConfig.from_env()


def test_to_dict_summarises_timings():
    summary = LifecycleConfig.default().to_dict()

    assert summary["retry_delays"] == [0.5, 1.0]
    assert summary["poll_initial_interval"] == 1.5
    assert summary["max_task_age"] == TASK_MAX_AGE_SECONDS

"""
Task Lifecycle Configuration

Timing policies for submission retries, adaptive polling and cache expiry.

Business Context:
    A freshly submitted task usually finishes within tens of seconds, but
    some workflows queue for minutes. Polling fast at first and slowing down
    as the task ages keeps latency low for short jobs and call volume low for
    long ones. Cached status follows the same idea: short TTL while the task
    can still change, long TTL once it is terminal.

Design Principles:
    - Configuration as code with environment overrides
    - Type-safe constants
    - Frozen dataclasses validated in __post_init__
"""

import os
from dataclasses import dataclass, field
from typing import Any, Final


# ============================================================================
# SUBMISSION RETRY - only automatic retry in the system
# ============================================================================

SUBMIT_MAX_ATTEMPTS: Final[int] = 3
SUBMIT_BASE_DELAY_SECONDS: Final[float] = 0.5
SUBMIT_BACKOFF_MULTIPLIER: Final[float] = 2.0
SUBMIT_MAX_DELAY_SECONDS: Final[float] = 8.0

# ============================================================================
# POLLING
# ============================================================================

POLL_INITIAL_INTERVAL_SECONDS: Final[float] = 1.5
POLL_MAX_INTERVAL_SECONDS: Final[float] = 10.0
POLL_RAMP_SECONDS: Final[float] = 30.0  # Age at which interval has doubled
POLL_FAILURE_BASE_DELAY_SECONDS: Final[float] = 2.0
TASK_MAX_AGE_SECONDS: Final[int] = 30 * 60

# ============================================================================
# NETWORK DEADLINES
# ============================================================================

SUBMIT_TIMEOUT_SECONDS: Final[float] = 45.0
POLL_TIMEOUT_SECONDS: Final[float] = 30.0

# ============================================================================
# CACHE TTL
# ============================================================================

STATUS_TTL_RUNNING_SECONDS: Final[int] = 10
STATUS_TTL_TERMINAL_SECONDS: Final[int] = 3600
CONFIG_CACHE_TTL_SECONDS: Final[int] = 3600
LOCAL_CACHE_MAX_TTL_SECONDS: Final[int] = 5
TERMINAL_GRACE_SECONDS: Final[int] = 3600
RUNNING_RECORD_GRACE_SECONDS: Final[int] = 300


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded exponential backoff for submissions.

    Delay before retry n (1-based) is base * multiplier^(n-1), capped at
    max_delay. Delays must be strictly increasing, so the cap may not be
    reached before the last retry.

    Examples:
        >>> RetryPolicy.default().delays()
        [0.5, 1.0]
    """

    max_attempts: int = SUBMIT_MAX_ATTEMPTS
    base_delay: float = SUBMIT_BASE_DELAY_SECONDS
    multiplier: float = SUBMIT_BACKOFF_MULTIPLIER
    max_delay: float = SUBMIT_MAX_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be positive, got {self.base_delay}")
        if self.multiplier <= 1:
            raise ValueError(f"multiplier must be > 1, got {self.multiplier}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})"
            )
        delays = self.delays()
        if any(later <= earlier for earlier, later in zip(delays, delays[1:])):
            raise ValueError(
                f"Retry delays must be strictly increasing, got {delays} "
                f"(raise max_delay or lower max_attempts)"
            )

    def delay_for(self, retry_number: int) -> float:
        """Delay in seconds before retry number retry_number (1-based)."""
        return min(self.max_delay, self.base_delay * self.multiplier ** (retry_number - 1))

    def delays(self) -> list[float]:
        """Every delay the policy can produce, in order."""
        return [self.delay_for(n) for n in range(1, self.max_attempts)]

    @classmethod
    def default(cls) -> "RetryPolicy":
        return cls()


@dataclass(frozen=True)
class PollingPolicy:
    """
    Adaptive polling schedule.

    interval(age) = min(max_interval, initial_interval * (1 + age / ramp_seconds))

    A transient poll failure does not fail the task; the next poll is
    delayed by min(max_interval, failure_base_delay * 2^(failures - 1)).
    """

    initial_interval: float = POLL_INITIAL_INTERVAL_SECONDS
    max_interval: float = POLL_MAX_INTERVAL_SECONDS
    ramp_seconds: float = POLL_RAMP_SECONDS
    failure_base_delay: float = POLL_FAILURE_BASE_DELAY_SECONDS
    max_task_age: float = TASK_MAX_AGE_SECONDS

    def __post_init__(self) -> None:
        if self.initial_interval <= 0:
            raise ValueError(f"initial_interval must be positive, got {self.initial_interval}")
        if self.max_interval < self.initial_interval:
            raise ValueError(
                f"max_interval ({self.max_interval}) must be >= initial_interval "
                f"({self.initial_interval})"
            )
        if self.ramp_seconds <= 0:
            raise ValueError(f"ramp_seconds must be positive, got {self.ramp_seconds}")
        if self.max_task_age <= 0:
            raise ValueError(f"max_task_age must be positive, got {self.max_task_age}")

    def next_interval(self, age_seconds: float) -> float:
        age = max(0.0, age_seconds)
        return min(self.max_interval, self.initial_interval * (1 + age / self.ramp_seconds))

    def failure_backoff(self, consecutive_failures: int) -> float:
        failures = max(1, consecutive_failures)
        return min(self.max_interval, self.failure_base_delay * 2 ** (failures - 1))

    def is_expired(self, age_seconds: float) -> bool:
        return age_seconds >= self.max_task_age

    def expiry_message(self) -> str:
        return f"Task exceeded the maximum age of {self.max_task_age:g}s"

    @classmethod
    def default(cls) -> "PollingPolicy":
        return cls()


@dataclass(frozen=True)
class CacheTtlPolicy:
    """
    Expiry rules for cached status and config entries.

    Attributes:
        running_status_ttl: Status snapshot TTL while the task can still change
        terminal_status_ttl: Status snapshot TTL once terminal
        config_ttl: Resolved effect config TTL (invalidated on catalog reload)
        local_max_ttl: Upper bound for the in-process tier
        terminal_grace: How long a terminal task record is kept before eviction
        running_record_grace: Extra life of a running record beyond max task age
    """

    running_status_ttl: int = STATUS_TTL_RUNNING_SECONDS
    terminal_status_ttl: int = STATUS_TTL_TERMINAL_SECONDS
    config_ttl: int = CONFIG_CACHE_TTL_SECONDS
    local_max_ttl: int = LOCAL_CACHE_MAX_TTL_SECONDS
    terminal_grace: int = TERMINAL_GRACE_SECONDS
    running_record_grace: int = RUNNING_RECORD_GRACE_SECONDS

    def __post_init__(self) -> None:
        if self.running_status_ttl <= 0 or self.terminal_status_ttl <= 0:
            raise ValueError("Status TTLs must be positive")
        if self.terminal_status_ttl < self.running_status_ttl:
            raise ValueError(
                "terminal_status_ttl must be >= running_status_ttl "
                f"({self.terminal_status_ttl} < {self.running_status_ttl})"
            )

    def status_ttl(self, is_terminal: bool) -> int:
        return self.terminal_status_ttl if is_terminal else self.running_status_ttl

    def record_ttl(self, is_terminal: bool, max_task_age: float) -> int:
        """TTL of the authoritative task record in the shared tier."""
        if is_terminal:
            return self.terminal_grace
        return int(max_task_age) + self.running_record_grace

    @classmethod
    def default(cls) -> "CacheTtlPolicy":
        return cls()


@dataclass(frozen=True)
class LifecycleConfig:
    """
    Complete lifecycle configuration.

    Examples:
        >>> config = LifecycleConfig.default()
        >>> config.retry.max_attempts
        3
        >>> # Deployed values (TASK_MAX_AGE_SECONDS, SUBMIT_MAX_ATTEMPTS, ...)
        >>> config = LifecycleConfig.from_env()
    """

    retry: RetryPolicy = field(default_factory=RetryPolicy.default)
    polling: PollingPolicy = field(default_factory=PollingPolicy.default)
    ttl: CacheTtlPolicy = field(default_factory=CacheTtlPolicy.default)
    submit_timeout: float = SUBMIT_TIMEOUT_SECONDS
    poll_timeout: float = POLL_TIMEOUT_SECONDS

    @classmethod
    def default(cls) -> "LifecycleConfig":
        return cls()

    @classmethod
    def from_env(cls) -> "LifecycleConfig":
        """
        Build configuration from environment variables, defaults otherwise.

        Raises:
            ValueError: If a variable is not a number or a policy is invalid
        """
        return cls(
            retry=RetryPolicy(
                max_attempts=_env_int("SUBMIT_MAX_ATTEMPTS", SUBMIT_MAX_ATTEMPTS),
                base_delay=_env_float("SUBMIT_BASE_DELAY_SECONDS", SUBMIT_BASE_DELAY_SECONDS),
                max_delay=_env_float("SUBMIT_MAX_DELAY_SECONDS", SUBMIT_MAX_DELAY_SECONDS),
            ),
            polling=PollingPolicy(
                initial_interval=_env_int("POLL_INITIAL_INTERVAL_MS", int(POLL_INITIAL_INTERVAL_SECONDS * 1000)) / 1000,
                max_interval=_env_int("POLL_MAX_INTERVAL_MS", int(POLL_MAX_INTERVAL_SECONDS * 1000)) / 1000,
                max_task_age=_env_int("TASK_MAX_AGE_SECONDS", TASK_MAX_AGE_SECONDS),
            ),
            ttl=CacheTtlPolicy(
                running_status_ttl=_env_int("STATUS_TTL_RUNNING", STATUS_TTL_RUNNING_SECONDS),
                terminal_status_ttl=_env_int("STATUS_TTL_TERMINAL", STATUS_TTL_TERMINAL_SECONDS),
                config_ttl=_env_int("CONFIG_CACHE_TTL", CONFIG_CACHE_TTL_SECONDS),
                local_max_ttl=_env_int("LOCAL_CACHE_MAX_TTL", LOCAL_CACHE_MAX_TTL_SECONDS),
            ),
            submit_timeout=_env_float("SUBMIT_TIMEOUT_SECONDS", SUBMIT_TIMEOUT_SECONDS),
            poll_timeout=_env_float("POLL_TIMEOUT_SECONDS", POLL_TIMEOUT_SECONDS),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "retry_delays": self.retry.delays(),
            "max_attempts": self.retry.max_attempts,
            "poll_initial_interval": self.polling.initial_interval,
            "poll_max_interval": self.polling.max_interval,
            "max_task_age": self.polling.max_task_age,
            "submit_timeout": self.submit_timeout,
            "poll_timeout": self.poll_timeout,
        }

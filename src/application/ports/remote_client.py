"""
Remote Service Ports

Contracts for the outbound side of the lifecycle: submission (TaskDispatcher)
and the read/cancel endpoints used while polling (RunningHubClient).

Architecture Notes:
    - Protocol-based interfaces (structural typing)
    - Implemented in src/infrastructure/remote
    - Tests substitute MagicMock or httpx.MockTransport-backed clients
"""

from typing import Any, Callable, Optional, Protocol

from src.domain.effects.entities import EffectDefinition
from src.domain.effects.value_objects import ParameterBinding, ResultArtifact
from src.domain.tasks import Task


class RemoteTaskClientProtocol(Protocol):
    """Read and cancel calls against a running remote task."""

    def get_status(self, endpoint: Any, external_task_id: str) -> Any:
        """
        Query remote status.

        Returns:
            RemoteTaskStatus

        Raises:
            RemoteTransportError / RemoteResponseError: Treated as transient by pollers
        """
        ...

    def get_outputs(self, endpoint: Any, external_task_id: str) -> list[ResultArtifact]:
        """Fetch output artifacts with absolute URLs."""
        ...

    def cancel(self, endpoint: Any, external_task_id: str) -> bool:
        """Best-effort remote cancel; never raises."""
        ...


class TaskDispatcherProtocol(Protocol):
    """Submission of a bound effect."""

    def submit(
        self,
        effect: EffectDefinition,
        binding: ParameterBinding,
        region: Optional[str],
        on_state_change: Optional[Callable[[Task], Any]] = None,
        task: Optional[Task] = None,
    ) -> Task:
        """
        Submit one effect.

        Raises:
            UnsupportedRegionError, RemoteConfigurationError, TransientSubmissionError
        """
        ...

"""
RunningHub HTTP Client

Thin synchronous client for the remote node-graph AI processing service.

Responsibility:
    - POST JSON bodies to a region endpoint with a per-call deadline
    - Convert transport failures into RemoteTransportError (retry-eligible)
    - Convert malformed bodies into RemoteResponseError
    - Parse the {code, msg, data} envelope
    - Task status, outputs and best-effort cancel calls

Architecture Notes:
    - Infrastructure Layer (external dependency on httpx)
    - Never interprets status codes beyond "0 means the call worked" for the
      read endpoints; submission codes go to the ErrorClassifier
    - One httpx.Client (connection pool) per process, shared by all tasks

Remote Endpoints (all POST, JSON body carries apiKey):
    /task/openapi/ai-app/run   APP-mode submission
    /task/openapi/create       GRAPH-mode submission
    /task/openapi/status       {taskId} -> data: "QUEUED" | "RUNNING" | "SUCCESS" | "FAILED"
    /task/openapi/outputs      {taskId} -> data: [{fileUrl, fileType, nodeId?}, ...]
    /task/openapi/cancel       {taskId}

Examples:
    >>> client = RunningHubClient()
    >>> endpoint = RegionRouter.from_env().resolve("hongkong")
    >>> client.get_status(endpoint, "1904163390028185602")
    <RemoteTaskStatus.RUNNING: 'RUNNING'>
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Final, Optional

import httpx

from src.domain.effects.value_objects import ResultArtifact
from src.infrastructure.remote.region_router import RegionEndpoint

logger = logging.getLogger(__name__)

APP_RUN_PATH: Final[str] = "/task/openapi/ai-app/run"
GRAPH_CREATE_PATH: Final[str] = "/task/openapi/create"
STATUS_PATH: Final[str] = "/task/openapi/status"
OUTPUTS_PATH: Final[str] = "/task/openapi/outputs"
CANCEL_PATH: Final[str] = "/task/openapi/cancel"

READ_OK_CODE: Final[int] = 0


# ============================================================================
# EXCEPTIONS
# ============================================================================


class RemoteTransportError(Exception):
    """
    Network-level failure: timeout, connection refused, or HTTP 5xx.

    Always eligible for bounded retry.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class RemoteResponseError(Exception):
    """The remote answered, but not with a usable {code, msg, data} envelope."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        self.code = code
        super().__init__(message)


# ============================================================================
# RESPONSE MODELS
# ============================================================================


@dataclass(frozen=True)
class RemoteResponse:
    """Parsed {code, msg, data} envelope."""

    code: Optional[int]
    message: Optional[str]
    data: Any

    @property
    def external_task_id(self) -> Optional[str]:
        """Remote task id of a submission response, always as a string."""
        if isinstance(self.data, dict) and self.data.get("taskId") not in (None, ""):
            return str(self.data["taskId"])
        return None

    @property
    def prompt_tips(self) -> Optional[str]:
        """Validation notes attached to an accepted-with-warning submission."""
        if isinstance(self.data, dict) and self.data.get("promptTips"):
            tips = self.data["promptTips"]
            return tips if isinstance(tips, str) else str(tips)
        return None


class RemoteTaskStatus(str, Enum):
    """Remote task status vocabulary."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, value: Any) -> "RemoteTaskStatus":
        try:
            return cls(str(value).upper())
        except ValueError:
            return cls.UNKNOWN


def normalize_output_url(url: str, base_url: str) -> str:
    """
    Make a remote output URL absolute.

    Examples:
        >>> normalize_output_url("/files/a.png", "https://www.runninghub.ai")
        'https://www.runninghub.ai/files/a.png'
        >>> normalize_output_url("//cdn.example.com/a.png", "https://www.runninghub.ai")
        'https://cdn.example.com/a.png'
    """
    url = url.strip()
    if url.startswith(("http://", "https://")):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


# ============================================================================
# CLIENT
# ============================================================================


class RunningHubClient:
    """
    Synchronous JSON-over-HTTP client.

    Args:
        submit_timeout: Deadline in seconds for submission calls
        poll_timeout: Deadline in seconds for status/outputs/cancel calls
        http_client: Pre-built httpx.Client (tests pass one with MockTransport)
    """

    def __init__(
        self,
        submit_timeout: float = 45.0,
        poll_timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.submit_timeout = submit_timeout
        self.poll_timeout = poll_timeout
        self._client = http_client or httpx.Client(
            headers={"Content-Type": "application/json"},
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=50),
        )

    def close(self) -> None:
        self._client.close()

    def _post(
        self, endpoint: RegionEndpoint, path: str, body: dict[str, Any], timeout: float
    ) -> RemoteResponse:
        url = f"{endpoint.base_url}{path}"
        try:
            response = self._client.post(url, json=body, timeout=timeout)
        except httpx.TimeoutException as e:
            raise RemoteTransportError(f"Timeout after {timeout}s calling {path}: {e}") from e
        except httpx.TransportError as e:
            raise RemoteTransportError(f"Transport error calling {path}: {e}") from e

        if response.status_code >= 500:
            raise RemoteTransportError(
                f"Remote server error {response.status_code} on {path}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise RemoteResponseError(f"Remote rejected {path} with HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteResponseError(f"Non-JSON response from {path}") from e

        if not isinstance(payload, dict):
            raise RemoteResponseError(f"Unexpected response shape from {path}: {type(payload).__name__}")

        code = payload.get("code")
        try:
            code = int(code) if code is not None else None
        except (TypeError, ValueError):
            code = None

        return RemoteResponse(code=code, message=payload.get("msg"), data=payload.get("data"))

    # ========================================================================
    # SUBMISSION
    # ========================================================================

    def submit(self, endpoint: RegionEndpoint, path: str, body: dict[str, Any]) -> RemoteResponse:
        """
        Send one submission request.

        The caller builds the body (apiKey included) and classifies the code.

        Raises:
            RemoteTransportError: Timeout, connection failure or HTTP 5xx
            RemoteResponseError: Unusable response body
        """
        logger.debug(f"Submitting to {endpoint.region}{path}")
        return self._post(endpoint, path, body, self.submit_timeout)

    # ========================================================================
    # READ ENDPOINTS
    # ========================================================================

    def _task_body(self, endpoint: RegionEndpoint, external_task_id: str) -> dict[str, Any]:
        return {"apiKey": endpoint.api_key, "taskId": str(external_task_id)}

    def get_status(self, endpoint: RegionEndpoint, external_task_id: str) -> RemoteTaskStatus:
        """
        Query remote task status.

        Raises:
            RemoteTransportError: Retry-eligible network failure
            RemoteResponseError: Non-zero code or malformed body
        """
        response = self._post(
            endpoint, STATUS_PATH, self._task_body(endpoint, external_task_id), self.poll_timeout
        )
        if response.code != READ_OK_CODE:
            raise RemoteResponseError(
                f"Status query failed for {external_task_id}: {response.message}", code=response.code
            )
        return RemoteTaskStatus.parse(response.data)

    def get_outputs(self, endpoint: RegionEndpoint, external_task_id: str) -> list[ResultArtifact]:
        """
        Fetch output references of a finished task.

        Items may be objects ({fileUrl, fileType, nodeId}) or bare URL
        strings; relative URLs are resolved against the region base URL.

        Raises:
            RemoteTransportError: Retry-eligible network failure
            RemoteResponseError: Non-zero code or malformed body
        """
        response = self._post(
            endpoint, OUTPUTS_PATH, self._task_body(endpoint, external_task_id), self.poll_timeout
        )
        if response.code != READ_OK_CODE:
            raise RemoteResponseError(
                f"Outputs query failed for {external_task_id}: {response.message}", code=response.code
            )

        items = response.data or []
        if not isinstance(items, list):
            raise RemoteResponseError(f"Outputs for {external_task_id} are not a list")

        artifacts: list[ResultArtifact] = []
        for item in items:
            if isinstance(item, str) and item.strip():
                artifacts.append(ResultArtifact(url=normalize_output_url(item, endpoint.base_url)))
            elif isinstance(item, dict) and item.get("fileUrl"):
                node_id = item.get("nodeId")
                artifacts.append(
                    ResultArtifact(
                        url=normalize_output_url(str(item["fileUrl"]), endpoint.base_url),
                        file_type=item.get("fileType"),
                        node_id=str(node_id) if node_id is not None else None,
                    )
                )
            else:
                logger.warning(f"Skipping unrecognised output item for {external_task_id}: {item!r}")
        return artifacts

    def cancel(self, endpoint: RegionEndpoint, external_task_id: str) -> bool:
        """
        Ask the remote to stop a task. Best effort.

        Returns:
            True if the remote acknowledged, False otherwise (never raises)
        """
        try:
            response = self._post(
                endpoint, CANCEL_PATH, self._task_body(endpoint, external_task_id), self.poll_timeout
            )
        except (RemoteTransportError, RemoteResponseError) as e:
            logger.warning(f"Remote cancel failed for {external_task_id}: {e}")
            return False

        if response.code != READ_OK_CODE:
            logger.warning(
                f"Remote cancel not acknowledged for {external_task_id}: "
                f"code={response.code}, msg={response.message}"
            )
            return False
        return True

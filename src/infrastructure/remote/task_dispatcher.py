"""
Task Dispatcher

Serializes a validated submission per the remote contract, performs the call
with bounded retry, and returns the resulting Task.

Responsibility:
    - Build APP / GRAPH payloads with the identifier always as a string
    - Retry transport failures and queue-full answers (exponential backoff)
    - Route every application-level answer through the ErrorClassifier
    - Drive the Task through PENDING -> SUBMITTING -> RUNNING | FAILED and
      report each state to the caller's on_state_change callback

Architecture Notes:
    - Infrastructure Layer (uses RunningHubClient)
    - The only component in the system that retries automatically
    - ConfigurationError and exhausted retries are raised synchronously;
      UNKNOWN outcomes end the task as FAILED and are observed via status

Retry Rules:
    attempts       RetryPolicy.max_attempts (default 3)
    delays         0.5s, 1s, ... doubling, capped at 8s, strictly increasing
    retried        RemoteTransportError (timeout, connection, 5xx), TRANSIENT code
    not retried    CONFIGURATION_ERROR, UNKNOWN, malformed body

Examples:
    >>> dispatcher = TaskDispatcher(client, RegionRouter.from_env(), ErrorClassifier.from_env())
    >>> task = dispatcher.submit(effect, binding, "hongkong", on_state_change=manager.register)
    >>> task.state
    <TaskState.RUNNING: 'RUNNING'>
"""

import logging
import time
from typing import Any, Callable, Optional

from src.domain.effects.entities import EffectDefinition, SubmissionMode
from src.domain.effects.services import ErrorClassifier, SubmissionOutcome
from src.domain.effects.value_objects import ParameterBinding
from src.domain.shared.exceptions import (
    RemoteConfigurationError,
    TransientSubmissionError,
)
from src.domain.tasks import ErrorKind, PollingPolicy, RetryPolicy, Task
from src.infrastructure.remote.region_router import RegionEndpoint, RegionRouter
from src.infrastructure.remote.runninghub_client import (
    APP_RUN_PATH,
    GRAPH_CREATE_PATH,
    RemoteResponseError,
    RemoteTransportError,
    RunningHubClient,
)

logger = logging.getLogger(__name__)

StateCallback = Callable[[Task], Any]


def build_payload(
    effect: EffectDefinition, binding: ParameterBinding, endpoint: RegionEndpoint
) -> tuple[str, dict[str, Any]]:
    """
    Build (path, body) for a submission.

    Returns:
        Endpoint path and JSON body; webappId / workflowId are always str

    Examples:
        >>> path, body = build_payload(bg_replace, binding, endpoint)
        >>> path
        '/task/openapi/create'
        >>> type(body["workflowId"])
        <class 'str'>
    """
    node_info_list = binding.to_node_info_list()

    if effect.submission_mode is SubmissionMode.APP:
        return APP_RUN_PATH, {
            "webappId": str(effect.external_workflow_id),
            "apiKey": endpoint.api_key,
            "nodeInfoList": node_info_list,
        }

    body: dict[str, Any] = {
        "apiKey": endpoint.api_key,
        "workflowId": str(effect.external_workflow_id),
        "nodeInfoList": node_info_list,
        "addMetadata": True,
    }
    if effect.instance_type:
        body["instanceType"] = effect.instance_type
    workflow_json = effect.workflow_overrides_json()
    if workflow_json is not None:
        body["workflow"] = workflow_json
    return GRAPH_CREATE_PATH, body


class TaskDispatcher:
    """
    Submits bound effects to the remote service.

    Args:
        client: RunningHubClient (shared connection pool)
        region_router: Region -> endpoint lookup
        classifier: Remote code -> SubmissionOutcome
        retry_policy: Attempt count and backoff delays
        polling_policy: Supplies the first poll interval of accepted tasks
        sleep: Blocking sleep, injectable for tests
    """

    def __init__(
        self,
        client: RunningHubClient,
        region_router: RegionRouter,
        classifier: Optional[ErrorClassifier] = None,
        retry_policy: Optional[RetryPolicy] = None,
        polling_policy: Optional[PollingPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.region_router = region_router
        self.classifier = classifier or ErrorClassifier()
        self.retry_policy = retry_policy or RetryPolicy.default()
        self.polling_policy = polling_policy or PollingPolicy.default()
        self._sleep = sleep

    def submit(
        self,
        effect: EffectDefinition,
        binding: ParameterBinding,
        region: Optional[str],
        on_state_change: Optional[StateCallback] = None,
        task: Optional[Task] = None,
    ) -> Task:
        """
        Submit one effect and return its Task.

        Args:
            effect: Catalog entry being run
            binding: Output of ParameterBinder.bind()
            region: Region code (None = default region)
            on_state_change: Called with the task after every state change
            task: Pre-created PENDING task (a new one is created otherwise)

        Returns:
            Task in RUNNING (accepted) or FAILED (unknown outcome) state

        Raises:
            UnsupportedRegionError: Before any task is created
            RemoteConfigurationError: Remote reported node info mismatch
            TransientSubmissionError: Every attempt failed transiently
        """
        endpoint = self.region_router.resolve(region)
        task = task or Task(catalog_id=effect.catalog_id, region=endpoint.region)

        def notify() -> None:
            if on_state_change is not None:
                on_state_change(task)

        task.mark_submitting()
        notify()

        path, body = build_payload(effect, binding, endpoint)
        max_attempts = self.retry_policy.max_attempts
        last_reason = "no attempt made"
        last_code: Optional[int] = None

        for attempt in range(1, max_attempts + 1):
            task.attempt = attempt
            try:
                response = self.client.submit(endpoint, path, body)

            except RemoteTransportError as e:
                last_reason = str(e)
                last_code = None
                logger.warning(
                    f"Submission of task {task.task_id} ({effect.catalog_id}) failed "
                    f"(attempt {attempt}/{max_attempts}): {e}"
                )

            except RemoteResponseError as e:
                logger.error(f"Unusable submission response for task {task.task_id}: {e}")
                task.mark_failed(ErrorKind.UNKNOWN, message=str(e), diagnostic_code=e.code)
                notify()
                return task

            else:
                classified = self.classifier.classify(response.code, response.message)
                outcome = classified.outcome

                if outcome is SubmissionOutcome.TRANSIENT:
                    last_reason = response.message or "remote queue full"
                    last_code = classified.code
                    logger.warning(
                        f"Remote busy for task {task.task_id} (code={classified.code}, "
                        f"attempt {attempt}/{max_attempts})"
                    )

                elif outcome is SubmissionOutcome.CONFIGURATION_ERROR:
                    message = (
                        f"Remote rejected node bindings of effect '{effect.catalog_id}' "
                        f"(code={classified.code}): {response.message}"
                    )
                    logger.error(message)
                    task.mark_failed(
                        ErrorKind.CONFIGURATION, message=message, diagnostic_code=classified.code
                    )
                    notify()
                    raise RemoteConfigurationError(
                        message,
                        catalog_id=effect.catalog_id,
                        task_id=task.task_id,
                        diagnostic_code=classified.code,
                    )

                elif outcome.is_accepted:
                    return self._accept(task, response, outcome, classified.code, notify)

                else:
                    logger.error(
                        f"Unknown remote code for task {task.task_id}: "
                        f"code={classified.code}, msg={response.message}"
                    )
                    task.mark_failed(
                        ErrorKind.UNKNOWN,
                        message=response.message or "unrecognised remote response",
                        diagnostic_code=classified.code,
                    )
                    notify()
                    return task

            if attempt < max_attempts:
                delay = self.retry_policy.delay_for(attempt)
                logger.info(f"Retrying task {task.task_id} in {delay}s")
                self._sleep(delay)

        message = f"Submission failed after {max_attempts} attempts: {last_reason}"
        task.mark_failed(ErrorKind.TRANSIENT, message=message, diagnostic_code=last_code)
        notify()
        raise TransientSubmissionError(
            message, attempts=max_attempts, task_id=task.task_id, diagnostic_code=last_code
        )

    def _accept(
        self,
        task: Task,
        response: Any,
        outcome: SubmissionOutcome,
        code: Optional[int],
        notify: Callable[[], None],
    ) -> Task:
        external_task_id = response.external_task_id
        if external_task_id is None:
            logger.error(f"Remote accepted task {task.task_id} without a taskId")
            task.mark_failed(
                ErrorKind.UNKNOWN, message="remote accepted without task id", diagnostic_code=code
            )
            notify()
            return task

        warning = None
        if outcome is SubmissionOutcome.ACCEPTED_WITH_WARNING:
            warning = response.prompt_tips or response.message or "inputs failed remote validation"
            task.diagnostic_code = code
            logger.warning(f"Task {task.task_id} accepted with warning: {warning}")

        task.mark_running(
            external_task_id,
            warning=warning,
            poll_interval_ms=int(self.polling_policy.initial_interval * 1000),
        )
        logger.info(
            f"Task {task.task_id} running as remote {external_task_id} "
            f"(attempt {task.attempt})"
        )
        notify()
        return task

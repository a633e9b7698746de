"""HTTP invoker for remote workflow tasks."""

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from models.payload import WorkflowPayload
from models.results import TaskErrorKind, TaskFailure, TaskResult, TaskSuccess

logger = logging.getLogger(__name__)


class TaskInvoker(Protocol):
    """Performs one remote task call per invocation."""

    def invoke(
        self, task_name: str, payload: WorkflowPayload, timeout: float
    ) -> TaskResult: ...


class HttpTaskInvoker:
    """Invokes tasks via POST {base_url}/tasks/{task_name}.

    Exactly one request is made per ``invoke``; retries are left to the caller.
    """

    def __init__(self, base_url: str, default_timeout: float = 30.0):
        if not base_url or not base_url.strip():
            raise ValueError("base_url is required")
        if default_timeout <= 0:
            raise ValueError("timeout must be positive")
        self._base_url = base_url.rstrip("/")
        self._default_timeout = default_timeout

    def task_url(self, task_name: str) -> str:
        return f"{self._base_url}/tasks/{task_name}"

    def invoke(
        self,
        task_name: str,
        payload: WorkflowPayload,
        timeout: float | None = None,
    ) -> TaskResult:
        """Call the task and map the outcome to a TaskResult."""
        if not task_name or not task_name.strip():
            raise ValueError("task_name is required")
        if payload is None:
            raise ValueError("payload is required")
        if timeout is None:
            timeout = self._default_timeout
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        url = self.task_url(task_name)
        logger.debug(f"Invoking task {task_name} at {url}")

        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(url, json=payload.to_message())
        except httpx.ConnectError as e:
            return TaskFailure(
                kind=TaskErrorKind.UNREACHABLE, message=f"Connection failed: {e}"
            )
        except httpx.TimeoutException as e:
            return TaskFailure(
                kind=TaskErrorKind.TIMEOUT, message=f"Request timed out: {e}"
            )
        except httpx.RequestError as e:
            return TaskFailure(
                kind=TaskErrorKind.UNREACHABLE, message=f"Request failed: {e}"
            )

        if response.status_code >= 400:
            return TaskFailure(
                kind=TaskErrorKind.REJECTED,
                message=f"HTTP {response.status_code}: {response.text}",
            )

        try:
            data = response.json()
        except ValueError as e:
            return TaskFailure(
                kind=TaskErrorKind.REJECTED, message=f"Invalid response: {e}"
            )

        return self._parse_result(data)

    def _parse_result(self, data: Any) -> TaskResult:
        """Interpret a completed response body."""
        if isinstance(data, dict) and isinstance(data.get("Payload"), dict):
            data = data["Payload"]

        if not isinstance(data, dict):
            return TaskFailure(
                kind=TaskErrorKind.REJECTED,
                message="Invalid response: expected a JSON object",
            )

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or str(error.get("kind", "error"))
            else:
                message = str(error)
            return TaskFailure(kind=TaskErrorKind.REJECTED, message=message)

        try:
            return TaskSuccess(payload=WorkflowPayload.model_validate(data))
        except ValidationError as e:
            return TaskFailure(
                kind=TaskErrorKind.REJECTED, message=f"Invalid response: {e}"
            )

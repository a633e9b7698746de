"""Workflow engine running the detect -> delete -> notify chain."""

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from models.payload import ErrorInfo, WorkflowPayload
from models.results import RunErrorKind, TaskErrorKind, TaskFailure
from models.state import RunState, RunStep
from services.config_loader import WorkflowDefinition
from services.log_service import run_context
from services.notifier import Notifier, NotifyError
from services.run_store import RedisRunStore
from services.task_invoker import TaskInvoker

logger = logging.getLogger(__name__)

SUCCESS_SUBJECT = "Success"
ERROR_SUBJECT = "Error"


class TaskFailedError(Exception):
    """A task in the main chain failed; routes the run to the error branch."""

    def __init__(self, task_name: str, kind: TaskErrorKind, message: str):
        self.task_name = task_name
        self.kind = kind
        self.message = message
        super().__init__(f"Task {task_name} failed ({kind.value}): {message}")


class DeadlineExceededError(Exception):
    """The run reached its deadline before a terminal step."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run {run_id} exceeded its deadline")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowEngine:
    """Runs one workflow per call; safe to share between concurrent runs."""

    def __init__(
        self,
        invoker: TaskInvoker,
        notifier: Notifier,
        definition: WorkflowDefinition,
        run_store: RedisRunStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        if invoker is None:
            raise ValueError("invoker is required")
        if notifier is None:
            raise ValueError("notifier is required")
        if definition is None:
            raise ValueError("definition is required")

        self._invoker = invoker
        self._notifier = notifier
        self._definition = definition
        self._run_store = run_store
        self._clock = clock or _utc_now

    @property
    def definition(self) -> WorkflowDefinition:
        return self._definition

    def run(self, payload: WorkflowPayload, run_id: str | None = None) -> RunState:
        """Execute a run to a terminal step and return its final state."""
        if payload is None:
            raise ValueError("payload is required")
        if not run_id:
            run_id = f"run-{uuid.uuid4().hex[:12]}"

        with run_context(run_id):
            state = self._start(run_id, payload)
            try:
                result = self._run_main_branch(state)
            except TaskFailedError as e:
                return self._run_error_branch(state, e)
            except DeadlineExceededError:
                return self._expire(state)
            return self._run_success_branch(state, result)

    def reap_stalled_runs(self, grace_seconds: float = 60.0) -> list[RunState]:
        """Fail and archive active runs left behind past their deadline."""
        if self._run_store is None:
            return []

        cutoff = self._clock() - timedelta(seconds=grace_seconds)
        reaped = []
        for state in self._run_store.stalled_runs(cutoff):
            with run_context(state.run_id):
                reaped.append(self._expire(state))
        return reaped

    def _start(self, run_id: str, payload: WorkflowPayload) -> RunState:
        now = self._clock()
        state = RunState(
            run_id=run_id,
            payload=payload,
            current_step=RunStep.DETECT,
            started_at=now,
            deadline=now + timedelta(seconds=self._definition.run_timeout_seconds),
            updated_at=now,
            history=[RunStep.DETECT],
        )
        if self._run_store is not None:
            self._run_store.create_run(state)
        logger.info(
            f"Run started for {payload.source_location}/{payload.object_key} "
            f"(id={payload.id})"
        )
        return state

    def _run_main_branch(self, state: RunState) -> WorkflowPayload:
        """Detect then delete. Any failure raises TaskFailedError."""
        timeout = self._budget(state)
        detected = self._invoke(
            state, self._definition.detect_task, state.payload, timeout
        )

        timeout = self._enter(state, RunStep.DELETE)
        return self._invoke(state, self._definition.delete_task, detected, timeout)

    def _run_success_branch(
        self, state: RunState, payload: WorkflowPayload
    ) -> RunState:
        try:
            timeout = self._enter(state, RunStep.NOTIFY_SUCCESS)
        except DeadlineExceededError:
            return self._expire(state)

        self._publish(
            self._definition.success_channel, SUCCESS_SUBJECT, payload, timeout
        )
        return self._finish(state, RunStep.DONE)

    def _run_error_branch(self, state: RunState, failure: TaskFailedError) -> RunState:
        logger.warning(str(failure))
        state.error = ErrorInfo(kind=failure.kind, message=failure.message)
        try:
            timeout = self._enter(state, RunStep.NOTIFY_ERROR)
        except DeadlineExceededError:
            return self._expire(state)

        body = state.payload.with_error(failure.kind, failure.message)
        self._publish(self._definition.error_channel, ERROR_SUBJECT, body, timeout)
        return self._finish(state, RunStep.FAILED)

    def _expire(self, state: RunState) -> RunState:
        state.error = ErrorInfo(
            kind=RunErrorKind.DEADLINE_EXCEEDED,
            message=(
                f"Deadline {state.deadline.isoformat()} passed "
                f"in step {state.current_step.value}"
            ),
        )
        logger.error(f"Run exceeded its deadline in step {state.current_step.value}")
        return self._finish(state, RunStep.FAILED)

    def _invoke(
        self,
        state: RunState,
        task_name: str,
        payload: WorkflowPayload,
        timeout: float,
    ) -> WorkflowPayload:
        try:
            result = self._invoker.invoke(task_name, payload, timeout)
        except Exception as e:
            logger.exception(f"Task {task_name} raised")
            result = TaskFailure(kind=TaskErrorKind.REJECTED, message=str(e))

        if not result.ok:
            # A failure observed after the deadline is the deadline's doing.
            if self._remaining(state) <= 0:
                raise DeadlineExceededError(state.run_id)
            raise TaskFailedError(task_name, result.kind, result.message)

        logger.info(f"Task {task_name} succeeded")
        return result.payload

    def _publish(
        self,
        channel: str,
        subject: str,
        body: WorkflowPayload | Mapping[str, Any],
        timeout: float,
    ) -> None:
        """Best-effort publish; failures are logged and never change the outcome."""
        try:
            self._notifier.publish(channel, subject, body, timeout=timeout)
        except NotifyError as e:
            logger.warning(f"Notification '{subject}' not delivered: {e}")
        except Exception:
            logger.exception(f"Notification '{subject}' raised")

    def _remaining(self, state: RunState) -> float:
        return (state.deadline - self._clock()).total_seconds()

    def _budget(self, state: RunState) -> float:
        """Time allowed for the next external call, bounded by the deadline."""
        remaining = self._remaining(state)
        if remaining <= 0:
            raise DeadlineExceededError(state.run_id)
        return min(self._definition.task_timeout_seconds, remaining)

    def _enter(self, state: RunState, step: RunStep) -> float:
        timeout = self._budget(state)
        self._advance(state, step)
        return timeout

    def _advance(self, state: RunState, step: RunStep) -> None:
        state.current_step = step
        state.history.append(step)
        state.updated_at = self._clock()
        if self._run_store is not None:
            self._run_store.save_run(state)

    def _finish(self, state: RunState, step: RunStep) -> RunState:
        state.current_step = step
        state.history.append(step)
        state.updated_at = self._clock()
        if self._run_store is not None:
            self._run_store.archive_run(state)
        logger.info(f"Run finished: {step.value}")
        return state

"""Run state model for workflow execution tracking."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from models.payload import ErrorInfo, WorkflowPayload


class RunStep(str, Enum):
    """Step a run is currently in."""

    DETECT = "Detect"
    DELETE = "Delete"
    NOTIFY_SUCCESS = "NotifySuccess"
    NOTIFY_ERROR = "NotifyError"
    DONE = "Done"
    FAILED = "Failed"


TERMINAL_STEPS = frozenset({RunStep.DONE, RunStep.FAILED})


class RunState(BaseModel):
    """State of one workflow run."""

    run_id: str
    payload: WorkflowPayload
    current_step: RunStep
    started_at: datetime
    deadline: datetime
    updated_at: datetime
    error: ErrorInfo | None = None
    history: list[RunStep] = []

    @property
    def is_terminal(self) -> bool:
        return self.current_step in TERMINAL_STEPS

    def is_expired(self, now: datetime) -> bool:
        """True when the deadline passed before the run reached a terminal step."""
        return not self.is_terminal and now >= self.deadline

"""Models package."""

from models.payload import ErrorInfo, WorkflowPayload
from models.results import (
    ConfigErrorKind,
    NotifyErrorKind,
    RunErrorKind,
    TaskErrorKind,
    TaskFailure,
    TaskResult,
    TaskSuccess,
)
from models.state import RunState, RunStep

__all__ = [
    "ConfigErrorKind",
    "ErrorInfo",
    "NotifyErrorKind",
    "RunErrorKind",
    "RunState",
    "RunStep",
    "TaskErrorKind",
    "TaskFailure",
    "TaskResult",
    "TaskSuccess",
    "WorkflowPayload",
]

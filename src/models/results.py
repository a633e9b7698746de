"""Error taxonomy and task invocation results."""

from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict

from models.payload import WorkflowPayload


class TaskErrorKind(str, Enum):
    """Why a task invocation failed."""

    UNREACHABLE = "Unreachable"
    REJECTED = "Rejected"
    TIMEOUT = "Timeout"


class NotifyErrorKind(str, Enum):
    """Why a notification publish failed."""

    DELIVERY_FAILED = "DeliveryFailed"


class ConfigErrorKind(str, Enum):
    """Why configuration loading failed."""

    INVALID_RECIPIENT = "InvalidRecipient"
    MISSING_OPTION = "MissingOption"


class RunErrorKind(str, Enum):
    """Run-level failures not caused by a task."""

    DEADLINE_EXCEEDED = "DeadlineExceeded"


class TaskSuccess(BaseModel):
    """Task completed; carries the (possibly enriched) payload."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[True] = True
    payload: WorkflowPayload


class TaskFailure(BaseModel):
    """Task failed with a typed reason."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    kind: TaskErrorKind
    message: str


TaskResult = Union[TaskSuccess, TaskFailure]

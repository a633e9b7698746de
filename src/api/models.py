"""Request and response models for REST API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from models.state import RunState


class TriggerResponse(BaseModel):
    """Response to a submitted trigger event."""

    model_config = ConfigDict(frozen=True)

    status: Literal["queued", "ignored"]
    run_id: str | None = None
    payload: dict[str, Any] | None = None


class RunStatusResponse(BaseModel):
    """Response for run status."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    current_step: str
    started_at: datetime
    deadline: datetime
    updated_at: datetime
    payload: dict[str, Any]
    history: list[str]
    error: dict[str, str] | None = None

    @classmethod
    def from_state(cls, state: RunState) -> "RunStatusResponse":
        return cls(
            run_id=state.run_id,
            current_step=state.current_step.value,
            started_at=state.started_at,
            deadline=state.deadline,
            updated_at=state.updated_at,
            payload=state.payload.to_message(),
            history=[step.value for step in state.history],
            error=state.error.model_dump() if state.error else None,
        )


class StalledRunsResponse(BaseModel):
    """Runs past their deadline that never reached a terminal step."""

    model_config = ConfigDict(frozen=True)

    run_ids: list[str]


class ErrorResponse(BaseModel):
    """Error response."""

    model_config = ConfigDict(frozen=True)

    detail: str


class HealthResponse(BaseModel):
    """Health check response."""

    model_config = ConfigDict(frozen=True)

    status: str

# API package

from api.app import WorkflowAPI
from api.models import (
    ErrorResponse,
    HealthResponse,
    RunStatusResponse,
    StalledRunsResponse,
    TriggerResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "RunStatusResponse",
    "StalledRunsResponse",
    "TriggerResponse",
    "WorkflowAPI",
]

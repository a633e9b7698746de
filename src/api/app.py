"""FastAPI REST API for submitting triggers and inspecting runs."""

import logging
import uuid
from typing import Any

from fastapi import FastAPI, HTTPException, Response

from api.models import (
    ErrorResponse,
    HealthResponse,
    RunStatusResponse,
    StalledRunsResponse,
    TriggerResponse,
)
from services.run_store import RedisRunStore, RunNotFoundError
from services.trigger_adapter import TriggerAdapter, TriggerEventError
from services.trigger_queue import RedisTriggerQueue

logger = logging.getLogger(__name__)


class WorkflowAPI:
    """REST API in front of the trigger queue and run store."""

    def __init__(
        self,
        adapter: TriggerAdapter,
        trigger_queue: RedisTriggerQueue,
        run_store: RedisRunStore,
    ):
        """Initialize API with dependencies."""
        if adapter is None:
            raise ValueError("adapter is required")
        if trigger_queue is None:
            raise ValueError("trigger_queue is required")
        if run_store is None:
            raise ValueError("run_store is required")

        self._adapter = adapter
        self._trigger_queue = trigger_queue
        self._run_store = run_store

    def create_app(self) -> FastAPI:
        """Create FastAPI application."""
        app = FastAPI(
            title="Sentiment Workflow API",
            description="Triggers and run status for the sentiment workflow",
            version="1.0.0",
        )

        @app.post(
            "/triggers",
            response_model=TriggerResponse,
            status_code=202,
            responses={400: {"model": ErrorResponse}},
        )
        def submit_trigger(
            event: dict[str, Any], response: Response
        ) -> TriggerResponse:
            """Queue a run for an object-created event."""
            try:
                payload = self._adapter.handle(event)
            except TriggerEventError as e:
                raise HTTPException(status_code=400, detail=str(e))

            if payload is None:
                response.status_code = 200
                return TriggerResponse(status="ignored")

            run_id = f"run-{uuid.uuid4().hex[:12]}"
            self._trigger_queue.enqueue(run_id, payload)
            logger.info(f"Queued {run_id} for {payload.object_key}")

            return TriggerResponse(
                status="queued", run_id=run_id, payload=payload.to_message()
            )

        @app.get("/runs/stalled", response_model=StalledRunsResponse)
        def get_stalled_runs() -> StalledRunsResponse:
            """List runs past their deadline that are still active."""
            runs = self._run_store.stalled_runs()
            return StalledRunsResponse(run_ids=[run.run_id for run in runs])

        @app.get(
            "/runs/{run_id}",
            response_model=RunStatusResponse,
            responses={404: {"model": ErrorResponse}},
        )
        def get_run_status(run_id: str) -> RunStatusResponse:
            """Get run status."""
            try:
                state = self._run_store.get_run(run_id)
            except RunNotFoundError:
                raise HTTPException(status_code=404, detail="Run not found")

            return RunStatusResponse.from_state(state)

        @app.get("/health", response_model=HealthResponse)
        def health_check() -> HealthResponse:
            """Health check endpoint."""
            return HealthResponse(status="ok")

        return app

"""Redis-based store for workflow run state."""

from datetime import datetime, timezone

from redis import Redis

from models.state import RunState


class RunNotFoundError(Exception):
    """Raised when run is not found."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


class RedisRunStore:
    """Keeps active runs and archives them once they are terminal."""

    def __init__(self, redis_client: Redis, archive_ttl: int | None = 7 * 86400):
        if redis_client is None:
            raise ValueError("redis_client is required")
        if archive_ttl is not None and archive_ttl <= 0:
            raise ValueError("archive_ttl must be positive")
        self._redis = redis_client
        self._archive_ttl = archive_ttl

    def _run_key(self, run_id: str) -> str:
        return f"run:{run_id}"

    def _archive_key(self, run_id: str) -> str:
        return f"run:archive:{run_id}"

    def _active_key(self) -> str:
        return "runs:active"

    def _decode(self, value: bytes | str) -> str:
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def create_run(self, state: RunState) -> RunState:
        """Store a newly started run."""
        if state is None:
            raise ValueError("state is required")

        key = self._run_key(state.run_id)
        if self._redis.exists(key) or self._redis.exists(
            self._archive_key(state.run_id)
        ):
            raise ValueError(f"Run already exists: {state.run_id}")

        self._redis.set(key, state.model_dump_json())
        self._redis.sadd(self._active_key(), state.run_id)
        return state

    def save_run(self, state: RunState) -> RunState:
        """Overwrite the active state of a run."""
        if state is None:
            raise ValueError("state is required")

        key = self._run_key(state.run_id)
        if not self._redis.exists(key):
            raise RunNotFoundError(state.run_id)

        self._redis.set(key, state.model_dump_json())
        return state

    def archive_run(self, state: RunState) -> RunState:
        """Move a run from the active set to the archive."""
        if state is None:
            raise ValueError("state is required")

        pipe = self._redis.pipeline()
        if self._archive_ttl is None:
            pipe.set(self._archive_key(state.run_id), state.model_dump_json())
        else:
            pipe.set(
                self._archive_key(state.run_id),
                state.model_dump_json(),
                ex=self._archive_ttl,
            )
        pipe.delete(self._run_key(state.run_id))
        pipe.srem(self._active_key(), state.run_id)
        pipe.execute()
        return state

    def get_run(self, run_id: str) -> RunState:
        """Get run state by ID, active or archived."""
        if not run_id:
            raise ValueError("run_id is required")

        data = self._redis.get(self._run_key(run_id))
        if data is None:
            data = self._redis.get(self._archive_key(run_id))
        if data is None:
            raise RunNotFoundError(run_id)

        return RunState.model_validate_json(data)

    def active_runs(self) -> list[RunState]:
        """All runs not yet archived, oldest first."""
        runs = []
        for run_id in self._redis.smembers(self._active_key()):
            data = self._redis.get(self._run_key(self._decode(run_id)))
            if data is not None:
                runs.append(RunState.model_validate_json(data))
        return sorted(runs, key=lambda r: r.started_at)

    def stalled_runs(self, now: datetime | None = None) -> list[RunState]:
        """Active runs whose deadline has passed."""
        if now is None:
            now = datetime.now(timezone.utc)
        return [run for run in self.active_runs() if run.is_expired(now)]

"""Redis-based queue handing accepted triggers to workers."""

import json

from redis import Redis

from models.payload import WorkflowPayload


class RedisTriggerQueue:
    """BRPOP-based FIFO of (run_id, payload) entries."""

    def __init__(self, redis_client: Redis, queue_key: str = "queue:triggers"):
        if redis_client is None:
            raise ValueError("redis_client is required")
        if not queue_key:
            raise ValueError("queue_key is required")
        self._redis = redis_client
        self._queue_key = queue_key

    def enqueue(self, run_id: str, payload: WorkflowPayload) -> None:
        """Add a run request to the queue."""
        if not run_id:
            raise ValueError("run_id is required")
        if payload is None:
            raise ValueError("payload is required")

        entry = json.dumps({"run_id": run_id, "payload": payload.to_message()})
        self._redis.lpush(self._queue_key, entry)

    def dequeue(self, timeout: int = 0) -> tuple[str, WorkflowPayload] | None:
        """Remove and return the next run request. Blocks up to timeout seconds."""
        if timeout < 0:
            raise ValueError("timeout must be non-negative")

        result = self._redis.brpop(self._queue_key, timeout=timeout)
        if result is None:
            return None

        _, entry = result
        if isinstance(entry, bytes):
            entry = entry.decode("utf-8")
        data = json.loads(entry)
        return data["run_id"], WorkflowPayload.model_validate(data["payload"])

    def queue_length(self) -> int:
        """Get number of queued run requests."""
        return self._redis.llen(self._queue_key)

    def clear(self) -> None:
        """Remove all queued run requests."""
        self._redis.delete(self._queue_key)

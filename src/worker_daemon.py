"""Worker daemon that runs queued workflow triggers."""

import logging
import os
import signal
import sys
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor

import redis

from models.payload import WorkflowPayload
from services.config_loader import ConfigError, Settings, load_settings
from services.log_service import configure_logging
from services.notifier import Notifier, RedisNotifier, WebhookNotifier
from services.run_store import RedisRunStore
from services.task_invoker import HttpTaskInvoker
from services.trigger_queue import RedisTriggerQueue
from services.workflow_engine import WorkflowEngine

logger = logging.getLogger("worker_daemon")


def get_redis_client(
    redis_url: str, socket_timeout: float | None = None
) -> redis.Redis:
    """Create Redis client; socket_timeout bounds every command on it."""
    return redis.Redis.from_url(
        redis_url, decode_responses=True, socket_timeout=socket_timeout
    )


def create_notifier(settings: Settings, redis_client: redis.Redis) -> Notifier:
    """Build the configured notifier backend."""
    recipients = settings.recipients_by_channel()
    if settings.notifier_backend == "webhook":
        if not settings.notification_webhook_url:
            raise ValueError("notificationWebhookUrl is required for webhook backend")
        urls = {settings.notification_channel_name: settings.notification_webhook_url}
        return WebhookNotifier(urls, recipients)
    return RedisNotifier(redis_client, recipients)


def create_engine(settings: Settings, redis_client: redis.Redis) -> WorkflowEngine:
    """Wire invoker, notifier and run store into an engine."""
    invoker = HttpTaskInvoker(
        settings.task_base_url, default_timeout=settings.task_timeout_seconds
    )
    return WorkflowEngine(
        invoker,
        create_notifier(settings, redis_client),
        settings.workflow_definition(),
        run_store=RedisRunStore(redis_client),
    )


class WorkerDaemon:
    """Pulls triggers from the queue and executes runs concurrently."""

    def __init__(
        self,
        engine: WorkflowEngine,
        trigger_queue: RedisTriggerQueue,
        max_runs: int = 4,
        poll_timeout: int = 1,
        reap_interval: float = 60.0,
    ):
        if engine is None:
            raise ValueError("engine is required")
        if trigger_queue is None:
            raise ValueError("trigger_queue is required")
        if max_runs <= 0:
            raise ValueError("max_runs must be positive")

        self.engine = engine
        self.trigger_queue = trigger_queue
        self.max_runs = max_runs
        self.poll_timeout = poll_timeout
        self.reap_interval = reap_interval
        self.running = True

        self._slots = threading.BoundedSemaphore(max_runs)
        self._executor = ThreadPoolExecutor(
            max_workers=max_runs, thread_name_prefix="run"
        )
        self._last_reap: float | None = None

    def execute(self, run_id: str, payload: WorkflowPayload) -> None:
        """Run one workflow; errors are logged so the daemon keeps going."""
        try:
            state = self.engine.run(payload, run_id=run_id)
            logger.info(f"Run {run_id} ended in {state.current_step.value}")
        except Exception as e:
            logger.error(f"Run {run_id} aborted: {e}")

    def poll_once(self) -> bool:
        """Submit at most one queued trigger.

        Returns True if a run was submitted, False otherwise.
        """
        if not self._slots.acquire(timeout=self.poll_timeout):
            return False

        try:
            item = self.trigger_queue.dequeue(timeout=self.poll_timeout)
        except Exception:
            self._slots.release()
            raise

        if item is None:
            self._slots.release()
            return False

        run_id, payload = item
        future = self._executor.submit(self.execute, run_id, payload)
        future.add_done_callback(self._release_slot)
        return True

    def _release_slot(self, future: Future) -> None:
        self._slots.release()

    def reap_if_due(self) -> None:
        now = time.monotonic()
        if (
            self._last_reap is not None
            and now - self._last_reap < self.reap_interval
        ):
            return
        self._last_reap = now
        for state in self.engine.reap_stalled_runs():
            logger.warning(f"Reaped stalled run {state.run_id}")

    def run(self) -> None:
        """Main daemon loop."""
        logger.info(f"Worker daemon started with {self.max_runs} run slots")

        while self.running:
            try:
                self.poll_once()
                self.reap_if_due()
            except Exception as e:
                logger.error(f"Error in daemon loop: {e}")
                time.sleep(self.poll_timeout)

        self._executor.shutdown(wait=True)
        logger.info("Worker daemon stopped")

    def stop(self) -> None:
        """Signal daemon to stop."""
        self.running = False


def main() -> int:
    configure_logging(
        log_dir="logs",
        log_file="worker_daemon.log",
        level=logging.INFO,
    )

    try:
        settings = load_settings(config_file=os.environ.get("WORKFLOW_CONFIG"))
    except (ConfigError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    max_runs = int(os.environ.get("WORKER_MAX_RUNS", "4"))

    logger.info(f"Connecting to Redis at {settings.redis_url}")
    # BRPOP blocks for poll_timeout, so the queue client has no socket timeout.
    redis_client = get_redis_client(settings.redis_url)

    try:
        redis_client.ping()
        logger.info("Redis connection established")
    except redis.ConnectionError as e:
        logger.error(f"Failed to connect to Redis: {e}")
        return 1

    try:
        engine = create_engine(
            settings,
            get_redis_client(
                settings.redis_url, socket_timeout=settings.task_timeout_seconds
            ),
        )
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    daemon = WorkerDaemon(engine, RedisTriggerQueue(redis_client), max_runs=max_runs)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        daemon.stop()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    daemon.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())

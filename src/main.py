"""Main entry point for the workflow API server."""

import argparse
import logging
import os
import sys

import redis
import uvicorn

from api.app import WorkflowAPI
from services.config_loader import ConfigError, Settings, load_settings
from services.log_service import configure_logging
from services.run_store import RedisRunStore
from services.trigger_adapter import TriggerAdapter
from services.trigger_queue import RedisTriggerQueue

logger = logging.getLogger(__name__)


def get_redis_client(redis_url: str) -> redis.Redis:
    """Create Redis client for the configured URL."""
    return redis.Redis.from_url(redis_url, decode_responses=True)


def create_app(settings: Settings | None = None) -> "uvicorn.ASGIApplication":
    """Create FastAPI application with all dependencies."""
    if settings is None:
        settings = load_settings(config_file=os.environ.get("WORKFLOW_CONFIG"))

    redis_client = get_redis_client(settings.redis_url)
    trigger_queue = RedisTriggerQueue(redis_client)
    run_store = RedisRunStore(redis_client)
    adapter = TriggerAdapter(
        settings.source_location_name, settings.dest_location_name
    )

    api = WorkflowAPI(adapter, trigger_queue, run_store)
    return api.create_app()


def main() -> int:
    """Run the workflow API server."""
    parser = argparse.ArgumentParser(description="Sentiment Workflow API Server")
    parser.add_argument(
        "--host",
        default=os.environ.get("HOST", "0.0.0.0"),
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", "8000")),
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("WORKFLOW_CONFIG"),
        help="JSON config file (environment variables override it)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default=os.environ.get("LOG_LEVEL", "info").lower(),
        help="Log level (default: info)",
    )
    args = parser.parse_args()

    configure_logging(
        log_dir="logs",
        log_file="workflow_api.log",
        level=getattr(logging, args.log_level.upper()),
    )

    try:
        settings = load_settings(config_file=args.config)
    except (ConfigError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info("Starting workflow API server")
    logger.info(f"Source location: {settings.source_location_name}")

    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)
    return 0


if __name__ == "__main__":
    sys.exit(main())

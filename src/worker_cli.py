"""CLI that runs the workflow once for a single object."""

import argparse
import json
import logging
import os
import sys

from api.models import RunStatusResponse
from models.state import RunStep
from services.config_loader import ConfigError, load_settings
from services.trigger_adapter import ObjectCreatedEvent, TriggerAdapter
from worker_daemon import create_engine, get_redis_client

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Run one workflow synchronously and print its final state."""
    parser = argparse.ArgumentParser(description="Run the sentiment workflow once")
    parser.add_argument(
        "--bucket", required=True, help="Bucket the object was created in"
    )
    parser.add_argument("--key", required=True, help="Key of the created object")
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
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = load_settings(config_file=args.config)
    except (ConfigError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    adapter = TriggerAdapter(settings.source_location_name, settings.dest_location_name)
    payload = adapter.to_payload(
        ObjectCreatedEvent(bucket_name=args.bucket, object_key=args.key)
    )
    if payload is None:
        logger.info(
            f"Bucket {args.bucket} is not the source location "
            f"{settings.source_location_name}; nothing to do"
        )
        return 0

    redis_client = get_redis_client(
        settings.redis_url, socket_timeout=settings.task_timeout_seconds
    )
    try:
        engine = create_engine(settings, redis_client)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    state = engine.run(payload)
    report = RunStatusResponse.from_state(state).model_dump(mode="json")
    print(json.dumps(report, indent=2))

    return 0 if state.current_step == RunStep.DONE else 1


if __name__ == "__main__":
    sys.exit(main())

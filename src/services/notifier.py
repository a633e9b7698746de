"""Notification publishers for run outcomes."""

import hashlib
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import httpx
import redis
from redis import Redis

from models.payload import WorkflowPayload
from models.results import NotifyErrorKind

logger = logging.getLogger(__name__)


class NotifyError(Exception):
    """Raised when the publish sink rejects a notification."""

    def __init__(self, channel: str, message: str):
        self.kind = NotifyErrorKind.DELIVERY_FAILED
        self.channel = channel
        super().__init__(f"Delivery to {channel} failed: {message}")


class Notifier(Protocol):
    """Publishes a message to the fixed recipient set of a channel."""

    def publish(
        self,
        channel: str,
        subject: str,
        payload: Mapping[str, Any] | WorkflowPayload,
        timeout: float | None = None,
    ) -> None: ...


def _body(payload: Mapping[str, Any] | WorkflowPayload) -> dict[str, Any]:
    if isinstance(payload, WorkflowPayload):
        return payload.to_message()
    return dict(payload)


def fingerprint(channel: str, subject: str, body: Mapping[str, Any]) -> str:
    """Stable key for a (channel, subject, payload) triple."""
    raw = json.dumps(
        {"channel": channel, "subject": subject, "body": body},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(raw.encode()).hexdigest()


class RedisNotifier:
    """Publishes notifications on Redis pub/sub channels.

    A delivered message is also kept in a capped per-channel list. Repeating
    the same (channel, subject, payload) within ``dedup_ttl`` seconds is a no-op.
    """

    def __init__(
        self,
        redis_client: Redis,
        recipients: Mapping[str, Sequence[str]],
        dedup_ttl: int = 86400,
        history_size: int = 100,
    ):
        if redis_client is None:
            raise ValueError("redis_client is required")
        if recipients is None:
            raise ValueError("recipients is required")
        if dedup_ttl <= 0:
            raise ValueError("dedup_ttl must be positive")
        if history_size <= 0:
            raise ValueError("history_size must be positive")

        self._redis = redis_client
        self._recipients = {k: tuple(v) for k, v in recipients.items()}
        self._dedup_ttl = dedup_ttl
        self._history_size = history_size

    def _pubsub_channel(self, channel: str) -> str:
        return f"notify:{channel}"

    def _history_key(self, channel: str) -> str:
        return f"notifications:{channel}"

    def _dedup_key(self, key: str) -> str:
        return f"notified:{key}"

    def publish(
        self,
        channel: str,
        subject: str,
        payload: Mapping[str, Any] | WorkflowPayload,
        timeout: float | None = None,
    ) -> None:
        """Publish once per (channel, subject, payload)."""
        if not channel:
            raise ValueError("channel is required")
        if not subject:
            raise ValueError("subject is required")
        if channel not in self._recipients:
            raise NotifyError(channel, "no recipients configured")

        body = _body(payload)
        message = json.dumps(
            {
                "subject": subject,
                "body": body,
                "recipients": list(self._recipients[channel]),
            },
            default=str,
        )
        dedup_key = self._dedup_key(fingerprint(channel, subject, body))

        try:
            claimed = self._redis.set(dedup_key, "1", nx=True, ex=self._dedup_ttl)
            if not claimed:
                logger.debug(f"Notification already sent to {channel}: {subject}")
                return

            pipe = self._redis.pipeline()
            pipe.publish(self._pubsub_channel(channel), message)
            pipe.lpush(self._history_key(channel), message)
            pipe.ltrim(self._history_key(channel), 0, self._history_size - 1)
            pipe.execute()
        except redis.RedisError as e:
            self._release(dedup_key)
            raise NotifyError(channel, str(e)) from e

        logger.info(f"Published '{subject}' to {channel}")

    def _release(self, dedup_key: str) -> None:
        try:
            self._redis.delete(dedup_key)
        except redis.RedisError as e:
            logger.warning(f"Could not release dedup key {dedup_key}: {e}")

    def history(self, channel: str, count: int = 10) -> list[dict[str, Any]]:
        """Most recent messages published to a channel, newest first."""
        if not channel:
            raise ValueError("channel is required")
        if count < 0:
            raise ValueError("count must be non-negative")
        if count == 0:
            return []

        items = self._redis.lrange(self._history_key(channel), 0, count - 1)
        result = []
        for item in items:
            if isinstance(item, bytes):
                item = item.decode("utf-8")
            result.append(json.loads(item))
        return result


class WebhookNotifier:
    """Posts notifications to a per-channel webhook URL."""

    def __init__(
        self,
        urls: Mapping[str, str],
        recipients: Mapping[str, Sequence[str]],
        timeout: float = 10.0,
    ):
        if urls is None:
            raise ValueError("urls is required")
        if recipients is None:
            raise ValueError("recipients is required")
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        self._urls = dict(urls)
        self._recipients = {k: tuple(v) for k, v in recipients.items()}
        self._timeout = timeout

    def publish(
        self,
        channel: str,
        subject: str,
        payload: Mapping[str, Any] | WorkflowPayload,
        timeout: float | None = None,
    ) -> None:
        """POST the message; the receiver deduplicates on Idempotency-Key."""
        if not channel:
            raise ValueError("channel is required")
        if not subject:
            raise ValueError("subject is required")
        if channel not in self._urls:
            raise NotifyError(channel, "no webhook configured")

        body = _body(payload)
        message = {
            "subject": subject,
            "body": body,
            "recipients": list(self._recipients.get(channel, ())),
        }
        headers = {"Idempotency-Key": fingerprint(channel, subject, body)}

        try:
            with httpx.Client(timeout=timeout or self._timeout) as client:
                response = client.post(
                    self._urls[channel], json=message, headers=headers
                )
        except httpx.TimeoutException as e:
            raise NotifyError(channel, f"Request timed out: {e}") from e
        except httpx.RequestError as e:
            raise NotifyError(channel, f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise NotifyError(channel, f"HTTP {response.status_code}: {response.text}")

        logger.info(f"Published '{subject}' to {channel}")

"""Maps object-created notifications to workflow payloads."""

import logging
import uuid
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from models.payload import WorkflowPayload

logger = logging.getLogger(__name__)

AUDIT_EVENT_SOURCE = "s3.amazonaws.com"
OBJECT_CREATED_EVENT = "PutObject"


class TriggerEventError(Exception):
    """Raised when a trigger event cannot be parsed."""

    pass


class ObjectCreatedEvent(BaseModel):
    """Object-created signal: bucket name and object key."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    bucket_name: str
    object_key: str

    @field_validator("bucket_name")
    @classmethod
    def bucket_name_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("bucketName is required")
        return v

    @field_validator("object_key")
    @classmethod
    def object_key_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("objectKey is required")
        return v

    @classmethod
    def from_event(cls, data: Any) -> "ObjectCreatedEvent | None":
        """Parse a flat trigger or an audit-trail API call event.

        Audit events for any call other than PutObject return None.
        """
        if not isinstance(data, dict):
            raise TriggerEventError("Event must be a JSON object")

        detail = data.get("detail")
        if detail is not None:
            return cls._from_audit_detail(detail)

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise TriggerEventError(f"Invalid trigger event: {e}") from e

    @classmethod
    def _from_audit_detail(cls, detail: Any) -> "ObjectCreatedEvent | None":
        if not isinstance(detail, dict):
            raise TriggerEventError("detail must be a JSON object")

        source = detail.get("eventSource")
        if source is not None and source != AUDIT_EVENT_SOURCE:
            logger.debug(f"Ignoring event from {source}")
            return None
        if detail.get("eventName") != OBJECT_CREATED_EVENT:
            logger.debug(f"Ignoring audit event {detail.get('eventName')}")
            return None

        params = detail.get("requestParameters")
        if not isinstance(params, dict):
            raise TriggerEventError("detail.requestParameters is required")

        try:
            return cls(
                bucket_name=params.get("bucketName"),
                object_key=params.get("key"),
            )
        except ValidationError as e:
            raise TriggerEventError(f"Invalid audit event: {e}") from e


def new_correlation_id() -> str:
    return uuid.uuid4().hex


class TriggerAdapter:
    """Turns object-created events on the source location into payloads."""

    def __init__(
        self,
        source_location: str,
        dest_location: str,
        id_factory: Callable[[], str] = new_correlation_id,
    ):
        if not source_location or not source_location.strip():
            raise ValueError("source_location is required")
        if not dest_location or not dest_location.strip():
            raise ValueError("dest_location is required")
        if id_factory is None:
            raise ValueError("id_factory is required")

        self._source_location = source_location
        self._dest_location = dest_location
        self._id_factory = id_factory

    def to_payload(self, event: ObjectCreatedEvent | None) -> WorkflowPayload | None:
        """Build a payload, or None when the event is not for the source location."""
        if event is None:
            return None
        if event.bucket_name != self._source_location:
            logger.debug(
                f"Ignoring object {event.object_key} in {event.bucket_name}"
            )
            return None

        return WorkflowPayload(
            id=self._id_factory(),
            source_location=event.bucket_name,
            object_key=event.object_key,
            dest_location=self._dest_location,
        )

    def handle(self, data: Any) -> WorkflowPayload | None:
        """Parse a raw event and convert it."""
        return self.to_payload(ObjectCreatedEvent.from_event(data))

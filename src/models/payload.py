"""Workflow payload model passed between workflow steps."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class ErrorInfo(BaseModel):
    """Error descriptor attached to a failed run or payload."""

    model_config = ConfigDict(frozen=True)

    kind: str
    message: str

    @field_validator("kind", mode="before")
    @classmethod
    def unwrap_enum(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v

    @field_validator("kind")
    @classmethod
    def kind_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("kind is required")
        return v


class WorkflowPayload(BaseModel):
    """Correlation payload for one run.

    Serialized with camelCase keys (``sourceLocation``, ``objectKey``...).
    Tasks may enrich the payload; unknown fields are kept as-is.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    source_location: str
    object_key: str
    dest_location: str

    @field_validator("id", "source_location", "object_key", "dest_location")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("value must not be empty")
        return v

    def to_message(self) -> dict[str, Any]:
        """Serialize to the wire shape used by tasks and notifications."""
        return self.model_dump(mode="json", by_alias=True)

    def with_error(self, kind: str | Enum, message: str) -> dict[str, Any]:
        """Return the serialized payload with an ``error`` field appended."""
        data = self.to_message()
        data["error"] = ErrorInfo(kind=kind, message=message).model_dump()
        return data

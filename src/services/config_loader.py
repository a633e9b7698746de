"""Settings loading and workflow definition assembly."""

import json
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from models.results import ConfigErrorKind

# local-part@domain, domain made of dot-separated label groups
RECIPIENT_PATTERN = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)*$"
)

REQUIRED_OPTIONS = (
    "sourceLocationName",
    "destLocationName",
    "notificationChannelName",
    "notificationRecipients",
)


class ConfigError(Exception):
    """Raised when configuration is invalid."""

    def __init__(self, kind: ConfigErrorKind, value: str):
        self.kind = kind
        self.value = value
        super().__init__(f"{kind.value}: {value!r}")


class WorkflowDefinition(BaseModel):
    """Names and limits the workflow engine runs with."""

    model_config = ConfigDict(frozen=True)

    detect_task: str = "detect-sentiment"
    delete_task: str = "delete-object"
    success_channel: str
    error_channel: str
    run_timeout_seconds: float = 1800.0
    task_timeout_seconds: float = 600.0

    @field_validator("run_timeout_seconds", "task_timeout_seconds")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class Settings(BaseModel):
    """Resolved configuration. Read-only after load."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    source_location_name: str
    dest_location_name: str
    audit_log_location_name: str | None = None
    notification_channel_name: str
    notification_recipients: tuple[str, ...]
    detect_task_name: str = "detect-sentiment"
    delete_task_name: str = "delete-object"

    redis_url: str = "redis://localhost:6379"
    task_base_url: str = "http://localhost:8080"
    run_timeout_seconds: float = 1800.0
    task_timeout_seconds: float = 600.0
    notifier_backend: Literal["redis", "webhook"] = "redis"
    notification_webhook_url: str | None = None

    def workflow_definition(self) -> WorkflowDefinition:
        """Build the definition the engine executes."""
        return WorkflowDefinition(
            detect_task=self.detect_task_name,
            delete_task=self.delete_task_name,
            success_channel=self.notification_channel_name,
            error_channel=self.notification_channel_name,
            run_timeout_seconds=self.run_timeout_seconds,
            task_timeout_seconds=self.task_timeout_seconds,
        )

    def recipients_by_channel(self) -> dict[str, tuple[str, ...]]:
        return {self.notification_channel_name: self.notification_recipients}


def env_name(option: str) -> str:
    """Environment variable name for a camelCase option."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", option).upper()


def parse_recipients(raw: str | list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """Split and validate a recipient list.

    Entries are not stripped: surrounding whitespace or an empty entry makes
    the list invalid.
    """
    if isinstance(raw, str):
        entries = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        entries = list(raw)
    else:
        raise ConfigError(ConfigErrorKind.INVALID_RECIPIENT, str(raw))

    for entry in entries:
        if not isinstance(entry, str) or not RECIPIENT_PATTERN.fullmatch(entry):
            raise ConfigError(ConfigErrorKind.INVALID_RECIPIENT, str(entry))
    return tuple(entries)


def _read_config_file(config_file: str | Path) -> dict[str, Any]:
    path = Path(config_file)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    return data


def load_settings(
    environ: Mapping[str, str] | None = None,
    config_file: str | Path | None = None,
) -> Settings:
    """Resolve settings from an optional JSON file and the environment.

    Environment variables (``SOURCE_LOCATION_NAME``...) override file values.
    """
    if environ is None:
        environ = os.environ

    raw: dict[str, Any] = {}
    if config_file is not None:
        raw.update(_read_config_file(config_file))

    for option in Settings.model_fields:
        alias = to_camel(option)
        value = environ.get(env_name(alias))
        if value is not None:
            raw[alias] = value

    for option in REQUIRED_OPTIONS:
        if not raw.get(option):
            raise ConfigError(ConfigErrorKind.MISSING_OPTION, option)

    recipients = parse_recipients(raw["notificationRecipients"])
    if not recipients:
        raise ConfigError(ConfigErrorKind.MISSING_OPTION, "notificationRecipients")
    raw["notificationRecipients"] = recipients

    try:
        return Settings.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e

"""Unit tests for settings loading."""

import json

import pytest

from models.results import ConfigErrorKind
from services.config_loader import (
    ConfigError,
    Settings,
    WorkflowDefinition,
    env_name,
    load_settings,
    parse_recipients,
)


@pytest.fixture
def environ():
    return {
        "SOURCE_LOCATION_NAME": "in-bucket",
        "DEST_LOCATION_NAME": "out-bucket",
        "AUDIT_LOG_LOCATION_NAME": "log-bucket",
        "NOTIFICATION_CHANNEL_NAME": "workflow-topic",
        "NOTIFICATION_RECIPIENTS": "ops@example.com,team.lead@mail.example.org",
    }


class TestEnvName:
    """Tests for option to environment variable mapping."""

    def test_camel_case_to_upper_snake(self):
        assert env_name("sourceLocationName") == "SOURCE_LOCATION_NAME"

    def test_short_option(self):
        assert env_name("redisUrl") == "REDIS_URL"


class TestParseRecipients:
    """Tests for recipient validation."""

    def test_splits_comma_separated(self):
        assert parse_recipients("a@example.com,b@example.com") == (
            "a@example.com",
            "b@example.com",
        )

    def test_trailing_comma_rejected(self):
        with pytest.raises(ConfigError) as exc:
            parse_recipients("a@example.com,")
        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT
        assert exc.value.value == ""

    def test_empty_entry_in_list_rejected(self):
        with pytest.raises(ConfigError) as exc:
            parse_recipients(["a@example.com", ""])
        assert exc.value.value == ""

    def test_trailing_newline_rejected(self):
        with pytest.raises(ConfigError) as exc:
            parse_recipients("test@example.com\n")
        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT
        assert exc.value.value == "test@example.com\n"

    def test_non_list_value_rejected(self):
        with pytest.raises(ConfigError) as exc:
            parse_recipients(5)
        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT
        assert exc.value.value == "5"

    def test_accepts_special_local_part(self):
        address = "o'neil+tag_{x}~!#$%&*=?^`|-@example.com"
        assert parse_recipients(address) == (address,)

    def test_accepts_list(self):
        assert parse_recipients(["a@example.com"]) == ("a@example.com",)

    def test_leading_whitespace_rejected(self):
        with pytest.raises(ConfigError) as exc:
            parse_recipients(" test@example.com")
        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT
        assert exc.value.value == " test@example.com"

    def test_whitespace_after_comma_rejected(self):
        with pytest.raises(ConfigError) as exc:
            parse_recipients("a@example.com, b@example.com")
        assert exc.value.value == " b@example.com"

    @pytest.mark.parametrize(
        "address",
        ["plainaddress", "@example.com", "user@", "user@exa mple.com", "a@b..com"],
    )
    def test_invalid_shapes_rejected(self, address):
        with pytest.raises(ConfigError) as exc:
            parse_recipients(address)
        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT


class TestLoadSettings:
    """Tests for load_settings."""

    def test_loads_from_environment(self, environ):
        settings = load_settings(environ)

        assert settings.source_location_name == "in-bucket"
        assert settings.dest_location_name == "out-bucket"
        assert settings.audit_log_location_name == "log-bucket"
        assert settings.notification_channel_name == "workflow-topic"
        assert settings.notification_recipients == (
            "ops@example.com",
            "team.lead@mail.example.org",
        )

    def test_default_task_names(self, environ):
        settings = load_settings(environ)

        assert settings.detect_task_name == "detect-sentiment"
        assert settings.delete_task_name == "delete-object"

    def test_overrides_task_names(self, environ):
        environ["DETECT_TASK_NAME"] = "detect-v2"
        environ["DELETE_TASK_NAME"] = "cleanup"

        settings = load_settings(environ)

        assert settings.detect_task_name == "detect-v2"
        assert settings.delete_task_name == "cleanup"

    def test_numeric_options_coerced(self, environ):
        environ["RUN_TIMEOUT_SECONDS"] = "120"

        settings = load_settings(environ)

        assert settings.run_timeout_seconds == 120.0

    def test_same_input_same_settings(self, environ):
        assert load_settings(environ) == load_settings(dict(environ))

    def test_invalid_recipient_rejected(self, environ):
        environ["NOTIFICATION_RECIPIENTS"] = " test@example.com"

        with pytest.raises(ConfigError) as exc:
            load_settings(environ)

        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT
        assert exc.value.value == " test@example.com"

    def test_missing_option_rejected(self, environ):
        del environ["SOURCE_LOCATION_NAME"]

        with pytest.raises(ConfigError) as exc:
            load_settings(environ)

        assert exc.value.kind == ConfigErrorKind.MISSING_OPTION
        assert exc.value.value == "sourceLocationName"

    def test_empty_recipient_entry_rejected(self, environ):
        environ["NOTIFICATION_RECIPIENTS"] = ","

        with pytest.raises(ConfigError) as exc:
            load_settings(environ)

        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT
        assert exc.value.value == ""

    def test_trailing_newline_recipient_rejected(self, environ):
        environ["NOTIFICATION_RECIPIENTS"] = "ops@example.com\n"

        with pytest.raises(ConfigError) as exc:
            load_settings(environ)

        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT

    def test_non_list_recipients_in_file_rejected(self, tmp_path):
        config = tmp_path / "workflow.json"
        config.write_text(
            json.dumps(
                {
                    "sourceLocationName": "in",
                    "destLocationName": "out",
                    "notificationChannelName": "topic",
                    "notificationRecipients": 5,
                }
            )
        )

        with pytest.raises(ConfigError) as exc:
            load_settings({}, config_file=config)
        assert exc.value.kind == ConfigErrorKind.INVALID_RECIPIENT

    def test_empty_recipient_list_in_file_rejected(self, tmp_path):
        config = tmp_path / "workflow.json"
        config.write_text(
            json.dumps(
                {
                    "sourceLocationName": "in",
                    "destLocationName": "out",
                    "notificationChannelName": "topic",
                    "notificationRecipients": [],
                }
            )
        )

        with pytest.raises(ConfigError) as exc:
            load_settings({}, config_file=config)
        assert exc.value.kind == ConfigErrorKind.MISSING_OPTION

    def test_invalid_backend_rejected(self, environ):
        environ["NOTIFIER_BACKEND"] = "carrier-pigeon"

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_settings(environ)

    def test_reads_config_file(self, tmp_path):
        config = tmp_path / "workflow.json"
        config.write_text(
            json.dumps(
                {
                    "sourceLocationName": "file-in",
                    "destLocationName": "file-out",
                    "notificationChannelName": "file-topic",
                    "notificationRecipients": "file@example.com",
                    "taskBaseUrl": "http://tasks:9000",
                }
            )
        )

        settings = load_settings({}, config_file=config)

        assert settings.source_location_name == "file-in"
        assert settings.task_base_url == "http://tasks:9000"

    def test_environment_overrides_file(self, tmp_path, environ):
        config = tmp_path / "workflow.json"
        config.write_text(
            json.dumps(
                {
                    "sourceLocationName": "file-in",
                    "destLocationName": "file-out",
                    "notificationChannelName": "file-topic",
                    "notificationRecipients": ["file@example.com"],
                }
            )
        )

        settings = load_settings(environ, config_file=config)

        assert settings.source_location_name == "in-bucket"

    def test_invalid_recipient_in_file_rejected(self, tmp_path):
        config = tmp_path / "workflow.json"
        config.write_text(
            json.dumps(
                {
                    "sourceLocationName": "in",
                    "destLocationName": "out",
                    "notificationChannelName": "topic",
                    "notificationRecipients": ["ok@example.com", "not-an-address"],
                }
            )
        )

        with pytest.raises(ConfigError) as exc:
            load_settings({}, config_file=config)
        assert exc.value.value == "not-an-address"

    def test_unreadable_file_raises(self, tmp_path):
        with pytest.raises(ValueError, match="Cannot read config file"):
            load_settings({}, config_file=tmp_path / "missing.json")

    def test_non_object_file_raises(self, tmp_path):
        config = tmp_path / "workflow.json"
        config.write_text("[1, 2]")

        with pytest.raises(ValueError, match="must contain a JSON object"):
            load_settings({}, config_file=config)


class TestWorkflowDefinition:
    """Tests for definition assembly."""

    def test_built_from_settings(self, environ):
        environ["TASK_TIMEOUT_SECONDS"] = "60"
        definition = load_settings(environ).workflow_definition()

        assert definition.detect_task == "detect-sentiment"
        assert definition.delete_task == "delete-object"
        assert definition.success_channel == "workflow-topic"
        assert definition.error_channel == "workflow-topic"
        assert definition.run_timeout_seconds == 1800.0
        assert definition.task_timeout_seconds == 60.0

    def test_recipients_by_channel(self, environ):
        settings = load_settings(environ)

        assert settings.recipients_by_channel() == {
            "workflow-topic": ("ops@example.com", "team.lead@mail.example.org")
        }

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError, match="timeout must be positive"):
            WorkflowDefinition(
                success_channel="a", error_channel="b", run_timeout_seconds=0
            )

    def test_settings_are_frozen(self, environ):
        settings = load_settings(environ)
        with pytest.raises(Exception):
            settings.source_location_name = "other"

    def test_settings_accept_field_names(self):
        settings = Settings(
            source_location_name="in",
            dest_location_name="out",
            notification_channel_name="topic",
            notification_recipients=("a@example.com",),
        )
        assert settings.notifier_backend == "redis"

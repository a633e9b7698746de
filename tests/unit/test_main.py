"""Unit tests for the API server entry point."""

import logging
import sys
from unittest.mock import patch

import fakeredis
import pytest
from fastapi.testclient import TestClient

import main
from services.config_loader import load_settings


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def environ(monkeypatch):
    monkeypatch.delenv("WORKFLOW_CONFIG", raising=False)
    monkeypatch.setenv("SOURCE_LOCATION_NAME", "in-bucket")
    monkeypatch.setenv("DEST_LOCATION_NAME", "out-bucket")
    monkeypatch.setenv("NOTIFICATION_CHANNEL_NAME", "workflow-topic")
    monkeypatch.setenv("NOTIFICATION_RECIPIENTS", "ops@example.com")


class TestCreateApp:
    """Tests for create_app."""

    def test_serves_health(self, environ):
        with patch("main.get_redis_client", return_value=fakeredis.FakeRedis()):
            app = main.create_app(load_settings())

        response = TestClient(app).get("/health")

        assert response.status_code == 200

    def test_loads_settings_from_environment(self, environ):
        with patch("main.get_redis_client", return_value=fakeredis.FakeRedis()):
            app = main.create_app()

        response = TestClient(app).post(
            "/triggers", json={"bucketName": "in-bucket", "objectKey": "a.txt"}
        )

        assert response.status_code == 202


class TestMain:
    """Tests for main."""

    def test_starts_server(
        self, environ, monkeypatch, tmp_path, restore_root_logger
    ):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(sys, "argv", ["main", "--port", "9000"])

        with patch("main.uvicorn.run") as mock_run:
            with patch("main.get_redis_client", return_value=fakeredis.FakeRedis()):
                code = main.main()

        assert code == 0
        assert mock_run.call_args.kwargs["port"] == 9000
        assert (tmp_path / "logs" / "workflow_api.log").exists()

    def test_invalid_config_exits(
        self, environ, monkeypatch, tmp_path, restore_root_logger
    ):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setattr(sys, "argv", ["main"])
        monkeypatch.delenv("SOURCE_LOCATION_NAME")

        with patch("main.uvicorn.run") as mock_run:
            code = main.main()

        assert code == 1
        mock_run.assert_not_called()

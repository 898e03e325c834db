"""
Configuration Tests
===================

YAML loading and environment variable overrides.
"""

import pytest
from pydantic import ValidationError

from stopmotion_agent.config import load_config
from stopmotion_agent.models.state import FrameFailurePolicy


ENV_VARS = (
    "STOPMOTION_BACKEND",
    "STOPMOTION_POSE_COUNT",
    "STOPMOTION_FRAME_FAILURE_POLICY",
    "STOPMOTION_STRICT_POSES",
    "STOPMOTION_MAX_DURATION",
    "GEMINI_API_KEY",
    "GOOGLE_GENERATIVE_AI_API_KEY",
    "STOPMOTION_MAX_UPLOAD_BYTES",
    "STOPMOTION_SERVER_URL",
    "STOPMOTION_PORT",
    "PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "generation:\n"
        "  backend: mock\n"
        "  pose_count: 6\n"
        "  frame_failure_policy: report\n"
        "server:\n"
        "  port: 9000\n"
    )
    return str(path)


class TestLoadConfig:
    """Sources and precedence."""

    def test_defaults(self, tmp_path):
        settings = load_config(str(tmp_path / "missing.yaml"))

        assert settings.generation.pose_count == 12
        assert settings.generation.frame_failure_policy is FrameFailurePolicy.SKIP
        assert settings.generation.max_duration_seconds == 800.0
        assert settings.upload.max_bytes == 20 * 1024 * 1024
        assert settings.server.port == 8002
        assert settings.client.frame_rate == 12

    def test_yaml_values(self, config_file):
        settings = load_config(config_file)

        assert settings.generation.pose_count == 6
        assert settings.generation.frame_failure_policy is FrameFailurePolicy.REPORT
        assert settings.server.port == 9000

    def test_env_overrides_yaml(self, config_file, monkeypatch):
        monkeypatch.setenv("STOPMOTION_POSE_COUNT", "3")
        monkeypatch.setenv("STOPMOTION_FRAME_FAILURE_POLICY", "SKIP")
        monkeypatch.setenv("STOPMOTION_STRICT_POSES", "yes")
        monkeypatch.setenv("STOPMOTION_MAX_DURATION", "12.5")
        monkeypatch.setenv("STOPMOTION_SERVER_URL", "http://gen:8002")

        settings = load_config(config_file)

        assert settings.generation.pose_count == 3
        assert settings.generation.frame_failure_policy is FrameFailurePolicy.SKIP
        assert settings.generation.strict_pose_parsing is True
        assert settings.generation.max_duration_seconds == 12.5
        assert settings.client.base_url == "http://gen:8002"

    def test_api_key_fallback(self, config_file, monkeypatch):
        monkeypatch.setenv("GOOGLE_GENERATIVE_AI_API_KEY", "fallback")
        assert load_config(config_file).gemini.api_key == "fallback"

        monkeypatch.setenv("GEMINI_API_KEY", "primary")
        assert load_config(config_file).gemini.api_key == "primary"

    def test_port_precedence(self, config_file, monkeypatch):
        monkeypatch.setenv("STOPMOTION_PORT", "7000")
        assert load_config(config_file).server.port == 7000

        monkeypatch.setenv("PORT", "8080")
        assert load_config(config_file).server.port == 8080

    @pytest.mark.parametrize("name,value", [
        ("STOPMOTION_POSE_COUNT", "0"),
        ("STOPMOTION_FRAME_FAILURE_POLICY", "abort"),
        ("STOPMOTION_MAX_DURATION", "-1"),
    ])
    def test_invalid_values_rejected(self, config_file, monkeypatch, name, value):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            load_config(config_file)

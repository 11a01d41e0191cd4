"""Tests for configuration models."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from recipe_runner.models.config import RunnerConfig


class TestRunnerConfig:
    """Tests for RunnerConfig model."""

    def test_default_values(self):
        config = RunnerConfig()
        assert config.automation_enabled is False
        assert config.base_url == ""
        assert config.trigger_labels == []
        assert config.headless is True
        assert config.slow_mo_ms == 100
        assert config.action_timeout_ms == 30000
        assert config.viewport == {"width": 1280, "height": 720}
        assert config.record_video is True
        assert config.capture_screenshots is True
        assert config.check_run_name == "Automated Tests"
        assert config.dashboard_url is None

    def test_trigger_labels_from_comma_string(self):
        config = RunnerConfig(trigger_labels="qa, run-tests ,,")
        assert config.trigger_labels == ["qa", "run-tests"]

    def test_empty_label_string_means_no_labels(self):
        assert RunnerConfig(trigger_labels="").trigger_labels == []

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            RunnerConfig(action_timeout_ms=0)

    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "nested" / "config.json"
        RunnerConfig(base_url="https://staging.example.com", trigger_labels=["qa"]).save(path)

        data = json.loads(path.read_text())
        assert data["base_url"] == "https://staging.example.com"

        loaded = RunnerConfig.load(path)
        assert loaded.trigger_labels == ["qa"]

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            RunnerConfig.load(tmp_path / "nope.json")


class TestRunnerConfigFromEnv:
    """Tests for environment-driven configuration."""

    def test_defaults_with_empty_env(self):
        with patch.dict(os.environ, {}, clear=True):
            config = RunnerConfig.from_env()
        assert config.automation_enabled is False
        assert config.trigger_labels == []
        assert config.public_base_url == "http://localhost:3000"

    def test_reads_all_variables(self):
        env = {
            "TEST_AUTOMATION_ENABLED": "true",
            "TEST_AUTOMATION_BASE_URL": "https://pr-12.preview.example.com",
            "TEST_AUTOMATION_TRIGGER_LABELS": "qa,e2e",
            "TEST_AUTOMATION_HEADLESS": "false",
            "TEST_AUTOMATION_SLOW_MO": "0",
            "TEST_AUTOMATION_TIMEOUT": "15000",
            "TEST_AUTOMATION_RECORD_VIDEO": "no",
            "TEST_AUTOMATION_SCREENSHOTS": "1",
            "PUBLIC_BASE_URL": "https://qa.example.com",
        }
        with patch.dict(os.environ, env, clear=True):
            config = RunnerConfig.from_env()
        assert config.automation_enabled is True
        assert config.base_url == "https://pr-12.preview.example.com"
        assert config.trigger_labels == ["qa", "e2e"]
        assert config.headless is False
        assert config.slow_mo_ms == 0
        assert config.action_timeout_ms == 15000
        assert config.record_video is False
        assert config.capture_screenshots is True
        assert config.public_base_url == "https://qa.example.com"

    def test_overrides_win(self):
        with patch.dict(os.environ, {"TEST_AUTOMATION_ENABLED": "false"}, clear=True):
            config = RunnerConfig.from_env(automation_enabled=True)
        assert config.automation_enabled is True

    def test_bad_integer(self):
        with patch.dict(os.environ, {"TEST_AUTOMATION_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ValueError, match="TEST_AUTOMATION_TIMEOUT"):
                RunnerConfig.from_env()

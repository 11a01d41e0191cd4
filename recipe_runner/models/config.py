"""Configuration models for the recipe runner."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "TEST_AUTOMATION_"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got '{raw}'")


class RunnerConfig(BaseModel):
    # Triggering
    automation_enabled: bool = False
    base_url: str = ""
    trigger_labels: list[str] = Field(default_factory=list)

    # Browser
    headless: bool = True
    slow_mo_ms: int = 100
    action_timeout_ms: int = 30000
    viewport_width: int = 1280
    viewport_height: int = 720

    # Artifacts
    record_video: bool = True
    capture_screenshots: bool = True
    runs_dir: str = "./test-results"
    public_artifacts_dir: str = "./public/test-artifacts"
    public_base_url: str = "http://localhost:3000"

    # AI settings
    ai_model: str = "claude-sonnet-4-20250514"
    ai_max_tokens: int = 4000

    # Reporting
    check_run_name: str = "Automated Tests"
    dashboard_url: Optional[str] = None

    @field_validator("trigger_labels", mode="before")
    @classmethod
    def split_labels(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        return [label.strip() for label in v or [] if label and label.strip()]

    @field_validator("action_timeout_ms")
    @classmethod
    def positive_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("action_timeout_ms must be positive")
        return v

    @property
    def viewport(self) -> dict:
        return {"width": self.viewport_width, "height": self.viewport_height}

    @classmethod
    def from_env(cls, **overrides) -> "RunnerConfig":
        """Build config from TEST_AUTOMATION_* environment variables."""
        data = {
            "automation_enabled": _env_flag(f"{ENV_PREFIX}ENABLED", False),
            "base_url": os.environ.get(f"{ENV_PREFIX}BASE_URL", ""),
            "trigger_labels": os.environ.get(f"{ENV_PREFIX}TRIGGER_LABELS", ""),
            "headless": _env_flag(f"{ENV_PREFIX}HEADLESS", True),
            "slow_mo_ms": _env_int(f"{ENV_PREFIX}SLOW_MO", 100),
            "action_timeout_ms": _env_int(f"{ENV_PREFIX}TIMEOUT", 30000),
            "record_video": _env_flag(f"{ENV_PREFIX}RECORD_VIDEO", True),
            "capture_screenshots": _env_flag(f"{ENV_PREFIX}SCREENSHOTS", True),
        }
        if os.environ.get("PUBLIC_BASE_URL"):
            data["public_base_url"] = os.environ["PUBLIC_BASE_URL"]
        data.update(overrides)
        return cls(**data)

    @classmethod
    def load(cls, path: str | Path) -> "RunnerConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

"""Test recipe data structures consumed from the upstream analysis."""

from __future__ import annotations

import json
import re
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Priority(str, Enum):
    SMOKE = "Smoke"
    HAPPY_PATH = "Happy Path"
    CRITICAL_PATH = "Critical Path"
    EDGE_CASE = "Edge Case"
    REGRESSION = "Regression"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        """Map loosely formatted priority labels onto the enum."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.UNKNOWN
        # "CriticalPath", "critical_path", "critical-path" -> "criticalpath"
        key = re.sub(r"[\s_\-]+", "", str(value)).lower()
        return _PRIORITY_KEYS.get(key, cls.UNKNOWN)

    @property
    def blocks_merge(self) -> bool:
        return self in MERGE_BLOCKING_PRIORITIES


_PRIORITY_KEYS = {
    "smoke": Priority.SMOKE,
    "happypath": Priority.HAPPY_PATH,
    "criticalpath": Priority.CRITICAL_PATH,
    "critical": Priority.CRITICAL_PATH,
    "edgecase": Priority.EDGE_CASE,
    "edge": Priority.EDGE_CASE,
    "regression": Priority.REGRESSION,
}

MERGE_BLOCKING_PRIORITIES = frozenset(
    {Priority.SMOKE, Priority.HAPPY_PATH, Priority.CRITICAL_PATH}
)

# Reporting order; execution order always follows the recipe.
PRIORITY_ORDER = [
    Priority.SMOKE,
    Priority.HAPPY_PATH,
    Priority.CRITICAL_PATH,
    Priority.EDGE_CASE,
    Priority.REGRESSION,
    Priority.UNKNOWN,
]


def _as_text(value: Any) -> str:
    # Upstream analysis sometimes emits steps as a list of sentences
    if value is None:
        return ""
    if isinstance(value, list):
        return "\n".join(f"{i}. {s}" for i, s in enumerate(value, start=1))
    return str(value)


class TestScenario(BaseModel):
    __test__: ClassVar[bool] = False
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(validation_alias=AliasChoices("name", "scenario"))
    steps: str = ""
    expected: str = ""
    priority: Priority = Priority.UNKNOWN

    @model_validator(mode="before")
    @classmethod
    def fill_missing_text(cls, data: Any) -> Any:
        """Steps default to the scenario name, expectations to the steps."""
        if not isinstance(data, dict):
            return data
        data = dict(data)
        name = data.get("name") or data.get("scenario") or ""
        steps = _as_text(data.get("steps")).strip() or str(name)
        data["steps"] = steps
        data["expected"] = _as_text(data.get("expected")).strip() or steps
        return data

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("scenario name must not be empty")
        return v.strip()

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v: Any) -> Priority:
        return Priority.parse(v)


class SelectorHint(BaseModel):
    """A selector found by static code scanning, e.g. a data-testid."""
    type: str = "css"
    value: str
    file: str = ""


class TestRecipe(BaseModel):
    __test__: ClassVar[bool] = False
    model_config = ConfigDict(frozen=True)

    scenarios: tuple[TestScenario, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.scenarios

    @classmethod
    def from_data(cls, data: Any) -> "TestRecipe":
        """Build a recipe from a JSON array or an object wrapping one."""
        if isinstance(data, dict):
            data = data.get("testRecipe") or data.get("scenarios") or []
        if not isinstance(data, list):
            raise ValueError(f"Test recipe must be a JSON array, got {type(data).__name__}")
        return cls(scenarios=tuple(TestScenario.model_validate(item) for item in data))

    @classmethod
    def from_json(cls, text: str) -> "TestRecipe":
        return cls.from_data(json.loads(text))

    @classmethod
    def load(cls, path: str | Path) -> "TestRecipe":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Recipe file not found: {path}")
        with open(path) as f:
            return cls.from_data(json.load(f))


def load_selector_hints(path: str | Path) -> list[SelectorHint]:
    """Load selector hints produced by the code scanner."""
    with open(path) as f:
        data = json.load(f)
    return [SelectorHint.model_validate(h) for h in data]

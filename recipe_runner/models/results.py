"""Execution traces and classified results."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

from .recipe import Priority, TestScenario

MAX_CONSOLE_ENTRIES = 10
# Pause between scenarios; the report video timeline adds the same gap
SCENARIO_GAP_MS = 1000


class ScenarioStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"
    SKIP = "SKIP"

    @property
    def is_failure(self) -> bool:
        return self in (ScenarioStatus.FAIL, ScenarioStatus.ERROR)


class ConsoleEntry(BaseModel):
    type: str
    text: str


class NetworkFailure(BaseModel):
    url: str
    method: str = "GET"
    failure: str = ""


class AssertionOutcome(BaseModel):
    target: str = ""
    expected_text: Optional[str] = None
    description: str = ""
    passed: Optional[bool] = None  # None: free-text check, needs AI verification
    message: str = ""


class PageSnapshot(BaseModel):
    url: str = ""
    title: str = ""
    visible_text: str = ""


class ScenarioTrace(BaseModel):
    """Raw record of one scenario run, before classification."""
    actions_executed: int = 0
    duration_ms: int = 0
    screenshot_path: Optional[str] = None
    console_logs: list[ConsoleEntry] = Field(default_factory=list)
    network_errors: list[NetworkFailure] = Field(default_factory=list)
    thrown_error: Optional[str] = None
    assertions: list[AssertionOutcome] = Field(default_factory=list)
    page: PageSnapshot = Field(default_factory=PageSnapshot)


class ScenarioResult(BaseModel):
    scenario: str
    priority: Priority = Priority.UNKNOWN
    steps: str = ""
    status: ScenarioStatus
    expected: str = ""
    actual: Optional[str] = None
    duration_ms: int = 0
    screenshot_path: Optional[str] = None
    console_logs: list[ConsoleEntry] = Field(default_factory=list)
    network_errors: list[NetworkFailure] = Field(default_factory=list)
    error: Optional[str] = None
    plan_source: Literal["ai", "heuristic", "none"] = "none"

    @classmethod
    def from_trace(
        cls,
        scenario: TestScenario,
        trace: ScenarioTrace,
        status: ScenarioStatus,
        actual: str,
        plan_source: str = "none",
    ) -> "ScenarioResult":
        error = trace.thrown_error
        if error is None and status == ScenarioStatus.FAIL:
            error = actual
        return cls(
            scenario=scenario.name,
            priority=scenario.priority,
            steps=scenario.steps,
            status=status,
            expected=scenario.expected,
            actual=actual,
            duration_ms=trace.duration_ms,
            screenshot_path=trace.screenshot_path,
            console_logs=trace.console_logs,
            network_errors=trace.network_errors,
            error=error,
            plan_source=plan_source,
        )


class ExecutionResult(BaseModel):
    execution_id: str
    base_url: str = ""
    started_at: str = ""
    completed_at: str = ""
    scenarios: list[ScenarioResult] = Field(default_factory=list)
    passed: int = 0
    failed: int = 0  # FAIL and ERROR
    skipped: int = 0
    total_tests: int = 0
    duration_ms: int = 0
    full_video_path: Optional[str] = None

    @model_validator(mode="after")
    def check_totals(self) -> "ExecutionResult":
        if self.total_tests != len(self.scenarios):
            raise ValueError(
                f"total_tests={self.total_tests} but {len(self.scenarios)} scenarios recorded"
            )
        if self.passed + self.failed + self.skipped != self.total_tests:
            raise ValueError(
                f"passed+failed+skipped ({self.passed}+{self.failed}+{self.skipped}) "
                f"!= total_tests ({self.total_tests})"
            )
        return self

    @property
    def errors(self) -> int:
        return sum(1 for s in self.scenarios if s.status == ScenarioStatus.ERROR)

    @property
    def all_passed(self) -> bool:
        return self.failed == 0

    @property
    def pass_rate(self) -> int:
        """Pass percentage, rounded to a whole number."""
        if not self.total_tests:
            return 0
        return round(self.passed / self.total_tests * 100)

    def failures(self) -> list[ScenarioResult]:
        return [s for s in self.scenarios if s.status.is_failure]

    @classmethod
    def from_scenarios(
        cls,
        execution_id: str,
        scenarios: list[ScenarioResult],
        base_url: str = "",
        started_at: str = "",
        completed_at: str = "",
        duration_ms: int = 0,
        full_video_path: Optional[str] = None,
    ) -> "ExecutionResult":
        return cls(
            execution_id=execution_id,
            base_url=base_url,
            started_at=started_at,
            completed_at=completed_at,
            scenarios=scenarios,
            passed=sum(1 for s in scenarios if s.status == ScenarioStatus.PASS),
            failed=sum(1 for s in scenarios if s.status.is_failure),
            skipped=sum(1 for s in scenarios if s.status == ScenarioStatus.SKIP),
            total_tests=len(scenarios),
            duration_ms=duration_ms,
            full_video_path=full_video_path,
        )

"""Tests for execution result models."""

import pytest
from pydantic import ValidationError

from recipe_runner.models.recipe import Priority, TestScenario
from recipe_runner.models.results import (
    AssertionOutcome,
    ExecutionResult,
    ScenarioResult,
    ScenarioStatus,
    ScenarioTrace,
)


class TestScenarioStatus:

    def test_failure_statuses(self):
        assert ScenarioStatus.FAIL.is_failure
        assert ScenarioStatus.ERROR.is_failure
        assert not ScenarioStatus.PASS.is_failure
        assert not ScenarioStatus.SKIP.is_failure


class TestScenarioResult:
    """Tests for building results from traces."""

    def test_from_trace_with_error(self, login_scenario):
        trace = ScenarioTrace(actions_executed=1, duration_ms=1200, thrown_error="Timeout 30000ms exceeded.")
        result = ScenarioResult.from_trace(login_scenario, trace, ScenarioStatus.ERROR,
                                           "Error: Timeout 30000ms exceeded.", plan_source="ai")
        assert result.scenario == "User can log in"
        assert result.priority == Priority.SMOKE
        assert result.error == "Timeout 30000ms exceeded."
        assert result.duration_ms == 1200
        assert result.plan_source == "ai"

    def test_from_trace_fail_uses_actual_as_error(self, login_scenario):
        trace = ScenarioTrace(assertions=[AssertionOutcome(passed=False, message="not found")])
        result = ScenarioResult.from_trace(login_scenario, trace, ScenarioStatus.FAIL, "not found")
        assert result.error == "not found"

    def test_from_trace_pass_has_no_error(self, login_scenario):
        trace = ScenarioTrace(duration_ms=900, screenshot_path="/tmp/s.png")
        result = ScenarioResult.from_trace(login_scenario, trace, ScenarioStatus.PASS, "Dashboard shown")
        assert result.error is None
        assert result.screenshot_path == "/tmp/s.png"


class TestExecutionResult:
    """Tests for aggregate counts and the totals invariant."""

    def test_from_scenarios_counts(self, mixed_result):
        assert mixed_result.total_tests == 4
        assert mixed_result.passed == 1
        assert mixed_result.failed == 2
        assert mixed_result.skipped == 1
        assert mixed_result.errors == 1
        assert mixed_result.passed + mixed_result.failed + mixed_result.skipped == mixed_result.total_tests

    def test_pass_rate(self, mixed_result, passing_result):
        assert mixed_result.pass_rate == 25
        assert passing_result.pass_rate == 100

    def test_empty_result(self):
        result = ExecutionResult.from_scenarios("exec", [])
        assert result.total_tests == 0
        assert result.pass_rate == 0
        assert result.all_passed

    def test_failures_keep_recipe_order(self, mixed_result):
        assert [s.scenario for s in mixed_result.failures()] == ["Checkout fails", "Profile page crashes"]

    def test_inconsistent_totals_rejected(self, scenario_factory):
        with pytest.raises(ValidationError, match="total_tests"):
            ExecutionResult(
                execution_id="x",
                scenarios=[scenario_factory()],
                passed=1, failed=0, skipped=0, total_tests=2,
            )

    def test_inconsistent_counts_rejected(self, scenario_factory):
        with pytest.raises(ValidationError, match="passed\\+failed\\+skipped"):
            ExecutionResult(
                execution_id="x",
                scenarios=[scenario_factory(), scenario_factory()],
                passed=1, failed=0, skipped=0, total_tests=2,
            )

    def test_round_trips_through_json(self, mixed_result):
        restored = ExecutionResult.model_validate_json(mixed_result.model_dump_json())
        assert restored == mixed_result


def test_scenario_model_is_not_collected():
    assert TestScenario.__test__ is False

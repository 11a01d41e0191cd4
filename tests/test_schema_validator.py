"""Tests for validation of AI-produced action plans."""

import pytest

from recipe_runner.models.action_plan import PlanInvalid, PlanValid
from recipe_runner.models.recipe import SelectorHint
from recipe_runner.synthesizer.schema_validator import (
    MAX_ACTIONS,
    guess_selector,
    hint_to_selector,
    validate_action_plan,
)

BASE = "https://staging.example.com/app"


def _validate(data, hints=None):
    return validate_action_plan(data, "Scenario", BASE, hints)


class TestValidateActionPlan:

    def test_valid_plan(self):
        result = _validate({"actions": [
            {"type": "navigate", "target": "/login", "description": "Open login"},
            {"type": "fill", "target": "#email", "value": "user@example.com"},
            {"type": "click", "target": "button[type=submit]"},
            {"type": "wait", "target": "networkidle"},
            {"type": "assert", "target": "h1", "value": "Dashboard"},
        ]})
        assert isinstance(result, PlanValid)
        plan = result.plan
        assert plan.source == "ai"
        assert plan.scenario_name == "Scenario"
        assert [a.type for a in plan.actions] == ["navigate", "fill", "click", "wait", "assert"]
        assert plan.actions[0].target == "https://staging.example.com/app/login"

    def test_bare_list_accepted(self):
        result = _validate([{"type": "navigate", "target": "https://other.example.com/"}])
        assert isinstance(result, PlanValid)
        assert result.plan.actions[0].target == "https://other.example.com/"

    def test_navigate_without_target_uses_base_url(self):
        result = _validate({"actions": [{"type": "navigate"}]})
        assert result.plan.actions[0].target == BASE

    def test_type_aliases(self):
        result = _validate({"actions": [
            {"type": "goto", "url": "/"},
            {"type": "type", "selector": "#q", "value": "shoes"},
            {"type": "verify", "description": "Results are listed"},
        ]})
        assert [a.type for a in result.plan.actions] == ["navigate", "fill", "assert"]
        assert result.plan.actions[1].target == "#q"

    def test_timeout_parsed_leniently(self):
        result = _validate({"actions": [
            {"type": "click", "target": "#a", "timeout_ms": "5000"},
            {"type": "click", "target": "#b", "timeout_ms": "soon"},
            {"type": "click", "target": "#c", "timeout_ms": -1},
        ]})
        assert [a.timeout_ms for a in result.plan.actions] == [5000, None, None]

    @pytest.mark.parametrize("timeout", [float("inf"), float("-inf"), float("nan"), "1e400"])
    def test_non_finite_timeout_dropped(self, timeout):
        result = _validate({"actions": [{"type": "navigate", "target": "/", "timeout_ms": timeout}]})
        assert isinstance(result, PlanValid)
        assert result.plan.actions[0].timeout_ms is None

    @pytest.mark.parametrize("data, reason", [
        ("just text", "expected a JSON object"),
        ({"actions": "click"}, "must be a JSON array"),
        ({"actions": []}, "no actions"),
        ({"actions": ["click"]}, "not an object"),
        ({"actions": [{"type": "hover", "target": "#x"}]}, "invalid type"),
        ({"actions": [{"type": "fill", "target": "#x"}]}, "requires a value"),
        ({"actions": [{"type": "wait", "value": "a bit"}]}, "milliseconds"),
        ({"actions": [{"type": "wait", "value": "1e400"}]}, "milliseconds"),
        ({"actions": [{"type": "wait", "value": float("inf")}]}, "milliseconds"),
        ({"actions": [{"type": "assert"}]}, "nothing to check"),
        ({"actions": [{"type": "click", "description": "do something"}]}, "requires a target"),
    ])
    def test_invalid_plans(self, data, reason):
        result = _validate(data)
        assert isinstance(result, PlanInvalid)
        assert reason in result.reason

    def test_too_many_actions(self):
        result = _validate({"actions": [{"type": "wait", "value": "10"}] * (MAX_ACTIONS + 1)})
        assert isinstance(result, PlanInvalid)
        assert str(MAX_ACTIONS) in result.reason

    def test_missing_click_target_guessed_from_hints(self, selector_hints):
        result = _validate(
            {"actions": [{"type": "click", "description": "Click the signin button"}]},
            selector_hints,
        )
        assert isinstance(result, PlanValid)
        assert result.plan.actions[0].target == "#signin-button"


class TestGuessSelector:

    def test_hint_word_overlap(self, selector_hints):
        assert guess_selector("Enter the email address", selector_hints) == '[data-testid="login-email"]'

    def test_quoted_text_fallback(self):
        assert guess_selector("Click 'Add to cart'", []) == "text=Add to cart"

    def test_no_guess(self):
        assert guess_selector("do the thing", []) is None


@pytest.mark.parametrize("hint, expected", [
    (SelectorHint(type="data-testid", value="save"), '[data-testid="save"]'),
    (SelectorHint(type="testid", value="save"), '[data-testid="save"]'),
    (SelectorHint(type="id", value="#main"), "#main"),
    (SelectorHint(type="aria-label", value="Close"), '[aria-label="Close"]'),
    (SelectorHint(type="name", value="email"), '[name="email"]'),
    (SelectorHint(type="css", value=".btn-primary"), ".btn-primary"),
])
def test_hint_to_selector(hint, expected):
    assert hint_to_selector(hint) == expected

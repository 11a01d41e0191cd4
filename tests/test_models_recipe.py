"""Tests for recipe models."""

import json

import pytest
from pydantic import ValidationError

from recipe_runner.models.recipe import (
    MERGE_BLOCKING_PRIORITIES,
    Priority,
    SelectorHint,
    TestRecipe,
    TestScenario,
    load_selector_hints,
)


class TestPriority:
    """Tests for lenient priority parsing."""

    @pytest.mark.parametrize("raw", ["Critical Path", "critical_path", "CriticalPath", "critical-path", " critical path "])
    def test_critical_path_spellings(self, raw):
        assert Priority.parse(raw) == Priority.CRITICAL_PATH

    def test_happy_path_and_smoke(self):
        assert Priority.parse("happy path") == Priority.HAPPY_PATH
        assert Priority.parse("SMOKE") == Priority.SMOKE

    def test_unknown_values(self):
        assert Priority.parse("P0") == Priority.UNKNOWN
        assert Priority.parse(None) == Priority.UNKNOWN
        assert Priority.parse("") == Priority.UNKNOWN

    def test_merge_blocking(self):
        assert MERGE_BLOCKING_PRIORITIES == {Priority.SMOKE, Priority.HAPPY_PATH, Priority.CRITICAL_PATH}
        assert Priority.SMOKE.blocks_merge
        assert not Priority.EDGE_CASE.blocks_merge
        assert not Priority.UNKNOWN.blocks_merge


class TestTestScenario:
    """Tests for TestScenario model."""

    def test_scenario_key_alias(self):
        scenario = TestScenario.model_validate({
            "scenario": "Login works", "priority": "Smoke",
            "steps": "Log in", "expected": "Dashboard",
        })
        assert scenario.name == "Login works"
        assert scenario.priority == Priority.SMOKE

    def test_missing_steps_fall_back_to_name(self):
        scenario = TestScenario.model_validate({"scenario": "Open the homepage"})
        assert scenario.steps == "Open the homepage"
        assert scenario.expected == "Open the homepage"

    def test_missing_expected_falls_back_to_steps(self):
        scenario = TestScenario.model_validate({"name": "Search", "steps": "Type 'shoes' and search"})
        assert scenario.expected == "Type 'shoes' and search"

    def test_list_steps_are_numbered(self):
        scenario = TestScenario.model_validate({"name": "Search", "steps": ["Open /", "Search for shoes"]})
        assert scenario.steps == "1. Open /\n2. Search for shoes"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            TestScenario.model_validate({"scenario": "   "})

    def test_immutable(self, login_scenario):
        with pytest.raises(ValidationError):
            login_scenario.name = "Changed"


class TestTestRecipe:
    """Tests for recipe parsing."""

    def test_from_array(self):
        recipe = TestRecipe.from_json(json.dumps([
            {"scenario": "A", "priority": "Happy Path"},
            {"scenario": "B", "priority": "Edge Case"},
        ]))
        assert [s.name for s in recipe.scenarios] == ["A", "B"]
        assert not recipe.is_empty

    def test_from_wrapped_object(self):
        recipe = TestRecipe.from_data({"testRecipe": [{"scenario": "A"}]})
        assert len(recipe.scenarios) == 1
        recipe = TestRecipe.from_data({"scenarios": [{"name": "B"}]})
        assert recipe.scenarios[0].name == "B"

    def test_empty_recipe(self):
        assert TestRecipe.from_data([]).is_empty
        assert TestRecipe.from_data({"testRecipe": []}).is_empty

    def test_non_array_rejected(self):
        with pytest.raises(ValueError, match="JSON array"):
            TestRecipe.from_data("not a recipe")

    def test_order_preserved(self, sample_recipe):
        assert [s.name for s in sample_recipe.scenarios] == [
            "User can log in", "Empty cart shows hint", "Checkout completes",
        ]

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "recipe.json"
        path.write_text(json.dumps([{"scenario": "A", "steps": "Do it", "expected": "Done"}]))
        recipe = TestRecipe.load(path)
        assert recipe.scenarios[0].expected == "Done"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            TestRecipe.load(tmp_path / "missing.json")


def test_load_selector_hints(tmp_path):
    path = tmp_path / "hints.json"
    path.write_text(json.dumps([
        {"type": "data-testid", "value": "login-email", "file": "src/Login.tsx"},
        {"value": ".btn-primary"},
    ]))
    hints = load_selector_hints(path)
    assert hints[0] == SelectorHint(type="data-testid", value="login-email", file="src/Login.tsx")
    assert hints[1].type == "css"

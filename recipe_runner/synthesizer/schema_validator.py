"""Validation of AI-produced action plans.

AI output is untrusted: everything is checked against the fixed action schema
and the outcome is returned as ``PlanValid`` or ``PlanInvalid`` instead of
raising.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from recipe_runner.models.action_plan import (
    ACTION_TYPES,
    ActionPlan,
    BrowserAction,
    PlanInvalid,
    PlanValid,
    PlanValidation,
)
from recipe_runner.models.recipe import SelectorHint
from recipe_runner.url_utils import join_url

logger = logging.getLogger(__name__)

MAX_ACTIONS = 25

# Names the model sometimes uses instead of the schema's enum
_TYPE_ALIASES = {
    "goto": "navigate",
    "open": "navigate",
    "type": "fill",
    "input": "fill",
    "verify": "assert",
    "check": "assert",
    "expect": "assert",
}

_WORD_RE = re.compile(r"[a-z0-9]+")
_QUOTED_RE = re.compile(r"[\"']([^\"']{2,60})[\"']")


def validate_action_plan(
    data: Any,
    scenario_name: str,
    base_url: str,
    selector_hints: Optional[list[SelectorHint]] = None,
) -> PlanValidation:
    """Check raw AI output and build an ActionPlan from it."""
    hints = selector_hints or []

    if isinstance(data, dict):
        raw_actions = data.get("actions")
    elif isinstance(data, list):
        raw_actions = data
    else:
        return PlanInvalid(reason=f"expected a JSON object, got {type(data).__name__}")

    if not isinstance(raw_actions, list):
        return PlanInvalid(reason="'actions' must be a JSON array")
    if not raw_actions:
        return PlanInvalid(reason="plan contains no actions")
    if len(raw_actions) > MAX_ACTIONS:
        return PlanInvalid(reason=f"plan has {len(raw_actions)} actions (max {MAX_ACTIONS})")

    actions: list[BrowserAction] = []
    for i, raw in enumerate(raw_actions):
        if not isinstance(raw, dict):
            return PlanInvalid(reason=f"action {i} is not an object")

        action_type = str(raw.get("type") or raw.get("action_type") or "").strip().lower()
        action_type = _TYPE_ALIASES.get(action_type, action_type)
        if action_type not in ACTION_TYPES:
            return PlanInvalid(reason=f"action {i}: invalid type '{raw.get('type')}'")

        target = _text(raw.get("target") or raw.get("selector") or raw.get("url"))
        value = raw.get("value")
        value = None if value is None else str(value)
        description = _text(raw.get("description") or raw.get("assertion") or raw.get("condition"))

        match action_type:
            case "navigate":
                target = join_url(base_url, target or value or "")
                value = None
            case "click" | "fill":
                if not target:
                    target = guess_selector(f"{description} {value or ''}", hints) or ""
                    if not target:
                        return PlanInvalid(reason=f"action {i}: {action_type} requires a target selector")
                    logger.debug("Guessed selector for action %d: %s", i, target)
                if action_type == "fill" and value is None:
                    return PlanInvalid(reason=f"action {i}: fill requires a value")
            case "wait":
                if value is not None and not target:
                    try:
                        int(float(value))
                    except (ValueError, OverflowError):
                        return PlanInvalid(reason=f"action {i}: wait value must be milliseconds")
            case "assert":
                if not description and not target and value is None:
                    return PlanInvalid(reason=f"action {i}: assert has nothing to check")

        actions.append(BrowserAction(
            type=action_type,
            target=target,
            value=value,
            timeout_ms=_timeout(raw.get("timeout_ms") or raw.get("timeout")),
            description=description,
        ))

    return PlanValid(plan=ActionPlan(scenario_name=scenario_name, actions=actions, source="ai"))


def guess_selector(text: str, hints: list[SelectorHint]) -> Optional[str]:
    """Guess a selector for an action from its wording.

    Tries selector hints whose value shares a word with the text first, then
    falls back to a Playwright text selector built from a quoted phrase.
    """
    words = set(_WORD_RE.findall(text.lower()))
    for hint in hints:
        hint_words = {w for w in _WORD_RE.findall(hint.value.lower()) if len(w) >= 3}
        if hint_words and hint_words & words:
            return hint_to_selector(hint)

    quoted = _QUOTED_RE.search(text)
    if quoted:
        return f"text={quoted.group(1)}"
    return None


def hint_to_selector(hint: SelectorHint) -> str:
    kind = hint.type.lower().replace("_", "-")
    if kind in ("data-testid", "testid", "test-id"):
        return f'[data-testid="{hint.value}"]'
    if kind == "id":
        return f"#{hint.value.lstrip('#')}"
    if kind in ("aria-label", "label"):
        return f'[aria-label="{hint.value}"]'
    if kind == "name":
        return f'[name="{hint.value}"]'
    return hint.value


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _timeout(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        timeout = int(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return timeout if timeout > 0 else None

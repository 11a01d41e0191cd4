"""AI-driven synthesis of browser actions from natural-language scenarios."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from recipe_runner.ai.client import AIClient
from recipe_runner.ai.prompts.synthesis import SYNTHESIS_SYSTEM_PROMPT, build_synthesis_prompt
from recipe_runner.models.action_plan import ActionPlan, BrowserAction, PlanInvalid, PlanValid
from recipe_runner.models.recipe import SelectorHint, TestScenario

from .schema_validator import validate_action_plan

logger = logging.getLogger(__name__)

# First attempt plus one re-prompt on malformed output
MAX_ATTEMPTS = 2


class ActionSynthesizer:
    """Turns one scenario into an ActionPlan; always returns a usable plan."""

    def __init__(self, ai_client: AIClient | None, base_url: str, max_tokens: int = 2000):
        self.ai_client = ai_client
        self.base_url = base_url
        self.max_tokens = max_tokens

    async def synthesize(
        self,
        scenario: TestScenario,
        selector_hints: Optional[list[SelectorHint]] = None,
    ) -> ActionPlan:
        hints = selector_hints or []
        if self.ai_client is None:
            logger.info("No AI client configured, using heuristic plan for '%s'", scenario.name)
            return build_fallback_plan(scenario, self.base_url)

        rejection: str | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            user_message = build_synthesis_prompt(
                scenario_name=scenario.name,
                steps=scenario.steps,
                expected=scenario.expected,
                base_url=self.base_url,
                selector_hints=[h.model_dump() for h in hints],
                rejection_reason=rejection,
            )
            try:
                data = await asyncio.to_thread(
                    self.ai_client.complete_json,
                    system_prompt=SYNTHESIS_SYSTEM_PROMPT,
                    user_message=user_message,
                    max_tokens=self.max_tokens,
                    temperature=0.2,
                )
            except ValueError as e:
                # Unparseable JSON, details already dumped by AIClient
                rejection = f"response was not valid JSON ({e})"
                logger.warning("Synthesis attempt %d/%d for '%s' rejected: %s",
                               attempt, MAX_ATTEMPTS, scenario.name, rejection)
                continue
            except Exception as e:
                logger.error("AI synthesis failed for '%s': %s. Using heuristic plan.",
                             scenario.name, e)
                return build_fallback_plan(scenario, self.base_url)

            match validate_action_plan(data, scenario.name, self.base_url, hints):
                case PlanValid(plan=plan):
                    logger.info("Synthesized %d actions for '%s'", len(plan.actions), scenario.name)
                    return plan
                case PlanInvalid(reason=reason):
                    rejection = reason
                    logger.warning("Synthesis attempt %d/%d for '%s' rejected: %s",
                                   attempt, MAX_ATTEMPTS, scenario.name, reason)

        logger.warning("No valid plan for '%s' after %d attempts. Using heuristic plan.",
                       scenario.name, MAX_ATTEMPTS)
        return build_fallback_plan(scenario, self.base_url)


def build_fallback_plan(scenario: TestScenario, base_url: str) -> ActionPlan:
    """Minimal plan: open the base URL, wait for load, check the expectation as free text."""
    return ActionPlan(
        scenario_name=scenario.name,
        source="heuristic",
        actions=[
            BrowserAction(type="navigate", target=base_url, description=f"Open {base_url}"),
            BrowserAction(type="wait", target="load", description="Wait for the page to load"),
            BrowserAction(type="assert", target="", description=scenario.expected),
        ],
    )

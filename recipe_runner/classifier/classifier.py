"""Result classification: maps a ScenarioTrace to PASS / FAIL / ERROR."""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from recipe_runner.ai.client import AIClient
from recipe_runner.ai.prompts.verification import (
    VERIFICATION_SYSTEM_PROMPT,
    build_verification_prompt,
)
from recipe_runner.models.results import AssertionOutcome, ScenarioStatus, ScenarioTrace

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.7


class Classification(BaseModel):
    status: ScenarioStatus
    actual: str


class ResultClassifier:
    """Decides a scenario's status from its trace.

    Deterministic assertion outcomes decide the result when they can. Only
    free-text expectations go to the AI, and any failure while verifying
    yields FAIL, never PASS.
    """

    def __init__(self, ai_client: AIClient | None, max_tokens: int = 1000):
        self.ai_client = ai_client
        self.max_tokens = max_tokens

    async def classify(self, trace: ScenarioTrace, expected: str) -> Classification:
        if trace.thrown_error:
            return Classification(status=ScenarioStatus.ERROR, actual=f"Error: {trace.thrown_error}")

        failed = next((a for a in trace.assertions if a.passed is False), None)
        if failed is not None:
            return Classification(status=ScenarioStatus.FAIL, actual=failed.message or "Assertion failed")

        pending = [a for a in trace.assertions if a.passed is None]
        if trace.assertions and trace.assertions[-1].passed is True and not pending:
            return Classification(status=ScenarioStatus.PASS, actual=trace.assertions[-1].message)

        try:
            return await self._verify_with_ai(trace, expected)
        except Exception as e:
            logger.warning("Verification failed: %s", e)
            return Classification(status=ScenarioStatus.FAIL, actual=f"Verification failed: {e}")

    async def _verify_with_ai(self, trace: ScenarioTrace, expected: str) -> Classification:
        if self.ai_client is None:
            raise RuntimeError("no AI client configured for free-text verification")

        user_message = build_verification_prompt(
            expected=expected,
            url=trace.page.url,
            title=trace.page.title,
            visible_text=trace.page.visible_text,
            assertion_notes=[_note(a) for a in trace.assertions],
        )
        image = _encode_screenshot(trace.screenshot_path)
        if image:
            data = await asyncio.to_thread(
                self.ai_client.complete_json_with_image,
                system_prompt=VERIFICATION_SYSTEM_PROMPT,
                user_message=user_message,
                image_base64=image,
                max_tokens=self.max_tokens,
            )
        else:
            data = await asyncio.to_thread(
                self.ai_client.complete_json,
                system_prompt=VERIFICATION_SYSTEM_PROMPT,
                user_message=user_message,
                max_tokens=self.max_tokens,
            )

        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        passed = data.get("passed") is True
        try:
            confidence = float(data.get("confidence", 0.0))
        except (TypeError, ValueError):
            confidence = 0.0
        actual = str(data.get("actual_result") or data.get("reasoning") or "").strip()

        logger.debug("AI verdict: passed=%s confidence=%.2f reasoning=%s",
                     passed, confidence, data.get("reasoning", ""))

        if passed and confidence >= MIN_CONFIDENCE:
            return Classification(status=ScenarioStatus.PASS, actual=actual or "Expected result observed")
        if passed:
            return Classification(
                status=ScenarioStatus.FAIL,
                actual=f"Low-confidence pass ({confidence:.2f}): {actual}".rstrip(": "),
            )
        return Classification(status=ScenarioStatus.FAIL, actual=actual or "Expected result not observed")


def _note(outcome: AssertionOutcome) -> str:
    state = {True: "passed", False: "failed", None: "unchecked"}[outcome.passed]
    label = outcome.description or outcome.target or outcome.expected_text or "assertion"
    return f"{label}: {state}" + (f" ({outcome.message})" if outcome.message else "")


def _encode_screenshot(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    try:
        return base64.b64encode(Path(path).read_bytes()).decode()
    except OSError as e:
        logger.debug("Screenshot unreadable for verification: %s", e)
        return None

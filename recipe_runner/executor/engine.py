"""Execution engine: runs one ActionPlan against the live page."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from playwright.async_api import Page

from recipe_runner.artifacts.capture import ArtifactCapture
from recipe_runner.models.action_plan import ActionPlan, BrowserAction
from recipe_runner.models.results import AssertionOutcome, PageSnapshot, ScenarioTrace

from .action_runner import run_action
from .evidence_collector import EvidenceCollector
from .session import BrowserSession

logger = logging.getLogger(__name__)

DEFAULT_ACTION_TIMEOUT_MS = 30000
VISIBLE_TEXT_LIMIT = 3000


class ActionTimeoutError(Exception):
    """An action ran past its timeout."""

    def __init__(self, index: int, action: BrowserAction, timeout_ms: int):
        self.index = index
        self.action = action
        self.timeout_ms = timeout_ms
        super().__init__(f"Action {index + 1} ({action.label()}) timed out after {timeout_ms}ms")


class ExecutionEngine:
    """Executes actions in order and records a ScenarioTrace.

    Execution stops at the first action that throws or times out. Assertion
    outcomes are collected, never raised. The trace always carries a page
    snapshot and, when enabled, a final screenshot.
    """

    def __init__(self, capture: ArtifactCapture):
        self.capture = capture

    async def execute(
        self,
        plan: ActionPlan,
        session: BrowserSession,
        timeout_ms: int = DEFAULT_ACTION_TIMEOUT_MS,
        index: int = 0,
    ) -> ScenarioTrace:
        start = time.monotonic()
        page = session.page
        collector = EvidenceCollector()
        collector.attach(page)

        executed = 0
        assertions: list[AssertionOutcome] = []
        thrown_error: Optional[str] = None

        try:
            for i, action in enumerate(plan.actions):
                limit = min(action.timeout_ms, timeout_ms) if action.timeout_ms else timeout_ms
                logger.debug("  Action %d/%d: %s", i + 1, len(plan.actions), action.label())
                try:
                    outcome = await asyncio.wait_for(
                        run_action(page, action, timeout=limit), timeout=limit / 1000)
                except asyncio.TimeoutError:
                    raise ActionTimeoutError(i, action, limit) from None
                executed += 1
                if outcome is not None:
                    assertions.append(outcome)
                    logger.debug("  Assertion %s: %s",
                                 {True: "PASSED", False: "FAILED", None: "DEFERRED"}[outcome.passed],
                                 outcome.message)
        except Exception as e:
            thrown_error = describe_error(e)
            logger.warning("Scenario '%s' stopped at action %d/%d: %s",
                           plan.scenario_name, executed + 1, len(plan.actions), thrown_error)

        snapshot = await self._snapshot(page)
        screenshot = await self.capture.take_screenshot(page, index)
        collector.detach(page)
        collector.save_logs(self.capture.logs_dir, f"scenario-{index + 1}")

        return ScenarioTrace(
            actions_executed=executed,
            duration_ms=int((time.monotonic() - start) * 1000),
            screenshot_path=screenshot,
            console_logs=list(collector.console_logs),
            network_errors=collector.network_errors,
            thrown_error=thrown_error,
            assertions=assertions,
            page=snapshot,
        )

    @staticmethod
    async def _snapshot(page: Page) -> PageSnapshot:
        snapshot = PageSnapshot()
        try:
            snapshot.url = page.url
            snapshot.title = await page.title()
            text = await page.inner_text("body", timeout=5000)
            snapshot.visible_text = text[:VISIBLE_TEXT_LIMIT]
        except Exception as e:
            logger.debug("Page snapshot incomplete: %s", e)
        return snapshot


def describe_error(error: BaseException) -> str:
    """First line of an exception message; Playwright appends a long call log."""
    message = str(error).strip()
    if not message:
        return type(error).__name__
    return message.splitlines()[0]

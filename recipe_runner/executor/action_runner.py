"""Action runner: translates BrowserAction models to Playwright calls."""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from recipe_runner.models.action_plan import BrowserAction
from recipe_runner.models.results import AssertionOutcome

logger = logging.getLogger(__name__)

LOAD_STATES = ("load", "domcontentloaded", "networkidle")
NETWORK_IDLE_WAIT_MS = 5000
ASSERT_WAIT_MS = 5000


async def run_action(
    page: Page, action: BrowserAction, timeout: int = 30000,
) -> Optional[AssertionOutcome]:
    """Execute a single action on the Playwright page.

    Returns an AssertionOutcome for assert actions and None otherwise. A
    failed assertion is reported in the outcome, never raised; every other
    failure propagates to the caller.
    """
    logger.debug("Running action: %s | target=%s | value=%s | %s",
                 action.type, action.target, action.value, action.description)

    match action.type:
        case "navigate":
            if not action.target:
                raise ValueError("navigate action requires a target URL")
            await page.goto(action.target, wait_until="domcontentloaded", timeout=timeout)
            try:
                await page.wait_for_load_state(
                    "networkidle", timeout=min(timeout, NETWORK_IDLE_WAIT_MS))
            except PlaywrightTimeoutError:
                logger.debug("Network idle timeout, continuing")

        case "click":
            if not action.target:
                raise ValueError("click action requires a target selector")
            await page.click(action.target, timeout=timeout)

        case "fill":
            if not action.target:
                raise ValueError("fill action requires a target selector")
            logger.debug("Filling %s with '%s'", action.target,
                         "***" if "password" in action.target.lower() else action.value)
            await page.fill(action.target, action.value or "", timeout=timeout)

        case "wait":
            target = action.target.strip().lower()
            if target == "navigation":
                target = "domcontentloaded"
            if target in LOAD_STATES:
                await page.wait_for_load_state(target, timeout=timeout)
            elif action.target:
                await page.wait_for_selector(action.target, timeout=timeout)
            elif action.value:
                await page.wait_for_timeout(min(int(float(action.value)), timeout))
            else:
                await page.wait_for_timeout(1000)

        case "assert":
            return await check_assertion(page, action, timeout)

        case _:
            raise ValueError(f"Unknown action type: {action.type}")

    return None


async def check_assertion(page: Page, action: BrowserAction, timeout: int = 30000) -> AssertionOutcome:
    """Evaluate an assert action deterministically where possible."""
    wait_ms = min(timeout, ASSERT_WAIT_MS)
    outcome = AssertionOutcome(
        target=action.target,
        expected_text=action.value,
        description=action.description,
    )

    if not action.target and action.value is None:
        outcome.message = "Free-text expectation, deferred to verification"
        return outcome

    selector = action.target or "body"
    locator = page.locator(selector).first
    try:
        await locator.wait_for(state="visible", timeout=wait_ms)
    except PlaywrightTimeoutError:
        outcome.passed = False
        outcome.message = f"Element '{selector}' not visible after {wait_ms}ms"
        return outcome

    if action.value is None:
        outcome.passed = True
        outcome.message = f"Element '{selector}' is visible"
        return outcome

    text = await locator.inner_text(timeout=wait_ms)
    if action.value.lower() in text.lower():
        outcome.passed = True
        outcome.message = f"'{action.value}' found in '{selector}'"
    else:
        outcome.passed = False
        outcome.message = f"'{action.value}' not found in '{selector}' (text: '{text[:100]}')"
    return outcome

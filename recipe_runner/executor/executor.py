"""Recipe executor: runs every scenario of a recipe in one browser session."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, Optional

from recipe_runner.artifacts.capture import ArtifactCapture
from recipe_runner.classifier.classifier import ResultClassifier
from recipe_runner.models.config import RunnerConfig
from recipe_runner.models.recipe import SelectorHint, TestRecipe, TestScenario
from recipe_runner.models.results import (
    SCENARIO_GAP_MS,
    ExecutionResult,
    ScenarioResult,
    ScenarioStatus,
)
from recipe_runner.synthesizer.synthesizer import ActionSynthesizer

from .engine import ExecutionEngine, describe_error
from .session import BrowserSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[Optional[Path]], BrowserSession]


def _utc_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class RecipeExecutor:
    """Executes a TestRecipe scenario by scenario and returns the aggregate result.

    Scenarios run sequentially in recipe order. A scenario that blows up
    becomes an ERROR result and the session is recovered before the next one,
    so every scenario in the recipe is accounted for.
    """

    def __init__(
        self,
        config: RunnerConfig,
        synthesizer: ActionSynthesizer,
        engine: ExecutionEngine,
        classifier: ResultClassifier,
        capture: ArtifactCapture,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.config = config
        self.synthesizer = synthesizer
        self.engine = engine
        self.classifier = classifier
        self.capture = capture
        self.session_factory = session_factory or (
            lambda video_dir: BrowserSession.from_config(config, video_dir))

    async def execute(
        self,
        recipe: TestRecipe,
        selector_hints: Optional[list[SelectorHint]] = None,
    ) -> ExecutionResult:
        started_at = _utc_now()
        start = time.monotonic()
        total = len(recipe.scenarios)
        logger.info("Starting execution %s (%d scenarios)", self.capture.execution_id, total)

        results: list[ScenarioResult] = []
        async with self.session_factory(self.capture.video_dir) as session:
            for i, scenario in enumerate(recipe.scenarios):
                if i:
                    await asyncio.sleep(SCENARIO_GAP_MS / 1000)
                logger.info("Running scenario [%d/%d]: %s (%s)",
                            i + 1, total, scenario.name, scenario.priority.value)
                result = await self._run_scenario(session, scenario, i, selector_hints)
                results.append(result)
                logger.info("[%s] %s (%.1fs)", result.status.value, scenario.name,
                            result.duration_ms / 1000)
                try:
                    await session.recover()
                except Exception as e:
                    logger.error("Session recovery failed after '%s': %s", scenario.name, e)

        # The context is closed now, so the recording has been flushed
        full_video = self.capture.finalize_video()

        result = ExecutionResult.from_scenarios(
            execution_id=self.capture.execution_id,
            scenarios=results,
            base_url=self.synthesizer.base_url,
            started_at=started_at,
            completed_at=_utc_now(),
            duration_ms=int((time.monotonic() - start) * 1000),
            full_video_path=full_video,
        )
        self.capture.save_results(result)
        logger.info(
            "Execution complete: %d passed, %d failed (%d errors), %d skipped (%.1fs)",
            result.passed, result.failed, result.errors, result.skipped,
            result.duration_ms / 1000,
        )
        return result

    async def _run_scenario(
        self,
        session: BrowserSession,
        scenario: TestScenario,
        index: int,
        selector_hints: Optional[list[SelectorHint]],
    ) -> ScenarioResult:
        start = time.monotonic()
        try:
            plan = await self.synthesizer.synthesize(scenario, selector_hints)
            trace = await self.engine.execute(
                plan, session, timeout_ms=self.config.action_timeout_ms, index=index)
            verdict = await self.classifier.classify(trace, scenario.expected)
            return ScenarioResult.from_trace(
                scenario, trace, verdict.status, verdict.actual, plan_source=plan.source)
        except Exception as e:
            error = describe_error(e)
            logger.error("Scenario '%s' crashed: %s", scenario.name, error, exc_info=True)
            return ScenarioResult(
                scenario=scenario.name,
                priority=scenario.priority,
                steps=scenario.steps,
                status=ScenarioStatus.ERROR,
                expected=scenario.expected,
                actual=f"Error: {error}",
                duration_ms=int((time.monotonic() - start) * 1000),
                error=error,
            )

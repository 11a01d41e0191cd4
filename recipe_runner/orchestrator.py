"""Pipeline orchestrator: check run, execution, artifacts, report, comment."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from recipe_runner.ai.client import AIClient
from recipe_runner.artifacts.capture import ArtifactCapture
from recipe_runner.artifacts.storage import LocalArtifactStore
from recipe_runner.checks.github import GitHubClient
from recipe_runner.checks.tracker import CheckRunTracker
from recipe_runner.classifier.classifier import ResultClassifier
from recipe_runner.executor.engine import ExecutionEngine, describe_error
from recipe_runner.executor.executor import RecipeExecutor, SessionFactory
from recipe_runner.models.config import RunnerConfig
from recipe_runner.models.recipe import SelectorHint, TestRecipe
from recipe_runner.models.results import ExecutionResult
from recipe_runner.reporter.markdown_report import (
    MAX_COMMENT_LENGTH,
    render_error_comment,
    render_quick_summary,
    render_report,
)
from recipe_runner.synthesizer.synthesizer import ActionSynthesizer
from recipe_runner.triggers import evaluate_trigger

logger = logging.getLogger(__name__)


class PullRequestRef(BaseModel):
    owner: str
    repo: str
    number: int
    head_sha: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}#{self.number}"


class OrchestrationOutcome(BaseModel):
    triggered: bool
    success: bool = False
    reason: str = ""
    execution_id: Optional[str] = None
    check_run_id: Optional[int] = None
    result: Optional[ExecutionResult] = None
    video_url: Optional[str] = None
    screenshot_urls: dict[int, str] = Field(default_factory=dict)
    comment_posted: bool = False
    error: Optional[str] = None


def build_ai_client(config: RunnerConfig) -> AIClient | None:
    """AIClient from config, or None when no API key is available."""
    try:
        return AIClient(model=config.ai_model, max_tokens=config.ai_max_tokens,
                        debug_dir=Path(config.runs_dir) / "debug")
    except EnvironmentError as e:
        logger.warning("AI client unavailable: %s. Running in fallback mode.", e)
        return None


class Orchestrator:
    """Runs a recipe against a pull request and reports back to GitHub.

    ``run()`` is the failure boundary: whatever happens inside, the check run
    ends in exactly one terminal state, exactly one comment is posted, and no
    exception escapes to the caller.
    """

    def __init__(
        self,
        config: RunnerConfig,
        ai_client: AIClient | None,
        github: GitHubClient,
        artifact_store: Optional[LocalArtifactStore] = None,
        session_factory: Optional[SessionFactory] = None,
    ):
        self.config = config
        self.ai_client = ai_client
        self.github = github
        self.artifact_store = artifact_store or LocalArtifactStore(
            Path(config.public_artifacts_dir), config.public_base_url)
        self.session_factory = session_factory
        self._background_tasks: set[asyncio.Task] = set()

    @property
    def pending_runs(self) -> int:
        return len(self._background_tasks)

    def launch(
        self,
        recipe: TestRecipe,
        pull_request: PullRequestRef,
        base_url: Optional[str] = None,
        selector_hints: Optional[list[SelectorHint]] = None,
        labels: Optional[Iterable[str]] = None,
        needs_qa: Optional[str] = None,
    ) -> asyncio.Task | None:
        """Schedule ``run()`` in the background and return immediately.

        Must be called from a running event loop. Returns None when the run
        is not triggered; nothing is allocated in that case.
        """
        labels = list(labels or [])
        decision = evaluate_trigger(self.config, recipe, labels, needs_qa, base_url)
        if not decision.triggered:
            logger.info("Automated tests not triggered for %s: %s", pull_request.slug, decision.reason)
            return None

        task = asyncio.create_task(self.run(
            recipe, pull_request, base_url=base_url, selector_hints=selector_hints,
            labels=labels, needs_qa=needs_qa,
        ))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def run(
        self,
        recipe: TestRecipe,
        pull_request: PullRequestRef,
        base_url: Optional[str] = None,
        selector_hints: Optional[list[SelectorHint]] = None,
        labels: Optional[Iterable[str]] = None,
        needs_qa: Optional[str] = None,
    ) -> OrchestrationOutcome:
        decision = evaluate_trigger(self.config, recipe, labels, needs_qa, base_url)
        if not decision.triggered:
            logger.info("Automated tests not triggered for %s: %s", pull_request.slug, decision.reason)
            return OrchestrationOutcome(triggered=False, reason=decision.reason)

        base_url = base_url or self.config.base_url
        execution_id = uuid.uuid4().hex
        outcome = OrchestrationOutcome(triggered=True, reason=decision.reason, execution_id=execution_id)
        tracker = CheckRunTracker(self.github, pull_request.owner, pull_request.repo,
                                  pull_request.head_sha, self.config.check_run_name)

        start = time.time()
        logger.info("=== Automated test run %s for %s (%d scenarios, %s) ===",
                    execution_id[:8], pull_request.slug, len(recipe.scenarios), base_url)
        try:
            await self._run_stages(recipe, pull_request, base_url, selector_hints, tracker, outcome)
            outcome.success = True
        except asyncio.CancelledError:
            outcome.error = "Test run was cancelled"
            await self._fail_safely(tracker, pull_request, outcome)
            raise
        except Exception as e:
            outcome.error = describe_error(e)
            logger.error("Automated test run %s failed: %s", execution_id[:8], outcome.error,
                         exc_info=True)
            await self._fail_safely(tracker, pull_request, outcome)
        finally:
            outcome.check_run_id = tracker.check_run_id

        logger.info("=== Automated test run %s %s in %.1fs ===", execution_id[:8],
                    "complete" if outcome.success else "failed", time.time() - start)
        return outcome

    async def _run_stages(
        self,
        recipe: TestRecipe,
        pull_request: PullRequestRef,
        base_url: str,
        selector_hints: Optional[list[SelectorHint]],
        tracker: CheckRunTracker,
        outcome: OrchestrationOutcome,
    ) -> None:
        logger.info("--- Stage 1: Check run ---")
        await tracker.start()

        logger.info("--- Stage 2: Execute ---")
        capture = ArtifactCapture(
            Path(self.config.runs_dir), outcome.execution_id,
            record_video=self.config.record_video,
            capture_screenshots=self.config.capture_screenshots,
        )
        executor = RecipeExecutor(
            self.config,
            synthesizer=ActionSynthesizer(self.ai_client, base_url),
            engine=ExecutionEngine(capture),
            classifier=ResultClassifier(self.ai_client),
            capture=capture,
            session_factory=self.session_factory,
        )
        result = await executor.execute(recipe, selector_hints)
        outcome.result = result

        logger.info("--- Stage 3: Publish artifacts ---")
        outcome.video_url, outcome.screenshot_urls = self.artifact_store.publish_run(result)

        logger.info("--- Stage 4: Complete check run ---")
        await tracker.complete(result)

        logger.info("--- Stage 5: Report ---")
        body = render_report(result, outcome.video_url, outcome.screenshot_urls,
                             self.config.dashboard_url)
        if len(body) > MAX_COMMENT_LENGTH:
            logger.warning("Report is %d characters (limit %d), posting the quick summary instead",
                           len(body), MAX_COMMENT_LENGTH)
            body = render_quick_summary(result, outcome.video_url)
        await self.github.create_issue_comment(
            pull_request.owner, pull_request.repo, pull_request.number, body)
        outcome.comment_posted = True
        logger.info("Report posted to %s (%d/%d passed)", pull_request.slug,
                    result.passed, result.total_tests)

    async def _fail_safely(
        self,
        tracker: CheckRunTracker,
        pull_request: PullRequestRef,
        outcome: OrchestrationOutcome,
    ) -> None:
        error = outcome.error or "Unknown error"
        try:
            await tracker.fail(error)
        except Exception as e:
            logger.error("Could not mark check run as failed: %s", e)

        if outcome.comment_posted:
            return
        try:
            await self.github.create_issue_comment(
                pull_request.owner, pull_request.repo, pull_request.number,
                render_error_comment(error))
            outcome.comment_posted = True
        except Exception as e:
            logger.error("Could not post error comment to %s: %s", pull_request.slug, e)

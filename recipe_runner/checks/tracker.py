"""Drives a single GitHub check run from start to a terminal state."""

from __future__ import annotations

import logging

from recipe_runner.models.check_run import (
    CheckRun,
    CheckRunConclusion,
    CheckRunStatus,
)
from recipe_runner.models.results import ExecutionResult
from recipe_runner.reporter.check_output import (
    IN_PROGRESS_OUTPUT,
    build_completed_output,
    build_error_output,
)

from .github import GitHubClient

logger = logging.getLogger(__name__)


class CheckRunTracker:
    """Mirrors one remote check run locally and only ever moves it forward.

    Each transition is first checked on a copy of the local ``CheckRun``, so
    an illegal transition never reaches GitHub, and is committed only after
    GitHub accepted it. A failed completion leaves the run in progress
    locally, which lets ``fail()`` retry it.
    """

    def __init__(self, client: GitHubClient, owner: str, repo: str, head_sha: str,
                 name: str = "Automated Tests"):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.check_run = CheckRun(name=name, head_sha=head_sha)

    @property
    def check_run_id(self) -> int | None:
        return self.check_run.id

    @property
    def is_terminal(self) -> bool:
        return self.check_run.is_terminal

    async def start(self) -> int:
        # Created directly as in_progress, there is no visible queued phase
        pending = self.check_run.model_copy(deep=True)
        pending.transition(CheckRunStatus.IN_PROGRESS, output=IN_PROGRESS_OUTPUT)
        pending.id = await self.client.create_check_run(
            self.owner, self.repo,
            name=pending.name,
            head_sha=pending.head_sha,
            status=CheckRunStatus.IN_PROGRESS,
            output=IN_PROGRESS_OUTPUT,
        )
        self.check_run = pending
        logger.info("Check run %d created for %s/%s@%s", self.check_run.id,
                    self.owner, self.repo, self.check_run.head_sha[:7])
        return self.check_run.id

    async def complete(self, result: ExecutionResult) -> CheckRunConclusion:
        conclusion = CheckRunConclusion.SUCCESS if result.all_passed else CheckRunConclusion.FAILURE
        output = build_completed_output(result)
        await self._finish(conclusion, output)
        logger.info("Check run %d completed: %s", self.check_run.id, conclusion.value)
        return conclusion

    async def fail(self, error: str) -> bool:
        """Force the run to completed/failure. Returns False when there was nothing to do."""
        if self.check_run.id is None:
            logger.debug("No check run was created, nothing to fail")
            return False
        if self.check_run.is_terminal:
            logger.info("Check run %d already completed (%s), not failing it again",
                        self.check_run.id, self.check_run.conclusion.value)
            return False
        await self._finish(CheckRunConclusion.FAILURE, build_error_output(error))
        logger.info("Check run %d marked as failed", self.check_run.id)
        return True

    async def _finish(self, conclusion: CheckRunConclusion, output) -> None:
        if self.check_run.id is None:
            raise RuntimeError("Check run has not been started")
        pending = self.check_run.model_copy(deep=True)
        pending.transition(CheckRunStatus.COMPLETED, conclusion, output)
        await self.client.update_check_run(
            self.owner, self.repo, pending.id,
            status=CheckRunStatus.COMPLETED,
            conclusion=conclusion,
            output=output,
        )
        self.check_run = pending

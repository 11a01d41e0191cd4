"""Check run state: queued -> in_progress -> completed{success|failure}."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

MAX_ANNOTATIONS = 50


class CheckRunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CheckRunConclusion(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"


_ORDER = {
    CheckRunStatus.QUEUED: 0,
    CheckRunStatus.IN_PROGRESS: 1,
    CheckRunStatus.COMPLETED: 2,
}


class CheckRunTransitionError(RuntimeError):
    pass


class Annotation(BaseModel):
    path: str = "test-results"
    start_line: int = 1
    end_line: int = 1
    annotation_level: str = "failure"
    title: str = ""
    message: str = ""
    raw_details: str = ""


class CheckRunOutput(BaseModel):
    title: str
    summary: str
    text: str = ""
    annotations: list[Annotation] = Field(default_factory=list, max_length=MAX_ANNOTATIONS)


class CheckRun(BaseModel):
    id: Optional[int] = None
    name: str
    head_sha: str
    status: CheckRunStatus = CheckRunStatus.QUEUED
    conclusion: Optional[CheckRunConclusion] = None
    output: Optional[CheckRunOutput] = None

    @property
    def is_terminal(self) -> bool:
        return self.status == CheckRunStatus.COMPLETED

    def transition(
        self,
        status: CheckRunStatus,
        conclusion: Optional[CheckRunConclusion] = None,
        output: Optional[CheckRunOutput] = None,
    ) -> None:
        """Move the run forward; completed runs never change again."""
        if self.is_terminal:
            raise CheckRunTransitionError(
                f"Check run {self.id} is already completed ({self.conclusion.value})"
            )
        if _ORDER[status] < _ORDER[self.status]:
            raise CheckRunTransitionError(
                f"Cannot move check run from {self.status.value} back to {status.value}"
            )
        if status == CheckRunStatus.COMPLETED and conclusion is None:
            raise CheckRunTransitionError("A completed check run requires a conclusion")
        if status != CheckRunStatus.COMPLETED and conclusion is not None:
            raise CheckRunTransitionError("Only completed check runs carry a conclusion")
        self.status = status
        self.conclusion = conclusion
        if output is not None:
            self.output = output

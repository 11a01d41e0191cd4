"""Video timeline: where each scenario starts in the full run recording."""

from __future__ import annotations

from dataclasses import dataclass

from recipe_runner.models.results import SCENARIO_GAP_MS, ExecutionResult, ScenarioStatus


@dataclass(frozen=True)
class TimelineEntry:
    index: int
    scenario: str
    status: ScenarioStatus
    start_seconds: float
    end_seconds: float

    @property
    def start_label(self) -> str:
        return format_timestamp(self.start_seconds)

    @property
    def end_label(self) -> str:
        return format_timestamp(self.end_seconds)

    def jump_url(self, video_url: str) -> str:
        return f"{video_url}#t={int(self.start_seconds)}"


def format_timestamp(seconds: float) -> str:
    """MM:SS, minutes zero-padded and not wrapped at an hour."""
    total = int(seconds)
    return f"{total // 60:02d}:{total % 60:02d}"


def format_duration(ms: int) -> str:
    total = int(ms // 1000)
    return f"{total // 60}m {total % 60}s"


def build_timeline(result: ExecutionResult) -> list[TimelineEntry]:
    entries = []
    offset = 0.0
    gap = SCENARIO_GAP_MS / 1000
    for i, scenario in enumerate(result.scenarios):
        duration = scenario.duration_ms / 1000
        entries.append(TimelineEntry(
            index=i,
            scenario=scenario.scenario,
            status=scenario.status,
            start_seconds=offset,
            end_seconds=offset + duration,
        ))
        offset += duration + gap
    return entries

"""Output payloads for the GitHub check run."""

from __future__ import annotations

from recipe_runner.models.check_run import MAX_ANNOTATIONS, Annotation, CheckRunOutput
from recipe_runner.models.results import ExecutionResult, ScenarioResult, ScenarioStatus

from .markdown_report import group_by_priority, priority_label, status_icon
from .timeline import format_duration

IN_PROGRESS_OUTPUT = CheckRunOutput(
    title="🤖 Running automated test suite...",
    summary="Test execution in progress. This may take a few minutes.",
    text="Executing the test recipe with Playwright browser automation.",
)


def build_check_title(result: ExecutionResult) -> str:
    if result.all_passed:
        return f"✅ All {result.total_tests} tests passed!"
    return f"❌ {result.failed} of {result.total_tests} tests failed"


def build_check_summary(result: ExecutionResult, omitted_annotations: int = 0) -> str:
    lines = [
        "### Test Execution Summary",
        "",
        f"**Duration:** {format_duration(result.duration_ms)}",
        f"**Pass Rate:** {result.pass_rate}%",
        "",
        "| Status | Count |",
        "|--------|-------|",
        f"| ✅ Passed | {result.passed} |",
        f"| ❌ Failed | {result.failed} |",
        f"| ⏭️ Skipped | {result.skipped} |",
        f"| **Total** | **{result.total_tests}** |",
    ]
    failures = result.failures()
    if failures:
        lines += ["", "### ⚠️ Failed Tests", ""]
        lines += [f"- **{s.scenario}** ({priority_label(s.priority)})" for s in failures]
    if omitted_annotations:
        lines += ["", f"_{omitted_annotations} failure annotation(s) omitted; "
                      f"GitHub accepts at most {MAX_ANNOTATIONS} per update._"]
    return "\n".join(lines)


def build_check_text(result: ExecutionResult) -> str:
    lines = ["## Test Results by Priority"]
    for priority, scenarios in group_by_priority(result):
        passed = sum(1 for s in scenarios if s.status == ScenarioStatus.PASS)
        lines += [
            "",
            f"### {priority_label(priority)} ({passed}/{len(scenarios)} passed)",
            "",
            "| Test Scenario | Status | Duration |",
            "|--------------|--------|----------|",
        ]
        lines += [
            f"| {s.scenario} | {status_icon(s.status)} {s.status.value} | {s.duration_ms / 1000:.1f}s |"
            for s in scenarios
        ]
    return "\n".join(lines)


def build_annotations(result: ExecutionResult) -> list[Annotation]:
    """One failure annotation per failed scenario, uncapped."""
    return [
        Annotation(
            start_line=i,
            end_line=i,
            title=f"❌ {s.scenario}",
            message=s.error or s.actual or "Test failed without specific error message",
            raw_details=_annotation_details(s),
        )
        for i, s in enumerate(result.failures(), 1)
    ]


def _annotation_details(s: ScenarioResult) -> str:
    parts = [
        f"Test Scenario: {s.scenario}",
        f"Priority: {priority_label(s.priority)}",
        f"Duration: {s.duration_ms / 1000:.2f}s",
        "",
        f"Steps:\n{s.steps}",
        "",
        f"Expected Result:\n{s.expected}",
    ]
    if s.actual:
        parts += ["", f"Actual Result:\n{s.actual}"]
    if s.error and s.error != s.actual:
        parts += ["", f"Error:\n{s.error}"]
    if s.console_logs:
        parts += ["", "Console Logs:"]
        parts += [f"[{log.type}] {log.text}" for log in s.console_logs[:5]]
        if len(s.console_logs) > 5:
            parts.append(f"... and {len(s.console_logs) - 5} more logs")
    if s.network_errors:
        parts += ["", "Network Errors:"]
        parts += [f"- {e.url}: {e.failure}" for e in s.network_errors]
    return "\n".join(parts)


def build_completed_output(result: ExecutionResult) -> CheckRunOutput:
    annotations = build_annotations(result)
    omitted = max(0, len(annotations) - MAX_ANNOTATIONS)
    return CheckRunOutput(
        title=build_check_title(result),
        summary=build_check_summary(result, omitted_annotations=omitted),
        text=build_check_text(result),
        annotations=annotations[:MAX_ANNOTATIONS],
    )


def build_error_output(message: str) -> CheckRunOutput:
    return CheckRunOutput(
        title="❌ Test execution failed",
        summary="An error occurred during test execution. No test report was produced.",
        text=f"**Error Message:**\n```\n{message}\n```",
    )

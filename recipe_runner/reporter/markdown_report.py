"""Markdown report posted as the pull request comment.

Every function here is a pure function of its arguments: rendering the same
result twice gives byte-identical output.
"""

from __future__ import annotations

from typing import Optional

from recipe_runner.models.recipe import PRIORITY_ORDER, Priority
from recipe_runner.models.results import ExecutionResult, ScenarioResult, ScenarioStatus

from .timeline import build_timeline, format_duration

REPORT_TITLE = "## 🤖 Automated Test Execution Results"
BAR_WIDTH = 20

# GitHub rejects issue comments longer than this
MAX_COMMENT_LENGTH = 65536
QUICK_SUMMARY_FAILURES = 100

_STATUS_ICONS = {
    ScenarioStatus.PASS: "✅",
    ScenarioStatus.FAIL: "❌",
    ScenarioStatus.ERROR: "⚠️",
    ScenarioStatus.SKIP: "⏭️",
}

_PRIORITY_ICONS = {
    Priority.SMOKE: "💨",
    Priority.HAPPY_PATH: "🎯",
    Priority.CRITICAL_PATH: "🔍",
    Priority.EDGE_CASE: "🧪",
    Priority.REGRESSION: "🔄",
    Priority.UNKNOWN: "📋",
}


def priority_label(priority: Priority) -> str:
    return "Other" if priority == Priority.UNKNOWN else priority.value


def group_by_priority(result: ExecutionResult) -> list[tuple[Priority, list[ScenarioResult]]]:
    """Non-empty priority buckets in reporting order, recipe order within each."""
    groups = []
    for priority in PRIORITY_ORDER:
        scenarios = [s for s in result.scenarios if s.priority == priority]
        if scenarios:
            groups.append((priority, scenarios))
    return groups


def status_icon(status: ScenarioStatus) -> str:
    return _STATUS_ICONS.get(status, "❓")


def _cell(text: str) -> str:
    return (text or "").replace("|", "\\|").replace("\n", " ").strip()


def _percent(count: int, total: int) -> int:
    return round(count / total * 100) if total else 0


def _seconds(ms: int, digits: int = 1) -> str:
    return f"{ms / 1000:.{digits}f}s"


def _badge_color(rate: int) -> str:
    if rate >= 80:
        return "green"
    if rate >= 60:
        return "yellow"
    return "red"


def render_report(
    result: ExecutionResult,
    video_url: Optional[str] = None,
    screenshot_urls: Optional[dict[int, str]] = None,
    dashboard_url: Optional[str] = None,
) -> str:
    """Full PR comment for a completed run.

    ``screenshot_urls`` is keyed by the scenario's index in ``result.scenarios``,
    since scenario names are not unique.
    """
    screenshot_urls = screenshot_urls or {}
    sections = [
        _render_header(result),
        _render_summary_table(result),
    ]
    if video_url:
        sections.append(_render_video(result, video_url))
    sections.append("---")
    sections.append(_render_results_by_priority(result, screenshot_urls))
    if result.failures():
        sections.append("---")
        sections.append(_render_failure_details(result, screenshot_urls, video_url))
    sections.append("---")
    sections.append(_render_coverage(result))
    sections.append(_render_recommendations(result))
    if result.failed:
        sections.append("---")
        sections.append(
            "> ⚠️ **If tests failed** because of login, missing test data, or environment setup: "
            "make sure the test environment has the required test accounts and seed data. "
            "Credentials are never injected by the runner."
        )
    sections.append("---")
    sections.append(_render_footer(dashboard_url))
    return "\n\n".join(sections) + "\n"


def _render_header(result: ExecutionResult) -> str:
    rate = result.pass_rate
    if result.all_passed:
        badge = "![All Tests Passed](https://img.shields.io/badge/tests-passing-brightgreen)"
    else:
        badge = "![Tests Failed](https://img.shields.io/badge/tests-failing-red)"
    rate_badge = f"![Pass Rate](https://img.shields.io/badge/pass_rate-{rate}%25-{_badge_color(rate)})"
    run_duration = format_duration(sum(s.duration_ms for s in result.scenarios))
    return (
        f"{REPORT_TITLE}\n\n"
        f"{badge} {rate_badge}\n\n"
        f"**{result.passed}/{result.total_tests} tests passed**\n\n"
        f"**Test Run:** #{result.execution_id[:8]} | **Duration:** {run_duration} | **Browser:** Chromium"
    )


def _render_summary_table(result: ExecutionResult) -> str:
    total = result.total_tests
    rows = [
        "### Summary",
        "",
        "| Status | Count | Percentage |",
        "|--------|-------|------------|",
        f"| ✅ **Passed** | {result.passed} | {_percent(result.passed, total)}% |",
        f"| ❌ **Failed** | {result.failed} | {_percent(result.failed, total)}% |",
        f"| ⏭️ **Skipped** | {result.skipped} | {_percent(result.skipped, total)}% |",
        f"| **Total** | **{total}** | {100 if total else 0}% |",
    ]
    if result.errors:
        rows.append("")
        rows.append(f"_{result.errors} of the failures were execution errors._")
    return "\n".join(rows)


def _render_video(result: ExecutionResult, video_url: str) -> str:
    lines = [
        "### 🎥 Test Execution Video",
        "",
        f"[📹 Watch Full Test Run]({video_url})",
    ]
    timeline = build_timeline(result)
    if timeline:
        lines.append("")
        lines.append("**Jump to specific tests:**")
        for entry in timeline:
            icon = "✅" if entry.status == ScenarioStatus.PASS else "❌"
            lines.append(
                f"- [{icon} {entry.scenario}]({entry.jump_url(video_url)}) "
                f"({entry.start_label} - {entry.end_label})"
            )
    return "\n".join(lines)


def _render_results_by_priority(result: ExecutionResult, screenshot_urls: dict[int, str]) -> str:
    lines = ["## Test Results by Priority"]
    for priority in PRIORITY_ORDER:
        rows = [(i, s) for i, s in enumerate(result.scenarios) if s.priority == priority]
        if not rows:
            continue
        passed = sum(1 for _, s in rows if s.status == ScenarioStatus.PASS)
        lines += [
            "",
            f"### {_PRIORITY_ICONS[priority]} {priority_label(priority)} Tests "
            f"({passed}/{len(rows)} passed)",
            "",
            "| Scenario | Status | Duration | Screenshot |",
            "|----------|--------|----------|------------|",
        ]
        for index, s in rows:
            url = screenshot_urls.get(index)
            shot = f"[📸 View]({url})" if url else "-"
            lines.append(
                f"| {_cell(s.scenario)} | {status_icon(s.status)} {s.status.value} "
                f"| {_seconds(s.duration_ms)} | {shot} |"
            )
    if len(lines) == 1:
        lines += ["", "_No scenarios were executed._"]
    return "\n".join(lines)


def _render_failure_details(
    result: ExecutionResult,
    screenshot_urls: dict[int, str],
    video_url: Optional[str],
) -> str:
    timeline = {e.index: e for e in build_timeline(result)} if video_url else {}
    blocks = ["## ❌ Failed Test Details"]

    for n, (index, s) in enumerate(
        ((i, s) for i, s in enumerate(result.scenarios) if s.status.is_failure), 1
    ):
        lines = [
            f'### <a name="fail-{n}"></a>🐛 {s.scenario}',
            "",
            f"**Priority:** {priority_label(s.priority)} | **Status:** {s.status.value} "
            f"| **Duration:** {_seconds(s.duration_ms, 2)}",
            "",
            "#### Expected Result",
            s.expected,
        ]
        if s.actual:
            lines += ["", "#### Actual Result", s.actual]
        if s.error and s.error != s.actual:
            lines += ["", "#### Error Message", "```", s.error, "```"]
        lines += ["", "#### Steps to Reproduce", s.steps]

        url = screenshot_urls.get(index)
        if url:
            lines += ["", "#### Screenshot", f"![{_cell(s.scenario)}]({url})"]

        entry = timeline.get(index)
        if entry is not None:
            lines += ["", "#### Video",
                      f"[▶️ Watch this test at {entry.start_label}]({entry.jump_url(video_url)})"]

        if s.console_logs:
            lines += ["", "<details>", f"<summary>📋 Console Logs ({len(s.console_logs)})</summary>",
                      "", "```"]
            lines += [f"[{log.type}] {log.text}" for log in s.console_logs[:10]]
            lines += ["```", "</details>"]

        if s.network_errors:
            lines += ["", "<details>", f"<summary>🌐 Network Errors ({len(s.network_errors)})</summary>",
                      "", "```"]
            for err in s.network_errors:
                lines.append(f"{err.method} {err.url}")
                lines.append(f"  Error: {err.failure}")
            lines += ["```", "</details>"]

        blocks.append("\n".join(lines))

    return "\n\n".join(blocks)


def coverage_bar(passed: int, total: int) -> str:
    filled = round(_percent(passed, total) / 100 * BAR_WIDTH)
    return "█" * filled + "░" * (BAR_WIDTH - filled)


def _render_coverage(result: ExecutionResult) -> str:
    lines = ["## 📊 Test Coverage by Priority", "", "```"]
    for priority, scenarios in group_by_priority(result):
        passed = sum(1 for s in scenarios if s.status == ScenarioStatus.PASS)
        total = len(scenarios)
        lines.append(
            f"{priority_label(priority):<15} {coverage_bar(passed, total)} "
            f"{_percent(passed, total)}% ({passed}/{total})"
        )
    lines.append("```")
    return "\n".join(lines)


def _render_recommendations(result: ExecutionResult) -> str:
    lines = ["## 💡 Recommendations", ""]
    failures = result.failures()

    if not failures:
        lines += [
            "✅ **All tests passed!** This PR is ready for review and merge.",
            "",
            "- All test scenarios executed successfully",
            "- No blocking issues detected",
        ]
        return "\n".join(lines)

    blocking = [s for s in failures if s.priority.blocks_merge]
    for priority in PRIORITY_ORDER:
        count = sum(1 for s in blocking if s.priority == priority)
        if count:
            lines.append(
                f"🚨 **CRITICAL:** {count} {priority.value} test(s) failed. "
                f"These are core functionality issues that should be fixed before merging."
            )
            lines.append("")

    if not blocking:
        if len(failures) >= 3:
            lines.append(f"⚠️ **{len(failures)} non-blocking tests failed.** "
                         "Investigate before merging; this many failures may point to a shared cause.")
        else:
            lines.append(f"⚠️ **{len(failures)} non-blocking test(s) failed.** "
                         "Review the failures and decide whether they are acceptable for this change.")
        lines.append("")

    lines.append("**Recommended Actions:**")
    actions = []
    if blocking:
        actions.append("❌ **Do not merge** until the blocking tests pass")
    actions += [
        "Review failed test details above",
        "Watch the video recording to understand failures",
        "Fix identified issues and push new commits",
    ]
    lines += [f"{i}. {a}" for i, a in enumerate(actions, 1)]
    return "\n".join(lines)


def _render_footer(dashboard_url: Optional[str]) -> str:
    parts = ["🤖 Automated test run"]
    if dashboard_url:
        parts.append(f"[Test Configuration]({dashboard_url})")
    parts.append("Powered by Playwright")
    return f"<sub>{' • '.join(parts)}</sub>"


def render_error_comment(message: str) -> str:
    """Short notice posted when the run itself failed."""
    return (
        "## ❌ Automated Test Execution Failed\n\n"
        "The automated test run could not be completed, so no test report is available.\n\n"
        f"**Error:**\n```\n{message}\n```\n\n"
        "The check run for this commit has been marked as failed. "
        "Push a new commit or re-trigger the run once the problem is resolved.\n"
    )


def render_quick_summary(result: ExecutionResult, video_url: Optional[str] = None) -> str:
    """Compact variant posted when the full report exceeds ``MAX_COMMENT_LENGTH``."""
    icon = "✅" if result.all_passed else "❌"
    lines = [
        f"## {icon} Automated Test Results",
        "",
        f"**{result.passed}/{result.total_tests} tests passed**",
    ]
    if video_url:
        lines += ["", f"[📹 Watch Full Test Run]({video_url})"]
    failures = result.failures()
    if failures:
        lines += ["", "Failed tests:"]
        lines += [f"- {_cell(s.scenario)[:120]} ({priority_label(s.priority)}, {s.status.value})"
                  for s in failures[:QUICK_SUMMARY_FAILURES]]
        if len(failures) > QUICK_SUMMARY_FAILURES:
            lines.append(f"- ... and {len(failures) - QUICK_SUMMARY_FAILURES} more")
    lines += ["", "_The full report was too long for a comment; see the check run for details._"]
    return "\n".join(lines) + "\n"

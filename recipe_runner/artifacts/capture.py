"""Per-run artifact capture: screenshots, the run video and results.json."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from playwright.async_api import Page

from recipe_runner.models.results import ExecutionResult
from recipe_runner.reporter.json_report import generate_json_report

logger = logging.getLogger(__name__)

FULL_VIDEO_NAME = "full-test-run.webm"
RESULTS_FILE = "results.json"


class ArtifactCapture:
    """Lays out ``<runs_dir>/<execution_id>/`` and writes artifacts into it."""

    def __init__(
        self,
        runs_dir: Path,
        execution_id: str,
        record_video: bool = True,
        capture_screenshots: bool = True,
    ):
        self.execution_id = execution_id
        self.run_dir = Path(runs_dir) / execution_id
        self.screenshots_dir = self.run_dir / "screenshots"
        self.logs_dir = self.run_dir / "logs"
        self.video_dir: Optional[Path] = self.run_dir / "videos" if record_video else None
        self.capture_screenshots = capture_screenshots

        self.run_dir.mkdir(parents=True, exist_ok=True)
        if capture_screenshots:
            self.screenshots_dir.mkdir(exist_ok=True)

    def screenshot_path(self, index: int) -> Path:
        return self.screenshots_dir / f"scenario-{index + 1}.png"

    async def take_screenshot(self, page: Page, index: int) -> Optional[str]:
        """Full-page screenshot for scenario ``index`` (0-based). Never raises."""
        if not self.capture_screenshots:
            return None
        path = self.screenshot_path(index)
        try:
            await page.screenshot(path=str(path), full_page=True)
            return str(path)
        except Exception as e:
            logger.warning("Screenshot for scenario %d failed: %s", index + 1, e)
            return None

    def finalize_video(self) -> Optional[str]:
        """Promote the run's first recording to ``full-test-run.webm``.

        Must be called after the browser context is closed, otherwise the
        recording is not flushed yet.
        """
        if self.video_dir is None or not self.video_dir.is_dir():
            return None
        videos = sorted(self.video_dir.glob("*.webm"), key=lambda p: p.stat().st_mtime)
        if not videos:
            logger.warning("Video recording enabled but no video found in %s", self.video_dir)
            return None
        if len(videos) > 1:
            logger.info("%d recordings found (page was recovered), keeping the first", len(videos))

        dest = self.run_dir / FULL_VIDEO_NAME
        try:
            shutil.move(str(videos[0]), dest)
        except OSError as e:
            logger.warning("Could not move video %s: %s", videos[0], e)
            return None
        logger.info("Run video saved: %s", dest)
        return str(dest)

    def save_results(self, result: ExecutionResult) -> Path:
        path = self.run_dir / RESULTS_FILE
        generate_json_report(result, path)
        logger.debug("Results written to %s", path)
        return path

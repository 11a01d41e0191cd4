"""Publishing run artifacts to a location the report can link to."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from recipe_runner.models.results import ExecutionResult
from recipe_runner.url_utils import safe_filename

logger = logging.getLogger(__name__)

URL_PREFIX = "test-artifacts"


class ArtifactUploadError(RuntimeError):
    """An artifact could not be published."""


class LocalArtifactStore:
    """Copies artifacts into a statically served directory.

    Files land in ``<public_dir>/<execution_id>/<name>`` and are addressed as
    ``<public_base_url>/test-artifacts/<execution_id>/<name>``.
    """

    def __init__(self, public_dir: Path, public_base_url: str):
        self.public_dir = Path(public_dir)
        self.public_base_url = public_base_url.rstrip("/")

    def url_for(self, execution_id: str, name: str) -> str:
        return f"{self.public_base_url}/{URL_PREFIX}/{execution_id}/{name}"

    def publish(self, source_path: str | Path, execution_id: str, name: str) -> str:
        source = Path(source_path)
        if not source.is_file():
            raise ArtifactUploadError(f"Artifact not found: {source}")

        dest_dir = self.public_dir / execution_id
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, dest_dir / name)
        except OSError as e:
            raise ArtifactUploadError(f"Failed to publish {source.name}: {e}") from e

        url = self.url_for(execution_id, name)
        logger.debug("Published %s -> %s", source, url)
        return url

    def publish_run(self, result: ExecutionResult) -> tuple[Optional[str], dict[int, str]]:
        """Publish the run video and every scenario screenshot.

        Returns ``(video_url, {scenario index: screenshot url})``; the index is the
        position in ``result.scenarios``.
        """
        screenshot_urls: dict[int, str] = {}
        for index, scenario in enumerate(result.scenarios):
            if not scenario.screenshot_path:
                continue
            name = f"{index + 1:02d}-{safe_filename(scenario.scenario)}.png"
            screenshot_urls[index] = self.publish(
                scenario.screenshot_path, result.execution_id, name)

        video_url = None
        if result.full_video_path:
            video_url = self.publish(
                result.full_video_path, result.execution_id,
                f"test-run-{result.execution_id}.webm")

        logger.info("Published %d screenshot(s)%s for %s", len(screenshot_urls),
                    " and video" if video_url else "", result.execution_id)
        return video_url, screenshot_urls

"""Evidence collector: console messages and failed requests for one scenario."""

from __future__ import annotations

import json
import logging
from collections import deque
from pathlib import Path
from typing import Optional

from playwright.async_api import ConsoleMessage, Page, Request

from recipe_runner.models.results import MAX_CONSOLE_ENTRIES, ConsoleEntry, NetworkFailure

logger = logging.getLogger(__name__)


class EvidenceCollector:
    """Captures telemetry for exactly one scenario's execution window.

    Listeners are attached at scenario start and detached at the end so a
    page shared across scenarios never leaks entries into the next trace.
    """

    def __init__(self, max_console_entries: int = MAX_CONSOLE_ENTRIES):
        self.console_logs: deque[ConsoleEntry] = deque(maxlen=max_console_entries)
        self.network_errors: list[NetworkFailure] = []
        self.console_total = 0

    def _on_console(self, msg: ConsoleMessage) -> None:
        self.console_total += 1
        self.console_logs.append(ConsoleEntry(type=msg.type, text=msg.text))

    def _on_request_failed(self, request: Request) -> None:
        self.network_errors.append(NetworkFailure(
            url=request.url,
            method=request.method,
            failure=request.failure or "",
        ))

    def attach(self, page: Page) -> None:
        page.on("console", self._on_console)
        page.on("requestfailed", self._on_request_failed)

    def detach(self, page: Page) -> None:
        try:
            page.remove_listener("console", self._on_console)
            page.remove_listener("requestfailed", self._on_request_failed)
        except Exception as e:
            logger.debug("Could not detach evidence listeners: %s", e)

    def save_logs(self, logs_dir: Path, label: str) -> Optional[Path]:
        """Persist collected logs next to the run's other artifacts."""
        try:
            logs_dir.mkdir(parents=True, exist_ok=True)
            path = logs_dir / f"{label}.json"
            with open(path, "w") as f:
                json.dump({
                    "console_total": self.console_total,
                    "console": [e.model_dump() for e in self.console_logs],
                    "network_errors": [e.model_dump() for e in self.network_errors],
                }, f, indent=2)
            return path
        except OSError as e:
            logger.warning("Failed to save logs for %s: %s", label, e)
            return None

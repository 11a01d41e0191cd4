"""Triggering policy and webhook delivery de-duplication."""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

from pydantic import BaseModel

from recipe_runner.models.config import RunnerConfig
from recipe_runner.models.recipe import TestRecipe

logger = logging.getLogger(__name__)


class TriggerDecision(BaseModel):
    triggered: bool
    reason: str = ""


def evaluate_trigger(
    config: RunnerConfig,
    recipe: Optional[TestRecipe],
    labels: Optional[Iterable[str]] = None,
    needs_qa: Optional[str] = None,
    base_url: Optional[str] = None,
) -> TriggerDecision:
    """Decide whether a run should start. Pure, no resources are touched."""
    if not config.automation_enabled:
        return TriggerDecision(triggered=False, reason="Test automation is disabled")

    if config.trigger_labels:
        pr_labels = {label.strip().lower() for label in labels or []}
        wanted = {label.lower() for label in config.trigger_labels}
        if not pr_labels & wanted:
            return TriggerDecision(
                triggered=False,
                reason=f"None of the trigger labels present ({', '.join(config.trigger_labels)})",
            )

    if needs_qa is not None and needs_qa.strip().lower() == "no":
        return TriggerDecision(triggered=False, reason="Analysis marked the change as not needing QA")

    if recipe is None or recipe.is_empty:
        return TriggerDecision(triggered=False, reason="No test scenarios in recipe")

    if not (base_url or config.base_url):
        return TriggerDecision(triggered=False, reason="No base URL configured")

    return TriggerDecision(triggered=True, reason="Triggered")


class DeliveryDeduplicator:
    """Remembers ``(entity_id, event_id)`` pairs for ``ttl_seconds``.

    Webhook providers redeliver events; the ingestion layer asks ``seen()``
    before launching a run.
    """

    def __init__(self, ttl_seconds: float = 600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._seen: dict[tuple[str, str], float] = {}

    def seen(self, entity_id: str, event_id: str) -> bool:
        now = self.clock()
        self._evict(now)
        key = (str(entity_id), str(event_id))
        if key in self._seen:
            logger.debug("Duplicate delivery ignored: %s/%s", entity_id, event_id)
            return True
        self._seen[key] = now
        return False

    def _evict(self, now: float) -> None:
        expired = [k for k, ts in self._seen.items() if now - ts >= self.ttl_seconds]
        for key in expired:
            del self._seen[key]

    def __len__(self) -> int:
        return len(self._seen)

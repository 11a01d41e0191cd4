"""Primitive browser actions synthesized from one scenario."""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

ActionType = Literal["navigate", "click", "fill", "wait", "assert"]

ACTION_TYPES = ("navigate", "click", "fill", "wait", "assert")


class BrowserAction(BaseModel):
    type: ActionType
    target: str = ""  # URL for navigate, selector otherwise; empty assert target = whole page
    value: Optional[str] = None  # text to fill, or literal text an assert expects
    timeout_ms: Optional[int] = None
    description: str = ""

    def label(self) -> str:
        return f"{self.type} {self.target or self.description or ''}".strip()


class ActionPlan(BaseModel):
    scenario_name: str
    actions: list[BrowserAction] = Field(min_length=1)
    source: Literal["ai", "heuristic"] = "ai"

    def has_action(self, action_type: str) -> bool:
        return any(a.type == action_type for a in self.actions)


class PlanValid(BaseModel):
    plan: ActionPlan


class PlanInvalid(BaseModel):
    reason: str


PlanValidation = Union[PlanValid, PlanInvalid]

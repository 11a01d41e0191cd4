"""System prompts for converting a natural-language scenario into browser actions."""

from __future__ import annotations

SYNTHESIS_SYSTEM_PROMPT = """You are a test automation expert. Convert one natural-language test scenario into a short sequence of primitive Playwright browser actions.

CRITICAL: Return ONLY valid JSON. No markdown fences, no comments, no text before or after the JSON object.

Return exactly this JSON structure:

{"actions": [{"type": "navigate", "target": "/login", "value": null, "timeout_ms": null, "description": "Open the login page"}]}

Action fields:
- type: one of "navigate", "click", "fill", "wait", "assert"
- target: for navigate, a URL or a path relative to the base URL; for click/fill/wait/assert, a CSS or Playwright selector. For wait, target may also be "load" or "networkidle". For assert, an empty string means the whole page.
- value: for fill, the text to type; for assert, literal text that must appear inside the target (or null); for wait without a target, a delay in milliseconds; otherwise null
- timeout_ms: optional per-action timeout in milliseconds, or null
- description: one short sentence describing the action in plain language

Guidelines:
- Start with a navigate action.
- Prefer selectors from the provided selector hints. Otherwise prefer [data-testid=...], then [aria-label=...], then text=... selectors.
- End with at least one assert action that checks the expected result. If the expectation cannot be expressed as a selector or literal text, use an assert with an empty target, null value, and the expectation in description.
- Do not invent credentials. Use only values given in the scenario.
- Keep the plan minimal: no more than 15 actions."""


def build_synthesis_prompt(
    scenario_name: str,
    steps: str,
    expected: str,
    base_url: str,
    selector_hints: list[dict],
    rejection_reason: str | None = None,
) -> str:
    """Build the user message for the synthesis AI call."""
    if selector_hints:
        hints_text = "\n".join(
            f"- {h['type']}: {h['value']}" + (f" ({h['file']})" if h.get("file") else "")
            for h in selector_hints[:40]
        )
    else:
        hints_text = "None"

    message = (
        f"## Base URL\n\n{base_url}\n\n"
        f"## Scenario\n\n{scenario_name}\n\n"
        f"## Steps\n\n{steps}\n\n"
        f"## Expected Result\n\n{expected}\n\n"
        f"## Selector Hints\n\n{hints_text}\n\n"
    )
    if rejection_reason:
        message += (
            "## Previous Attempt Rejected\n\n"
            f"Your previous response was rejected: {rejection_reason}\n"
            "Follow the JSON structure exactly.\n\n"
        )
    return message + "Return the action plan as a single JSON object."

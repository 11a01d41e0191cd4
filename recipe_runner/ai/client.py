"""Claude client shared by action synthesis and result verification.

Calls are synchronous; async callers go through ``asyncio.to_thread``. Every
exchange is written to the debug directory so a bad plan or verdict can be
traced back to the exact prompt that produced it.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Optional

import anthropic

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

DEFAULT_DEBUG_DIR = Path("./test-results") / "debug"

_FENCED = re.compile(r"^```(?:json|javascript|)?\s*\n(.*?)\n```\s*$", re.DOTALL | re.MULTILINE)
_INLINE_COMMENT = re.compile(r"(?<=[\s,\]\}])//[^\n]*")
_LINE_COMMENT = re.compile(r"^//[^\n]*", re.MULTILINE)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def _write_debug_file(debug_dir: Path, name: str, sections: list[tuple[str, str]]) -> Optional[Path]:
    path = debug_dir / name
    try:
        debug_dir.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            for heading, body in sections:
                f.write(f"=== {heading} ===\n{body}\n\n")
    except OSError as e:
        logger.debug("Could not write %s: %s", path, e)
        return None
    return path


def _trim_to_outer_value(text: str) -> str:
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text
    first = min(starts)
    last = text.rfind("}" if text[first] == "{" else "]")
    return text[first:last + 1] if last > first else text


def parse_json_response(text: str, debug_dir: Optional[Path] = None) -> Any:
    """Parse model output as a JSON object or array.

    Handles markdown fences, ``//`` comments, trailing commas and prose
    around the JSON value. When ``debug_dir`` is given, unparseable output is
    dumped there before the ValueError is raised.
    """
    raw = text
    text = text.strip()
    fenced = _FENCED.search(text)
    if fenced:
        text = fenced.group(1).strip()
    elif text.startswith("```") or text.endswith("```"):
        text = text.strip("`").strip()

    try:
        return json.loads(text, strict=False)
    except json.JSONDecodeError:
        pass

    repaired = _TRAILING_COMMA.sub(r"\1", _LINE_COMMENT.sub("", _INLINE_COMMENT.sub("", text)))
    repaired = _trim_to_outer_value(repaired)
    try:
        return json.loads(repaired, strict=False)
    except json.JSONDecodeError as e:
        dump = None
        if debug_dir is not None:
            name = f"parse_failure_{time.strftime('%Y%m%d_%H%M%S')}.log"
            dump = _write_debug_file(debug_dir, name, [
                ("JSON PARSE FAILURE", str(e)),
                (f"REPAIRED TEXT ({len(repaired)} chars)", repaired),
                (f"RAW RESPONSE ({len(raw)} chars)", raw),
            ])
        logger.error("AI response is not valid JSON (%s), details in %s", e, dump or "(not saved)")
        raise ValueError(f"AI returned invalid JSON: {e}") from e


class AIClient:
    """Thin wrapper over ``anthropic.Anthropic`` with JSON helpers."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 4000,
        api_key: Optional[str] = None,
        timeout: float = 120.0,
        debug_dir: Optional[Path] = None,
    ):
        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError("ANTHROPIC_API_KEY is not set; AI synthesis and verification need it")
        self.client = anthropic.Anthropic(api_key=api_key, timeout=timeout)
        self.model = model
        self.max_tokens = max_tokens
        self._call_count = 0
        # Exchange logs and parse-failure dumps
        self.debug_dir = Path(debug_dir) if debug_dir else DEFAULT_DEBUG_DIR

    @property
    def call_count(self) -> int:
        return self._call_count

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.3,
    ) -> str:
        messages = [{"role": "user", "content": user_message}]
        return self._send(system_prompt, messages, user_message, max_tokens, temperature)

    def complete_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
    ) -> Any:
        """Completion parsed as JSON. Raises ValueError when it cannot be parsed."""
        return parse_json_response(
            self.complete(system_prompt, user_message, max_tokens, temperature), self.debug_dir)

    def complete_json_with_image(
        self,
        system_prompt: str,
        user_message: str,
        image_base64: str,
        media_type: str = "image/png",
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
    ) -> Any:
        """Like complete_json, with a base64 screenshot in front of the text."""
        image = {"type": "base64", "media_type": media_type, "data": image_base64}
        messages = [{
            "role": "user",
            "content": [
                {"type": "image", "source": image},
                {"type": "text", "text": user_message},
            ],
        }]
        text = self._send(system_prompt, messages, f"[screenshot attached]\n{user_message}",
                          max_tokens, temperature)
        return parse_json_response(text, self.debug_dir)

    def _send(
        self,
        system_prompt: str,
        messages: list[dict],
        log_text: str,
        max_tokens: Optional[int],
        temperature: float,
    ) -> str:
        self._call_count += 1
        call = self._call_count
        tokens = max_tokens or self.max_tokens
        logger.info("AI call #%d (%s, max_tokens=%d)", call, self.model, tokens)

        started = time.time()
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=tokens,
                temperature=temperature,
                system=system_prompt,
                messages=messages,
            )
        except anthropic.APIError as e:
            logger.error("AI call #%d failed: %s", call, e)
            self._log_exchange(call, system_prompt, log_text, "", str(e))
            raise

        text = response.content[0].text
        logger.info("AI call #%d answered in %.1fs (%d chars)", call, time.time() - started, len(text))
        if response.stop_reason == "max_tokens":
            logger.warning("AI response truncated at %d tokens, JSON may be incomplete", tokens)
        self._log_exchange(call, system_prompt, log_text, text)
        return text

    def _log_exchange(self, call: int, system_prompt: str, user_message: str, response_text: str,
                      error: Optional[str] = None) -> None:
        sections = [
            (f"AI CALL #{call} at {time.strftime('%Y-%m-%d %H:%M:%S')}", ""),
            (f"SYSTEM PROMPT ({len(system_prompt)} chars)", system_prompt),
            (f"USER MESSAGE ({len(user_message)} chars)", user_message),
            (f"RESPONSE ({len(response_text)} chars)", response_text or "(empty)"),
        ]
        if error:
            sections.append(("ERROR", error))
        name = f"ai_call_{time.strftime('%Y%m%d_%H%M%S')}_{call:03d}.log"
        path = _write_debug_file(self.debug_dir, name, sections)
        if path:
            logger.debug("AI exchange logged to %s", path)

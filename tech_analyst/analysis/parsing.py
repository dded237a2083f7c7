"""Locate JSON blocks inside free-form LLM responses."""

from __future__ import annotations

import json
import logging
import re

logger = logging.getLogger(__name__)


def _strip_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
    cleaned = re.sub(r"\s*```\s*$", "", cleaned)
    return cleaned.strip()


def _slice_between(text: str, open_char: str, close_char: str) -> str | None:
    start = text.find(open_char)
    end = text.rfind(close_char)
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start:end + 1]


def extract_json_object(text: str) -> dict | None:
    """Parse the span from the first ``{`` to the last ``}``; None if invalid."""
    block = _slice_between(_strip_fences(text or ""), "{", "}")
    if block is None:
        return None
    try:
        parsed = json.loads(block)
    except json.JSONDecodeError as e:
        logger.debug("JSON object parse error: %s (preview: %s)", e, block[:200])
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json_array(text: str) -> list | None:
    """Parse the span from the first ``[`` to the last ``]``; None if invalid."""
    block = _slice_between(_strip_fences(text or ""), "[", "]")
    if block is None:
        return None
    try:
        parsed = json.loads(block)
    except json.JSONDecodeError as e:
        logger.debug("JSON array parse error: %s (preview: %s)", e, block[:200])
        return None
    return parsed if isinstance(parsed, list) else None

"""Parse the LLM's structured reply."""

import json
import re

from ..exceptions import ReplyFormatError
from ..models import IntentNarrative
from .prompt import REPLY_KEYS

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)


def _extract_json(text: str) -> str:
    fenced = _FENCE_RE.search(text)
    if fenced:
        return fenced.group(1).strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ReplyFormatError("no JSON object in reply")
    return text[start : end + 1]


def parse_reply(text: str) -> tuple[IntentNarrative, tuple[str, ...]]:
    """Split a reply into the narrative and the recommendation list.

    Accepts a bare JSON object or one wrapped in a Markdown code fence.

    Raises:
        ReplyFormatError: If the reply is not JSON or lacks a required section
    """
    if not text or not text.strip():
        raise ReplyFormatError("empty reply")

    try:
        data = json.loads(_extract_json(text))
    except json.JSONDecodeError as e:
        raise ReplyFormatError(f"invalid JSON: {e.msg}")
    if not isinstance(data, dict):
        raise ReplyFormatError("reply is not a JSON object")

    missing = [key for key in REPLY_KEYS if key not in data]
    if missing:
        raise ReplyFormatError(f"missing sections: {', '.join(missing)}")

    sections = {}
    for key in REPLY_KEYS[:3]:
        value = data[key]
        if not isinstance(value, str) or not value.strip():
            raise ReplyFormatError(f"section '{key}' must be a non-empty string")
        sections[key] = value.strip()

    raw_recs = data["refactoring_recommendations"]
    if isinstance(raw_recs, str):
        raw_recs = [raw_recs]
    if not isinstance(raw_recs, list) or not all(isinstance(r, str) for r in raw_recs):
        raise ReplyFormatError("'refactoring_recommendations' must be a list of strings")
    recommendations = tuple(r.strip() for r in raw_recs if r.strip())

    return IntentNarrative(**sections), recommendations

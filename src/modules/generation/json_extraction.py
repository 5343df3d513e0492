"""Recovering JSON payloads from free-form model output."""

import json
import re
from dataclasses import dataclass
from typing import Any

FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?```")
OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")
ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")


@dataclass(frozen=True)
class JsonExtraction:
    value: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def find_json_text(text: str) -> str | None:
    """Best candidate substring holding the JSON document."""
    fenced = FENCED_BLOCK.search(text)
    if fenced:
        candidate = fenced.group(1).strip()
        if candidate.startswith(("{", "[")):
            return candidate

    trimmed = text.strip()
    if trimmed.startswith(("{", "[")):
        return trimmed

    spans = [m for m in (OBJECT_SPAN.search(text), ARRAY_SPAN.search(text)) if m]
    if spans:
        return min(spans, key=lambda m: m.start()).group(0)

    return trimmed or None


def extract_json(text: str | None) -> JsonExtraction:
    """Parse the JSON object or array embedded in ``text``.

    Never raises; failures come back as a ``JsonExtraction`` with ``error`` set.
    """
    candidate = find_json_text(text or "")
    if candidate is None:
        return JsonExtraction(error="empty response")

    try:
        return JsonExtraction(value=json.loads(candidate))
    except json.JSONDecodeError as e:
        first_error = e

    # Greedy spans swallow trailing prose after the document; decode a prefix instead
    start = min(
        (i for i in (candidate.find("{"), candidate.find("[")) if i >= 0), default=-1
    )
    if start >= 0:
        try:
            value, _ = json.JSONDecoder().raw_decode(candidate[start:])
            return JsonExtraction(value=value)
        except json.JSONDecodeError:
            pass

    return JsonExtraction(error=f"invalid JSON: {first_error.msg} at position {first_error.pos}")

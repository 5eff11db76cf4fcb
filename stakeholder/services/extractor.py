"""Recovers a ProfileRecord from the synthesis stage's free-text answer.

Heuristics only: strip one layer of code fences, parse JSON (falling back
to the outermost braces when the model adds a preamble), validate against
ProfileRecord, and fill ``sources`` from research URLs when it is empty.
"""
from __future__ import annotations

import json
import re
from typing import Any, Iterable

from pydantic import ValidationError

from stakeholder.errors import ExtractionError
from stakeholder.models.profile import ProfileRecord

MAX_FALLBACK_SOURCES = 25

_FENCE_RE = re.compile(
    r"^\s*```[ \t]*[A-Za-z0-9_+-]*[ \t]*\r?\n?(?P<body>.*?)\r?\n?[ \t]*```\s*$",
    re.DOTALL,
)
# Stops at whitespace, quotes, angle brackets and any enclosing bracket.
_URL_RE = re.compile(r"https?://[^\s<>\"'`()\[\]{}|\\^]+", re.IGNORECASE)
_TRAILING_PUNCTUATION = ".,;:!?*"


def strip_code_fences(text: str) -> str:
    """Remove one layer of ``` fences, with or without a language tag."""
    match = _FENCE_RE.match(text)
    if not match:
        return text.strip()
    return match.group("body").strip()


def extract_urls(text: str, limit: int = MAX_FALLBACK_SOURCES) -> list[str]:
    """Scan free text for http(s) URLs, deduplicated in first-seen order."""
    if not text or limit <= 0:
        return []
    seen: set[str] = set()
    urls: list[str] = []
    for match in _URL_RE.finditer(text):
        url = match.group(0).rstrip(_TRAILING_PUNCTUATION)
        if len(url) <= len("https://") or url in seen:
            continue
        seen.add(url)
        urls.append(url)
        if len(urls) >= limit:
            break
    return urls


def _parse_json_object(text: str) -> dict[str, Any]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        start = text.find("{")
        end = text.rfind("}")
        if start < 0 or end <= start:
            raise
        parsed = json.loads(text[start : end + 1])
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("not an object", text, 0)
    return parsed


def extract_profile(
    raw_text: str,
    fallback_sources: Iterable[str] = (),
    *,
    max_sources: int = MAX_FALLBACK_SOURCES,
) -> ProfileRecord:
    """Turn the raw synthesis answer into a validated ProfileRecord.

    Raises ExtractionError when no JSON object matching the profile shape
    can be recovered. ``fallback_sources`` are only used when the parsed
    record has no sources of its own.
    """
    text = strip_code_fences(raw_text or "")
    if not text:
        raise ExtractionError("Synthesis returned an empty response.")
    try:
        payload = _parse_json_object(text)
    except json.JSONDecodeError as exc:
        raise ExtractionError(f"JSON parse failed: {exc.msg}") from exc
    except RecursionError as exc:
        raise ExtractionError("JSON parse failed: nesting too deep") from exc
    except ValueError as exc:
        raise ExtractionError(f"JSON parse failed: {exc}") from exc
    try:
        record = ProfileRecord.model_validate(payload)
    except RecursionError as exc:
        raise ExtractionError("Profile did not match the expected shape (nesting too deep).") from exc
    except ValidationError as exc:
        raise ExtractionError(
            f"Profile did not match the expected shape ({exc.error_count()} errors)."
        ) from exc

    if not record.sources:
        fallback = ProfileRecord(sources=list(fallback_sources)).sources[:max_sources]
        if fallback:
            record = record.model_copy(update={"sources": fallback})
    return record

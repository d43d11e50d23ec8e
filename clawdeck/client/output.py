"""Helpers for extracting JSON documents from controller command output."""

from __future__ import annotations

import json
import re
from typing import Any

from clawdeck.client.errors import EmptyOutputError, OutputParseError

# CSI and related ANSI escape sequences.
ANSI_ESCAPE_PATTERN = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
SNIPPET_LIMIT = 400


def strip_ansi(value: str) -> str:
    return ANSI_ESCAPE_PATTERN.sub("", value)


def _clean(raw_output: str) -> str:
    return strip_ansi(raw_output).replace("\r", "").strip()


def _loads_or_none(value: str) -> Any | None:
    try:
        return json.loads(value)
    except ValueError:
        return None


def find_json_suffix(raw_output: str) -> str | None:
    """Return the longest trailing JSON document in output, skipping log preamble."""
    cleaned = _clean(raw_output)
    if not cleaned:
        return None
    if cleaned[0] in "{[":
        return cleaned

    starts = [idx for idx, ch in enumerate(cleaned) if ch in "{["]
    for start in starts:
        candidate = cleaned[start:].strip()
        if candidate and _loads_or_none(candidate) is not None:
            return candidate
    return None


def parse_json_output(raw_output: str, context: str = "CLI output") -> Any:
    """Parse controller output as JSON.

    Empty output raises ``EmptyOutputError``; anything else that does not hold
    a JSON document raises ``OutputParseError`` with a snippet of the output.
    """
    candidate = find_json_suffix(raw_output)
    if candidate is None:
        snippet = _clean(raw_output)[:SNIPPET_LIMIT]
        if not snippet:
            raise EmptyOutputError(f"Failed to parse JSON from {context}: empty output")
        raise OutputParseError(f"Failed to parse JSON from {context}. Output: {snippet}")
    try:
        return json.loads(candidate)
    except ValueError as exc:
        snippet = candidate[:SNIPPET_LIMIT]
        raise OutputParseError(f"Failed to parse JSON from {context}. Output: {snippet}") from exc

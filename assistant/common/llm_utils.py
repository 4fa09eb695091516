"""Shared utilities for parsing LLM responses."""

from __future__ import annotations

import json
import math

_DECODER = json.JSONDecoder()


def parse_llm_json(raw: str) -> dict:
    """Parse the first JSON object from an LLM response.

    Handles code fences, preamble text and trailing prose.

    Tries in order:
    1. Strip markdown code fences, then json.loads
    2. Decode the first well-formed ``{...}`` object found in the text
    3. Return empty dict

    Never raises. An empty dict means "nothing usable was found".
    """
    if not raw:
        return {}

    text = raw.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = [l for l in lines if not l.strip().startswith("```")]
        text = "\n".join(lines)

    try:
        data = json.loads(text)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    while start >= 0:
        try:
            data, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(data, dict):
            return data
        start = text.find("{", start + 1)

    return {}


def coerce_str(value) -> str:
    """Return a stripped string for str values, empty string otherwise."""
    if isinstance(value, str):
        return value.strip()
    return ""


def coerce_float(value):
    """Return a float for finite numeric (or numeric-string) values, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.replace(",", "").strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None

"""Helpers for reading JSON out of generator responses."""

import json
import re
from typing import Any

from ..errors import RemoteFailure

_FENCE = re.compile(r"```(?:json)?\s*\n(.*?)\n?```", re.DOTALL)


def parse_json_response(text: str) -> Any:
    """Extract a JSON value from a response that may be wrapped in prose or fences.

    Raises:
        RemoteFailure: if no JSON object or array can be recovered.
    """
    if not text or not text.strip():
        raise RemoteFailure("No response from AI")

    m = _FENCE.search(text)
    if m:
        try:
            return json.loads(m.group(1))
        except json.JSONDecodeError:
            pass

    cleaned = text.strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    # Outermost object or array, whichever opens first
    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i != -1]
    if starts:
        start = min(starts)
        close = "}" if cleaned[start] == "{" else "]"
        end = cleaned.rfind(close)
        if end > start:
            try:
                return json.loads(cleaned[start:end + 1])
            except json.JSONDecodeError:
                pass

    raise RemoteFailure(f"Could not parse JSON from response: {text[:200]}...")

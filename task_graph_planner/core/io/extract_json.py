from __future__ import annotations

import json
import re
from typing import Any, Optional


_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)```", re.IGNORECASE)


def extract_first_json_object(text: str) -> Optional[Any]:
    """Pull the first JSON object out of free-form model output.

    A fenced ```json block wins over the surrounding text. Starting at the
    first "{", progressively shorter slices are tried until one parses.
    Returns None when nothing parses.
    """

    m = _FENCED_JSON.search(text)
    candidate = (m.group(1) if m else text).strip()

    first_brace = candidate.find("{")
    if first_brace == -1:
        return None

    for end in range(len(candidate), first_brace, -1):
        try:
            return json.loads(candidate[first_brace:end])
        except ValueError:
            continue

    return None

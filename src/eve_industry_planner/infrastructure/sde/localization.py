from __future__ import annotations

import json
import re
from typing import Any


def parse_localized(raw: Any, language: str, *, fallback: str = "") -> str:
    """Pick one language out of an SDE localized name ({"en": ..., "de": ...})."""

    if raw is None:
        return fallback

    if isinstance(raw, dict):
        text = raw.get(language) or raw.get("en") or next(iter(raw.values()), fallback)
    elif isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            data = raw
        if isinstance(data, dict):
            text = data.get(language) or data.get("en") or next(iter(data.values()), raw)
        else:
            text = raw
    else:
        text = str(raw)

    return re.sub(r"<[^>]+>", "", str(text or "")).strip() or fallback

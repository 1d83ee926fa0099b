from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from writing_assistant.models import DocumentState, EditSpan, KeywordMarker


def make_span(
    text: str, start: int, end: int, replacement: str = "", span_id: str | None = None
) -> EditSpan:
    """Build a span anchored to ``text[start:end]``."""
    return EditSpan(
        span_id=span_id or f"span-{start}",
        start_index=start,
        end_index=end,
        original=text[start:end],
        replacement=replacement,
        category="clarity",
    )


def make_state(
    text: str, spans: list[EditSpan], keywords: list[KeywordMarker] | None = None
) -> DocumentState:
    return DocumentState(text=text, spans=spans, keywords=list(keywords or []))


def write_json(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path

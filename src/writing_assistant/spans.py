"""Read-only helpers over live span lists: ordering, overlap detection,
invariant checks and the segment walk used to paint highlights."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from .models import (
    CATEGORIES,
    CATEGORY_LABELS,
    KEYWORD_CATEGORY,
    DocumentState,
    EditSpan,
)

TEXT = "text"
HIGHLIGHT = "highlight"
CARET = "caret"


@dataclass(slots=True)
class Segment:
    """One run of the rendered document."""

    kind: str
    start: int
    end: int
    text: str = ""
    span_id: str | None = None
    category: str | None = None


def sort_for_display(spans: Iterable[EditSpan]) -> List[EditSpan]:
    """Order spans by start offset, keeping input order for equal starts."""
    return sorted(spans, key=lambda span: span.start_index)


def spans_overlap(first: EditSpan, second: EditSpan) -> bool:
    return (
        first.start_index < second.end_index and second.start_index < first.end_index
    )


def find_overlaps(spans: Sequence[EditSpan]) -> List[Tuple[EditSpan, EditSpan]]:
    """Return every pair of spans whose half-open ranges intersect."""
    ordered = sort_for_display(spans)
    pairs: List[Tuple[EditSpan, EditSpan]] = []
    for idx, current in enumerate(ordered):
        for other in ordered[idx + 1 :]:
            if other.start_index >= current.end_index:
                break
            if spans_overlap(current, other):
                pairs.append((current, other))
    return pairs


def is_anchored(span: EditSpan, text: str) -> bool:
    """True when the span's range is valid and still holds its original snippet."""
    if not 0 <= span.start_index < span.end_index <= len(text):
        return False
    return text[span.start_index : span.end_index] == span.original


def stale_spans(spans: Iterable[EditSpan], text: str) -> List[EditSpan]:
    return [span for span in spans if not is_anchored(span, text)]


def segment_text(
    text: str, spans: Iterable[EditSpan], caret: int | None = None
) -> List[Segment]:
    """Split ``text`` into plain, highlighted and caret segments for display.

    Spans are painted in start order. A span that begins before the previous
    highlight ends is not painted; ``find_overlaps`` reports those. The caret
    sorts before a highlight starting at the same offset and is hidden when it
    falls strictly inside a painted highlight.
    """
    pending_caret = caret if caret is not None and 0 <= caret <= len(text) else None
    segments: List[Segment] = []
    cursor = 0
    for span in sort_for_display(spans):
        start = max(0, span.start_index)
        end = min(span.end_index, len(text))
        if start < cursor or end <= start:
            continue
        pending_caret = _emit_plain(segments, text, cursor, start, pending_caret)
        segments.append(
            Segment(
                kind=HIGHLIGHT,
                start=start,
                end=end,
                text=text[start:end],
                span_id=span.span_id,
                category=span.category,
            )
        )
        if pending_caret is not None and start < pending_caret < end:
            pending_caret = None
        cursor = end
    _emit_plain(segments, text, cursor, len(text), pending_caret)
    return segments


def _emit_plain(
    segments: List[Segment], text: str, start: int, end: int, caret: int | None
) -> int | None:
    """Append the plain run ``[start, end)``, splitting it at the caret if inside."""
    if caret is not None and start <= caret <= end:
        if caret > start:
            segments.append(Segment(TEXT, start, caret, text[start:caret]))
        segments.append(Segment(CARET, caret, caret))
        if end > caret:
            segments.append(Segment(TEXT, caret, end, text[caret:end]))
        return None
    if end > start:
        segments.append(Segment(TEXT, start, end, text[start:end]))
    return caret


def word_count(text: str) -> int:
    return len(text.split())


def total_issues(state: DocumentState) -> int:
    """Open items: live spans plus unused keyword markers."""
    return len(state.spans) + len(state.keywords)


def category_counts(state: DocumentState) -> Dict[str, int]:
    """Count live spans per category, with markers under ``keyword``.

    Every known category is present, zero when it has no spans. Spans with an
    unrecognised category are counted only in ``total_issues``.
    """
    counts = {category: 0 for category in CATEGORIES}
    for span in state.spans:
        if span.category in counts:
            counts[span.category] += 1
    counts[KEYWORD_CATEGORY] = len(state.keywords)
    return counts


def summarize(state: DocumentState) -> Dict[str, Any]:
    """Overview of a document for display: words, open items, per-category counts."""
    counts = category_counts(state)
    return {
        "word_count": word_count(state.text),
        "total_issues": total_issues(state),
        "categories": [
            {"category": key, "label": CATEGORY_LABELS[key], "count": count}
            for key, count in counts.items()
        ],
    }

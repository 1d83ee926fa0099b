from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, List

from .models import DocumentState, EditSpan

logger = logging.getLogger(__name__)

_SEPARATORS = (" ", "\n")


def rebase_spans(
    spans: List[EditSpan], pivot: int, delta: int, *, inclusive: bool
) -> List[EditSpan]:
    """Shift spans starting after ``pivot`` (or at it, when inclusive) by ``delta``."""
    if delta == 0:
        return list(spans)
    rebased: List[EditSpan] = []
    for span in spans:
        moves = span.start_index >= pivot if inclusive else span.start_index > pivot
        if moves:
            span = replace(
                span,
                start_index=span.start_index + delta,
                end_index=span.end_index + delta,
            )
        rebased.append(span)
    return rebased


def replace_span_text(text: str, span: EditSpan) -> str:
    """Return ``text`` with the span's range replaced by its replacement."""
    return text[: span.start_index] + span.replacement + text[span.end_index :]


def accept_edit(state: DocumentState, span_id: str) -> DocumentState:
    """Apply the replacement of ``span_id`` and re-base the spans after it.

    Only spans starting strictly after the accepted span move. Spans starting
    at the same offset or earlier are left where they are; overlapping spans
    are not reconciled.
    """
    accepted = state.find_span(span_id)
    if accepted is None:
        logger.debug("accept_edit ignored: unknown span %s", span_id)
        return state
    new_text = replace_span_text(state.text, accepted)
    delta = len(accepted.replacement) - accepted.length
    remaining = [span for span in state.spans if span.span_id != span_id]
    return DocumentState(
        text=new_text,
        spans=rebase_spans(remaining, accepted.start_index, delta, inclusive=False),
        keywords=list(state.keywords),
    )


def dismiss_edit(state: DocumentState, span_id: str) -> DocumentState:
    """Drop ``span_id`` without touching the text."""
    dismissed = state.find_span(span_id)
    if dismissed is None:
        logger.debug("dismiss_edit ignored: unknown span %s", span_id)
        return state
    return DocumentState(
        text=state.text,
        spans=[span for span in state.spans if span.span_id != span_id],
        keywords=list(state.keywords),
    )


def pad_keyword(text: str, index: int, keyword: str) -> str:
    """Surround ``keyword`` with spaces where it would otherwise touch a word."""
    padded = keyword
    if index > 0 and text[index - 1] not in _SEPARATORS:
        padded = " " + padded
    if index < len(text) and text[index] not in _SEPARATORS:
        padded = padded + " "
    return padded


def _valid_insertion_index(text: str, index: Any) -> bool:
    if isinstance(index, bool) or not isinstance(index, int):
        return False
    return 0 <= index <= len(text)


def insert_keyword(
    state: DocumentState, marker_id: str, insertion_index: int
) -> DocumentState:
    """Insert a keyword marker's text at ``insertion_index`` and consume the marker.

    Spans starting at or after the insertion point are pushed forward by the
    length of the padded keyword.
    """
    marker = state.find_keyword(marker_id)
    if marker is None:
        logger.debug("insert_keyword ignored: unknown marker %s", marker_id)
        return state
    if not _valid_insertion_index(state.text, insertion_index):
        logger.debug(
            "insert_keyword ignored: index %r outside [0, %s]",
            insertion_index,
            len(state.text),
        )
        return state
    padded = pad_keyword(state.text, insertion_index, marker.keyword)
    new_text = (
        state.text[:insertion_index] + padded + state.text[insertion_index:]
    )
    return DocumentState(
        text=new_text,
        spans=rebase_spans(state.spans, insertion_index, len(padded), inclusive=True),
        keywords=[item for item in state.keywords if item.marker_id != marker_id],
    )


def dismiss_keyword(state: DocumentState, marker_id: str) -> DocumentState:
    """Drop a keyword marker without inserting it."""
    marker = state.find_keyword(marker_id)
    if marker is None:
        logger.debug("dismiss_keyword ignored: unknown marker %s", marker_id)
        return state
    return DocumentState(
        text=state.text,
        spans=list(state.spans),
        keywords=[item for item in state.keywords if item.marker_id != marker_id],
    )

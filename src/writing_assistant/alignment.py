"""Anchor loosely positioned suggestions onto the exact text they refer to.

Offsets coming back from the generation service are hints: they can be
missing, inconsistent or computed against a slightly different text. Each
suggestion is re-anchored by its literal ``original`` snippet, trusting the
hint only when it verifies exactly. Items that cannot be anchored are
dropped, never raised.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

from .models import EditSpan, RawSuggestion

logger = logging.getLogger(__name__)


def coerce_hint(value: Any) -> int | None:
    """Return ``value`` as a non-negative integer offset, or None when unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value >= 0 else None
    return None


def _as_integer(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def hinted_span_length(start_hint: Any, end_hint: Any) -> int | None:
    """Length of the hinted range when both hints form a positive range."""
    start = _as_integer(start_hint)
    end = _as_integer(end_hint)
    if start is None or end is None or end <= start:
        return None
    return end - start


def find_occurrences(text: str, needle: str) -> List[int]:
    """Return start offsets of every non-overlapping occurrence, left to right."""
    if not needle:
        return []
    occurrences: List[int] = []
    search_from = 0
    while search_from <= len(text):
        found = text.find(needle, search_from)
        if found == -1:
            break
        occurrences.append(found)
        search_from = found + len(needle)
    return occurrences


def nearest_occurrence(occurrences: List[int], hint: int) -> int:
    """Pick the occurrence closest to ``hint``; the first of equally close wins."""
    best = occurrences[0]
    best_distance = abs(best - hint)
    for candidate in occurrences[1:]:
        distance = abs(candidate - hint)
        # Strictly closer only, so ties keep the earlier occurrence.
        if distance < best_distance:
            best, best_distance = candidate, distance
    return best


def align_suggestion(item: RawSuggestion, text: str, position: int) -> EditSpan | None:
    """Anchor a single suggestion, returning None when it cannot be placed."""
    original = item.original
    if not original:
        logger.debug("Dropping suggestion #%s: empty original snippet", position)
        return None

    provided_start = coerce_hint(item.start_index)
    provided_span = hinted_span_length(item.start_index, item.end_index)

    fast_path = False
    if (
        provided_start is not None
        and text[provided_start : provided_start + len(original)] == original
    ):
        fast_path = True
        start = provided_start
    else:
        occurrences = find_occurrences(text, original)
        if not occurrences:
            logger.debug(
                "Dropping suggestion %s: %r not found in text",
                item.suggestion_id or f"#{position}",
                original,
            )
            return None
        if provided_start is None:
            start = occurrences[0]
        else:
            start = nearest_occurrence(occurrences, provided_start)

    span_length = provided_span if fast_path and provided_span else len(original)
    safe_start = max(0, min(start, len(text)))
    safe_end = max(safe_start, min(start + span_length, len(text)))
    if safe_end <= safe_start:
        logger.debug("Dropping suggestion #%s: empty range after clipping", position)
        return None

    return EditSpan(
        span_id=(
            item.suggestion_id if item.suggestion_id is not None else f"s-{position}"
        ),
        start_index=safe_start,
        end_index=safe_end,
        original=text[safe_start:safe_end],
        replacement=item.replacement,
        category=item.category,
        title=item.title,
        description=item.description,
    )


def align_suggestions(items: Iterable[RawSuggestion], text: str) -> List[EditSpan]:
    """Anchor a batch of suggestions to ``text``, preserving input order."""
    aligned: List[EditSpan] = []
    received = 0
    for position, item in enumerate(items):
        received += 1
        span = align_suggestion(item, text, position)
        if span is not None:
            aligned.append(span)
    logger.info("Aligned %s of %s suggestions", len(aligned), received)
    return aligned

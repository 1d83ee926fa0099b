from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Mapping

CATEGORIES = ("correctness", "clarity", "engagement", "delivery")
KEYWORD_CATEGORY = "keyword"

CATEGORY_LABELS = {
    "correctness": "Correctness",
    "clarity": "Clarity",
    "engagement": "Engagement",
    "delivery": "Delivery",
    KEYWORD_CATEGORY: "Keywords",
}


@dataclass(slots=True)
class RawSuggestion:
    """Suggestion exactly as received from the generation service.

    Offset hints are stored untouched; the aligner decides whether they are
    usable.
    """

    original: str
    replacement: str = ""
    category: str = ""
    title: str = ""
    description: str = ""
    suggestion_id: str | None = None
    start_index: Any = None
    end_index: Any = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "RawSuggestion":
        """Build a RawSuggestion from a wire-format (camelCase) JSON object."""
        raw_id = data.get("id")
        original = data.get("original")
        return cls(
            original=original if isinstance(original, str) else "",
            replacement=_as_text(data.get("replacement")),
            category=_as_text(data.get("type") or data.get("category")),
            title=_as_text(data.get("title")),
            description=_as_text(data.get("description")),
            suggestion_id=None if raw_id is None else str(raw_id),
            start_index=data.get("startIndex"),
            end_index=data.get("endIndex"),
        )


@dataclass(slots=True)
class EditSpan:
    """A suggested replacement anchored to ``[start_index, end_index)``."""

    span_id: str
    start_index: int
    end_index: int
    original: str
    replacement: str
    category: str = ""
    title: str = ""
    description: str = ""

    @property
    def length(self) -> int:
        return self.end_index - self.start_index

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EditSpan":
        return cls(
            span_id=str(data["span_id"]),
            start_index=int(data["start_index"]),
            end_index=int(data["end_index"]),
            original=str(data.get("original", "")),
            replacement=str(data.get("replacement", "")),
            category=str(data.get("category", "")),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
        )


@dataclass(slots=True)
class KeywordMarker:
    """A keyword proposal with no position until it is inserted."""

    marker_id: str
    keyword: str
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KeywordMarker":
        return cls(
            marker_id=str(data["marker_id"]),
            keyword=str(data["keyword"]),
            description=str(data.get("description", "")),
        )


@dataclass(slots=True)
class DocumentState:
    """Current text plus the live spans and keyword markers that refer to it."""

    text: str
    spans: list[EditSpan] = field(default_factory=list)
    keywords: list[KeywordMarker] = field(default_factory=list)

    def find_span(self, span_id: str) -> EditSpan | None:
        for span in self.spans:
            if span.span_id == span_id:
                return span
        return None

    def find_keyword(self, marker_id: str) -> KeywordMarker | None:
        for marker in self.keywords:
            if marker.marker_id == marker_id:
                return marker
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "spans": [span.to_dict() for span in self.spans],
            "keywords": [marker.to_dict() for marker in self.keywords],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DocumentState":
        return cls(
            text=str(data.get("text", "")),
            spans=[EditSpan.from_dict(item) for item in data.get("spans") or []],
            keywords=[
                KeywordMarker.from_dict(item) for item in data.get("keywords") or []
            ],
        )


@dataclass(slots=True)
class AnalysisResult:
    """Parsed response of one analysis request."""

    score: int | None = None
    suggestions: list[RawSuggestion] = field(default_factory=list)
    keywords: list[KeywordMarker] = field(default_factory=list)


@dataclass(slots=True)
class Session:
    """An analysed snapshot of a document, superseded by later analyses."""

    session_id: str
    title: str
    text: str
    spans: list[EditSpan] = field(default_factory=list)
    keywords: list[KeywordMarker] = field(default_factory=list)
    score: int | None = None
    updated_at: str = ""

    def to_state(self) -> DocumentState:
        return DocumentState(
            text=self.text, spans=list(self.spans), keywords=list(self.keywords)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "title": self.title,
            "text": self.text,
            "spans": [span.to_dict() for span in self.spans],
            "keywords": [marker.to_dict() for marker in self.keywords],
            "score": self.score,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Session":
        score = data.get("score")
        if isinstance(score, bool) or not isinstance(score, int):
            score = None
        return cls(
            session_id=str(data["session_id"]),
            title=str(data.get("title", "")),
            text=str(data.get("text", "")),
            spans=[EditSpan.from_dict(item) for item in data.get("spans") or []],
            keywords=[
                KeywordMarker.from_dict(item) for item in data.get("keywords") or []
            ],
            score=score,
            updated_at=str(data.get("updated_at", "")),
        )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)

"""Editor orchestration around the aligner and mutator.

``EditorSession`` owns the live document state for one editor and tracks
which analysis request is authoritative: a newer request supersedes an older
one, and results for abandoned requests are ignored rather than applied.
``SessionHistory`` keeps the most recent analysed snapshots keyed by id.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List

from .alignment import align_suggestions
from .analysis import Analyzer
from .errors import AnalysisError
from .models import AnalysisResult, DocumentState, Session
from .mutation import accept_edit, dismiss_edit, dismiss_keyword, insert_keyword
from .pointer import PointerResolver

logger = logging.getLogger(__name__)

IDLE = "idle"
ANALYZING = "analyzing"
ANALYZED = "analyzed"
ERROR = "error"

TITLE_LIMIT = 64
DEFAULT_ERROR_MESSAGE = "Unable to analyze text right now."


def make_session_title(text: str | None) -> str:
    """Collapse whitespace and truncate ``text`` into a short session title."""
    cleaned = re.sub(r"\s+", " ", text or "").strip()
    if not cleaned:
        return "Untitled note"
    if len(cleaned) > TITLE_LIMIT:
        return cleaned[:TITLE_LIMIT] + "…"
    return cleaned


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionHistory:
    """Most-recent-first list of sessions, capped at ``limit`` entries."""

    def __init__(self, sessions: List[Session] | None = None, limit: int = 12) -> None:
        self._limit = max(1, limit)
        self._sessions: List[Session] = list(sessions or [])[: self._limit]

    def __iter__(self) -> Iterator[Session]:
        return iter(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def limit(self) -> int:
        return self._limit

    def get(self, session_id: str) -> Session | None:
        for session in self._sessions:
            if session.session_id == session_id:
                return session
        return None

    def upsert(self, session: Session) -> None:
        """Store ``session`` first, replacing any older session with the same id."""
        remaining = [s for s in self._sessions if s.session_id != session.session_id]
        self._sessions = [session, *remaining][: self._limit]

    def remove(self, session_id: str) -> bool:
        before = len(self._sessions)
        self._sessions = [s for s in self._sessions if s.session_id != session_id]
        return len(self._sessions) != before

    def save(self, path: str | Path) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = [session.to_dict() for session in self._sessions]
        target.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path, limit: int = 12) -> "SessionHistory":
        """Read a history file; a missing file yields an empty history."""
        source = Path(path)
        if not source.exists():
            return cls(limit=limit)
        payload = json.loads(source.read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            raise ValueError(f"Session history must be a JSON list: {source}")
        return cls([Session.from_dict(item) for item in payload], limit=limit)


class EditorSession:
    """Live editor state: document, suggestions, score and analysis status."""

    def __init__(
        self,
        text: str = "",
        *,
        history: SessionHistory | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.state = DocumentState(text=text)
        self.history = history if history is not None else SessionHistory()
        self.status = IDLE
        self.score: int | None = None
        self.error: str | None = None
        self.active_session_id: str | None = None
        self.hovered_span_id: str | None = None
        self.selected_span_id: str | None = None
        self._clock = clock
        self._request_counter = 0
        self._pending_request: int | None = None

    @property
    def text(self) -> str:
        return self.state.text

    def _reset_feedback(self) -> None:
        self.state = DocumentState(text=self.state.text)
        self.score = None
        self.error = None
        self.hovered_span_id = None
        self.selected_span_id = None

    def set_text(self, text: str) -> None:
        """Replace the text by hand; pending results and feedback are discarded."""
        self._pending_request = None
        self._reset_feedback()
        self.state = DocumentState(text=text)
        self.status = IDLE
        self.active_session_id = None

    def begin_analysis(self) -> int | None:
        """Start a request and return its token, or None when there is no text."""
        if not self.state.text.strip():
            self._pending_request = None
            self._reset_feedback()
            self.status = IDLE
            return None
        self._request_counter += 1
        self._pending_request = self._request_counter
        self.status = ANALYZING
        self.error = None
        return self._request_counter

    def _is_current(self, token: int) -> bool:
        return self._pending_request is not None and self._pending_request == token

    def complete_analysis(self, token: int, result: AnalysisResult) -> bool:
        """Apply ``result`` if ``token`` is still the authoritative request."""
        if not self._is_current(token):
            logger.debug("Discarding result of superseded request %s", token)
            return False
        self._pending_request = None
        text = self.state.text
        spans = align_suggestions(result.suggestions, text)
        keywords = list(result.keywords)
        self.state = DocumentState(text=text, spans=spans, keywords=keywords)
        self.score = result.score
        self.error = None
        self.status = ANALYZED
        self.hovered_span_id = None
        self.selected_span_id = None

        now = self._clock()
        session_id = self.active_session_id or f"session-{int(now.timestamp() * 1000)}"
        self.history.upsert(
            Session(
                session_id=session_id,
                title=make_session_title(text),
                text=text,
                spans=list(spans),
                keywords=list(keywords),
                score=result.score,
                updated_at=now.isoformat(),
            )
        )
        self.active_session_id = session_id
        logger.info(
            "Session %s analysed: %s spans, %s keywords",
            session_id,
            len(spans),
            len(keywords),
        )
        return True

    def fail_analysis(self, token: int, message: str | None = None) -> bool:
        """Record a batch-level failure if ``token`` is still authoritative."""
        if not self._is_current(token):
            logger.debug("Discarding failure of superseded request %s", token)
            return False
        self._pending_request = None
        self.status = ERROR
        self.error = message or DEFAULT_ERROR_MESSAGE
        return True

    def analyze(self, analyzer: Analyzer) -> bool:
        """Run one synchronous analysis; returns True when results were applied."""
        token = self.begin_analysis()
        if token is None:
            return False
        try:
            result = analyzer.analyze(self.state.text)
        except AnalysisError as exc:
            logger.warning("Analysis request %s failed: %s", token, exc)
            self.fail_analysis(token, str(exc))
            return False
        return self.complete_analysis(token, result)

    def _clear_focus(self, span_id: str) -> None:
        if self.hovered_span_id == span_id:
            self.hovered_span_id = None
        if self.selected_span_id == span_id:
            self.selected_span_id = None

    def accept(self, span_id: str) -> bool:
        updated = accept_edit(self.state, span_id)
        if updated is self.state:
            return False
        self.state = updated
        self._clear_focus(span_id)
        return True

    def dismiss(self, span_id: str) -> bool:
        updated = dismiss_edit(self.state, span_id)
        if updated is self.state:
            return False
        self.state = updated
        self._clear_focus(span_id)
        return True

    def insert_keyword(self, marker_id: str, insertion_index: int) -> bool:
        updated = insert_keyword(self.state, marker_id, insertion_index)
        if updated is self.state:
            return False
        self.state = updated
        return True

    def insert_keyword_at_pointer(
        self, marker_id: str, resolver: PointerResolver, x: float, y: float
    ) -> bool:
        """Drop a keyword at the text offset nearest to a pointer position."""
        index = resolver.resolve(x, y)
        if index is None:
            return False
        return self.insert_keyword(marker_id, index)

    def dismiss_keyword(self, marker_id: str) -> bool:
        updated = dismiss_keyword(self.state, marker_id)
        if updated is self.state:
            return False
        self.state = updated
        return True

    def select_session(self, session_id: str) -> bool:
        """Restore a stored session as the live document."""
        session = self.history.get(session_id)
        if session is None:
            return False
        self._pending_request = None
        self.state = session.to_state()
        self.score = session.score
        self.error = None
        self.status = ANALYZED
        self.active_session_id = session_id
        self.hovered_span_id = None
        self.selected_span_id = None
        return True

    def start_new_session(self) -> None:
        self.set_text("")

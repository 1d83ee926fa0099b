from __future__ import annotations

import json
import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, List, Mapping

from .errors import MalformedResponseError
from .llm.openai_client import AnalysisMetadata, OpenAIAnalysisClient
from .models import AnalysisResult, KeywordMarker, RawSuggestion

logger = logging.getLogger(__name__)

DEFAULT_KEYWORD_DESCRIPTION = "Suggested keyword to add"

SYSTEM_PROMPT = (
    "You are a concise writing assistant that returns JSON describing suggestions "
    "to improve academic emails. Keep outputs short and actionable."
)

USER_PROMPT_TEMPLATE = (
    "Analyze the following text and respond with a JSON object containing:\n"
    '- "score": integer from 0-100 (higher is better).\n'
    '- "suggestions": up to {max_suggestions} items. Each item must have id, type '
    '("correctness", "clarity", "engagement", or "delivery"), title, description, '
    "original (exact text span), replacement (improved version), startIndex, "
    "endIndex (character offsets in the provided text, endIndex exclusive).\n"
    '- "keywords": up to {max_keywords} missing keywords to add, each with id, '
    "keyword, and description.\n"
    "\n"
    "Use character indexes based on the exact text. If the text is already strong, "
    "keep arrays short.\n"
    "\n"
    "Text to analyze:\n"
    '"""{text}"""'
)


def clamp_score(value: Any) -> int | None:
    """Round a finite numeric score half-up and clamp it to [0, 100]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        # Integers beyond float range read as Infinity in JSON clients.
        return None
    if not math.isfinite(number):
        return None
    return max(0, min(100, math.floor(number + 0.5)))


def normalize_keywords(items: Iterable[Any]) -> List[KeywordMarker]:
    """Build keyword markers, dropping entries without keyword text."""
    markers: List[KeywordMarker] = []
    for idx, item in enumerate(items):
        if not isinstance(item, Mapping):
            continue
        keyword = item.get("keyword")
        keyword = keyword.strip() if isinstance(keyword, str) else ""
        if not keyword:
            continue
        raw_id = item.get("id")
        description = item.get("description")
        markers.append(
            KeywordMarker(
                marker_id=f"kw-{idx}" if raw_id is None else str(raw_id),
                keyword=keyword,
                description=(
                    description
                    if isinstance(description, str) and description
                    else DEFAULT_KEYWORD_DESCRIPTION
                ),
            )
        )
    return markers


def parse_analysis_payload(raw: str | Mapping[str, Any] | None) -> AnalysisResult:
    """Read a generation response into an AnalysisResult.

    The whole batch is rejected with MalformedResponseError when it is empty,
    not JSON, or not a JSON object. Inside a valid object, missing or
    mistyped collections are treated as empty.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise MalformedResponseError("OpenAI returned an empty response.")
    if isinstance(raw, str):
        try:
            payload: Any = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError("OpenAI returned a non-JSON response.") from exc
    else:
        payload = raw
    if not isinstance(payload, Mapping):
        raise MalformedResponseError("OpenAI response is not a JSON object.")

    raw_suggestions = payload.get("suggestions")
    raw_keywords = payload.get("keywords")
    suggestions = [
        RawSuggestion.from_mapping(item)
        for item in (raw_suggestions if isinstance(raw_suggestions, list) else [])
        if isinstance(item, Mapping)
    ]
    keywords = normalize_keywords(raw_keywords if isinstance(raw_keywords, list) else [])
    return AnalysisResult(
        score=clamp_score(payload.get("score")),
        suggestions=suggestions,
        keywords=keywords,
    )


class Analyzer(ABC):
    """Abstract interface for producing suggestions for a text."""

    @abstractmethod
    def analyze(self, text: str) -> AnalysisResult:
        """Return the analysis of ``text``."""
        raise NotImplementedError


class NoOpAnalyzer(Analyzer):
    """Reports no suggestions and no score."""

    def analyze(self, text: str) -> AnalysisResult:
        return AnalysisResult()


class CallableAnalyzer(Analyzer):
    """Adapt an arbitrary callable into the Analyzer interface.

    The callable may return an AnalysisResult or a raw payload accepted by
    ``parse_analysis_payload``.
    """

    def __init__(self, func: Callable[[str], Any]) -> None:
        self._func = func

    def analyze(self, text: str) -> AnalysisResult:
        result = self._func(text)
        if isinstance(result, AnalysisResult):
            return result
        return parse_analysis_payload(result)


class OpenAIAnalyzer(Analyzer):
    """Analyzer implementation backed by OpenAI chat completions."""

    def __init__(
        self,
        client: OpenAIAnalysisClient,
        *,
        max_suggestions: int = 6,
        max_keywords: int = 3,
        system_prompt: str = SYSTEM_PROMPT,
        user_prompt_template: str = USER_PROMPT_TEMPLATE,
    ) -> None:
        self._client = client
        self._max_suggestions = max_suggestions
        self._max_keywords = max_keywords
        self._system_prompt = system_prompt
        self._user_prompt_template = user_prompt_template
        self._request_counter = 0

    def analyze(self, text: str) -> AnalysisResult:
        self._request_counter += 1
        user_prompt = self._user_prompt_template.format(
            max_suggestions=self._max_suggestions,
            max_keywords=self._max_keywords,
            text=text,
        )
        metadata = AnalysisMetadata(
            request_id=self._request_counter,
            char_count=len(text),
            word_count=len(text.split()),
        )
        logger.info(
            "Analyzing request=%s chars=%s words=%s",
            metadata.request_id,
            metadata.char_count,
            metadata.word_count,
        )
        raw = self._client.complete_json(
            system_prompt=self._system_prompt,
            user_prompt=user_prompt,
            metadata=metadata,
        )
        result = parse_analysis_payload(raw)
        logger.info(
            "Analysis request=%s returned %s suggestions, %s keywords, score=%s",
            metadata.request_id,
            len(result.suggestions),
            len(result.keywords),
            result.score,
        )
        return result

from __future__ import annotations

import importlib
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, cast

from ..config import OpenAISettings
from ..errors import AnalysisError

logger = logging.getLogger(__name__)

OpenAI: Callable[..., Any] | None = None

EMPTY_RESPONSE_MESSAGE = "OpenAI returned an empty response."


@dataclass(slots=True)
class AnalysisMetadata:
    """Metadata about the text being analysed, used for logging."""

    request_id: int
    char_count: int
    word_count: int | None = None


class OpenAIAnalysisClient:
    """Chat Completions client that asks for a single JSON object per call.

    Transport failures are retried with a short back-off; a reply without
    content is reported immediately as an AnalysisError.
    """

    def __init__(
        self, settings: OpenAISettings, api_key: str, *, max_attempts: int = 3
    ) -> None:
        if not api_key:
            raise ValueError("OpenAI API key is required when analysis is enabled.")
        self._settings = settings
        self._api_key = api_key
        self._client_factory: Callable[..., Any] = _load_openai_factory()
        self._client: Any | None = None
        self._max_attempts = max(1, max_attempts)

    @property
    def settings(self) -> OpenAISettings:
        return self._settings

    def complete_json(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        metadata: AnalysisMetadata,
    ) -> str:
        """Send the analysis request and return the raw JSON content."""
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        last_error: Exception | None = None
        for attempt in range(1, self._max_attempts + 1):
            try:
                response = self._create(messages)
            except Exception as exc:  # pragma: no cover - network-related
                last_error = exc
                logger.warning(
                    "OpenAI analysis failed for request=%s (attempt %s/%s): %s",
                    metadata.request_id,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                if attempt < self._max_attempts:
                    time.sleep(min(2 ** (attempt - 1), 5))
                continue
            content = message_content(response)
            logger.debug(
                "OpenAI analysis succeeded for request=%s chars=%s",
                metadata.request_id,
                metadata.char_count,
            )
            return content
        message = str(last_error) if last_error else "Unable to analyze with OpenAI."
        raise AnalysisError(message) from last_error

    def _create(self, messages: list[dict[str, str]]) -> Any:
        if self._client is None:
            self._client = self._client_factory(
                api_key=self._api_key,
                base_url=self._settings.base_url,
                organization=self._settings.organization,
            )
        return self._client.chat.completions.create(
            model=self._settings.model,
            messages=messages,
            temperature=self._settings.temperature,
            max_tokens=self._settings.max_output_tokens,
            response_format={"type": "json_object"},
            timeout=self._settings.request_timeout,
        )


def message_content(response: Any) -> str:
    """Return ``choices[0].message.content`` from an SDK object or plain dict."""
    choices = _field(response, "choices")
    if not choices:
        raise AnalysisError(EMPTY_RESPONSE_MESSAGE)
    message = _field(choices[0], "message")
    content = _field(message, "content") if message is not None else None
    if not isinstance(content, str) or not content.strip():
        raise AnalysisError(EMPTY_RESPONSE_MESSAGE)
    return content


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def _load_openai_factory() -> Callable[..., Any]:
    """Dynamically import the OpenAI client factory to avoid hard dependency at import."""
    global OpenAI
    if OpenAI is not None:
        return OpenAI
    try:  # pragma: no cover - import guard
        module = importlib.import_module("openai")
    except Exception as exc:  # pragma: no cover - handled at runtime
        raise RuntimeError(
            "openai package is not installed. Install extras via 'pip install .[llm-openai]'."
        ) from exc
    openai_cls = getattr(module, "OpenAI", None)
    if openai_cls is None:  # pragma: no cover - defensive
        raise RuntimeError(
            "openai.OpenAI client class is unavailable in this environment."
        )
    OpenAI = cast(Callable[..., Any], openai_cls)
    return OpenAI

from __future__ import annotations

import pytest

from writing_assistant.config import OpenAISettings
from writing_assistant.errors import AnalysisError
from writing_assistant.llm import openai_client as oa_client


class DummyMessage:
    def __init__(self, content: str | None) -> None:
        self.content = content


class DummyChoice:
    def __init__(self, content: str | None) -> None:
        self.message = DummyMessage(content)


class DummyResponse:
    def __init__(self, content: str | None) -> None:
        self.choices = [DummyChoice(content)]


def _install_factory(monkeypatch, create):
    class DummyCompletions:
        def create(self, **kwargs: object):
            return create(**kwargs)

    class DummyChat:
        def __init__(self) -> None:
            self.completions = DummyCompletions()

    class DummyOpenAI:
        def __init__(self, **_: object) -> None:
            self.chat = DummyChat()

    monkeypatch.setattr(oa_client, "OpenAI", DummyOpenAI)


def test_client_requires_api_key(monkeypatch):
    """Client constructor validates that an API key is provided."""
    monkeypatch.setattr(oa_client, "OpenAI", object())
    with pytest.raises(ValueError):
        oa_client.OpenAIAnalysisClient(OpenAISettings(enabled=True), api_key="")


def test_client_retries_then_succeeds(monkeypatch):
    """Client retries failed requests and returns the first successful output."""
    attempts = {"count": 0}
    seen: dict[str, object] = {}

    def create(**kwargs: object):
        attempts["count"] += 1
        seen.update(kwargs)
        if attempts["count"] == 1:
            raise RuntimeError("transient error")
        return DummyResponse('{"score": 90}')

    _install_factory(monkeypatch, create)
    monkeypatch.setattr(oa_client.time, "sleep", lambda _: None)
    client = oa_client.OpenAIAnalysisClient(
        OpenAISettings(enabled=True), api_key="token"
    )
    result = client.complete_json(
        system_prompt="system",
        user_prompt="user",
        metadata=oa_client.AnalysisMetadata(request_id=1, char_count=4),
    )
    assert result == '{"score": 90}'
    assert attempts["count"] == 2
    assert seen["response_format"] == {"type": "json_object"}
    assert seen["model"] == "gpt-4o-mini"


def test_client_reports_empty_response(monkeypatch):
    _install_factory(monkeypatch, lambda **_: DummyResponse(None))
    client = oa_client.OpenAIAnalysisClient(
        OpenAISettings(enabled=True), api_key="token"
    )
    with pytest.raises(AnalysisError, match="empty response"):
        client.complete_json(
            system_prompt="system",
            user_prompt="user",
            metadata=oa_client.AnalysisMetadata(request_id=1, char_count=4),
        )


def test_client_gives_up_after_retries(monkeypatch):
    def create(**_: object):
        raise RuntimeError("service unavailable")

    _install_factory(monkeypatch, create)
    monkeypatch.setattr(oa_client.time, "sleep", lambda _: None)
    client = oa_client.OpenAIAnalysisClient(
        OpenAISettings(enabled=True), api_key="token"
    )
    with pytest.raises(AnalysisError, match="service unavailable"):
        client.complete_json(
            system_prompt="system",
            user_prompt="user",
            metadata=oa_client.AnalysisMetadata(request_id=2, char_count=4),
        )


def test_message_content_reads_plain_mappings():
    """Content extraction accepts dict-shaped responses as well as SDK objects."""
    response = {"choices": [{"message": {"content": '{"score": 70}'}}]}
    assert oa_client.message_content(response) == '{"score": 70}'
    with pytest.raises(AnalysisError):
        oa_client.message_content({"choices": []})
    with pytest.raises(AnalysisError):
        oa_client.message_content({"choices": [{"message": {"content": "   "}}]})


def test_client_honours_attempt_limit(monkeypatch):
    attempts = {"count": 0}

    def create(**_: object):
        attempts["count"] += 1
        raise RuntimeError("offline")

    _install_factory(monkeypatch, create)
    monkeypatch.setattr(oa_client.time, "sleep", lambda _: None)
    client = oa_client.OpenAIAnalysisClient(
        OpenAISettings(enabled=True), api_key="token", max_attempts=1
    )
    with pytest.raises(AnalysisError, match="offline"):
        client.complete_json(
            system_prompt="system",
            user_prompt="user",
            metadata=oa_client.AnalysisMetadata(request_id=3, char_count=4),
        )
    assert attempts["count"] == 1

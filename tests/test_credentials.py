import pytest

from writing_assistant.config import OpenAISettings
from writing_assistant.credentials import CredentialStore, resolve_api_key


def test_store_saves_and_loads(tmp_path):
    store = CredentialStore(tmp_path / "secrets" / "key.txt")
    assert store.load() is None
    store.save("  sk-test  ")
    assert store.load() == "sk-test"
    store.clear()
    assert store.load() is None


def test_store_rejects_empty_secret(tmp_path):
    with pytest.raises(ValueError):
        CredentialStore(tmp_path / "key.txt").save("   ")


def test_resolve_prefers_explicit_then_env_then_store(tmp_path, monkeypatch):
    store = CredentialStore(tmp_path / "key.txt")
    store.save("from-store")
    monkeypatch.delenv("WA_TEST_KEY", raising=False)
    settings = OpenAISettings(api_key_env="WA_TEST_KEY")

    assert resolve_api_key(settings, store) == "from-store"
    monkeypatch.setenv("WA_TEST_KEY", "from-env")
    assert resolve_api_key(settings, store) == "from-env"
    settings.api_key = "explicit"
    assert resolve_api_key(settings, store) == "explicit"


def test_resolve_without_sources_returns_none(monkeypatch):
    monkeypatch.delenv("WA_TEST_KEY", raising=False)
    assert resolve_api_key(OpenAISettings(api_key_env="WA_TEST_KEY")) is None

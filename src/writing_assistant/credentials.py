from __future__ import annotations

import logging
import os
from pathlib import Path

from .config import OpenAISettings

logger = logging.getLogger(__name__)


class CredentialStore:
    """Single secret kept in a local file, loaded at startup and saved on demand."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> str | None:
        if not self._path.is_file():
            return None
        secret = self._path.read_text(encoding="utf-8").strip()
        return secret or None

    def save(self, secret: str) -> None:
        secret = secret.strip()
        if not secret:
            raise ValueError("Refusing to store an empty secret.")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(secret + "\n", encoding="utf-8")
        try:
            self._path.chmod(0o600)
        except OSError:  # pragma: no cover - platform dependent
            logger.debug("Could not restrict permissions on %s", self._path)

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()


def resolve_api_key(
    settings: OpenAISettings, store: CredentialStore | None = None
) -> str | None:
    """Resolve the API key from explicit config, the environment, or the store."""
    if settings.api_key:
        return settings.api_key
    env_name = settings.api_key_env or "OPENAI_API_KEY"
    # Read at runtime so secrets need not live in config files.
    if env_name and os.environ.get(env_name):
        return os.environ[env_name]
    if store is not None:
        return store.load()
    return None

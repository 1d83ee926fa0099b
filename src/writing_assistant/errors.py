from __future__ import annotations


class AnalysisError(RuntimeError):
    """Raised when an analysis request fails as a whole."""


class MalformedResponseError(AnalysisError):
    """Raised when an analysis response cannot be read as the expected record."""

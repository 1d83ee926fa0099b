from __future__ import annotations

from .openai_client import AnalysisMetadata, OpenAIAnalysisClient

__all__ = ["AnalysisMetadata", "OpenAIAnalysisClient"]

"""
writing_assistant package exports convenience helpers for library consumers.
"""

from __future__ import annotations

from .alignment import align_suggestions
from .analysis import parse_analysis_payload
from .config import AssistantConfig, config_from_dict, config_from_yaml, load_config
from .models import DocumentState, EditSpan, KeywordMarker, RawSuggestion
from .mutation import accept_edit, dismiss_edit, dismiss_keyword, insert_keyword
from .session import EditorSession, SessionHistory

__all__ = [
    "AssistantConfig",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
    "align_suggestions",
    "parse_analysis_payload",
    "accept_edit",
    "dismiss_edit",
    "dismiss_keyword",
    "insert_keyword",
    "DocumentState",
    "EditSpan",
    "KeywordMarker",
    "RawSuggestion",
    "EditorSession",
    "SessionHistory",
]

__version__ = "0.1.0"

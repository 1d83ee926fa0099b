"""Minimal example: analyze a note with OpenAI, then accept the first suggestion."""

from __future__ import annotations

from writing_assistant.analysis import OpenAIAnalyzer
from writing_assistant.config import load_config
from writing_assistant.credentials import resolve_api_key
from writing_assistant.llm import OpenAIAnalysisClient
from writing_assistant.session import ANALYZED, EditorSession
from writing_assistant.spans import segment_text


def main() -> None:
    config = load_config()
    config.openai.enabled = True
    api_key = resolve_api_key(config.openai)
    if not api_key:
        raise RuntimeError(
            "Set the OpenAI API key before running this example "
            f"({config.openai.api_key_env})."
        )

    client = OpenAIAnalysisClient(config.openai, api_key=api_key)
    analyzer = OpenAIAnalyzer(client)

    session = EditorSession(
        "Dear Professor Smith, i wanted to asks if the deadline for the essay "
        "could be extend by a few days since I been sick this week."
    )
    session.analyze(analyzer)
    if session.status != ANALYZED:
        raise RuntimeError(f"Analysis failed: {session.error}")

    print(f"Score: {session.score}")
    for segment in segment_text(session.text, session.state.spans):
        marker = f"[{segment.category}]" if segment.span_id else ""
        print(f"{marker}{segment.text!r}")

    if session.state.spans:
        first = session.state.spans[0]
        session.accept(first.span_id)
        print("\nAfter accepting", first.span_id, "->", repr(first.replacement))
        print(session.text)


if __name__ == "__main__":
    main()

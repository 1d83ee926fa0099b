from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple, TypedDict

import typer
import yaml

from .alignment import align_suggestions
from .analysis import Analyzer, NoOpAnalyzer, OpenAIAnalyzer, parse_analysis_payload
from .config import AssistantConfig, load_config
from .credentials import CredentialStore, resolve_api_key
from .errors import MalformedResponseError
from .llm import OpenAIAnalysisClient
from .models import DocumentState
from .mutation import accept_edit, dismiss_edit, dismiss_keyword, insert_keyword
from .session import ERROR, EditorSession, SessionHistory
from .spans import find_overlaps, segment_text, summarize

app = typer.Typer(help="Writing Assistant CLI.", no_args_is_help=True)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log alignment and analysis details."
    ),
) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s"
        )


@app.command()
def align(
    text_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    response_path: Path = typer.Option(
        ..., exists=True, readable=True, dir_okay=False
    ),
) -> None:
    """Align a stored analysis response to a text and print the document state."""
    text = _read_text(text_path)
    try:
        result = parse_analysis_payload(response_path.read_text(encoding="utf-8"))
    except MalformedResponseError as exc:
        raise typer.BadParameter(str(exc), param_hint="--response-path") from exc
    spans = align_suggestions(result.suggestions, text)
    state = DocumentState(text=text, spans=spans, keywords=result.keywords)
    payload: Dict[str, Any] = dict(_state_payload(state, result.score))
    payload["summary"] = summarize(state)
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def analyze(
    input_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c"),
    history_path: Path | None = typer.Option(
        None, "--history-path", help="Session history file to update."
    ),
    openai_enabled: bool | None = typer.Option(
        None,
        "--openai-enabled/--openai-disabled",
        help="Toggle OpenAI-backed analysis.",
    ),
    openai_model: str | None = typer.Option(
        None, "--openai-model", help="OpenAI model identifier (e.g., gpt-4o-mini)."
    ),
    openai_api_key: str | None = typer.Option(
        None, "--openai-api-key", help="Explicit OpenAI API key (prefer env vars)."
    ),
    openai_api_key_env: str | None = typer.Option(
        None,
        "--openai-api-key-env",
        help="Environment variable to read the OpenAI API key from.",
    ),
    openai_base_url: str | None = typer.Option(
        None, "--openai-base-url", help="Custom OpenAI base URL (Azure, proxy, etc.)."
    ),
    openai_temperature: float | None = typer.Option(
        None, "--openai-temperature", help="Sampling temperature for analysis."
    ),
    openai_max_output_tokens: int | None = typer.Option(
        None, "--openai-max-output-tokens", help="Max tokens the response can emit."
    ),
    openai_request_timeout: float | None = typer.Option(
        None, "--openai-request-timeout", help="Request timeout (seconds)."
    ),
) -> None:
    """Analyze a text file, align the suggestions and print the session."""
    cfg = load_config(config)
    _apply_openai_overrides(
        cfg,
        openai_enabled,
        openai_model,
        openai_api_key,
        openai_api_key_env,
        openai_base_url,
        openai_temperature,
        openai_max_output_tokens,
        openai_request_timeout,
    )
    if history_path is not None:
        cfg.history_path = str(history_path)
    history = (
        SessionHistory.load(cfg.history_path, limit=cfg.session_limit)
        if cfg.history_path
        else SessionHistory(limit=cfg.session_limit)
    )
    session = EditorSession(_read_text(input_path), history=history)
    session.analyze(_build_analyzer(cfg))
    if session.status == ERROR:
        typer.echo(f"Analysis failed: {session.error}", err=True)
        raise typer.Exit(code=1)
    if cfg.history_path:
        history.save(cfg.history_path)
    payload: Dict[str, Any] = dict(_state_payload(session.state, session.score))
    payload["session_id"] = session.active_session_id
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def apply(
    state_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    accept: List[str] = typer.Option([], "--accept", help="Span id to accept."),
    insert: List[str] = typer.Option(
        [], "--insert", help="Keyword insertion as MARKER_ID@INDEX."
    ),
    dismiss: List[str] = typer.Option([], "--dismiss", help="Span id to dismiss."),
    dismiss_keyword_ids: List[str] = typer.Option(
        [], "--dismiss-keyword", help="Keyword marker id to dismiss."
    ),
    output_path: Path | None = typer.Option(None, "--output-path", dir_okay=False),
) -> None:
    """Apply accept/insert/dismiss actions, in that order, to a stored state."""
    raw = _read_json(state_path)
    state = _load_state(raw, state_path)
    insertions = [_parse_insertion(value) for value in insert]
    for span_id in accept:
        state = _report_noop(accept_edit(state, span_id), state, f"accept {span_id}")
    for marker_id, index in insertions:
        state = _report_noop(
            insert_keyword(state, marker_id, index),
            state,
            f"insert {marker_id}@{index}",
        )
    for span_id in dismiss:
        state = _report_noop(dismiss_edit(state, span_id), state, f"dismiss {span_id}")
    for marker_id in dismiss_keyword_ids:
        state = _report_noop(
            dismiss_keyword(state, marker_id), state, f"dismiss-keyword {marker_id}"
        )
    payload = _state_payload(state, raw.get("score"))
    rendered = json.dumps(payload, indent=2)
    if output_path is None:
        typer.echo(rendered)
        return
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(rendered, encoding="utf-8")
    typer.echo(f"Wrote updated state to {output_path}")


@app.command()
def render(
    state_path: Path = typer.Option(..., exists=True, readable=True, dir_okay=False),
    caret: int | None = typer.Option(None, "--caret", help="Insertion caret offset."),
) -> None:
    """Print display segments and overlapping span pairs for a stored state."""
    state = _load_state(_read_json(state_path), state_path)
    segments = segment_text(state.text, state.spans, caret=caret)
    payload: RenderPayload = {
        "segments": [
            {
                "kind": segment.kind,
                "start": segment.start,
                "end": segment.end,
                "text": segment.text,
                "span_id": segment.span_id,
                "category": segment.category,
            }
            for segment in segments
        ],
        "overlaps": [
            [first.span_id, second.span_id]
            for first, second in find_overlaps(state.spans)
        ],
        "summary": summarize(state),
    }
    typer.echo(json.dumps(payload, indent=2))


@app.command()
def sessions(
    history_path: Path = typer.Option(..., "--history-path", dir_okay=False),
) -> None:
    """List stored sessions, most recent first."""
    history = SessionHistory.load(history_path)
    if not len(history):
        typer.echo("No sessions stored.")
        return
    for session in history:
        score = "-" if session.score is None else str(session.score)
        typer.echo(
            f"{session.session_id}\t{score}\t{session.updated_at}\t{session.title}"
        )


@app.command("save-key")
def save_key(
    api_key: str = typer.Option(..., prompt=True, hide_input=True),
    config: Path | None = typer.Option(None, "--config", "-c"),
    credential_path: Path | None = typer.Option(None, "--credential-path"),
) -> None:
    """Store an API key in the local credential file."""
    cfg = load_config(config)
    target = credential_path or (
        Path(cfg.credential_path) if cfg.credential_path else None
    )
    if target is None:
        raise typer.BadParameter(
            "No credential path configured.", param_hint="--credential-path"
        )
    try:
        CredentialStore(target).save(api_key)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--api-key") from exc
    typer.echo(f"Saved API key to {target}")


@app.command("print-config")
def print_config() -> None:
    """Print the default configuration as YAML."""
    cfg = AssistantConfig()
    typer.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False))


def main() -> None:
    app()


class StatePayload(TypedDict):
    text: str
    spans: List[Dict[str, Any]]
    keywords: List[Dict[str, Any]]
    score: int | None


class RenderPayload(TypedDict):
    segments: List[Dict[str, Any]]
    overlaps: List[List[str]]
    summary: Dict[str, Any]


def _apply_openai_overrides(
    config: AssistantConfig,
    openai_enabled: bool | None,
    openai_model: str | None,
    openai_api_key: str | None,
    openai_api_key_env: str | None,
    openai_base_url: str | None,
    openai_temperature: float | None,
    openai_max_output_tokens: int | None,
    openai_request_timeout: float | None,
) -> None:
    """Override OpenAI settings from CLI flags."""
    settings = config.openai
    if openai_enabled is not None:
        settings.enabled = openai_enabled
    if openai_model:
        settings.model = openai_model
    if openai_api_key:
        settings.api_key = openai_api_key
    if openai_api_key_env:
        settings.api_key_env = openai_api_key_env
    if openai_base_url:
        settings.base_url = openai_base_url
    if openai_temperature is not None:
        settings.temperature = openai_temperature
    if openai_max_output_tokens is not None:
        settings.max_output_tokens = openai_max_output_tokens
    if openai_request_timeout is not None:
        settings.request_timeout = openai_request_timeout


def _build_analyzer(config: AssistantConfig) -> Analyzer:
    """Instantiate the configured analyzer implementation for the current run."""
    if not config.openai.enabled:
        typer.echo(
            "OpenAI analysis disabled; no suggestions will be produced.", err=True
        )
        return NoOpAnalyzer()
    store = CredentialStore(config.credential_path) if config.credential_path else None
    api_key = resolve_api_key(config.openai, store)
    if not api_key:
        typer.echo(
            f"Set {config.openai.api_key_env} or pass --openai-api-key to enable "
            "OpenAI-powered suggestions.",
            err=True,
        )
        raise typer.Exit(code=1)
    client = OpenAIAnalysisClient(config.openai, api_key=api_key)
    return OpenAIAnalyzer(
        client,
        max_suggestions=config.max_suggestions,
        max_keywords=config.max_keywords,
    )


def _parse_insertion(value: str) -> Tuple[str, int]:
    """Split ``MARKER_ID@INDEX`` into its parts."""
    marker_id, sep, index = value.rpartition("@")
    if not sep or not marker_id:
        raise typer.BadParameter(
            f"Expected MARKER_ID@INDEX, got {value!r}.", param_hint="--insert"
        )
    try:
        return marker_id, int(index)
    except ValueError as exc:
        raise typer.BadParameter(
            f"Insertion index must be an integer, got {index!r}.",
            param_hint="--insert",
        ) from exc


def _report_noop(
    updated: DocumentState, previous: DocumentState, action: str
) -> DocumentState:
    if updated is previous:
        typer.echo(f"Skipped {action}: no matching item or index.", err=True)
    return updated


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise typer.BadParameter(f"{path} is not UTF-8 text.") from exc


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"{path} is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise typer.BadParameter(f"{path} must contain a JSON object.")
    return payload


def _load_state(raw: Dict[str, Any], path: Path) -> DocumentState:
    try:
        return DocumentState.from_dict(raw)
    except (KeyError, TypeError, ValueError) as exc:
        raise typer.BadParameter(
            f"{path} does not hold a valid document state: {exc!r}",
            param_hint="--state-path",
        ) from exc


def _state_payload(state: DocumentState, score: int | None) -> StatePayload:
    """Serialize a document state plus score so it can be emitted in JSON."""
    data = state.to_dict()
    return {
        "text": data["text"],
        "spans": data["spans"],
        "keywords": data["keywords"],
        "score": score,
    }


if __name__ == "__main__":
    main()

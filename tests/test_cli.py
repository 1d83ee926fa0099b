import json
from pathlib import Path
from typing import Any

from pytest import MonkeyPatch
from typer.testing import CliRunner

from writing_assistant.cli import app
from tests.utils import write_json

runner = CliRunner()

SAMPLE_TEXT = "The the cat sat."


def _write_inputs(tmp_path: Path) -> tuple[Path, Path]:
    text_path = tmp_path / "note.txt"
    text_path.write_text(SAMPLE_TEXT, encoding="utf-8")
    response_path = write_json(
        tmp_path / "response.json",
        {
            "score": 77,
            "suggestions": [
                {
                    "id": "dup",
                    "type": "correctness",
                    "original": "The the",
                    "replacement": "The",
                    "startIndex": 0,
                    "endIndex": 7,
                },
                {"id": "end", "original": "sat.", "replacement": "sat!"},
                {"id": "gone", "original": "dog", "replacement": "cat"},
            ],
            "keywords": [{"id": "k1", "keyword": "black"}],
        },
    )
    return text_path, response_path


def test_cli_align_outputs_state(tmp_path: Path):
    """align command anchors stored suggestions and drops unmatched ones."""
    text_path, response_path = _write_inputs(tmp_path)
    result = runner.invoke(
        app,
        ["align", "--text-path", str(text_path), "--response-path", str(response_path)],
    )
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["score"] == 77
    assert [(s["span_id"], s["start_index"], s["end_index"]) for s in payload["spans"]] == [
        ("dup", 0, 7),
        ("end", 12, 16),
    ]
    assert payload["keywords"][0]["keyword"] == "black"
    summary = payload["summary"]
    assert summary["word_count"] == 4
    assert summary["total_issues"] == 3
    counts = {c["category"]: c["count"] for c in summary["categories"]}
    assert counts["correctness"] == 1
    assert counts["keyword"] == 1


def test_cli_align_rejects_malformed_response(tmp_path: Path):
    text_path, _ = _write_inputs(tmp_path)
    bad = tmp_path / "bad.json"
    bad.write_text("not json at all", encoding="utf-8")
    result = runner.invoke(
        app, ["align", "--text-path", str(text_path), "--response-path", str(bad)]
    )
    assert result.exit_code != 0


def test_cli_apply_accepts_and_inserts(tmp_path: Path):
    """apply command runs accepts before insertions and writes the new state."""
    text_path, response_path = _write_inputs(tmp_path)
    aligned = runner.invoke(
        app,
        ["align", "--text-path", str(text_path), "--response-path", str(response_path)],
    )
    state_path = tmp_path / "state.json"
    state_path.write_text(aligned.stdout, encoding="utf-8")
    output_path = tmp_path / "out" / "state.json"

    result = runner.invoke(
        app,
        [
            "apply",
            "--state-path",
            str(state_path),
            "--accept",
            "dup",
            "--insert",
            "k1@4",
            "--output-path",
            str(output_path),
        ],
    )
    assert result.exit_code == 0
    state = json.loads(output_path.read_text(encoding="utf-8"))
    assert state["text"] == "The black cat sat."
    span = state["spans"][0]
    assert state["text"][span["start_index"] : span["end_index"]] == "sat."
    assert state["keywords"] == []
    assert state["score"] == 77


def test_cli_apply_rejects_bad_insertion(tmp_path: Path):
    state_path = write_json(tmp_path / "state.json", {"text": "abc"})
    result = runner.invoke(
        app, ["apply", "--state-path", str(state_path), "--insert", "k1"]
    )
    assert result.exit_code != 0


def test_cli_render_lists_segments_and_overlaps(tmp_path: Path):
    state_path = write_json(
        tmp_path / "state.json",
        {
            "text": "abcdefgh",
            "spans": [
                {"span_id": "a", "start_index": 0, "end_index": 4, "original": "abcd"},
                {"span_id": "b", "start_index": 2, "end_index": 6, "original": "cdef"},
            ],
        },
    )
    result = runner.invoke(app, ["render", "--state-path", str(state_path)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [seg["kind"] for seg in payload["segments"]] == ["highlight", "text"]
    assert payload["overlaps"] == [["a", "b"]]
    assert payload["summary"]["total_issues"] == 2


def test_cli_render_rejects_malformed_span(tmp_path: Path):
    """A span without an id is reported as a bad state file, not a traceback."""
    state_path = write_json(
        tmp_path / "state.json",
        {"text": "abc", "spans": [{"start_index": 0, "end_index": 1}]},
    )
    result = runner.invoke(app, ["render", "--state-path", str(state_path)])
    assert result.exit_code != 0
    assert isinstance(result.exception, SystemExit)


def test_cli_apply_rejects_non_integer_offsets(tmp_path: Path):
    state_path = write_json(
        tmp_path / "state.json",
        {
            "text": "abc",
            "spans": [{"span_id": "a", "start_index": "x", "end_index": 1}],
        },
    )
    result = runner.invoke(app, ["apply", "--state-path", str(state_path)])
    assert result.exit_code != 0
    assert isinstance(result.exception, SystemExit)


def test_cli_analyze_with_openai_records_history(
    monkeypatch: MonkeyPatch, tmp_path: Path
) -> None:
    """analyze command wires OpenAI settings into the analyzer and stores the session."""
    text_path, response_path = _write_inputs(tmp_path)
    history_path = tmp_path / "history.json"
    calls: dict[str, Any] = {}

    class DummyClient:
        def __init__(self, settings: Any, api_key: str) -> None:
            calls["settings"] = settings
            calls["api_key"] = api_key

        def complete_json(
            self, *, system_prompt: str, user_prompt: str, metadata: Any
        ) -> str:
            calls["user_prompt"] = user_prompt
            return response_path.read_text(encoding="utf-8")

    monkeypatch.setattr("writing_assistant.cli.OpenAIAnalysisClient", DummyClient)

    result = runner.invoke(
        app,
        [
            "analyze",
            "--input-path",
            str(text_path),
            "--history-path",
            str(history_path),
            "--openai-enabled",
            "--openai-model",
            "gpt-4o",
        ],
        env={"OPENAI_API_KEY": "dummy-key"},
    )
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert [s["span_id"] for s in payload["spans"]] == ["dup", "end"]
    assert calls["settings"].model == "gpt-4o"
    assert calls["api_key"] == "dummy-key"
    assert SAMPLE_TEXT in calls["user_prompt"]

    stored = json.loads(history_path.read_text(encoding="utf-8"))
    assert stored[0]["session_id"] == payload["session_id"]

    listing = runner.invoke(app, ["sessions", "--history-path", str(history_path)])
    assert listing.exit_code == 0
    assert payload["session_id"] in listing.stdout
    assert "77" in listing.stdout


def test_cli_save_key_writes_credential(tmp_path: Path):
    target = tmp_path / "key.txt"
    result = runner.invoke(
        app,
        ["save-key", "--api-key", "sk-demo", "--credential-path", str(target)],
    )
    assert result.exit_code == 0
    assert target.read_text(encoding="utf-8").strip() == "sk-demo"


def test_cli_print_config():
    """print-config command dumps the current configuration values."""
    result = runner.invoke(app, ["print-config"])
    assert result.exit_code == 0
    assert "max_suggestions" in result.stdout

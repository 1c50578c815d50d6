import json
from pathlib import Path

from tagquest.data.paths import get_definitions_path
from tagquest.presentation.cli import app
from tagquest.services.adventure_service import OptionView, StepView


def _write(tmp_path: Path, payload: object, name: str = "quest.json") -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_lint_reports_errors_with_exit_code(tmp_path: Path, capsys) -> None:
    path = _write(tmp_path, [{"id": "A1", "tags": ["!quest"], "options": ["Go::nowhere"]}])
    assert app.main(["lint", str(path)]) == 1
    assert "BROKEN_PASS_TARGET" in capsys.readouterr().out


def test_lint_clean_file(tmp_path: Path, capsys) -> None:
    path = _write(tmp_path, {"steps": [{"id": "A1", "tags": ["@q:wolves"]}]})
    assert app.main(["lint", str(path)]) == 0
    assert "no issues found" in capsys.readouterr().out


def test_lint_uses_locations_file(tmp_path: Path, capsys) -> None:
    quest = _write(tmp_path, [{"id": "square_step", "tags": ["!quest"]}])
    locations = _write(tmp_path, {"A1": "square_step"}, name="locations.json")
    app.main(["lint", str(quest), "--locations", str(locations)])
    assert "ORPHAN_STEP" not in capsys.readouterr().out


def test_lint_unreadable_file(tmp_path: Path, capsys) -> None:
    assert app.main(["lint", str(tmp_path / "missing.json")]) == 1
    assert "not found" in capsys.readouterr().out


def test_graph_writes_flowchart(tmp_path: Path) -> None:
    output = tmp_path / "flow.json"
    source = get_definitions_path() / "steps.json"
    assert app.main(["graph", str(source), "--output", str(output)]) == 0
    flow = json.loads(output.read_text(encoding="utf-8"))
    assert flow["nodes"]
    assert any(edge["edge_type"] == "fail" for edge in flow["edges"])


def test_graph_tree_outline(capsys) -> None:
    source = get_definitions_path() / "steps.json"
    assert app.main(["graph", str(source), "--tree"]) == 0
    assert "Patches:" in capsys.readouterr().out


def test_coverage_command(capsys) -> None:
    source = get_definitions_path() / "steps.json"
    assert app.main(["coverage", str(source), "Village"]) == 0
    out = capsys.readouterr().out
    assert "quest | q:wolves | q:wolves_done | matches | status" in out


def test_coverage_with_bad_bundle(tmp_path: Path, capsys) -> None:
    path = _write(tmp_path, {"steps": []})
    assert app.main(["coverage", str(path), "A1"]) == 1
    assert "Failed to load" in capsys.readouterr().out


def test_play_session_visits_a_location(monkeypatch, capsys) -> None:
    answers = iter(["1", "7", "Rin", "", "", "", "Village", "c", "q"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    monkeypatch.setattr(app.cli_config, "load_config", lambda: {"text_width": 72})

    assert app.main(["play"]) == 0

    out = capsys.readouterr().out
    assert "Game started with seed: 7" in out
    assert "The village square is quiet." in out
    assert "Tags: (none)" in out
    assert "Goodbye!" in out


def test_play_with_missing_bundle(tmp_path: Path, capsys) -> None:
    assert app.main(["play", str(tmp_path / "none.json")]) == 1
    assert "Failed to load" in capsys.readouterr().out


def test_lint_file_with_invalid_utf8(tmp_path: Path, capsys) -> None:
    path = tmp_path / "garbled.json"
    path.write_bytes(b'[{"id": "A1", "text": "\xff"}]')
    assert app.main(["lint", str(path)]) == 1
    assert "UTF-8" in capsys.readouterr().out


def test_virtual_step_prompts_for_an_option() -> None:
    options = [OptionView(label="Run", available=True)]
    assert "location" not in app._command_prompt(StepView(step_id="ambush", text="", options=options, virtual=True))
    assert "location" in app._command_prompt(StepView(step_id="A1", text="", options=options))
    assert "location" in app._command_prompt(None)

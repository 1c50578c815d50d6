import json
from pathlib import Path

import pytest

from tagquest.data.errors import DataValidationError
from tagquest.data.json_loader import is_error_document, load_bundle_document
from tagquest.data.repositories import ContentBundle, ContentRepository, build_bundle, load_content_bundle
from tagquest.data.repositories.content_repo import parse_step
from tagquest.domain.defs import OptionDef, StepDef
from tests.helpers.content import make_config


def _write(tmp_path: Path, name: str, payload: object) -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_sample_content_loads() -> None:
    bundle = ContentRepository().bundle()
    assert bundle.locations["A1"] == "Village"
    assert len(bundle.steps_by_id()["Village"]) == 3
    assert [patch.target for patch in bundle.patches] == ["Forest"]
    assert bundle.warnings == ()


def test_missing_file_returns_error_document(tmp_path: Path) -> None:
    result = load_content_bundle(tmp_path / "nope.json")
    assert isinstance(result, dict)
    assert is_error_document(result)
    assert "not found" in result["error"]


def test_invalid_json_returns_error_document(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    assert is_error_document(load_bundle_document(path))


def test_missing_config_returns_error_document(tmp_path: Path) -> None:
    path = _write(tmp_path, "steps.json", {"steps": []})
    assert is_error_document(load_bundle_document(path))


def test_yaml_bundle_loads(tmp_path: Path) -> None:
    path = tmp_path / "steps.yaml"
    path.write_text(
        "config:\n  startingStats: {might: 1, guile: 1, magic: 1}\n"
        "steps:\n  - id: A1\n    text: Hello\n    options: ['Go::b_step']\n  - id: b_step\n",
        encoding="utf-8",
    )
    bundle = load_content_bundle(path)
    assert isinstance(bundle, ContentBundle)
    assert bundle.steps[0].options[0].pass_target == "b_step"
    assert bundle.config.starting_stats.might == 1


def test_presets_inside_steps_are_merged() -> None:
    bundle = build_bundle(
        {
            "config": make_config(),
            "option_presets": {"a": ["One"]},
            "steps": [
                {"option_presets": {"b": ["Two::x"]}},
                {"id": "x", "options": "b"},
                {"id": "y", "options": "a"},
            ],
        }
    )
    assert set(bundle.presets) == {"a", "b"}
    assert [step.id for step in bundle.steps] == ["x", "y"]
    assert bundle.steps[0].options[0].pass_target == "x"
    assert bundle.steps[0].preset == "b"


def test_patch_entries_become_patches() -> None:
    bundle = build_bundle(
        {
            "config": make_config(),
            "steps": [
                {"id": "x", "text": "Base"},
                {"id": "@patch:x", "tags": ["@lamp"], "text": {"append": "Lit"}},
            ],
            "patches": [{"target": "ghost", "text": {"replace": "Boo"}}],
        }
    )
    assert [patch.target for patch in bundle.patches] == ["x", "ghost"]
    assert bundle.patches[0].text.append == "Lit"
    assert bundle.warnings == ("Patch targets non-existent step: ghost",)


def test_patch_targeting_patch_is_rejected() -> None:
    with pytest.raises(DataValidationError):
        build_bundle({"config": make_config(), "steps": [{"id": "@patch:@patch:x"}]})


def test_config_rejects_unknown_stat() -> None:
    with pytest.raises(DataValidationError):
        build_bundle({"config": make_config(comparisonStats=["luck"]), "steps": []})


def test_config_rejects_zero_die_sides() -> None:
    with pytest.raises(DataValidationError):
        build_bundle({"config": make_config(dieSides=0), "steps": []})


def test_step_with_non_string_tag_is_rejected() -> None:
    with pytest.raises(DataValidationError):
        build_bundle({"config": make_config(), "steps": [{"id": "x", "tags": [3]}]})


def test_vars_accept_values_and_records() -> None:
    bundle = build_bundle(
        {
            "config": make_config(),
            "steps": [{"id": "x", "vars": {"n": ["a", 2], "npc": [{"name": "Ash"}], "gone": None}}],
        }
    )
    assert bundle.steps[0].vars == {"n": ["a", "2"], "npc": [{"name": "Ash"}], "gone": None}


def test_validation_failure_in_file_returns_error_document(tmp_path: Path) -> None:
    path = _write(tmp_path, "bad.json", {"config": make_config(), "steps": [{"id": 5}]})
    result = load_content_bundle(path)
    assert isinstance(result, dict)
    assert "steps[0].id" in result["error"]


def test_invalid_utf8_returns_error_document(tmp_path: Path) -> None:
    path = tmp_path / "garbled.json"
    path.write_bytes(b'{"config": {}, "steps": [{"id": "A1", "text": "\xff\xfe"}]}')
    result = load_bundle_document(path)
    assert is_error_document(result)
    assert "UTF-8" in result["error"]


def test_step_survives_raw_round_trip() -> None:
    step = StepDef(
        id="B2",
        tags=("!quest", "@might>2", "brave", "+q:wolves", "-coin"),
        text="Hello {{npc}}.",
        log="Met {{npc}}.",
        options=(
            OptionDef(label="Leave"),
            OptionDef(label="Go on", pass_target="B2_next"),
            OptionDef(label="Sneak", tags=("@cloak",), pass_target="B2_in", fail_target="B2_out", skill=("guile",), dc=8),
        ),
        vars={"npc": ["Ash", "Bryn"]},
    )
    parsed = parse_step(step.to_raw(), {}, context="steps[0]")
    assert parsed == step
    assert parsed.tags == step.tags

from tagquest.core.rng import RNG
from tagquest.domain.variables import (
    QuestVariables,
    derive_pronoun,
    extract_variables,
    render_text,
    resolve_step_vars,
)
from tests.helpers.content import ScriptedRNG


def test_plain_candidates_bind_one_value() -> None:
    table = QuestVariables()
    resolve_step_vars({"npc": ["Ana", "Bo"]}, table, RNG(3))
    assert table.get("npc") in ("Ana", "Bo")


def test_record_candidate_binds_fields_and_bare_name() -> None:
    table = QuestVariables()
    resolve_step_vars(
        {"npc": [{"name": "Ash", "gender": "female"}]},
        table,
        ScriptedRNG(),
    )
    assert table.snapshot() == {"npc.name": "Ash", "npc.gender": "female", "npc": "Ash"}


def test_rebinding_record_drops_stale_fields() -> None:
    table = QuestVariables(values={"npc": "Old", "npc.title": "Sir", "npcs": "keep"})
    resolve_step_vars({"npc": [{"name": "Ash"}]}, table, ScriptedRNG())
    assert "npc.title" not in table.values
    assert table.get("npcs") == "keep"


def test_null_clears_and_empty_list_is_ignored() -> None:
    table = QuestVariables(values={"npc": "Ash", "npc.gender": "female", "item": "rope"})
    resolve_step_vars({"npc": None, "item": []}, table, ScriptedRNG())
    assert table.snapshot() == {"item": "rope"}


def test_variables_persist_until_rebound() -> None:
    table = QuestVariables()
    resolve_step_vars({"npc": ["Ana"]}, table, ScriptedRNG())
    resolve_step_vars({"other": ["x"]}, table, ScriptedRNG())
    assert render_text("{{npc}} waits.", table) == "Ana waits."


def test_render_unknown_placeholder_is_empty_and_recorded() -> None:
    table = QuestVariables()
    assert render_text("Hello {{stranger}}! {{stranger}}?", table) == "Hello ! ?"
    assert table.unresolved == ["stranger"]


def test_pronouns_follow_gender_and_capitalization() -> None:
    table = QuestVariables(values={"npc": "Ash", "npc.gender": "female"})
    assert derive_pronoun("npc.he", table) == "she"
    assert derive_pronoun("npc.Him", table) == "Her"
    assert render_text("{{npc.He}} nods; {{npc.his}} bow is ready.", table) == "She nods; her bow is ready."


def test_explicit_binding_beats_pronoun_derivation() -> None:
    table = QuestVariables(values={"npc.gender": "male", "npc.him": "the captain"})
    assert render_text("Ask {{npc.him}}.", table) == "Ask the captain."


def test_pronoun_without_gender_is_unresolved() -> None:
    table = QuestVariables()
    assert derive_pronoun("npc.he", table) is None
    assert render_text("{{npc.he}}", table) == ""


def test_extract_variables_in_order() -> None:
    assert extract_variables("{{a}} and {{b.name}} then {{a}}") == ["a", "b.name", "a"]
    assert extract_variables(None) == []

from __future__ import annotations

import json

import pytest

from tagquest.services.adventure_service import AdventureService
from tagquest.services.errors import SaveLoadError
from tagquest.services.save_service import SaveService
from tests.helpers.content import make_bundle, make_config


def _make_service() -> AdventureService:
    steps = [
        {"id": "A1", "tags": ["+coin"], "vars": {"npc": [{"name": "Ash", "gender": "female"}]}, "log": "Met {{npc}}."},
        {"id": "B1", "tags": ["@coin"], "text": "A merchant nods."},
    ]
    return AdventureService(make_bundle(steps, config=make_config(statsIncreaseEvery=1)))


def test_save_round_trip_restores_progress() -> None:
    service = _make_service()
    save_service = SaveService()
    state = service.start_new_game(seed=99, player_name="Rin")
    service.navigate(state, "A1")
    service.increase_stat(state, "magic")

    payload = json.loads(json.dumps(save_service.serialize(state)))
    restored = save_service.deserialize(payload)

    assert restored.seed == 99
    assert restored.player == state.player
    assert restored.variables.snapshot() == {"npc.name": "Ash", "npc.gender": "female", "npc": "Ash"}
    assert restored.quest_log == ["Met Ash."]
    assert restored.phase == "navigation"
    assert restored.current_step is None
    assert restored.rng.randint(1, 1000) == state.rng.randint(1, 1000)
    assert payload["metadata"]["player_name"] == "Rin"


def test_pending_stat_increase_resumes_in_level_up() -> None:
    service = _make_service()
    save_service = SaveService()
    state = service.start_new_game(seed=5)
    service.navigate(state, "A1")
    assert state.pending_stat_increase

    restored = save_service.deserialize(save_service.serialize(state))

    assert restored.phase == "level_up"
    service.increase_stat(restored, "might")
    assert restored.phase == "navigation"


def test_restored_game_keeps_playing() -> None:
    service = _make_service()
    save_service = SaveService()
    state = service.start_new_game(seed=5)
    service.navigate(state, "A1")
    service.increase_stat(state, "guile")

    restored = save_service.deserialize(save_service.serialize(state))
    result = service.navigate(restored, "B1")
    assert result.view.text == "A merchant nods."


def test_quest_log_is_capped_on_load() -> None:
    service = _make_service()
    state = service.start_new_game(seed=1)
    state.quest_log = [f"entry {index}" for index in range(5)]
    restored = SaveService(max_log_entries=2).deserialize(SaveService().serialize(state))
    assert restored.quest_log == ["entry 0", "entry 1"]


@pytest.mark.parametrize(
    "mutate",
    [
        lambda payload: payload.update(save_version=0),
        lambda payload: payload.pop("rng"),
        lambda payload: payload["state"].update(seed="x"),
        lambda payload: payload["state"]["character"].update(tags="coin"),
        lambda payload: payload["state"]["character"].update(xp=-1),
        lambda payload: payload["state"].update(quest_vars={"npc": 3}),
        lambda payload: payload["state"].update(pending_stat_increase="yes"),
        lambda payload: payload["rng"].update(state="bad"),
    ],
)
def test_invalid_payloads_raise(mutate) -> None:
    service = _make_service()
    save_service = SaveService()
    payload = json.loads(json.dumps(save_service.serialize(service.start_new_game(seed=3))))
    mutate(payload)
    with pytest.raises(SaveLoadError):
        save_service.deserialize(payload)


def test_non_mapping_payload_raises() -> None:
    with pytest.raises(SaveLoadError):
        SaveService().deserialize([])  # type: ignore[arg-type]

import pytest

from tagquest.domain.defs import GameConfigDef, StatBlock
from tagquest.domain.state import PlayerState
from tagquest.services.character_service import CharacterService
from tagquest.services.errors import CharacterCreationError


def _make_service(**overrides) -> CharacterService:
    config = GameConfigDef(starting_stats=StatBlock(2, 1, 0), starting_points=3, stats_increase_every=4, **overrides)
    return CharacterService(config)


def test_create_player_applies_allocation() -> None:
    player = _make_service().create_player({"might": 2, "magic": 1}, name="Rin")
    assert (player.name, player.might, player.guile, player.magic) == ("Rin", 4, 1, 1)


def test_create_player_rejects_overspend_and_unknown_stats() -> None:
    service = _make_service()
    with pytest.raises(CharacterCreationError):
        service.create_player({"might": 4})
    with pytest.raises(CharacterCreationError):
        service.create_player({"luck": 1})
    with pytest.raises(CharacterCreationError):
        service.create_player({"might": -1})


def test_stat_increase_every_n_steps() -> None:
    service = _make_service()
    assert not service.check_stat_increase(PlayerState(steps_completed=0))
    assert not service.check_stat_increase(PlayerState(steps_completed=3))
    assert service.check_stat_increase(PlayerState(steps_completed=8))


def test_increase_stat() -> None:
    service = _make_service(stat_increase_amount=2)
    player = PlayerState(guile=1)
    result = service.increase_stat(player, "guile")
    assert player.guile == 3
    assert result.new_value == 3
    with pytest.raises(CharacterCreationError):
        service.increase_stat(player, "charm")

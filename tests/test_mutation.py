from tagquest.domain.mutation import apply_tag_mutations
from tagquest.domain.state import PlayerState


def test_grant_and_consume_single_copies() -> None:
    player = PlayerState(tags=["coin", "coin"])
    result = apply_tag_mutations(player, ["+gift", "-coin", "@ignored", "brave"])

    assert player.tags == ["coin", "gift"]
    assert result.added == ["gift"]
    assert result.removed == ["coin"]


def test_consuming_missing_tag_is_a_no_op() -> None:
    player = PlayerState(tags=["rope"])
    result = apply_tag_mutations(player, ["-torch"])
    assert player.tags == ["rope"]
    assert not result.changed


def test_grants_stack() -> None:
    player = PlayerState()
    apply_tag_mutations(player, ["+inv:silver", "+inv:silver"])
    assert player.count_tag("inv:silver") == 2


def test_consuming_quest_awards_xp_and_clears_quest_scope() -> None:
    player = PlayerState(tags=["quest", "q:wolves", "q:wolves_done", "lantern"])
    result = apply_tag_mutations(player, ["-quest"])

    assert player.tags == ["lantern"]
    assert player.xp == 1
    assert result.xp_gained == 1
    assert set(result.removed) == {"quest", "q:wolves", "q:wolves_done"}


def test_level_up_reported_when_xp_crosses_threshold() -> None:
    player = PlayerState(xp=4, tags=["quest"])
    result = apply_tag_mutations(player, ["-quest"], xp_per_level=5)
    assert result.leveled_up
    assert player.level(5) == 2


def test_level_is_a_virtual_tag() -> None:
    player = PlayerState(xp=10)
    state = player.tag_state(xp_per_level=5)
    assert state.count("level") == 3
    assert "level" not in player.tags

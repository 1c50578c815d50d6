"""Skill check resolution: one die roll plus stat and tag bonuses against a DC."""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Sequence, Tuple

from tagquest.core.rng import RNG
from tagquest.core.types import STAT_NAMES
from tagquest.domain.defs.config_def import DEFAULT_DIE_SIDES, DEFAULT_TAG_BONUS

if TYPE_CHECKING:
    from tagquest.domain.state import PlayerState


@dataclass(frozen=True, slots=True)
class SkillBonus:
    source: str
    value: int
    kind: str = "stat"


@dataclass(frozen=True, slots=True)
class SkillCheckResult:
    roll: int
    bonuses: Tuple[SkillBonus, ...]
    total_bonus: int
    total: int
    dc: int
    success: bool


def skill_bonus(
    source: str,
    player: "PlayerState",
    *,
    tag_bonus: int = DEFAULT_TAG_BONUS,
    stat_modifiers: Mapping[str, Mapping[str, int]] | None = None,
) -> SkillBonus:
    """Resolve a single source to its bonus.

    Stat names use the effective stat value; anything else is a tag worth
    ``tag_bonus`` per copy held.
    """
    if source in STAT_NAMES:
        return SkillBonus(source=source, value=player.effective_stats(stat_modifiers)[source], kind="stat")
    return SkillBonus(source=source, value=player.count_tag(source) * tag_bonus, kind="tag")


def resolve_check(
    sources: str | Sequence[str],
    dc: int,
    player: "PlayerState",
    *,
    rng: RNG,
    die_sides: int = DEFAULT_DIE_SIDES,
    tag_bonus: int = DEFAULT_TAG_BONUS,
    stat_modifiers: Mapping[str, Mapping[str, int]] | None = None,
) -> SkillCheckResult:
    """Roll the die once and total the bonuses from every source."""
    if isinstance(sources, str):
        sources = (sources,)
    roll = rng.randint(1, die_sides)
    bonuses = tuple(
        skill_bonus(source, player, tag_bonus=tag_bonus, stat_modifiers=stat_modifiers) for source in sources
    )
    total_bonus = sum(bonus.value for bonus in bonuses)
    total = roll + total_bonus
    return SkillCheckResult(
        roll=roll,
        bonuses=bonuses,
        total_bonus=total_bonus,
        total=total,
        dc=dc,
        success=total >= dc,
    )

"""Game configuration carried inside a content bundle."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple

from tagquest.core.types import STAT_NAMES

DEFAULT_PREFERRED_TAG_WEIGHT = 5
DEFAULT_DIE_SIDES = 6
DEFAULT_TAG_BONUS = 2
DEFAULT_XP_PER_LEVEL = 5
DEFAULT_MAX_LOG_ENTRIES = 100


@dataclass(frozen=True, slots=True)
class StatBlock:
    might: int = 0
    guile: int = 0
    magic: int = 0

    def get(self, stat: str) -> int:
        if stat not in STAT_NAMES:
            raise KeyError(stat)
        return getattr(self, stat)

    def as_dict(self) -> Dict[str, int]:
        return {stat: getattr(self, stat) for stat in STAT_NAMES}


@dataclass(frozen=True, slots=True)
class GameConfigDef:
    """Tunable rules for one deployment of the engine."""

    starting_stats: StatBlock = field(default_factory=lambda: StatBlock(2, 2, 2))
    stats_increase_every: int = 0
    stat_increase_amount: int = 1
    preferred_tag_weight: int = DEFAULT_PREFERRED_TAG_WEIGHT
    starting_points: int = 0
    stat_modifiers: Mapping[str, Mapping[str, int]] = field(default_factory=dict)
    die_sides: int = DEFAULT_DIE_SIDES
    tag_bonus: int = DEFAULT_TAG_BONUS
    xp_per_level: int = DEFAULT_XP_PER_LEVEL
    comparison_stats: Tuple[str, ...] = STAT_NAMES
    max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES

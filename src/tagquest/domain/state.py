"""Domain-level state tracking."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

from tagquest.core.rng import RNG
from tagquest.core.types import STAT_NAMES, GamePhase, StatName
from tagquest.domain.defs import OptionDef, StepDef
from tagquest.domain.defs.config_def import DEFAULT_MAX_LOG_ENTRIES, DEFAULT_XP_PER_LEVEL
from tagquest.domain.skill_check import SkillCheckResult
from tagquest.domain.tags import TagState
from tagquest.domain.variables import QuestVariables

LEVEL_TAG = "level"


@dataclass(slots=True)
class PlayerState:
    """Character sheet plus the tag bag that gates content.

    ``tags`` is a multiset kept as a list; holding a tag twice is meaningful
    for comparisons and tag-sourced skill bonuses.
    """

    name: str = "Adventurer"
    might: int = 0
    guile: int = 0
    magic: int = 0
    steps_completed: int = 0
    xp: int = 0
    tags: List[str] = field(default_factory=list)

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    def count_tag(self, tag: str) -> int:
        return self.tags.count(tag)

    def stat(self, stat: StatName) -> int:
        if stat not in STAT_NAMES:
            raise KeyError(stat)
        return getattr(self, stat)

    def set_stat(self, stat: StatName, value: int) -> None:
        if stat not in STAT_NAMES:
            raise KeyError(stat)
        setattr(self, stat, value)

    def level(self, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> int:
        return self.xp // xp_per_level + 1

    def effective_tags(self, xp_per_level: int = DEFAULT_XP_PER_LEVEL) -> List[str]:
        """Held tags plus one virtual ``level`` tag per character level."""
        return [*self.tags, *([LEVEL_TAG] * self.level(xp_per_level))]

    def stat_modifiers(self, modifiers: Mapping[str, Mapping[str, int]] | None) -> Dict[str, int]:
        """Sum the stat adjustments granted by every held tag copy."""
        totals = {stat: 0 for stat in STAT_NAMES}
        if not modifiers:
            return totals
        for tag in self.tags:
            for stat, amount in modifiers.get(tag, {}).items():
                if stat in totals:
                    totals[stat] += amount
        return totals

    def effective_stats(self, modifiers: Mapping[str, Mapping[str, int]] | None = None) -> Dict[str, int]:
        bonus = self.stat_modifiers(modifiers)
        return {stat: getattr(self, stat) + bonus[stat] for stat in STAT_NAMES}

    def tag_state(
        self,
        *,
        comparison_stats: Sequence[str] = STAT_NAMES,
        modifiers: Mapping[str, Mapping[str, int]] | None = None,
        xp_per_level: int = DEFAULT_XP_PER_LEVEL,
    ) -> TagState:
        """Snapshot used for gate checks; only whitelisted stats compare by value."""
        stats = self.effective_stats(modifiers)
        return TagState.from_tags(
            self.effective_tags(xp_per_level),
            {stat: value for stat, value in stats.items() if stat in comparison_stats},
        )


@dataclass(slots=True)
class PendingSkillCheck:
    option: OptionDef


@dataclass
class GameState:
    """Everything one play session owns."""

    seed: int
    rng: RNG
    phase: GamePhase = "character_creation"
    player: PlayerState = field(default_factory=PlayerState)
    variables: QuestVariables = field(default_factory=QuestVariables)
    current_step_id: str | None = None
    current_step: StepDef | None = None
    quest_log: List[str] = field(default_factory=list)
    max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES
    pending_skill_check: PendingSkillCheck | None = None
    skill_check_result: SkillCheckResult | None = None
    pending_stat_increase: bool = False
    message: str | None = None

    def add_log_entry(self, entry: str) -> None:
        """Insert newest first, dropping the oldest past the cap."""
        self.quest_log.insert(0, entry)
        del self.quest_log[self.max_log_entries:]

"""Character creation and stat progression."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from tagquest.core.types import STAT_NAMES
from tagquest.domain.defs import GameConfigDef
from tagquest.domain.state import PlayerState
from tagquest.services.errors import CharacterCreationError


@dataclass(frozen=True, slots=True)
class StatIncreaseResult:
    stat: str
    amount: int
    new_value: int


class CharacterService:
    """Build new characters and apply periodic stat increases."""

    def __init__(self, config: GameConfigDef) -> None:
        self._config = config

    def create_player(self, allocation: Mapping[str, int] | None = None, *, name: str = "Adventurer") -> PlayerState:
        """Return a player with the starting stats plus ``allocation``.

        ``allocation`` maps stat names to points added on top of the starting
        stats; the total may not exceed ``startingPoints``.
        """
        allocation = dict(allocation or {})
        for stat, points in allocation.items():
            if stat not in STAT_NAMES:
                raise CharacterCreationError(f"Unknown stat '{stat}'.")
            if points < 0:
                raise CharacterCreationError(f"Cannot lower {stat} below its starting value.")
        spent = sum(allocation.values())
        if spent > self._config.starting_points:
            raise CharacterCreationError(
                f"Allocated {spent} points but only {self._config.starting_points} are available."
            )
        starting = self._config.starting_stats
        return PlayerState(
            name=name,
            might=starting.might + allocation.get("might", 0),
            guile=starting.guile + allocation.get("guile", 0),
            magic=starting.magic + allocation.get("magic", 0),
        )

    def check_stat_increase(self, player: PlayerState) -> bool:
        """Return True when the completed-step count earns a stat increase."""
        every = self._config.stats_increase_every
        if every <= 0 or player.steps_completed <= 0:
            return False
        return player.steps_completed % every == 0

    def increase_stat(self, player: PlayerState, stat: str) -> StatIncreaseResult:
        if stat not in STAT_NAMES:
            raise CharacterCreationError(f"Unknown stat '{stat}'.")
        amount = self._config.stat_increase_amount
        new_value = player.stat(stat) + amount  # type: ignore[arg-type]
        player.set_stat(stat, new_value)  # type: ignore[arg-type]
        return StatIncreaseResult(stat=stat, amount=amount, new_value=new_value)

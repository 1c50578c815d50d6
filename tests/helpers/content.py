"""Builders shared by the engine and tooling tests."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

from tagquest.core.rng import RNG
from tagquest.data.repositories import ContentBundle, build_bundle


class ScriptedRNG(RNG):
    """RNG whose die rolls and choices are fixed in advance."""

    def __init__(self, rolls: Iterable[int] = (), choices: Iterable[int] = ()) -> None:
        super().__init__(0)
        self._rolls: List[int] = list(rolls)
        self._choices: List[int] = list(choices)
        self.choice_calls = 0

    def randint(self, a: int, b: int) -> int:
        if self._rolls:
            return self._rolls.pop(0)
        return super().randint(a, b)

    def choice(self, seq: Sequence[Any]) -> Any:
        self.choice_calls += 1
        if self._choices:
            return seq[self._choices.pop(0)]
        return seq[0]


def make_config(**overrides: Any) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "startingStats": {"might": 2, "guile": 2, "magic": 2},
        "statsIncreaseEvery": 0,
        "preferredTagWeight": 5,
    }
    config.update(overrides)
    return config


def make_bundle(steps: List[Dict[str, Any]], **extra: Any) -> ContentBundle:
    config = extra.pop("config", None) or make_config()
    return build_bundle({"config": config, "steps": steps, **extra})

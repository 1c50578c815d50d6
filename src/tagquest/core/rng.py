"""Deterministic RNG wrapper built on top of random.Random."""
from __future__ import annotations

from random import Random
from typing import Any, List, MutableSequence, Sequence, TypedDict, TypeVar

T_co = TypeVar("T_co")


class RNGStatePayload(TypedDict):
    version: int
    state: List[int]
    gauss: float | None


class RNG:
    """Wrapper around random.Random that provides deterministic helpers.

    Every random draw the engine makes (step tie-breaks, skill-check rolls and
    variable candidates) goes through an instance of this class so callers can
    seed it, or substitute a subclass, to force outcomes.
    """

    def __init__(self, seed: int) -> None:
        self._random = Random(seed)

    def randint(self, a: int, b: int) -> int:
        """Return a random integer N such that a <= N <= b."""
        return self._random.randint(a, b)

    def random(self) -> float:
        """Return the next random floating point number in the range [0.0, 1.0)."""
        return self._random.random()

    def choice(self, seq: Sequence[T_co]) -> T_co:
        """Return a random element from the non-empty sequence."""
        if not seq:
            raise ValueError("Cannot choose from an empty sequence.")
        return self._random.choice(seq)

    def shuffle(self, seq: MutableSequence[T_co]) -> None:
        """Shuffle the sequence in-place."""
        self._random.shuffle(seq)

    def export_state(self) -> RNGStatePayload:
        """Return a JSON-friendly snapshot of the generator state."""
        version, internal, gauss = self._random.getstate()
        return {"version": version, "state": list(internal), "gauss": gauss}

    def restore_state(self, payload: RNGStatePayload | dict[str, Any]) -> None:
        """Restore a snapshot produced by export_state."""
        try:
            internal = tuple(int(value) for value in payload["state"])
            self._random.setstate((int(payload["version"]), internal, payload.get("gauss")))
        except (KeyError, TypeError) as exc:
            raise ValueError("Malformed RNG state payload.") from exc

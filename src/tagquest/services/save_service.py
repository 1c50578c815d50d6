"""Serialization helpers for manual save/load."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from tagquest.core.rng import RNG, RNGStatePayload
from tagquest.domain.defs.config_def import DEFAULT_MAX_LOG_ENTRIES
from tagquest.domain.state import GameState, PlayerState
from tagquest.domain.variables import QuestVariables
from tagquest.services.errors import SaveLoadError

SavePayload = Dict[str, Any]


class SaveService:
    """Converts runtime state to/from a validated, versioned payload.

    Transient session state (the displayed step, pending skill checks) is not
    saved; a loaded game resumes at navigation.
    """

    SAVE_VERSION = 1

    def __init__(self, *, max_log_entries: int = DEFAULT_MAX_LOG_ENTRIES) -> None:
        self._max_log_entries = max_log_entries

    def serialize(self, state: GameState) -> SavePayload:
        """Return a JSON-serializable payload for disk persistence."""
        return {
            "save_version": self.SAVE_VERSION,
            "metadata": self._build_metadata(state),
            "rng": state.rng.export_state(),
            "state": self._serialize_state(state),
        }

    def deserialize(self, payload: Mapping[str, Any]) -> GameState:
        """Rehydrate a GameState + RNG from a persisted payload."""
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save data must be a JSON object.")
        if payload.get("save_version") != self.SAVE_VERSION:
            raise SaveLoadError("Save format is not supported by this version.")
        rng_payload = payload.get("rng")
        state_payload = payload.get("state")
        if not isinstance(rng_payload, Mapping) or not isinstance(state_payload, Mapping):
            raise SaveLoadError("Save data is missing required sections.")

        seed = self._require_int(state_payload.get("seed"), "state.seed")
        rng = RNG(seed)
        try:
            rng.restore_state(self._coerce_rng_payload(rng_payload))
        except ValueError as exc:
            raise SaveLoadError(f"Invalid RNG state: {exc}") from exc

        player = self._coerce_player(state_payload.get("character"))
        variables = QuestVariables(values=self._coerce_str_dict(state_payload.get("quest_vars"), "state.quest_vars"))
        quest_log = self._coerce_str_list(state_payload.get("quest_log"), "state.quest_log")
        pending = state_payload.get("pending_stat_increase", False)
        if not isinstance(pending, bool):
            raise SaveLoadError("state.pending_stat_increase must be a boolean.")

        return GameState(
            seed=seed,
            rng=rng,
            phase="level_up" if pending else "navigation",
            player=player,
            variables=variables,
            quest_log=quest_log[: self._max_log_entries],
            max_log_entries=self._max_log_entries,
            pending_stat_increase=pending,
        )

    def _build_metadata(self, state: GameState) -> Dict[str, Any]:
        return {
            "player_name": state.player.name,
            "steps_completed": state.player.steps_completed,
            "xp": state.player.xp,
            "seed": state.seed,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

    def _serialize_state(self, state: GameState) -> Dict[str, Any]:
        player = state.player
        return {
            "seed": state.seed,
            "character": {
                "name": player.name,
                "might": player.might,
                "guile": player.guile,
                "magic": player.magic,
                "steps_completed": player.steps_completed,
                "xp": player.xp,
                "tags": list(player.tags),
            },
            "quest_vars": state.variables.snapshot(),
            "quest_log": list(state.quest_log),
            "current_step_id": state.current_step_id,
            "pending_stat_increase": state.pending_stat_increase,
        }

    def _coerce_player(self, value: Any) -> PlayerState:
        if not isinstance(value, Mapping):
            raise SaveLoadError("state.character must be an object.")
        return PlayerState(
            name=self._require_str(value.get("name"), "state.character.name"),
            might=self._require_int(value.get("might"), "state.character.might"),
            guile=self._require_int(value.get("guile"), "state.character.guile"),
            magic=self._require_int(value.get("magic"), "state.character.magic"),
            steps_completed=self._coerce_non_negative_int(
                value.get("steps_completed"), "state.character.steps_completed", default=0
            ),
            xp=self._coerce_non_negative_int(value.get("xp"), "state.character.xp", default=0),
            tags=self._coerce_str_list(value.get("tags"), "state.character.tags"),
        )

    def _coerce_rng_payload(self, payload: Mapping[str, Any]) -> RNGStatePayload:
        version = self._require_int(payload.get("version"), "rng.version")
        state_values = payload.get("state")
        if not isinstance(state_values, list):
            raise SaveLoadError("Invalid RNG state payload.")
        gauss = payload.get("gauss")
        return {"version": version, "state": state_values, "gauss": gauss}

    @staticmethod
    def _require_str(value: Any, context: str) -> str:
        if not isinstance(value, str):
            raise SaveLoadError(f"{context} must be a string.")
        return value

    @staticmethod
    def _require_int(value: Any, context: str) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise SaveLoadError(f"{context} must be an integer.")
        return value

    def _coerce_non_negative_int(self, value: Any, context: str, *, default: int) -> int:
        if value is None:
            return default
        value_int = self._require_int(value, context)
        if value_int < 0:
            raise SaveLoadError(f"{context} must be a non-negative integer.")
        return value_int

    def _coerce_str_list(self, value: Any, context: str) -> List[str]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise SaveLoadError(f"{context} must be a list.")
        result: List[str] = []
        for entry in value:
            if not isinstance(entry, str):
                raise SaveLoadError(f"{context} entries must be strings.")
            result.append(entry)
        return result

    def _coerce_str_dict(self, value: Any, context: str) -> Dict[str, str]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise SaveLoadError(f"{context} must be an object.")
        result: Dict[str, str] = {}
        for key, entry in value.items():
            if not isinstance(key, str) or not isinstance(entry, str):
                raise SaveLoadError(f"{context} keys and values must be strings.")
            result[key] = entry
        return result

"""CLI configuration helpers for options persistence."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict

DEFAULT_TEXT_WIDTH = 72
_MIN_TEXT_WIDTH = 20


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "TagQuest"
        return Path.home() / "TagQuest"
    return Path.home() / ".config" / "tagquest"


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def get_save_dir() -> Path:
    """Return the per-user save directory."""
    return get_user_data_dir() / "saves"


def _normalize_text_width(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= _MIN_TEXT_WIDTH:
        return value
    return DEFAULT_TEXT_WIDTH


def load_config(path: Path | None = None) -> Dict[str, int]:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return {"text_width": DEFAULT_TEXT_WIDTH}
    if not isinstance(raw, dict):
        return {"text_width": DEFAULT_TEXT_WIDTH}
    return {"text_width": _normalize_text_width(raw.get("text_width"))}


def save_config(config: Dict[str, int], path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"text_width": _normalize_text_width(config.get("text_width"))}
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

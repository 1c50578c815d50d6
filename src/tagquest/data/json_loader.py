"""Low-level document helpers for repositories."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from .errors import DataError, DataLoadError, DataValidationError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DataLoadError(f"Content file not found: {path}") from exc
    except UnicodeDecodeError as exc:
        raise DataLoadError(f"Content file is not valid UTF-8: {path}") from exc
    except OSError as exc:
        raise DataLoadError(f"Unable to read content file: {path}") from exc


def load_json(path: Path) -> object:
    """Load JSON from disk and raise DataLoadError on failure."""
    text = _read_text(path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DataLoadError(f"Invalid JSON in {path}: {exc}") from exc


def load_yaml(path: Path) -> object:
    """Load YAML from disk and raise DataLoadError on failure."""
    text = _read_text(path)
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DataLoadError(f"Invalid YAML in {path}: {exc}") from exc


def load_document(path: Path) -> object:
    """Load a JSON or YAML document depending on the file suffix."""
    if path.suffix.lower() in YAML_SUFFIXES:
        return load_yaml(path)
    return load_json(path)


def load_bundle_document(path: Path) -> Dict[str, Any]:
    """Load a content bundle, returning ``{"error": ...}`` instead of raising.

    Callers render the error document distinctly from runtime failures.
    """
    try:
        document = load_document(path)
        if not isinstance(document, dict):
            raise DataValidationError(f"Expected top-level object in {path}")
        if not isinstance(document.get("config"), dict):
            raise DataValidationError(f"Content bundle {path} is missing its config section.")
    except DataError as exc:
        logger.error("Content load failed: %s", exc)
        return {"error": str(exc)}
    return document


def is_error_document(document: Mapping[str, Any]) -> bool:
    """Return True when the document is a load-failure placeholder."""
    return set(document.keys()) == {"error"} and isinstance(document.get("error"), str)

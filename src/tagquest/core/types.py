"""Shared type aliases for the core and domain layers."""
from typing import Literal

TagOperator = Literal["@", "!", "+", "-", ""]
ComparisonOperator = Literal["=", "<", ">"]
StatName = Literal["might", "guile", "magic"]
GamePhase = Literal[
    "character_creation",
    "navigation",
    "display_step",
    "skill_check_roll",
    "skill_check_result",
    "level_up",
]
Severity = Literal["ERROR", "WARN", "INFO"]
EdgeType = Literal["pass", "fail", "default"]

STAT_NAMES: tuple[StatName, ...] = ("might", "guile", "magic")

__all__ = [
    "ComparisonOperator",
    "EdgeType",
    "GamePhase",
    "STAT_NAMES",
    "Severity",
    "StatName",
    "TagOperator",
]

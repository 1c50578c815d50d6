"""Domain definition exports."""

from .config_def import GameConfigDef, StatBlock
from .step_def import (
    PATCH_PREFIX,
    SHORTHAND_SEPARATOR,
    OptionDef,
    PatchDef,
    RawOption,
    StepDef,
    TextModificationDef,
    VarOptions,
    is_patch_id,
    patch_target_of,
)

__all__ = [
    "GameConfigDef",
    "OptionDef",
    "PATCH_PREFIX",
    "PatchDef",
    "RawOption",
    "SHORTHAND_SEPARATOR",
    "StatBlock",
    "StepDef",
    "TextModificationDef",
    "VarOptions",
    "is_patch_id",
    "patch_target_of",
]

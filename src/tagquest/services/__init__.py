"""Service layer exports."""

from .errors import CharacterCreationError, SaveLoadError, SessionStateError
from .adventure_service import (
    ActionResult,
    AdventureEvent,
    AdventureService,
    LevelUpEvent,
    LogEntryAddedEvent,
    NothingHereEvent,
    OptionView,
    SkillCheckResolvedEvent,
    StatIncreaseAvailableEvent,
    StatIncreasedEvent,
    StepLoadedEvent,
    StepView,
    TagsChangedEvent,
)
from .character_service import CharacterService, StatIncreaseResult
from .coverage_service import CoverageRow, generate_coverage_matrix
from .flow_graph import build_step_tree, flow_to_dict, transform_tree_to_flow
from .lint_service import Issue, format_issue, lint_bundle, lint_quest_file
from .save_service import SaveService

__all__ = [
    "CharacterCreationError",
    "SaveLoadError",
    "SessionStateError",
    "ActionResult",
    "AdventureEvent",
    "AdventureService",
    "LevelUpEvent",
    "LogEntryAddedEvent",
    "NothingHereEvent",
    "OptionView",
    "SkillCheckResolvedEvent",
    "StatIncreaseAvailableEvent",
    "StatIncreasedEvent",
    "StepLoadedEvent",
    "StepView",
    "TagsChangedEvent",
    "CharacterService",
    "StatIncreaseResult",
    "CoverageRow",
    "generate_coverage_matrix",
    "build_step_tree",
    "flow_to_dict",
    "transform_tree_to_flow",
    "Issue",
    "format_issue",
    "lint_bundle",
    "lint_quest_file",
    "SaveService",
]

"""Adventure session services."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Tuple

from tagquest.core.rng import RNG
from tagquest.core.types import GamePhase
from tagquest.data.repositories import ContentBundle
from tagquest.domain.defs import StepDef
from tagquest.domain.mutation import MutationResult, apply_tag_mutations
from tagquest.domain.selection import available_options, is_virtual_location, select_step
from tagquest.domain.skill_check import SkillCheckResult, resolve_check
from tagquest.domain.state import GameState, PendingSkillCheck
from tagquest.domain.tags import TagState
from tagquest.domain.variables import render_text, resolve_step_vars
from tagquest.services.character_service import CharacterService
from tagquest.services.errors import SessionStateError

logger = logging.getLogger(__name__)

NOTHING_HERE_MESSAGE = "You don't see anything of interest here. Try another location."


@dataclass(slots=True)
class OptionView:
    label: str
    available: bool
    missing_tags: Tuple[str, ...] = ()
    has_skill_check: bool = False


@dataclass(slots=True)
class StepView:
    """Data returned to the presentation layer for rendering."""

    step_id: str
    text: str
    options: List[OptionView]
    virtual: bool = False


@dataclass(slots=True)
class AdventureEvent:
    """Base class for adventure events."""


@dataclass(slots=True)
class StepLoadedEvent(AdventureEvent):
    step_id: str


@dataclass(slots=True)
class TagsChangedEvent(AdventureEvent):
    added: List[str]
    removed: List[str]


@dataclass(slots=True)
class LogEntryAddedEvent(AdventureEvent):
    entry: str


@dataclass(slots=True)
class SkillCheckResolvedEvent(AdventureEvent):
    result: SkillCheckResult


@dataclass(slots=True)
class LevelUpEvent(AdventureEvent):
    level: int
    xp: int


@dataclass(slots=True)
class StatIncreaseAvailableEvent(AdventureEvent):
    steps_completed: int


@dataclass(slots=True)
class StatIncreasedEvent(AdventureEvent):
    stat: str
    new_value: int


@dataclass(slots=True)
class NothingHereEvent(AdventureEvent):
    location: str
    message: str = NOTHING_HERE_MESSAGE


@dataclass(slots=True)
class ActionResult:
    """Result returned after applying a player action."""

    events: List[AdventureEvent] = field(default_factory=list)
    view: StepView | None = None


class AdventureService:
    """Application service that drives one adventure over a content bundle."""

    def __init__(self, content: ContentBundle, *, character_service: CharacterService | None = None) -> None:
        self._content = content
        self._config = content.config
        self._character_service = character_service or CharacterService(content.config)

    @property
    def content(self) -> ContentBundle:
        return self._content

    def start_new_game(
        self,
        seed: int,
        player_name: str | None = None,
        allocation: Mapping[str, int] | None = None,
    ) -> GameState:
        """Create a fresh session with a newly created character."""
        player = self._character_service.create_player(allocation, name=player_name or "Adventurer")
        state = GameState(
            seed=seed,
            rng=RNG(seed),
            phase="navigation",
            player=player,
            max_log_entries=self._config.max_log_entries,
        )
        logger.info("Started new game for %s with seed %d", player.name, seed)
        return state

    def tag_state(self, state: GameState) -> TagState:
        return state.player.tag_state(
            comparison_stats=self._config.comparison_stats,
            modifiers=self._config.stat_modifiers,
            xp_per_level=self._config.xp_per_level,
        )

    def is_virtual(self, location_id: str) -> bool:
        return is_virtual_location(location_id, self._content.locations)

    def navigate(self, state: GameState, location: str) -> ActionResult:
        """Run whichever step is eligible at ``location``."""
        self._require_phase(state, "navigation", "display_step")
        step = self._select(state, location)
        if step is None:
            return self._nothing_here(state, location)
        return self.load_step(state, step)

    def load_step(self, state: GameState, step: StepDef) -> ActionResult:
        """Execute ``step``: bind vars, apply its tags, log it and show it."""
        state.message = None
        events: List[AdventureEvent] = []
        resolve_step_vars(step.vars, state.variables, state.rng)
        self._apply_mutations(state, step.tags, events)
        if step.log:
            entry = render_text(step.log, state.variables)
            state.add_log_entry(entry)
            events.append(LogEntryAddedEvent(entry=entry))
        state.player.steps_completed += 1
        state.current_step_id = step.id
        state.current_step = step
        events.append(StepLoadedEvent(step_id=step.id))
        if self._character_service.check_stat_increase(state.player):
            state.pending_stat_increase = True
            events.append(StatIncreaseAvailableEvent(steps_completed=state.player.steps_completed))
        self._settle(state, "display_step")
        return ActionResult(events=events, view=self.get_current_view(state))

    def get_current_view(self, state: GameState) -> StepView | None:
        """Return the view model for the current step, if any."""
        step = state.current_step
        if step is None:
            return None
        options = [
            OptionView(
                label=render_text(resolved.label, state.variables),
                available=resolved.available,
                missing_tags=resolved.missing_tags,
                has_skill_check=resolved.option.has_skill_check,
            )
            for resolved in available_options(step, self.tag_state(state))
        ]
        return StepView(
            step_id=step.id,
            text=render_text(step.text, state.variables),
            options=options,
            virtual=self.is_virtual(step.id),
        )

    def choose_option(self, state: GameState, index: int) -> ActionResult:
        """Apply the option at ``index`` of the current view's option list."""
        self._require_phase(state, "display_step")
        assert state.current_step is not None
        resolved = available_options(state.current_step, self.tag_state(state))
        if not 0 <= index < len(resolved):
            raise SessionStateError(f"Option {index} does not exist.")
        choice = resolved[index]
        if not choice.available:
            raise SessionStateError(f"Option '{choice.label}' is not available.")
        option = choice.option
        events: List[AdventureEvent] = []
        self._apply_mutations(state, option.tags, events)

        if option.has_skill_check:
            state.pending_skill_check = PendingSkillCheck(option=option)
            state.phase = "skill_check_roll"
            return ActionResult(events=events, view=self.get_current_view(state))
        if option.pass_target:
            return self._follow(state, option.pass_target, events)
        return self._return_to_navigation(state, events)

    def roll_skill_check(self, state: GameState) -> ActionResult:
        self._require_phase(state, "skill_check_roll")
        assert state.pending_skill_check is not None
        option = state.pending_skill_check.option
        assert option.dc is not None
        result = resolve_check(
            option.skill,
            option.dc,
            state.player,
            rng=state.rng,
            die_sides=self._config.die_sides,
            tag_bonus=self._config.tag_bonus,
            stat_modifiers=self._config.stat_modifiers,
        )
        state.skill_check_result = result
        state.phase = "skill_check_result"
        return ActionResult(events=[SkillCheckResolvedEvent(result=result)], view=self.get_current_view(state))

    def continue_after_skill_check(self, state: GameState) -> ActionResult:
        """Follow the pass or fail target of the resolved check."""
        self._require_phase(state, "skill_check_result")
        assert state.pending_skill_check is not None and state.skill_check_result is not None
        option = state.pending_skill_check.option
        target = option.pass_target if state.skill_check_result.success else option.fail_target
        state.pending_skill_check = None
        state.skill_check_result = None
        if target:
            return self._follow(state, target, [])
        return self._return_to_navigation(state, [])

    def increase_stat(self, state: GameState, stat: str) -> ActionResult:
        self._require_phase(state, "level_up")
        increase = self._character_service.increase_stat(state.player, stat)
        state.pending_stat_increase = False
        state.phase = "display_step" if state.current_step is not None else "navigation"
        return ActionResult(
            events=[StatIncreasedEvent(stat=increase.stat, new_value=increase.new_value)],
            view=self.get_current_view(state),
        )

    def variables_snapshot(self, state: GameState) -> Dict[str, str]:
        return state.variables.snapshot()

    def _select(self, state: GameState, location: str) -> StepDef | None:
        return select_step(
            location,
            self.tag_state(state),
            self._content.steps,
            rng=state.rng,
            preferred_weight=self._config.preferred_tag_weight,
            patches=self._content.patches,
            locations=self._content.locations,
        )

    def _follow(self, state: GameState, target: str, events: List[AdventureEvent]) -> ActionResult:
        step = self._select(state, target)
        if step is None:
            result = self._nothing_here(state, target)
            result.events[:0] = events
            return result
        result = self.load_step(state, step)
        result.events[:0] = events
        return result

    def _nothing_here(self, state: GameState, location: str) -> ActionResult:
        logger.debug("Nothing eligible at '%s'", location)
        state.message = NOTHING_HERE_MESSAGE
        state.current_step = None
        state.current_step_id = None
        self._settle(state, "navigation")
        return ActionResult(events=[NothingHereEvent(location=location)])

    def _return_to_navigation(self, state: GameState, events: List[AdventureEvent]) -> ActionResult:
        state.current_step = None
        state.current_step_id = None
        self._settle(state, "navigation")
        return ActionResult(events=events)

    def _apply_mutations(self, state: GameState, tags: Tuple[str, ...], events: List[AdventureEvent]) -> MutationResult:
        mutation = apply_tag_mutations(state.player, tags, xp_per_level=self._config.xp_per_level)
        if mutation.changed:
            events.append(TagsChangedEvent(added=list(mutation.added), removed=list(mutation.removed)))
        if mutation.leveled_up:
            state.pending_stat_increase = True
            events.append(
                LevelUpEvent(level=state.player.level(self._config.xp_per_level), xp=state.player.xp)
            )
        return mutation

    @staticmethod
    def _settle(state: GameState, phase: GamePhase) -> None:
        state.phase = "level_up" if state.pending_stat_increase else phase

    @staticmethod
    def _require_phase(state: GameState, *phases: GamePhase) -> None:
        if state.phase not in phases:
            raise SessionStateError(f"Action not allowed during phase '{state.phase}'.")

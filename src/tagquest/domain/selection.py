"""Step selection: hard tag filters, preferred-tag scoring and random tie-breaks.

Selection runs in two phases. Every step at the location is first checked
against its required and blocked tags. The survivors are then scored by the
preferred tags the player holds, and one step is drawn uniformly from those
tied at the top score. The chosen step is patched before it is returned.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence, Set, Tuple

from tagquest.core.rng import RNG
from tagquest.domain.defs import OptionDef, PatchDef, StepDef
from tagquest.domain.defs.config_def import DEFAULT_PREFERRED_TAG_WEIGHT
from tagquest.domain.patches import apply_patches
from tagquest.domain.tags import (
    TagState,
    missing_requirements,
    mutation_tags,
    passes_tag_gate,
    preferred_tags,
)

logger = logging.getLogger(__name__)

COORDINATE_RE = re.compile(r"^[A-Za-z]+[0-9]+$")


@dataclass(frozen=True, slots=True)
class ScoredStep:
    step: StepDef
    score: int


@dataclass(frozen=True, slots=True)
class ResolvedOption:
    """Option as presented to the player for the current tag state."""

    index: int
    option: OptionDef
    available: bool
    missing_tags: Tuple[str, ...] = ()
    grants: Tuple[str, ...] = ()
    consumes: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.option.label


def _state_for(player_tags: TagState | Iterable[str], stats: Mapping[str, int] | None) -> TagState:
    if isinstance(player_tags, TagState):
        return player_tags
    return TagState.from_tags(player_tags, stats)


def candidate_ids(location: str, locations: Mapping[str, str] | None = None) -> Set[str]:
    """Return the casefolded step ids that count as ``location``.

    ``locations`` maps coordinate ids to display names; either side of a
    mapping matches the other.
    """
    wanted = location.strip().casefold()
    ids = {wanted}
    for location_id, display_name in (locations or {}).items():
        if location_id.casefold() == wanted:
            ids.add(display_name.casefold())
        elif display_name.casefold() == wanted:
            ids.add(location_id.casefold())
    return ids


def passes_hard_filters(step: StepDef, state: TagState | Iterable[str]) -> bool:
    return passes_tag_gate(step.tags, state)


def score_step(step: StepDef, state: TagState, weight: int = DEFAULT_PREFERRED_TAG_WEIGHT) -> int:
    """Weight times the number of preferred tags held; repeats count again."""
    return weight * sum(1 for name in preferred_tags(step.tags) if state.holds(name))


def eligible_steps(
    location: str,
    player_tags: TagState | Iterable[str],
    step_pool: Sequence[StepDef],
    *,
    preferred_weight: int = DEFAULT_PREFERRED_TAG_WEIGHT,
    locations: Mapping[str, str] | None = None,
    stats: Mapping[str, int] | None = None,
) -> List[ScoredStep]:
    """Return every step at ``location`` that passes its gate, with its score."""
    state = _state_for(player_tags, stats)
    ids = candidate_ids(location, locations)
    return [
        ScoredStep(step=step, score=score_step(step, state, preferred_weight))
        for step in step_pool
        if step.id.casefold() in ids and passes_hard_filters(step, state)
    ]


def select_step(
    location: str,
    player_tags: TagState | Iterable[str],
    step_pool: Sequence[StepDef],
    *,
    rng: RNG,
    preferred_weight: int = DEFAULT_PREFERRED_TAG_WEIGHT,
    patches: Sequence[PatchDef] = (),
    locations: Mapping[str, str] | None = None,
    stats: Mapping[str, int] | None = None,
) -> StepDef | None:
    """Pick the step to run at ``location``, or None when nothing is eligible."""
    state = _state_for(player_tags, stats)
    survivors = eligible_steps(
        location,
        state,
        step_pool,
        preferred_weight=preferred_weight,
        locations=locations,
    )
    if not survivors:
        logger.debug("No eligible step at location '%s'", location)
        return None
    best = max(scored.score for scored in survivors)
    top = [scored.step for scored in survivors if scored.score == best]
    chosen = top[0] if len(top) == 1 else rng.choice(top)
    return apply_patches(chosen, patches, state)


def is_virtual_location(location_id: str, locations: Mapping[str, str] | None = None) -> bool:
    """Return True for ids that are neither coordinates nor known locations.

    Virtual steps run as soon as they become current, without waiting for
    the player to navigate.
    """
    if COORDINATE_RE.match(location_id):
        return False
    wanted = location_id.casefold()
    for known_id, display_name in (locations or {}).items():
        if wanted in (known_id.casefold(), display_name.casefold()):
            return False
    return True


def available_options(step: StepDef, state: TagState | Iterable[str]) -> List[ResolvedOption]:
    """Evaluate each option's gate; unavailable hidden options are left out."""
    tag_state = _state_for(state, None)
    resolved: List[ResolvedOption] = []
    for index, option in enumerate(step.options):
        missing = missing_requirements(option.tags, tag_state)
        if missing and option.hidden:
            continue
        grants, consumes = mutation_tags(option.tags)
        resolved.append(
            ResolvedOption(
                index=index,
                option=option,
                available=not missing,
                missing_tags=tuple(missing),
                grants=tuple(grants),
                consumes=tuple(consumes),
            )
        )
    return resolved

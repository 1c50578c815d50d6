"""Composition of conditional patches onto base steps."""
from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Sequence

from tagquest.domain.defs import PatchDef, StepDef
from tagquest.domain.tags import TagState, as_tag_state, passes_tag_gate

TEXT_SEPARATOR = "\n"


def patch_applies(patch: PatchDef, base_step: StepDef, state: TagState | Iterable[str]) -> bool:
    """Return True when the patch targets ``base_step`` and its gate passes."""
    return patch.target == base_step.id and passes_tag_gate(patch.tags, state)


def apply_patches(
    base_step: StepDef,
    patches: Sequence[PatchDef],
    player_tags: TagState | Iterable[str],
) -> StepDef:
    """Return the effective step for ``base_step`` under the current tags.

    Patches are applied in order of appearance. Each call builds a fresh
    step from the base, so composing twice gives the same result.
    """
    state = as_tag_state(player_tags)
    applicable = [patch for patch in patches if patch_applies(patch, base_step, state)]
    if not applicable:
        return base_step

    tags: List[str] = list(base_step.tags)
    prepends: List[str] = []
    appends: List[str] = []
    replacement: str | None = None
    options = base_step.options
    preset = base_step.preset
    vars_def = base_step.vars

    for patch in applicable:
        for tag in patch.tags:
            if tag not in tags:
                tags.append(tag)
        if patch.text is not None:
            if patch.text.replace is not None:
                replacement = patch.text.replace
            if patch.text.prepend is not None:
                prepends.append(patch.text.prepend)
            if patch.text.append is not None:
                appends.append(patch.text.append)
        if patch.options is not None:
            options = patch.options
            preset = None
        if patch.vars is not None:
            vars_def = patch.vars

    if replacement is not None:
        text = replacement
    else:
        text = TEXT_SEPARATOR.join(part for part in (*prepends, base_step.text, *appends) if part)

    return replace(
        base_step,
        tags=tuple(tags),
        text=text,
        options=options,
        preset=preset,
        vars=vars_def,
    )

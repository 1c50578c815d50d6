"""Read-only helpers over authored quest files (raw step lists).

Lint and graph tooling work on the authored form so they can report on
content that would not survive loading. Nothing here raises on bad shapes;
malformed entries are skipped.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Set, Tuple

from tagquest.domain.defs import SHORTHAND_SEPARATOR, OptionDef, is_patch_id

PRESETS_KEY = "option_presets"

RawStep = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class OptionView:
    label: str
    tags: Tuple[str, ...] = ()
    pass_target: str | None = None
    fail_target: str | None = None
    skill: Tuple[str, ...] = ()
    dc: object = None

    @property
    def has_skill_check(self) -> bool:
        return bool(self.skill) and self.dc is not None

    def as_option_def(self) -> OptionDef:
        return OptionDef(label=self.label, tags=self.tags, pass_target=self.pass_target)


def quest_file_from_bundle(bundle: Any) -> Dict[str, Any]:
    """Rebuild the authored form of a loaded ContentBundle."""
    return {
        PRESETS_KEY: {name: [option.to_raw() for option in options] for name, options in bundle.presets.items()},
        "steps": [step.to_raw() for step in bundle.steps] + [patch.to_raw_step() for patch in bundle.patches],
    }


def indexed_steps(quest_file: Mapping[str, Any]) -> List[Tuple[int, RawStep]]:
    """Return ``(index, step)`` for every real step or patch entry."""
    entries: List[Tuple[int, RawStep]] = []
    for index, step in enumerate(quest_file.get("steps") or []):
        if isinstance(step, Mapping) and isinstance(step.get("id"), str) and PRESETS_KEY not in step:
            entries.append((index, step))
    return entries


def collect_presets(quest_file: Mapping[str, Any]) -> Dict[str, Any]:
    presets: Dict[str, Any] = dict(quest_file.get(PRESETS_KEY) or {})
    for step in quest_file.get("steps") or []:
        if isinstance(step, Mapping) and isinstance(step.get(PRESETS_KEY), Mapping):
            presets.update(step[PRESETS_KEY])
    return presets


def raw_options(step: RawStep, presets: Mapping[str, Any]) -> List[object]:
    options = step.get("options")
    if not options:
        return []
    if isinstance(options, str):
        return list(presets.get(options) or [])
    return list(options) if isinstance(options, list) else []


def option_view(raw: object) -> OptionView | None:
    if isinstance(raw, str):
        label, separator, target = raw.partition(SHORTHAND_SEPARATOR)
        if not separator:
            return OptionView(label=raw)
        return OptionView(label=label, pass_target=target or None)
    if not isinstance(raw, Mapping):
        return None
    skill = raw.get("skill")
    skills = (skill,) if isinstance(skill, str) else tuple(s for s in skill or () if isinstance(s, str))
    pass_target = raw.get("pass")
    fail_target = raw.get("fail")
    return OptionView(
        label=str(raw.get("label") or ""),
        tags=tuple(tag for tag in raw.get("tags") or () if isinstance(tag, str)),
        pass_target=pass_target if isinstance(pass_target, str) and pass_target else None,
        fail_target=fail_target if isinstance(fail_target, str) and fail_target else None,
        skill=skills,
        dc=raw.get("dc"),
    )


def options_of(step: RawStep, presets: Mapping[str, Any]) -> List[Tuple[int, OptionView]]:
    views: List[Tuple[int, OptionView]] = []
    for index, raw in enumerate(raw_options(step, presets)):
        view = option_view(raw)
        if view is not None:
            views.append((index, view))
    return views


def tags_of(step: RawStep) -> List[str]:
    return [tag for tag in step.get("tags") or () if isinstance(tag, str)]


def location_ids(entries: List[Tuple[int, RawStep]], locations: Mapping[str, str] | None = None) -> Set[str]:
    """Ids treated as entry points: known locations and steps without ``_``."""
    ids: Set[str] = set((locations or {}).keys()) | set((locations or {}).values())
    for _, step in entries:
        step_id = step["id"]
        if not is_patch_id(step_id) and "_" not in step_id:
            ids.add(step_id)
    return ids


def vars_of(step: RawStep) -> Mapping[str, Any]:
    vars_def = step.get("vars")
    return vars_def if isinstance(vars_def, Mapping) else {}

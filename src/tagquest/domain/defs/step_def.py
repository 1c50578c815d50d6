"""Step, option and patch definitions shared by the engine and tooling."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple, Union

PATCH_PREFIX = "@patch:"
SHORTHAND_SEPARATOR = "::"

VarOptions = Optional[Union[List[str], List[Dict[str, str]]]]
RawOption = Union[str, Dict[str, object]]


@dataclass(frozen=True, slots=True)
class OptionDef:
    """Single player-facing choice attached to a step."""

    label: str
    tags: Tuple[str, ...] = ()
    pass_target: str | None = None
    fail_target: str | None = None
    skill: Tuple[str, ...] = ()
    dc: int | None = None
    hidden: bool = False

    @property
    def has_skill_check(self) -> bool:
        return bool(self.skill) and self.dc is not None

    def targets(self) -> Tuple[str, ...]:
        """Return the pass/fail targets in declaration order."""
        return tuple(target for target in (self.pass_target, self.fail_target) if target)

    def to_raw(self) -> RawOption:
        if (
            not self.tags
            and not self.skill
            and self.dc is None
            and self.fail_target is None
            and not self.hidden
            and SHORTHAND_SEPARATOR not in self.label
        ):
            if self.pass_target:
                return f"{self.label}{SHORTHAND_SEPARATOR}{self.pass_target}"
            return self.label
        raw: Dict[str, object] = {"label": self.label, "tags": list(self.tags), "pass": self.pass_target}
        if self.skill:
            raw["skill"] = self.skill[0] if len(self.skill) == 1 else list(self.skill)
        if self.dc is not None:
            raw["dc"] = self.dc
        if self.fail_target is not None:
            raw["fail"] = self.fail_target
        if self.hidden:
            raw["hidden"] = True
        return raw


@dataclass(frozen=True, slots=True)
class StepDef:
    """Atomic narrative unit selected by location id and tag gates.

    Several steps may share an ``id``; each is a variant for a different tag
    state at the same location.
    """

    id: str
    tags: Tuple[str, ...] = ()
    text: str = ""
    log: str | None = None
    options: Tuple[OptionDef, ...] = ()
    vars: Mapping[str, VarOptions] | None = None
    preset: str | None = None

    def to_raw(self) -> Dict[str, object]:
        raw: Dict[str, object] = {"id": self.id, "tags": list(self.tags)}
        if self.vars is not None:
            raw["vars"] = dict(self.vars)
        raw["text"] = self.text
        if self.log is not None:
            raw["log"] = self.log
        if self.preset is not None:
            raw["options"] = self.preset
        elif self.options:
            raw["options"] = [option.to_raw() for option in self.options]
        return raw


@dataclass(frozen=True, slots=True)
class TextModificationDef:
    prepend: str | None = None
    append: str | None = None
    replace: str | None = None

    def to_raw(self) -> Dict[str, str]:
        raw: Dict[str, str] = {}
        for key in ("prepend", "append", "replace"):
            value = getattr(self, key)
            if value is not None:
                raw[key] = value
        return raw


@dataclass(frozen=True, slots=True)
class PatchDef:
    """Conditional partial override bound to a target step id."""

    target: str
    tags: Tuple[str, ...] = ()
    text: TextModificationDef | None = None
    options: Tuple[OptionDef, ...] | None = None
    vars: Mapping[str, VarOptions] | None = None
    source: str | None = None

    def to_raw_step(self) -> Dict[str, object]:
        """Return the patch in its authored ``@patch:<target>`` step form."""
        raw: Dict[str, object] = {"id": f"{PATCH_PREFIX}{self.target}", "tags": list(self.tags)}
        if self.vars is not None:
            raw["vars"] = dict(self.vars)
        if self.text is not None:
            raw["text"] = self.text.to_raw()
        if self.options is not None:
            raw["options"] = [option.to_raw() for option in self.options]
        return raw


def is_patch_id(step_id: str) -> bool:
    return step_id.startswith(PATCH_PREFIX)


def patch_target_of(step_id: str) -> str | None:
    """Return the target of a ``@patch:`` id, or None for regular steps."""
    if not is_patch_id(step_id):
        return None
    return step_id[len(PATCH_PREFIX):]

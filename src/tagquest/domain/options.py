"""Option expansion and preset resolution."""
from __future__ import annotations

import logging
from typing import Mapping, Sequence, Tuple

from tagquest.data.errors import DataValidationError
from tagquest.domain.defs import SHORTHAND_SEPARATOR, OptionDef, RawOption

logger = logging.getLogger(__name__)

PresetTable = Mapping[str, Sequence[OptionDef]]


def expand_option(raw: RawOption, *, context: str = "option") -> OptionDef:
    """Turn a shorthand string or option mapping into an OptionDef.

    ``"Label::target"`` passes to ``target``; a bare ``"Label"`` has no pass
    target and returns the player to navigation.
    """
    if isinstance(raw, str):
        label, separator, target = raw.partition(SHORTHAND_SEPARATOR)
        if not separator:
            return OptionDef(label=raw)
        return OptionDef(label=label, pass_target=target or None)
    if not isinstance(raw, Mapping):
        raise DataValidationError(f"{context} must be a string or mapping.")
    label = raw.get("label")
    if not isinstance(label, str):
        raise DataValidationError(f"{context} requires a string 'label'.")
    tags = _string_tuple(raw.get("tags"), f"{context}.tags")
    skill = _string_tuple(raw.get("skill"), f"{context}.skill")
    dc = raw.get("dc")
    if dc is not None and (not isinstance(dc, int) or isinstance(dc, bool)):
        raise DataValidationError(f"{context}.dc must be an integer.")
    option = OptionDef(
        label=label,
        tags=tags,
        pass_target=_optional_str(raw.get("pass"), f"{context}.pass"),
        fail_target=_optional_str(raw.get("fail"), f"{context}.fail"),
        skill=skill,
        dc=dc,
        hidden=bool(raw.get("hidden", False)),
    )
    validate_option(option, context)
    return option


def resolve_options(
    raw_options: str | Sequence[RawOption] | None,
    presets: PresetTable,
    *,
    context: str = "step",
) -> Tuple[OptionDef, ...]:
    """Expand an inline option list, or look up a preset by name.

    Unknown presets resolve to no options so the step still plays.
    """
    if raw_options is None:
        return ()
    if isinstance(raw_options, str):
        preset = presets.get(raw_options)
        if preset is None:
            logger.debug("Unknown option preset '%s' referenced by %s", raw_options, context)
            return ()
        return tuple(preset)
    return tuple(
        expand_option(raw, context=f"{context}.options[{index}]") for index, raw in enumerate(raw_options)
    )


def validate_option(option: OptionDef, context: str) -> None:
    """Reject options that carry a fail target without a skill check."""
    if option.fail_target is not None and not option.has_skill_check:
        raise DataValidationError(f"{context} has a 'fail' target but no skill and dc.")


def _string_tuple(value: object, context: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise DataValidationError(f"{context} must be a string or list of strings.")


def _optional_str(value: object, context: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise DataValidationError(f"{context} must be a string or null.")
    return value or None

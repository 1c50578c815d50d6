"""Repository for step bundles: config, locations, presets, steps and patches."""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from tagquest.core.types import STAT_NAMES
from tagquest.data.errors import DataError, DataValidationError
from tagquest.data.json_loader import load_bundle_document, is_error_document
from tagquest.data.repositories.base import RepositoryBase
from tagquest.domain.defs import (
    GameConfigDef,
    OptionDef,
    PatchDef,
    StatBlock,
    StepDef,
    TextModificationDef,
    VarOptions,
    is_patch_id,
    patch_target_of,
)
from tagquest.domain.defs.config_def import (
    DEFAULT_DIE_SIDES,
    DEFAULT_MAX_LOG_ENTRIES,
    DEFAULT_PREFERRED_TAG_WEIGHT,
    DEFAULT_TAG_BONUS,
    DEFAULT_XP_PER_LEVEL,
)
from tagquest.domain.options import resolve_options

logger = logging.getLogger(__name__)

PRESETS_KEY = "option_presets"
_req_mapping = RepositoryBase._require_mapping
_req_list = RepositoryBase._require_list
_req_type = RepositoryBase._require_type


@dataclass(frozen=True, slots=True)
class ContentBundle:
    """Immutable content shared by the runtime, lint and graph tools."""

    config: GameConfigDef
    locations: Mapping[str, str] = field(default_factory=dict)
    presets: Mapping[str, Tuple[OptionDef, ...]] = field(default_factory=dict)
    steps: Tuple[StepDef, ...] = ()
    patches: Tuple[PatchDef, ...] = ()
    warnings: Tuple[str, ...] = ()

    def steps_by_id(self) -> Dict[str, List[StepDef]]:
        """Group step variants by id, keeping authoring order."""
        grouped: Dict[str, List[StepDef]] = {}
        for step in self.steps:
            grouped.setdefault(step.id, []).append(step)
        return grouped


class ContentRepository(RepositoryBase[List[StepDef]]):
    """Loads one content bundle and exposes its step variants by id."""

    def __init__(self, filename: str = "steps.json", base_path: Path | str | None = None) -> None:
        super().__init__(filename, base_path)
        self._bundle: ContentBundle | None = None

    def _build(self, raw: dict[str, object]) -> Dict[str, List[StepDef]]:
        self._bundle = build_bundle(raw)
        return self._bundle.steps_by_id()

    def bundle(self) -> ContentBundle:
        self._ensure_loaded()
        assert self._bundle is not None
        return self._bundle


def load_content_bundle(path: Path) -> ContentBundle | Dict[str, str]:
    """Load and validate a bundle, or return the ``{"error": ...}`` document."""
    document = load_bundle_document(path)
    if is_error_document(document):
        return document
    try:
        return build_bundle(document)
    except DataError as exc:
        logger.error("Content validation failed for %s: %s", path, exc)
        return {"error": str(exc)}


def build_bundle(document: Mapping[str, Any]) -> ContentBundle:
    """Validate a raw bundle document and convert it into definitions."""
    data = _req_mapping(document, "content bundle")
    if "config" not in data:
        raise DataValidationError("Content bundle is missing its config section.")
    config = parse_config(data["config"])
    locations = _parse_locations(data.get("locations"))
    raw_steps = _req_list(data.get("steps", []), "steps")

    raw_presets: Dict[str, object] = dict(_req_mapping(data.get(PRESETS_KEY) or {}, PRESETS_KEY))
    for index, entry in enumerate(raw_steps):
        entry_map = _req_mapping(entry, f"steps[{index}]")
        if PRESETS_KEY in entry_map:
            raw_presets.update(_req_mapping(entry_map[PRESETS_KEY], f"steps[{index}].{PRESETS_KEY}"))

    presets: Dict[str, Tuple[OptionDef, ...]] = {}
    for name, raw_options in raw_presets.items():
        options = _req_list(raw_options, f"{PRESETS_KEY}.{name}")
        presets[name] = resolve_options(options, {}, context=f"{PRESETS_KEY}.{name}")  # type: ignore[arg-type]

    steps: List[StepDef] = []
    patches: List[PatchDef] = []
    for index, entry in enumerate(raw_steps):
        entry_map = _req_mapping(entry, f"steps[{index}]")
        if PRESETS_KEY in entry_map:
            continue
        step_id = _req_type(entry_map.get("id"), str, f"steps[{index}].id")
        target = patch_target_of(step_id)  # type: ignore[arg-type]
        if target is not None:
            patches.append(parse_patch(entry_map, target, presets, context=f"patch '{step_id}'"))
        else:
            steps.append(parse_step(entry_map, presets, context=f"step '{step_id}'"))

    for index, entry in enumerate(_req_list(data.get("patches") or [], "patches")):
        entry_map = _req_mapping(entry, f"patches[{index}]")
        target = _req_type(entry_map.get("target"), str, f"patches[{index}].target")
        patches.append(parse_patch(entry_map, target, presets, context=f"patches[{index}]"))  # type: ignore[arg-type]

    warnings = _check_patch_targets(patches, steps)
    _log_shared_ids(steps)
    return ContentBundle(
        config=config,
        locations=locations,
        presets=presets,
        steps=tuple(steps),
        patches=tuple(patches),
        warnings=tuple(warnings),
    )


def parse_config(raw: object) -> GameConfigDef:
    data = _req_mapping(raw, "config")
    stats_raw = _req_mapping(data.get("startingStats") or {"might": 2, "guile": 2, "magic": 2}, "config.startingStats")
    starting = StatBlock(**{stat: _int(stats_raw.get(stat, 0), f"config.startingStats.{stat}") for stat in STAT_NAMES})

    modifiers: Dict[str, Dict[str, int]] = {}
    for tag, raw_mods in _req_mapping(data.get("statModifiers") or {}, "config.statModifiers").items():
        mods = _req_mapping(raw_mods, f"config.statModifiers.{tag}")
        for stat in mods:
            if stat not in STAT_NAMES:
                raise DataValidationError(f"config.statModifiers.{tag} names unknown stat '{stat}'.")
        modifiers[tag] = {stat: _int(value, f"config.statModifiers.{tag}.{stat}") for stat, value in mods.items()}

    comparison_raw = data.get("comparisonStats", list(STAT_NAMES))
    comparison_stats = tuple(_req_list(comparison_raw, "config.comparisonStats"))
    for stat in comparison_stats:
        if stat not in STAT_NAMES:
            raise DataValidationError(f"config.comparisonStats names unknown stat '{stat}'.")

    die_sides = _int(data.get("dieSides", DEFAULT_DIE_SIDES), "config.dieSides")
    xp_per_level = _int(data.get("xpPerLevel", DEFAULT_XP_PER_LEVEL), "config.xpPerLevel")
    if die_sides < 1:
        raise DataValidationError("config.dieSides must be at least 1.")
    if xp_per_level < 1:
        raise DataValidationError("config.xpPerLevel must be at least 1.")

    return GameConfigDef(
        starting_stats=starting,
        stats_increase_every=_int(data.get("statsIncreaseEvery", 0), "config.statsIncreaseEvery"),
        stat_increase_amount=_int(data.get("statIncreaseAmount", 1), "config.statIncreaseAmount"),
        preferred_tag_weight=_int(
            data.get("preferredTagWeight", DEFAULT_PREFERRED_TAG_WEIGHT), "config.preferredTagWeight"
        ),
        starting_points=_int(data.get("startingPoints", 0), "config.startingPoints"),
        stat_modifiers=modifiers,
        die_sides=die_sides,
        tag_bonus=_int(data.get("tagBonus", DEFAULT_TAG_BONUS), "config.tagBonus"),
        xp_per_level=xp_per_level,
        comparison_stats=comparison_stats,  # type: ignore[arg-type]
        max_log_entries=_int(data.get("maxLogEntries", DEFAULT_MAX_LOG_ENTRIES), "config.maxLogEntries"),
    )


def parse_step(raw: Mapping[str, object], presets: Mapping[str, Tuple[OptionDef, ...]], *, context: str) -> StepDef:
    step_id = _req_type(raw.get("id"), str, f"{context} id")
    text = raw.get("text", "")
    if not isinstance(text, str):
        raise DataValidationError(f"{context} text must be a string.")
    log = raw.get("log")
    if log is not None and not isinstance(log, str):
        raise DataValidationError(f"{context} log must be a string.")
    raw_options = raw.get("options")
    preset = raw_options if isinstance(raw_options, str) else None
    if raw_options is not None and preset is None:
        _req_list(raw_options, f"{context} options")
    return StepDef(
        id=step_id,  # type: ignore[arg-type]
        tags=_parse_tags(raw.get("tags"), context),
        text=text,
        log=log,
        options=resolve_options(raw_options, presets, context=context),  # type: ignore[arg-type]
        vars=_parse_vars(raw.get("vars"), context),
        preset=preset,
    )


def parse_patch(
    raw: Mapping[str, object],
    target: str,
    presets: Mapping[str, Tuple[OptionDef, ...]],
    *,
    context: str,
) -> PatchDef:
    if is_patch_id(target):
        raise DataValidationError(f"{context} targets another patch: {target}")
    text: TextModificationDef | None = None
    if raw.get("text") is not None:
        text_map = _req_mapping(raw["text"], f"{context} text")
        for key, value in text_map.items():
            if key not in ("prepend", "append", "replace") or not isinstance(value, str):
                raise DataValidationError(f"{context} text.{key} is not a valid text modification.")
        text = TextModificationDef(
            prepend=text_map.get("prepend"),  # type: ignore[arg-type]
            append=text_map.get("append"),  # type: ignore[arg-type]
            replace=text_map.get("replace"),  # type: ignore[arg-type]
        )
    options = None
    if raw.get("options") is not None:
        options = resolve_options(raw["options"], presets, context=context)  # type: ignore[arg-type]
    return PatchDef(
        target=target,
        tags=_parse_tags(raw.get("tags"), context),
        text=text,
        options=options,
        vars=_parse_vars(raw.get("vars"), context),
        source=raw.get("source") if isinstance(raw.get("source"), str) else None,  # type: ignore[arg-type]
    )


def _parse_locations(raw: object) -> Dict[str, str]:
    if raw is None:
        return {}
    locations = _req_mapping(raw, "locations")
    for location_id, name in locations.items():
        if not isinstance(name, str):
            raise DataValidationError(f"locations.{location_id} must be a string.")
    return dict(locations)  # type: ignore[arg-type]


def _parse_tags(raw: object, context: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    tags = _req_list(raw, f"{context} tags")
    for tag in tags:
        if not isinstance(tag, str) or not tag:
            raise DataValidationError(f"{context} tags must be non-empty strings.")
    return tuple(tags)  # type: ignore[arg-type]


def _parse_vars(raw: object, context: str) -> Mapping[str, VarOptions] | None:
    if raw is None:
        return None
    vars_map = _req_mapping(raw, f"{context} vars")
    parsed: Dict[str, VarOptions] = {}
    for name, candidates in vars_map.items():
        if candidates is None:
            parsed[name] = None
            continue
        values = _req_list(candidates, f"{context} vars.{name}")
        if all(isinstance(value, Mapping) for value in values):
            parsed[name] = [{str(key): str(item) for key, item in value.items()} for value in values]  # type: ignore[union-attr]
        elif all(isinstance(value, (str, int, float)) for value in values):
            parsed[name] = [str(value) for value in values]
        else:
            raise DataValidationError(f"{context} vars.{name} must list plain values or records, not both.")
    return parsed


def _check_patch_targets(patches: List[PatchDef], steps: List[StepDef]) -> List[str]:
    step_ids = {step.id for step in steps}
    warnings: List[str] = []
    for patch in patches:
        if patch.target not in step_ids:
            message = f"Patch targets non-existent step: {patch.target}"
            logger.warning(message)
            warnings.append(message)
    return warnings


def _log_shared_ids(steps: List[StepDef]) -> None:
    for step_id, count in Counter(step.id for step in steps).items():
        if count > 1:
            logger.info("Step id '%s' has %d variants", step_id, count)


def _int(value: object, context: str) -> int:
    return _req_type(value, int, context)  # type: ignore[return-value]

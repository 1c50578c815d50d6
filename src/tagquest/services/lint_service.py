"""Static lint checks for quest files."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Set, Tuple

from tagquest.core.types import STAT_NAMES, Severity
from tagquest.domain.compatibility import are_compatible
from tagquest.domain.defs import is_patch_id, patch_target_of
from tagquest.domain.tags import parse_tag
from tagquest.domain.variables import extract_variables
from tagquest.services.quest_file import (
    collect_presets,
    indexed_steps,
    location_ids,
    options_of,
    quest_file_from_bundle,
    tags_of,
    vars_of,
)

_SEVERITY_ORDER: Dict[str, int] = {"ERROR": 0, "WARN": 1, "INFO": 2}
_TEXT_KEYS = ("prepend", "append", "replace")


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def lint_quest_file(
    quest_file: Mapping[str, Any],
    locations: Mapping[str, str] | None = None,
    *,
    comparison_stats: Sequence[str] = STAT_NAMES,
) -> list[Issue]:
    """Run every check over a raw quest file and sort the findings by severity."""
    entries = indexed_steps(quest_file)
    presets = collect_presets(quest_file)
    step_ids = {step["id"] for _, step in entries if not is_patch_id(step["id"])}
    location_names = location_ids(entries, locations)

    issues: list[Issue] = []
    _check_broken_targets(entries, presets, step_ids, issues)
    _check_option_shapes(entries, presets, issues)
    _check_undefined_variables(entries, presets, issues)
    _check_unused_variables(entries, presets, issues)
    _check_orphan_steps(entries, presets, location_names, issues)
    _check_missing_quest_gate(entries, location_names, issues)
    _check_tag_typos(entries, issues)
    _check_comparisons(entries, presets, comparison_stats, issues)
    _check_patch_targets(entries, step_ids, issues)
    _check_transitions(entries, presets, issues)
    issues.sort(key=lambda issue: _SEVERITY_ORDER[issue.severity])
    return issues


def lint_bundle(bundle: Any) -> list[Issue]:
    """Lint a loaded ContentBundle by rebuilding its authored form."""
    return lint_quest_file(
        quest_file_from_bundle(bundle),
        bundle.locations,
        comparison_stats=bundle.config.comparison_stats,
    )


def levenshtein_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def _context(step: Mapping[str, Any], index: int, **extra: object) -> dict[str, str]:
    context = {"step_id": str(step["id"]), "step_index": str(index)}
    context.update({key: str(value) for key, value in extra.items()})
    return context


def _check_broken_targets(entries, presets, step_ids: Set[str], issues: list[Issue]) -> None:
    for index, step in entries:
        for option_index, option in options_of(step, presets):
            if option.pass_target and option.pass_target not in step_ids:
                issues.append(
                    Issue(
                        severity="ERROR",
                        code="BROKEN_PASS_TARGET",
                        message=f'Option "{option.label}" references non-existent step: {option.pass_target}',
                        context=_context(step, index, option_index=option_index),
                    )
                )
            if option.fail_target and option.fail_target not in step_ids:
                issues.append(
                    Issue(
                        severity="ERROR",
                        code="BROKEN_FAIL_TARGET",
                        message=f'Option "{option.label}" fail target references non-existent step: {option.fail_target}',
                        context=_context(step, index, option_index=option_index),
                    )
                )


def _check_option_shapes(entries, presets, issues: list[Issue]) -> None:
    for index, step in entries:
        options = step.get("options")
        if isinstance(options, str) and options not in presets:
            issues.append(
                Issue(
                    severity="WARN",
                    code="UNKNOWN_PRESET",
                    message=f'Step uses unknown option preset "{options}"; it will show no options.',
                    context=_context(step, index),
                )
            )
        for option_index, option in options_of(step, presets):
            if option.fail_target and not (option.skill and isinstance(option.dc, int)):
                issues.append(
                    Issue(
                        severity="ERROR",
                        code="FAIL_WITHOUT_SKILL",
                        message=f'Option "{option.label}" has a fail target but no skill and dc.',
                        context=_context(step, index, option_index=option_index),
                    )
                )


def _used_variables(step: Mapping[str, Any], presets) -> List[str]:
    used = extract_variables(step.get("text") if isinstance(step.get("text"), str) else None)
    used.extend(extract_variables(step.get("log") if isinstance(step.get("log"), str) else None))
    for _, option in options_of(step, presets):
        used.extend(extract_variables(option.label))
    return used


def _check_undefined_variables(entries, presets, issues: list[Issue]) -> None:
    first_definition: Dict[str, Tuple[int, str]] = {}
    for index, step in entries:
        for name in vars_of(step):
            first_definition.setdefault(name, (index, step["id"]))

    for index, step in entries:
        defined = set(vars_of(step))
        seen: Set[str] = set()
        for name in _used_variables(step, presets):
            base = name.split(".")[0]
            if base in seen:
                continue
            seen.add(base)
            if name in defined or base in defined:
                continue
            other = first_definition.get(base)
            if other is not None and other[0] != index:
                issues.append(
                    Issue(
                        severity="INFO",
                        code="VARIABLE_FROM_OTHER_STEP",
                        message=f'Variable "{{{{{name}}}}}" is defined in step "{other[1]}"',
                        context=_context(step, index, related_step_id=other[1], related_step_index=other[0]),
                    )
                )
            else:
                issues.append(
                    Issue(
                        severity="WARN",
                        code="UNDEFINED_VARIABLE",
                        message=f'Variable "{{{{{name}}}}}" is used but not defined anywhere',
                        context=_context(step, index),
                    )
                )


def _check_unused_variables(entries, presets, issues: list[Issue]) -> None:
    for index, step in entries:
        vars_def = vars_of(step)
        if not vars_def:
            continue
        used = {name.split(".")[0] for name in _used_variables(step, presets)}
        for name in vars_def:
            if name not in used:
                issues.append(
                    Issue(
                        severity="INFO",
                        code="UNUSED_VARIABLE",
                        message=f'Variable "{name}" is defined but never used',
                        context=_context(step, index),
                    )
                )


def _check_orphan_steps(entries, presets, location_names: Set[str], issues: list[Issue]) -> None:
    referenced: Set[str] = set()
    for _, step in entries:
        for _, option in options_of(step, presets):
            referenced.update(target for target in (option.pass_target, option.fail_target) if target)
    for index, step in entries:
        step_id = step["id"]
        if is_patch_id(step_id) or step_id in location_names:
            continue
        if step_id not in referenced:
            issues.append(
                Issue(
                    severity="WARN",
                    code="ORPHAN_STEP",
                    message=f'Internal step "{step_id}" is never referenced by any option',
                    context=_context(step, index),
                )
            )


def _check_missing_quest_gate(entries, location_names: Set[str], issues: list[Issue]) -> None:
    for index, step in entries:
        step_id = step["id"]
        if is_patch_id(step_id) or step_id not in location_names:
            continue
        gated = False
        for raw in tags_of(step):
            parsed = parse_tag(raw)
            if parsed.is_blocked and parsed.base_name == "quest":
                gated = True
            elif (parsed.is_required or parsed.is_preferred) and parsed.base_name.startswith("q:"):
                gated = True
        if not gated:
            issues.append(
                Issue(
                    severity="WARN",
                    code="MISSING_QUEST_GATE",
                    message=f'Location step "{step_id}" lacks quest gate (add !quest or @q:questname)',
                    context=_context(step, index),
                )
            )


def _check_tag_typos(entries, issues: list[Issue]) -> None:
    counts: Dict[str, int] = {}
    first_step: Dict[str, Tuple[int, Mapping[str, Any]]] = {}
    for index, step in entries:
        for raw in tags_of(step):
            name = parse_tag(raw).base_name
            counts[name] = counts.get(name, 0) + 1
            first_step.setdefault(name, (index, step))

    for name, count in counts.items():
        if count > 1:
            continue
        for other, other_count in counts.items():
            if other == name or other_count <= 1:
                continue
            distance = levenshtein_distance(name, other)
            if distance == 1 or (distance == 2 and max(len(name), len(other)) > 6):
                index, step = first_step[name]
                issues.append(
                    Issue(
                        severity="INFO",
                        code="TAG_TYPO_CANDIDATE",
                        message=f'Tag "{name}" is similar to "{other}" - possible typo?',
                        context=_context(step, index),
                    )
                )
                break


def _all_tag_lists(step: Mapping[str, Any], presets) -> Iterable[Tuple[List[str], dict]]:
    yield tags_of(step), {}
    for option_index, option in options_of(step, presets):
        yield list(option.tags), {"option_index": option_index}


def _check_comparisons(entries, presets, comparison_stats: Sequence[str], issues: list[Issue]) -> None:
    granted: Set[str] = set()
    for _, step in entries:
        for tags, _ in _all_tag_lists(step, presets):
            granted.update(parse_tag(raw).base_name for raw in tags if parse_tag(raw).is_grant)

    for index, step in entries:
        for tags, extra in _all_tag_lists(step, presets):
            for raw in tags:
                parsed = parse_tag(raw)
                if parsed.malformed:
                    issues.append(
                        Issue(
                            severity="WARN",
                            code="MALFORMED_COMPARISON",
                            message=(
                                f'"{raw}" has a comparison without a number; '
                                f'it is treated as a plain check on "{parsed.base_name}".'
                            ),
                            context=_context(step, index, **extra),
                        )
                    )
                    continue
                if not parsed.has_comparison:
                    continue
                if not parsed.is_gate:
                    issues.append(
                        Issue(
                            severity="WARN",
                            code="COMPARISON_IGNORED",
                            message=f'Comparison on "{raw}" has no effect; only @ and ! tags compare.',
                            context=_context(step, index, **extra),
                        )
                    )
                elif parsed.base_name in comparison_stats and parsed.base_name in granted:
                    issues.append(
                        Issue(
                            severity="INFO",
                            code="AMBIGUOUS_COMPARISON",
                            message=(
                                f'"{raw}" compares the {parsed.base_name} stat, but "{parsed.base_name}" '
                                "is also granted as a tag."
                            ),
                            context=_context(step, index, **extra),
                        )
                    )


def _check_patch_targets(entries, step_ids: Set[str], issues: list[Issue]) -> None:
    for index, step in entries:
        if not is_patch_id(step["id"]):
            continue
        target = patch_target_of(step["id"])
        if not target:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="PATCH_MISSING_TARGET",
                    message="Patch is missing a target step ID",
                    context=_context(step, index),
                )
            )
            continue
        if is_patch_id(target):
            issues.append(
                Issue(
                    severity="ERROR",
                    code="PATCH_TARGETS_PATCH",
                    message=f"Patch cannot target another patch: {target}",
                    context=_context(step, index),
                )
            )
        elif target not in step_ids:
            issues.append(
                Issue(
                    severity="WARN",
                    code="PATCH_UNKNOWN_TARGET",
                    message=f"Patch targets non-existent step: {target}",
                    context=_context(step, index),
                )
            )
        text = step.get("text")
        if isinstance(text, Mapping) and sum(1 for key in _TEXT_KEYS if text.get(key) is not None) > 1:
            issues.append(
                Issue(
                    severity="WARN",
                    code="PATCH_TEXT_CONFLICT",
                    message="Patch sets more than one of prepend/append/replace; replace wins if present.",
                    context=_context(step, index),
                )
            )


def _check_transitions(entries, presets, issues: list[Issue]) -> None:
    variants: Dict[str, List[Mapping[str, Any]]] = {}
    for _, step in entries:
        if not is_patch_id(step["id"]):
            variants.setdefault(step["id"], []).append(step)

    for index, step in entries:
        if is_patch_id(step["id"]):
            continue
        for option_index, option in options_of(step, presets):
            for target in (option.pass_target, option.fail_target):
                targets = variants.get(target or "")
                if not targets:
                    continue
                via = option.as_option_def()
                if not any(are_compatible(step, candidate, option=via) for candidate in targets):
                    issues.append(
                        Issue(
                            severity="WARN",
                            code="INCOMPATIBLE_TRANSITION",
                            message=f'Option "{option.label}" leads to "{target}" but no variant can accept it.',
                            context=_context(step, index, option_index=option_index),
                        )
                    )


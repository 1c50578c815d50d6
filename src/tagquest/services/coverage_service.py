"""Coverage matrix: which variant runs for each combination of gate tags."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Mapping, Sequence

from tagquest.domain.defs import StepDef
from tagquest.domain.selection import candidate_ids
from tagquest.domain.tags import TagState, parse_tag, passes_tag_gate

CoverageStatus = Literal["single", "ambiguous", "none"]

DEFAULT_MAX_TAGS = 6


@dataclass(frozen=True, slots=True)
class CoverageRow:
    tag_values: Dict[str, bool]
    matches: List[int]
    status: CoverageStatus


def relevant_tags(steps: Sequence[StepDef], location: str, locations: Mapping[str, str] | None = None) -> List[str]:
    """Base names of the required/blocked tags used by steps at ``location``."""
    ids = candidate_ids(location, locations)
    tags: List[str] = []
    for step in steps:
        if step.id.casefold() not in ids:
            continue
        for raw in step.tags:
            parsed = parse_tag(raw)
            if parsed.is_gate and parsed.base_name not in tags:
                tags.append(parsed.base_name)
    return tags


def generate_coverage_matrix(
    steps: Sequence[StepDef],
    location: str,
    max_tags: int = DEFAULT_MAX_TAGS,
    *,
    locations: Mapping[str, str] | None = None,
) -> List[CoverageRow]:
    """Enumerate presence/absence of up to ``max_tags`` gate tags.

    ``matches`` holds indices into ``steps``. More than one match is reported
    as ``ambiguous``; overlapping variants are allowed and tie-break at
    runtime.
    """
    tags = relevant_tags(steps, location, locations)[:max_tags]
    if not tags:
        return []
    ids = candidate_ids(location, locations)
    rows: List[CoverageRow] = []
    for combo in range(2 ** len(tags)):
        tag_values = {tag: bool(combo & (1 << bit)) for bit, tag in enumerate(tags)}
        state = TagState.from_tags(tag for tag, held in tag_values.items() if held)
        matches = [
            index
            for index, step in enumerate(steps)
            if step.id.casefold() in ids and passes_tag_gate(step.tags, state)
        ]
        if len(matches) == 1:
            status: CoverageStatus = "single"
        elif matches:
            status = "ambiguous"
        else:
            status = "none"
        rows.append(CoverageRow(tag_values=tag_values, matches=matches, status=status))
    return rows

"""Tag parsing and tag-gate evaluation.

A raw tag is a label with an optional single leading operator:

* ``@name`` required: the player must hold the tag.
* ``!name`` blocked: the player must not hold the tag.
* ``+name`` grant: one copy is added when the step or option executes.
* ``-name`` consume: one copy is removed when the step or option executes.
* ``name`` preferred: raises the step's selection score when held.

Required and blocked tags may carry a numeric comparison suffix
(``@inv:silver=3``, ``!level>2``, ``@might<4``). The comparison is evaluated
against how many copies of the tag the player holds, or, for whitelisted stat
names, against the stat value.

A suffix whose value is not a number is dropped and the tag falls back to a
plain presence check on the name before it.
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Sequence, Tuple

from tagquest.core.types import ComparisonOperator, TagOperator

OPERATORS: Tuple[str, ...] = ("@", "!", "+", "-")
GATE_OPERATORS: Tuple[str, ...] = ("@", "!")
MUTATION_OPERATORS: Tuple[str, ...] = ("+", "-")

_COMPARISON_RE = re.compile(r"^(.+?)([=<>])(\d+)$")
_MALFORMED_COMPARISON_RE = re.compile(r"^(.+?)[=<>]")


@dataclass(frozen=True, slots=True)
class ParsedTag:
    operator: TagOperator
    base_name: str
    comparison: ComparisonOperator | None = None
    value: int | None = None
    raw: str = ""
    malformed: bool = False

    @property
    def is_required(self) -> bool:
        return self.operator == "@"

    @property
    def is_blocked(self) -> bool:
        return self.operator == "!"

    @property
    def is_grant(self) -> bool:
        return self.operator == "+"

    @property
    def is_consume(self) -> bool:
        return self.operator == "-"

    @property
    def is_preferred(self) -> bool:
        return self.operator == ""

    @property
    def is_gate(self) -> bool:
        return self.operator in GATE_OPERATORS

    @property
    def has_comparison(self) -> bool:
        return self.comparison is not None and self.value is not None


def parse_tag(raw: str) -> ParsedTag:
    """Split a raw tag into operator, base name and optional comparison.

    Only the first character is inspected for an operator. The comparison
    suffix is split off for every operator so the base name is stable, but
    it only has meaning on required and blocked tags.
    """
    operator: TagOperator = ""
    rest = raw
    if rest[:1] in OPERATORS:
        operator = rest[0]  # type: ignore[assignment]
        rest = rest[1:]
    match = _COMPARISON_RE.match(rest)
    if match:
        return ParsedTag(
            operator=operator,
            base_name=match.group(1),
            comparison=match.group(2),  # type: ignore[arg-type]
            value=int(match.group(3)),
            raw=raw,
        )
    malformed = _MALFORMED_COMPARISON_RE.match(rest)
    if malformed:
        return ParsedTag(operator=operator, base_name=malformed.group(1), raw=raw, malformed=True)
    return ParsedTag(operator=operator, base_name=rest, raw=raw)


def format_tag(parsed: ParsedTag) -> str:
    """Rebuild the raw tag string for a parsed tag."""
    result = f"{parsed.operator}{parsed.base_name}"
    if parsed.has_comparison:
        result += f"{parsed.comparison}{parsed.value}"
    return result


def base_name(raw: str) -> str:
    return parse_tag(raw).base_name


@dataclass(frozen=True, slots=True)
class TagState:
    """Read-only view of what a player holds, used for gate evaluation.

    ``stats`` only contains the stat names whose comparisons should read the
    stat value instead of a tag count.
    """

    counts: Mapping[str, int] = field(default_factory=dict)
    stats: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def from_tags(cls, tags: Iterable[str], stats: Mapping[str, int] | None = None) -> "TagState":
        return cls(counts=Counter(tags), stats=dict(stats or {}))

    def count(self, name: str) -> int:
        return self.counts.get(name, 0)

    def holds(self, name: str) -> bool:
        return self.count(name) > 0

    def value_for(self, name: str) -> int:
        if name in self.stats:
            return self.stats[name]
        return self.count(name)


def as_tag_state(tags: "TagState | Iterable[str]") -> TagState:
    if isinstance(tags, TagState):
        return tags
    return TagState.from_tags(tags)


def evaluate_comparison(value: int, comparison: ComparisonOperator | None, target: int | None) -> bool:
    """Evaluate ``value <comparison> target``; without a comparison, test presence."""
    if comparison is None or target is None:
        return value >= 1
    if comparison == "=":
        return value == target
    if comparison == "<":
        return value < target
    if comparison == ">":
        return value > target
    return value >= 1


def tag_satisfied(parsed: ParsedTag, state: TagState) -> bool:
    """Return True when a single gate tag does not exclude the player.

    Mutation and preferred tags never exclude anyone.
    """
    if parsed.is_required:
        if parsed.has_comparison:
            return evaluate_comparison(state.value_for(parsed.base_name), parsed.comparison, parsed.value)
        return state.holds(parsed.base_name)
    if parsed.is_blocked:
        if parsed.has_comparison:
            return not evaluate_comparison(state.value_for(parsed.base_name), parsed.comparison, parsed.value)
        return not state.holds(parsed.base_name)
    return True


def passes_tag_gate(tags: Iterable[str], state: "TagState | Iterable[str]") -> bool:
    """Return True when every required tag holds and no blocked tag does."""
    tag_state = as_tag_state(state)
    return all(tag_satisfied(parse_tag(raw), tag_state) for raw in tags)


def missing_requirements(tags: Iterable[str], state: "TagState | Iterable[str]") -> List[str]:
    """Return the raw gate tags that currently exclude the player."""
    tag_state = as_tag_state(state)
    return [raw for raw in tags if not tag_satisfied(parse_tag(raw), tag_state)]


def signature_tags(tags: Sequence[str]) -> Tuple[set[str], set[str]]:
    """Return the (required, blocked) base names of a tag list."""
    required: set[str] = set()
    blocked: set[str] = set()
    for raw in tags:
        parsed = parse_tag(raw)
        if parsed.is_required:
            required.add(parsed.base_name)
        elif parsed.is_blocked:
            blocked.add(parsed.base_name)
    return required, blocked


def mutation_tags(tags: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Return the (granted, consumed) base names of a tag list, in order."""
    grants: List[str] = []
    consumes: List[str] = []
    for raw in tags:
        parsed = parse_tag(raw)
        if parsed.is_grant:
            grants.append(parsed.base_name)
        elif parsed.is_consume:
            consumes.append(parsed.base_name)
    return grants, consumes


def preferred_tags(tags: Sequence[str]) -> List[str]:
    """Return preferred base names, keeping repeats since each copy adds weight."""
    return [parsed.base_name for parsed in map(parse_tag, tags) if parsed.is_preferred]

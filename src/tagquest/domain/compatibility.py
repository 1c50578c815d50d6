"""Static check of whether a transition between two steps can ever fire.

The check only sees tags, never a concrete player. It answers "incompatible"
only when one of four contradictions is proven and "compatible" otherwise:

1. the source grants a tag the target blocks;
2. the source consumes a tag the target requires;
3. the source blocks a tag the target requires and does not grant it;
4. the source requires a tag the target blocks and does not consume it.

All rules compare base names, so ``@inv:silver>2`` and ``!inv:silver`` both
concern ``inv:silver``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, List, Mapping, Sequence, Union

from tagquest.domain.defs import OptionDef, StepDef
from tagquest.domain.tags import mutation_tags, signature_tags

StepLike = Union[StepDef, Mapping[str, object]]


@dataclass(frozen=True, slots=True)
class Signature:
    required: FrozenSet[str]
    blocked: FrozenSet[str]


@dataclass(frozen=True, slots=True)
class Mutations:
    grants: FrozenSet[str]
    consumes: FrozenSet[str]


def _tags_of(step: StepLike) -> Sequence[str]:
    if isinstance(step, StepDef):
        return step.tags
    tags = step.get("tags") or ()
    return [tag for tag in tags if isinstance(tag, str)]  # type: ignore[union-attr]


def signature_of(step: StepLike) -> Signature:
    required, blocked = signature_tags(_tags_of(step))
    return Signature(required=frozenset(required), blocked=frozenset(blocked))


def mutations_of(step: StepLike, option: OptionDef | None = None) -> Mutations:
    """Return what executing ``step`` changes, plus ``option``'s changes if given."""
    tags = list(_tags_of(step))
    if option is not None:
        tags.extend(option.tags)
    grants, consumes = mutation_tags(tags)
    return Mutations(grants=frozenset(grants), consumes=frozenset(consumes))


def incompatibility_reasons(
    source: StepLike,
    target: StepLike,
    *,
    option: OptionDef | None = None,
) -> List[str]:
    """Describe each contradiction that rules the transition out."""
    source_sig = signature_of(source)
    target_sig = signature_of(target)
    mutations = mutations_of(source, option)
    reasons: List[str] = []
    for tag in sorted(mutations.grants & target_sig.blocked):
        reasons.append(f"source grants '{tag}' which the target blocks")
    for tag in sorted(mutations.consumes & target_sig.required):
        reasons.append(f"source consumes '{tag}' which the target requires")
    for tag in sorted((source_sig.blocked & target_sig.required) - mutations.grants):
        reasons.append(f"source blocks '{tag}' which the target requires")
    for tag in sorted((source_sig.required & target_sig.blocked) - mutations.consumes):
        reasons.append(f"source requires '{tag}' which the target blocks")
    return reasons


def are_compatible(source: StepLike, target: StepLike, *, option: OptionDef | None = None) -> bool:
    return not incompatibility_reasons(source, target, option=option)

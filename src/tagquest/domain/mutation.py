"""Grant/consume tag mutations applied when a step or option executes."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from tagquest.domain.defs.config_def import DEFAULT_XP_PER_LEVEL
from tagquest.domain.state import PlayerState
from tagquest.domain.tags import parse_tag

QUEST_TAG = "quest"
QUEST_SCOPE_PREFIX = "q:"


@dataclass(slots=True)
class MutationResult:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    xp_gained: int = 0
    leveled_up: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


def apply_tag_mutations(
    player: PlayerState,
    tags: Sequence[str],
    *,
    xp_per_level: int = DEFAULT_XP_PER_LEVEL,
) -> MutationResult:
    """Apply every ``+tag`` and ``-tag`` in order, all at once.

    ``+tag`` adds one copy and ``-tag`` removes one copy if held. Consuming
    ``quest`` completes the active quest: it awards one XP and drops every
    quest-scoped ``q:`` tag.
    """
    working = list(player.tags)
    xp = player.xp
    result = MutationResult()
    for raw in tags:
        parsed = parse_tag(raw)
        name = parsed.base_name
        if parsed.is_grant:
            working.append(name)
            result.added.append(name)
        elif parsed.is_consume and name in working:
            working.remove(name)
            result.removed.append(name)
            if name == QUEST_TAG:
                xp += 1
                result.xp_gained += 1
                scoped = [tag for tag in working if tag.startswith(QUEST_SCOPE_PREFIX)]
                result.removed.extend(scoped)
                working = [tag for tag in working if not tag.startswith(QUEST_SCOPE_PREFIX)]

    old_level = player.level(xp_per_level)
    player.tags = working
    player.xp = xp
    result.leveled_up = player.level(xp_per_level) > old_level
    return result

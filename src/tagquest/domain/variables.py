"""Quest variable table and ``{{var}}`` interpolation."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from tagquest.core.rng import RNG
from tagquest.domain.defs import VarOptions

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{([\w.]+)\}\}")

_PRONOUNS: Dict[str, Dict[str, str]] = {
    "male": {"he": "he", "him": "him", "his": "his", "himself": "himself"},
    "female": {"he": "she", "him": "her", "his": "her", "himself": "herself"},
    "neutral": {"he": "they", "him": "them", "his": "their", "himself": "themself"},
}

# Every spelling an author may use maps onto the masculine key of _PRONOUNS.
_PRONOUN_KEYS: Dict[str, str] = {
    "he": "he",
    "she": "he",
    "they": "he",
    "him": "him",
    "her": "him",
    "them": "him",
    "his": "his",
    "hers": "his",
    "theirs": "his",
    "himself": "himself",
    "herself": "himself",
    "themself": "himself",
}


@dataclass(slots=True)
class QuestVariables:
    """Session-scoped variable bindings used for text interpolation."""

    values: Dict[str, str] = field(default_factory=dict)
    unresolved: List[str] = field(default_factory=list)

    def set(self, name: str, value: str) -> None:
        self.values[name] = value

    def get(self, name: str) -> str | None:
        return self.values.get(name)

    def clear(self, name: str) -> None:
        """Remove ``name`` and every ``name.field`` binding."""
        prefix = f"{name}."
        for key in [key for key in self.values if key == name or key.startswith(prefix)]:
            del self.values[key]

    def snapshot(self) -> Dict[str, str]:
        return dict(self.values)


def resolve_step_vars(vars_def: Mapping[str, VarOptions] | None, table: QuestVariables, rng: RNG) -> None:
    """Bind the variables a step declares, drawing candidates through ``rng``."""
    if not vars_def:
        return
    for name, candidates in vars_def.items():
        if candidates is None:
            table.clear(name)
            continue
        if not candidates:
            continue
        picked = rng.choice(list(candidates))
        if isinstance(picked, Mapping):
            table.clear(name)
            for index, (key, value) in enumerate(picked.items()):
                table.set(f"{name}.{key}", str(value))
                if index == 0:
                    table.set(name, str(value))
        else:
            table.set(name, str(picked))


def derive_pronoun(expr: str, table: QuestVariables) -> str | None:
    """Resolve ``npc.him`` style pronouns from the ``npc.gender`` binding."""
    namespace, dot, key = expr.rpartition(".")
    if not dot:
        return None
    gender = table.get(f"{namespace}.gender")
    if gender is None or gender not in _PRONOUNS:
        return None
    canonical = _PRONOUN_KEYS.get(key.lower())
    if canonical is None:
        return None
    pronoun = _PRONOUNS[gender][canonical]
    if key[:1].isupper():
        return pronoun.capitalize()
    return pronoun


def render_text(template: str, table: QuestVariables) -> str:
    """Substitute ``{{expr}}`` placeholders; unknown names render as ``""``."""

    def _replace(match: re.Match[str]) -> str:
        expr = match.group(1)
        value = table.get(expr)
        if value:
            return value
        pronoun = derive_pronoun(expr, table)
        if pronoun is not None:
            return pronoun
        if value is not None:
            return value
        logger.debug("Unresolved variable '%s'", expr)
        if expr not in table.unresolved:
            table.unresolved.append(expr)
        return ""

    return PLACEHOLDER_RE.sub(_replace, template)


def extract_variables(text: str | None) -> List[str]:
    """Return placeholder names in order of appearance."""
    if not text:
        return []
    return PLACEHOLDER_RE.findall(text)

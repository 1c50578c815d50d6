"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import textwrap
from typing import Iterable, List, Sequence

from tagquest.domain.skill_check import SkillCheckResult
from tagquest.services.adventure_service import StepView
from tagquest.services.coverage_service import CoverageRow
from tagquest.services.flow_graph import StepTree, TreeNode


def debug_enabled() -> bool:
    """Return True only when TAGQUEST_DEBUG is explicitly set to '1'."""
    return os.getenv("TAGQUEST_DEBUG") == "1"


def wrap_text(text: str, width: int, *, indent_continuation: bool = False) -> list[str]:
    """
    Wrap text to a fixed width on word boundaries, keeping blank lines.

    Args:
        text: The text to wrap; embedded newlines start new paragraphs
        width: Maximum width per line
        indent_continuation: If True, indent continuation lines with 2 spaces

    Returns:
        List of wrapped lines
    """
    if not text or width <= 0:
        return [text] if text else [""]
    lines: list[str] = []
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        prefix = "- " if paragraph.startswith("- ") else ""
        content = paragraph[len(prefix):]
        wrapped = textwrap.wrap(
            content,
            width=max(width - len(prefix), 1),
            subsequent_indent="  " if indent_continuation else "",
            break_long_words=False,
            break_on_hyphens=False,
        )
        if not wrapped:
            lines.append(prefix.rstrip())
            continue
        lines.append(prefix + wrapped[0])
        lines.extend((" " * len(prefix)) + line for line in wrapped[1:])
    return lines


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_menu(title: str, options: Sequence[str]) -> None:
    """Display a menu section with numbered options."""
    render_heading(title)
    for idx, label in enumerate(options, start=1):
        print(f"{idx}. {label}")


def render_bullet_lines(lines: Iterable[str]) -> None:
    """Print bullet-prefixed lines."""
    for line in lines:
        print(f"- {line}")


def render_step_view(view: StepView, width: int) -> None:
    """Print step text and its numbered options."""
    if debug_enabled():
        print(f"[{view.step_id}]")
    for line in wrap_text(view.text, width):
        print(line)
    if not view.options:
        return
    print("\nOptions:")
    for idx, option in enumerate(view.options, start=1):
        print(f"  {idx}. {format_option_label(option.label, option.available, option.missing_tags, option.has_skill_check)}")


def format_option_label(label: str, available: bool, missing_tags: Sequence[str], has_skill_check: bool) -> str:
    text = label
    if has_skill_check:
        text += " [check]"
    if not available:
        text += f" (requires: {', '.join(missing_tags)})"
    return text


def format_skill_check(result: SkillCheckResult) -> List[str]:
    """Describe a resolved skill check, one line per bonus source."""
    lines = [f"Rolled {result.roll}"]
    for bonus in result.bonuses:
        lines.append(f"{bonus.source} ({bonus.kind}): {bonus.value:+d}")
    lines.append(f"Total {result.total} vs DC {result.dc}: {'SUCCESS' if result.success else 'FAILURE'}")
    return lines


def format_coverage_rows(rows: Sequence[CoverageRow], step_ids: Sequence[str]) -> List[str]:
    """Tabulate a coverage matrix; ``step_ids`` maps match indices to ids."""
    if not rows:
        return ["No gate tags found for this location."]
    tags = list(rows[0].tag_values.keys())
    lines = [" | ".join(tags + ["matches", "status"])]
    for row in rows:
        cells = ["x" if row.tag_values[tag] else "." for tag in tags]
        matched = ", ".join(f"{step_ids[index]}#{index}" for index in row.matches) or "-"
        lines.append(" | ".join(cells + [matched, row.status]))
    return lines


def format_step_tree(tree: StepTree) -> List[str]:
    """Indented outline of a step tree, with orphans and patches listed last."""
    lines: List[str] = []
    for group in tree.groups:
        lines.append(f"{group.root_label} ({group.step_count} steps)")
        for root in group.children:
            for child in root.children:
                _append_tree_lines(child, 1, lines)
    if tree.orphans:
        lines.append("Orphans:")
        lines.extend(f"  {node.step_id}#{node.step_index}" for node in tree.orphans)
    if tree.patches:
        lines.append("Patches:")
        lines.extend(f"  {node.step_id}#{node.step_index}" for node in tree.patches)
    return lines


def _append_tree_lines(node: TreeNode, depth: int, lines: List[str]) -> None:
    marker = " (back)" if node.ref_type == "back" else ""
    lines.append(f"{'  ' * depth}{node.step_id}#{node.step_index}{marker}")
    for child in node.children:
        _append_tree_lines(child, depth + 1, lines)

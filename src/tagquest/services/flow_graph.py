"""Step dependency graph, grouped tree and flowchart export.

Nodes are keyed by step index rather than id, because several variants may
share one id. An option that targets an id links to every variant of it;
when the flowchart is built, links to variants that can never accept the
transition are pruned with the tag-compatibility check.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Literal, Mapping, Sequence, Set

from tagquest.core.types import EdgeType
from tagquest.domain.compatibility import are_compatible
from tagquest.domain.defs import is_patch_id
from tagquest.domain.tags import parse_tag
from tagquest.services.quest_file import PRESETS_KEY, RawStep, options_of, tags_of

RefType = Literal["primary", "back"]

TEXT_PREVIEW_LENGTH = 60
KEY_TAG_LIMIT = 3
_PLACEHOLDER_RE = re.compile(r"\{\{[^}]+\}\}")


@dataclass(eq=False, slots=True)
class StepNode:
    step_index: int
    step: RawStep
    children: List["StepNode"] = field(default_factory=list)
    parents: List["StepNode"] = field(default_factory=list)

    @property
    def step_id(self) -> str:
        return self.step["id"]


@dataclass(slots=True)
class StepGraph:
    nodes_by_index: Dict[int, StepNode]
    indices_by_id: Dict[str, List[int]]


@dataclass(slots=True)
class TreeNode:
    step_id: str
    step_index: int
    step: RawStep
    children: List["TreeNode"] = field(default_factory=list)
    is_location: bool = False
    is_patch: bool = False
    is_orphaned: bool = False
    ref_type: RefType = "primary"


@dataclass(slots=True)
class StepTreeGroup:
    root_id: str
    root_label: str
    key_tags: List[str]
    children: List[TreeNode]
    step_count: int


@dataclass(slots=True)
class StepTree:
    groups: List[StepTreeGroup] = field(default_factory=list)
    orphans: List[TreeNode] = field(default_factory=list)
    patches: List[TreeNode] = field(default_factory=list)


@dataclass(slots=True)
class FlowNode:
    id: str
    step_id: str
    step_index: int
    group: str
    text: str
    is_location: bool
    is_patch: bool
    is_orphaned: bool
    has_skill_check: bool
    key_tags: List[str]
    option_count: int
    is_multi_location: bool = False
    incoming_handles: List[str] = field(default_factory=list)
    outgoing_handles: List[str] = field(default_factory=list)


@dataclass(slots=True)
class FlowEdge:
    id: str
    source: str
    target: str
    source_handle: str
    target_handle: str
    edge_type: EdgeType
    label: str | None
    option_label: str
    option_tags: List[str]
    skill_check: Dict[str, Any] | None = None


@dataclass(slots=True)
class FlowData:
    nodes: List[FlowNode] = field(default_factory=list)
    edges: List[FlowEdge] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _EdgeInfo:
    target_id: str
    edge_type: EdgeType
    label: str | None
    option_label: str
    option_tags: List[str]
    skill_check: Dict[str, Any] | None


def key_tags(step: RawStep) -> List[str]:
    """The first few required/blocked tags, for labelling variants."""
    return [raw for raw in tags_of(step) if parse_tag(raw).is_gate][:KEY_TAG_LIMIT]


def truncate_text(text: object, max_length: int = TEXT_PREVIEW_LENGTH) -> str:
    if not isinstance(text, str):
        return ""
    cleaned = _PLACEHOLDER_RE.sub("...", text)
    if len(cleaned) <= max_length:
        return cleaned
    return cleaned[: max_length - 3] + "..."


def _entries(steps: Sequence[object]) -> Iterable[tuple[int, RawStep]]:
    for index, step in enumerate(steps):
        if isinstance(step, Mapping) and isinstance(step.get("id"), str) and PRESETS_KEY not in step:
            yield index, step


def build_step_graph(steps: Sequence[object], presets: Mapping[str, Any] | None = None) -> StepGraph:
    """Link every non-patch step to all variants of its pass/fail targets."""
    presets = presets or {}
    nodes_by_index: Dict[int, StepNode] = {}
    indices_by_id: Dict[str, List[int]] = {}
    for index, step in _entries(steps):
        if is_patch_id(step["id"]):
            continue
        nodes_by_index[index] = StepNode(step_index=index, step=step)
        indices_by_id.setdefault(step["id"], []).append(index)

    for node in nodes_by_index.values():
        linked: Set[int] = set()
        for _, option in options_of(node.step, presets):
            for target in (option.pass_target, option.fail_target):
                for target_index in indices_by_id.get(target or "", []):
                    if target_index in linked:
                        continue
                    child = nodes_by_index[target_index]
                    node.children.append(child)
                    child.parents.append(node)
                    linked.add(target_index)
    return StepGraph(nodes_by_index=nodes_by_index, indices_by_id=indices_by_id)


def find_roots(graph: StepGraph, location_ids: Set[str]) -> List[StepNode]:
    """Location steps, plus unreferenced steps that lead somewhere."""
    return [
        node
        for node in graph.nodes_by_index.values()
        if node.step_id in location_ids or (not node.parents and node.children)
    ]


def build_step_tree(
    steps: Sequence[object],
    presets: Mapping[str, Any] | None = None,
    location_ids: Set[str] | None = None,
) -> StepTree:
    """Expand the graph into one tree per root, cutting cycles with back-references."""
    location_ids = location_ids or set()
    graph = build_step_graph(steps, presets)
    tree = StepTree()

    def build_subtree(node: StepNode, ancestors: frozenset[int]) -> TreeNode:
        is_location = node.step_id in location_ids
        if node.step_index in ancestors:
            return TreeNode(node.step_id, node.step_index, node.step, is_location=is_location, ref_type="back")
        inner = ancestors | {node.step_index}
        return TreeNode(
            node.step_id,
            node.step_index,
            node.step,
            children=[build_subtree(child, inner) for child in node.children],
            is_location=is_location,
        )

    for root in find_roots(graph, location_ids):
        root_tree = build_subtree(root, frozenset())
        tags = key_tags(root.step)
        label = root.step_id
        if tags:
            label += f" [{', '.join(tags)}]"
        elif root_tree.children:
            label += f" -> {root_tree.children[0].step_id}"
        tree.groups.append(
            StepTreeGroup(
                root_id=root.step_id,
                root_label=label,
                key_tags=tags,
                children=[root_tree],
                step_count=_count_steps(root_tree),
            )
        )

    for node in graph.nodes_by_index.values():
        if not node.parents and not node.children and node.step_id not in location_ids:
            tree.orphans.append(TreeNode(node.step_id, node.step_index, node.step, is_orphaned=True))

    for index, step in _entries(steps):
        if is_patch_id(step["id"]):
            tree.patches.append(TreeNode(step["id"], index, step, is_patch=True))
    return tree


def _count_steps(node: TreeNode) -> int:
    if node.ref_type == "back":
        return 0
    return 1 + sum(_count_steps(child) for child in node.children)


def _walk(node: TreeNode) -> Iterable[TreeNode]:
    yield node
    for child in node.children:
        if child.ref_type != "back":
            yield from _walk(child)


def _edge_infos(step: RawStep, presets: Mapping[str, Any]) -> List[_EdgeInfo]:
    infos: List[_EdgeInfo] = []
    seen: Set[str] = set()
    for _, option in options_of(step, presets):
        skill_check = None
        if option.has_skill_check:
            skill_check = {"skill": list(option.skill), "dc": option.dc}
        if option.pass_target and option.pass_target not in seen:
            seen.add(option.pass_target)
            infos.append(
                _EdgeInfo(
                    target_id=option.pass_target,
                    edge_type="pass" if option.has_skill_check else "default",
                    label="Pass" if option.has_skill_check else None,
                    option_label=option.label,
                    option_tags=list(option.tags),
                    skill_check=skill_check,
                )
            )
        if option.fail_target and option.fail_target not in seen:
            seen.add(option.fail_target)
            infos.append(
                _EdgeInfo(
                    target_id=option.fail_target,
                    edge_type="fail",
                    label="Fail",
                    option_label=option.label,
                    option_tags=list(option.tags),
                    skill_check=skill_check,
                )
            )
    return infos


def transform_tree_to_flow(tree: StepTree, presets: Mapping[str, Any] | None = None) -> FlowData:
    """Flatten a step tree into flowchart nodes and typed edges (no layout)."""
    presets = presets or {}
    flow = FlowData()
    node_by_index: Dict[int, FlowNode] = {}
    step_by_index: Dict[int, RawStep] = {}
    indices_by_id: Dict[str, List[int]] = {}
    groups_by_index: Dict[int, Set[str]] = {}

    def add_node(tree_node: TreeNode, group: str) -> None:
        if tree_node.step_index in node_by_index:
            return
        options = options_of(tree_node.step, presets)
        flow_node = FlowNode(
            id=f"node-{tree_node.step_index}",
            step_id=tree_node.step_id,
            step_index=tree_node.step_index,
            group=group,
            text=truncate_text(tree_node.step.get("text")),
            is_location=tree_node.is_location,
            is_patch=tree_node.is_patch,
            is_orphaned=tree_node.is_orphaned,
            has_skill_check=any(option.has_skill_check for _, option in options),
            key_tags=key_tags(tree_node.step),
            option_count=len(options),
        )
        flow.nodes.append(flow_node)
        node_by_index[tree_node.step_index] = flow_node
        step_by_index[tree_node.step_index] = tree_node.step
        indices_by_id.setdefault(tree_node.step_id, []).append(tree_node.step_index)

    for group in tree.groups:
        group_id = f"group-{group.root_id}"
        for root in group.children:
            for tree_node in _walk(root):
                add_node(tree_node, group_id)
                groups_by_index.setdefault(tree_node.step_index, set()).add(group_id)
    for orphan in tree.orphans:
        add_node(orphan, "orphans")
    for patch in tree.patches:
        add_node(patch, "patches")

    for step_index, groups in groups_by_index.items():
        if len(groups) > 1:
            node_by_index[step_index].is_multi_location = True

    outgoing: Dict[str, int] = {}
    incoming: Dict[str, int] = {}
    processed: Set[int] = set()
    for group in tree.groups:
        for root in group.children:
            for tree_node in _walk(root):
                if tree_node.step_index in processed:
                    continue
                processed.add(tree_node.step_index)
                source = node_by_index[tree_node.step_index]
                for info in _edge_infos(tree_node.step, presets):
                    for target_index in indices_by_id.get(info.target_id, []):
                        if not are_compatible(tree_node.step, step_by_index[target_index]):
                            continue
                        target = node_by_index[target_index]
                        source_handle = f"source-{outgoing.get(source.id, 0)}"
                        target_handle = f"target-{incoming.get(target.id, 0)}"
                        outgoing[source.id] = outgoing.get(source.id, 0) + 1
                        incoming[target.id] = incoming.get(target.id, 0) + 1
                        source.outgoing_handles.append(source_handle)
                        target.incoming_handles.append(target_handle)
                        flow.edges.append(
                            FlowEdge(
                                id=f"edge-{tree_node.step_index}-{target_index}-{info.edge_type}",
                                source=source.id,
                                target=target.id,
                                source_handle=source_handle,
                                target_handle=target_handle,
                                edge_type=info.edge_type,
                                label=info.label,
                                option_label=info.option_label,
                                option_tags=info.option_tags,
                                skill_check=info.skill_check,
                            )
                        )
    return flow


def flow_to_dict(flow: FlowData) -> Dict[str, List[Dict[str, Any]]]:
    """JSON-friendly form of the flowchart."""
    return {
        "nodes": [asdict(node) for node in flow.nodes],
        "edges": [asdict(edge) for edge in flow.edges],
    }

"""Undo the deduplication Yarn applies to its dependency listing.

``yarn list`` prints a shared subtree only once; every further occurrence
is a stub without children. Reconstruction happens in two passes:

1. Index pass - breadth-first over the whole forest, remembering the last
   expanded occurrence of every label.
2. Reconstruction pass - a depth-first walk on an explicit stack that
   resolves each node's real version from its expanded siblings, swaps in
   the indexed children for stubs and cuts cycles on the ancestor path.

Both passes are pure: no I/O, and the same input always yields the same
forest.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import (
    Container,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from yarndeps.parsers.yarn.list_model import ChildState, RawNode, split_module_label

logger = logging.getLogger("yarndeps.parsers.yarn.dedup")

DIRECT_MARKER = "bold"


@dataclass(frozen=True, order=True)
class ModuleId:
    """Name and version of one installed module."""

    name: str
    version: str

    @classmethod
    def parse(cls, label: str) -> "ModuleId":
        name, version = split_module_label(label)
        return cls(name, version)

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class ResolvedNode:
    """A node of the reconstructed tree.

    No node's id appears among its own ancestors; cyclic edges are cut
    rather than represented. Equality is structural (id and children); the
    presentation marker does not take part in it.
    """

    id: ModuleId
    children: Tuple["ResolvedNode", ...] = ()
    marker: Optional[str] = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return self.id.name

    @property
    def version(self) -> str:
        return self.id.version

    def walk(self) -> Iterable["ResolvedNode"]:
        """Yield this node and all descendants, pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass
class _Frame:
    """Work item of the reconstruction stack."""

    module_id: Optional[ModuleId]
    marker: Optional[str]
    children: Sequence[RawNode]
    ancestors: FrozenSet[ModuleId]
    context: Mapping[str, str]
    resolved: List[ResolvedNode] = field(default_factory=list)
    cursor: int = 0

    def to_node(self) -> ResolvedNode:
        assert self.module_id is not None
        return ResolvedNode(self.module_id, tuple(self.resolved), self.marker)


def build_replacement_index(roots: Iterable[RawNode]) -> Dict[str, RawNode]:
    """Index every expanded node of the forest by its label.

    The traversal is breadth-first, FIFO, children in listed order. When two
    expanded occurrences share a label the later-visited one wins; the
    order is deterministic so the outcome is reproducible.

    Args:
        roots: Top-level listing nodes.

    Returns:
        Dict[str, RawNode]: Expanded node per ``name@version`` label.
    """
    queue = deque(roots)
    index: Dict[str, RawNode] = {}

    while queue:
        node = queue.popleft()
        if node.is_expanded:
            if node.label in index and index[node.label] != node:
                logger.debug("Expanded occurrence of %s overrides an earlier one", node.label)
            index[node.label] = node
            queue.extend(node.children)

    return index


def _child_context(context: Mapping[str, str], children: Sequence[RawNode]) -> Dict[str, str]:
    # Only expanded children say which version is really installed at a level.
    result = dict(context)
    for child in children:
        if child.is_expanded:
            name, version = split_module_label(child.label)
            result[name] = version
    return result


def _resolve_id(node: RawNode, context: Mapping[str, str]) -> ModuleId:
    name, own_version = split_module_label(node.label)
    return ModuleId(name, context.get(name, own_version))


def _effective_children(
    node: RawNode, module_id: ModuleId, index: Mapping[str, RawNode]
) -> Sequence[RawNode]:
    if node.state is ChildState.EXPANDED:
        return node.children
    if node.state is ChildState.STUB:
        replacement = index.get(str(module_id))
        if replacement is not None:
            return replacement.children
    return ()


def undo_deduplication(roots: Iterable[RawNode]) -> List[ResolvedNode]:
    """Rebuild the full dependency forest from a deduplicated listing.

    Args:
        roots: Top-level listing nodes, as returned by ``parse_yarn_list``.

    Returns:
        List[ResolvedNode]: The reconstructed top-level nodes.
    """
    roots = tuple(roots)
    index = build_replacement_index(roots)

    root = _Frame(
        module_id=None,
        marker=None,
        children=roots,
        ancestors=frozenset(),
        context=_child_context({}, roots),
    )
    stack = [root]

    while stack:
        frame = stack[-1]

        if frame.cursor < len(frame.children):
            child = frame.children[frame.cursor]
            frame.cursor += 1

            module_id = _resolve_id(child, frame.context)
            if module_id in frame.ancestors:
                continue

            children = _effective_children(child, module_id, index)
            stack.append(
                _Frame(
                    module_id=module_id,
                    marker=child.marker,
                    children=children,
                    ancestors=frame.ancestors | {module_id},
                    context=_child_context(frame.context, children),
                )
            )
            continue

        stack.pop()
        if stack:
            stack[-1].resolved.append(frame.to_node())

    return root.resolved


def select_declared(
    resolved: Iterable[ResolvedNode],
    installed_ids: Container[str],
    direct_marker: str = DIRECT_MARKER,
) -> List[ResolvedNode]:
    """Keep the top-level nodes that are declared and installed.

    Yarn highlights directly declared dependencies with the ``bold`` color;
    other top-level entries are hoisted transitive packages or unmet
    optional dependencies. Dropped entries stay reachable as children of
    the kept nodes.

    Args:
        resolved: Top-level reconstructed nodes.
        installed_ids: ``name@version`` keys of the modules found on disk.
        direct_marker: Marker value that flags a direct dependency.

    Returns:
        List[ResolvedNode]: The declared-scope dependencies.
    """
    return [
        node
        for node in resolved
        if node.marker == direct_marker and str(node.id) in installed_ids
    ]


__all__ = [
    "DIRECT_MARKER",
    "ModuleId",
    "ResolvedNode",
    "build_replacement_index",
    "select_declared",
    "undo_deduplication",
]

"""Raw model of the tree printed by ``yarn list --json``.

Yarn Classic prints every package subtree once and replaces repeated
occurrences by a bare stub. A node therefore carries one of three child
states which must never be collapsed into each other:

- STUB: no ``children`` field (or ``null``), "expand me from elsewhere"
- LEAF: ``children: []``, the package genuinely has no dependencies
- EXPANDED: a non-empty ``children`` list
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Optional, Tuple

from yarndeps.parsers.base import MalformedListingError

logger = logging.getLogger("yarndeps.parsers.yarn.list_model")


def split_module_label(label: str) -> Tuple[str, str]:
    """Split a ``name@version`` label on its last ``@``.

    A leading ``@`` belongs to a scoped package name and is never treated
    as the separator, so ``@babel/core`` yields an empty version.

    Args:
        label: Label as printed by the listing command.

    Returns:
        Tuple of (name, version); version is empty when absent.
    """
    index = label.rfind("@")
    if index <= 0:
        return label, ""
    return label[:index], label[index + 1 :]


class ChildState(Enum):
    """Child state of a listing node."""

    STUB = "stub"
    LEAF = "leaf"
    EXPANDED = "expanded"


@dataclass(frozen=True)
class RawNode:
    """One entry of the listing output.

    Attributes:
        label: Bare package name or ``name@version`` literal.
        state: Which of the three child states the node is in.
        children: Child nodes, non-empty exactly when state is EXPANDED.
        marker: Presentation tag (Yarn's ``color``); ``bold`` marks
            directly declared dependencies at the top level.
    """

    label: str
    state: ChildState
    children: Tuple["RawNode", ...] = ()
    marker: Optional[str] = None

    def __post_init__(self) -> None:
        if self.state is ChildState.EXPANDED and not self.children:
            raise ValueError(f"Expanded node {self.label!r} must have children")
        if self.state is not ChildState.EXPANDED and self.children:
            raise ValueError(
                f"Node {self.label!r} in state {self.state.value} cannot carry children"
            )

    @classmethod
    def stub(cls, label: str, marker: Optional[str] = None) -> "RawNode":
        return cls(label, ChildState.STUB, (), marker)

    @classmethod
    def leaf(cls, label: str, marker: Optional[str] = None) -> "RawNode":
        return cls(label, ChildState.LEAF, (), marker)

    @classmethod
    def expanded(
        cls, label: str, children: Iterable["RawNode"], marker: Optional[str] = None
    ) -> "RawNode":
        return cls(label, ChildState.EXPANDED, tuple(children), marker)

    @property
    def is_expanded(self) -> bool:
        return self.state is ChildState.EXPANDED

    @property
    def module_name(self) -> str:
        return split_module_label(self.label)[0]

    @property
    def module_version(self) -> str:
        return split_module_label(self.label)[1]


def parse_yarn_list(text: str) -> List[RawNode]:
    """Parse the output of ``yarn list --json`` into root nodes.

    Three shapes are accepted: a bare JSON array of nodes, a single
    ``{"type": "tree", "data": {"trees": [...]}}`` record, or the
    newline-delimited record stream Yarn actually prints, where ``tree``
    records are interleaved with ``info``/``warning``/``error`` records.

    Args:
        text: Raw listing output.

    Returns:
        List[RawNode]: Top-level nodes in listed order.

    Raises:
        MalformedListingError: If the output has no usable tree structure.
    """
    if not text or not text.strip():
        raise MalformedListingError("Empty dependency listing")

    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        trees = _trees_from_records(text)
    except RecursionError as e:
        raise MalformedListingError("Dependency listing is nested too deeply") from e
    else:
        if isinstance(document, list):
            trees = document
        elif isinstance(document, dict):
            trees = _trees_from_record(document)
            if trees is None:
                raise MalformedListingError(
                    f"Listing record of type {document.get('type')!r} carries no tree"
                )
        else:
            raise MalformedListingError(
                f"Unexpected listing document of type {type(document).__name__}"
            )

    try:
        return [_to_node(tree, f"[{i}]") for i, tree in enumerate(trees)]
    except RecursionError as e:
        raise MalformedListingError("Dependency listing is nested too deeply") from e


def _trees_from_records(text: str) -> List[Any]:
    """Collect the trees of all ``tree`` records in a record stream."""
    trees: List[Any] = []
    found = False

    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise MalformedListingError(
                f"Invalid JSON on line {line_no} of dependency listing: {e}"
            ) from e
        if not isinstance(record, dict):
            raise MalformedListingError(
                f"Line {line_no} of dependency listing is not a JSON object"
            )

        record_trees = _trees_from_record(record)
        if record_trees is not None:
            trees.extend(record_trees)
            found = True
        elif record.get("type") == "warning":
            logger.info("Warning in yarn list output: %s", record.get("data"))
        elif record.get("type") == "error":
            logger.warning("Error in yarn list output: %s", record.get("data"))

    if not found:
        raise MalformedListingError("Dependency listing contains no tree record")

    return trees


def _trees_from_record(record: dict) -> Optional[List[Any]]:
    if record.get("type") != "tree":
        return None

    data = record.get("data")
    trees = data.get("trees") if isinstance(data, dict) else None
    if not isinstance(trees, list):
        raise MalformedListingError("Tree record has no list of trees")
    return trees


def _to_node(obj: Any, path: str) -> RawNode:
    if not isinstance(obj, dict):
        raise MalformedListingError(f"Listing node at {path} is not an object")

    label = obj.get("name")
    if not isinstance(label, str) or not label:
        raise MalformedListingError(f"Listing node at {path} has no name")

    marker = obj.get("color")
    if marker is not None and not isinstance(marker, str):
        marker = str(marker)

    children = obj.get("children")
    if children is None:
        return RawNode.stub(label, marker)
    if not isinstance(children, list):
        raise MalformedListingError(
            f"Children of listing node {label!r} at {path} must be a list"
        )
    if not children:
        return RawNode.leaf(label, marker)

    return RawNode.expanded(
        label,
        (_to_node(child, f"{path}.{label}[{i}]") for i, child in enumerate(children)),
        marker,
    )


__all__ = ["ChildState", "RawNode", "parse_yarn_list", "split_module_label"]

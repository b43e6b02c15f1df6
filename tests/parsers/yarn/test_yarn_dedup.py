"""Tests for undoing the deduplication of Yarn listings."""

from __future__ import annotations

from typing import List

from yarndeps.parsers.yarn.dedup import (
    ModuleId,
    ResolvedNode,
    build_replacement_index,
    select_declared,
    undo_deduplication,
)
from yarndeps.parsers.yarn.list_model import RawNode

E = RawNode.expanded
L = RawNode.leaf
S = RawNode.stub


def _ids(nodes: List[ResolvedNode]) -> List[str]:
    return [str(node.id) for node in nodes]


def test_stub_nested_elsewhere_expands_to_indexed_subtree() -> None:
    """A bare stub deep in the tree is replaced by the expanded occurrence."""
    roots = [
        E("lodash@4.0.0", [L("isobject@1.0.0")], "bold"),
        E("app-utils@2.0.0", [E("helper@1.0.0", [S("lodash")])], "bold"),
    ]

    resolved = undo_deduplication(roots)

    lodash = resolved[0]
    stub = resolved[1].children[0].children[0]
    assert stub.id == ModuleId("lodash", "4.0.0")
    assert stub == lodash
    assert _ids(list(stub.children)) == ["isobject@1.0.0"]


def test_reconstruction_is_idempotent() -> None:
    roots = [
        E("a@1.0.0", [S("b@1.0.0"), E("c@1.0.0", [S("a@1.0.0")])], "bold"),
        E("b@1.0.0", [L("d@1.0.0")]),
    ]

    assert undo_deduplication(roots) == undo_deduplication(roots)


def test_direct_cycle_is_cut() -> None:
    roots = [E("a@1.0.0", [E("b@1.0.0", [S("a")])], "bold")]

    resolved = undo_deduplication(roots)

    a = resolved[0]
    b = a.children[0]
    assert str(b.id) == "b@1.0.0"
    assert b.children == ()


def test_cycle_through_stubs_terminates() -> None:
    """Two packages whose expansions reference each other via stubs."""
    roots = [
        E("a@1.0.0", [S("b@1.0.0")]),
        E("b@1.0.0", [S("a@1.0.0")]),
    ]

    resolved = undo_deduplication(roots)

    a, b = resolved
    assert _ids(list(a.children)) == ["b@1.0.0"]
    assert a.children[0].children == ()
    assert _ids(list(b.children)) == ["a@1.0.0"]
    assert b.children[0].children == ()


def test_no_node_is_its_own_ancestor() -> None:
    roots = [
        E("a@1.0.0", [S("b@1.0.0"), S("c@1.0.0")]),
        E("b@1.0.0", [S("c@1.0.0")]),
        E("c@1.0.0", [S("a@1.0.0"), S("b@1.0.0")]),
    ]

    stack = [(node, frozenset()) for node in undo_deduplication(roots)]
    while stack:
        node, ancestors = stack.pop()
        assert node.id not in ancestors
        stack.extend((child, ancestors | {node.id}) for child in node.children)


def test_unresolved_stub_becomes_leaf() -> None:
    roots = [E("x@1.0.0", [S("missing@2.0.0")])]

    resolved = undo_deduplication(roots)

    missing = resolved[0].children[0]
    assert missing.id == ModuleId("missing", "2.0.0")
    assert missing.children == ()


def test_version_comes_from_expanded_sibling_context() -> None:
    """The stub label carries a range; the expanded sibling says what is installed."""
    roots = [
        E(
            "a@1.0.0",
            [
                E("b@2.0.0", [L("c@1.0.0")]),
                E("d@1.0.0", [S("b@^2.0.0")]),
            ],
        )
    ]

    resolved = undo_deduplication(roots)

    stub = resolved[0].children[1].children[0]
    assert stub.id == ModuleId("b", "2.0.0")
    assert _ids(list(stub.children)) == ["c@1.0.0"]


def test_stub_children_do_not_seed_version_context() -> None:
    roots = [
        E("p@1.0.0", [S("b@2.0.0"), E("q@1.0.0", [S("b@3.0.0")])]),
        E("r@1.0.0", [E("b@2.0.0", [L("x@1.0.0")])]),
        E("s@1.0.0", [E("b@3.0.0", [L("y@1.0.0")])]),
    ]

    resolved = undo_deduplication(roots)

    p = resolved[0]
    assert str(p.children[0].id) == "b@2.0.0"
    nested = p.children[1].children[0]
    assert str(nested.id) == "b@3.0.0"
    assert _ids(list(nested.children)) == ["y@1.0.0"]


def test_repeated_stubs_expand_identically() -> None:
    roots = [
        E("shared@1.0.0", [E("inner@1.0.0", [L("leaf@1.0.0")])]),
        E("one@1.0.0", [S("shared@1.0.0")], "bold"),
        E("two@1.0.0", [S("shared@1.0.0")], "bold"),
    ]

    resolved = undo_deduplication(roots)

    assert resolved[1].children[0] == resolved[2].children[0] == resolved[0]


def test_replacement_index_is_breadth_first_and_last_visit_wins() -> None:
    """The nested expansion is visited after the top-level one and overrides it."""
    nested = E("m@1.0.0", [L("deep@1.0.0")])
    roots = [
        E("a@1.0.0", [nested]),
        E("m@1.0.0", [L("top@1.0.0")]),
        E("b@1.0.0", [S("m@1.0.0")]),
    ]

    index = build_replacement_index(roots)

    assert index["m@1.0.0"] is nested
    assert "b@1.0.0" in index
    resolved = undo_deduplication(roots)
    assert _ids(list(resolved[2].children[0].children)) == ["deep@1.0.0"]


def test_replacement_index_skips_stubs_and_leaves() -> None:
    roots = [E("a@1.0.0", [S("b@1.0.0"), L("c@1.0.0")])]

    assert set(build_replacement_index(roots)) == {"a@1.0.0"}


def test_deep_chain_does_not_hit_recursion_limit() -> None:
    depth = 3000
    node = L(f"n{depth}@1.0.0")
    for i in range(depth - 1, -1, -1):
        node = E(f"n{i}@1.0.0", [node])

    resolved = undo_deduplication([node])

    count = sum(1 for _ in resolved[0].walk())
    assert count == depth + 1


def test_select_declared_requires_marker_and_installation() -> None:
    resolved = undo_deduplication(
        [
            L("direct@1.0.0", "bold"),
            L("hoisted@1.0.0", "dim"),
            L("unmet@1.0.0", "bold"),
            L("plain@1.0.0"),
        ]
    )
    installed = {"direct@1.0.0", "hoisted@1.0.0", "plain@1.0.0"}

    declared = select_declared(resolved, installed)

    assert _ids(declared) == ["direct@1.0.0"]


def test_filtered_entries_remain_reachable_as_children() -> None:
    roots = [
        E("direct@1.0.0", [S("hoisted@1.0.0")], "bold"),
        E("hoisted@1.0.0", [L("leaf@1.0.0")]),
    ]

    declared = select_declared(undo_deduplication(roots), {"direct@1.0.0", "hoisted@1.0.0"})

    assert _ids(declared) == ["direct@1.0.0"]
    hoisted = declared[0].children[0]
    assert str(hoisted.id) == "hoisted@1.0.0"
    assert _ids(list(hoisted.children)) == ["leaf@1.0.0"]

"""Tests for assembling the dependency graph through a handler."""

from __future__ import annotations

from pathlib import Path

from yarndeps.graph import DependencyGraphBuilder
from yarndeps.parsers.yarn.dedup import select_declared, undo_deduplication
from yarndeps.parsers.yarn.handler import ProjectContext, YarnDependencyHandler
from yarndeps.parsers.yarn.list_model import RawNode
from yarndeps.parsers.yarn.package_json import PackageJson

PROJECT = "Yarn::app:1.0.0"


def _installed(*ids: str) -> dict:
    manifests = {}
    for module_id in ids:
        name, _, version = module_id.rpartition("@")
        manifests[module_id] = PackageJson(name=name, version=version, license="MIT")
    return manifests


def _forest():
    return undo_deduplication(
        [
            RawNode.expanded("a@1.0.0", [RawNode.stub("shared@1.0.0")], "bold"),
            RawNode.expanded("b@1.0.0", [RawNode.stub("shared@1.0.0"), RawNode.leaf("gone@1.0.0")], "bold"),
            RawNode.expanded("shared@1.0.0", [RawNode.leaf("@s/leaf@2.0.0")]),
        ]
    )


def test_builds_nodes_edges_and_scopes() -> None:
    handler = YarnDependencyHandler(
        ProjectContext(Path("/app"), _installed("a@1.0.0", "b@1.0.0", "shared@1.0.0", "@s/leaf@2.0.0"))
    )
    builder = DependencyGraphBuilder()

    builder.add_dependencies(handler, PROJECT, "dependencies", _forest()[:2])

    graph = builder.graph
    assert set(graph.nodes) == {
        "NPM::a:1.0.0",
        "NPM::b:1.0.0",
        "NPM::shared:1.0.0",
        "NPM:@s:leaf:2.0.0",
    }
    assert set(graph.edges) == {
        ("NPM::a:1.0.0", "NPM::shared:1.0.0"),
        ("NPM::b:1.0.0", "NPM::shared:1.0.0"),
        ("NPM::shared:1.0.0", "NPM:@s:leaf:2.0.0"),
    }
    assert graph.edges["NPM::a:1.0.0", "NPM::shared:1.0.0"]["linkage"] == "dynamic"
    assert graph.nodes["NPM::shared:1.0.0"]["declared_licenses"] == ["MIT"]
    assert builder.scope_dependencies(PROJECT, "dependencies") == ["NPM::a:1.0.0", "NPM::b:1.0.0"]
    assert builder.issues == []
    assert len(builder.packages()) == 4


def test_shared_package_is_created_once() -> None:
    calls = []

    class CountingHandler(YarnDependencyHandler):
        def create_package(self, dependency, issues):
            calls.append(str(dependency.id))
            return super().create_package(dependency, issues)

    handler = CountingHandler(
        ProjectContext(Path("/app"), _installed("a@1.0.0", "b@1.0.0", "shared@1.0.0", "@s/leaf@2.0.0"))
    )
    builder = DependencyGraphBuilder()

    builder.add_dependencies(handler, PROJECT, "dependencies", _forest()[:2])
    builder.add_dependencies(handler, PROJECT, "devDependencies", _forest()[:1])

    assert calls.count("shared@1.0.0") == 1
    assert builder.scope_dependencies(PROJECT, "devDependencies") == ["NPM::a:1.0.0"]


def test_missing_package_becomes_issue() -> None:
    handler = YarnDependencyHandler(ProjectContext(Path("/app"), _installed("a@1.0.0")))
    builder = DependencyGraphBuilder()

    builder.add_dependencies(handler, PROJECT, "dependencies", undo_deduplication([RawNode.leaf("x@1.0.0", "bold")]))

    assert builder.graph.nodes["NPM::x:1.0.0"]["resolved"] is False
    assert [issue.message for issue in builder.issues] == ["Could not create package for 'NPM::x:1.0.0'."]


def test_to_dict_contains_graph_scopes_and_issues() -> None:
    handler = YarnDependencyHandler(ProjectContext(Path("/app"), _installed("a@1.0.0")))
    builder = DependencyGraphBuilder()
    builder.add_dependencies(handler, PROJECT, "dependencies", undo_deduplication([RawNode.leaf("a@1.0.0", "bold")]))

    data = builder.to_dict()

    assert [node["id"] for node in data["nodes"]] == ["NPM::a:1.0.0"]
    assert data["edges"] == []
    assert data["scopes"] == {f"{PROJECT}:dependencies": ["NPM::a:1.0.0"]}
    assert data["issues"] == []


def test_mutual_dependencies_keep_both_edges() -> None:
    """Edges cut on one path are still recorded from another occurrence."""
    handler = YarnDependencyHandler(ProjectContext(Path("/app"), _installed("a@1.0.0", "b@1.0.0")))
    resolved = undo_deduplication(
        [
            RawNode.expanded("a@1.0.0", [RawNode.stub("b@1.0.0")], "bold"),
            RawNode.expanded("b@1.0.0", [RawNode.stub("a@1.0.0")], "bold"),
        ]
    )
    builder = DependencyGraphBuilder()

    builder.add_dependencies(handler, PROJECT, "dependencies", select_declared(resolved, handler.context.installed))

    assert set(builder.graph.edges) == {
        ("NPM::a:1.0.0", "NPM::b:1.0.0"),
        ("NPM::b:1.0.0", "NPM::a:1.0.0"),
    }
    assert builder.scope_dependencies(PROJECT, "dependencies") == ["NPM::a:1.0.0", "NPM::b:1.0.0"]
    assert len(builder.packages()) == 2

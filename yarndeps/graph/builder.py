"""Generic dependency graph assembly.

Package manager specific knowledge lives in a ``DependencyHandler``; the
builder only walks dependencies through it, records one node per
identifier and one edge per dependency relation, and collects packages and
issues along the way.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, List, Optional, Set, TypeVar

import networkx as nx

from yarndeps.graph.identifiers import Identifier, Issue, Package, PackageLinkage

logger = logging.getLogger("yarndeps.graph.builder")

T = TypeVar("T")


class DependencyHandler(ABC, Generic[T]):
    """Bridge between a package manager's dependency model and the builder."""

    NAME: str = "base"

    @abstractmethod
    def identifier_for(self, dependency: T) -> Identifier:
        """Return the identifier of a dependency."""
        raise NotImplementedError

    @abstractmethod
    def dependencies_for(self, dependency: T) -> List[T]:
        """Return the direct dependencies of a dependency."""
        raise NotImplementedError

    @abstractmethod
    def linkage_for(self, dependency: T) -> PackageLinkage:
        """Return how a dependency is linked to its dependent."""
        raise NotImplementedError

    @abstractmethod
    def create_package(self, dependency: T, issues: List[Issue]) -> Optional[Package]:
        """Create the package record of a dependency.

        Args:
            dependency: The dependency.
            issues: Collection that problems are appended to.

        Returns:
            Optional[Package]: The package, or None if none can be created.
        """
        raise NotImplementedError


class DependencyGraphBuilder:
    """Assemble the dependency graph of one or more projects.

    Nodes are keyed by identifier coordinates. Edges are collected from
    every occurrence of a dependency, while a package reachable along many
    paths costs one ``create_package`` call.
    """

    def __init__(self) -> None:
        self._graph = nx.DiGraph()
        self._packages: Dict[str, Package] = {}
        self._scopes: Dict[str, List[str]] = {}
        self._issues: List[Issue] = []
        self._processed: Set[str] = set()

    @staticmethod
    def scope_key(project_id: str, scope: str) -> str:
        return f"{project_id}:{scope}"

    def add_dependencies(
        self,
        handler: DependencyHandler[T],
        project_id: str,
        scope: str,
        dependencies: Iterable[T],
    ) -> None:
        """Add the direct dependencies of a project scope and everything below.

        Args:
            handler: Handler that understands the dependency objects.
            project_id: Identifier string of the project.
            scope: Scope name, e.g. ``dependencies``.
            dependencies: Direct dependencies of the scope.
        """
        roots = self._scopes.setdefault(self.scope_key(project_id, scope), [])

        for dependency in dependencies:
            node_id = self._add_tree(handler, dependency)
            if node_id not in roots:
                roots.append(node_id)

        logger.debug(
            "Scope %s of %s has %d direct dependencies", scope, project_id, len(roots)
        )

    def _add_tree(self, handler: DependencyHandler[T], root: T) -> str:
        root_id = str(handler.identifier_for(root))
        stack = [root]

        # Occurrences of one identifier differ after cycle cutting; the graph
        # holds the union of their edges.
        while stack:
            dependency = stack.pop()
            node_id = str(handler.identifier_for(dependency))
            if node_id not in self._processed:
                self._processed.add(node_id)
                self._add_node(handler, dependency, node_id)

            for child in handler.dependencies_for(dependency):
                child_id = str(handler.identifier_for(child))
                self._graph.add_edge(
                    node_id, child_id, linkage=handler.linkage_for(child).value
                )
                stack.append(child)

        return root_id

    def _add_node(self, handler: DependencyHandler[T], dependency: T, node_id: str) -> None:
        issues: List[Issue] = []
        package = handler.create_package(dependency, issues)

        if package is None:
            issues.append(
                Issue(source=handler.NAME, message=f"Could not create package for '{node_id}'.")
            )
            self._graph.add_node(node_id, resolved=False)
        else:
            self._packages[node_id] = package
            attributes = package.to_dict()
            attributes.pop("id")
            self._graph.add_node(node_id, resolved=True, **attributes)

        if issues:
            self._graph.nodes[node_id]["issues"] = [issue.to_dict() for issue in issues]
            self._issues.extend(issues)

    @property
    def graph(self) -> nx.DiGraph:
        return self._graph

    @property
    def issues(self) -> List[Issue]:
        return list(self._issues)

    def packages(self) -> Set[Package]:
        return set(self._packages.values())

    def scope_dependencies(self, project_id: str, scope: str) -> List[str]:
        """Return the direct dependency ids recorded for a project scope."""
        return list(self._scopes.get(self.scope_key(project_id, scope), []))

    def to_dict(self) -> Dict[str, Any]:
        """Return the graph as node-link data plus the scope roots."""
        data = nx.readwrite.json_graph.node_link_data(self._graph, edges="edges")
        data["scopes"] = {key: list(roots) for key, roots in self._scopes.items()}
        data["issues"] = [issue.to_dict() for issue in self._issues]
        return data


__all__ = ["DependencyGraphBuilder", "DependencyHandler"]

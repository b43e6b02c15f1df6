"""Dependency graph assembly."""

from yarndeps.graph.builder import DependencyGraphBuilder, DependencyHandler
from yarndeps.graph.identifiers import Identifier, Issue, Package, PackageLinkage, Severity

__all__ = [
    "DependencyGraphBuilder",
    "DependencyHandler",
    "Identifier",
    "Issue",
    "Package",
    "PackageLinkage",
    "Severity",
]

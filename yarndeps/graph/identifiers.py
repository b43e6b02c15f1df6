"""Identifiers and records exchanged between handlers and the graph builder."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple


@dataclass(frozen=True, order=True)
class Identifier:
    """Coordinates of a package: type, namespace, name and version."""

    type: str
    namespace: str
    name: str
    version: str

    def to_coordinates(self) -> str:
        return f"{self.type}:{self.namespace}:{self.name}:{self.version}"

    def __str__(self) -> str:
        return self.to_coordinates()


class PackageLinkage(Enum):
    """How a dependency is attached to its dependent."""

    DYNAMIC = "dynamic"
    STATIC = "static"
    PROJECT_DYNAMIC = "project_dynamic"
    PROJECT_STATIC = "project_static"


class Severity(Enum):
    HINT = "hint"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Issue:
    """A problem found while assembling the graph."""

    source: str
    message: str
    severity: Severity = Severity.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "message": self.message, "severity": self.severity.value}


@dataclass(frozen=True)
class Package:
    """Metadata of one package version."""

    id: Identifier
    declared_licenses: Tuple[str, ...] = ()
    authors: Tuple[str, ...] = ()
    description: str = ""
    homepage_url: str = ""
    download_url: str = ""
    hash: str = ""
    vcs_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "declared_licenses": list(self.declared_licenses),
            "authors": list(self.authors),
            "description": self.description,
            "homepage_url": self.homepage_url,
            "download_url": self.download_url,
            "hash": self.hash,
            "vcs_url": self.vcs_url,
        }


__all__ = ["Identifier", "Issue", "Package", "PackageLinkage", "Severity"]

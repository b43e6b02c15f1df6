"""Dependency handler exposing reconstructed Yarn trees to the graph builder."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional

from yarndeps.graph import DependencyHandler, Identifier, Issue, Package, PackageLinkage, Severity
from yarndeps.parsers.base import RecoverableError
from yarndeps.parsers.yarn.dedup import ResolvedNode
from yarndeps.parsers.yarn.info import YarnInfoFetcher
from yarndeps.parsers.yarn.package_json import PackageJson

logger = logging.getLogger("yarndeps.parsers.yarn.handler")

IDENTIFIER_TYPE = "NPM"


def is_incomplete(package_json: PackageJson) -> bool:
    """Whether a local manifest lacks fields that remote metadata can supply."""
    return not (
        package_json.description
        and package_json.homepage
        and package_json.resolved
        and package_json.integrity
        and package_json.vcs_url()
    )


@dataclass(frozen=True)
class ProjectContext:
    """Per-project state a handler reads while the graph is assembled.

    Attributes:
        working_dir: Directory of the project's package.json.
        installed: Installed manifests keyed by ``name@version``.
    """

    working_dir: Path
    installed: Mapping[str, PackageJson] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "installed", MappingProxyType(dict(self.installed)))


class YarnDependencyHandler(DependencyHandler[ResolvedNode]):
    """Handler for the nodes produced by ``undo_deduplication``.

    A handler is bound to one project's context. Resolve another project
    with a new handler; the remote metadata fetcher can be shared.
    """

    NAME = "Yarn"

    def __init__(self, context: ProjectContext, fetcher: Optional[YarnInfoFetcher] = None) -> None:
        self.context = context
        self.fetcher = fetcher

    def identifier_for(self, dependency: ResolvedNode) -> Identifier:
        namespace, _, name = dependency.name.rpartition("/")
        return Identifier(
            type=IDENTIFIER_TYPE,
            namespace=namespace,
            name=name,
            version=dependency.version,
        )

    def dependencies_for(self, dependency: ResolvedNode) -> List[ResolvedNode]:
        # Unmet optional or platform specific dependencies are listed by Yarn
        # but never materialized on disk.
        return [child for child in dependency.children if str(child.id) in self.context.installed]

    def linkage_for(self, dependency: ResolvedNode) -> PackageLinkage:
        return PackageLinkage.DYNAMIC

    def needs_remote_metadata(self, dependency: ResolvedNode) -> bool:
        """Whether building the package of an installed dependency consults the fetcher."""
        package_json = self.context.installed.get(str(dependency.id))
        return package_json is not None and is_incomplete(package_json)

    def create_package(self, dependency: ResolvedNode, issues: List[Issue]) -> Optional[Package]:
        package_json = self.context.installed.get(str(dependency.id))
        if package_json is None:
            return None

        return self._build_package(dependency, package_json, issues)

    def _build_package(
        self, dependency: ResolvedNode, package_json: PackageJson, issues: List[Issue]
    ) -> Package:
        description = package_json.description
        homepage_url = package_json.homepage
        download_url = package_json.resolved
        hash_value = package_json.integrity
        vcs_url = package_json.vcs_url()
        declared_licenses = package_json.declared_licenses()
        authors = package_json.authors()

        if self.fetcher is not None and is_incomplete(package_json):
            remote = self._fetch_remote(dependency.name, issues)
            if remote is not None:
                description = description or remote.description
                homepage_url = homepage_url or remote.homepage
                vcs_url = vcs_url or remote.vcs_url()
                declared_licenses = declared_licenses or remote.declared_licenses()
                authors = authors or remote.authors()

                # Remote metadata describes the latest release; its artifact
                # is only valid for the same version.
                if remote.dist is not None and remote.version == dependency.version:
                    download_url = download_url or remote.dist.tarball
                    hash_value = hash_value or remote.dist.shasum

        return Package(
            id=self.identifier_for(dependency),
            declared_licenses=tuple(declared_licenses),
            authors=tuple(authors),
            description=description,
            homepage_url=homepage_url,
            download_url=download_url,
            hash=hash_value,
            vcs_url=vcs_url,
        )

    def _fetch_remote(self, name: str, issues: List[Issue]) -> Optional[PackageJson]:
        try:
            return self.fetcher.fetch(name)
        except RecoverableError as e:
            logger.warning("Could not fetch remote metadata for %s: %s", name, e)
            issues.append(
                Issue(
                    source=self.NAME,
                    message=f"Could not fetch remote metadata for '{name}': {e}",
                    severity=Severity.WARNING,
                )
            )
            return None


__all__ = ["IDENTIFIER_TYPE", "ProjectContext", "YarnDependencyHandler", "is_incomplete"]

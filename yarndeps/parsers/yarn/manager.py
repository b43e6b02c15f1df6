"""The Yarn Classic package manager integration.

For each project the dependencies are installed, every manifest below
``node_modules`` is indexed, and for each scope the deduplicated
``yarn list --json`` tree is reconstructed, filtered to the declared
dependencies and handed to the graph builder.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from packaging.version import InvalidVersion, Version

from yarndeps.config.schema import YarnConfig
from yarndeps.graph import DependencyGraphBuilder, Identifier, Issue
from yarndeps.parsers.base import CommandError, MalformedListingError, RecoverableError
from yarndeps.parsers.yarn.dedup import ResolvedNode, select_declared, undo_deduplication
from yarndeps.parsers.yarn.handler import ProjectContext, YarnDependencyHandler
from yarndeps.parsers.yarn.info import YarnInfoFetcher
from yarndeps.parsers.yarn.list_model import RawNode, parse_yarn_list
from yarndeps.parsers.yarn.package_json import (
    MANIFEST_FILE,
    get_installed_modules,
    parse_package_json,
)
from yarndeps.storage import DiskCache
from yarndeps.utils.process import ProcessResult, executable_name, run_command

logger = logging.getLogger("yarndeps.parsers.yarn.manager")

SCOPE_OPTIONS = {
    "dependencies": "--prod",
    "devDependencies": "--dev",
}

# Results are only consistent within one line of Yarn Classic releases.
MIN_VERSION = Version("1.3.0")
MAX_VERSION_EXCLUSIVE = Version("1.23.0")


class YarnCommand:
    """Runs the Yarn executable."""

    def __init__(self, command: str = "yarn", timeout: Optional[float] = None) -> None:
        self.command = executable_name(command)
        self.timeout = timeout

    def run(self, working_dir: Optional[Path], *args: str, check: bool = True) -> ProcessResult:
        return run_command(
            [self.command, *args], cwd=working_dir, timeout=self.timeout, check=check
        )

    def version(self) -> str:
        return self.run(None, "--version").stdout.strip()


def check_version(version_text: str) -> Version:
    """Verify that a Yarn version is a supported Yarn Classic release.

    Args:
        version_text: Output of ``yarn --version``.

    Returns:
        Version: The parsed version.

    Raises:
        CommandError: If the version is unparseable or unsupported.
    """
    try:
        version = Version(version_text.strip())
    except InvalidVersion as e:
        raise CommandError(f"Cannot parse Yarn version '{version_text.strip()}'") from e

    if not MIN_VERSION <= version < MAX_VERSION_EXCLUSIVE:
        raise CommandError(
            f"Unsupported Yarn version {version}; "
            f"required is >= {MIN_VERSION} and < {MAX_VERSION_EXCLUSIVE}"
        )
    return version


@dataclass
class ProjectResult:
    """Outcome of resolving one project.

    Attributes:
        definition_file: The project's package.json.
        project_id: Identifier of the project, None if it could not be read.
        scope_names: Scopes whose dependencies were added to the graph.
        issues: Problems that prevented a complete resolution.
    """

    definition_file: Path
    project_id: Optional[Identifier] = None
    scope_names: List[str] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)


class Yarn:
    """Resolve Yarn Classic projects into a dependency graph."""

    NAME = "Yarn"

    def __init__(
        self,
        config: Optional[YarnConfig] = None,
        command: Optional[YarnCommand] = None,
        cache: Optional[DiskCache] = None,
        graph_builder: Optional[DependencyGraphBuilder] = None,
    ) -> None:
        """Initialize the package manager.

        Args:
            config: Yarn configuration, defaults if omitted.
            command: Runner of the Yarn executable.
            cache: Cache for remote package metadata; no caching if omitted.
            graph_builder: Builder receiving the dependencies of all projects.
        """
        self.config = config or YarnConfig()
        self.command = command or YarnCommand(self.config.command, self.config.command_timeout)
        self.cache = cache
        self.graph_builder = graph_builder or DependencyGraphBuilder()

    def before_resolution(self) -> None:
        """Verify the Yarn version once before any project is resolved."""
        if self.config.check_version:
            version = check_version(self.command.version())
            logger.info("Using Yarn %s", version)

    def resolve_projects(self, definition_files: Iterable[Path]) -> List[ProjectResult]:
        """Resolve several projects, recording failures per project.

        Args:
            definition_files: package.json files of the projects.

        Returns:
            List[ProjectResult]: One result per definition file.
        """
        self.before_resolution()

        results = []
        for definition_file in definition_files:
            try:
                results.append(self.resolve_dependencies(definition_file))
            except (MalformedListingError, RecoverableError) as e:
                logger.error("Resolving %s failed: %s", definition_file, e)
                results.append(
                    ProjectResult(
                        definition_file=Path(definition_file),
                        issues=[Issue(source=self.NAME, message=str(e))],
                    )
                )
        return results

    def resolve_dependencies(self, definition_file: Path) -> ProjectResult:
        """Resolve the dependencies of one project.

        Args:
            definition_file: The project's package.json.

        Returns:
            ProjectResult: The project's identifier and scopes.

        Raises:
            MalformedListingError: If a dependency listing is unusable.
            RecoverableError: If running Yarn or reading the project fails.
        """
        definition_file = Path(definition_file)
        working_dir = definition_file.parent
        logger.info("Resolving Yarn dependencies of %s", definition_file)

        if self.config.install:
            self.command.run(working_dir, "install", *self.config.install_args)

        installed = get_installed_modules(working_dir)
        project_id = self._project_id(definition_file)

        context = ProjectContext(working_dir=working_dir, installed=installed)
        fetcher = YarnInfoFetcher(partial(self._run_info, working_dir), self.cache)
        handler = YarnDependencyHandler(context, fetcher)

        result = ProjectResult(definition_file=definition_file, project_id=project_id)
        for scope in self.config.scopes:
            dependencies = self.resolve_scope(working_dir, scope, installed.keys())

            if self.config.prefetch_workers:
                names = [
                    node.name
                    for root in dependencies
                    for node in root.walk()
                    if handler.needs_remote_metadata(node)
                ]
                fetcher.prefetch(names, self.config.prefetch_workers)

            self.graph_builder.add_dependencies(handler, str(project_id), scope, dependencies)
            result.scope_names.append(scope)

        return result

    def resolve_scope(
        self, working_dir: Path, scope: str, installed_ids: Iterable[str]
    ) -> List[ResolvedNode]:
        """Return the declared dependencies of a scope with their full subtrees."""
        roots = self.list_modules(working_dir, scope)
        resolved = undo_deduplication(roots)
        declared = select_declared(resolved, set(installed_ids), self.config.direct_marker)
        logger.info(
            "Scope %s: %d top-level entries, %d declared", scope, len(resolved), len(declared)
        )
        return declared

    def list_modules(self, working_dir: Path, scope: str) -> List[RawNode]:
        option = SCOPE_OPTIONS[scope]
        stdout = self.command.run(working_dir, "list", "--json", option).stdout
        return parse_yarn_list(stdout)

    def _run_info(self, working_dir: Path, package_name: str) -> Tuple[str, str]:
        process = self.command.run(working_dir, "info", "--json", package_name, check=False)
        return process.stdout, process.stderr

    def _project_id(self, definition_file: Path) -> Identifier:
        package_json = parse_package_json(definition_file)
        name = package_json.name or definition_file.parent.name
        namespace, _, local_name = name.rpartition("/")
        return Identifier(
            type=self.NAME,
            namespace=namespace,
            name=local_name,
            version=package_json.version,
        )


def find_definition_files(root: Path, exclude: Sequence[str] = ("node_modules",)) -> List[Path]:
    """Find project manifests below a directory, skipping installed modules."""
    root = Path(root)
    return sorted(
        path
        for path in root.rglob(MANIFEST_FILE)
        if not any(part in exclude for part in path.relative_to(root).parts)
    )


__all__ = [
    "ProjectResult",
    "SCOPE_OPTIONS",
    "Yarn",
    "YarnCommand",
    "check_version",
    "find_definition_files",
]

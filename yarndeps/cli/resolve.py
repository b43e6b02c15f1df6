"""Resolve command implementation."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from yarndeps.config import AnalyzerConfig, load_config
from yarndeps.parsers.base import MalformedListingError, RecoverableError
from yarndeps.parsers.yarn.manager import Yarn, find_definition_files
from yarndeps.parsers.yarn.package_json import MANIFEST_FILE
from yarndeps.storage import DiskCache

logger = logging.getLogger("yarndeps.cli.resolve")


def _apply_overrides(config: AnalyzerConfig, args) -> AnalyzerConfig:
    data = config.to_dict()
    if args.no_install:
        data["yarn"]["install"] = False
    if args.no_cache:
        data["cache"]["enabled"] = False
    if args.cache_dir:
        data["cache"]["directory"] = args.cache_dir
    return AnalyzerConfig.from_dict(data)


def create_cache(config: AnalyzerConfig) -> Optional[DiskCache]:
    if not config.cache.enabled:
        return None
    return DiskCache(
        directory=config.cache.directory,
        max_size_bytes=config.cache.max_size_bytes,
        max_age_seconds=config.cache.max_age_seconds,
    )


def resolve_command(args, console: Optional[Console] = None) -> int:
    """Execute resolve command.

    Args:
        args: Parsed command-line arguments.
        console: Console to print to.

    Returns:
        int: Exit code.
    """
    console = console or Console()

    try:
        config = _apply_overrides(load_config(args.config), args)
    except (ValidationError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    project_dir = Path(args.project)
    if args.recursive:
        definition_files = find_definition_files(project_dir)
    else:
        definition_files = [project_dir / MANIFEST_FILE]
    if not definition_files or not definition_files[0].is_file():
        logger.error("No %s found in %s", MANIFEST_FILE, args.project)
        return 1

    cache = create_cache(config)
    yarn = Yarn(config.yarn, cache=cache)
    try:
        if len(definition_files) == 1:
            yarn.before_resolution()
            results = [yarn.resolve_dependencies(definition_files[0])]
        else:
            results = yarn.resolve_projects(definition_files)
    except (MalformedListingError, RecoverableError) as e:
        logger.error("Resolving %s failed: %s", definition_files[0], e)
        return 2
    finally:
        if cache is not None:
            cache.close_all()

    resolved = [result for result in results if result.project_id is not None]
    failed = [result for result in results if result.project_id is None]

    builder = yarn.graph_builder
    data = builder.to_dict()
    data["projects"] = [str(result.project_id) for result in resolved]
    if len(resolved) == 1 and not failed:
        data["project"] = str(resolved[0].project_id)

    if args.output:
        output = Path(args.output)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Graph written to %s", output)

    table = Table(title=f"Dependencies of {project_dir}")
    table.add_column("Project")
    table.add_column("Scope")
    table.add_column("Direct", justify="right")
    for result in resolved:
        project_id = str(result.project_id)
        for scope in result.scope_names:
            table.add_row(project_id, scope, str(len(builder.scope_dependencies(project_id, scope))))
    for result in failed:
        table.add_row(str(result.definition_file), "-", "failed")
    console.print(table)
    console.print(
        f"{builder.graph.number_of_nodes()} packages, "
        f"{builder.graph.number_of_edges()} edges, {len(builder.issues)} issues"
    )

    return 2 if failed else 0

"""Yarn Classic ecosystem parser package.

This package reconstructs dependency trees from Yarn Classic projects:
- Parsing of the deduplicated ``yarn list --json`` output
- Undoing the deduplication with cycle-safe reconstruction
- Remote metadata lookup via ``yarn info --json`` backed by a disk cache
- A dependency handler feeding the generic graph builder
"""

from yarndeps.parsers.yarn.dedup import (
    ModuleId,
    ResolvedNode,
    build_replacement_index,
    select_declared,
    undo_deduplication,
)
from yarndeps.parsers.yarn.handler import ProjectContext, YarnDependencyHandler
from yarndeps.parsers.yarn.info import YarnInfoFetcher, parse_yarn_info
from yarndeps.parsers.yarn.list_model import ChildState, RawNode, parse_yarn_list
from yarndeps.parsers.yarn.manager import ProjectResult, Yarn, YarnCommand
from yarndeps.parsers.yarn.package_json import PackageJson, get_installed_modules

__all__ = [
    "ChildState",
    "ModuleId",
    "PackageJson",
    "ProjectContext",
    "ProjectResult",
    "RawNode",
    "ResolvedNode",
    "Yarn",
    "YarnCommand",
    "YarnDependencyHandler",
    "YarnInfoFetcher",
    "build_replacement_index",
    "get_installed_modules",
    "parse_yarn_info",
    "parse_yarn_list",
    "select_declared",
    "undo_deduplication",
]

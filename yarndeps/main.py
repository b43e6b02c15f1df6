"""Main CLI entry point for yarndeps.

Provides commands: tree, resolve
"""

import argparse
import logging
import sys
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from yarndeps import __version__
from yarndeps.cli.resolve import resolve_command
from yarndeps.cli.tree import tree_command

logger = logging.getLogger("yarndeps.cli")


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        console: Rich Console instance for coordinated output (optional).
    """
    level = logging.DEBUG if verbose else logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )

    logging.basicConfig(
        level=level,
        format="[%(name)s] [%(levelname)s] %(message)s",
        handlers=[handler],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yarndeps",
        description="Yarndeps - Yarn Classic dependency tree reconstruction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-c",
        "--config",
        help=(
            "Optional configuration. Can be a path to a TOML/JSON file or an "
            "inline TOML/JSON string. When omitted, built-in defaults are used."
        ),
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    tree_parser = subparsers.add_parser(
        "tree",
        help="Reconstruct the full tree from saved `yarn list --json` output",
    )
    tree_parser.add_argument(
        "listing",
        help="File with the listing output, or - to read from stdin",
    )
    tree_parser.add_argument(
        "--declared-only",
        action="store_true",
        help="Only show top-level entries marked as directly declared",
    )
    tree_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the reconstructed tree as JSON",
    )

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Run Yarn in a project and build its dependency graph",
    )
    resolve_parser.add_argument(
        "project",
        help="Project directory containing package.json",
    )
    resolve_parser.add_argument(
        "-o",
        "--output",
        help="Write the graph as JSON to this file",
    )
    resolve_parser.add_argument(
        "--no-install",
        action="store_true",
        help="Skip `yarn install`; node_modules must already be populated",
    )
    resolve_parser.add_argument(
        "--cache-dir",
        help="Directory of the remote metadata cache (overrides the configuration)",
    )
    resolve_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Do not persist remote metadata",
    )
    resolve_parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Resolve every package.json below PROJECT outside node_modules",
    )

    return parser


def main() -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code.
    """
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(args.verbose)

    if args.command == "tree":
        return tree_command(args)
    elif args.command == "resolve":
        return resolve_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())

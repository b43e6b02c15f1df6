"""Tree command implementation.

Reconstructs the full dependency tree from saved ``yarn list --json``
output without running Yarn.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from rich.console import Console
from rich.tree import Tree

from yarndeps.config import load_config
from yarndeps.parsers.base import MalformedListingError
from yarndeps.parsers.yarn.dedup import ResolvedNode, undo_deduplication
from yarndeps.parsers.yarn.list_model import parse_yarn_list

logger = logging.getLogger("yarndeps.cli.tree")


def node_to_dict(node: ResolvedNode) -> Dict[str, Any]:
    """Convert a resolved node to nested plain data, iteratively."""
    root: Dict[str, Any] = {"id": str(node.id), "children": []}
    stack = [(node, root)]
    while stack:
        current, data = stack.pop()
        for child in current.children:
            child_data = {"id": str(child.id), "children": []}
            data["children"].append(child_data)
            stack.append((child, child_data))
    return root


def render_tree(label: str, nodes: List[ResolvedNode], direct_marker: str) -> Tree:
    """Build a rich Tree of the reconstructed forest."""
    tree = Tree(label)
    stack = [(node, tree) for node in reversed(nodes)]
    while stack:
        node, parent = stack.pop()
        style = "bold" if node.marker == direct_marker else ""
        branch = parent.add(str(node.id), style=style)
        stack.extend((child, branch) for child in reversed(node.children))
    return tree


def tree_command(args, console: Optional[Console] = None) -> int:
    """Execute tree command.

    Args:
        args: Parsed command-line arguments.
        console: Console to print to.

    Returns:
        int: Exit code.
    """
    console = console or Console()
    try:
        config = load_config(args.config)
    except (ValidationError, ValueError) as e:
        logger.error("Invalid configuration: %s", e)
        return 1
    direct_marker = config.yarn.direct_marker

    if args.listing == "-":
        text = sys.stdin.read()
        label = "<stdin>"
    else:
        path = Path(args.listing)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Cannot read listing %s: %s", path, e)
            return 1
        label = path.name

    try:
        resolved = undo_deduplication(parse_yarn_list(text))
    except MalformedListingError as e:
        logger.error("Malformed dependency listing: %s", e)
        return 2

    if args.declared_only:
        resolved = [node for node in resolved if node.marker == direct_marker]

    if args.json:
        console.print_json(json.dumps([node_to_dict(node) for node in resolved]))
    else:
        console.print(render_tree(label, resolved, direct_marker))

    return 0

"""Load the analyzer configuration from TOML/JSON sources.

Accepted sources:

* None -> default AnalyzerConfig
* dict -> AnalyzerConfig.from_dict
* Path / path-like string -> .toml/.json file
* Inline JSON/TOML strings
"""

from __future__ import annotations

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, Union

from yarndeps.config.schema import AnalyzerConfig

logger = logging.getLogger("yarndeps.config.loader")

ConfigSource = Union[str, Path, Dict[str, Any], None]


def _detect_format(text: str) -> str:
    return "json" if text.lstrip().startswith(("{", "[")) else "toml"


def load_config(source: ConfigSource) -> AnalyzerConfig:
    """Load AnalyzerConfig from a configuration source.

    Args:
        source: None, a parsed mapping, a path to a .toml/.json file, or an
            inline TOML/JSON string.

    Returns:
        AnalyzerConfig instance.

    Raises:
        ValueError: If the source does not contain a mapping.
        pydantic.ValidationError: If a value is invalid.
    """
    if source is None:
        logger.debug("No config source provided; using defaults")
        return AnalyzerConfig.default()

    if isinstance(source, dict):
        return AnalyzerConfig.from_dict(source)

    if not isinstance(source, (str, Path)):
        raise TypeError(f"Unsupported config source type: {type(source)!r}")

    path = Path(source)
    if path.is_file():
        text = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()
        if suffix in {".toml", ".tml"}:
            fmt = "toml"
        elif suffix == ".json":
            fmt = "json"
        else:
            fmt = _detect_format(text)
        logger.info("Loading configuration from file: %s (fmt=%s)", path, fmt)
    else:
        text = str(source)
        fmt = _detect_format(text)
        logger.info("Loading configuration from inline %s string", fmt)

    data = json.loads(text) if fmt == "json" else tomllib.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Top-level configuration must be a mapping")

    return AnalyzerConfig.from_dict(data)


__all__ = ["ConfigSource", "load_config"]

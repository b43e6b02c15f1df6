"""Model of the package.json manifest fields used during resolution.

Manifests come from two places: files installed below ``node_modules`` and
the ``inspect`` payload of ``yarn info --json``. Both are validated into the
same ``PackageJson`` model; unknown keys are ignored.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from yarndeps.parsers.base import ManifestError

logger = logging.getLogger("yarndeps.parsers.yarn.package_json")

MANIFEST_FILE = "package.json"
INSTALL_ROOT = "node_modules"


class Dist(BaseModel):
    """Published artifact of a package version."""

    model_config = ConfigDict(extra="ignore")

    tarball: str = ""
    shasum: str = ""


class PackageJson(BaseModel):
    """Subset of package.json relevant for dependency analysis."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = ""
    version: str = ""
    description: str = ""
    homepage: str = ""
    license: Any = None
    licenses: Any = None
    author: Any = None
    repository: Any = None
    dist: Optional[Dist] = None
    resolved: str = Field(default="", alias="_resolved")
    integrity: str = Field(default="", alias="_integrity")
    dependencies: Dict[str, str] = Field(default_factory=dict)

    @field_validator("name", "version", "description", "homepage", "resolved", "integrity", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, list):
            # Some registries publish e.g. several homepages; keep the first.
            return str(v[0]) if v else ""
        return str(v)

    @field_validator("dependencies", mode="before")
    @classmethod
    def _coerce_dependencies(cls, v: Any) -> Dict[str, str]:
        if not isinstance(v, dict):
            return {}
        return {str(k): str(spec) for k, spec in v.items()}

    @property
    def module_id(self) -> str:
        return f"{self.name}@{self.version}"

    def declared_licenses(self) -> List[str]:
        """Return the license identifiers declared in the manifest.

        Handles the current ``license`` string, the legacy object form
        ``{"type": ...}`` and the deprecated ``licenses`` array.
        """
        result: List[str] = []
        for entry in (self.license, self.licenses):
            items = entry if isinstance(entry, list) else [entry]
            for item in items:
                if isinstance(item, dict):
                    item = item.get("type")
                if isinstance(item, str) and item.strip():
                    result.append(item.strip())
        return list(dict.fromkeys(result))

    def authors(self) -> List[str]:
        """Return author names; the ``Name <mail> (url)`` form is reduced to the name."""
        author = self.author
        if isinstance(author, dict):
            author = author.get("name")
        if not isinstance(author, str):
            return []
        name = author.split("<", 1)[0].split("(", 1)[0].strip()
        return [name] if name else []

    def vcs_url(self) -> str:
        repository = self.repository
        if isinstance(repository, dict):
            repository = repository.get("url")
        return repository.strip() if isinstance(repository, str) else ""

    def to_json(self) -> str:
        """Serialize to the JSON text stored in the metadata cache."""
        return self.model_dump_json(by_alias=True, exclude_defaults=True)

    @classmethod
    def from_json(cls, text: str) -> "PackageJson":
        """Parse serialized manifest text.

        Raises:
            ManifestError: If the text is not a valid manifest object.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Invalid manifest JSON: {e}") from e
        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Any) -> "PackageJson":
        if not isinstance(data, dict):
            raise ManifestError(f"Manifest must be a JSON object, got {type(data).__name__}")
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ManifestError(f"Invalid manifest: {e}") from e


def parse_package_json(path: Path) -> PackageJson:
    """Parse a package.json file.

    Args:
        path: Path to the manifest.

    Returns:
        PackageJson: The parsed manifest.

    Raises:
        ManifestError: If the file cannot be read or is malformed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(f"Cannot read {path}: {e}") from e

    try:
        return PackageJson.from_json(text)
    except ManifestError as e:
        raise ManifestError(f"{path}: {e}") from e


def get_installed_modules(working_dir: Path) -> Dict[str, PackageJson]:
    """Index every manifest installed below ``<working_dir>/node_modules``.

    Args:
        working_dir: Project directory.

    Returns:
        Dict[str, PackageJson]: Manifests keyed by ``name@version``.
    """
    install_root = Path(working_dir) / INSTALL_ROOT
    installed: Dict[str, PackageJson] = {}

    if not install_root.is_dir():
        logger.debug("No %s directory in %s", INSTALL_ROOT, working_dir)
        return installed

    for dirpath, dirnames, filenames in os.walk(install_root):
        dirnames.sort()
        if MANIFEST_FILE not in filenames:
            continue

        manifest_path = Path(dirpath) / MANIFEST_FILE
        try:
            package_json = parse_package_json(manifest_path)
        except ManifestError as e:
            logger.debug("Skipping installed manifest: %s", e)
            continue

        # Test fixtures and nested build output also ship manifests without
        # a name or version; they are not installed modules.
        if not package_json.name or not package_json.version:
            continue

        installed.setdefault(package_json.module_id, package_json)

    logger.info("Found %d installed module(s) in %s", len(installed), install_root)
    return installed


__all__ = [
    "Dist",
    "PackageJson",
    "get_installed_modules",
    "parse_package_json",
]

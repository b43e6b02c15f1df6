"""Configuration schema definitions using Pydantic for validation.

Configuration errors are caught when the configuration is loaded, with
messages naming the offending field.
"""

from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator

MEBIBYTE = 1024 * 1024
DAY_SECONDS = 24 * 60 * 60

KNOWN_SCOPES = ("dependencies", "devDependencies")


def default_cache_dir() -> Path:
    return Path.home() / ".yarndeps" / "cache" / "analyzer" / "yarn" / "info"


class MetadataCacheConfig(BaseModel):
    """Configuration of the remote metadata cache.

    Attributes:
        enabled: Whether fetched metadata is persisted at all.
        directory: Directory holding the cache database.
        max_size_bytes: Capacity of the cache.
        max_age_seconds: Age after which entries read as absent.
    """

    enabled: bool = True
    directory: Path = Field(default_factory=default_cache_dir)
    max_size_bytes: int = Field(default=100 * MEBIBYTE, ge=1)
    max_age_seconds: int = Field(default=7 * DAY_SECONDS, ge=1)

    model_config = {"extra": "forbid"}

    @field_validator("directory", mode="before")
    @classmethod
    def expand_directory(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class YarnConfig(BaseModel):
    """Configuration of the Yarn package manager integration.

    Attributes:
        command: Name or path of the Yarn executable.
        install: Whether dependencies are installed before listing.
        install_args: Extra arguments for ``yarn install``.
        scopes: Dependency scopes to list.
        direct_marker: Listing color that marks direct dependencies.
        command_timeout: Timeout for a single Yarn invocation (seconds).
        check_version: Whether the Yarn version is verified first.
        prefetch_workers: Threads used to prefetch remote metadata, 0 disables it.
    """

    command: str = "yarn"
    install: bool = True
    install_args: List[str] = Field(
        default_factory=lambda: ["--ignore-scripts", "--ignore-engines", "--immutable"]
    )
    scopes: List[str] = Field(default_factory=lambda: list(KNOWN_SCOPES))
    direct_marker: str = "bold"
    command_timeout: float = Field(default=600.0, ge=1.0, le=7200.0)
    check_version: bool = True
    prefetch_workers: int = Field(default=0, ge=0, le=32)

    model_config = {"extra": "forbid"}

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: List[str]) -> List[str]:
        """Validate that scopes are known Yarn dependency scopes."""
        if not v:
            raise ValueError("scopes must contain at least one scope")
        for scope in v:
            if scope not in KNOWN_SCOPES:
                raise ValueError(f"Invalid scope '{scope}'. Valid scopes: {KNOWN_SCOPES}")
        return list(dict.fromkeys(v))


class AnalyzerConfig(BaseModel):
    """Top-level configuration.

    Attributes:
        yarn: Yarn integration configuration.
        cache: Remote metadata cache configuration.
    """

    yarn: YarnConfig = Field(default_factory=YarnConfig)
    cache: MetadataCacheConfig = Field(default_factory=MetadataCacheConfig)

    model_config = {"extra": "forbid"}

    @classmethod
    def default(cls) -> "AnalyzerConfig":
        return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalyzerConfig":
        """Create configuration from dictionary.

        Raises:
            ValidationError: If configuration is invalid.
        """
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

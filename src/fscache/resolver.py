"""Bin directory configuration."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import dotenv_values

from fscache.errors import ConfigError

ENV_DEFAULT_DIRECTORY = "FSCACHE_DIRECTORY_DEFAULT"
ENV_BIN_DIRECTORY_PREFIX = "FSCACHE_DIRECTORY_BIN_"

_ENV_UNSAFE = re.compile(r"[^A-Z0-9]")


def bin_env_name(bin: str) -> str:
    """Environment variable holding the directory override for a bin."""
    return ENV_BIN_DIRECTORY_PREFIX + _ENV_UNSAFE.sub("_", bin.upper())


@dataclass(frozen=True, slots=True)
class FileCacheSettings:
    """Where cache bins live on disk.

    Per-bin overrides take precedence; other bins get a subdirectory of
    the default directory named after the bin.

    Environment variable names can't tell "page-cache", "page_cache" and
    "Page_Cache" apart, so settings loaded by from_env() set fold_bin_names
    and an override then applies to every bin name that folds to its key.
    Explicit settings match bin names exactly.
    """

    default: Path | None = None
    bins: Mapping[str, Path] = field(default_factory=dict)
    fold_bin_names: bool = False

    def __post_init__(self) -> None:
        if self.default is not None:
            object.__setattr__(self, "default", Path(self.default))
        object.__setattr__(
            self, "bins", {name: Path(path) for name, path in self.bins.items()}
        )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        env_file: str | Path | None = None,
    ) -> FileCacheSettings:
        """Load settings from environment variables and an optional .env file.

        Variables set in the environment win over the .env file. Raises
        ConfigError if no directory is configured at all.
        """
        values: dict[str, str] = {}
        if env_file is not None and Path(env_file).exists():
            values.update(
                {k: v for k, v in dotenv_values(str(env_file)).items() if v}
            )
        values.update(os.environ if environ is None else environ)

        default = values.get(ENV_DEFAULT_DIRECTORY) or None
        bins = {
            name[len(ENV_BIN_DIRECTORY_PREFIX) :].lower(): Path(path)
            for name, path in values.items()
            if name.startswith(ENV_BIN_DIRECTORY_PREFIX)
            and len(name) > len(ENV_BIN_DIRECTORY_PREFIX)
            and path
        }
        if default is None and not bins:
            raise ConfigError(
                "No directory has been configured for the file system cache. "
                f"Set {ENV_DEFAULT_DIRECTORY} or {ENV_BIN_DIRECTORY_PREFIX}<BIN>."
            )
        return cls(
            default=Path(default) if default else None,
            bins=bins,
            fold_bin_names=True,
        )


class BinDirectoryResolver:
    """Maps bin names to directories. Never touches the file system."""

    def __init__(self, settings: FileCacheSettings) -> None:
        self._settings = settings

    @property
    def settings(self) -> FileCacheSettings:
        return self._settings

    def resolve(self, bin: str) -> Path:
        """Directory for a bin: override first, then default/bin."""
        if not bin or bin in (".", "..") or "/" in bin or "\\" in bin:
            raise ValueError(f"Invalid bin name: {bin!r}")
        override = self._settings.bins.get(bin)
        if override is None and self._settings.fold_bin_names:
            override = self._settings.bins.get(_env_bin_key(bin))
        if override is not None:
            return override
        if self._settings.default is not None:
            return self._settings.default / bin
        raise ConfigError(
            f"No path has been configured for the file system cache bin {bin!r}.",
            detail={"bin": bin},
        )


def _env_bin_key(bin: str) -> str:
    """Bin name as it appears in settings loaded from the environment."""
    return bin_env_name(bin)[len(ENV_BIN_DIRECTORY_PREFIX) :].lower()

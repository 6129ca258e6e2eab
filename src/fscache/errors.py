"""Error hierarchy for fscache."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class FileCacheError(Exception):
    """Root of the fscache error hierarchy."""

    def __init__(
        self,
        message: str,
        *,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail or {}
        if cause is not None:
            self.__cause__ = cause


class ConfigError(FileCacheError):
    """No usable directory is configured for a bin."""


class StorageError(FileCacheError):
    """The bin directory could not be created, written or locked."""

    def __init__(
        self,
        message: str,
        *,
        path: str | Path | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.path = Path(path) if path is not None else None


class SetMultipleError(StorageError):
    """One or more items of a batch write failed."""

    def __init__(self, failures: dict[str, Exception]) -> None:
        keys = ", ".join(sorted(failures))
        super().__init__(
            f"Failed to store {len(failures)} cache item(s): {keys}",
            detail={"keys": sorted(failures)},
        )
        self.failures = failures


class DecodeError(FileCacheError):
    """Stored bytes are not a readable cache record."""


__all__ = [
    "ConfigError",
    "DecodeError",
    "FileCacheError",
    "SetMultipleError",
    "StorageError",
]

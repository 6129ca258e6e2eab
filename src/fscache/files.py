"""File system helpers shared by the store and the checksum registry."""

from __future__ import annotations

import logging
import os
import time
from contextlib import suppress
from pathlib import Path
from tempfile import NamedTemporaryFile

from fscache.errors import StorageError

logger = logging.getLogger(__name__)

# Dot-prefixed names never collide with normalized item names
TEMP_PREFIX = ".tmp-"

ATOMIC_WRITE_RETRY_COUNT = 5
ATOMIC_WRITE_RETRY_DELAY = 0.05

# Mode of files made by a plain open(); NamedTemporaryFile creates 0600
DEFAULT_FILE_MODE = 0o666


def _read_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


_UMASK = _read_umask()


def ensure_directory(path: Path) -> None:
    """Create the directory if needed and verify that it is writable."""
    if not path.is_dir():
        try:
            path.mkdir(mode=0o775, parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                f"Could not create cache folder {path}", path=path, cause=e
            ) from e
        logger.debug("Created cache folder %s", path)

    if not os.access(path, os.W_OK | os.X_OK):
        raise StorageError(f"Cache folder {path} is not writable.", path=path)


def write_atomic(path: Path, data: bytes) -> None:
    """Write data to a temp file next to path, then rename it into place.

    Readers see either the previous file or the complete new one.
    """
    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            dir=path.parent, prefix=TEMP_PREFIX, delete=False
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(data)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.chmod(temp_path, DEFAULT_FILE_MODE & ~_UMASK)

        # Windows refuses to replace files that are open elsewhere
        for attempt in range(ATOMIC_WRITE_RETRY_COUNT):
            try:
                temp_path.replace(path)
                return
            except PermissionError:
                if attempt == ATOMIC_WRITE_RETRY_COUNT - 1:
                    raise
                time.sleep(ATOMIC_WRITE_RETRY_DELAY)
    except OSError as e:
        if temp_path is not None:
            with suppress(OSError):
                temp_path.unlink()
        raise StorageError(
            f"Cache entry could not be written to {path}", path=path, cause=e
        ) from e


def read_file(path: Path) -> bytes | None:
    """Read a whole file, or None if it is missing or unreadable."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Failed to read cache file [%s]: %s", path.name, e)
        return None


def remove_file(path: Path) -> bool:
    """Unlink a file. Returns False if it was already gone."""
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageError(f"Could not delete {path}", path=path, cause=e) from e
    return True

"""Cache key normalization.

Item files are named after their cache key. To stay portable across file
systems, names only use alphanumerics, hyphens and underscores and are at
most 255 characters long. Keys that don't fit are replaced (or suffixed) with
a URL-safe base64 SHA-256 digest of the original key.
"""

import base64
import hashlib
import re

MAX_NAME_LENGTH = 255

_VALID_NAME = re.compile(r"[A-Za-z0-9_-]+")


def hash_base64(value: str) -> str:
    """URL-safe base64 SHA-256 digest without padding (43 characters)."""
    digest = hashlib.sha256(value.encode("utf-8", "surrogatepass")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def is_valid_name(name: str) -> bool:
    """Check if a string is already usable as an item file name."""
    return len(name) <= MAX_NAME_LENGTH and _VALID_NAME.fullmatch(name) is not None


def normalize_key(key: str) -> str:
    """Map a cache key to a file-system safe name."""
    uses_valid_characters = _VALID_NAME.fullmatch(key) is not None
    if uses_valid_characters and len(key) <= MAX_NAME_LENGTH:
        return key

    # Keep as much of a safe key as possible, with the hash appended
    hashed = hash_base64(key)
    if not uses_valid_characters:
        return hashed
    return key[: MAX_NAME_LENGTH - len(hashed)] + hashed

"""Content-addressed object keys."""

from __future__ import annotations

import hashlib
import os
import re
from dataclasses import dataclass
from typing import Final

from mediastore.storage.integrity import ByteContent, as_bytes

DEFAULT_EXTENSION: Final[str] = "bin"
# 20 hex chars ~ 80 bits
SHORT_HASH_LENGTH: Final[int] = 20

_SLASH_RUN: Final = re.compile(r"/+")


@dataclass(frozen=True, slots=True)
class DerivedKey:
    """Storage key plus the full SHA-256 hex digest it was derived from."""

    key: str
    full_hash_hex: str


def extension_of(filename: str) -> str:
    """Return the extension of a filename (without dot), or ``bin``."""
    ext = os.path.splitext(os.path.basename(filename))[1].lstrip(".")
    return ext or DEFAULT_EXTENSION


def derive_key(
    path_prefix: str,
    filename: str,
    data: ByteContent,
    short_form: bool = True,
) -> DerivedKey:
    """Build a deterministic key from content bytes and filename extension.

    Structure: {path_prefix}/{sha256[:20] or sha256}.{ext}
    An empty prefix yields a bare name at the bucket root.
    The filename contributes only its extension, so identical content
    with the same extension always lands on the same key.
    """
    full_hash = hashlib.sha256(as_bytes(data)).hexdigest()
    hash_part = full_hash[:SHORT_HASH_LENGTH] if short_form else full_hash
    name = f"{hash_part}.{extension_of(filename)}"
    key = _SLASH_RUN.sub("/", f"{path_prefix}/{name}") if path_prefix else name
    return DerivedKey(key=key, full_hash_hex=full_hash)


def normalize_key(path_prefix: str, relative: str) -> str:
    """Join a caller-supplied relative name onto a prefix.

    Leading slashes/backslashes are stripped and Windows separators
    converted, e.g. ``normalize_key("uploads", "/assets/img.png")`` gives
    ``uploads/assets/img.png``.
    """
    clean = re.sub(r"^[/\\]+", "", relative.strip()).replace("\\", "/")
    return _SLASH_RUN.sub("/", f"{path_prefix}/{clean}")

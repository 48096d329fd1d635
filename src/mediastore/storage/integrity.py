"""Content digests in Subresource Integrity (SRI) form.

A digest tag reads ``<algorithm>-<base64 digest>`` (e.g. ``sha256-...``).
Backends store the same digest as lowercase hex in a custom metadata
field, so the codec converts between the two forms.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
from dataclasses import dataclass
from typing import Final, Literal, Union

from mediastore.errors import MalformedDigestTag

DigestAlgorithm = Literal["sha256", "sha384", "sha512"]
ByteContent = Union[bytes, bytearray, memoryview]

DIGEST_SIZES: Final[dict[str, int]] = {
    "sha256": 32,
    "sha384": 48,
    "sha512": 64,
}

_TAG_RE: Final = re.compile(r"^(sha256|sha384|sha512)-([A-Za-z0-9+/]+={0,2})$")


@dataclass(frozen=True, slots=True)
class DigestTag:
    """An algorithm-tagged content digest."""

    algorithm: str
    b64: str

    def __str__(self) -> str:
        return f"{self.algorithm}-{self.b64}"

    @property
    def digest(self) -> bytes:
        return base64.b64decode(self.b64)

    def hex(self) -> str:
        return self.digest.hex()


def is_byte_content(data: object) -> bool:
    return isinstance(data, (bytes, bytearray, memoryview))


def as_bytes(data: ByteContent) -> bytes:
    """Return the raw bytes behind any supported buffer type."""
    if isinstance(data, bytes):
        return data
    if isinstance(data, memoryview):
        return data.tobytes()
    return bytes(data)


def compute_digest(data: ByteContent, algorithm: str = "sha256") -> DigestTag:
    """Hash content and return its digest tag.

    Args:
        data: Content as bytes, bytearray or memoryview
        algorithm: One of sha256, sha384, sha512

    Returns:
        DigestTag for the content
    """
    if algorithm not in DIGEST_SIZES:
        raise ValueError(
            f"Unsupported digest algorithm '{algorithm}'. "
            f"Must be one of: {', '.join(DIGEST_SIZES)}"
        )
    digest = hashlib.new(algorithm, as_bytes(data)).digest()
    return DigestTag(algorithm=algorithm, b64=base64.b64encode(digest).decode("ascii"))


def parse_digest_tag(value: str) -> DigestTag:
    """Parse and validate the text form of a digest tag."""
    if not isinstance(value, str):
        raise MalformedDigestTag(value, "not a string")

    match = _TAG_RE.match(value)
    if match is None:
        raise MalformedDigestTag(value, "expected <algorithm>-<base64>")

    algorithm, b64 = match.groups()
    try:
        raw = base64.b64decode(b64, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedDigestTag(value, "invalid base64") from exc

    expected = DIGEST_SIZES[algorithm]
    if len(raw) != expected:
        raise MalformedDigestTag(
            value, f"{algorithm} digest must be {expected} bytes, got {len(raw)}"
        )
    return DigestTag(algorithm=algorithm, b64=b64)


def coerce_digest_tag(value: DigestTag | str) -> DigestTag:
    """Accept either a DigestTag or its text form."""
    if isinstance(value, DigestTag):
        return value
    return parse_digest_tag(value)


def decode_to_hex(value: DigestTag | str) -> str:
    """Hex-encode the raw digest carried by a tag."""
    return coerce_digest_tag(value).hex()


def digests_match(hex_a: str | None, hex_b: str | None) -> bool:
    """Constant-time comparison of two hex digests."""
    if not hex_a or not hex_b:
        return False
    return hmac.compare_digest(hex_a.lower().encode(), hex_b.lower().encode())

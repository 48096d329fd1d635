"""Value types and the write-adapter interface shared by all providers.

Locators are a closed set of frozen dataclasses, one per provider. Every
dispatch site checks them with isinstance and falls through to an
"unknown provider" branch, so a new provider has to be added everywhere
a locator is inspected.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from mediastore.errors import InvalidLocatorError, MissingIntegrityError
from mediastore.storage.integrity import (
    ByteContent,
    DigestTag,
    coerce_digest_tag,
    compute_digest,
)


class Provider(str, Enum):
    """Supported storage backends."""

    R2 = "r2"
    FIREBASE = "firebase"
    DRIVE = "drive"


class IntegrityStatus(str, Enum):
    """Outcome of comparing an expected digest against backend metadata.

    UNKNOWN means the backend exposes no comparable digest or no expected
    digest was supplied; it is not a mismatch. Members refuse truth-value
    testing so the tri-state cannot silently collapse into a bool.
    """

    MATCH = "match"
    MISMATCH = "mismatch"
    UNKNOWN = "unknown"

    def __bool__(self) -> bool:
        raise TypeError("IntegrityStatus has no truth value; compare against a member")

    @classmethod
    def from_comparison(cls, matches: bool) -> "IntegrityStatus":
        return cls.MATCH if matches else cls.MISMATCH


# ---------------------------------------------------------------------------
# Locators
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class R2Locator:
    """Object in an S3-compatible bucket (Cloudflare R2)."""

    provider: ClassVar[Provider] = Provider.R2

    bucket: str
    key: str

    def describe(self) -> str:
        return f"r2://{self.bucket}/{self.key}"


@dataclass(frozen=True, slots=True)
class FirebaseLocator:
    """Object in a Google Cloud Storage bucket (Firebase Storage)."""

    provider: ClassVar[Provider] = Provider.FIREBASE

    bucket: str
    object_path: str

    def describe(self) -> str:
        return f"gs://{self.bucket}/{self.object_path}"


@dataclass(frozen=True, slots=True)
class DriveLocator:
    """File in Google Drive, addressed by its file ID."""

    provider: ClassVar[Provider] = Provider.DRIVE

    file_id: str
    supports_shared_drives: bool = False

    def describe(self) -> str:
        return f"drive://{self.file_id}"


StorageLocator = Union[R2Locator, FirebaseLocator, DriveLocator]


def locator_to_dict(locator: StorageLocator) -> dict[str, Any]:
    """Serialize a locator to a provider-tagged dict."""
    if isinstance(locator, R2Locator):
        return {"provider": "r2", "bucket": locator.bucket, "key": locator.key}
    if isinstance(locator, FirebaseLocator):
        return {
            "provider": "firebase",
            "bucket": locator.bucket,
            "object_path": locator.object_path,
        }
    if isinstance(locator, DriveLocator):
        return {
            "provider": "drive",
            "file_id": locator.file_id,
            "supports_shared_drives": locator.supports_shared_drives,
        }
    raise InvalidLocatorError(f"Not a storage locator: {locator!r}")


_LOCATOR_FIELDS: dict[str, frozenset[str]] = {
    "r2": frozenset({"bucket", "key"}),
    "firebase": frozenset({"bucket", "object_path"}),
    "drive": frozenset({"file_id", "supports_shared_drives"}),
}


def locator_from_dict(data: Mapping[str, Any]) -> StorageLocator:
    """Rebuild a locator from its persisted dict form.

    Raises:
        InvalidLocatorError: Unknown tag, missing fields, or fields that
            belong to another provider's locator
    """
    provider = data.get("provider")
    allowed = _LOCATOR_FIELDS.get(provider) if isinstance(provider, str) else None
    if allowed is None:
        raise InvalidLocatorError(f"Unknown locator provider: {provider!r}")

    extra = set(data) - allowed - {"provider"}
    if extra:
        raise InvalidLocatorError(
            f"Fields {sorted(extra)} do not belong to a '{provider}' locator"
        )

    try:
        if provider == "r2":
            return R2Locator(bucket=data["bucket"], key=data["key"])
        if provider == "firebase":
            return FirebaseLocator(bucket=data["bucket"], object_path=data["object_path"])
        return DriveLocator(
            file_id=data["file_id"],
            supports_shared_drives=bool(data.get("supports_shared_drives", False)),
        )
    except KeyError as exc:
        raise InvalidLocatorError(
            f"'{provider}' locator is missing field {exc.args[0]!r}"
        ) from exc


# ---------------------------------------------------------------------------
# Results and outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StorageResult:
    """Reference to an uploaded object, returned only after verification."""

    url: str
    download_url: str
    key: str
    integrity: DigestTag | None = None
    size_bytes: int | None = None
    locator: StorageLocator | None = None
    provider: Provider | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "download_url": self.download_url,
            "key": self.key,
            "integrity": str(self.integrity) if self.integrity else None,
            "size_bytes": self.size_bytes,
            "locator": locator_to_dict(self.locator) if self.locator else None,
            "provider": self.provider.value if self.provider else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StorageResult":
        integrity = data.get("integrity")
        locator = data.get("locator")
        provider = data.get("provider")
        return cls(
            url=data["url"],
            download_url=data["download_url"],
            key=data["key"],
            integrity=coerce_digest_tag(integrity) if integrity else None,
            size_bytes=data.get("size_bytes"),
            locator=locator_from_dict(locator) if locator else None,
            provider=Provider(provider) if provider else None,
        )


@dataclass(frozen=True, slots=True)
class VerifyOutcome:
    """Normalized result of a metadata-only verification."""

    exists: bool
    integrity: IntegrityStatus = IntegrityStatus.UNKNOWN
    size_matches: bool | None = None  # None when no expected size was given
    details: str | None = None

    @classmethod
    def missing(cls, details: str | None = None) -> "VerifyOutcome":
        return cls(exists=False, integrity=IntegrityStatus.UNKNOWN, details=details)


@dataclass(frozen=True, slots=True)
class BackendClients:
    """Caller-owned backend client handles, keyed by provider.

    - r2: async S3 client (aioboto3 ``session.client("s3", ...)``)
    - firebase: ``google.cloud.storage.Client`` (firebase-admin exposes one)
    - drive: Drive v3 resource from ``googleapiclient.discovery.build``
    """

    r2: Any | None = None
    firebase: Any | None = None
    drive: Any | None = None

    def get(self, provider: Provider | str) -> Any | None:
        name = provider.value if isinstance(provider, Provider) else provider
        if name not in _LOCATOR_FIELDS:
            return None
        return getattr(self, name)


# ---------------------------------------------------------------------------
# Upload inputs and adapter contract
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DriveOptions:
    """Drive-only upload options: sharing permission and Shared Drive support."""

    role: str = "reader"
    type: str = "anyone"
    supports_shared_drives: bool = False


@dataclass(frozen=True, slots=True)
class UploadParams:
    """Everything an uploader needs for one upload call."""

    data: ByteContent
    filename: str
    content_type: str = "application/octet-stream"
    upload_path: str | None = None
    cache_control: str | None = None
    parent_ids: tuple[str, ...] = ()
    drive: DriveOptions = field(default_factory=DriveOptions)

    @property
    def size_bytes(self) -> int:
        return memoryview(self.data).nbytes


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """What an adapter knows about a key before writing."""

    present: bool
    stored_digest_hex: str | None = None
    size_bytes: int | None = None


@dataclass(frozen=True, slots=True)
class WriteReceipt:
    """Outcome of a conditional write.

    race_detected is set when another writer created the object first;
    the uploader treats it as success and relies on verification.
    """

    race_detected: bool = False
    object_id: str | None = None
    links: Mapping[str, str] = field(default_factory=dict)


class WriteAdapter(ABC):
    """Provider-specific existence probe and conditional write."""

    provider: ClassVar[Provider]

    @abstractmethod
    async def probe(self, key: str) -> ProbeResult:
        """Check for an existing object at key using metadata only.

        Returns:
            ProbeResult; present=False for not-found class responses

        Raises:
            Backend errors other than not-found, unchanged
        """
        ...

    @abstractmethod
    async def write(self, key: str, params: UploadParams, digest: DigestTag) -> WriteReceipt:
        """Write content, storing the digest hex in custom metadata.

        Returns:
            WriteReceipt; race_detected=True when a concurrent writer won

        Raises:
            Backend errors other than a recognised race, unchanged
        """
        ...


def finalize_result(
    *,
    url: str,
    download_url: str,
    key: str,
    integrity: DigestTag | str | None = None,
    size_bytes: int | None = None,
    locator: StorageLocator | None = None,
    data: ByteContent | None = None,
    algorithm: str = "sha256",
) -> StorageResult:
    """Build a StorageResult that is guaranteed to carry a valid digest tag.

    The tag is validated when supplied, computed from data otherwise.

    Raises:
        MalformedDigestTag: integrity is not a valid tag
        MissingIntegrityError: neither integrity nor data was supplied
    """
    if integrity is not None:
        tag = coerce_digest_tag(integrity)
    elif data is not None:
        tag = compute_digest(data, algorithm)
    else:
        raise MissingIntegrityError()

    return StorageResult(
        url=url,
        download_url=download_url,
        key=key,
        integrity=tag,
        size_bytes=size_bytes,
        locator=locator,
        provider=locator.provider if locator is not None else None,
    )

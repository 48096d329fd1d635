"""Content-addressed object storage with post-write verification.

Provides one "upload a blob, get back a verifiable reference" operation
over three backends:
- Cloudflare R2 (S3-compatible)
- Firebase Storage (Google Cloud Storage)
- Google Drive

Every upload derives its key from the content, skips the write when the
same content is already stored, tolerates a lost write race, and then
confirms existence, size and (where possible) digest from backend
metadata before returning.
"""

from mediastore.storage.base import (
    BackendClients,
    DriveLocator,
    DriveOptions,
    FirebaseLocator,
    IntegrityStatus,
    Provider,
    R2Locator,
    StorageLocator,
    StorageResult,
    UploadParams,
    VerifyOutcome,
    locator_from_dict,
    locator_to_dict,
)
from mediastore.storage.delete import delete_from_storage
from mediastore.storage.drive import DriveUploader
from mediastore.storage.factory import MediaStorage, build_uploader
from mediastore.storage.gcs import FirebaseUploader
from mediastore.storage.integrity import DigestTag, compute_digest, decode_to_hex, parse_digest_tag
from mediastore.storage.keys import derive_key
from mediastore.storage.r2 import R2Uploader
from mediastore.storage.verify import verify_storage

__all__ = [
    "BackendClients",
    "DigestTag",
    "DriveLocator",
    "DriveOptions",
    "DriveUploader",
    "FirebaseLocator",
    "FirebaseUploader",
    "IntegrityStatus",
    "MediaStorage",
    "Provider",
    "R2Locator",
    "R2Uploader",
    "StorageLocator",
    "StorageResult",
    "UploadParams",
    "VerifyOutcome",
    "build_uploader",
    "compute_digest",
    "decode_to_hex",
    "delete_from_storage",
    "derive_key",
    "locator_from_dict",
    "locator_to_dict",
    "parse_digest_tag",
    "verify_storage",
]

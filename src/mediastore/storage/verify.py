"""Metadata-only verification across R2, Firebase (GCS) and Google Drive.

Object bytes are never downloaded. Each backend is asked for existence,
size and, where this package stored one, the custom content-digest field:

- R2: ``head_object``; user metadata ``<algorithm>`` holds the hex digest
- Firebase: ``exists()`` then ``reload()``; custom metadata ``<algorithm>``
- Drive: ``files.get`` for size and md5Checksum; no comparable digest
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from botocore.exceptions import ClientError
from google.api_core.exceptions import NotFound
from googleapiclient.errors import HttpError

from mediastore.observability.metrics import get_metrics
from mediastore.storage.backend_errors import is_drive_not_found, is_s3_not_found
from mediastore.storage.base import (
    BackendClients,
    DriveLocator,
    FirebaseLocator,
    IntegrityStatus,
    R2Locator,
    StorageLocator,
    StorageResult,
    VerifyOutcome,
)
from mediastore.storage.integrity import coerce_digest_tag, digests_match

logger = logging.getLogger(__name__)

DRIVE_VERIFY_FIELDS = "id, size, md5Checksum"


async def verify_storage(
    result_or_locator: StorageResult | StorageLocator,
    clients: BackendClients,
) -> VerifyOutcome:
    """Confirm an object exists and matches what was intended.

    Args:
        result_or_locator: A full StorageResult (digest and size are
            compared) or a bare locator (existence only)
        clients: Live backend clients keyed by provider

    Returns:
        VerifyOutcome. Missing clients, unknown providers and not-found
        responses are reported in the outcome, never raised.

    Raises:
        MalformedDigestTag: The result carries an invalid digest tag
        Backend errors outside the not-found class, unchanged
    """
    expected_hex: str | None = None
    expected_size: int | None = None
    algorithm = "sha256"

    if isinstance(result_or_locator, StorageResult):
        locator = result_or_locator.locator
        expected_size = result_or_locator.size_bytes
        if result_or_locator.integrity is not None:
            tag = coerce_digest_tag(result_or_locator.integrity)
            expected_hex = tag.hex()
            algorithm = tag.algorithm
        if locator is None:
            return VerifyOutcome.missing("Result carries no locator")
    else:
        locator = result_or_locator

    if isinstance(locator, R2Locator):
        outcome = await _verify_r2(locator, clients.r2, expected_hex, expected_size, algorithm)
    elif isinstance(locator, FirebaseLocator):
        outcome = await _verify_firebase(
            locator, clients.firebase, expected_hex, expected_size, algorithm
        )
    elif isinstance(locator, DriveLocator):
        outcome = await _verify_drive(locator, clients.drive, expected_hex, expected_size)
    else:
        return VerifyOutcome.missing("Unknown provider")

    get_metrics().verifications_total.labels(
        provider=locator.provider.value,
        exists=str(outcome.exists).lower(),
        integrity=outcome.integrity.value,
    ).inc()
    logger.debug(
        "Verified %s: exists=%s integrity=%s size_matches=%s",
        locator.describe(),
        outcome.exists,
        outcome.integrity.value,
        outcome.size_matches,
    )
    return outcome


def _size_matches(reported: Any, expected: int | None) -> bool | None:
    if expected is None:
        return None
    try:
        return int(reported) == expected
    except (TypeError, ValueError):
        return False


def _missing_client(locator: StorageLocator) -> VerifyOutcome:
    return VerifyOutcome.missing(f"Missing client for provider '{locator.provider.value}'")


async def _verify_r2(
    loc: R2Locator,
    s3: Any | None,
    expected_hex: str | None,
    expected_size: int | None,
    algorithm: str,
) -> VerifyOutcome:
    if s3 is None:
        return _missing_client(loc)

    try:
        head = await s3.head_object(Bucket=loc.bucket, Key=loc.key)
    except ClientError as exc:
        if is_s3_not_found(exc):
            return VerifyOutcome.missing()
        raise

    size_matches = _size_matches(head.get("ContentLength"), expected_size)
    if expected_hex is None:
        return VerifyOutcome(exists=True, integrity=IntegrityStatus.UNKNOWN, size_matches=size_matches)

    stored = (head.get("Metadata") or {}).get(algorithm)
    return VerifyOutcome(
        exists=True,
        integrity=IntegrityStatus.from_comparison(digests_match(stored, expected_hex)),
        size_matches=size_matches,
        details=None if stored else f"No {algorithm} metadata present",
    )


async def _verify_firebase(
    loc: FirebaseLocator,
    gcs: Any | None,
    expected_hex: str | None,
    expected_size: int | None,
    algorithm: str,
) -> VerifyOutcome:
    if gcs is None:
        return _missing_client(loc)

    blob = gcs.bucket(loc.bucket).blob(loc.object_path)
    if not await asyncio.to_thread(blob.exists):
        return VerifyOutcome.missing()

    try:
        await asyncio.to_thread(blob.reload)
    except NotFound:
        return VerifyOutcome.missing()

    stored = (blob.metadata or {}).get(algorithm)
    size_matches = _size_matches(blob.size, expected_size)

    if expected_hex is None:
        return VerifyOutcome(
            exists=True,
            integrity=IntegrityStatus.UNKNOWN,
            size_matches=size_matches,
            details="No expected digest supplied",
        )
    if not stored:
        # GCS only exposes md5Hash/crc32c natively
        return VerifyOutcome(
            exists=True,
            integrity=IntegrityStatus.UNKNOWN,
            size_matches=size_matches,
            details=f"No {algorithm} custom metadata present",
        )
    return VerifyOutcome(
        exists=True,
        integrity=IntegrityStatus.from_comparison(digests_match(stored, expected_hex)),
        size_matches=size_matches,
    )


async def _verify_drive(
    loc: DriveLocator,
    drive: Any | None,
    expected_hex: str | None,
    expected_size: int | None,
) -> VerifyOutcome:
    if drive is None:
        return _missing_client(loc)

    request = drive.files().get(
        fileId=loc.file_id,
        fields=DRIVE_VERIFY_FIELDS,
        supportsAllDrives=loc.supports_shared_drives,
    )
    try:
        meta = await asyncio.to_thread(request.execute)
    except HttpError as exc:
        if is_drive_not_found(exc):
            return VerifyOutcome.missing()
        raise

    # Drive only offers md5Checksum, so size is the sole integrity signal
    return VerifyOutcome(
        exists=True,
        integrity=IntegrityStatus.UNKNOWN,
        size_matches=_size_matches(meta.get("size") or 0, expected_size),
        details="Drive exposes no comparable digest" if expected_hex else None,
    )

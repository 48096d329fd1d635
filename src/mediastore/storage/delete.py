"""Idempotent deletion by locator.

Not-found responses count as success: deleting something already gone
is not an error. A missing client for the locator's provider is a
configuration error, never "nothing to delete".
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from botocore.exceptions import ClientError
from google.api_core.exceptions import NotFound
from googleapiclient.errors import HttpError

from mediastore.errors import InvalidLocatorError, MissingClientError, UnknownProviderError
from mediastore.observability.metrics import get_metrics
from mediastore.storage.backend_errors import drive_status, s3_status
from mediastore.storage.base import (
    BackendClients,
    DriveLocator,
    FirebaseLocator,
    R2Locator,
    StorageLocator,
    StorageResult,
)

logger = logging.getLogger(__name__)


async def delete_from_storage(
    result_or_locator: StorageResult | StorageLocator,
    clients: BackendClients,
) -> None:
    """Delete the object a result or locator points to.

    Raises:
        MissingClientError: No client for the locator's provider
        UnknownProviderError: The locator is not a known locator type
        InvalidLocatorError: A StorageResult without a locator
        Backend errors other than not-found, unchanged
    """
    if isinstance(result_or_locator, StorageResult):
        if result_or_locator.locator is None:
            raise InvalidLocatorError("StorageResult carries no locator to delete by")
        locator = result_or_locator.locator
    else:
        locator = result_or_locator

    if isinstance(locator, R2Locator):
        deleted = await _delete_r2(locator, clients.r2)
    elif isinstance(locator, FirebaseLocator):
        deleted = await _delete_firebase(locator, clients.firebase)
    elif isinstance(locator, DriveLocator):
        deleted = await _delete_drive(locator, clients.drive)
    else:
        raise UnknownProviderError(getattr(locator, "provider", locator))

    get_metrics().deletions_total.labels(
        provider=locator.provider.value,
        outcome="deleted" if deleted else "already_absent",
    ).inc()
    if deleted:
        logger.info("Deleted %s", locator.describe())
    else:
        logger.info("Nothing to delete at %s, already absent", locator.describe())


async def _delete_r2(loc: R2Locator, s3: Any | None) -> bool:
    if s3 is None:
        raise MissingClientError("r2", "delete")
    try:
        await s3.delete_object(Bucket=loc.bucket, Key=loc.key)
    except ClientError as exc:
        if s3_status(exc) == 404:
            return False
        raise
    return True


async def _delete_firebase(loc: FirebaseLocator, gcs: Any | None) -> bool:
    if gcs is None:
        raise MissingClientError("firebase", "delete")
    blob = gcs.bucket(loc.bucket).blob(loc.object_path)
    try:
        await asyncio.to_thread(blob.delete)
    except NotFound:
        return False
    return True


async def _delete_drive(loc: DriveLocator, drive: Any | None) -> bool:
    if drive is None:
        raise MissingClientError("drive", "delete")
    request = drive.files().delete(fileId=loc.file_id, supportsAllDrives=loc.supports_shared_drives)
    try:
        await asyncio.to_thread(request.execute)
    except HttpError as exc:
        if drive_status(exc) == 404:
            return False
        raise
    return True

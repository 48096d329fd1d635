"""Google Drive write adapter and uploader.

The Drive client is a v3 resource from google-api-python-client, e.g.
``googleapiclient.discovery.build("drive", "v3", credentials=creds)``.
Its requests are blocking, so each ``execute()`` runs in a worker thread.

Drive has no content-addressed lookup, so the probe never finds anything
and every upload creates a new file. Drive only reports md5Checksum, so
verification is limited to existence and size.
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import TYPE_CHECKING, Any

from googleapiclient.http import MediaIoBaseUpload

from mediastore.errors import InvalidLocatorError, ObjectNotFoundAfterUpload
from mediastore.storage.base import (
    BackendClients,
    DriveLocator,
    ProbeResult,
    Provider,
    StorageLocator,
    UploadParams,
    WriteAdapter,
    WriteReceipt,
)
from mediastore.storage.integrity import DigestTag, as_bytes
from mediastore.storage.uploader import BaseUploader

if TYPE_CHECKING:
    from mediastore.config import StorageSettings

logger = logging.getLogger(__name__)

PUBLIC_VIEW_URL = "https://drive.google.com/uc?export=view&id={file_id}"
LINK_FIELDS = "webViewLink, webContentLink"


async def _execute(request: Any) -> Any:
    return await asyncio.to_thread(request.execute)


class DriveWriteAdapter(WriteAdapter):
    """Create-then-publish writes into Drive folders."""

    provider = Provider.DRIVE

    def __init__(self, drive: Any) -> None:
        self.drive = drive

    async def probe(self, key: str) -> ProbeResult:
        return ProbeResult(present=False)

    async def write(self, key: str, params: UploadParams, digest: DigestTag) -> WriteReceipt:
        """Create the file, grant the sharing permission, then fetch its links."""
        shared = params.drive.supports_shared_drives
        body: dict[str, Any] = {"name": params.filename}
        if params.parent_ids:
            body["parents"] = list(params.parent_ids)
        media = MediaIoBaseUpload(
            io.BytesIO(as_bytes(params.data)), mimetype=params.content_type, resumable=False
        )

        created = await _execute(
            self.drive.files().create(
                body=body, media_body=media, fields="id", supportsAllDrives=shared
            )
        )
        file_id = created["id"]

        await _execute(
            self.drive.permissions().create(
                fileId=file_id,
                body={"role": params.drive.role, "type": params.drive.type},
                supportsAllDrives=shared,
            )
        )
        links = await _execute(
            self.drive.files().get(fileId=file_id, fields=LINK_FIELDS, supportsAllDrives=shared)
        )
        logger.debug("Created Drive file %s for %s", file_id, key)

        return WriteReceipt(
            object_id=file_id,
            links={name: links[name] for name in ("webViewLink", "webContentLink") if links.get(name)},
        )


class DriveUploader(BaseUploader):
    """Uploads to Google Drive, publicly shared by default."""

    provider = Provider.DRIVE

    def __init__(self, drive: Any, settings: StorageSettings) -> None:
        super().__init__(DriveWriteAdapter(drive), settings)
        self.drive = drive

    @property
    def clients(self) -> BackendClients:
        return BackendClients(drive=self.drive)

    def build_locator(self, key: str, receipt: WriteReceipt, params: UploadParams) -> StorageLocator:
        if not receipt.object_id:
            raise ObjectNotFoundAfterUpload(self.provider.value, f"drive file for {key}")
        return DriveLocator(
            file_id=receipt.object_id,
            supports_shared_drives=params.drive.supports_shared_drives,
        )

    def build_urls(self, key: str, receipt: WriteReceipt, locator: StorageLocator) -> tuple[str, str]:
        if not isinstance(locator, DriveLocator):
            raise InvalidLocatorError(f"Expected a Drive locator, got {locator!r}")
        url = PUBLIC_VIEW_URL.format(file_id=locator.file_id)
        return url, receipt.links.get("webContentLink", url)

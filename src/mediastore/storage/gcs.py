"""Firebase Storage (Google Cloud Storage) write adapter and uploader.

Uses google-cloud-storage with asyncio.to_thread for non-blocking I/O.
firebase-admin's ``storage.bucket().client`` is the same Client type, so
either can be passed in.

GCS exposes only md5Hash/crc32c natively; the content digest is stored
as custom metadata under the algorithm name at write time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from google.api_core.exceptions import NotFound

from mediastore.errors import ConfigurationError
from mediastore.storage.base import (
    BackendClients,
    FirebaseLocator,
    ProbeResult,
    Provider,
    StorageLocator,
    UploadParams,
    WriteAdapter,
    WriteReceipt,
)
from mediastore.storage.integrity import DigestTag, as_bytes
from mediastore.storage.keys import normalize_key
from mediastore.storage.uploader import BaseUploader

if TYPE_CHECKING:
    from mediastore.config import StorageSettings

logger = logging.getLogger(__name__)


class GcsWriteAdapter(WriteAdapter):
    """Existence + metadata probe and public upload against a GCS bucket."""

    provider = Provider.FIREBASE

    def __init__(
        self,
        client: Any,
        bucket: str,
        digest_algorithm: str = "sha256",
        default_cache_control: str = "public, max-age=31536000",
    ) -> None:
        self.client = client
        self.bucket = bucket
        self.digest_algorithm = digest_algorithm
        self.default_cache_control = default_cache_control

    def _blob(self, key: str) -> Any:
        return self.client.bucket(self.bucket).blob(key)

    async def probe(self, key: str) -> ProbeResult:
        blob = self._blob(key)
        if not await asyncio.to_thread(blob.exists):
            return ProbeResult(present=False)

        try:
            await asyncio.to_thread(blob.reload)
        except NotFound:
            return ProbeResult(present=False)

        return ProbeResult(
            present=True,
            stored_digest_hex=(blob.metadata or {}).get(self.digest_algorithm),
            size_bytes=blob.size,
        )

    async def write(self, key: str, params: UploadParams, digest: DigestTag) -> WriteReceipt:
        """Upload with content type, cache control and digest, then make public."""
        blob = self._blob(key)
        blob.cache_control = params.cache_control or self.default_cache_control
        blob.metadata = {self.digest_algorithm: digest.hex()}

        await asyncio.to_thread(
            blob.upload_from_string, as_bytes(params.data), content_type=params.content_type
        )
        await asyncio.to_thread(blob.make_public)
        logger.debug("Uploaded gs://%s/%s and made it public", self.bucket, key)
        return WriteReceipt(object_id=key)


class FirebaseUploader(BaseUploader):
    """Content-addressed uploads to a Firebase Storage bucket."""

    provider = Provider.FIREBASE

    def __init__(self, client: Any, settings: StorageSettings) -> None:
        if not settings.firebase_bucket:
            raise ConfigurationError(
                "FIREBASE_STORAGE_BUCKET is required for the firebase provider"
            )

        super().__init__(
            GcsWriteAdapter(
                client,
                bucket=settings.firebase_bucket,
                digest_algorithm=settings.digest_algorithm,
                default_cache_control=settings.firebase_cache_control,
            ),
            settings,
        )
        self.client = client
        self.bucket = settings.firebase_bucket

    @property
    def clients(self) -> BackendClients:
        return BackendClients(firebase=self.client)

    def build_locator(self, key: str, receipt: WriteReceipt, params: UploadParams) -> StorageLocator:
        return FirebaseLocator(bucket=self.bucket, object_path=key)

    def build_urls(self, key: str, receipt: WriteReceipt, locator: StorageLocator) -> tuple[str, str]:
        url = self.client.bucket(self.bucket).blob(key).public_url
        return url, url

    def locator_for_name(self, name: str, upload_path: str | None = None) -> StorageLocator:
        prefix = self.settings.default_upload_path if upload_path is None else upload_path
        return FirebaseLocator(bucket=self.bucket, object_path=normalize_key(prefix, name))

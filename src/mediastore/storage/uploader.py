"""Upload orchestration: write optimistically, verify authoritatively.

Every provider runs the same sequence:

1. Derive the content-addressed key and the content digest
2. Probe the key; identical stored digest means nothing is written
3. Conditional write; a lost race counts as success (never retried)
4. Build the StorageResult
5. Verify via backend metadata; existence, digest (where the backend
   has a comparable channel) and size must all hold
6. Return the result
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar

from mediastore.config import StorageSettings
from mediastore.errors import (
    DigestMismatchError,
    MissingIntegrityError,
    ObjectNotFoundAfterUpload,
    SizeMismatchError,
    UnsupportedOperationError,
)
from mediastore.observability.logging import LogContext
from mediastore.observability.metrics import get_metrics, init_metrics
from mediastore.storage.base import (
    BackendClients,
    IntegrityStatus,
    Provider,
    StorageLocator,
    StorageResult,
    UploadParams,
    VerifyOutcome,
    WriteAdapter,
    WriteReceipt,
    finalize_result,
)
from mediastore.storage.integrity import DigestTag, compute_digest, digests_match, is_byte_content
from mediastore.storage.keys import derive_key
from mediastore.storage.verify import verify_storage

logger = logging.getLogger(__name__)


class BaseUploader(ABC):
    """Provider-independent upload sequence.

    Subclasses supply the write adapter, the locator for a written key
    and the public URLs for the result.
    """

    provider: ClassVar[Provider]

    def __init__(self, adapter: WriteAdapter, settings: StorageSettings) -> None:
        self.adapter = adapter
        self.settings = settings
        init_metrics(settings.enable_metrics)

    @property
    @abstractmethod
    def clients(self) -> BackendClients:
        """Clients handed to the verifier after the write."""
        ...

    @abstractmethod
    def build_locator(self, key: str, receipt: WriteReceipt, params: UploadParams) -> StorageLocator:
        """Locator for the object just written (or found) at key."""
        ...

    @abstractmethod
    def build_urls(self, key: str, receipt: WriteReceipt, locator: StorageLocator) -> tuple[str, str]:
        """Return (url, download_url) for the stored object."""
        ...

    async def upload(self, params: UploadParams) -> StorageResult:
        """Upload content and return a verified reference to it.

        Raises:
            MissingIntegrityError: params.data is not a bytes-like buffer
            ObjectNotFoundAfterUpload: Verification cannot find the object
            DigestMismatchError: Stored digest differs from the uploaded one
            SizeMismatchError: Stored size differs from the uploaded one
            Backend errors other than a recognised race, unchanged
        """
        if not is_byte_content(params.data):
            raise MissingIntegrityError()

        metrics = get_metrics()
        upload_path = (
            params.upload_path
            if params.upload_path is not None
            else self.settings.default_upload_path
        )
        derived = derive_key(
            upload_path, params.filename, params.data, short_form=self.settings.short_keys
        )
        digest = compute_digest(params.data, self.settings.digest_algorithm)

        with LogContext(provider=self.provider.value, object_key=derived.key, operation="upload"):
            try:
                receipt, outcome_label = await self._write_if_absent(derived.key, params, digest)

                locator = self.build_locator(derived.key, receipt, params)
                url, download_url = self.build_urls(derived.key, receipt, locator)
                result = finalize_result(
                    url=url,
                    download_url=download_url,
                    key=derived.key,
                    integrity=digest,
                    size_bytes=params.size_bytes,
                    locator=locator,
                )

                outcome = await verify_storage(result, self.clients)
                self.check_outcome(outcome, result)
            except Exception:
                metrics.uploads_total.labels(provider=self.provider.value, outcome="failed").inc()
                logger.exception("Upload of %s failed", params.filename)
                raise

            metrics.uploads_total.labels(provider=self.provider.value, outcome=outcome_label).inc()
            logger.info(
                "Upload verified (%s, %d bytes, %s)",
                outcome_label,
                params.size_bytes,
                locator.describe(),
            )
            return result

    async def _write_if_absent(
        self, key: str, params: UploadParams, digest: DigestTag
    ) -> tuple[WriteReceipt, str]:
        metrics = get_metrics()
        probe = await self.adapter.probe(key)
        if probe.present and digests_match(probe.stored_digest_hex, digest.hex()):
            metrics.upload_dedup_total.labels(provider=self.provider.value).inc()
            logger.debug("Identical content already stored, skipping write")
            return WriteReceipt(), "deduplicated"

        receipt = await self.adapter.write(key, params, digest)
        if receipt.race_detected:
            metrics.write_races_total.labels(provider=self.provider.value).inc()
            logger.info("Concurrent writer created the object first, verifying theirs")
            return receipt, "race"
        return receipt, "written"

    def check_outcome(self, outcome: VerifyOutcome, result: StorageResult) -> None:
        """Raise the error matching the first violated post-condition."""
        location = result.locator.describe() if result.locator else result.key
        if not outcome.exists:
            raise ObjectNotFoundAfterUpload(self.provider.value, location)
        if outcome.integrity is IntegrityStatus.MISMATCH:
            expected = result.integrity.hex() if result.integrity else ""
            raise DigestMismatchError(self.provider.value, location, expected)
        if outcome.size_matches is False:
            raise SizeMismatchError(self.provider.value, location, result.size_bytes or 0)

    def locator_for_name(self, name: str, upload_path: str | None = None) -> StorageLocator:
        """Locator for a caller-named object under upload_path.

        Raises:
            UnsupportedOperationError: the backend does not address by path
        """
        raise UnsupportedOperationError(
            f"The {self.provider.value} provider cannot address objects by name"
        )

    async def get_presigned_url(self, key: str, expires_in: int = 900) -> str:
        """Time-limited download URL for key."""
        raise UnsupportedOperationError(
            f"Presigned URLs are not supported by the {self.provider.value} provider"
        )

    async def get_presigned_upload_url(
        self, key: str, content_type: str, expires_in: int = 900
    ) -> str:
        """Time-limited upload URL for key."""
        raise UnsupportedOperationError(
            f"Presigned upload URLs are not supported by the {self.provider.value} provider"
        )

"""Cloudflare R2 (S3-compatible) write adapter and uploader.

Supports:
- Cloudflare R2
- AWS S3, MinIO and any S3 endpoint honouring ``If-None-Match: *`` on PUT

The S3 client is an async aioboto3 client owned by the caller, e.g.:

    session = aioboto3.Session(
        aws_access_key_id=..., aws_secret_access_key=..., region_name="auto"
    )
    async with session.client("s3", endpoint_url=f"https://{account}.r2.cloudflarestorage.com") as s3:
        uploader = R2Uploader(s3, settings)
        result = await uploader.upload(params)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from botocore.exceptions import ClientError

from mediastore.errors import ConfigurationError
from mediastore.storage.backend_errors import is_s3_not_found, is_s3_precondition_failed
from mediastore.storage.base import (
    BackendClients,
    ProbeResult,
    Provider,
    R2Locator,
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


class R2WriteAdapter(WriteAdapter):
    """HEAD probe and absent-only PUT against an S3-compatible bucket."""

    provider = Provider.R2

    def __init__(
        self,
        s3: Any,
        bucket: str,
        digest_algorithm: str = "sha256",
        default_cache_control: str = "public, max-age=31536000, immutable",
    ) -> None:
        self.s3 = s3
        self.bucket = bucket
        self.digest_algorithm = digest_algorithm
        self.default_cache_control = default_cache_control

    async def probe(self, key: str) -> ProbeResult:
        """HEAD the key; 403 and 404 both mean absent."""
        try:
            head = await self.s3.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if is_s3_not_found(exc):
                return ProbeResult(present=False)
            raise

        return ProbeResult(
            present=True,
            stored_digest_hex=(head.get("Metadata") or {}).get(self.digest_algorithm),
            size_bytes=head.get("ContentLength"),
        )

    async def write(self, key: str, params: UploadParams, digest: DigestTag) -> WriteReceipt:
        """PUT only if absent; 412 means a concurrent writer got there first."""
        try:
            await self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=as_bytes(params.data),
                ContentType=params.content_type,
                CacheControl=params.cache_control or self.default_cache_control,
                Metadata={self.digest_algorithm: digest.hex()},
                IfNoneMatch="*",
            )
        except ClientError as exc:
            if is_s3_precondition_failed(exc):
                logger.debug("PUT r2://%s/%s rejected by If-None-Match", self.bucket, key)
                return WriteReceipt(race_detected=True)
            raise
        return WriteReceipt()


class R2Uploader(BaseUploader):
    """Content-addressed uploads to R2, served from a CDN base URL."""

    provider = Provider.R2

    def __init__(self, s3: Any, settings: StorageSettings) -> None:
        if not settings.r2_bucket:
            raise ConfigurationError("R2_BUCKET is required for the r2 provider")
        if not settings.r2_cdn_base:
            raise ConfigurationError("R2_CDN_BASE is required for the r2 provider")

        super().__init__(
            R2WriteAdapter(
                s3,
                bucket=settings.r2_bucket,
                digest_algorithm=settings.digest_algorithm,
                default_cache_control=settings.default_cache_control,
            ),
            settings,
        )
        self.s3 = s3
        self.bucket = settings.r2_bucket
        self.cdn_base = settings.r2_cdn_base

    @property
    def clients(self) -> BackendClients:
        return BackendClients(r2=self.s3)

    def build_locator(self, key: str, receipt: WriteReceipt, params: UploadParams) -> StorageLocator:
        return R2Locator(bucket=self.bucket, key=key)

    def build_urls(self, key: str, receipt: WriteReceipt, locator: StorageLocator) -> tuple[str, str]:
        url = f"{self.cdn_base}/{key}"
        return url, url

    def locator_for_name(self, name: str, upload_path: str | None = None) -> StorageLocator:
        prefix = self.settings.default_upload_path if upload_path is None else upload_path
        return R2Locator(bucket=self.bucket, key=normalize_key(prefix, name))

    async def get_presigned_url(self, key: str, expires_in: int = 900) -> str:
        """Generate a presigned GET URL.

        Args:
            key: Object key
            expires_in: URL expiration time in seconds (default 15 minutes)
        """
        url = await self.s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )
        return cast(str, url)

    async def get_presigned_upload_url(
        self, key: str, content_type: str, expires_in: int = 900
    ) -> str:
        """Generate a presigned PUT URL bound to a content type."""
        url = await self.s3.generate_presigned_url(
            "put_object",
            Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
            ExpiresIn=expires_in,
        )
        return cast(str, url)

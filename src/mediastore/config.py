from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Storage configuration, built once at startup and passed to uploaders.

    No module-level instance exists: every uploader and
    factory call receives the settings value it should use.
    """

    model_config = SettingsConfigDict(
        env_prefix="MEDIASTORE_", env_file=".env", extra="ignore", populate_by_name=True
    )

    # Cloudflare R2 (S3-compatible)
    r2_bucket: str | None = Field(default=None, validation_alias="R2_BUCKET")
    r2_cdn_base: str | None = Field(default=None, validation_alias="R2_CDN_BASE")

    # Firebase Storage (GCS)
    firebase_bucket: str | None = Field(default=None, validation_alias="FIREBASE_STORAGE_BUCKET")

    # Keys and integrity
    default_upload_path: str = "assets"
    short_keys: bool = True
    digest_algorithm: Literal["sha256", "sha384", "sha512"] = "sha256"

    # Cache-Control defaults (immutable: keys are content-addressed)
    default_cache_control: str = "public, max-age=31536000, immutable"
    firebase_cache_control: str = "public, max-age=31536000"

    # Observability
    log_level: str = "INFO"
    log_json: bool = True
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")

    @field_validator("r2_cdn_base")
    @classmethod
    def _strip_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value

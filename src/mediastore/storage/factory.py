"""Uploader factory and the MediaStorage facade."""

from __future__ import annotations

from mediastore.config import StorageSettings
from mediastore.errors import MissingClientError, UnknownProviderError
from mediastore.observability.logging import configure_logging
from mediastore.observability.metrics import init_metrics
from mediastore.storage.base import (
    BackendClients,
    Provider,
    StorageLocator,
    StorageResult,
    UploadParams,
    VerifyOutcome,
)
from mediastore.storage.delete import delete_from_storage
from mediastore.storage.drive import DriveUploader
from mediastore.storage.gcs import FirebaseUploader
from mediastore.storage.r2 import R2Uploader
from mediastore.storage.uploader import BaseUploader
from mediastore.storage.verify import verify_storage


def build_uploader(
    provider: Provider | str,
    settings: StorageSettings,
    clients: BackendClients,
) -> BaseUploader:
    """Return the uploader for provider, bound to its caller-owned client.

    Raises:
        UnknownProviderError: provider is not r2, firebase or drive
        MissingClientError: clients has no entry for provider
        ConfigurationError: required settings for provider are unset
    """
    try:
        provider = Provider(provider)
    except ValueError as exc:
        raise UnknownProviderError(provider) from exc

    client = clients.get(provider)
    if client is None:
        raise MissingClientError(provider.value, "upload")

    if provider is Provider.R2:
        return R2Uploader(client, settings)
    if provider is Provider.FIREBASE:
        return FirebaseUploader(client, settings)
    return DriveUploader(client, settings)


def configure_observability(settings: StorageSettings) -> None:
    """Apply logging and metrics settings process-wide."""
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    init_metrics(settings.enable_metrics)


class MediaStorage:
    """One provider's uploader plus the clients used to verify and delete.

    Usage:
        storage = MediaStorage("r2", StorageSettings(), BackendClients(r2=s3))
        result = await storage.upload(UploadParams(data=png, filename="a.png"))
        outcome = await storage.verify(result.locator)
    """

    def __init__(
        self,
        provider: Provider | str,
        settings: StorageSettings,
        clients: BackendClients,
    ) -> None:
        self.settings = settings
        self.clients = clients
        self.uploader = build_uploader(provider, settings, clients)

    @property
    def provider(self) -> Provider:
        return self.uploader.provider

    async def upload(self, params: UploadParams) -> StorageResult:
        return await self.uploader.upload(params)

    async def verify(self, result_or_locator: StorageResult | StorageLocator) -> VerifyOutcome:
        return await verify_storage(result_or_locator, self.clients)

    async def delete(self, result_or_locator: StorageResult | StorageLocator) -> None:
        await delete_from_storage(result_or_locator, self.clients)

    async def delete_by_name(self, name: str, upload_path: str | None = None) -> None:
        """Delete a caller-named object, e.g. ``delete_by_name("/img/a.png")``.

        Raises:
            UnsupportedOperationError: the provider has no path addressing (Drive)
        """
        locator = self.uploader.locator_for_name(name, upload_path)
        await delete_from_storage(locator, self.clients)

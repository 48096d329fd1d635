"""Exception taxonomy for mediastore.

Every fatal condition raised by this package derives from MediaStoreError.
Backend SDK errors (botocore, google-api-core, googleapiclient) are never
wrapped: anything not recognised as "not found" or "race lost" propagates
as the SDK raised it.
"""

from __future__ import annotations


class MediaStoreError(Exception):
    """Base class for all mediastore errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(MediaStoreError):
    """The caller supplied an incomplete or inconsistent configuration."""


class MissingClientError(ConfigurationError):
    """No backend client was supplied for the provider being addressed."""

    def __init__(self, provider: str, operation: str = "") -> None:
        self.provider = provider
        self.operation = operation
        message = f"Missing client for provider '{provider}'"
        if operation:
            message += f" ({operation})"
        super().__init__(message)


class UnknownProviderError(ConfigurationError):
    """The locator carries a provider tag this package does not handle."""

    def __init__(self, provider: object) -> None:
        self.provider = provider
        super().__init__(f"Unknown provider: {provider!r}")


# ---------------------------------------------------------------------------
# Malformed input (raised before any network call)
# ---------------------------------------------------------------------------


class MalformedInputError(MediaStoreError, ValueError):
    """Input rejected before contacting any backend."""


class MalformedDigestTag(MalformedInputError):
    """A digest tag does not have the `<algo>-<base64>` shape or length."""

    def __init__(self, value: object, reason: str = "") -> None:
        self.value = value
        message = f"Malformed digest tag: {value!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MissingIntegrityError(MalformedInputError):
    """A result has no digest tag and no bytes to compute one from."""

    def __init__(self) -> None:
        super().__init__("Integrity missing and no data provided to compute it")


class InvalidLocatorError(MalformedInputError):
    """A persisted locator cannot be turned back into a typed locator."""


# ---------------------------------------------------------------------------
# Post-write integrity violations
# ---------------------------------------------------------------------------


class IntegrityViolation(MediaStoreError):
    """Post-write verification contradicted what was just uploaded."""

    def __init__(self, provider: str, location: str, message: str) -> None:
        self.provider = provider
        self.location = location
        super().__init__(message)


class ObjectNotFoundAfterUpload(IntegrityViolation):
    """The backend does not report the object after a successful write."""

    def __init__(self, provider: str, location: str) -> None:
        super().__init__(
            provider,
            location,
            f"Verification failed: object not found after upload ({location})",
        )


class DigestMismatchError(IntegrityViolation):
    """The backend reports a content digest different from the one uploaded."""

    def __init__(self, provider: str, location: str, expected_hex: str) -> None:
        self.expected_hex = expected_hex
        super().__init__(
            provider,
            location,
            f"Verification failed: digest mismatch after upload "
            f"({location}, expected {expected_hex})",
        )


class SizeMismatchError(IntegrityViolation):
    """The backend reports a content length different from the one uploaded."""

    def __init__(self, provider: str, location: str, expected_size: int) -> None:
        self.expected_size = expected_size
        super().__init__(
            provider,
            location,
            f"Verification failed: size mismatch after upload "
            f"({location}, expected {expected_size} bytes)",
        )


class UnsupportedOperationError(MediaStoreError, NotImplementedError):
    """The provider cannot perform the requested operation."""

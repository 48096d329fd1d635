"""Classification of backend SDK errors into not-found and race classes.

Only the status codes listed here are ever normalized; everything else
is left for the caller to propagate.
"""

from __future__ import annotations

from typing import Final

from botocore.exceptions import ClientError
from googleapiclient.errors import HttpError

NOT_FOUND_STATUSES: Final[frozenset[int]] = frozenset({403, 404})
PRECONDITION_FAILED: Final[int] = 412

# S3 error codes that arrive without a usable HTTP status
_S3_CODE_STATUS: Final[dict[str, int]] = {
    "NoSuchKey": 404,
    "NotFound": 404,
    "AccessDenied": 403,
    "Forbidden": 403,
    "PreconditionFailed": 412,
}


def s3_status(exc: ClientError) -> int | None:
    """HTTP status of a botocore ClientError, falling back to its error code."""
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if isinstance(status, int):
        return status

    code = str(exc.response.get("Error", {}).get("Code", ""))
    if code.isdigit():
        return int(code)
    return _S3_CODE_STATUS.get(code)


def is_s3_not_found(exc: ClientError) -> bool:
    return s3_status(exc) in NOT_FOUND_STATUSES


def is_s3_precondition_failed(exc: ClientError) -> bool:
    return s3_status(exc) == PRECONDITION_FAILED


def drive_status(exc: HttpError) -> int | None:
    """HTTP status of a googleapiclient HttpError."""
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    resp = getattr(exc, "resp", None)
    status = getattr(resp, "status", None)
    return int(status) if status is not None else None


def is_drive_not_found(exc: HttpError) -> bool:
    return drive_status(exc) in NOT_FOUND_STATUSES

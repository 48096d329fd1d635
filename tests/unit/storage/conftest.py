"""In-memory fakes of the R2 (S3), GCS and Drive clients.

Each fake implements only the calls mediastore makes and records them,
so tests can assert on network round-trips without any network.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from typing import Any

import httplib2
import pytest
from botocore.exceptions import ClientError
from google.api_core.exceptions import NotFound
from googleapiclient.errors import HttpError

from mediastore.config import StorageSettings


def client_error(status: int, code: str | None = None, operation: str = "HeadObject") -> ClientError:
    """Build a botocore ClientError carrying an HTTP status."""
    return ClientError(
        {
            "Error": {"Code": code or str(status), "Message": f"HTTP {status}"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


def http_error(status: int, message: str = "Drive error") -> HttpError:
    """Build a googleapiclient HttpError with the given status."""
    content = json.dumps({"error": {"code": status, "message": message}}).encode()
    return HttpError(httplib2.Response({"status": status}), content, uri="https://drive.test")


# ---------------------------------------------------------------------------
# R2 / S3
# ---------------------------------------------------------------------------


class FakeS3:
    """Async S3 client keeping objects in a dict keyed by (bucket, key)."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.head_errors: list[Exception] = []
        self.put_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.on_head: Callable[[dict[str, Any]], dict[str, Any]] | None = None

    def op_count(self, name: str) -> int:
        return sum(1 for op, _ in self.calls if op == name)

    async def head_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append(("head_object", {"Bucket": Bucket, "Key": Key}))
        if self.head_errors:
            raise self.head_errors.pop(0)
        obj = self.objects.get((Bucket, Key))
        if obj is None:
            raise client_error(404, "404")
        response = {
            "ContentLength": len(obj["Body"]),
            "ContentType": obj.get("ContentType"),
            "Metadata": dict(obj.get("Metadata", {})),
        }
        if self.on_head is not None:
            response = self.on_head(response)
        return response

    async def put_object(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("put_object", kwargs))
        if self.put_error is not None:
            raise self.put_error
        ident = (kwargs["Bucket"], kwargs["Key"])
        if kwargs.get("IfNoneMatch") == "*" and ident in self.objects:
            raise client_error(412, "PreconditionFailed", "PutObject")
        self.objects[ident] = dict(kwargs)
        return {"ETag": '"etag"'}

    async def delete_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append(("delete_object", {"Bucket": Bucket, "Key": Key}))
        if self.delete_error is not None:
            raise self.delete_error
        self.objects.pop((Bucket, Key), None)
        return {}

    async def generate_presigned_url(
        self, ClientMethod: str, Params: dict[str, Any], ExpiresIn: int
    ) -> str:
        return f"https://signed.test/{Params['Bucket']}/{Params['Key']}?op={ClientMethod}&exp={ExpiresIn}"

    def seed(self, bucket: str, key: str, body: bytes, metadata: dict[str, str] | None = None) -> None:
        self.objects[(bucket, key)] = {"Body": body, "Metadata": metadata or {}}


# ---------------------------------------------------------------------------
# GCS
# ---------------------------------------------------------------------------


class FakeGcsBlob:
    def __init__(self, client: "FakeGcsClient", bucket: str, name: str) -> None:
        self._client = client
        self._bucket = bucket
        self.name = name
        self.metadata: dict[str, str] | None = None
        self.cache_control: str | None = None
        self.size: int | None = None

    @property
    def _ident(self) -> tuple[str, str]:
        return (self._bucket, self.name)

    @property
    def public_url(self) -> str:
        return f"https://storage.googleapis.com/{self._bucket}/{self.name}"

    def exists(self) -> bool:
        self._client.calls.append(("exists", self.name))
        return self._ident in self._client.store

    def reload(self) -> None:
        self._client.calls.append(("reload", self.name))
        entry = self._client.store.get(self._ident)
        if entry is None:
            raise NotFound(f"{self.name} not found")
        self.metadata = dict(entry["metadata"]) if entry["metadata"] is not None else None
        self.size = entry["size"]
        self.cache_control = entry["cache_control"]

    def upload_from_string(self, data: bytes, content_type: str | None = None) -> None:
        self._client.calls.append(("upload", self.name))
        if self._client.upload_error is not None:
            raise self._client.upload_error
        entry = {
            "data": data,
            "size": len(data),
            "content_type": content_type,
            "cache_control": self.cache_control,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
            "public": False,
        }
        if self._client.after_upload is not None:
            self._client.after_upload(entry)
        self._client.store[self._ident] = entry

    def make_public(self) -> None:
        self._client.calls.append(("make_public", self.name))
        self._client.store[self._ident]["public"] = True

    def delete(self) -> None:
        self._client.calls.append(("delete", self.name))
        if self._client.delete_error is not None:
            raise self._client.delete_error
        if self._ident not in self._client.store:
            raise NotFound(f"{self.name} not found")
        del self._client.store[self._ident]


class FakeGcsBucket:
    def __init__(self, client: "FakeGcsClient", name: str) -> None:
        self._client = client
        self.name = name

    def blob(self, name: str) -> FakeGcsBlob:
        return FakeGcsBlob(self._client, self.name, name)


class FakeGcsClient:
    def __init__(self) -> None:
        self.store: dict[tuple[str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.upload_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.after_upload: Callable[[dict[str, Any]], None] | None = None

    def bucket(self, name: str) -> FakeGcsBucket:
        return FakeGcsBucket(self, name)

    def op_count(self, name: str) -> int:
        return sum(1 for op, _ in self.calls if op == name)

    def seed(self, bucket: str, name: str, data: bytes, metadata: dict[str, str] | None = None) -> None:
        self.store[(bucket, name)] = {
            "data": data,
            "size": len(data),
            "content_type": None,
            "cache_control": None,
            "metadata": metadata,
            "public": True,
        }


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


class FakeRequest:
    def __init__(self, fn: Callable[[], Any]) -> None:
        self._fn = fn

    def execute(self) -> Any:
        return self._fn()


class FakeDriveFiles:
    def __init__(self, drive: "FakeDrive") -> None:
        self._drive = drive

    def create(self, body: dict[str, Any], media_body: Any, fields: str, supportsAllDrives: bool) -> FakeRequest:
        def run() -> dict[str, Any]:
            self._drive.calls.append(("files.create", body))
            if self._drive.create_error is not None:
                raise self._drive.create_error
            data = media_body.getbytes(0, media_body.size())
            self._drive.counter += 1
            file_id = f"file-{self._drive.counter}"
            reported = data[:-1] if self._drive.truncate_uploads else data
            self._drive.files_store[file_id] = {
                "id": file_id,
                "name": body["name"],
                "parents": body.get("parents", []),
                "mimeType": media_body.mimetype(),
                "size": str(len(reported)),
                "md5Checksum": hashlib.md5(data).hexdigest(),
                "supportsAllDrives": supportsAllDrives,
            }
            return {"id": file_id}

        return FakeRequest(run)

    def get(self, fileId: str, fields: str, supportsAllDrives: bool = False) -> FakeRequest:
        def run() -> dict[str, Any]:
            self._drive.calls.append(("files.get", {"fileId": fileId, "fields": fields}))
            if self._drive.get_error is not None:
                raise self._drive.get_error
            entry = self._drive.files_store.get(fileId)
            if entry is None:
                raise http_error(404, "File not found")
            return {
                "id": fileId,
                "size": entry["size"],
                "md5Checksum": entry["md5Checksum"],
                "webViewLink": f"https://drive.google.com/file/d/{fileId}/view",
                "webContentLink": f"https://drive.google.com/uc?id={fileId}&export=download",
            }

        return FakeRequest(run)

    def delete(self, fileId: str, supportsAllDrives: bool = False) -> FakeRequest:
        def run() -> None:
            self._drive.calls.append(("files.delete", {"fileId": fileId}))
            if self._drive.delete_error is not None:
                raise self._drive.delete_error
            if fileId not in self._drive.files_store:
                raise http_error(404, "File not found")
            del self._drive.files_store[fileId]

        return FakeRequest(run)


class FakeDrivePermissions:
    def __init__(self, drive: "FakeDrive") -> None:
        self._drive = drive

    def create(self, fileId: str, body: dict[str, Any], supportsAllDrives: bool = False) -> FakeRequest:
        def run() -> dict[str, Any]:
            self._drive.calls.append(("permissions.create", {"fileId": fileId, **body}))
            self._drive.permissions_store.setdefault(fileId, []).append(body)
            return {"id": "perm-1"}

        return FakeRequest(run)


class FakeDrive:
    """Drive v3 resource with files() and permissions() collections."""

    def __init__(self) -> None:
        self.files_store: dict[str, dict[str, Any]] = {}
        self.permissions_store: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.counter = 0
        self.create_error: Exception | None = None
        self.get_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.truncate_uploads = False

    def files(self) -> FakeDriveFiles:
        return FakeDriveFiles(self)

    def permissions(self) -> FakeDrivePermissions:
        return FakeDrivePermissions(self)

    def op_count(self, name: str) -> int:
        return sum(1 for op, _ in self.calls if op == name)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def fake_gcs() -> FakeGcsClient:
    return FakeGcsClient()


@pytest.fixture
def fake_drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def settings() -> StorageSettings:
    return StorageSettings(
        r2_bucket="media-bucket",
        r2_cdn_base="https://cdn.example.com/",
        firebase_bucket="demo.appspot.com",
        enable_metrics=False,
        _env_file=None,
    )


@pytest.fixture
def s3_error() -> Callable[..., ClientError]:
    return client_error


@pytest.fixture
def drive_error() -> Callable[..., HttpError]:
    return http_error

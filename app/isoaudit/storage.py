"""
Blob storage for template spreadsheets and completed uploads.

Keys are forward-slash paths such as ``templates/27001/A5.1_Policy.xlsx`` or
``uploads/iso27001/user_3/...``; backends map them to files or S3 objects.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import boto3
from botocore.exceptions import ClientError


class StorageError(RuntimeError):
    pass


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        """Remove an object. Deleting a missing key is not an error."""
        raise NotImplementedError


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path

    def _path(self, key: str) -> Path:
        root = self.root.resolve()
        p = (root / key.replace("\\", "/").lstrip("/")).resolve()
        if root not in p.parents:
            raise StorageError(f"Storage key escapes root: {key!r}")
        return p

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(data)

    def open(self, key: str) -> BinaryIO:
        return self._path(key).open("rb")

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


@dataclass(frozen=True)
class S3Storage(Storage):
    """S3-compatible bucket (DigitalOcean Spaces, MinIO, AWS)."""

    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str

    def _client(self):
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        self._client().put_object(Bucket=self.bucket, Key=key, Body=data, **extra)

    def open(self, key: str) -> BinaryIO:
        try:
            return self._client().get_object(Bucket=self.bucket, Key=key)["Body"]  # type: ignore[return-value]
        except ClientError as e:
            raise StorageError(f"Cannot read {key!r} from bucket {self.bucket!r}: {e}") from e

    def exists(self, key: str) -> bool:
        try:
            self._client().head_object(Bucket=self.bucket, Key=key)
        except ClientError:
            return False
        return True

    def delete(self, key: str) -> None:
        # delete_object succeeds for missing keys
        self._client().delete_object(Bucket=self.bucket, Key=key)


def storage_from_config(config) -> Storage:
    """Backend selected by ``STORAGE_BACKEND`` (``local`` or ``s3``); local files live under ./storage."""

    def opt(name: str, default: str = "") -> str:
        return (config.get(name) or default).strip()

    if opt("STORAGE_BACKEND", "local").lower() == "s3":
        return S3Storage(
            endpoint=opt("S3_ENDPOINT"),
            region=opt("S3_REGION", "nyc3"),
            bucket=opt("S3_BUCKET"),
            access_key_id=opt("S3_ACCESS_KEY_ID"),
            secret_access_key=opt("S3_SECRET_ACCESS_KEY"),
        )
    return LocalStorage(root=Path(os.getcwd()) / "storage")

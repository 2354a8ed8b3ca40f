"""
Object storage for badge images and photo contest uploads (S3-compatible),
plus an in-memory client for tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        ...

    def get_bytes(self, path: str) -> bytes:
        ...

    def delete(self, path: str) -> None:
        ...

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: Dict[str, bytes] = field(default_factory=dict)
    content_types: Dict[str, str] = field(default_factory=dict)

    def reset(self) -> None:
        self.stored_objects.clear()
        self.content_types.clear()

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self.stored_objects[path] = bytes(data)
        self.content_types[path] = content_type
        return self.public_url(path)

    def get_bytes(self, path: str) -> bytes:
        stored = self.stored_objects.get(path)
        if stored is None:
            raise FileNotFoundError(path)
        return stored

    def delete(self, path: str) -> None:
        self.stored_objects.pop(path, None)
        self.content_types.pop(path, None)

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (AWS S3, MinIO, COS and the like).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )
        return self.public_url(path)

    def get_bytes(self, path: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise FileNotFoundError(path) from exc
            raise
        return response["Body"].read()

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )

    def public_url(self, path: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{path}"
        return self.presign_get(path, expires_in=7 * 24 * 3600)

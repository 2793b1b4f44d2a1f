"""
Object storage abstraction for S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import quote, unquote

import boto3
from botocore.config import Config


class ObjectStorage(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        ...

    def object_key(self, url: str) -> Optional[str]:
        ...

    def delete(self, path: str) -> None:
        ...


def _key_under(base: str, url: str) -> Optional[str]:
    prefix = f"{base.rstrip('/')}/"
    if not url.startswith(prefix) or len(url) == len(prefix):
        return None
    return unquote(url[len(prefix):])


@dataclass
class InMemoryObjectStorage:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage/photos"
    stored_objects: dict = field(default_factory=dict)

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self.stored_objects[path] = (content_type, bytes(data))
        return f"{self.base_url}/{quote(path)}"

    def object_key(self, url: str) -> Optional[str]:
        return _key_under(self.base_url, url)

    def delete(self, path: str) -> None:
        self.stored_objects.pop(path, None)


@dataclass
class S3ObjectStorage:
    """
    Client for any S3-compatible bucket (Supabase storage, MinIO, AWS S3).

    Uploaded objects are addressed by ``public_base_url`` when one is set,
    otherwise by ``<endpoint>/<bucket>/<path>``. Keys are percent-encoded in
    the URL, so ``object_key`` maps a public URL back to its key.
    """

    bucket: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    region: Optional[str] = None
    public_base_url: Optional[str] = None

    def __post_init__(self):
        # Path-style addressing works with every S3-compatible provider.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    @property
    def base_url(self) -> str:
        base = self.public_base_url or f"{self.endpoint.rstrip('/')}/{self.bucket}"
        return base.rstrip("/")

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{quote(path)}"

    def object_key(self, url: str) -> Optional[str]:
        """Return the bucket key behind ``url``, or None for foreign URLs."""
        return _key_under(self.base_url, url)

    def upload_bytes(self, path: str, data: bytes, content_type: str) -> str:
        self._client.put_object(
            Bucket=self.bucket,
            Key=path,
            Body=data,
            ContentType=content_type,
        )
        return self.public_url(path)

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self.bucket, Key=path)

from __future__ import annotations

import logging
from dataclasses import dataclass

import boto3
import httpx
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from shorts_pipeline import config
from shorts_pipeline.config import required
from shorts_pipeline.services.errors import StorageError

logger = logging.getLogger(__name__)

# ---------- S3 / DigitalOcean Spaces (S3-compatible) ----------


@dataclass
class StoredObject:
    url: str
    size: int


def _spaces_client():
    return boto3.session.Session().client(
        "s3",
        region_name=config.DO_SPACES_REGION,
        endpoint_url=required("DO_SPACES_ENDPOINT"),
        aws_access_key_id=required("DO_SPACES_KEY"),
        aws_secret_access_key=required("DO_SPACES_SECRET"),
        config=Config(signature_version="s3v4"),
    )


class ObjectStorage:
    def __init__(self, client=None, bucket: str | None = None, public_base: str | None = None):
        self._client = client
        self.bucket = bucket or required("DO_SPACES_BUCKET")
        self.public_base = (public_base or required("DO_SPACES_PUBLIC_BASE")).rstrip("/")

    @property
    def client(self):
        if self._client is None:
            self._client = _spaces_client()
        return self._client

    def public_url(self, key: str) -> str:
        return f"{self.public_base}/{key}"

    def key_from_url(self, url: str) -> str | None:
        prefix = self.public_base + "/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):].split("?", 1)[0] or None

    def upload(self, data: bytes, key: str, content_type: str) -> StoredObject:
        """
        Upload raw bytes and return the PUBLIC url.
        """
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ACL="public-read",
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e
        return StoredObject(url=self.public_url(key), size=len(data))

    def download(self, url: str, timeout: float = 120.0) -> bytes:
        try:
            with httpx.Client(timeout=timeout, follow_redirects=True) as client:
                r = client.get(url)
        except httpx.HTTPError as e:
            raise StorageError(f"Download of {url} failed: {e}") from e
        if r.status_code >= 400:
            raise StorageError(f"Download of {url} failed: {r.status_code} {r.reason_phrase}")
        return r.content

    def delete(self, url: str) -> bool:
        key = self.key_from_url(url)
        if not key:
            logger.warning("Not a managed object url, skipping delete: %s", url)
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Delete of {key} failed: {e}") from e
        logger.info("Deleted object %s", key)
        return True

from __future__ import annotations

import asyncio
import logging
from time import monotonic
from typing import BinaryIO, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from .config import EndpointConfig
from .models import (
    Entry,
    ObjectMetadata,
    bucket_entry,
    object_entry,
    parent_entry,
    prefix_entry,
)

logger = logging.getLogger(__name__)

DELIMITER = "/"
CHUNK_SIZE = 1024 * 1024


class TransportError(Exception):
    """Raised when a call to the object store does not complete."""


class TransportCanceled(TransportError):
    """Raised when a call exceeds its time budget."""


class TransportFailed(TransportError):
    """Raised for every other store failure (auth, not found, network)."""


class S3Service:
    def __init__(self, endpoint: Optional[EndpointConfig] = None) -> None:
        self.endpoint = endpoint or EndpointConfig.aws()
        self.timeout_seconds = self.endpoint.timeout_seconds
        self._client_cache: Optional[object] = None

    def _client_config(self) -> Config:
        kwargs: dict = {
            "connect_timeout": self.timeout_seconds,
            "read_timeout": self.timeout_seconds,
            "retries": {"total_max_attempts": 1},
        }
        if self.endpoint.path_style:
            kwargs["s3"] = {"addressing_style": "path"}
        return Config(**kwargs)

    def _client(self):
        if self._client_cache is not None:
            return self._client_cache
        session = boto3.session.Session(
            aws_access_key_id=self.endpoint.access_key,
            aws_secret_access_key=self.endpoint.secret_key,
            region_name=self.endpoint.region,
        )
        self._client_cache = session.client(
            "s3",
            endpoint_url=self.endpoint.endpoint_url,
            config=self._client_config(),
        )
        return self._client_cache

    def _call(self, operation: str, **kwargs) -> dict:
        client = self._client()
        try:
            return getattr(client, operation)(**kwargs)
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise TransportCanceled(
                f"{operation} canceled due to timeout, {exc}"
            ) from exc
        except (ClientError, BotoCoreError) as exc:
            raise TransportFailed(f"{operation} failed, {exc}") from exc

    async def _run(self, func, *args):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            raise TransportCanceled(
                f"{func.__name__.lstrip('_')} canceled due to timeout"
                f" after {self.timeout_seconds:g}s"
            ) from None

    async def list_buckets(self) -> list[Entry]:
        return await self._run(self._list_buckets)

    def _list_buckets(self) -> list[Entry]:
        response = self._call("list_buckets")
        entries: list[Entry] = []
        for bucket in response.get("Buckets", []):
            name = bucket.get("Name")
            if not name:
                continue
            entries.append(bucket_entry(name, bucket.get("CreationDate")))
        return entries

    async def list_entries(self, bucket: str, prefix: str) -> list[Entry]:
        return await self._run(self._list_entries, bucket, prefix)

    def _list_entries(self, bucket: str, prefix: str) -> list[Entry]:
        # A single page: listings are not paginated.
        response = self._call(
            "list_objects_v2",
            Bucket=bucket,
            Delimiter=DELIMITER,
            Prefix=prefix,
        )
        entries: list[Entry] = [parent_entry()]
        for item in response.get("CommonPrefixes", []):
            value = item.get("Prefix")
            if value:
                entries.append(prefix_entry(value))
        for item in response.get("Contents", []):
            key = item.get("Key")
            if not key:
                continue
            if prefix and key == prefix:
                continue
            entries.append(
                object_entry(
                    key,
                    size=int(item.get("Size", 0)),
                    modified_at=item.get("LastModified"),
                )
            )
        return entries

    async def fetch_object(self, bucket: str, key: str, writer: BinaryIO) -> int:
        return await self._run(self._fetch_object, bucket, key, writer)

    def _fetch_object(self, bucket: str, key: str, writer: BinaryIO) -> int:
        deadline = monotonic() + self.timeout_seconds
        response = self._call("get_object", Bucket=bucket, Key=key)
        body = response.get("Body")
        if body is None:
            return 0
        written = 0
        try:
            while True:
                try:
                    chunk = body.read(CHUNK_SIZE)
                except (ConnectTimeoutError, ReadTimeoutError) as exc:
                    raise TransportCanceled(
                        f"get_object canceled due to timeout, {exc}"
                    ) from exc
                except BotoCoreError as exc:
                    raise TransportFailed(f"get_object failed, {exc}") from exc
                if not chunk:
                    break
                writer.write(chunk)
                written += len(chunk)
                if monotonic() > deadline:
                    raise TransportCanceled(
                        f"get_object canceled due to timeout after {written} bytes"
                    )
        finally:
            try:
                body.close()
            except Exception as exc:
                logger.debug("Closing body of s3://%s/%s failed: %s", bucket, key, exc)
        logger.debug("Fetched s3://%s/%s (%d bytes)", bucket, key, written)
        return written

    async def get_metadata(self, bucket: str, key: str) -> ObjectMetadata:
        return await self._run(self._get_metadata, bucket, key)

    def _get_metadata(self, bucket: str, key: str) -> ObjectMetadata:
        response = self._call("head_object", Bucket=bucket, Key=key)
        etag = response.get("ETag")
        if isinstance(etag, str):
            etag = etag.strip('"')
        metadata = response.get("Metadata")
        return ObjectMetadata(
            bucket=bucket,
            key=key,
            size=response.get("ContentLength"),
            last_modified=response.get("LastModified"),
            content_type=response.get("ContentType"),
            etag=etag,
            storage_class=response.get("StorageClass"),
            metadata=dict(metadata) if isinstance(metadata, dict) else {},
        )

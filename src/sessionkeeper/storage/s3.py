from contextlib import asynccontextmanager
from typing import AsyncIterator, BinaryIO, Optional

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError
from loguru import logger

from sessionkeeper.config import RemoteStorageConfig
from sessionkeeper.errors import SourceUnavailable, TransportFailure
from sessionkeeper.storage.backend import RemoteEntry

AUTH_ERROR_CODES = {"403", "AccessDenied", "InvalidAccessKeyId", "SignatureDoesNotMatch"}
MISSING_BUCKET_CODES = {"404", "NoSuchBucket"}


class S3Handle:
    def __init__(self, s3, bucket: str, prefix: str):
        self._s3 = s3
        self.bucket = bucket
        self.prefix = prefix

    def _get_key(self, name: str) -> str:
        return f"{self.prefix}/{name}" if self.prefix else name

    def _get_name(self, key: str) -> str:
        if self.prefix and key.startswith(f"{self.prefix}/"):
            return key[len(self.prefix) + 1 :]
        return key

    async def list_entries(self) -> list[RemoteEntry]:
        entries = []
        list_prefix = f"{self.prefix}/" if self.prefix else ""
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            async for page in paginator.paginate(Bucket=self.bucket, Prefix=list_prefix):
                for obj in page.get("Contents", []):
                    key = obj["Key"]
                    entries.append(
                        RemoteEntry(
                            name=self._get_name(key),
                            ref=key,
                            size=obj.get("Size"),
                            modified=obj.get("LastModified"),
                        )
                    )
        except (ClientError, BotoCoreError) as e:
            raise TransportFailure(f"Listing s3://{self.bucket}/{list_prefix} failed: {e}") from e
        return entries

    async def download(self, entry: RemoteEntry) -> bytes:
        try:
            response = await self._s3.get_object(Bucket=self.bucket, Key=entry.ref)
            async with response["Body"] as stream:
                return await stream.read()
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey"):
                raise SourceUnavailable(f"s3://{self.bucket}/{entry.ref} does not exist") from e
            raise TransportFailure(f"Download of s3://{self.bucket}/{entry.ref} failed: {e}") from e
        except BotoCoreError as e:
            raise TransportFailure(f"Download of s3://{self.bucket}/{entry.ref} failed: {e}") from e

    async def upload(
        self, name: str, content: bytes | BinaryIO, size: Optional[int] = None
    ) -> RemoteEntry:
        key = self._get_key(name)
        kwargs = {"Bucket": self.bucket, "Key": key, "Body": content}
        if size is not None:
            kwargs["ContentLength"] = size
        try:
            await self._s3.put_object(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise TransportFailure(f"Upload to s3://{self.bucket}/{key} failed: {e}") from e
        logger.debug(f"Uploaded {name} to s3://{self.bucket}/{key}")
        return RemoteEntry(name=name, ref=key, size=size)

    async def delete(self, entry: RemoteEntry) -> None:
        try:
            await self._s3.delete_object(Bucket=self.bucket, Key=entry.ref)
        except (ClientError, BotoCoreError) as e:
            raise TransportFailure(f"Delete of s3://{self.bucket}/{entry.ref} failed: {e}") from e
        logger.debug(f"Deleted s3://{self.bucket}/{entry.ref}")


class S3SessionBackend:
    def __init__(
        self,
        bucket: str,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        prefix: str = "sessions",
        endpoint_url: Optional[str] = None,
    ):
        self.bucket = bucket
        self.region = region
        self.prefix = prefix
        self.endpoint_url = endpoint_url
        self._session = aioboto3.Session(
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name=region,
        )

    @classmethod
    def from_config(cls, config: RemoteStorageConfig) -> "S3SessionBackend":
        return cls(
            bucket=config.bucket,
            access_key_id=config.access_key_id,
            secret_access_key=config.secret_access_key,
            region=config.region,
            prefix=config.prefix,
            endpoint_url=config.endpoint_url,
        )

    def _get_client_kwargs(self) -> dict:
        kwargs = {"region_name": self.region}
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    async def _authenticate(self, s3) -> None:
        try:
            await s3.head_bucket(Bucket=self.bucket)
        except ClientError as e:
            code = e.response["Error"]["Code"]
            if code in AUTH_ERROR_CODES:
                raise SourceUnavailable(
                    f"S3 credentials rejected for bucket '{self.bucket}' ({code})"
                ) from e
            if code in MISSING_BUCKET_CODES:
                raise SourceUnavailable(f"S3 bucket '{self.bucket}' does not exist") from e
            raise TransportFailure(f"S3 connection failed: {e}") from e
        except EndpointConnectionError as e:
            target = self.endpoint_url or "AWS S3"
            raise TransportFailure(f"Network connection to {target} failed: {e}") from e
        except BotoCoreError as e:
            raise TransportFailure(f"S3 connection failed: {e}") from e

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[S3Handle]:
        async with self._session.client("s3", **self._get_client_kwargs()) as s3:
            await self._authenticate(s3)
            logger.debug(f"Connected to s3://{self.bucket}/{self.prefix}")
            yield S3Handle(s3, self.bucket, self.prefix)
        logger.debug(f"Released S3 client for bucket '{self.bucket}'")

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings
from .errors import PublishError
from .models import PublishedObject
from .retry import is_transient_storage, retrying

logger = logging.getLogger("ytlink.publisher")

CONTENT_TYPE = "video/mp4"


def s3_client(settings: Settings) -> Any:
    kwargs = {
        "region_name": settings.region,
        "aws_access_key_id": settings.access_key_id,
        "aws_secret_access_key": settings.secret_access_key,
        "config": Config(signature_version="s3v4"),
    }
    if settings.endpoint_url:
        endpoint = settings.endpoint_url
        kwargs["endpoint_url"] = endpoint if "://" in endpoint else f"https://{endpoint}"
    return boto3.client("s3", **kwargs)


class S3Publisher:
    """Uploads finished files and mints time-limited GET links for them."""

    def __init__(self, client: Any, bucket: str, expires_in: int = 3600, retry_max: int = 3) -> None:
        self.client = client
        self.bucket = bucket
        self.expires_in = expires_in
        self.retry_max = retry_max

    def _put(self, path: Path, key: str) -> None:
        with path.open("rb") as body:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=body, ContentType=CONTENT_TYPE)

    def _presign(self, key: str) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.expires_in,
        )

    async def upload(self, path: Path, key: str) -> None:
        logger.info("Uploading %s to S3 bucket %s as %s", path.name, self.bucket, key)
        try:
            async for attempt in retrying(self.retry_max, is_transient_storage):
                with attempt:
                    await asyncio.to_thread(self._put, path, key)
        except (BotoCoreError, ClientError, OSError) as exc:
            raise PublishError(f"upload of {key} failed: {exc}") from exc
        logger.info("upload_complete", extra={"event": "upload_complete", "bucket": self.bucket, "key": key})

    async def sign(self, key: str) -> PublishedObject:
        """Mint a fresh signed URL for an already uploaded key."""
        try:
            url = await asyncio.to_thread(self._presign, key)
        except (BotoCoreError, ClientError) as exc:
            raise PublishError(f"signing {key} failed: {exc}") from exc
        return PublishedObject(bucket=self.bucket, key=key, download_url=url, expires_in=self.expires_in)

    async def publish(self, path: Path, key: str) -> PublishedObject:
        await self.upload(path, key)
        published = await self.sign(key)
        logger.info("Generated pre-signed URL successfully.", extra={"event": "link_signed", "key": key})
        return published

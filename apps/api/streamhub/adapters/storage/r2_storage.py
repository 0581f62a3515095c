"""Cloudflare R2 (S3-compatible) object storage adapter."""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from streamhub.adapters.storage.base import ObjectStorage, StorageError

logger = logging.getLogger(__name__)


class R2ObjectStorage(ObjectStorage):
    def __init__(
        self,
        *,
        endpoint_url: str,
        access_key_id: str,
        secret_access_key: str,
        bucket: str,
        public_url: str,
        timeout_seconds: float = 10.0,
        client: Any | None = None,
    ) -> None:
        super().__init__(public_url)
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            region_name="auto",
            config=Config(connect_timeout=timeout_seconds, read_timeout=timeout_seconds, retries={"max_attempts": 2}),
        )

    def delete_object(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete {key}: {exc}") from exc
        logger.info("storage.deleted bucket=%s key=%s", self.bucket, key)

    def list_keys(self, prefix: str) -> list[str]:
        keys: list[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                keys.extend(item["Key"] for item in page.get("Contents", []) if item.get("Key"))
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to list {prefix}: {exc}") from exc
        return keys

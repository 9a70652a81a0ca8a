"""
botsmith.integrations.storage.s3 - Amazon S3 Object Store
===========================================================

ObjectStore backed by boto3's S3 client. Calls run in a worker thread.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import boto3
import structlog
from botocore.exceptions import ClientError

from botsmith.core.exceptions import StorageError
from botsmith.integrations.storage.base import ObjectStore


logger = structlog.get_logger()


class S3ObjectStore(ObjectStore):
    """Object store on Amazon S3.

    Args:
        region: AWS region for the client. None uses the default chain.
        client: Optional pre-built S3 client (tests inject a stub).
    """

    def __init__(self, region: Optional[str] = None, client: Optional[Any] = None) -> None:
        self._client = client or boto3.Session(region_name=region).client("s3")
        self._logger = logger.bind(component="s3_object_store")

    async def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        content_type: Optional[str] = None,
    ) -> None:
        params: dict[str, Any] = {"Bucket": bucket, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type

        try:
            await asyncio.to_thread(self._client.put_object, **params)
        except ClientError as e:
            raise StorageError(
                message=f"Failed to write s3://{bucket}/{key}: {e}",
                bucket=bucket,
                key=key,
                details={"aws_error_code": e.response.get("Error", {}).get("Code")},
            ) from e

        self._logger.info("object_stored", bucket=bucket, key=key, size=len(body))

    async def get_object(self, bucket: str, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(self._client.get_object, Bucket=bucket, Key=key)
            return await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            raise StorageError(
                message=f"Failed to read s3://{bucket}/{key}: {e}",
                bucket=bucket,
                key=key,
                error_code="OBJECT_NOT_FOUND" if code in ("NoSuchKey", "404") else "STORAGE_ERROR",
                details={"aws_error_code": code},
            ) from e

"""AWS S3 object store for one website bucket."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import aiofiles

from application.ports.cloud import AlreadyExistsError, NotFoundError, ObjectHead
from core.logging_config import get_logger
from .base import AwsAdapter

logger = get_logger(__name__)


def public_read_policy(bucket: str) -> dict:
    """Bucket policy granting anonymous read on every object."""
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Sid": "PublicReadGetObject",
                "Effect": "Allow",
                "Principal": "*",
                "Action": "s3:GetObject",
                "Resource": f"arn:aws:s3:::{bucket}/*",
            }
        ],
    }


class S3ObjectStore(AwsAdapter):
    """AWS S3 storage bound to a single bucket."""

    def __init__(self, client: Any, bucket: str, default_region: str = "us-east-1"):
        """Initialize S3 store.

        Args:
            client: Boto3 S3 client instance
            bucket: Target bucket name
            default_region: Region where buckets need no location constraint
        """
        super().__init__(client)
        self.bucket = bucket
        self.default_region = default_region

    async def put_file(
        self,
        path: Path,
        key: str,
        content_type: str,
        cache_control: str,
        content_encoding: Optional[str] = None,
    ) -> None:
        """Put the whole file in one request."""
        async with aiofiles.open(path, "rb") as f:
            body = await f.read()

        extra_args: dict[str, Any] = {
            "ContentType": content_type,
            "CacheControl": cache_control,
        }
        if content_encoding:
            extra_args["ContentEncoding"] = content_encoding

        await self._call(
            "put_object",
            Bucket=self.bucket,
            Key=key,
            Body=body,
            **extra_args,
        )
        logger.debug("Uploaded to S3", key=key, size=len(body))

    async def list_keys(self, prefix: str = "") -> list[str]:
        objects = await self._paginate(
            "list_objects_v2",
            lambda page: page.get("Contents", []),
            Bucket=self.bucket,
            Prefix=prefix,
        )
        return [obj["Key"] for obj in objects]

    async def delete_keys(self, keys: list[str]) -> dict[str, bool]:
        """Batch delete up to 1000 keys."""
        if not keys:
            return {}
        response = await self._call(
            "delete_objects",
            Bucket=self.bucket,
            Delete={"Objects": [{"Key": key} for key in keys], "Quiet": False},
        )
        deleted = {obj["Key"]: True for obj in response.get("Deleted", [])}
        errors = {obj["Key"]: False for obj in response.get("Errors", [])}
        return {**deleted, **errors}

    async def head(self, key: str) -> ObjectHead:
        response = await self._call("head_object", Bucket=self.bucket, Key=key)
        return ObjectHead(
            key=key,
            content_type=response.get("ContentType"),
            content_encoding=response.get("ContentEncoding"),
            cache_control=response.get("CacheControl"),
        )

    async def replace_metadata(
        self,
        key: str,
        content_type: str,
        cache_control: str,
        content_encoding: Optional[str] = None,
    ) -> None:
        """Copy the object onto itself with replaced headers."""
        extra_args: dict[str, Any] = {
            "ContentType": content_type,
            "CacheControl": cache_control,
        }
        if content_encoding:
            extra_args["ContentEncoding"] = content_encoding
        await self._call(
            "copy_object",
            Bucket=self.bucket,
            Key=key,
            CopySource={"Bucket": self.bucket, "Key": key},
            MetadataDirective="REPLACE",
            **extra_args,
        )

    async def bucket_exists(self) -> bool:
        try:
            await self._call("head_bucket", Bucket=self.bucket)
            return True
        except NotFoundError:
            return False

    async def create_bucket(self, region: str) -> None:
        args: dict[str, Any] = {"Bucket": self.bucket}
        if region != self.default_region:
            args["CreateBucketConfiguration"] = {"LocationConstraint": region}
        try:
            await self._call("create_bucket", **args)
        except AlreadyExistsError:
            logger.info("bucket_already_owned", bucket=self.bucket)
            return
        logger.info("bucket_created", bucket=self.bucket, region=region)

    async def disable_public_access_block(self) -> None:
        await self._call("delete_public_access_block", Bucket=self.bucket)

    async def enable_versioning(self) -> None:
        await self._call(
            "put_bucket_versioning",
            Bucket=self.bucket,
            VersioningConfiguration={"Status": "Enabled"},
        )

    async def website_configured(self) -> bool:
        try:
            await self._call("get_bucket_website", Bucket=self.bucket)
            return True
        except NotFoundError:
            return False

    async def configure_website(self, index_document: str, error_document: str) -> None:
        await self._call(
            "put_bucket_website",
            Bucket=self.bucket,
            WebsiteConfiguration={
                "IndexDocument": {"Suffix": index_document},
                "ErrorDocument": {"Key": error_document},
            },
        )

    async def put_public_read_policy(self) -> None:
        await self._call(
            "put_bucket_policy",
            Bucket=self.bucket,
            Policy=json.dumps(public_read_policy(self.bucket)),
        )

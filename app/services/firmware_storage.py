from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import BinaryIO

import boto3
from botocore.exceptions import ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


def _safe_segment(value: str) -> str:
    raw = str(value or "").strip() or "file.bin"
    return re.sub(r"[^A-Za-z0-9._-]+", "_", raw)


def build_object_key(model_name: str, firmware_name: str) -> str:
    return f"{_safe_segment(model_name)}/{_safe_segment(firmware_name)}"


def object_key_from_path(file_path: str, bucket: str) -> str | None:
    """Recover the object key from a stored URL like ``.../<bucket>/<key>?X-Amz-...``."""
    path = str(file_path or "").split("?", 1)[0]
    marker = f"/{bucket}/"
    if marker not in path:
        return None
    return path.split(marker, 1)[1] or None


class FirmwareStorage:
    def __init__(self):
        self.client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT or None,
            aws_access_key_id=settings.S3_ACCESS_KEY or None,
            aws_secret_access_key=settings.S3_SECRET_KEY or None,
            region_name=settings.S3_REGION,
            use_ssl=settings.S3_USE_SSL,
        )
        self._checked_buckets: set[str] = set()

    def ensure_bucket(self, bucket: str) -> None:
        if bucket in self._checked_buckets:
            return
        try:
            self.client.head_bucket(Bucket=bucket)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code not in {"404", "NoSuchBucket", "NotFound"}:
                raise
            kwargs: dict = {"Bucket": bucket}
            if settings.S3_REGION and settings.S3_REGION != "us-east-1":
                kwargs["CreateBucketConfiguration"] = {"LocationConstraint": settings.S3_REGION}
            try:
                self.client.create_bucket(**kwargs)
            except ClientError as create_exc:
                create_code = str(create_exc.response.get("Error", {}).get("Code", ""))
                if create_code not in {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}:
                    raise
        self._checked_buckets.add(bucket)

    def upload(self, bucket: str, key: str, fileobj: BinaryIO, content_type: str | None = None) -> str:
        self.ensure_bucket(bucket)
        extra = {"ContentType": content_type} if content_type else None
        self.client.upload_fileobj(fileobj, bucket, key, ExtraArgs=extra)
        logger.info("uploaded firmware object bucket=%s key=%s", bucket, key)
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=settings.FIRMWARE_URL_TTL_SECONDS,
        )

    def move(self, src_bucket: str, dst_bucket: str, key: str) -> bool:
        """Copy ``key`` into ``dst_bucket`` and drop the source; a missing source is a no-op."""
        self.ensure_bucket(dst_bucket)
        try:
            self.client.copy_object(Bucket=dst_bucket, Key=key, CopySource={"Bucket": src_bucket, "Key": key})
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _MISSING_OBJECT_CODES:
                logger.warning("firmware object already moved bucket=%s key=%s", src_bucket, key)
                return False
            raise
        self.client.delete_object(Bucket=src_bucket, Key=key)
        logger.info("moved firmware object key=%s from=%s to=%s", key, src_bucket, dst_bucket)
        return True


@lru_cache(maxsize=1)
def get_firmware_storage() -> FirmwareStorage:
    return FirmwareStorage()

# feeling_vibe/repositories/s3_impl/file_storage_s3_impl.py
import logging
import os
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from feeling_vibe.config.storage import S3Config
from feeling_vibe.errors import InvalidRequestError
from feeling_vibe.helpers.clock import Clock, utc_now, ensure_utc
from feeling_vibe.models.storage import BlobInfo, StoredBlob
from feeling_vibe.repositories.file_storage import FileStorage, UploadData

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _is_not_found(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _NOT_FOUND_CODES


class FileStorageS3Impl(FileStorage):
    """S3 (or S3-compatible) object storage, one object per upload keyed by filename"""

    storage_type = "s3"

    def __init__(self, config: S3Config, clock: Clock = utc_now, client=None):
        super().__init__(clock)
        self.config = config
        self.bucket = config.bucket
        self.region = config.region
        self.client = client or boto3.client(
            "s3",
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            endpoint_url=config.endpoint_url or None
        )
        logger.info(f"☁️ S3 storage client created for bucket '{self.bucket}'")

    def upload_file(self, data: UploadData, filename: str, content_type: Optional[str] = None) -> StoredBlob:
        body = self._read_body(data)
        try:
            result = self.client.put_object(
                Bucket=self.bucket,
                Key=filename,
                Body=body,
                ContentType=content_type or "application/octet-stream"
            )
            logger.info(f"☁️ File uploaded to S3: {filename}")

            return StoredBlob(
                filename=filename,
                url=self._object_url(filename),
                size=len(body),
                content_type=content_type,
                etag=str(result.get("ETag", "")).strip('"') or None
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error uploading file to S3: {e}")
            raise

    def delete_file(self, filename: str) -> bool:
        # S3 deletes are idempotent, so check existence first to report not-found
        if self._head(filename) is None:
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=filename)
            logger.info(f"🗑️ File deleted from S3: {filename}")
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error deleting file from S3: {e}")
            raise

    def get_file_info(self, filename: str) -> Optional[BlobInfo]:
        head = self._head(filename)
        if head is None:
            return None

        last_modified = ensure_utc(head["LastModified"])
        return BlobInfo(
            filename=filename,
            url=self._object_url(filename),
            size=int(head.get("ContentLength", 0)),
            created_at=last_modified,
            modified_at=last_modified,
            content_type=head.get("ContentType"),
            etag=str(head.get("ETag", "")).strip('"') or None
        )

    def list_files(self) -> List[BlobInfo]:
        infos = []
        paginator = self.client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket):
            for obj in page.get("Contents", []):
                last_modified = ensure_utc(obj["LastModified"])
                infos.append(BlobInfo(
                    filename=obj["Key"],
                    url=self._object_url(obj["Key"]),
                    size=int(obj.get("Size", 0)),
                    created_at=last_modified,
                    modified_at=last_modified,
                    etag=str(obj.get("ETag", "")).strip('"') or None
                ))
        return infos

    def generate_presigned_url(self, filename: str, expires_in: int = 3600) -> Optional[str]:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": filename},
                ExpiresIn=expires_in
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Error generating presigned URL: {e}")
            return None

    def get_health(self) -> Dict[str, Any]:
        if not self.bucket:
            return {
                "status": "not_configured",
                "storage": "s3",
                "configured": False,
                "error": "S3 credentials or bucket not configured"
            }
        try:
            self.client.head_bucket(Bucket=self.bucket)
            stats = self.get_storage_stats().to_dict()
            return {
                "status": "healthy",
                "storage": "s3",
                "configured": True,
                "bucket": self.bucket,
                "region": self.region,
                **stats
            }
        except (ClientError, BotoCoreError) as e:
            return {
                "status": "error",
                "storage": "s3",
                "configured": True,
                "error": str(e)
            }

    def _head(self, filename: str) -> Optional[Dict[str, Any]]:
        try:
            return self.client.head_object(Bucket=self.bucket, Key=filename)
        except ClientError as e:
            if _is_not_found(e):
                return None
            logger.error(f"Error getting file info from S3: {e}")
            raise

    @staticmethod
    def _read_body(data: UploadData) -> bytes:
        if isinstance(data, (bytes, bytearray)):
            return bytes(data)
        if hasattr(data, "read"):
            return data.read()
        if isinstance(data, (str, os.PathLike)):
            with open(data, "rb") as f:
                return f.read()
        raise InvalidRequestError("Invalid file format for S3 upload")

    def _object_url(self, key: str) -> str:
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{key}"
        if self.config.endpoint_url:
            return f"{self.config.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

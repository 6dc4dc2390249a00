# feeling_vibe/services/storage_service.py
import logging
import random
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from feeling_vibe.config.storage import StorageConfig, DEFAULT_ALLOWED_EXTENSIONS
from feeling_vibe.errors import ConfigurationError, ServiceNotInitializedError
from feeling_vibe.helpers.clock import Clock, utc_now
from feeling_vibe.models.storage import BatchItemResult, BlobInfo, StorageStats, StoredBlob
from feeling_vibe.repositories.file_storage import FileStorage, UploadData
from feeling_vibe.repositories.local_impl.file_storage_local_impl import FileStorageLocalImpl
from feeling_vibe.repositories.s3_impl.file_storage_s3_impl import FileStorageS3Impl

logger = logging.getLogger(__name__)

# (original filename, data, content type)
UploadItem = Tuple[str, UploadData, Optional[str]]

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


class StorageService:
    """Blob storage facade: picks S3 when it is configured and healthy, local disk otherwise"""

    def __init__(self, config: StorageConfig, clock: Clock = utc_now):
        self.config = config
        self.clock = clock
        self.storage: Optional[FileStorage] = None
        self.type: Optional[str] = None

    def initialize(self) -> bool:
        if self.config.s3.has_credentials:
            logger.info("🔄 Attempting to initialize S3 storage...")
            try:
                s3_storage = FileStorageS3Impl(self.config.s3, clock=self.clock)
                health = s3_storage.get_health()
                if health.get("status") == "healthy":
                    self.storage = s3_storage
                    self.type = "s3"
                    logger.info("✅ Using AWS S3 storage")
                    return True
                logger.warning(f"⚠️ S3 not healthy ({health.get('error')}), falling back to local storage")
            except Exception as e:
                logger.warning(f"⚠️ S3 initialization failed, falling back to local storage: {e}")

        logger.info("🔄 Initializing local file storage...")
        try:
            local_storage = FileStorageLocalImpl(self.config.local, clock=self.clock)
            health = local_storage.get_health()
        except OSError as e:
            logger.error(f"❌ Failed to initialize any storage: {e}")
            raise ConfigurationError("Storage initialization failed") from e

        if health.get("status") != "healthy":
            logger.error(f"❌ Failed to initialize any storage: {health.get('error')}")
            raise ConfigurationError("Storage initialization failed")

        self.storage = local_storage
        self.type = "local"
        logger.info("✅ Using local file storage")
        return True

    def _require_storage(self) -> FileStorage:
        if self.storage is None:
            raise ServiceNotInitializedError("Storage")
        return self.storage

    # File operations

    def upload_file(self, data: UploadData, filename: str, content_type: Optional[str] = None) -> StoredBlob:
        return self._require_storage().upload_file(data, filename, content_type)

    def delete_file(self, filename: str) -> bool:
        return self._require_storage().delete_file(filename)

    def get_file_info(self, filename: str) -> Optional[BlobInfo]:
        return self._require_storage().get_file_info(filename)

    def list_files(self) -> List[BlobInfo]:
        return self._require_storage().list_files()

    def get_storage_stats(self) -> StorageStats:
        return self._require_storage().get_storage_stats()

    def cleanup_old_files(self, days_old: int = 30) -> int:
        return self._require_storage().cleanup_old_files(days_old)

    def generate_presigned_url(self, filename: str, expires_in: Optional[int] = None) -> Optional[str]:
        storage = self._require_storage()
        if expires_in is None:
            expires_in = self.config.presigned_url_expiry
        return storage.generate_presigned_url(filename, expires_in)

    # Health and status

    def get_health(self) -> Dict[str, Any]:
        if self.storage is None:
            return {
                "status": "not_initialized",
                "storage": "none",
                "type": None,
                "error": "Storage not initialized"
            }
        health = self.storage.get_health()
        return {**health, "type": self.type}

    def get_type(self) -> Optional[str]:
        return self.type

    def is_initialized(self) -> bool:
        return self.storage is not None

    # Utility methods

    @staticmethod
    def generate_unique_filename(original_name: str) -> str:
        """upload-<epoch ms>-<random>.<ext>; names without an extension get none"""
        timestamp = int(time.time() * 1000)
        suffix = random.randint(0, 10 ** 9)
        extension = StorageService.get_file_extension(original_name)
        if not extension:
            return f"upload-{timestamp}-{suffix}"
        return f"upload-{timestamp}-{suffix}.{extension}"

    @staticmethod
    def get_file_extension(filename: str) -> str:
        if not filename or "." not in filename:
            return ""
        return filename.rsplit(".", 1)[-1].lower()

    @staticmethod
    def is_valid_file_type(filename: str, allowed_types: Optional[Sequence[str]] = None) -> bool:
        allowed = allowed_types if allowed_types is not None else DEFAULT_ALLOWED_EXTENSIONS
        extension = StorageService.get_file_extension(filename)
        return bool(extension) and extension in {t.lower() for t in allowed}

    @staticmethod
    def format_file_size(size_bytes: int) -> str:
        if size_bytes <= 0:
            return "0 Bytes"
        value = float(size_bytes)
        index = 0
        while value >= 1024 and index < len(_SIZE_UNITS) - 1:
            value /= 1024
            index += 1
        return f"{round(value, 2):g} {_SIZE_UNITS[index]}"

    # Batch operations

    def upload_multiple_files(self, files: Iterable[UploadItem]) -> List[BatchItemResult]:
        self._require_storage()
        results = []

        for original_name, data, content_type in files:
            try:
                filename = self.generate_unique_filename(original_name)
                blob = self.upload_file(data, filename, content_type)
                results.append(BatchItemResult(success=True, filename=blob.filename, url=blob.url, size=blob.size))
            except Exception as e:
                logger.error(f"Error uploading {original_name} in batch: {e}")
                results.append(BatchItemResult(success=False, filename=original_name, error=str(e)))

        return results

    def delete_multiple_files(self, filenames: Iterable[str]) -> List[BatchItemResult]:
        self._require_storage()
        results = []

        for filename in filenames:
            try:
                results.append(BatchItemResult(success=self.delete_file(filename), filename=filename))
            except Exception as e:
                logger.error(f"Error deleting {filename} in batch: {e}")
                results.append(BatchItemResult(success=False, filename=filename, error=str(e)))

        return results

    # Maintenance

    def perform_maintenance(self, days_old: Optional[int] = None) -> Dict[str, Any]:
        self._require_storage()
        if days_old is None:
            days_old = self.config.retention_days

        logger.info("🔧 Starting storage maintenance...")
        try:
            deleted_count = self.cleanup_old_files(days_old)
            stats = self.get_storage_stats()
            logger.info("✅ Storage maintenance completed")
            return {
                "success": True,
                "deleted_files": deleted_count,
                "current_stats": stats.to_dict()
            }
        except Exception as e:
            logger.error(f"❌ Storage maintenance failed: {e}")
            return {
                "success": False,
                "error": str(e)
            }

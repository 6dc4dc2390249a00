from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, BinaryIO, Dict, List, Optional, Union
import logging
import os

from feeling_vibe.helpers.clock import Clock, utc_now
from feeling_vibe.models.storage import BlobInfo, StorageStats, StoredBlob

logger = logging.getLogger(__name__)

# bytes, a readable binary stream, or a path to an existing file
UploadData = Union[bytes, bytearray, BinaryIO, str, os.PathLike]


class FileStorage(ABC):
    """Blob storage contract shared by the local and S3 backends"""

    storage_type: str = "unknown"

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    @abstractmethod
    def upload_file(self, data: UploadData, filename: str, content_type: Optional[str] = None) -> StoredBlob:
        pass

    @abstractmethod
    def delete_file(self, filename: str) -> bool:
        """Returns False when the file does not exist"""
        pass

    @abstractmethod
    def get_file_info(self, filename: str) -> Optional[BlobInfo]:
        pass

    @abstractmethod
    def list_files(self) -> List[BlobInfo]:
        pass

    @abstractmethod
    def generate_presigned_url(self, filename: str, expires_in: int = 3600) -> Optional[str]:
        pass

    @abstractmethod
    def get_health(self) -> Dict[str, Any]:
        pass

    def get_storage_stats(self) -> StorageStats:
        files = self.list_files()
        if not files:
            return StorageStats()

        total_size = sum(f.size for f in files)
        created = [f.created_at for f in files]
        return StorageStats(
            total_files=len(files),
            total_size=total_size,
            average_file_size=total_size / len(files),
            oldest_file=min(created),
            newest_file=max(created)
        )

    def cleanup_old_files(self, days_old: int = 30) -> int:
        """Delete every file created before now - days_old; returns the count deleted"""
        cutoff = self.clock() - timedelta(days=days_old)
        deleted_count = 0

        for info in self.list_files():
            if info.created_at >= cutoff:
                continue
            try:
                if self.delete_file(info.filename):
                    deleted_count += 1
            except Exception as e:
                logger.error(f"Error deleting old file {info.filename}: {e}")

        logger.info(f"🧹 Cleaned up {deleted_count} old files from {self.storage_type} storage")
        return deleted_count

# feeling_vibe/repositories/local_impl/file_storage_local_impl.py
import logging
import mimetypes
import os
import shutil
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from feeling_vibe.config.storage import LocalStorageConfig
from feeling_vibe.errors import InvalidRequestError
from feeling_vibe.helpers.clock import Clock, utc_now
from feeling_vibe.models.storage import BlobInfo, StoredBlob
from feeling_vibe.repositories.file_storage import FileStorage, UploadData

logger = logging.getLogger(__name__)

# st_mtime_ns is exact; the float st_mtime can land a microsecond off
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

WRITE_TEST_FILE = ".write-test"


class FileStorageLocalImpl(FileStorage):
    """Stores uploads as plain files under a single directory"""

    storage_type = "local"

    def __init__(self, config: LocalStorageConfig, clock: Clock = utc_now):
        super().__init__(clock)
        self.config = config
        self.uploads_dir = os.path.abspath(config.uploads_dir)
        self._ensure_uploads_dir()

    def _ensure_uploads_dir(self):
        if not os.path.isdir(self.uploads_dir):
            os.makedirs(self.uploads_dir, exist_ok=True)
            logger.info(f"📁 Created uploads directory: {self.uploads_dir}")

    def upload_file(self, data: UploadData, filename: str, content_type: Optional[str] = None) -> StoredBlob:
        file_path = self._path_for(filename)
        if file_path is None:
            raise InvalidRequestError(f"Invalid filename: {filename!r}")

        try:
            if isinstance(data, (bytes, bytearray)):
                with open(file_path, "wb") as f:
                    f.write(data)
            elif hasattr(data, "read"):
                with open(file_path, "wb") as f:
                    shutil.copyfileobj(data, f)
            elif isinstance(data, (str, os.PathLike)):
                shutil.copyfile(data, file_path)
            else:
                raise InvalidRequestError("Invalid file format for local storage")

            size = os.path.getsize(file_path)
            logger.info(f"📁 File uploaded locally: {filename}")

            return StoredBlob(
                filename=filename,
                url=self._url_for(filename),
                size=size,
                content_type=content_type or mimetypes.guess_type(filename)[0],
                path=file_path
            )
        except OSError as e:
            logger.error(f"Error uploading file locally: {e}")
            raise

    def delete_file(self, filename: str) -> bool:
        file_path = self._path_for(filename)
        if file_path is None or not os.path.isfile(file_path):
            return False

        os.remove(file_path)
        logger.info(f"🗑️ File deleted locally: {filename}")
        return True

    def get_file_info(self, filename: str) -> Optional[BlobInfo]:
        file_path = self._path_for(filename)
        if file_path is None or not os.path.isfile(file_path):
            return None

        stats = os.stat(file_path)
        modified = _EPOCH + timedelta(microseconds=stats.st_mtime_ns // 1000)
        return BlobInfo(
            filename=filename,
            url=self._url_for(filename),
            size=stats.st_size,
            created_at=modified,
            modified_at=modified,
            content_type=mimetypes.guess_type(filename)[0],
            path=file_path
        )

    def list_files(self) -> List[BlobInfo]:
        infos = []
        for name in sorted(os.listdir(self.uploads_dir)):
            if name.startswith("."):
                continue
            info = self.get_file_info(name)
            if info is not None:
                infos.append(info)
        return infos

    def generate_presigned_url(self, filename: str, expires_in: int = 3600) -> Optional[str]:
        # Local files are served by the static mount; there is nothing to sign
        if self.get_file_info(filename) is None:
            return None
        return self._url_for(filename)

    def get_health(self) -> Dict[str, Any]:
        try:
            test_file = os.path.join(self.uploads_dir, WRITE_TEST_FILE)
            with open(test_file, "w") as f:
                f.write("test")
            os.remove(test_file)

            stats = self.get_storage_stats().to_dict()
            return {
                "status": "healthy",
                "storage": "local",
                "writable": True,
                "uploads_dir": self.uploads_dir,
                **stats
            }
        except OSError as e:
            return {
                "status": "error",
                "storage": "local",
                "writable": False,
                "error": str(e)
            }

    def _path_for(self, filename: str) -> Optional[str]:
        """Resolve a bare filename inside the uploads dir, rejecting anything path-like"""
        if not filename or filename in (".", "..") or os.path.basename(filename) != filename:
            return None
        if "/" in filename or "\\" in filename:
            return None
        return os.path.join(self.uploads_dir, filename)

    def _url_for(self, filename: str) -> str:
        return f"{self.config.url_prefix.rstrip('/')}/{filename}"

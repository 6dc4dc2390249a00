# feeling_vibe/models/storage.py
from dataclasses import dataclass
from typing import Any, Dict, Optional
from datetime import datetime


@dataclass
class StoredBlob:
    """Reference returned after an upload"""
    filename: str
    url: str
    size: int
    content_type: Optional[str] = None
    path: Optional[str] = None
    etag: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "url": self.url,
            "size": self.size,
            "content_type": self.content_type,
        }


@dataclass
class BlobInfo:
    filename: str
    url: str
    size: int
    created_at: datetime
    modified_at: Optional[datetime] = None
    content_type: Optional[str] = None
    path: Optional[str] = None
    etag: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "url": self.url,
            "size": self.size,
            "created_at": self.created_at.isoformat(),
            "modified_at": self.modified_at.isoformat() if self.modified_at else None,
            "content_type": self.content_type,
        }


@dataclass
class StorageStats:
    total_files: int = 0
    total_size: int = 0
    average_file_size: float = 0.0
    oldest_file: Optional[datetime] = None
    newest_file: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_size": self.total_size,
            "average_file_size": self.average_file_size,
            "oldest_file": self.oldest_file.isoformat() if self.oldest_file else None,
            "newest_file": self.newest_file.isoformat() if self.newest_file else None,
        }


@dataclass
class BatchItemResult:
    success: bool
    filename: str
    url: Optional[str] = None
    size: Optional[int] = None
    error: Optional[str] = None

# config/storage.py
from dataclasses import dataclass, field
from typing import List
import os
from .base import BaseConfig

DEFAULT_ALLOWED_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "mp4", "webm", "mov"]

@dataclass
class S3Config(BaseConfig):
    """S3-compatible object storage configuration"""
    access_key_id: str = ""
    secret_access_key: str = ""
    bucket: str = ""
    region: str = "us-east-1"
    endpoint_url: str = ""  # Set for S3-compatible services (MinIO, R2, ...)
    public_base_url: str = ""

    @classmethod
    def from_env(cls) -> 'S3Config':
        return cls(
            access_key_id=os.getenv('AWS_ACCESS_KEY_ID', ""),
            secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY', ""),
            bucket=os.getenv('AWS_S3_BUCKET', ""),
            region=os.getenv('AWS_REGION', "us-east-1"),
            endpoint_url=os.getenv('AWS_ENDPOINT_URL', ""),
            public_base_url=os.getenv('AWS_S3_PUBLIC_URL', "")
        )

    @property
    def has_credentials(self) -> bool:
        """Access key, secret key and bucket must all be non-empty"""
        return bool(self.access_key_id and self.secret_access_key and self.bucket)

@dataclass
class LocalStorageConfig(BaseConfig):
    """Local filesystem storage configuration"""
    uploads_dir: str = "uploads"
    url_prefix: str = "/uploads"

    @classmethod
    def from_env(cls) -> 'LocalStorageConfig':
        return cls(
            uploads_dir=os.getenv('UPLOADS_DIR', "uploads"),
            url_prefix=os.getenv('UPLOADS_URL_PREFIX', "/uploads")
        )

@dataclass
class StorageConfig(BaseConfig):
    """Blob storage configuration"""
    s3: S3Config = field(default_factory=lambda: S3Config())
    local: LocalStorageConfig = field(default_factory=lambda: LocalStorageConfig())
    max_upload_size_mb: int = 10
    allowed_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS))
    retention_days: int = 30
    presigned_url_expiry: int = 3600

    def __post_init__(self):
        if self.s3 is None:
            self.s3 = S3Config.from_env()
        if self.local is None:
            self.local = LocalStorageConfig.from_env()

    @classmethod
    def from_env(cls) -> 'StorageConfig':
        return cls(
            s3=S3Config.from_env(),
            local=LocalStorageConfig.from_env(),
            max_upload_size_mb=cls.get_env_int('MAX_UPLOAD_SIZE_MB', 10),
            allowed_extensions=cls.get_env_list('ALLOWED_EXTENSIONS', DEFAULT_ALLOWED_EXTENSIONS),
            retention_days=cls.get_env_int('STORAGE_RETENTION_DAYS', 30),
            presigned_url_expiry=cls.get_env_int('PRESIGNED_URL_EXPIRY', 3600)
        )

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

# config/settings.py
from dataclasses import dataclass, field
from typing import List
import os
import logging
from .base import BaseConfig
from .database import DatabaseConfig
from .storage import StorageConfig
from .external import ExternalConfig

logger = logging.getLogger(__name__)

@dataclass
class AppConfig(BaseConfig):
    """Main application configuration"""
    # Application settings
    log_level: str = "INFO"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Component configurations
    database: DatabaseConfig = None
    storage: StorageConfig = None
    external: ExternalConfig = None

    def __post_init__(self):
        if self.database is None:
            self.database = DatabaseConfig.from_env()
        if self.storage is None:
            self.storage = StorageConfig.from_env()
        if self.external is None:
            self.external = ExternalConfig.from_env()

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Create complete configuration from environment variables"""
        return cls(
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            debug=cls.get_env_bool('DEBUG', False),
            host=os.getenv('HOST', '0.0.0.0'),
            port=cls.get_env_int('PORT', 3001),
            cors_origins=cls.get_env_list('CORS_ORIGINS', ["*"]),

            database=DatabaseConfig.from_env(),
            storage=StorageConfig.from_env(),
            external=ExternalConfig.from_env()
        )

    def validate(self) -> bool:
        """Validate configuration settings"""
        errors = []

        if self.port <= 0 or self.port > 65535:
            errors.append(f"Invalid port: {self.port}")

        if self.storage.max_upload_size_mb <= 0:
            errors.append("MAX_UPLOAD_SIZE_MB must be positive")

        if not self.storage.allowed_extensions:
            errors.append("At least one allowed upload extension must be specified")

        if self.database.search_page_size <= 0:
            errors.append("SEARCH_PAGE_SIZE must be positive")

        if self.database.mongo.connection_timeout_ms <= 0:
            errors.append("MONGODB_TIMEOUT_MS must be positive")

        if errors:
            logger.error("Configuration validation errors:")
            for error in errors:
                logger.error(f"  - {error}")
            return False

        return True

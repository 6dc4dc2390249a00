# config/__init__.py
from .settings import AppConfig
from .database import DatabaseConfig, MongoConfig, JsonStoreConfig
from .storage import StorageConfig, S3Config, LocalStorageConfig
from .external import ExternalConfig, OpenAIConfig

__all__ = [
    'AppConfig',
    'DatabaseConfig',
    'MongoConfig',
    'JsonStoreConfig',
    'StorageConfig',
    'S3Config',
    'LocalStorageConfig',
    'ExternalConfig',
    'OpenAIConfig'
]

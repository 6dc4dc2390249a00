# config/database.py
import os
from dataclasses import dataclass
from feeling_vibe.config.base import BaseConfig

@dataclass
class MongoConfig(BaseConfig):
    """MongoDB document database configuration"""
    uri: str = ""
    database_name: str = "feeling-the-vibe"
    analyses_collection: str = "analyses"
    users_collection: str = "users"
    connection_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> 'MongoConfig':
        return cls(
            uri=os.getenv('MONGODB_URI', cls.uri).strip(),
            database_name=os.getenv('MONGODB_DATABASE', cls.database_name),
            analyses_collection=os.getenv('MONGODB_ANALYSES_COLLECTION', cls.analyses_collection),
            users_collection=os.getenv('MONGODB_USERS_COLLECTION', cls.users_collection),
            connection_timeout_ms=cls.get_env_int('MONGODB_TIMEOUT_MS', 5000)
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.uri and self.uri.strip())

@dataclass
class JsonStoreConfig(BaseConfig):
    """Flat-file JSON document store configuration"""
    data_dir: str = "data"
    analyses_file: str = "analyses.json"
    users_file: str = "users.json"

    @classmethod
    def from_env(cls) -> 'JsonStoreConfig':
        return cls(
            data_dir=os.getenv('DATA_DIR', cls.data_dir),
            analyses_file=os.getenv('ANALYSES_FILE', cls.analyses_file),
            users_file=os.getenv('USERS_FILE', cls.users_file)
        )

    @property
    def analyses_path(self) -> str:
        return os.path.join(self.data_dir, self.analyses_file)

    @property
    def users_path(self) -> str:
        return os.path.join(self.data_dir, self.users_file)

@dataclass
class DatabaseConfig(BaseConfig):
    """Main database configuration"""
    mongo: MongoConfig = None
    json_store: JsonStoreConfig = None
    search_page_size: int = 10

    def __post_init__(self):
        if self.mongo is None:
            self.mongo = MongoConfig.from_env()
        if self.json_store is None:
            self.json_store = JsonStoreConfig.from_env()

    @classmethod
    def from_env(cls) -> 'DatabaseConfig':
        return cls(
            mongo=MongoConfig.from_env(),
            json_store=JsonStoreConfig.from_env(),
            search_page_size=cls.get_env_int('SEARCH_PAGE_SIZE', 10)
        )

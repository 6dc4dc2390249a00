# config/base.py
from abc import ABC, abstractmethod
from dataclasses import dataclass
import os
from typing import List

@dataclass
class BaseConfig(ABC):
    """Base configuration class with common functionality"""

    @classmethod
    @abstractmethod
    def from_env(cls) -> 'BaseConfig':
        """Create configuration from environment variables"""
        pass

    @staticmethod
    def get_env_bool(key: str, default: bool = False) -> bool:
        """Get boolean value from environment variable"""
        return os.getenv(key, str(default)).lower() in ('true', '1', 'yes', 'on')

    @staticmethod
    def get_env_int(key: str, default: int) -> int:
        """Get integer value from environment variable"""
        return int(os.getenv(key, str(default)))

    @staticmethod
    def get_env_float(key: str, default: float) -> float:
        """Get float value from environment variable"""
        return float(os.getenv(key, str(default)))

    @staticmethod
    def get_env_list(key: str, default: List[str]) -> List[str]:
        """Get comma-separated list from environment variable"""
        env_value = os.getenv(key, '')
        if env_value.strip():
            return [item.strip() for item in env_value.split(',') if item.strip()]
        return list(default)


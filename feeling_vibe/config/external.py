# config/external.py
from dataclasses import dataclass, field
import os
from .base import BaseConfig

@dataclass
class OpenAIConfig(BaseConfig):
    """Generation provider (OpenAI chat completions) configuration"""
    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.8
    max_tokens: int = 1200
    timeout: float = 30.0
    base_url: str = ""

    @classmethod
    def from_env(cls) -> 'OpenAIConfig':
        return cls(
            api_key=os.getenv('OPENAI_API_KEY', ""),
            model=os.getenv('OPENAI_MODEL', "gpt-3.5-turbo"),
            temperature=cls.get_env_float('OPENAI_TEMPERATURE', 0.8),
            max_tokens=cls.get_env_int('OPENAI_MAX_TOKENS', 1200),
            timeout=cls.get_env_float('OPENAI_TIMEOUT', 30.0),
            base_url=os.getenv('OPENAI_BASE_URL', "")
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

@dataclass
class ExternalConfig(BaseConfig):
    """External services configuration"""
    openai: OpenAIConfig = field(default_factory=lambda: OpenAIConfig())

    def __post_init__(self):
        if self.openai is None:
            self.openai = OpenAIConfig.from_env()

    @classmethod
    def from_env(cls) -> 'ExternalConfig':
        return cls(
            openai=OpenAIConfig.from_env()
        )

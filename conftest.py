from datetime import datetime, timedelta, timezone

import mongomock
import pytest

from feeling_vibe.config import (
    AppConfig,
    DatabaseConfig,
    ExternalConfig,
    JsonStoreConfig,
    LocalStorageConfig,
    MongoConfig,
    OpenAIConfig,
    S3Config,
    StorageConfig,
)
from feeling_vibe.models.analysis import AnalysisRecord, PlaylistItem
from feeling_vibe.repositories.json_impl.analysis_repository_json_impl import AnalysisRepositoryJsonImpl
from feeling_vibe.repositories.mongo_impl.analysis_repository_mongo_impl import AnalysisRepositoryMongoImpl

BASE_TIME = datetime(2024, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = BASE_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def make_record(emotion="happy", confidence=0.8, mood="energetic", vibe="Sunny and upbeat", **extra) -> AnalysisRecord:
    playlist = extra.pop("playlist", [
        PlaylistItem("Levitating", "Dua Lipa", "Feel-good disco vibes"),
        PlaylistItem("Blinding Lights", "The Weeknd", "Energetic and uplifting"),
    ])
    return AnalysisRecord(
        dominant_emotion=emotion,
        confidence=confidence,
        vibe=vibe,
        mood_category=mood,
        playlist=playlist,
        **extra
    )


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def json_store_config(tmp_path):
    return JsonStoreConfig(data_dir=str(tmp_path / "data"))


@pytest.fixture
def json_repo(json_store_config, clock):
    repo = AnalysisRepositoryJsonImpl(json_store_config, clock=clock)
    repo.connect()
    return repo


@pytest.fixture
def mongo_client():
    return mongomock.MongoClient()


@pytest.fixture
def mongo_config():
    return MongoConfig(uri="mongodb://localhost:27017", database_name="vibe-test")


@pytest.fixture
def mongo_repo(mongo_config, mongo_client, clock):
    repo = AnalysisRepositoryMongoImpl(mongo_config, clock=clock, client=mongo_client)
    repo.connect()
    return repo


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        database=DatabaseConfig(
            mongo=MongoConfig(),
            json_store=JsonStoreConfig(data_dir=str(tmp_path / "data"))
        ),
        storage=StorageConfig(
            s3=S3Config(),
            local=LocalStorageConfig(uploads_dir=str(tmp_path / "uploads"))
        ),
        external=ExternalConfig(openai=OpenAIConfig())
    )


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches real AWS"""
    for name, value in {
        "AWS_ACCESS_KEY_ID": "testing",
        "AWS_SECRET_ACCESS_KEY": "testing",
        "AWS_SECURITY_TOKEN": "testing",
        "AWS_SESSION_TOKEN": "testing",
        "AWS_DEFAULT_REGION": "us-east-1",
    }.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)

from datetime import timedelta

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from conftest import BASE_TIME, make_record
from feeling_vibe.config import MongoConfig
from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.models.user import UserRecord
from feeling_vibe.repositories.mongo_impl.analysis_repository_mongo_impl import AnalysisRepositoryMongoImpl


def test_connect_sets_collections(mongo_repo):
    assert mongo_repo.connected is True
    assert mongo_repo.analyses.name == "analyses"
    assert mongo_repo.users.name == "users"


def test_save_and_get_stores_native_documents(mongo_repo, mongo_client):
    quiz = {"moodWords": ["chill", "dreamy"], "activity": "relaxing"}
    analysis_id = mongo_repo.save_analysis(make_record(mood_quiz_data=quiz, filename="upload-2.png"))

    assert ObjectId.is_valid(analysis_id)

    raw = mongo_client["vibe-test"]["analyses"].find_one({"_id": ObjectId(analysis_id)})
    assert raw["mood_quiz_data"] == quiz
    assert raw["playlist"][0]["title"] == "Levitating"

    stored = mongo_repo.get_analysis(analysis_id)
    assert stored.mood_quiz_data == quiz
    assert stored.filename == "upload-2.png"
    assert stored.created_at == BASE_TIME
    assert stored.created_at.tzinfo is not None


@pytest.mark.parametrize("bad_id", ["not-an-id", "123", "", "1716000000000"])
def test_malformed_ids_are_misses(mongo_repo, bad_id):
    assert mongo_repo.get_analysis(bad_id) is None
    assert mongo_repo.delete_analysis(bad_id) is False
    assert mongo_repo.toggle_favorite(bad_id) is False
    assert mongo_repo.increment_view_count(bad_id) is False
    assert mongo_repo.get_user(bad_id) is None


def test_unknown_valid_id(mongo_repo):
    missing = str(ObjectId())
    assert mongo_repo.get_analysis(missing) is None
    assert mongo_repo.delete_analysis(missing) is False
    assert mongo_repo.toggle_favorite(missing) is False
    assert mongo_repo.update_analysis(missing, {"vibe": "x"}) is False


def test_recent_and_search(mongo_repo, clock):
    for index in range(12):
        emotion = "happy" if index % 2 else "sad"
        mongo_repo.save_analysis(make_record(emotion=emotion, vibe=f"Vibe number {index}"))
        clock.advance(minutes=1)

    recent = mongo_repo.get_recent_analyses(limit=3)
    assert [r.vibe for r in recent] == ["Vibe number 11", "Vibe number 10", "Vibe number 9"]
    assert mongo_repo.get_recent_analyses(limit=0) == []

    result = mongo_repo.search_analyses(AnalysisSearchFilter(emotion="HAPPY", page=2, limit=4))
    assert result.total == 6
    assert result.total_pages == 2
    assert len(result.analyses) == 2
    assert all(r.dominant_emotion == "happy" for r in result.analyses)

    beyond = mongo_repo.search_analyses(AnalysisSearchFilter(page=5, limit=4))
    assert beyond.analyses == []
    assert beyond.total == 12


def test_search_keyword_and_dates(mongo_repo, clock):
    mongo_repo.save_analysis(make_record(vibe="Quiet morning"))
    clock.advance(days=1)
    mongo_repo.save_analysis(make_record(vibe="Loud night"))

    assert mongo_repo.search_analyses(AnalysisSearchFilter(keyword="weeknd")).total == 2
    assert mongo_repo.search_analyses(AnalysisSearchFilter(keyword="quiet")).total == 1
    assert mongo_repo.search_analyses(AnalysisSearchFilter(keyword="a.b")).total == 0

    latest_only = mongo_repo.search_analyses(AnalysisSearchFilter(date_from=BASE_TIME + timedelta(days=1)))
    assert [r.vibe for r in latest_only.analyses] == ["Loud night"]


def test_toggle_update_and_views(mongo_repo, clock):
    analysis_id = mongo_repo.save_analysis(make_record())
    clock.advance(minutes=10)

    assert mongo_repo.toggle_favorite(analysis_id) is True
    assert mongo_repo.search_analyses(AnalysisSearchFilter(is_favorite=True)).total == 1
    assert mongo_repo.toggle_favorite(analysis_id) is False

    assert mongo_repo.update_analysis(analysis_id, {"vibe": "Updated"}) is True
    assert mongo_repo.increment_view_count(analysis_id) is True

    stored = mongo_repo.get_analysis(analysis_id)
    assert stored.vibe == "Updated"
    assert stored.view_count == 1
    assert stored.updated_at == BASE_TIME + timedelta(minutes=10)


def test_delete(mongo_repo):
    analysis_id = mongo_repo.save_analysis(make_record())

    assert mongo_repo.delete_analysis(analysis_id) is True
    assert mongo_repo.delete_analysis(analysis_id) is False


def test_analytics(mongo_repo, clock):
    empty = mongo_repo.get_analytics()
    assert empty.total_analyses == 0
    assert empty.average_confidence == 0
    assert list(empty.daily_activity.values()) == [0] * 7

    clock.advance(days=-35)
    mongo_repo.save_analysis(make_record(emotion="angry", mood="angry", confidence=0.9))
    clock.advance(days=34)
    mongo_repo.save_analysis(make_record(emotion="happy", confidence=0.5))
    clock.advance(days=1)
    mongo_repo.save_analysis(make_record(emotion="happy", confidence=0.4))

    summary = mongo_repo.get_analytics()
    assert summary.total_analyses == 3
    assert summary.recent_analyses == 2
    assert summary.emotion_distribution == {"angry": 1, "happy": 2}
    assert summary.mood_distribution == {"angry": 1, "energetic": 2}
    assert summary.daily_activity[BASE_TIME.date().isoformat()] == 1
    assert summary.daily_activity[(BASE_TIME - timedelta(days=1)).date().isoformat()] == 1
    assert summary.average_confidence == pytest.approx(0.6)


def test_users(mongo_repo):
    first = mongo_repo.save_user(UserRecord(username="ana"))
    second = mongo_repo.save_user(UserRecord(username="ben"))
    with_email = mongo_repo.save_user(UserRecord(email="cat@example.com", favorite_genres=["indie"]))

    assert len({first, second, with_email}) == 3
    assert mongo_repo.get_user(first).username == "ana"
    assert mongo_repo.get_user_by_email("cat@example.com").favorite_genres == ["indie"]
    assert mongo_repo.update_user(second, {"total_analyses": 4}) is True
    assert mongo_repo.get_user(second).total_analyses == 4


def test_health(mongo_repo):
    mongo_repo.save_analysis(make_record())

    health = mongo_repo.get_health()

    assert health["status"] == "healthy"
    assert health["database"] == "mongodb"
    assert health["total_analyses"] == 1
    assert health["last_analysis"] == BASE_TIME.isoformat()


def test_connect_failure_raises():
    repo = AnalysisRepositoryMongoImpl(MongoConfig(uri="mongodb://127.0.0.1:1", connection_timeout_ms=100))

    with pytest.raises(PyMongoError):
        repo.connect()
    assert repo.connected is False

import json
from datetime import timedelta

import pytest

from conftest import BASE_TIME, make_record
from feeling_vibe.models.analysis import PlaylistItem
from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.models.user import UserRecord


def test_connect_creates_empty_documents(json_repo, json_store_config):
    with open(json_store_config.analyses_path) as f:
        assert json.load(f) == []
    with open(json_store_config.users_path) as f:
        assert json.load(f) == []


def test_save_and_get_keeps_context_verbatim(json_repo, json_store_config):
    color_analysis = {"mood": "warm", "temperature": "warm", "dominantColors": [{"hex": "#ff0000", "percentage": 40}]}
    record = make_record(color_analysis=color_analysis, preferences={"genres": ["pop"]}, filename="upload-1.jpg")

    analysis_id = json_repo.save_analysis(record)
    stored = json_repo.get_analysis(analysis_id)

    assert stored.id == analysis_id
    assert stored.color_analysis == color_analysis
    assert stored.preferences == {"genres": ["pop"]}
    assert stored.mood_quiz_data is None
    assert [item.title for item in stored.playlist] == ["Levitating", "Blinding Lights"]
    assert stored.created_at == BASE_TIME
    assert stored.is_favorite is False
    assert stored.view_count == 0

    with open(json_store_config.analyses_path) as f:
        row = json.load(f)[0]
    assert isinstance(row["color_analysis"], str)
    assert json.loads(row["color_analysis"]) == color_analysis


def test_ids_stay_unique_within_the_same_millisecond(json_repo):
    ids = [json_repo.save_analysis(make_record()) for _ in range(3)]

    assert len(set(ids)) == 3
    assert [int(i) for i in ids] == sorted(int(i) for i in ids)
    assert ids[0] == str(int(BASE_TIME.timestamp() * 1000))


def test_unknown_ids(json_repo):
    assert json_repo.get_analysis("12345") is None
    assert json_repo.delete_analysis("12345") is False
    assert json_repo.toggle_favorite("12345") is False
    assert json_repo.increment_view_count("12345") is False
    assert json_repo.update_analysis("12345", {"vibe": "x"}) is False


def test_delete_removes_only_once(json_repo):
    analysis_id = json_repo.save_analysis(make_record())

    assert json_repo.delete_analysis(analysis_id) is True
    assert json_repo.delete_analysis(analysis_id) is False
    assert json_repo.get_analysis(analysis_id) is None


def test_recent_analyses_newest_first(json_repo, clock):
    ids = []
    for emotion in ("happy", "sad", "angry"):
        ids.append(json_repo.save_analysis(make_record(emotion=emotion)))
        clock.advance(minutes=1)

    recent = json_repo.get_recent_analyses(limit=2)

    assert [r.id for r in recent] == [ids[2], ids[1]]
    assert json_repo.get_recent_analyses(limit=0) == []


def test_search_filters(json_repo, clock):
    json_repo.save_analysis(make_record(emotion="happy", mood="energetic", vibe="Dancing in the sun"))
    clock.advance(hours=1)
    json_repo.save_analysis(make_record(emotion="sad", mood="melancholic", vibe="Rainy window",
                                        playlist=[PlaylistItem("Hurt", "Johnny Cash", "Raw emotion")]))
    clock.advance(hours=1)
    json_repo.save_analysis(make_record(emotion="happy", mood="excited", vibe="Party time", user_id="u1"))

    assert json_repo.search_analyses(AnalysisSearchFilter(emotion="HAP")).total == 2
    assert json_repo.search_analyses(AnalysisSearchFilter(mood="melan")).total == 1
    assert json_repo.search_analyses(AnalysisSearchFilter(keyword="johnny")).total == 1
    assert json_repo.search_analyses(AnalysisSearchFilter(keyword="window")).total == 1
    assert json_repo.search_analyses(AnalysisSearchFilter(user_id="u1")).total == 1

    in_range = json_repo.search_analyses(AnalysisSearchFilter(
        date_from=BASE_TIME + timedelta(hours=1),
        date_to=BASE_TIME + timedelta(hours=2)
    ))
    assert [r.dominant_emotion for r in in_range.analyses] == ["happy", "sad"]


def test_search_pagination(json_repo, clock):
    for _ in range(25):
        json_repo.save_analysis(make_record())
        clock.advance(seconds=1)

    first = json_repo.search_analyses(AnalysisSearchFilter(page=1, limit=10))
    last = json_repo.search_analyses(AnalysisSearchFilter(page=3, limit=10))
    beyond = json_repo.search_analyses(AnalysisSearchFilter(page=4, limit=10))

    assert first.total == 25
    assert first.total_pages == 3
    assert len(first.analyses) == 10
    assert len(last.analyses) == 5
    assert beyond.analyses == []
    assert beyond.total == 25
    assert first.analyses[0].created_at > first.analyses[-1].created_at


def test_favorites_filter_and_toggle(json_repo):
    first = json_repo.save_analysis(make_record())
    json_repo.save_analysis(make_record())

    assert json_repo.toggle_favorite(first) is True
    assert json_repo.search_analyses(AnalysisSearchFilter(is_favorite=True)).total == 1
    assert json_repo.toggle_favorite(first) is False
    assert json_repo.search_analyses(AnalysisSearchFilter(is_favorite=True)).total == 0


def test_update_and_view_count(json_repo, clock):
    analysis_id = json_repo.save_analysis(make_record())
    clock.advance(minutes=5)

    assert json_repo.update_analysis(analysis_id, {"vibe": "Changed", "tags": ["summer"]}) is True
    assert json_repo.increment_view_count(analysis_id) is True
    assert json_repo.increment_view_count(analysis_id) is True

    stored = json_repo.get_analysis(analysis_id)
    assert stored.vibe == "Changed"
    assert stored.tags == ["summer"]
    assert stored.view_count == 2
    assert stored.updated_at == BASE_TIME + timedelta(minutes=5)
    assert stored.created_at == BASE_TIME


def test_analytics_empty(json_repo):
    summary = json_repo.get_analytics()

    assert summary.total_analyses == 0
    assert summary.average_confidence == 0
    assert list(summary.daily_activity.values()) == [0] * 7
    assert list(summary.daily_activity)[-1] == BASE_TIME.date().isoformat()
    assert list(summary.daily_activity)[0] == (BASE_TIME - timedelta(days=6)).date().isoformat()


def test_analytics_counts(json_repo, clock):
    clock.advance(days=-40)
    json_repo.save_analysis(make_record(emotion="sad", mood="melancholic", confidence=0.2))
    clock.advance(days=38)
    json_repo.save_analysis(make_record(emotion="happy", confidence=0.6))
    clock.advance(days=2)
    json_repo.save_analysis(make_record(emotion="happy", confidence=0.7))

    summary = json_repo.get_analytics()

    assert summary.total_analyses == 3
    assert summary.recent_analyses == 2
    assert summary.emotion_distribution == {"happy": 2, "sad": 1}
    assert summary.mood_distribution == {"energetic": 2, "melancholic": 1}
    assert summary.daily_activity[BASE_TIME.date().isoformat()] == 1
    assert summary.daily_activity[(BASE_TIME - timedelta(days=2)).date().isoformat()] == 1
    assert summary.average_confidence == pytest.approx(0.5)


def test_users(json_repo, clock):
    user_id = json_repo.save_user(UserRecord(email="sam@example.com", username="sam", preferences={"genres": ["jazz"]}))
    clock.advance(hours=1)

    assert json_repo.get_user(user_id).preferences == {"genres": ["jazz"]}
    assert json_repo.get_user_by_email("sam@example.com").id == user_id
    assert json_repo.get_user_by_email("nobody@example.com") is None

    assert json_repo.update_user(user_id, {"username": "samuel"}) is True
    updated = json_repo.get_user(user_id)
    assert updated.username == "samuel"
    assert updated.last_active == BASE_TIME + timedelta(hours=1)
    assert json_repo.update_user("999", {"username": "x"}) is False


def test_corrupt_file_raises(json_repo, json_store_config):
    with open(json_store_config.analyses_path, "w") as f:
        f.write("{not json")

    with pytest.raises(ValueError):
        json_repo.get_recent_analyses()


def test_health(json_repo):
    json_repo.save_analysis(make_record())

    health = json_repo.get_health()

    assert health["status"] == "healthy"
    assert health["database"] == "json"
    assert health["total_analyses"] == 1
    assert health["total_users"] == 0


@pytest.mark.parametrize("repo_fixture", ["json_repo", "mongo_repo"])
@pytest.mark.parametrize("keyword, expected", [
    ("Beyoncé", 1),
    ("beyoncé", 1),
    ("cash", 1),
    ("artist", 0),
    ("title", 0),
    ("reason", 0),
])
def test_keyword_matches_playlist_values_on_every_backend(request, repo_fixture, keyword, expected):
    repo = request.getfixturevalue(repo_fixture)
    repo.save_analysis(make_record(vibe="Crown on", playlist=[PlaylistItem("Halo", "Beyoncé", "Soaring")]))
    repo.save_analysis(make_record(vibe="Low tide", playlist=[PlaylistItem("Hurt", "Johnny Cash", "Raw emotion")]))

    assert repo.search_analyses(AnalysisSearchFilter(keyword=keyword)).total == expected

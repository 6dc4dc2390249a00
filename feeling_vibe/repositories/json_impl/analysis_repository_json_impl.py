# feeling_vibe/repositories/json_impl/analysis_repository_json_impl.py
import json
import logging
import os
import tempfile
from datetime import timedelta
from typing import Any, Dict, List, Optional

from feeling_vibe.config.database import JsonStoreConfig
from feeling_vibe.helpers.clock import Clock, utc_now, parse_datetime
from feeling_vibe.helpers.query_builder import apply_filters, apply_ordering, apply_pagination, page_bounds, total_pages
from feeling_vibe.models.analysis import AnalysisRecord, AnalyticsSummary, PlaylistItem, SearchResult
from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.models.user import UserRecord
from feeling_vibe.repositories.analysis_repository import AnalysisRepository

logger = logging.getLogger(__name__)

# Opaque client context is kept as JSON strings inside the document
_OPAQUE_FIELDS = ("color_analysis", "preferences", "mood_quiz_data")


class AnalysisRepositoryJsonImpl(AnalysisRepository):
    """Flat-file backend: one JSON array of analyses (newest first) and one of
    users, each rewritten in full on every write. Concurrent writers are not
    serialized; the last writer wins."""

    backend_name = "json"

    def __init__(self, config: JsonStoreConfig, clock: Clock = utc_now):
        self.config = config
        self.clock = clock
        self.analyses_path = config.analyses_path
        self.users_path = config.users_path
        self.connected = False

    def connect(self) -> bool:
        os.makedirs(self.config.data_dir, exist_ok=True)
        for path in (self.analyses_path, self.users_path):
            if not os.path.exists(path):
                self._write_rows(path, [])
                logger.info(f"📁 Created {path}")
        self.connected = True
        logger.info(f"📁 Using JSON file database in {self.config.data_dir}")
        return True

    def disconnect(self) -> bool:
        self.connected = False
        logger.info("📁 JSON database disconnected")
        return True

    # Analysis operations

    def save_analysis(self, record: AnalysisRecord) -> str:
        try:
            analyses = self._read_rows(self.analyses_path)
            now = self.clock()
            row = self._from_domain(record)
            row["id"] = self._next_id(analyses)
            row["created_at"] = now.isoformat()
            row["updated_at"] = now.isoformat()

            analyses.insert(0, row)
            self._write_rows(self.analyses_path, analyses)

            logger.info(f"💾 Analysis saved with ID: {row['id']}")
            return str(row["id"])
        except Exception as e:
            logger.error(f"Error saving analysis: {e}")
            raise

    def get_analysis(self, analysis_id: str) -> Optional[AnalysisRecord]:
        row = self._find(self._read_rows(self.analyses_path), analysis_id)
        return self._to_domain(row) if row else None

    def get_recent_analyses(self, limit: int = 10) -> List[AnalysisRecord]:
        analyses = apply_ordering(self._read_rows(self.analyses_path))
        return [self._to_domain(row) for row in analyses[:max(limit, 0)]]

    def search_analyses(self, filters: AnalysisSearchFilter) -> SearchResult:
        analyses = apply_filters(self._read_rows(self.analyses_path), filters)
        analyses = apply_ordering(analyses)

        page, limit = page_bounds(filters.page, filters.limit)
        page_rows = apply_pagination(analyses, page, limit)

        return SearchResult(
            analyses=[self._to_domain(row) for row in page_rows],
            total=len(analyses),
            page=page,
            total_pages=total_pages(len(analyses), limit)
        )

    def get_analytics(self) -> AnalyticsSummary:
        analyses = self._read_rows(self.analyses_path)
        now = self.clock()

        emotion_counts: Dict[str, int] = {}
        mood_counts: Dict[str, int] = {}
        for row in analyses:
            emotion = row.get("dominant_emotion")
            mood = row.get("mood_category")
            emotion_counts[emotion] = emotion_counts.get(emotion, 0) + 1
            mood_counts[mood] = mood_counts.get(mood, 0) + 1

        created = [parse_datetime(row.get("created_at")) for row in analyses]
        thirty_days_ago = now - timedelta(days=30)
        recent = [c for c in created if c and c >= thirty_days_ago]

        daily_activity: Dict[str, int] = {}
        for days_back in range(6, -1, -1):
            day = (now - timedelta(days=days_back)).date()
            daily_activity[day.isoformat()] = len([c for c in created if c and c.date() == day])

        confidences = [float(row.get("confidence") or 0) for row in analyses]
        average = sum(confidences) / len(confidences) if confidences else 0

        return AnalyticsSummary(
            total_analyses=len(analyses),
            recent_analyses=len(recent),
            emotion_distribution=emotion_counts,
            mood_distribution=mood_counts,
            daily_activity=daily_activity,
            average_confidence=average
        )

    def delete_analysis(self, analysis_id: str) -> bool:
        try:
            analyses = self._read_rows(self.analyses_path)
            remaining = [row for row in analyses if str(row.get("id")) != str(analysis_id)]
            if len(remaining) == len(analyses):
                return False

            self._write_rows(self.analyses_path, remaining)
            logger.info(f"🗑️ Analysis deleted with ID: {analysis_id}")
            return True
        except Exception as e:
            logger.error(f"Error deleting analysis: {e}")
            raise

    def update_analysis(self, analysis_id: str, fields: Dict[str, Any]) -> bool:
        try:
            analyses = self._read_rows(self.analyses_path)
            row = self._find(analyses, analysis_id)
            if not row:
                return False

            for key, value in fields.items():
                row[key] = self._serialize_field(key, value)
            row["updated_at"] = self.clock().isoformat()

            self._write_rows(self.analyses_path, analyses)
            return True
        except Exception as e:
            logger.error(f"Error updating analysis: {e}")
            raise

    def toggle_favorite(self, analysis_id: str) -> bool:
        try:
            analyses = self._read_rows(self.analyses_path)
            row = self._find(analyses, analysis_id)
            if not row:
                return False

            row["is_favorite"] = not bool(row.get("is_favorite", False))
            row["updated_at"] = self.clock().isoformat()

            self._write_rows(self.analyses_path, analyses)
            return row["is_favorite"]
        except Exception as e:
            logger.error(f"Error toggling favorite: {e}")
            raise

    def increment_view_count(self, analysis_id: str) -> bool:
        try:
            analyses = self._read_rows(self.analyses_path)
            row = self._find(analyses, analysis_id)
            if not row:
                return False

            row["view_count"] = int(row.get("view_count") or 0) + 1
            self._write_rows(self.analyses_path, analyses)
            return True
        except Exception as e:
            logger.error(f"Error incrementing view count: {e}")
            raise

    # User operations

    def save_user(self, user: UserRecord) -> str:
        try:
            users = self._read_rows(self.users_path)
            now = self.clock()
            row = user.to_dict()
            row["id"] = self._next_id(users)
            row["preferences"] = self._dump(user.preferences)
            row["mood_quiz_data"] = self._dump(user.mood_quiz_data)
            row["last_active"] = now.isoformat()
            row["created_at"] = now.isoformat()
            row["updated_at"] = now.isoformat()

            users.append(row)
            self._write_rows(self.users_path, users)

            logger.info(f"👤 User saved with ID: {row['id']}")
            return str(row["id"])
        except Exception as e:
            logger.error(f"Error saving user: {e}")
            raise

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        row = self._find(self._read_rows(self.users_path), user_id)
        return self._to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for row in self._read_rows(self.users_path):
            if row.get("email") == email:
                return self._to_user(row)
        return None

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> bool:
        try:
            users = self._read_rows(self.users_path)
            row = self._find(users, user_id)
            if not row:
                return False

            now = self.clock().isoformat()
            for key, value in fields.items():
                row[key] = self._dump(value) if key in ("preferences", "mood_quiz_data") else value
            row["last_active"] = now
            row["updated_at"] = now

            self._write_rows(self.users_path, users)
            return True
        except Exception as e:
            logger.error(f"Error updating user: {e}")
            raise

    def get_health(self) -> Dict[str, Any]:
        try:
            analyses = apply_ordering(self._read_rows(self.analyses_path))
            users = self._read_rows(self.users_path)
            stats = os.stat(self.analyses_path)

            return {
                "status": "healthy",
                "database": "json",
                "total_analyses": len(analyses),
                "total_users": len(users),
                "last_analysis": analyses[0].get("created_at") if analyses else None,
                "disk_space": {
                    "analyses_file_size": stats.st_size,
                    "last_modified": stats.st_mtime
                }
            }
        except Exception as e:
            return {
                "status": "error",
                "database": "json",
                "error": str(e)
            }

    # Helper methods

    def _read_rows(self, path: str) -> List[Dict[str, Any]]:
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = f.read()
            return json.loads(content) if content.strip() else []
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path}: {e}")
            raise

    def _write_rows(self, path: str, rows: List[Dict[str, Any]]):
        directory = os.path.dirname(path) or "."
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Error writing {path}: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _next_id(self, rows: List[Dict[str, Any]]) -> int:
        """Millisecond timestamp, bumped past the highest existing id"""
        candidate = int(self.clock().timestamp() * 1000)
        existing = [int(row["id"]) for row in rows if str(row.get("id", "")).isdigit()]
        if existing and candidate <= max(existing):
            candidate = max(existing) + 1
        return candidate

    @staticmethod
    def _find(rows: List[Dict[str, Any]], record_id: str) -> Optional[Dict[str, Any]]:
        for row in rows:
            if str(row.get("id")) == str(record_id):
                return row
        return None

    @staticmethod
    def _dump(value: Any) -> Optional[str]:
        return json.dumps(value) if value is not None else None

    @staticmethod
    def _load(value: Optional[str]) -> Any:
        if value is None:
            return None
        try:
            return json.loads(value)
        except (json.JSONDecodeError, TypeError):
            logger.debug("Stored context blob is not JSON, returning as-is")
            return value

    def _serialize_field(self, key: str, value: Any) -> Any:
        if key in _OPAQUE_FIELDS:
            return self._dump(value)
        if key == "playlist":
            return [item.to_dict() if isinstance(item, PlaylistItem) else dict(item) for item in value]
        return value

    def _from_domain(self, record: AnalysisRecord) -> Dict[str, Any]:
        return {
            "filename": record.filename,
            "file_url": record.file_url,
            "dominant_emotion": record.dominant_emotion,
            "confidence": record.confidence,
            "vibe": record.vibe,
            "mood_category": record.mood_category,
            "playlist": [item.to_dict() for item in record.playlist],
            "color_analysis": self._dump(record.color_analysis),
            "preferences": self._dump(record.preferences),
            "mood_quiz_data": self._dump(record.mood_quiz_data),
            "user_id": record.user_id,
            "tags": list(record.tags),
            "is_favorite": bool(record.is_favorite),
            "view_count": int(record.view_count or 0),
        }

    def _to_domain(self, row: Dict[str, Any]) -> AnalysisRecord:
        """Convert a stored row to the domain model"""
        return AnalysisRecord(
            id=str(row.get("id")),
            filename=row.get("filename"),
            file_url=row.get("file_url"),
            dominant_emotion=row.get("dominant_emotion"),
            confidence=row.get("confidence"),
            vibe=row.get("vibe"),
            mood_category=row.get("mood_category"),
            playlist=[PlaylistItem.from_dict(item) for item in row.get("playlist") or []],
            color_analysis=self._load(row.get("color_analysis")),
            preferences=self._load(row.get("preferences")),
            mood_quiz_data=self._load(row.get("mood_quiz_data")),
            user_id=row.get("user_id"),
            tags=list(row.get("tags") or []),
            is_favorite=bool(row.get("is_favorite", False)),
            view_count=int(row.get("view_count") or 0),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at"))
        )

    def _to_user(self, row: Dict[str, Any]) -> UserRecord:
        return UserRecord(
            id=str(row.get("id")),
            email=row.get("email"),
            username=row.get("username"),
            preferences=self._load(row.get("preferences")),
            mood_quiz_data=self._load(row.get("mood_quiz_data")),
            total_analyses=int(row.get("total_analyses") or 0),
            favorite_emotions=list(row.get("favorite_emotions") or []),
            favorite_genres=list(row.get("favorite_genres") or []),
            last_active=parse_datetime(row.get("last_active")),
            created_at=parse_datetime(row.get("created_at")),
            updated_at=parse_datetime(row.get("updated_at"))
        )

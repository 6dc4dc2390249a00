# feeling_vibe/repositories/mongo_impl/analysis_repository_mongo_impl.py
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from feeling_vibe.config.database import MongoConfig
from feeling_vibe.helpers.clock import Clock, utc_now, ensure_utc, to_naive_utc
from feeling_vibe.helpers.query_builder import build_mongo_query, page_bounds, total_pages
from feeling_vibe.models.analysis import AnalysisRecord, AnalyticsSummary, PlaylistItem, SearchResult
from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.models.user import UserRecord
from feeling_vibe.repositories.analysis_repository import AnalysisRepository

logger = logging.getLogger(__name__)

_NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


class AnalysisRepositoryMongoImpl(AnalysisRepository):
    backend_name = "mongodb"

    def __init__(self, config: MongoConfig, clock: Clock = utc_now, client: Optional[MongoClient] = None):
        self.config = config
        self.clock = clock
        self._client = client
        self._owns_client = client is None
        self._db = None
        self.analyses = None
        self.users = None
        self.connected = False

    def connect(self) -> bool:
        """Connect and verify the server answers within the configured timeout"""
        try:
            if self._client is None:
                self._client = MongoClient(
                    self.config.uri,
                    serverSelectionTimeoutMS=self.config.connection_timeout_ms,
                    connectTimeoutMS=self.config.connection_timeout_ms
                )

            # Forces server selection, bounded by serverSelectionTimeoutMS
            self._client.server_info()

            self._db = self._client[self.config.database_name]
            self.analyses = self._db[self.config.analyses_collection]
            self.users = self._db[self.config.users_collection]
            self._ensure_indexes()

            self.connected = True
            logger.info(f"🍃 Connected to MongoDB database '{self.config.database_name}'")
            return True
        except PyMongoError as e:
            logger.error(f"❌ MongoDB connection error: {e}")
            self.connected = False
            raise

    def disconnect(self) -> bool:
        if self._client is not None and self._owns_client:
            self._client.close()
        self.connected = False
        logger.info("🍃 Disconnected from MongoDB")
        return True

    def _ensure_indexes(self):
        self.analyses.create_index([("dominant_emotion", ASCENDING)])
        self.analyses.create_index([("mood_category", ASCENDING)])
        self.analyses.create_index([("created_at", DESCENDING)])
        self.analyses.create_index([("user_id", ASCENDING)])
        self.analyses.create_index([("is_favorite", ASCENDING)])

        self.users.create_index([("email", ASCENDING)], unique=True, sparse=True)
        self.users.create_index([("username", ASCENDING)], unique=True, sparse=True)
        self.users.create_index([("last_active", DESCENDING)])

    # Analysis operations

    def save_analysis(self, record: AnalysisRecord) -> str:
        try:
            now = to_naive_utc(self.clock())
            document = self._from_domain(record)
            document["created_at"] = now
            document["updated_at"] = now

            result = self.analyses.insert_one(document)
            logger.info(f"💾 Analysis saved to MongoDB with ID: {result.inserted_id}")
            return str(result.inserted_id)
        except PyMongoError as e:
            logger.error(f"Error saving analysis to MongoDB: {e}")
            raise

    def get_analysis(self, analysis_id: str) -> Optional[AnalysisRecord]:
        object_id = self._object_id(analysis_id)
        if object_id is None:
            return None
        document = self.analyses.find_one({"_id": object_id})
        return self._to_domain(document) if document else None

    def get_recent_analyses(self, limit: int = 10) -> List[AnalysisRecord]:
        # limit(0) means "no limit" to MongoDB
        if limit <= 0:
            return []
        cursor = self.analyses.find({}).sort(_NEWEST_FIRST).limit(limit)
        return [self._to_domain(document) for document in cursor]

    def search_analyses(self, filters: AnalysisSearchFilter) -> SearchResult:
        query = build_mongo_query(filters)
        page, limit = page_bounds(filters.page, filters.limit)

        total = self.analyses.count_documents(query)
        cursor = self.analyses.find(query).sort(_NEWEST_FIRST).skip((page - 1) * limit).limit(limit)

        return SearchResult(
            analyses=[self._to_domain(document) for document in cursor],
            total=total,
            page=page,
            total_pages=total_pages(total, limit)
        )

    def get_analytics(self) -> AnalyticsSummary:
        now = self.clock()

        total = self.analyses.count_documents({})
        recent = self.analyses.count_documents(
            {"created_at": {"$gte": to_naive_utc(now - timedelta(days=30))}}
        )

        emotion_counts = {
            item["_id"]: item["count"]
            for item in self.analyses.aggregate([
                {"$group": {"_id": "$dominant_emotion", "count": {"$sum": 1}}}
            ])
        }
        mood_counts = {
            item["_id"]: item["count"]
            for item in self.analyses.aggregate([
                {"$group": {"_id": "$mood_category", "count": {"$sum": 1}}}
            ])
        }

        daily_activity: Dict[str, int] = {}
        for days_back in range(6, -1, -1):
            day = (now - timedelta(days=days_back)).date()
            start = datetime.combine(day, time.min, tzinfo=timezone.utc)
            end = start + timedelta(days=1)
            daily_activity[day.isoformat()] = self.analyses.count_documents(
                {"created_at": {"$gte": to_naive_utc(start), "$lt": to_naive_utc(end)}}
            )

        confidence_result = list(self.analyses.aggregate([
            {"$group": {"_id": None, "avg_confidence": {"$avg": "$confidence"}}}
        ]))
        average = 0
        if confidence_result and confidence_result[0].get("avg_confidence") is not None:
            average = float(confidence_result[0]["avg_confidence"])

        return AnalyticsSummary(
            total_analyses=total,
            recent_analyses=recent,
            emotion_distribution=emotion_counts,
            mood_distribution=mood_counts,
            daily_activity=daily_activity,
            average_confidence=average
        )

    def delete_analysis(self, analysis_id: str) -> bool:
        object_id = self._object_id(analysis_id)
        if object_id is None:
            return False
        try:
            result = self.analyses.delete_one({"_id": object_id})
            if result.deleted_count:
                logger.info(f"🗑️ Analysis deleted from MongoDB with ID: {analysis_id}")
                return True
            return False
        except PyMongoError as e:
            logger.error(f"Error deleting analysis from MongoDB: {e}")
            raise

    def update_analysis(self, analysis_id: str, fields: Dict[str, Any]) -> bool:
        object_id = self._object_id(analysis_id)
        if object_id is None:
            return False
        try:
            update = {key: self._serialize_field(key, value) for key, value in fields.items()}
            update["updated_at"] = to_naive_utc(self.clock())
            result = self.analyses.update_one({"_id": object_id}, {"$set": update})
            return result.matched_count == 1
        except PyMongoError as e:
            logger.error(f"Error updating analysis in MongoDB: {e}")
            raise

    def toggle_favorite(self, analysis_id: str) -> bool:
        object_id = self._object_id(analysis_id)
        if object_id is None:
            return False
        try:
            document = self.analyses.find_one({"_id": object_id}, {"is_favorite": 1})
            if not document:
                return False

            new_state = not bool(document.get("is_favorite", False))
            self.analyses.update_one(
                {"_id": object_id},
                {"$set": {"is_favorite": new_state, "updated_at": to_naive_utc(self.clock())}}
            )
            return new_state
        except PyMongoError as e:
            logger.error(f"Error toggling favorite in MongoDB: {e}")
            raise

    def increment_view_count(self, analysis_id: str) -> bool:
        object_id = self._object_id(analysis_id)
        if object_id is None:
            return False
        try:
            result = self.analyses.update_one({"_id": object_id}, {"$inc": {"view_count": 1}})
            return result.matched_count == 1
        except PyMongoError as e:
            logger.error(f"Error incrementing view count in MongoDB: {e}")
            raise

    # User operations

    def save_user(self, user: UserRecord) -> str:
        try:
            now = to_naive_utc(self.clock())
            document = self._from_user(user)
            document["last_active"] = now
            document["created_at"] = now
            document["updated_at"] = now

            result = self.users.insert_one(document)
            logger.info(f"👤 User saved to MongoDB with ID: {result.inserted_id}")
            return str(result.inserted_id)
        except PyMongoError as e:
            logger.error(f"Error saving user to MongoDB: {e}")
            raise

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        object_id = self._object_id(user_id)
        if object_id is None:
            return None
        document = self.users.find_one({"_id": object_id})
        return self._to_user(document) if document else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        document = self.users.find_one({"email": email})
        return self._to_user(document) if document else None

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> bool:
        object_id = self._object_id(user_id)
        if object_id is None:
            return False
        try:
            now = to_naive_utc(self.clock())
            update = dict(fields)
            update["last_active"] = now
            update["updated_at"] = now
            result = self.users.update_one({"_id": object_id}, {"$set": update})
            return result.matched_count == 1
        except PyMongoError as e:
            logger.error(f"Error updating user in MongoDB: {e}")
            raise

    def get_health(self) -> Dict[str, Any]:
        try:
            self._client.server_info()

            total_analyses = self.analyses.count_documents({})
            total_users = self.users.count_documents({})
            latest = list(self.analyses.find({}, {"created_at": 1}).sort(_NEWEST_FIRST).limit(1))
            last_analysis = ensure_utc(latest[0]["created_at"]).isoformat() if latest else None

            return {
                "status": "healthy" if self.connected else "disconnected",
                "database": "mongodb",
                "connected": self.connected,
                "total_analyses": total_analyses,
                "total_users": total_users,
                "last_analysis": last_analysis,
                "db_stats": self._db_stats()
            }
        except Exception as e:
            return {
                "status": "error",
                "database": "mongodb",
                "connected": False,
                "error": str(e)
            }

    def _db_stats(self) -> Dict[str, Any]:
        try:
            stats = self._db.command("dbstats")
        except Exception as e:
            logger.warning(f"⚠️ dbstats unavailable: {e}")
            return {}
        return {
            "collections": stats.get("collections"),
            "data_size": stats.get("dataSize"),
            "index_size": stats.get("indexSize"),
            "storage_size": stats.get("storageSize")
        }

    # Helper methods

    @staticmethod
    def _object_id(record_id: Any) -> Optional[ObjectId]:
        if isinstance(record_id, ObjectId):
            return record_id
        if record_id is None or not ObjectId.is_valid(str(record_id)):
            return None
        return ObjectId(str(record_id))

    @staticmethod
    def _serialize_field(key: str, value: Any) -> Any:
        if key == "playlist":
            return [item.to_dict() if isinstance(item, PlaylistItem) else dict(item) for item in value]
        return value

    @staticmethod
    def _from_domain(record: AnalysisRecord) -> Dict[str, Any]:
        return {
            "filename": record.filename,
            "file_url": record.file_url,
            "dominant_emotion": record.dominant_emotion,
            "confidence": record.confidence,
            "vibe": record.vibe,
            "mood_category": record.mood_category,
            "playlist": [item.to_dict() for item in record.playlist],
            "color_analysis": record.color_analysis,
            "preferences": record.preferences,
            "mood_quiz_data": record.mood_quiz_data,
            "user_id": record.user_id,
            "tags": list(record.tags),
            "is_favorite": bool(record.is_favorite),
            "view_count": int(record.view_count or 0),
        }

    @staticmethod
    def _to_domain(document: Dict[str, Any]) -> AnalysisRecord:
        """Convert a MongoDB document to the domain model"""
        created_at = document.get("created_at")
        updated_at = document.get("updated_at")
        return AnalysisRecord(
            id=str(document["_id"]),
            filename=document.get("filename"),
            file_url=document.get("file_url"),
            dominant_emotion=document.get("dominant_emotion"),
            confidence=document.get("confidence"),
            vibe=document.get("vibe"),
            mood_category=document.get("mood_category"),
            playlist=[PlaylistItem.from_dict(item) for item in document.get("playlist") or []],
            color_analysis=document.get("color_analysis"),
            preferences=document.get("preferences"),
            mood_quiz_data=document.get("mood_quiz_data"),
            user_id=document.get("user_id"),
            tags=list(document.get("tags") or []),
            is_favorite=bool(document.get("is_favorite", False)),
            view_count=int(document.get("view_count") or 0),
            created_at=ensure_utc(created_at) if created_at else None,
            updated_at=ensure_utc(updated_at) if updated_at else None
        )

    @staticmethod
    def _from_user(user: UserRecord) -> Dict[str, Any]:
        document = {
            "preferences": user.preferences,
            "mood_quiz_data": user.mood_quiz_data,
            "total_analyses": user.total_analyses,
            "favorite_emotions": list(user.favorite_emotions),
            "favorite_genres": list(user.favorite_genres),
        }
        # Unique sparse indexes: leave the key out rather than storing null
        if user.email:
            document["email"] = user.email
        if user.username:
            document["username"] = user.username
        return document

    @staticmethod
    def _to_user(document: Dict[str, Any]) -> UserRecord:
        def as_utc(key: str) -> Optional[datetime]:
            value = document.get(key)
            return ensure_utc(value) if value else None

        return UserRecord(
            id=str(document["_id"]),
            email=document.get("email"),
            username=document.get("username"),
            preferences=document.get("preferences"),
            mood_quiz_data=document.get("mood_quiz_data"),
            total_analyses=int(document.get("total_analyses") or 0),
            favorite_emotions=list(document.get("favorite_emotions") or []),
            favorite_genres=list(document.get("favorite_genres") or []),
            last_active=as_utc("last_active"),
            created_at=as_utc("created_at"),
            updated_at=as_utc("updated_at")
        )

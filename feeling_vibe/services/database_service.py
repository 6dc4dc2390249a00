# feeling_vibe/services/database_service.py
import dataclasses
import logging
import threading
from typing import Any, Dict, List, Optional

from feeling_vibe.config.database import DatabaseConfig
from feeling_vibe.errors import (
    ConfigurationError,
    InvalidRequestError,
    ServiceNotInitializedError,
    UnsupportedCapabilityError,
)
from feeling_vibe.helpers.clock import Clock, utc_now, ensure_utc
from feeling_vibe.models.analysis import (
    AnalysisRecord,
    AnalyticsSummary,
    MOOD_CATEGORIES,
    PlaylistItem,
    SearchResult,
    UPDATABLE_ANALYSIS_FIELDS,
)
from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.models.user import UserRecord, UPDATABLE_USER_FIELDS
from feeling_vibe.repositories.analysis_repository import AnalysisRepository
from feeling_vibe.repositories.json_impl.analysis_repository_json_impl import AnalysisRepositoryJsonImpl
from feeling_vibe.repositories.mongo_impl.analysis_repository_mongo_impl import AnalysisRepositoryMongoImpl

logger = logging.getLogger(__name__)


class DatabaseService:
    """Record storage facade: MongoDB when reachable, the JSON file store otherwise.

    The active backend is chosen once by ``initialize()``. The only later change
    is ``force_mongo_connection()``, which swaps the backend under a lock.
    """

    def __init__(self, config: DatabaseConfig, clock: Clock = utc_now, mongo_client=None):
        self.config = config
        self.clock = clock
        self._mongo_client = mongo_client
        self._lock = threading.Lock()
        self.database: Optional[AnalysisRepository] = None
        self.type: Optional[str] = None

    def initialize(self) -> bool:
        logger.info("🔄 Initializing database service...")

        if self.config.mongo.is_configured:
            logger.info("🔄 MongoDB URI detected, attempting connection...")
            try:
                mongo_db = self._build_mongo()
                mongo_db.connect()
                self._adopt(mongo_db, "mongodb")
                return True
            except Exception as e:
                logger.warning(f"⚠️ MongoDB connection failed: {e}")
                logger.info("🔄 Falling back to JSON database...")
        else:
            logger.info("ℹ️ No MongoDB URI provided, using JSON database")

        try:
            json_db = AnalysisRepositoryJsonImpl(self.config.json_store, clock=self.clock)
            json_db.connect()
        except Exception as e:
            logger.error(f"❌ Failed to initialize any database: {e}")
            raise ConfigurationError("Database initialization failed") from e

        self._adopt(json_db, "json")
        return True

    def disconnect(self):
        with self._lock:
            if self.database is not None:
                logger.info(f"🔌 Disconnecting from {self.type} database...")
                self.database.disconnect()
                self.database = None
                self.type = None

    def force_mongo_connection(self) -> bool:
        """Connect to MongoDB and make it the active backend, replacing whatever is in use"""
        if not self.config.mongo.is_configured:
            raise ConfigurationError("MONGODB_URI not provided")

        logger.info("🔄 Force connecting to MongoDB...")
        mongo_db = self._build_mongo()
        try:
            mongo_db.connect()
        except Exception as e:
            logger.error(f"❌ Force MongoDB connection failed: {e}")
            raise

        with self._lock:
            previous = self.database
            self.database = mongo_db
            self.type = "mongodb"

        if previous is not None and previous is not mongo_db:
            previous.disconnect()
        logger.info("✅ Force connected to MongoDB successfully")
        return True

    def _build_mongo(self) -> AnalysisRepositoryMongoImpl:
        return AnalysisRepositoryMongoImpl(self.config.mongo, clock=self.clock, client=self._mongo_client)

    def _adopt(self, database: AnalysisRepository, db_type: str):
        with self._lock:
            self.database = database
            self.type = db_type
        logger.info(f"✅ Using {db_type} database")

    def _require_database(self) -> AnalysisRepository:
        database = self.database
        if database is None:
            raise ServiceNotInitializedError("Database")
        return database

    # Analysis operations

    def save_analysis(self, record: AnalysisRecord) -> str:
        database = self._require_database()
        logger.info(f"💾 Saving analysis to {self.type} database...")
        analysis_id = database.save_analysis(record)
        logger.info(f"✅ Analysis saved with ID: {analysis_id}")
        return analysis_id

    def get_analysis(self, analysis_id: str) -> Optional[AnalysisRecord]:
        database = self._require_database()
        logger.debug(f"🔍 Fetching analysis {analysis_id} from {self.type} database...")
        return database.get_analysis(str(analysis_id))

    def get_recent_analyses(self, limit: int = 10) -> List[AnalysisRecord]:
        database = self._require_database()
        logger.debug(f"📋 Fetching {limit} recent analyses from {self.type} database...")
        return database.get_recent_analyses(limit)

    def search_analyses(self, filters: Optional[AnalysisSearchFilter] = None) -> SearchResult:
        database = self._require_database()
        if filters is None:
            filters = AnalysisSearchFilter(limit=self.config.search_page_size)

        filters = dataclasses.replace(
            filters,
            date_from=ensure_utc(filters.date_from) if filters.date_from else None,
            date_to=ensure_utc(filters.date_to) if filters.date_to else None,
            page=max(filters.page or 1, 1),
            limit=filters.limit if filters.limit and filters.limit > 0 else self.config.search_page_size
        )
        logger.debug(f"🔍 Searching analyses in {self.type} database with filters: {filters}")
        return database.search_analyses(filters)

    def get_analytics(self) -> AnalyticsSummary:
        database = self._require_database()
        logger.debug(f"📊 Fetching analytics from {self.type} database...")
        return database.get_analytics()

    def delete_analysis(self, analysis_id: str) -> bool:
        database = self._require_database()
        logger.info(f"🗑️ Deleting analysis {analysis_id} from {self.type} database...")
        return database.delete_analysis(str(analysis_id))

    def update_analysis(self, analysis_id: str, fields: Dict[str, Any]) -> bool:
        database = self._require_database()

        allowed = {key: value for key, value in fields.items() if key in UPDATABLE_ANALYSIS_FIELDS}
        ignored = set(fields) - set(allowed)
        if ignored:
            logger.warning(f"⚠️ Ignoring non-updatable analysis fields: {sorted(ignored)}")
        if not allowed:
            raise InvalidRequestError("No updatable fields supplied")
        self._check_update_types(allowed)
        if "playlist" in allowed:
            allowed["playlist"] = self._coerce_playlist(allowed["playlist"])

        logger.info(f"✏️ Updating analysis {analysis_id} in {self.type} database...")
        return self._call_capability(database, "update_analysis", str(analysis_id), allowed)

    def toggle_favorite(self, analysis_id: str) -> bool:
        database = self._require_database()
        logger.info(f"❤️ Toggling favorite for analysis {analysis_id} in {self.type} database...")
        return self._call_capability(database, "toggle_favorite", str(analysis_id))

    def increment_view_count(self, analysis_id: str) -> bool:
        database = self._require_database()
        logger.debug(f"👁️ Incrementing view count for analysis {analysis_id} in {self.type} database...")
        return self._call_capability(database, "increment_view_count", str(analysis_id))

    @staticmethod
    def _check_update_types(fields: Dict[str, Any]):
        """Reject values the backends could not read back; context blobs are left opaque"""
        for key in ("vibe", "mood_category"):
            if key in fields and (not isinstance(fields[key], str) or not fields[key].strip()):
                raise InvalidRequestError(f"{key} must be a non-empty string")
        if "mood_category" in fields:
            fields["mood_category"] = fields["mood_category"].strip().lower()
            if fields["mood_category"] not in MOOD_CATEGORIES:
                raise InvalidRequestError(f"mood_category must be one of: {', '.join(MOOD_CATEGORIES)}")

        for key in ("filename", "file_url", "user_id"):
            if key in fields and fields[key] is not None and not isinstance(fields[key], str):
                raise InvalidRequestError(f"{key} must be a string or null")

        if "is_favorite" in fields and not isinstance(fields["is_favorite"], bool):
            raise InvalidRequestError("is_favorite must be a boolean")

        if "view_count" in fields:
            view_count = fields["view_count"]
            if isinstance(view_count, bool) or not isinstance(view_count, int) or view_count < 0:
                raise InvalidRequestError("view_count must be a non-negative integer")

        if "tags" in fields:
            tags = fields["tags"]
            if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
                raise InvalidRequestError("tags must be a list of strings")

    @staticmethod
    def _coerce_playlist(value: Any) -> List[PlaylistItem]:
        if not isinstance(value, list) or not value:
            raise InvalidRequestError("playlist must be a non-empty list")
        playlist = []
        for item in value:
            if isinstance(item, PlaylistItem):
                playlist.append(item)
            elif isinstance(item, dict) and item.get("title") and item.get("artist"):
                playlist.append(PlaylistItem.from_dict(item))
            else:
                raise InvalidRequestError("playlist items need a title and an artist")
        return playlist

    def _call_capability(self, database: AnalysisRepository, operation: str, *args) -> bool:
        try:
            return getattr(database, operation)(*args)
        except UnsupportedCapabilityError as e:
            logger.warning(f"⚠️ {e}; nothing was changed")
            return False

    # User operations

    def save_user(self, user: UserRecord) -> str:
        database = self._require_database()
        if user.email and database.get_user_by_email(user.email) is not None:
            raise InvalidRequestError(f"User with email {user.email} already exists")

        logger.info(f"👤 Saving user to {self.type} database...")
        return database.save_user(user)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self._require_database().get_user(str(user_id))

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return self._require_database().get_user_by_email(email)

    def update_user(self, user_id: str, fields: Dict[str, Any]) -> bool:
        database = self._require_database()
        allowed = {key: value for key, value in fields.items() if key in UPDATABLE_USER_FIELDS}
        if not allowed:
            raise InvalidRequestError("No updatable fields supplied")

        logger.info(f"👤 Updating user {user_id} in {self.type} database...")
        return database.update_user(str(user_id), allowed)

    # Health and status

    def get_health(self) -> Dict[str, Any]:
        database = self.database
        if database is None:
            return {
                "status": "not_initialized",
                "database": "none",
                "type": None,
                "error": "Database not initialized"
            }
        return {**database.get_health(), "type": self.type}

    def get_type(self) -> Optional[str]:
        return self.type

    def is_connected(self) -> bool:
        return self.database is not None

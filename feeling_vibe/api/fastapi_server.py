# feeling_vibe/api/fastapi_server.py
import logging
import os
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Body, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field

from feeling_vibe.di.dependencies import DependencyContainer
from feeling_vibe.errors import ConfigurationError, InvalidRequestError, ServiceNotInitializedError
from feeling_vibe.helpers.clock import parse_datetime
from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.models.storage import BatchItemResult
from feeling_vibe.models.user import UserRecord

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Raised on purpose inside handlers; everything else becomes a 500
_PASSTHROUGH = (HTTPException, InvalidRequestError, ServiceNotInitializedError)


class AnalyzeMoodRequest(BaseModel):
    """Body of POST /api/analyze-mood. Context blobs are stored untouched."""
    model_config = ConfigDict(populate_by_name=True)

    emotions: Any = None
    color_analysis: Any = Field(default=None, alias="colorAnalysis")
    preferences: Any = None
    mood_quiz_data: Any = Field(default=None, alias="moodQuizData")
    filename: Optional[str] = None
    file_url: Optional[str] = Field(default=None, alias="fileUrl")
    user_id: Optional[str] = Field(default=None, alias="userId")


class CreateUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    username: Optional[str] = None
    preferences: Any = None
    mood_quiz_data: Any = Field(default=None, alias="moodQuizData")


class DeleteFilesRequest(BaseModel):
    filenames: List[str]


def _batch_result_dict(result: BatchItemResult) -> Dict[str, Any]:
    item = {"success": result.success, "filename": result.filename}
    if result.url is not None:
        item["url"] = result.url
    if result.size is not None:
        item["size"] = result.size
    if result.error is not None:
        item["error"] = result.error
    return item


class FastAPIServer:
    """HTTP transport around the analysis, database and storage services"""

    def __init__(self, container: DependencyContainer):
        self.container = container
        self.config = container.config
        self.database_service = container.database_service
        self.storage_service = container.storage_service
        self.analysis_usecase = container.get_analysis_usecase()

        self.app = FastAPI(
            title="Feeling the Vibe API",
            description="Mood analysis, playlist generation and media storage",
            version=API_VERSION
        )
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.config.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"]
        )

        self._setup_exception_handlers()
        self._setup_routes()
        self._setup_static_files()

    def _setup_static_files(self):
        """Serve locally stored uploads"""
        local = self.config.storage.local
        os.makedirs(local.uploads_dir, exist_ok=True)
        self.app.mount(local.url_prefix, StaticFiles(directory=local.uploads_dir), name="uploads")

    def _setup_exception_handlers(self):
        @self.app.exception_handler(InvalidRequestError)
        async def invalid_request(request: Request, exc: InvalidRequestError):
            return JSONResponse(status_code=400, content={"detail": str(exc)})

        @self.app.exception_handler(ServiceNotInitializedError)
        async def not_initialized(request: Request, exc: ServiceNotInitializedError):
            return JSONResponse(status_code=503, content={"detail": str(exc)})

        @self.app.exception_handler(ConfigurationError)
        async def misconfigured(request: Request, exc: ConfigurationError):
            return JSONResponse(status_code=503, content={"detail": str(exc)})

    @staticmethod
    def _server_error(action: str, error: Exception) -> HTTPException:
        logger.error(f"❌ {action} failed: {error}")
        return HTTPException(status_code=500, detail=f"{action} failed")

    def _setup_routes(self):
        """Setup FastAPI routes"""

        @self.app.get("/")
        async def root():
            return {
                "message": "Feeling the Vibe API",
                "version": API_VERSION,
                "database": self.database_service.get_type(),
                "storage": self.storage_service.get_type(),
                "docs": "/docs"
            }

        @self.app.get("/api/health")
        def health():
            database = self.database_service.get_health()
            storage = self.storage_service.get_health()
            healthy = database.get("status") == "healthy" and storage.get("status") == "healthy"
            return {
                "status": "OK" if healthy else "DEGRADED",
                "timestamp": self.container.clock().isoformat(),
                "database": database,
                "storage": storage,
                "generation": "openai" if self.container.generation_service.is_available() else "fallback"
            }

        # Uploads

        @self.app.post("/api/upload")
        def upload(media: Optional[UploadFile] = File(None)):
            if media is None or not media.filename:
                raise HTTPException(status_code=400, detail="No file uploaded")
            try:
                data = self._read_upload(media)
                filename = self.storage_service.generate_unique_filename(media.filename)
                blob = self.storage_service.upload_file(data, filename, media.content_type)
                return {
                    "success": True,
                    "file": {
                        "filename": blob.filename,
                        "original_name": media.filename,
                        "content_type": media.content_type,
                        "size": blob.size,
                        "url": blob.url,
                        "storage_type": self.storage_service.get_type()
                    },
                    "message": "File uploaded successfully"
                }
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Upload", e)

        @self.app.post("/api/upload/batch")
        def upload_batch(files: List[UploadFile] = File(...)):
            results = []
            for media in files:
                try:
                    data = self._read_upload(media)
                except InvalidRequestError as e:
                    results.append(BatchItemResult(success=False, filename=media.filename or "", error=str(e)))
                    continue
                results.extend(self.storage_service.upload_multiple_files([(media.filename, data, media.content_type)]))

            return {
                "success": all(r.success for r in results),
                "results": [_batch_result_dict(r) for r in results]
            }

        # Analyses

        @self.app.post("/api/analyze-mood")
        def analyze_mood(request: AnalyzeMoodRequest):
            try:
                outcome = self.analysis_usecase.analyze(
                    request.emotions,
                    color_analysis=request.color_analysis,
                    preferences=request.preferences,
                    mood_quiz_data=request.mood_quiz_data,
                    filename=request.filename,
                    user_id=request.user_id,
                    file_url=request.file_url
                )
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Analysis", e)

            record = outcome.record
            return {
                "success": True,
                "analysis_id": outcome.analysis_id,
                "dominant_emotion": record.dominant_emotion,
                "confidence": record.confidence,
                "vibe": record.vibe,
                "mood_category": record.mood_category,
                "playlist": [item.to_dict() for item in record.playlist],
                "color_analysis": record.color_analysis,
                "preferences": record.preferences,
                "mood_quiz_data": record.mood_quiz_data,
                "generated_by": outcome.generated_by,
                "created_at": record.created_at.isoformat() if record.created_at else None
            }

        @self.app.get("/api/analysis/{analysis_id}")
        def get_analysis(analysis_id: str):
            try:
                record = self.database_service.get_analysis(analysis_id)
                if record is None:
                    raise HTTPException(status_code=404, detail="Analysis not found")
                if self.database_service.increment_view_count(analysis_id):
                    record.view_count += 1
                return record.to_dict()
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Retrieving analysis", e)

        @self.app.patch("/api/analysis/{analysis_id}")
        def update_analysis(analysis_id: str, fields: Dict[str, Any] = Body(...)):
            try:
                if not self.database_service.update_analysis(analysis_id, fields):
                    raise HTTPException(status_code=404, detail="Analysis not found")
                return self.database_service.get_analysis(analysis_id).to_dict()
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Updating analysis", e)

        @self.app.post("/api/analysis/{analysis_id}/favorite")
        def toggle_favorite(analysis_id: str):
            try:
                before = self.database_service.get_analysis(analysis_id)
                if before is None:
                    raise HTTPException(status_code=404, detail="Analysis not found")
                self.database_service.toggle_favorite(analysis_id)
                after = self.database_service.get_analysis(analysis_id)
                is_favorite = after.is_favorite if after is not None else before.is_favorite
                # performed is False when the active backend cannot toggle favourites
                return {
                    "success": True,
                    "is_favorite": is_favorite,
                    "performed": is_favorite != before.is_favorite
                }
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Toggling favorite", e)

        @self.app.delete("/api/analysis/{analysis_id}")
        def delete_analysis(analysis_id: str):
            try:
                if not self.database_service.delete_analysis(analysis_id):
                    raise HTTPException(status_code=404, detail="Analysis not found")
                return {"success": True}
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Deleting analysis", e)

        @self.app.get("/api/recent-analyses")
        def recent_analyses(limit: int = Query(10, ge=1, le=100)):
            try:
                return [record.to_dict() for record in self.database_service.get_recent_analyses(limit)]
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Retrieving analyses", e)

        @self.app.get("/api/analyses/search")
        def search_analyses(emotion: Optional[str] = None, mood: Optional[str] = None,
                            date_from: Optional[str] = None, date_to: Optional[str] = None,
                            keyword: Optional[str] = None, is_favorite: bool = False,
                            user_id: Optional[str] = None, page: int = Query(1, ge=1),
                            limit: Optional[int] = Query(None, ge=1, le=100)):
            filters = AnalysisSearchFilter(
                emotion=emotion,
                mood=mood,
                date_from=self._parse_date_param("date_from", date_from),
                date_to=self._parse_date_param("date_to", date_to),
                keyword=keyword,
                is_favorite=is_favorite,
                user_id=user_id,
                page=page,
                limit=limit or self.config.database.search_page_size
            )
            try:
                return self.database_service.search_analyses(filters).to_dict()
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Searching analyses", e)

        @self.app.get("/api/analytics")
        def analytics():
            try:
                summary = self.database_service.get_analytics()
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Retrieving analytics", e)
            return {
                "total_analyses": summary.total_analyses,
                "recent_analyses": summary.recent_analyses,
                "emotion_distribution": summary.emotion_distribution,
                "mood_distribution": summary.mood_distribution,
                "daily_activity": summary.daily_activity,
                "average_confidence": summary.average_confidence
            }

        # Users

        @self.app.post("/api/users")
        def create_user(request: CreateUserRequest):
            user = UserRecord(
                email=request.email,
                username=request.username,
                preferences=request.preferences,
                mood_quiz_data=request.mood_quiz_data
            )
            try:
                user_id = self.database_service.save_user(user)
                return {"success": True, "user_id": user_id}
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Creating user", e)

        @self.app.get("/api/users/{user_id}")
        def get_user(user_id: str):
            user = self.database_service.get_user(user_id)
            if user is None:
                raise HTTPException(status_code=404, detail="User not found")
            return user.to_dict()

        # Storage administration

        @self.app.get("/api/storage/stats")
        def storage_stats():
            stats = self.storage_service.get_storage_stats()
            return {
                **stats.to_dict(),
                "total_size_formatted": self.storage_service.format_file_size(stats.total_size),
                "storage_type": self.storage_service.get_type()
            }

        @self.app.post("/api/storage/cleanup")
        def storage_cleanup(days_old: int = Query(30, ge=0)):
            try:
                return {"success": True, "deleted_files": self.storage_service.cleanup_old_files(days_old)}
            except _PASSTHROUGH:
                raise
            except Exception as e:
                raise self._server_error("Storage cleanup", e)

        @self.app.post("/api/storage/maintenance")
        def storage_maintenance():
            result = self.storage_service.perform_maintenance()
            if not result.get("success"):
                raise HTTPException(status_code=500, detail=result.get("error", "Maintenance failed"))
            return result

        @self.app.get("/api/storage/files/{filename}/url")
        def file_url(filename: str, expires_in: Optional[int] = Query(None, ge=1)):
            url = self.storage_service.generate_presigned_url(filename, expires_in)
            if url is None:
                raise HTTPException(status_code=404, detail="File not found")
            return {"filename": filename, "url": url}

        @self.app.delete("/api/storage/files")
        def delete_files(request: DeleteFilesRequest):
            results = self.storage_service.delete_multiple_files(request.filenames)
            return {
                "success": all(r.success for r in results),
                "results": [_batch_result_dict(r) for r in results]
            }

    def _read_upload(self, media: UploadFile) -> bytes:
        """Read an uploaded file after checking its extension and size"""
        storage_config = self.config.storage
        if not self.storage_service.is_valid_file_type(media.filename or "", storage_config.allowed_extensions):
            raise InvalidRequestError("Only image and video files are allowed")

        data = media.file.read(storage_config.max_upload_size_bytes + 1)
        if len(data) > storage_config.max_upload_size_bytes:
            raise InvalidRequestError(f"File exceeds the {storage_config.max_upload_size_mb}MB limit")
        return data

    @staticmethod
    def _parse_date_param(name: str, value: Optional[str]):
        if not value:
            return None
        parsed = parse_datetime(value)
        if parsed is None:
            raise InvalidRequestError(f"Invalid {name}: {value}")
        return parsed

    def run(self):
        """Start serving with uvicorn (blocking)"""
        logger.info(f"🚀 Starting server on {self.config.host}:{self.config.port}")
        uvicorn.run(self.app, host=self.config.host, port=self.config.port,
                    log_level=self.config.log_level.lower())

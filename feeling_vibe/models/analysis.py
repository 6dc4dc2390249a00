# feeling_vibe/models/analysis.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime

MOOD_CATEGORIES = (
    "energetic",
    "calm",
    "melancholic",
    "romantic",
    "angry",
    "excited",
    "peaceful",
    "nostalgic",
)


@dataclass
class EmotionScore:
    name: str
    score: float


@dataclass
class PlaylistItem:
    title: str
    artist: str
    reason: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "artist": self.artist, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlaylistItem':
        return cls(
            title=str(data.get("title", "")),
            artist=str(data.get("artist", "")),
            reason=str(data.get("reason") or ""),
        )


@dataclass
class AnalysisRecord:
    """One user submission's full result.

    ``color_analysis``, ``preferences`` and ``mood_quiz_data`` are opaque
    client context; they are stored and returned as-is.
    """
    dominant_emotion: str
    confidence: float
    vibe: str
    mood_category: str
    playlist: List[PlaylistItem] = field(default_factory=list)
    id: Optional[str] = None
    filename: Optional[str] = None
    file_url: Optional[str] = None
    color_analysis: Optional[Any] = None
    preferences: Optional[Any] = None
    mood_quiz_data: Optional[Any] = None
    user_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    is_favorite: bool = False
    view_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "filename": self.filename,
            "file_url": self.file_url,
            "dominant_emotion": self.dominant_emotion,
            "confidence": self.confidence,
            "vibe": self.vibe,
            "mood_category": self.mood_category,
            "playlist": [item.to_dict() for item in self.playlist],
            "color_analysis": self.color_analysis,
            "preferences": self.preferences,
            "mood_quiz_data": self.mood_quiz_data,
            "user_id": self.user_id,
            "tags": list(self.tags),
            "is_favorite": self.is_favorite,
            "view_count": self.view_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# Fields a caller may change through update_analysis
UPDATABLE_ANALYSIS_FIELDS = {
    "filename",
    "file_url",
    "vibe",
    "mood_category",
    "playlist",
    "color_analysis",
    "preferences",
    "mood_quiz_data",
    "user_id",
    "tags",
    "is_favorite",
    "view_count",
}


@dataclass
class SearchResult:
    analyses: List[AnalysisRecord]
    total: int
    page: int
    total_pages: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analyses": [a.to_dict() for a in self.analyses],
            "total": self.total,
            "page": self.page,
            "total_pages": self.total_pages,
        }


@dataclass
class AnalyticsSummary:
    total_analyses: int = 0
    recent_analyses: int = 0
    emotion_distribution: Dict[str, int] = field(default_factory=dict)
    mood_distribution: Dict[str, int] = field(default_factory=dict)
    daily_activity: Dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0


@dataclass
class AnalysisOutcome:
    """Result of an analysis request: the assigned id plus the stored payload"""
    analysis_id: str
    record: AnalysisRecord
    generated_by: str  # "openai" or "fallback"

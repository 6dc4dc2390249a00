# feeling_vibe/models/user.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime


@dataclass
class UserRecord:
    id: Optional[str] = None
    email: Optional[str] = None
    username: Optional[str] = None
    preferences: Optional[Any] = None
    mood_quiz_data: Optional[Any] = None
    total_analyses: int = 0
    favorite_emotions: List[str] = field(default_factory=list)
    favorite_genres: List[str] = field(default_factory=list)
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "preferences": self.preferences,
            "mood_quiz_data": self.mood_quiz_data,
            "total_analyses": self.total_analyses,
            "favorite_emotions": list(self.favorite_emotions),
            "favorite_genres": list(self.favorite_genres),
            "last_active": iso(self.last_active),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


UPDATABLE_USER_FIELDS = {
    "email",
    "username",
    "preferences",
    "mood_quiz_data",
    "total_analyses",
    "favorite_emotions",
    "favorite_genres",
}

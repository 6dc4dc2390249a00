from dataclasses import dataclass
from typing import Optional
from datetime import datetime

@dataclass
class AnalysisSearchFilter:
    emotion: Optional[str] = None      # case-insensitive substring
    mood: Optional[str] = None         # case-insensitive substring
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    keyword: Optional[str] = None      # matched against vibe and playlist
    is_favorite: bool = False
    user_id: Optional[str] = None
    page: int = 1
    limit: int = 10

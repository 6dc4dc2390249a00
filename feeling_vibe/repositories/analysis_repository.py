from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from feeling_vibe.models.analysis import AnalysisRecord, AnalyticsSummary, SearchResult
from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.models.user import UserRecord
from feeling_vibe.errors import UnsupportedCapabilityError


class AnalysisRepository(ABC):
    """Record storage contract shared by every database backend.

    The mutation capabilities (update, favourite toggle, view counter) are part
    of the contract, but a backend that cannot provide them may leave the
    default implementations in place; they raise ``UnsupportedCapabilityError``
    and the database service reports "not performed" instead of failing.
    """

    backend_name: str = "unknown"

    @abstractmethod
    def connect(self) -> bool:
        pass

    @abstractmethod
    def disconnect(self) -> bool:
        pass

    @abstractmethod
    def save_analysis(self, record: AnalysisRecord) -> str:
        """Store a new record and return the id assigned to it"""
        pass

    @abstractmethod
    def get_analysis(self, analysis_id: str) -> Optional[AnalysisRecord]:
        pass

    @abstractmethod
    def get_recent_analyses(self, limit: int = 10) -> List[AnalysisRecord]:
        """Newest first, at most ``limit`` records"""
        pass

    @abstractmethod
    def search_analyses(self, filters: AnalysisSearchFilter) -> SearchResult:
        pass

    @abstractmethod
    def get_analytics(self) -> AnalyticsSummary:
        pass

    @abstractmethod
    def delete_analysis(self, analysis_id: str) -> bool:
        """Returns True if deleted, False if not found"""
        pass

    def update_analysis(self, analysis_id: str, fields: Dict[str, Any]) -> bool:
        raise UnsupportedCapabilityError(self.backend_name, "update_analysis")

    def toggle_favorite(self, analysis_id: str) -> bool:
        """Flip ``is_favorite`` and return the new state"""
        raise UnsupportedCapabilityError(self.backend_name, "toggle_favorite")

    def increment_view_count(self, analysis_id: str) -> bool:
        raise UnsupportedCapabilityError(self.backend_name, "increment_view_count")

    @abstractmethod
    def save_user(self, user: UserRecord) -> str:
        pass

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        pass

    @abstractmethod
    def update_user(self, user_id: str, fields: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    def get_health(self) -> Dict[str, Any]:
        pass

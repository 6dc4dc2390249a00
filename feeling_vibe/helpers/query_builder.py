import math
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from feeling_vibe.models.filters import AnalysisSearchFilter
from feeling_vibe.helpers.clock import parse_datetime, to_naive_utc

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

PLAYLIST_SEARCH_FIELDS = ("title", "artist", "reason")


def _contains(haystack: Any, needle: str) -> bool:
    return needle.lower() in str(haystack or "").lower()


def _playlist_contains(playlist: Any, needle: str) -> bool:
    """Keyword match against playlist item values, the same fields the Mongo query covers"""
    for item in playlist or []:
        if isinstance(item, dict) and any(_contains(item.get(key), needle) for key in PLAYLIST_SEARCH_FIELDS):
            return True
    return False


def apply_filters(rows: List[Dict[str, Any]], filters: AnalysisSearchFilter) -> List[Dict[str, Any]]:
    """Filter raw JSON-store rows"""
    result = rows

    if filters.emotion:
        result = [r for r in result if _contains(r.get("dominant_emotion"), filters.emotion)]

    if filters.mood:
        result = [r for r in result if _contains(r.get("mood_category"), filters.mood)]

    if filters.date_from:
        result = [r for r in result
                  if (parse_datetime(r.get("created_at")) or filters.date_from) >= filters.date_from]

    if filters.date_to:
        result = [r for r in result
                  if (parse_datetime(r.get("created_at")) or filters.date_to) <= filters.date_to]

    if filters.keyword:
        result = [r for r in result
                  if _contains(r.get("vibe"), filters.keyword)
                  or _playlist_contains(r.get("playlist"), filters.keyword)]

    if filters.is_favorite:
        result = [r for r in result if r.get("is_favorite")]

    if filters.user_id:
        result = [r for r in result if str(r.get("user_id")) == str(filters.user_id)]

    return result


def apply_ordering(rows: List[Dict[str, Any]], column: str = "created_at", order: str = "desc") -> List[Dict[str, Any]]:
    def sort_key(row: Dict[str, Any]) -> datetime:
        return parse_datetime(row.get(column)) or _EPOCH

    # sorted() is stable, so rows sharing a timestamp keep their stored order
    return sorted(rows, key=sort_key, reverse=order.lower() == "desc")


def page_bounds(page: int = 1, limit: int = 10) -> Tuple[int, int]:
    page = max(int(page or 1), 1)
    limit = max(int(limit or 10), 1)
    return page, limit


def apply_pagination(rows: List[Dict[str, Any]], page: int = 1, limit: int = 10) -> List[Dict[str, Any]]:
    page, limit = page_bounds(page, limit)
    offset = (page - 1) * limit
    return rows[offset:offset + limit]


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit > 0 else 0


def build_mongo_query(filters: AnalysisSearchFilter) -> Dict[str, Any]:
    """Translate a search filter into a MongoDB query document"""
    query: Dict[str, Any] = {}

    if filters.emotion:
        query["dominant_emotion"] = {"$regex": re.escape(filters.emotion), "$options": "i"}

    if filters.mood:
        query["mood_category"] = {"$regex": re.escape(filters.mood), "$options": "i"}

    if filters.date_from or filters.date_to:
        query["created_at"] = {}
        if filters.date_from:
            query["created_at"]["$gte"] = to_naive_utc(filters.date_from)
        if filters.date_to:
            query["created_at"]["$lte"] = to_naive_utc(filters.date_to)

    if filters.keyword:
        pattern = {"$regex": re.escape(filters.keyword), "$options": "i"}
        query["$or"] = [{"vibe": pattern}] + [{f"playlist.{key}": pattern} for key in PLAYLIST_SEARCH_FIELDS]

    if filters.is_favorite:
        query["is_favorite"] = True

    if filters.user_id:
        query["user_id"] = str(filters.user_id)

    return query

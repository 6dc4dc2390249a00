# feeling_vibe/services/generation_service.py
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import OpenAI, OpenAIError

from feeling_vibe.config.external import OpenAIConfig
from feeling_vibe.models.analysis import MOOD_CATEGORIES, PlaylistItem

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a music curator. Always answer with a single JSON object."


@dataclass
class GeneratedVibe:
    vibe: str
    mood_category: str
    playlist: List[PlaylistItem] = field(default_factory=list)


class GenerationService:
    """
    Vibe and playlist generation through OpenAI chat completions.

    Every failure (not configured, API error, unparseable or invalid reply)
    is logged and reported as ``None`` so the caller can use the fallback.
    """

    def __init__(self, config: OpenAIConfig, client: Optional[Any] = None):
        self.config = config
        self._client = client
        if self._client is None and config.is_configured:
            self._client = OpenAI(
                api_key=config.api_key,
                base_url=config.base_url or None,
                timeout=config.timeout
            )
            logger.info(f"🤖 OpenAI client initialized (model: {config.model})")

    def is_available(self) -> bool:
        return self._client is not None

    def generate(self, prompt: str) -> Optional[GeneratedVibe]:
        if self._client is None:
            logger.debug("Generation provider not configured, skipping")
            return None

        try:
            response = self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt}
                ],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
                response_format={"type": "json_object"}
            )
            content = response.choices[0].message.content or ""
        except (OpenAIError, IndexError, AttributeError) as e:
            logger.warning(f"⚠️ OpenAI request failed: {e}")
            return None

        return self.parse_response(content)

    @staticmethod
    def parse_response(content: str) -> Optional[GeneratedVibe]:
        """Parse and validate a completion. Returns None if invalid or incomplete."""
        cleaned = (content or "").strip()
        if cleaned.startswith("```"):
            first_newline = cleaned.find("\n")
            if first_newline > 0:
                cleaned = cleaned[first_newline + 1:]
            if cleaned.rstrip().endswith("```"):
                cleaned = cleaned.rstrip()[:-3].rstrip()

        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start < 0 or end <= start:
            logger.warning(f"No JSON object found in generation reply: {content[:200]}...")
            return None

        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse generation reply: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning("Generation reply is not a JSON object")
            return None
        return GenerationService._validate(data)

    @staticmethod
    def _validate(data: Dict[str, Any]) -> Optional[GeneratedVibe]:
        vibe = data.get("vibe")
        if not isinstance(vibe, str) or not vibe.strip():
            logger.warning("Generation reply has no vibe text")
            return None

        mood_category = data.get("moodCategory", data.get("mood_category"))
        if not isinstance(mood_category, str) or mood_category.strip().lower() not in MOOD_CATEGORIES:
            logger.warning(f"Generation reply has invalid mood category: {mood_category!r}")
            return None

        raw_playlist = data.get("playlist")
        if not isinstance(raw_playlist, list) or not raw_playlist:
            logger.warning("Generation reply has an empty or missing playlist")
            return None

        playlist = []
        for item in raw_playlist:
            if not isinstance(item, dict) \
                    or not isinstance(item.get("title"), str) or not item["title"].strip() \
                    or not isinstance(item.get("artist"), str) or not item["artist"].strip():
                logger.warning(f"Generation reply has a malformed playlist item: {item!r}")
                return None
            playlist.append(PlaylistItem.from_dict(item))

        return GeneratedVibe(
            vibe=vibe.strip(),
            mood_category=mood_category.strip().lower(),
            playlist=playlist
        )

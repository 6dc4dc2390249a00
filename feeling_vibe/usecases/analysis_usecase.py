# feeling_vibe/usecases/analysis_usecase.py
import logging
import numbers
from typing import Any, List, Optional, Sequence, Tuple, Union

from feeling_vibe.errors import InvalidRequestError
from feeling_vibe.helpers.fallback_playlists import fallback_mood_category, fallback_playlist, fallback_vibe
from feeling_vibe.helpers.prompt_builder import build_mood_prompt
from feeling_vibe.models.analysis import AnalysisOutcome, AnalysisRecord, EmotionScore
from feeling_vibe.services.database_service import DatabaseService
from feeling_vibe.services.generation_service import GenerationService

logger = logging.getLogger(__name__)

EmotionInput = Union[EmotionScore, dict]


def parse_emotions(emotions: Any) -> List[EmotionScore]:
    """Validate the client's emotion score list"""
    if not isinstance(emotions, (list, tuple)) or not emotions:
        raise InvalidRequestError("Invalid emotions data: expected a non-empty list")

    parsed = []
    for index, entry in enumerate(emotions):
        if isinstance(entry, EmotionScore):
            name, score = entry.name, entry.score
        elif isinstance(entry, dict):
            name, score = entry.get("name"), entry.get("score")
        else:
            raise InvalidRequestError(f"Invalid emotions data: entry {index} is not an object")

        if not isinstance(name, str) or not name:
            raise InvalidRequestError(f"Invalid emotions data: entry {index} has no name")
        if isinstance(score, bool) or not isinstance(score, numbers.Real):
            raise InvalidRequestError(f"Invalid emotions data: entry {index} has a non-numeric score")
        parsed.append(EmotionScore(name=name, score=float(score)))

    return parsed


def dominant_emotion(emotions: Sequence[EmotionScore]) -> Tuple[str, float]:
    """Highest score wins; ties keep the first occurrence. Nothing above 0 leaves ("neutral", 0)."""
    name, max_score = "neutral", 0.0
    for emotion in emotions:
        if emotion.score > max_score:
            name, max_score = emotion.name, emotion.score
    return name, max_score


class AnalysisUseCase:
    def __init__(self, database_service: DatabaseService, generation_service: GenerationService):
        self.database_service = database_service
        self.generation_service = generation_service

    def analyze(self, emotions: Sequence[EmotionInput], color_analysis: Any = None, preferences: Any = None,
                mood_quiz_data: Any = None, filename: Optional[str] = None, user_id: Optional[str] = None,
                file_url: Optional[str] = None) -> AnalysisOutcome:
        """Turn emotion scores and client context into a stored vibe + playlist"""
        scores = parse_emotions(emotions)
        emotion, confidence = dominant_emotion(scores)
        logger.info(f"🎭 Dominant emotion: {emotion} ({confidence * 100:.1f}%)")

        prompt = build_mood_prompt(emotion, confidence, color_analysis, preferences, mood_quiz_data)
        generated = self.generation_service.generate(prompt)

        if generated is not None:
            generated_by = "openai"
            vibe, mood_category, playlist = generated.vibe, generated.mood_category, generated.playlist
        else:
            generated_by = "fallback"
            logger.info(f"🎵 Using fallback playlist for {emotion}")
            vibe = fallback_vibe(emotion, confidence, color_analysis, preferences, mood_quiz_data)
            mood_category = fallback_mood_category(emotion)
            playlist = fallback_playlist(emotion, preferences, mood_quiz_data)

        record = AnalysisRecord(
            dominant_emotion=emotion,
            confidence=confidence,
            vibe=vibe,
            mood_category=mood_category,
            playlist=playlist,
            filename=filename,
            file_url=file_url,
            color_analysis=color_analysis,
            preferences=preferences,
            mood_quiz_data=mood_quiz_data,
            user_id=user_id
        )

        try:
            analysis_id = self.database_service.save_analysis(record)
        except Exception as e:
            logger.error(f"Error saving analysis: {e}")
            raise

        stored = self.database_service.get_analysis(analysis_id)
        if stored is None:
            record.id = analysis_id
            stored = record

        return AnalysisOutcome(analysis_id=analysis_id, record=stored, generated_by=generated_by)

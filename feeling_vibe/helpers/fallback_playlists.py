# feeling_vibe/helpers/fallback_playlists.py
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from feeling_vibe.helpers.prompt_builder import (
    as_str_list,
    context_value,
    first_preferred_genre,
    quiz_activity,
)
from feeling_vibe.models.analysis import PlaylistItem


@dataclass(frozen=True)
class FallbackSong:
    title: str
    artist: str
    reason: str
    genres: Tuple[str, ...] = ()
    activities: Tuple[str, ...] = ()

    def to_item(self) -> PlaylistItem:
        return PlaylistItem(title=self.title, artist=self.artist, reason=self.reason)


DEFAULT_EMOTION = "neutral"

FALLBACK_PLAYLISTS: Dict[str, List[FallbackSong]] = {
    "happy": [
        FallbackSong("Good 4 U", "Olivia Rodrigo", "Upbeat energy matches your positive vibe",
                     ("pop", "rock"), ("partying", "driving", "gym")),
        FallbackSong("Levitating", "Dua Lipa", "Feel-good disco vibes",
                     ("pop", "electronic"), ("partying", "cooking", "driving")),
        FallbackSong("Blinding Lights", "The Weeknd", "Energetic and uplifting",
                     ("pop", "rnb", "electronic"), ("driving", "gym")),
        FallbackSong("Happy", "Pharrell Williams", "Pure, uncomplicated joy",
                     ("pop", "rnb"), ("cooking", "walking", "partying")),
        FallbackSong("Electric Feel", "MGMT", "Bright and playful indie groove",
                     ("indie", "electronic"), ("walking", "relaxing", "working")),
    ],
    "sad": [
        FallbackSong("Someone Like You", "Adele", "Beautiful ballad for contemplative moments",
                     ("pop",), ("relaxing", "walking")),
        FallbackSong("Hurt", "Johnny Cash", "Raw emotion and reflection",
                     ("rock",), ("relaxing", "driving")),
        FallbackSong("Mad World", "Gary Jules", "Atmospheric melancholy",
                     ("indie",), ("relaxing", "studying")),
        FallbackSong("Skinny Love", "Bon Iver", "Fragile, honest and quiet",
                     ("indie",), ("walking", "studying", "relaxing")),
        FallbackSong("Snowman", "Lofi Fruits", "Soft beats that sit with the feeling",
                     ("lofi",), ("studying", "working", "relaxing")),
    ],
    "angry": [
        FallbackSong("Break Stuff", "Limp Bizkit", "Channel that intensity",
                     ("rock",), ("gym",)),
        FallbackSong("Killing in the Name", "Rage Against the Machine", "Powerful release energy",
                     ("rock",), ("gym", "driving")),
        FallbackSong("Bodies", "Drowning Pool", "High-energy outlet",
                     ("rock",), ("gym",)),
        FallbackSong("DNA.", "Kendrick Lamar", "Sharp, defiant momentum",
                     ("hip-hop",), ("gym", "driving")),
        FallbackSong("Bangarang", "Skrillex", "Heavy drops to burn it off",
                     ("electronic",), ("gym", "partying")),
    ],
    "surprised": [
        FallbackSong("Uptown Funk", "Mark Ronson ft. Bruno Mars", "Unexpected groove to match your surprise",
                     ("pop", "rnb"), ("partying", "cooking")),
        FallbackSong("Can't Stop the Feeling", "Justin Timberlake", "Joyful surprise energy",
                     ("pop",), ("partying", "cooking", "walking")),
        FallbackSong("Mr. Brightside", "The Killers", "A rush you did not see coming",
                     ("rock", "indie"), ("driving", "partying")),
        FallbackSong("Get Lucky", "Daft Punk ft. Pharrell Williams", "Bright, curious funk",
                     ("electronic", "pop"), ("driving", "cooking")),
    ],
    "fearful": [
        FallbackSong("Breathe Me", "Sia", "Gentle company for uneasy moments",
                     ("pop", "indie"), ("relaxing", "walking")),
        FallbackSong("Holocene", "Bon Iver", "Wide, calming soundscape",
                     ("indie",), ("relaxing", "walking", "studying")),
        FallbackSong("Weightless", "Marconi Union", "Designed to slow a racing mind",
                     ("electronic",), ("relaxing", "studying")),
        FallbackSong("Gymnopedie No. 1", "Erik Satie", "Slow and reassuring",
                     ("classical",), ("relaxing", "studying", "working")),
    ],
    "disgusted": [
        FallbackSong("Basket Case", "Green Day", "Vent the irritation",
                     ("rock",), ("gym", "driving")),
        FallbackSong("Seven Nation Army", "The White Stripes", "Stomp it out",
                     ("rock", "indie"), ("gym", "walking")),
        FallbackSong("Bad Guy", "Billie Eilish", "Cool, unimpressed swagger",
                     ("pop", "electronic"), ("driving", "partying")),
        FallbackSong("HUMBLE.", "Kendrick Lamar", "Cut through the noise",
                     ("hip-hop",), ("gym", "driving")),
    ],
    "neutral": [
        FallbackSong("Weightless", "Marconi Union", "Balanced and centering",
                     ("electronic",), ("relaxing", "studying")),
        FallbackSong("Clair de Lune", "Claude Debussy", "Peaceful and contemplative",
                     ("classical",), ("relaxing", "studying", "working")),
        FallbackSong("Lofi Hip Hop Mix", "Various Artists", "Chill background vibes",
                     ("lofi", "hip-hop"), ("studying", "working", "relaxing")),
        FallbackSong("So What", "Miles Davis", "Cool, even-tempered jazz",
                     ("jazz",), ("working", "cooking", "relaxing")),
        FallbackSong("Banana Pancakes", "Jack Johnson", "Easygoing and warm",
                     ("indie", "pop"), ("cooking", "walking")),
    ],
}

EMOTION_MOODS = {
    "happy": "energetic",
    "sad": "melancholic",
    "angry": "angry",
    "surprised": "excited",
    "fearful": "calm",
    "disgusted": "angry",
    "neutral": "peaceful",
}


def _bucket(dominant_emotion: str) -> str:
    emotion = (dominant_emotion or "").lower()
    return emotion if emotion in FALLBACK_PLAYLISTS else DEFAULT_EMOTION


def fallback_mood_category(dominant_emotion: str) -> str:
    return EMOTION_MOODS[_bucket(dominant_emotion)]


def fallback_playlist(dominant_emotion: str, preferences: Any = None, mood_quiz_data: Any = None) -> List[PlaylistItem]:
    """Base list for the emotion, narrowed by genre and then by activity.

    A narrowing step that would leave nothing is skipped, so the result is
    never empty.
    """
    songs = list(FALLBACK_PLAYLISTS[_bucket(dominant_emotion)])

    genre = first_preferred_genre(preferences, mood_quiz_data)
    if genre:
        by_genre = [s for s in songs if genre in s.genres]
        if by_genre:
            songs = by_genre

    activity = quiz_activity(mood_quiz_data)
    if activity:
        by_activity = [s for s in songs if activity in s.activities]
        if by_activity:
            songs = by_activity

    return [song.to_item() for song in songs]


def fallback_vibe(dominant_emotion: str, confidence: float, color_analysis: Any = None,
                  preferences: Any = None, mood_quiz_data: Any = None) -> str:
    parts = [f"You're feeling {dominant_emotion} with {confidence * 100:.1f}% confidence."]

    color_mood = context_value(color_analysis, "mood")
    temperature = context_value(color_analysis, "temperature")
    if color_mood and temperature:
        parts.append(f"Your colors feel {color_mood} and {temperature}.")
    elif color_mood or temperature:
        parts.append(f"Your colors feel {color_mood or temperature}.")

    mood_words = as_str_list(context_value(mood_quiz_data, "moodWords", "mood_words"))
    if mood_words:
        parts.append(f"You described yourself as {', '.join(mood_words)}.")

    activity = quiz_activity(mood_quiz_data)
    if activity:
        parts.append(f"Here is something to go with {activity}.")

    genre = first_preferred_genre(preferences, mood_quiz_data)
    if genre:
        parts.append(f"We leaned toward {genre} where we could.")

    parts.append("Let's find some music that matches your energy!")
    return " ".join(parts)

from typing import Any, List, Optional

MOOD_PROMPT_FORMAT = """
Respond in JSON format:
{
  "vibe": "A brief, engaging description of the mood and vibe",
  "moodCategory": "one of: energetic, calm, melancholic, romantic, angry, excited, peaceful, nostalgic",
  "playlist": [
    {
      "title": "Song Title",
      "artist": "Artist Name",
      "reason": "Brief reason why this song fits the mood"
    }
  ]
}"""


def context_value(blob: Any, *keys: str) -> Any:
    """First non-empty value among ``keys`` in a client context dict.

    Context blobs come from the browser in camelCase, but snake_case keys are
    accepted too. Anything that is not a dict yields None.
    """
    if not isinstance(blob, dict):
        return None
    for key in keys:
        value = blob.get(key)
        if value not in (None, "", [], {}):
            return value
    return None


def as_str_list(value: Any) -> List[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v not in (None, "")]
    if value in (None, ""):
        return []
    return [str(value)]


def first_preferred_genre(preferences: Any, mood_quiz_data: Any) -> Optional[str]:
    genres = as_str_list(context_value(preferences, "genres")) or as_str_list(context_value(mood_quiz_data, "genres"))
    return genres[0].lower() if genres else None


def quiz_activity(mood_quiz_data: Any) -> Optional[str]:
    activity = context_value(mood_quiz_data, "activity")
    return str(activity).lower() if activity else None


def color_block(color_analysis: Any) -> Optional[str]:
    mood = context_value(color_analysis, "mood")
    temperature = context_value(color_analysis, "temperature")
    saturation = context_value(color_analysis, "saturation")
    if mood is None and temperature is None and saturation is None:
        return None

    parts = []
    if mood is not None:
        parts.append(f"color mood \"{mood}\"")
    if temperature is not None:
        parts.append(f"{temperature} color temperature")
    if saturation is not None:
        parts.append(f"saturation {saturation}")
    return "The image shows " + ", ".join(parts) + "."


def quiz_block(mood_quiz_data: Any) -> Optional[str]:
    psychology = context_value(mood_quiz_data, "colorPsychology", "color_psychology")
    mood_words = as_str_list(context_value(mood_quiz_data, "moodWords", "mood_words"))
    activity = context_value(mood_quiz_data, "activity")

    sentences = []
    if isinstance(psychology, dict) and (psychology.get("name") or psychology.get("mood")):
        name = psychology.get("name") or "their color"
        mood = psychology.get("mood")
        sentence = f"The user picked {name}"
        if mood:
            sentence += f", associated with a {mood} mood"
        sentences.append(sentence + ".")
    if mood_words:
        sentences.append(f"They describe themselves as {', '.join(mood_words)}.")
    if activity:
        sentences.append(f"They are currently {activity}.")
    return " ".join(sentences) if sentences else None


def preferences_block(preferences: Any) -> Optional[str]:
    genres = as_str_list(context_value(preferences, "genres"))
    energy_level = context_value(preferences, "energyLevel", "energy_level")
    mood_influence = context_value(preferences, "moodInfluence", "mood_influence")

    sentences = []
    if genres:
        sentences.append(f"Preferred genres: {', '.join(genres)}.")
    if energy_level:
        sentences.append(f"Desired energy level: {energy_level}.")
    if mood_influence:
        sentences.append(f"Mood influence on the playlist: {mood_influence}.")
    return " ".join(sentences) if sentences else None


def build_mood_prompt(dominant_emotion: str, confidence: float, color_analysis: Any = None,
                      preferences: Any = None, mood_quiz_data: Any = None) -> str:
    lines = [
        f"Based on the detected emotion \"{dominant_emotion}\" with confidence "
        f"{confidence * 100:.1f}%, create a music vibe description and suggest 8-10 songs "
        f"that would match this mood."
    ]
    for block in (color_block(color_analysis), quiz_block(mood_quiz_data), preferences_block(preferences)):
        if block:
            lines.append(block)
    lines.append(MOOD_PROMPT_FORMAT)
    return "\n".join(lines)

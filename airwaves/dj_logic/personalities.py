"""
DJ personality presets and the voice catalogue.
"""

from typing import Optional, Dict, List

DEFAULT_PERSONALITY_TEXT = "You are a friendly radio DJ."

PERSONALITY_PROMPTS: Dict[str, str] = {
    "energetic": (
        "You are an ENERGETIC and ENTHUSIASTIC radio DJ! Every song excites you. "
        "Use exclamations, keep it upbeat and punchy, and make listeners feel the energy."
    ),
    "classic": (
        "You are a CLASSIC radio host with a deep, smooth voice. You speak formally, "
        "like the golden age of radio: knowledgeable, sophisticated, unhurried."
    ),
    "casual": (
        "You are a CASUAL, friendly radio host chatting with a good friend. "
        "Relaxed, warm, everyday language."
    ),
    "critic": (
        "You are a MUSIC CRITIC host who loves fun facts and trivia. Briefly analyze songs "
        "and mention details about artists, albums or genres without being pretentious."
    ),
    "nostalgic": (
        "You are a NOSTALGIC host who connects songs to memories and life moments. "
        "Warm, sentimental and evocative."
    ),
}

PERSONALITY_PRESETS: List[Dict[str, str]] = [
    {"id": "energetic", "name": "Energetic DJ", "description": "Upbeat, enthusiastic, uses exclamations!"},
    {"id": "classic", "name": "Classic Host", "description": "Deep voice, formal, professional"},
    {"id": "casual", "name": "Casual Friend", "description": "Relaxed, conversational, friendly"},
    {"id": "critic", "name": "Music Critic", "description": "Shares fun facts, analyzes songs"},
    {"id": "nostalgic", "name": "Nostalgic Host", "description": "Emotional, reminisces about memories"},
    {"id": "custom", "name": "Custom", "description": "Define your own personality"},
]


def _voice(voice_id: str, gender: str, accent: str, quality: str) -> Dict[str, str]:
    return {
        "id": voice_id,
        "name": voice_id.split("_", 1)[1].capitalize(),
        "gender": gender,
        "accent": accent,
        "quality": quality,
    }


# Kokoro voices, English only
VOICES: List[Dict[str, str]] = [
    _voice("af_bella", "female", "American", "A"),
    _voice("af_nicole", "female", "American", "B"),
    _voice("af_nova", "female", "American", "B"),
    _voice("af_sarah", "female", "American", "B"),
    _voice("af_sky", "female", "American", "B"),
    _voice("af_alloy", "female", "American", "B"),
    _voice("af_aoede", "female", "American", "B"),
    _voice("af_kore", "female", "American", "B"),
    _voice("am_michael", "male", "American", "B"),
    _voice("am_fenrir", "male", "American", "B"),
    _voice("am_puck", "male", "American", "B"),
    _voice("am_adam", "male", "American", "D"),
    _voice("am_echo", "male", "American", "C"),
    _voice("am_eric", "male", "American", "C"),
    _voice("am_liam", "male", "American", "C"),
    _voice("am_onyx", "male", "American", "C"),
    _voice("bf_emma", "female", "British", "A"),
    _voice("bf_alice", "female", "British", "C"),
    _voice("bf_isabella", "female", "British", "B"),
    _voice("bf_lily", "female", "British", "C"),
    _voice("bm_george", "male", "British", "B"),
    _voice("bm_fable", "male", "British", "B"),
    _voice("bm_daniel", "male", "British", "C"),
    _voice("bm_lewis", "male", "British", "C"),
]


def personality_prompt(preset: Optional[str], custom: Optional[str] = None) -> str:
    if preset == "custom":
        return custom or DEFAULT_PERSONALITY_TEXT
    return PERSONALITY_PROMPTS.get(preset or "", DEFAULT_PERSONALITY_TEXT)


def dj_name(configured: Optional[str], voice_id: Optional[str]) -> str:
    """
    On-air name: the configured name, else the voice's name part
    ("af_bella" -> "Bella"), else "DJ".
    """
    if configured and configured.strip():
        return configured.strip()
    if not voice_id:
        return "DJ"
    _, _, name = voice_id.partition("_")
    name = name or voice_id
    return name[:1].upper() + name[1:]

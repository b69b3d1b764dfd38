"""
Announcement model for Airwaves.

An announcement is an ordered list of speech clips plus the timing the
transition should use around them. Multi-clip announcements travel through
single "audio URL" fields as ``multi:ref1|ref2|ref3``.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any

MULTI_PREFIX = "multi:"
LEGACY_DUAL_PREFIX = "dual:"
MULTI_SEPARATOR = "|"

DEFAULT_PRE_SILENCE_MS = 400
DEFAULT_POST_SILENCE_MS = 5000
DEFAULT_FADE_IN_MS = 2500


@dataclass(frozen=True)
class SpeechClip:
    """One synthesized line: where to fetch it and roughly how long it is."""
    audio_ref: str
    duration_seconds: float


@dataclass(frozen=True)
class TransitionParams:
    """Timing around the speech, in milliseconds."""
    pre_silence_ms: int = DEFAULT_PRE_SILENCE_MS
    post_silence_ms: int = DEFAULT_POST_SILENCE_MS
    fade_out_ms: int = 2000
    fade_in_ms: int = DEFAULT_FADE_IN_MS

    def to_dict(self) -> Dict[str, int]:
        return {
            "preSilence": self.pre_silence_ms,
            "postSilence": self.post_silence_ms,
            "fadeOutDuration": self.fade_out_ms,
            "fadeInDuration": self.fade_in_ms,
        }


def calculate_transition(speech_seconds: float) -> TransitionParams:
    """Longer speech gets a longer fade-out of the outgoing track."""
    if speech_seconds < 10:
        fade_out = 2000
    elif speech_seconds < 20:
        fade_out = 3000
    else:
        fade_out = 4000
    return TransitionParams(fade_out_ms=fade_out)


@dataclass
class AnnouncementResult:
    """
    A ready-to-play announcement.

    Attributes:
        clips: Speech clips in play order (one for a single host, up to three for dialogue)
        script: Transcript, with [HOSTn] prefixes for dialogue
        transition: Timing parameters
    """
    clips: List[SpeechClip]
    script: str
    transition: TransitionParams = field(default_factory=TransitionParams)

    @property
    def total_estimated_seconds(self) -> float:
        return sum(c.duration_seconds for c in self.clips)

    @property
    def audio_url(self) -> str:
        return encode_audio_refs([c.audio_ref for c in self.clips])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audioUrl": self.audio_url,
            "duration": self.total_estimated_seconds,
            "script": self.script,
            "transition": self.transition.to_dict(),
        }


def encode_audio_refs(refs: List[str]) -> str:
    """One ref stays as-is; several become ``multi:a|b|c``."""
    if len(refs) == 1:
        return refs[0]
    return MULTI_PREFIX + MULTI_SEPARATOR.join(refs)


def decode_audio_refs(url: Optional[str]) -> List[str]:
    """Inverse of encode_audio_refs. Also accepts the older ``dual:`` tag."""
    if not url:
        return []
    for prefix in (MULTI_PREFIX, LEGACY_DUAL_PREFIX):
        if url.startswith(prefix):
            return [ref for ref in url[len(prefix):].split(MULTI_SEPARATOR) if ref]
    return [url]

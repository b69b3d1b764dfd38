"""
Persistent radio configuration.

One RadioConfig exists per station. It is read at the start of every
transition cycle and written back when the listener edits settings or the
announcement counter moves.
"""

from dataclasses import dataclass, asdict, fields
from typing import Optional, Dict, Any

DEFAULT_RADIO_NAME = "Airwaves FM"
DEFAULT_FREQUENCY = 3
DEFAULT_PERSONALITY = "energetic"
DEFAULT_PERSONALITY2 = "casual"
DEFAULT_VOICE1 = "af_bella"

# Keys the listener may change through the settings endpoint
EDITABLE_FIELDS = frozenset({
    "radio_name",
    "user_name",
    "frequency",
    "personality",
    "custom_personality",
    "personality2",
    "custom_personality2",
    "voice1",
    "dj_name1",
    "voice2",
    "dj_name2",
    "dual_mode",
    "user_instructions",
    "enable_jingles",
    "enable_effects",
})


@dataclass
class RadioConfig:
    """
    Radio settings plus the announcement counter.

    Attributes:
        radio_name: Station name the DJ says on air
        user_name: Optional listener name to address
        frequency: Announce every N songs
        personality: Preset id for host 1 (or "custom")
        custom_personality: Free text used when personality is "custom"
        personality2: Preset id for host 2
        custom_personality2: Free text used when personality2 is "custom"
        voice1: TTS voice id for host 1
        dj_name1: On-air name for host 1 (derived from voice1 when blank)
        voice2: TTS voice id for host 2
        dj_name2: On-air name for host 2
        dual_mode: Two-host dialogue when voice2 is also set
        user_instructions: Free-form listener instructions for the DJ
        enable_jingles: Stored for the settings UI, not read by playback
        enable_effects: Stored for the settings UI, not read by playback
        enabled: Radio feature on/off
        song_counter: Songs played since the last announcement
    """
    radio_name: str = DEFAULT_RADIO_NAME
    user_name: Optional[str] = None
    frequency: int = DEFAULT_FREQUENCY
    personality: str = DEFAULT_PERSONALITY
    custom_personality: Optional[str] = None
    personality2: str = DEFAULT_PERSONALITY2
    custom_personality2: Optional[str] = None
    voice1: str = DEFAULT_VOICE1
    dj_name1: Optional[str] = None
    voice2: Optional[str] = None
    dj_name2: Optional[str] = None
    dual_mode: bool = False
    user_instructions: Optional[str] = None
    enable_jingles: bool = False
    enable_effects: bool = True
    enabled: bool = False
    song_counter: int = 0

    @property
    def is_dual(self) -> bool:
        """Dual-host mode needs both the flag and a second voice."""
        return bool(self.dual_mode and self.voice2)

    def voices(self) -> list[str]:
        if self.is_dual:
            return [self.voice1, self.voice2]
        return [self.voice1]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RadioConfig":
        """Build a config from stored data, ignoring unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def apply_update(self, changes: Dict[str, Any]) -> list[str]:
        """
        Apply listener edits in place.

        Only EDITABLE_FIELDS are touched; counters and the enabled flag have
        their own operations.

        Returns:
            Names of the fields that were changed
        """
        changed = []
        for key, value in changes.items():
            if key not in EDITABLE_FIELDS:
                continue
            if key == "frequency":
                value = int(value)
            if getattr(self, key) != value:
                setattr(self, key, value)
                changed.append(key)
        return changed

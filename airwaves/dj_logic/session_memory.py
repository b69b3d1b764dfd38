"""
Session Memory for Airwaves.

Bounded context the DJ carries between announcements: who the DJ is tonight,
what was already said, and which songs already played. All mutation is
append-then-trim, evicting the oldest entries.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Optional, List, Dict, Any

logger = logging.getLogger(__name__)

MAX_SCRIPT_CHARS = 4000
MAX_SONG_HISTORY = 10
FIRST_ANNOUNCEMENT_SENTINEL = "(This is your first announcement of the session)"


@dataclass(frozen=True)
class SessionIdentity:
    """The DJ's persona for one listening session."""
    session_name: str
    session_vibe: str
    opening_narrative: str
    dj_style: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionIdentity":
        return cls(
            session_name=data.get("session_name", ""),
            session_vibe=data.get("session_vibe", ""),
            opening_narrative=data.get("opening_narrative", ""),
            dj_style=data.get("dj_style", ""),
        )


class SessionMemory:
    """
    Rolling memory for one radio session.

    Owned by the station and passed to the script generator and the
    orchestrator. It is mutated only between transitions, never during one.

    Invariants:
        - total characters across scripts <= MAX_SCRIPT_CHARS
        - len(previous_songs) <= MAX_SONG_HISTORY
    """

    def __init__(self, now: Callable[[], datetime] = datetime.now):
        self._now = now
        self.identity: Optional[SessionIdentity] = None
        self.scripts: List[str] = []
        self.previous_songs: List[str] = []
        self.announcement_count = 0
        self.session_start: datetime = now()

    def add_script(self, script: str) -> None:
        """Append a transcript and trim the oldest until the budget holds."""
        if not script or not script.strip():
            return
        self.scripts.append(script)
        self.announcement_count += 1
        while self.scripts and self.total_script_chars() > MAX_SCRIPT_CHARS:
            evicted = self.scripts.pop(0)
            logger.debug(f"[MEMORY] Evicted script ({len(evicted)} chars)")

    def add_previous_song(self, title: Optional[str], artist: Optional[str]) -> None:
        """Remember a played song as "Title - Artist"."""
        entry = f"{title or 'Unknown'} - {artist or 'Unknown'}"
        self.previous_songs.append(entry)
        while len(self.previous_songs) > MAX_SONG_HISTORY:
            self.previous_songs.pop(0)

    def set_identity(self, identity: SessionIdentity) -> None:
        self.identity = identity
        logger.info(f"[MEMORY] Session identity: {identity.session_name} ({identity.session_vibe})")

    def has_identity(self) -> bool:
        return self.identity is not None

    def is_first_announcement(self) -> bool:
        return self.announcement_count == 0

    def total_script_chars(self) -> int:
        return sum(len(s) for s in self.scripts)

    def formatted_history(self) -> str:
        """Numbered transcript blocks, oldest first, or a sentinel when empty."""
        if not self.scripts:
            return FIRST_ANNOUNCEMENT_SENTINEL
        return "\n\n".join(
            f"[Announcement {i}]: {script}" for i, script in enumerate(self.scripts, start=1)
        )

    def formatted_previous_songs(self) -> str:
        return ", ".join(self.previous_songs)

    def session_minutes(self) -> int:
        return int((self._now() - self.session_start).total_seconds() // 60)

    def reset(self) -> None:
        """Forget everything and start a new session."""
        self.identity = None
        self.scripts = []
        self.previous_songs = []
        self.announcement_count = 0
        self.session_start = self._now()
        logger.info("[MEMORY] Session memory reset")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identity": self.identity.to_dict() if self.identity else None,
            "scripts": list(self.scripts),
            "previous_songs": list(self.previous_songs),
            "announcement_count": self.announcement_count,
            "session_start": self.session_start.isoformat(),
        }

    def restore(self, data: Optional[Dict[str, Any]]) -> None:
        """
        Load a persisted session. Budgets are re-applied so a hand-edited
        file cannot break the invariants.
        """
        if not data:
            return
        identity = data.get("identity")
        self.identity = SessionIdentity.from_dict(identity) if identity else None
        self.scripts = [s for s in data.get("scripts", []) if s]
        while self.scripts and self.total_script_chars() > MAX_SCRIPT_CHARS:
            self.scripts.pop(0)
        self.previous_songs = list(data.get("previous_songs", []))[-MAX_SONG_HISTORY:]
        self.announcement_count = int(data.get("announcement_count", 0))
        started = data.get("session_start")
        if started:
            try:
                self.session_start = datetime.fromisoformat(started)
            except ValueError:
                logger.warning(f"[MEMORY] Ignoring bad session_start: {started!r}")
        logger.info(f"[MEMORY] Restored session ({self.announcement_count} announcements, "
                    f"{len(self.previous_songs)} songs)")

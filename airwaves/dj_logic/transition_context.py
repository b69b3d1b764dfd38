"""
Transition context: what the DJ knows about the songs around a break.

Built fresh for every transition, never mutated.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from airwaves.music_logic.play_queue import Song, PlayQueue

UPCOMING_LIMIT = 10


@dataclass(frozen=True)
class SongInfo:
    """Listener-facing metadata for one side of the transition."""
    title: Optional[str]
    artist: str = "Unknown"
    album: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[int] = None
    description: Optional[str] = None
    rank_position: Optional[int] = None

    @classmethod
    def from_song(cls, song: Song) -> "SongInfo":
        return cls(
            title=song.title,
            artist=song.artist or "Unknown",
            album=song.album,
            genre=song.genre,
            year=song.year,
            description=song.description or None,
            rank_position=song.rank_position,
        )


@dataclass(frozen=True)
class TransitionContext:
    """
    Attributes:
        previous: The song that just finished (None at session start)
        next: The song about to play
        upcoming: Up to ten "Title - Artist" strings after ``next``
        songs_played_count: Songs played this session
        session_minutes: Minutes since the session started
    """
    next: SongInfo
    previous: Optional[SongInfo] = None
    upcoming: Tuple[str, ...] = field(default_factory=tuple)
    songs_played_count: int = 0
    session_minutes: int = 0


def build_context(queue: PlayQueue, songs_played_count: int = 0,
                  session_minutes: int = 0) -> Optional[TransitionContext]:
    """Snapshot the queue around its cursor. None if there is no next song."""
    next_song = queue.peek_next()
    if next_song is None:
        return None
    current = queue.current()
    return TransitionContext(
        previous=SongInfo.from_song(current) if current else None,
        next=SongInfo.from_song(next_song),
        upcoming=tuple(s.label() for s in queue.upcoming(UPCOMING_LIMIT)),
        songs_played_count=songs_played_count,
        session_minutes=session_minutes,
    )

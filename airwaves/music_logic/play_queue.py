"""
Play queue for Airwaves.

A minimal in-memory stand-in for the track catalog: ordered songs, a cursor,
and lookahead for the DJ's "coming up later" list.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, List, Iterable

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = (".mp3", ".flac", ".ogg", ".wav", ".m4a", ".opus")


@dataclass
class Song:
    """
    One playable track.

    Attributes:
        id: Stable identifier within the queue
        path: File path or URL the player streams from
        title: Track title
        artist: Artist name, if known
        album: Album name, if known
        genre: Genre, if known
        year: Release year, if known
        description: Free-text notes the listener wrote about the song
        rank_position: Position in the listener's personal ranking (1 = favourite)
    """
    id: str
    path: str
    title: str
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    year: Optional[int] = None
    description: Optional[str] = None
    rank_position: Optional[int] = None

    def label(self) -> str:
        return f"{self.title} - {self.artist or 'Unknown'}"


class PlayQueue:
    """Ordered songs with a cursor at the current track."""

    def __init__(self, songs: Optional[Iterable[Song]] = None, start_index: int = 0):
        self.songs: List[Song] = list(songs or [])
        self.index = start_index if self.songs else 0

    def __len__(self) -> int:
        return len(self.songs)

    def current(self) -> Optional[Song]:
        if 0 <= self.index < len(self.songs):
            return self.songs[self.index]
        return None

    def peek_next(self) -> Optional[Song]:
        if self.index + 1 < len(self.songs):
            return self.songs[self.index + 1]
        return None

    def has_next(self) -> bool:
        return self.peek_next() is not None

    def upcoming(self, count: int = 10) -> List[Song]:
        """Songs after the next one, up to ``count``."""
        start = self.index + 2
        return self.songs[start:start + count]

    def advance(self) -> Optional[Song]:
        if not self.has_next():
            return None
        self.index += 1
        return self.current()

    def step_back(self) -> Optional[Song]:
        if self.index == 0:
            return None
        self.index -= 1
        return self.current()

    @classmethod
    def from_directory(cls, path: str) -> "PlayQueue":
        """
        Build a queue from audio files named "Artist - Title.ext".

        Files without a separator use the whole stem as the title.
        """
        songs = []
        for name in sorted(os.listdir(path)):
            stem, ext = os.path.splitext(name)
            if ext.lower() not in AUDIO_EXTENSIONS:
                continue
            artist, sep, title = stem.partition(" - ")
            if not sep:
                artist, title = None, stem
            songs.append(Song(
                id=str(len(songs) + 1),
                path=os.path.join(path, name),
                title=title.strip(),
                artist=artist.strip() if artist else None,
            ))
        logger.info(f"[QUEUE] Loaded {len(songs)} songs from {path}")
        return cls(songs)

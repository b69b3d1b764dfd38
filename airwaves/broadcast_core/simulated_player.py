"""
Headless, clock-driven player for Airwaves.

Tracks "play" by letting a clock run: position is the time elapsed since the
track started, minus paused time. Speech clips take their measured length
to play. Used by ``--simulate`` runs and by tests.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Dict, List, Optional

from airwaves.broadcast_core.clip_timing import probe_bytes_duration
from airwaves.broadcast_core.media_player import MediaPlayer, SpeechPlayer
from airwaves.errors import PlaybackError
from airwaves.music_logic.play_queue import Song

logger = logging.getLogger(__name__)

DEFAULT_TRACK_SECONDS = 180.0


class SimulatedPlayer(MediaPlayer, SpeechPlayer):
    """
    Attributes:
        played: Songs started, in order
        clips_played: (byte length, gain) for every clip played
        volume_log: Every volume value applied, in order
    """

    def __init__(self, durations: Optional[Dict[str, float]] = None,
                 default_duration: float = DEFAULT_TRACK_SECONDS,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 clip_duration: Callable[[bytes], Optional[float]] = probe_bytes_duration):
        """
        Args:
            durations: Track length per song id
            default_duration: Length for songs not in ``durations``
            clock: Monotonic seconds source
            sleep: Awaitable sleep used while a clip "plays"
            clip_duration: Measures a clip; None means unmeasurable
        """
        self.durations = durations or {}
        self.default_duration = default_duration
        self._clock = clock
        self._sleep = sleep
        self._clip_duration = clip_duration

        self._volume = 1.0
        self.current: Optional[Song] = None
        self._started_at = 0.0
        self._offset = 0.0
        self._paused_at: Optional[float] = None

        self.played: List[Song] = []
        self.clips_played: List[tuple] = []
        self.volume_log: List[float] = []

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = min(max(float(value), 0.0), 1.0)
        self.volume_log.append(self._volume)

    async def play(self, song: Song) -> None:
        self.current = song
        self._started_at = self._clock()
        self._offset = 0.0
        self._paused_at = None
        self.played.append(song)
        logger.info(f"[PLAYER] (simulated) Playing {song.label()}")

    def pause(self) -> None:
        if self._paused_at is None:
            self._paused_at = self._clock()

    def resume(self) -> None:
        if self._paused_at is not None:
            self._started_at += self._clock() - self._paused_at
            self._paused_at = None

    def stop(self) -> None:
        self.current = None
        self._paused_at = None

    def seek(self, seconds: float) -> None:
        now = self._clock()
        self._offset = seconds
        self._started_at = now
        if self._paused_at is not None:
            self._paused_at = now

    def position(self) -> float:
        if self.current is None:
            return 0.0
        now = self._paused_at if self._paused_at is not None else self._clock()
        return min(self._offset + now - self._started_at, self.duration() or 0.0)

    def duration(self) -> Optional[float]:
        if self.current is None:
            return None
        return self.durations.get(self.current.id, self.default_duration)

    def ended(self) -> bool:
        if self.current is None or self._paused_at is not None:
            return False
        return self.position() >= (self.duration() or 0.0)

    async def play_clip(self, audio: bytes, gain: float = 1.0) -> None:
        if not audio:
            raise PlaybackError("Empty clip")
        length = self._clip_duration(audio)
        self.clips_played.append((len(audio), gain))
        await self._sleep(length or 0.0)

    async def measure(self, audio: bytes) -> Optional[float]:
        return self._clip_duration(audio)

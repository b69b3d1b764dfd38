"""
Playback interfaces for Airwaves.

The orchestrator talks to two surfaces: a music player with a volume knob
and a position, and a speech player that plays one clip to completion. A
backend may implement both on the same output.
"""

from abc import ABC, abstractmethod
from typing import Optional

from airwaves.music_logic.play_queue import Song


class MediaPlayer(ABC):
    """
    Music playback.

    Volume is linear in [0.0, 1.0]. Position and duration are in seconds.
    """

    @property
    @abstractmethod
    def volume(self) -> float:
        ...

    @volume.setter
    @abstractmethod
    def volume(self, value: float) -> None:
        ...

    @abstractmethod
    async def play(self, song: Song) -> None:
        """
        Load ``song`` and start it from the beginning at the current volume.

        Raises:
            PlaybackError: The track could not be opened
        """
        ...

    @abstractmethod
    def pause(self) -> None:
        ...

    @abstractmethod
    def resume(self) -> None:
        ...

    @abstractmethod
    def stop(self) -> None:
        ...

    @abstractmethod
    def seek(self, seconds: float) -> None:
        ...

    @abstractmethod
    def position(self) -> float:
        ...

    @abstractmethod
    def duration(self) -> Optional[float]:
        """Track length, or None while unknown."""
        ...

    @abstractmethod
    def ended(self) -> bool:
        """True once the current track played to its natural end."""
        ...


class SpeechPlayer(ABC):
    """Announcement clip playback."""

    @abstractmethod
    async def play_clip(self, audio: bytes, gain: float = 1.0) -> None:
        """
        Play encoded audio and return when it has finished.

        Raises:
            PlaybackError: The clip could not be decoded or played
        """
        ...

    @abstractmethod
    async def measure(self, audio: bytes) -> Optional[float]:
        """Decoded length of a clip in seconds, or None if it cannot be measured."""
        ...

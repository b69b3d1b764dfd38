"""
Announcement Gate for Airwaves.

Frequency-based counter deciding whether the next transition gets a DJ
announcement. peek() reports what consume() would report without moving the
counter; consume() moves it.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Dict, Any

from airwaves.state.radio_config import RadioConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GateStatus:
    """Answer from a peek or consume."""
    should_announce: bool
    enabled: bool
    current_count: Optional[int] = None
    frequency: Optional[int] = None
    next_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        if not self.enabled:
            return {"shouldAnnounce": False, "enabled": False}
        data = {
            "shouldAnnounce": self.should_announce,
            "enabled": True,
            "currentCount": self.current_count,
            "frequency": self.frequency,
        }
        if self.next_count is not None:
            data["nextCount"] = self.next_count
        return data


DISABLED = GateStatus(should_announce=False, enabled=False)


class AnnouncementGate:
    """
    Counter over the persistent RadioConfig.

    The config's ``song_counter`` is the songs-since-last-announcement count
    and ``frequency`` is N. A frequency of zero or less means every
    transition is due.

    Callers on the HTTP thread and the orchestrator loop share one gate, so
    reads and writes of the counter are serialized.
    """

    def __init__(self, config: RadioConfig,
                 on_change: Optional[Callable[[RadioConfig], None]] = None):
        """
        Args:
            config: Radio configuration holding frequency, counter and enabled flag
            on_change: Called after the counter or enabled flag changes (persistence hook)
        """
        self.config = config
        self._on_change = on_change
        self._lock = threading.RLock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    def peek(self) -> GateStatus:
        """Report whether the next consume() will be due. No side effects."""
        with self._lock:
            if not self.config.enabled:
                return DISABLED
            frequency = self.config.frequency
            current = self.config.song_counter
            next_count = current + 1
            due = frequency <= 0 or next_count >= frequency
            return GateStatus(
                should_announce=due,
                enabled=True,
                current_count=current,
                frequency=frequency,
                next_count=next_count,
            )

    def consume(self) -> GateStatus:
        """Count one finished song. Resets to zero and reports due at the Nth call."""
        with self._lock:
            if not self.config.enabled:
                return DISABLED
            frequency = self.config.frequency
            counter = self.config.song_counter + 1
            due = frequency <= 0 or counter >= frequency
            if due:
                counter = 0
            self.config.song_counter = counter
            self._changed()
            logger.debug(f"[GATE] consume: count={counter} frequency={frequency} due={due}")
            return GateStatus(
                should_announce=due,
                enabled=True,
                current_count=counter,
                frequency=frequency,
            )

    def set_enabled(self, enabled: bool) -> None:
        """Turn the feature on or off. Turning it on restarts the count."""
        with self._lock:
            self.config.enabled = enabled
            if enabled:
                self.config.song_counter = 0
            self._changed()
            logger.info(f"[GATE] Radio {'enabled' if enabled else 'disabled'}")

    def _changed(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.config)
        except OSError as e:
            # The in-memory counter stays authoritative for this session
            logger.warning(f"[GATE] Failed to persist counter: {e}")

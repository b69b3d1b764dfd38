"""
Radio service: configuration, gate and session memory under one owner.

Everything that must be persisted together lives here, and every change
goes through save().
"""

import logging
from typing import Any, Dict, Optional

from airwaves.dj_logic.announcement_gate import AnnouncementGate, GateStatus
from airwaves.dj_logic.session_memory import SessionMemory
from airwaves.state.radio_config import RadioConfig
from airwaves.state.radio_state_store import RadioStateStore

logger = logging.getLogger(__name__)


class RadioService:
    def __init__(self, store: RadioStateStore, memory: Optional[SessionMemory] = None):
        self.store = store
        self.config: RadioConfig = store.load_config()
        self.memory = memory or SessionMemory()
        if self.config.enabled:
            # Memory only carries over when the radio was left on
            self.memory.restore(store.load_memory())
        self.gate = AnnouncementGate(self.config, on_change=lambda _config: self.save())
        logger.info(f"[RADIO] Service ready (enabled={self.config.enabled}, "
                    f"frequency={self.config.frequency})")

    def save(self) -> None:
        try:
            self.store.save_state(self.config, self.memory.to_dict())
        except OSError as e:
            logger.error(f"[RADIO] Could not persist radio state: {e}")

    def toggle(self) -> bool:
        """Flip the radio feature. Both directions start a fresh session."""
        enabled = not self.config.enabled
        self.gate.set_enabled(enabled)
        self.memory.reset()
        self.save()
        return enabled

    def reset_memory(self) -> None:
        self.memory.reset()
        self.save()

    def update_config(self, changes: Dict[str, Any]) -> RadioConfig:
        changed = self.config.apply_update(changes)
        if changed:
            logger.info(f"[RADIO] Config updated: {', '.join(changed)}")
            self.save()
        return self.config

    def peek(self) -> GateStatus:
        return self.gate.peek()

    def check(self) -> GateStatus:
        return self.gate.consume()

"""
Radio state storage for Airwaves.

Keeps the radio configuration and session memory in one JSON document,
written atomically so a crash mid-save never leaves a torn file.
"""

import json
import os
import logging
from typing import Optional

from airwaves.state.radio_config import RadioConfig

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = "/tmp/airwaves_radio_state.json"


class RadioStateStore:
    """
    JSON document store with atomic writes.

    Layout::

        {"config": {...RadioConfig...}, "memory": {...SessionMemory...}}

    Writes go to a temporary file that then replaces the target.
    """

    def __init__(self, path: str = DEFAULT_STATE_PATH):
        self.path = path
        logger.debug(f"RadioStateStore initialized with path: {path}")

    def save(self, data: dict) -> None:
        """
        Save the whole document atomically.

        Raises:
            OSError: If the file cannot be written
        """
        tmp = self.path + ".tmp"
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(tmp, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
            logger.debug(f"Radio state saved to {self.path}")
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save radio state: {e}")
            if os.path.exists(tmp):
                try:
                    os.remove(tmp)
                except OSError:
                    pass
            raise

    def load(self) -> Optional[dict]:
        """
        Load the document.

        Returns:
            The stored dict, or None if the file is missing or invalid
        """
        if not os.path.exists(self.path):
            logger.debug(f"No state file found at {self.path}")
            return None

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load radio state: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring radio state with unexpected shape in {self.path}")
            return None
        logger.debug(f"Radio state loaded from {self.path}")
        return data

    def load_config(self) -> RadioConfig:
        data = self.load() or {}
        return RadioConfig.from_dict(data.get("config"))

    def load_memory(self) -> Optional[dict]:
        data = self.load() or {}
        return data.get("memory")

    def save_state(self, config: RadioConfig, memory: Optional[dict]) -> None:
        self.save({"config": config.to_dict(), "memory": memory})

import numpy as np
from .base_sink import BaseSink


class NullSink(BaseSink):
    """A sink that counts and discards audio. Useful for headless runs and tests."""

    def __init__(self):
        self.frames_written = 0

    def write(self, frame: np.ndarray) -> None:
        self.frames_written += 1

    def close(self) -> None:
        return

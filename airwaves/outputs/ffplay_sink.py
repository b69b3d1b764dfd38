"""
Local speaker output through ffplay.
"""

import logging
import subprocess
from typing import Optional

import numpy as np

from .base_sink import BaseSink

logger = logging.getLogger(__name__)


class FFplaySink(BaseSink):
    """
    Pipes raw s16le stereo 48 kHz PCM into an ``ffplay`` process.

    If ffplay dies the sink logs once and discards further audio; playback
    state keeps advancing so transitions still complete.
    """

    def __init__(self, sample_rate: int = 48000, channels: int = 2):
        self.sample_rate = sample_rate
        self.channels = channels
        self._broken = False
        self.proc: Optional[subprocess.Popen] = subprocess.Popen(
            [
                "ffplay",
                "-loglevel", "error",
                "-nodisp",
                "-autoexit",
                "-f", "s16le",
                "-ar", str(sample_rate),
                "-ch_layout", "stereo" if channels == 2 else "mono",
                "-i", "pipe:0",
            ],
            stdin=subprocess.PIPE,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        logger.info(f"[SINK] ffplay started (pid={self.proc.pid})")

    def write(self, frame: np.ndarray) -> None:
        if self._broken or self.proc is None or self.proc.stdin is None:
            return
        try:
            self.proc.stdin.write(frame.astype(np.int16, copy=False).tobytes())
        except (BrokenPipeError, OSError) as e:
            self._broken = True
            logger.error(f"[SINK] ffplay output lost: {e}")

    def close(self) -> None:
        proc = self.proc
        if proc is None:
            return
        self.proc = None
        try:
            if proc.stdin:
                proc.stdin.close()
        except OSError:
            pass
        try:
            proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait(timeout=1)
        logger.info("[SINK] ffplay closed")

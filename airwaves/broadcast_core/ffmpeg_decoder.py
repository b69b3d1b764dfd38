import logging
import os
import subprocess
import threading
from typing import Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 48000
CHANNELS = 2
FRAME_SIZE = 1024


class FFmpegDecoder:
    """
    Audio -> PCM decoder using ffmpeg.
    - Outputs 16-bit signed little-endian stereo at 48 kHz
    - Yields numpy int16 frames of shape (N, 2)
    - Reads a file path / URL, or encoded bytes fed through stdin

    ARCHITECTURAL INVARIANT: This decoder has NO timing responsibility.
    It produces frames at natural decoder pacing; the player paces output.
    """

    def __init__(self, source: Union[str, bytes], frame_size: int = FRAME_SIZE,
                 start_seconds: float = 0.0):
        """
        Args:
            source: File path or URL, or the encoded audio itself
            frame_size: Number of samples per frame (default: 1024)
            start_seconds: Seek offset applied before decoding
        """
        self.source = source
        self.frame_size = frame_size
        self._feeder: Optional[threading.Thread] = None

        from_bytes = isinstance(source, (bytes, bytearray))
        cmd = ["ffmpeg", "-v", "error"]
        if start_seconds > 0:
            cmd += ["-ss", f"{start_seconds:.3f}"]
        cmd += ["-i", "pipe:0" if from_bytes else source,
                "-f", "s16le", "-ac", str(CHANNELS), "-ar", str(SAMPLE_RATE), "-"]

        # Own process group so Ctrl-C on the parent does not hit ffmpeg
        self.proc = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE if from_bytes else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            bufsize=self.frame_size * 4,
            preexec_fn=os.setsid,
        )
        if from_bytes:
            self._feeder = threading.Thread(target=self._feed, args=(bytes(source),), daemon=True)
            self._feeder.start()

    def _feed(self, data: bytes) -> None:
        proc = self.proc
        if proc is None or proc.stdin is None:
            return
        try:
            proc.stdin.write(data)
        except (BrokenPipeError, ValueError, OSError):
            # ffmpeg exited early (bad input or close()); read side reports it
            pass
        finally:
            try:
                proc.stdin.close()
            except OSError:
                pass

    def read_frames(self):
        """
        Generator yielding PCM frames as numpy int16 arrays shaped (N, 2).

        Every frame is frame_size samples except possibly the last one.
        """
        assert self.proc is not None and self.proc.stdout is not None
        bytes_per_frame = self.frame_size * 2 * CHANNELS
        buffer = bytearray()

        try:
            while True:
                data = self.proc.stdout.read(bytes_per_frame * 2)
                if not data:
                    # Flush the tail, trimmed to whole samples
                    usable = len(buffer) - (len(buffer) % (2 * CHANNELS))
                    if usable:
                        yield np.frombuffer(bytes(buffer[:usable]), dtype=np.int16).reshape(-1, CHANNELS)
                    break

                buffer.extend(data)
                while len(buffer) >= bytes_per_frame:
                    frame_data = bytes(buffer[:bytes_per_frame])
                    del buffer[:bytes_per_frame]
                    yield np.frombuffer(frame_data, dtype=np.int16).reshape(-1, CHANNELS)
        finally:
            self.close()

    def close(self) -> None:
        """
        Stop ffmpeg and release its pipes. Safe to call multiple times.
        """
        proc = self.proc
        if proc is None:
            return
        self.proc = None

        try:
            if proc.stdout:
                proc.stdout.close()
        except OSError:
            pass

        if proc.poll() is None:
            try:
                proc.terminate()
                proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                logger.warning(f"[DECODER] ffmpeg didn't terminate, killing (pid={proc.pid})")
                proc.kill()
                try:
                    proc.wait(timeout=1)
                except subprocess.TimeoutExpired:
                    logger.error(f"[DECODER] ffmpeg did not exit after SIGKILL (pid={proc.pid})")

"""
Audio length probing with ffprobe.
"""

import logging
import subprocess
from typing import Optional

logger = logging.getLogger(__name__)

PROBE_TIMEOUT_SECONDS = 5.0


def _run_ffprobe(target: str, stdin_data: Optional[bytes] = None) -> Optional[float]:
    cmd = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        target,
    ]
    try:
        result = subprocess.run(
            cmd,
            input=stdin_data,
            capture_output=True,
            timeout=PROBE_TIMEOUT_SECONDS,
        )
        out = result.stdout.decode("utf-8", "replace").strip()
        if result.returncode == 0 and out and out != "N/A":
            return float(out)
    except (subprocess.TimeoutExpired, ValueError, FileNotFoundError, OSError) as e:
        logger.debug(f"[PROBE] ffprobe failed for {target}: {e}")
    return None


def probe_file_duration(path: str) -> Optional[float]:
    """
    Duration of an audio file or URL in seconds.

    Returns None if ffprobe fails or the file doesn't exist.
    """
    return _run_ffprobe(path)


def probe_bytes_duration(data: bytes) -> Optional[float]:
    """Duration of encoded audio held in memory, or None."""
    if not data:
        return None
    return _run_ffprobe("pipe:0", stdin_data=data)

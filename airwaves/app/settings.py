"""
Process settings for Airwaves.

Values come from the environment, optionally seeded from a ``.env`` file.
Radio behaviour settings (frequency, personalities, voices) live in the
persistent RadioConfig instead.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _load_dotenv_simple(path: Optional[Path] = None) -> None:
    """
    Load KEY=VALUE lines from a .env file into os.environ.

    Comments and blank lines are skipped, surrounding quotes are stripped,
    and variables already present in the environment are never overridden.
    """
    env_path = path or Path.cwd() / ".env"
    if not env_path.is_file():
        return
    try:
        with open(env_path, "r") as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith("#") or "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip().strip('"').strip("'")
                if key and key not in os.environ:
                    os.environ[key] = value
    except OSError as e:
        logger.warning(f"Could not read {env_path}: {e}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str]
    replicate_api_token: Optional[str]
    state_path: str
    music_dir: Optional[str]
    http_host: str
    http_port: int
    player: str
    volume: float


def load_settings(dotenv_path: Optional[Path] = None) -> Settings:
    _load_dotenv_simple(dotenv_path)
    state_dir = os.getenv("AIRWAVES_STATE_DIR", os.path.expanduser("~/.airwaves"))
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        replicate_api_token=os.getenv("REPLICATE_API_TOKEN") or None,
        state_path=os.path.join(state_dir, "radio_state.json"),
        music_dir=os.getenv("AIRWAVES_MUSIC_DIR") or None,
        http_host=os.getenv("AIRWAVES_HTTP_HOST", "127.0.0.1"),
        http_port=int(_env_float("AIRWAVES_HTTP_PORT", 8030)),
        player=os.getenv("AIRWAVES_PLAYER", "ffmpeg"),
        volume=min(max(_env_float("AIRWAVES_VOLUME", 1.0), 0.0), 1.0),
    )

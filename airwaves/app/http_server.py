"""
HTTP control surface for Airwaves.

JSON endpoints under /api/radio for settings, the gate, and the audio proxy,
plus /now_playing and simple player controls. Handlers run on server
threads and hand every radio operation to the station's event loop.
"""

import concurrent.futures
import json
import logging
import re
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional

from airwaves.dj_logic.personalities import PERSONALITY_PRESETS, VOICES
from airwaves.errors import RadioError
from airwaves.outputs.audio_proxy import decode_ref, content_type_for

logger = logging.getLogger(__name__)

API_PREFIX = "/api/radio"
AUDIO_PATH = re.compile(r"^/api/radio/audio/([A-Za-z0-9_\-=]+)$")
MAX_BODY_BYTES = 64 * 1024


class RadioHTTPHandler(BaseHTTPRequestHandler):
    """Request handler; ``station`` is set on the subclass built by create_http_server."""

    station = None

    def log_message(self, format, *args):
        logger.debug(f"[HTTP] {self.address_string()} {format % args}")

    # -- responses ---------------------------------------------------------

    def _send_json(self, data: Any, status: int = 200) -> None:
        body = json.dumps(data).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-cache")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_error_json(self, status: int, message: str) -> None:
        self._send_json({"error": message}, status)

    def _read_json(self) -> Optional[dict]:
        length = int(self.headers.get("Content-Length") or 0)
        if length <= 0 or length > MAX_BODY_BYTES:
            return None
        try:
            data = json.loads(self.rfile.read(length).decode("utf-8"))
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    def _path(self) -> str:
        return self.path.split("?", 1)[0].rstrip("/") or "/"

    def _dispatch(self, routes: dict) -> None:
        path = self._path()
        handler = routes.get(path)
        if handler is None:
            self._send_error_json(404, "Not Found")
            return
        try:
            handler()
        except (concurrent.futures.TimeoutError, RadioError) as e:
            logger.warning(f"[HTTP] {self.command} {path} failed: {e}")
            self._send_error_json(503, str(e) or "Service Unavailable")
        except ValueError as e:
            self._send_error_json(400, str(e))

    # -- verbs -------------------------------------------------------------

    def do_GET(self):
        match = AUDIO_PATH.match(self._path())
        if match:
            self._handle_audio(match.group(1))
            return
        self._dispatch({
            "/now_playing": self._handle_now_playing,
            f"{API_PREFIX}/config": self._handle_get_config,
            f"{API_PREFIX}/voices": lambda: self._send_json(VOICES),
            f"{API_PREFIX}/personalities": lambda: self._send_json(PERSONALITY_PRESETS),
            f"{API_PREFIX}/peek": self._handle_peek,
        })

    def do_PUT(self):
        self._dispatch({f"{API_PREFIX}/config": self._handle_put_config})

    def do_POST(self):
        self._dispatch({
            f"{API_PREFIX}/toggle": self._handle_toggle,
            f"{API_PREFIX}/reset-memory": self._handle_reset_memory,
            f"{API_PREFIX}/check": self._handle_check,
            "/api/player/next": self._handle_next,
            "/api/player/previous": self._handle_previous,
        })

    def do_DELETE(self):
        self._dispatch({f"{API_PREFIX}/audio/cache": self._handle_clear_cache})

    # -- handlers ----------------------------------------------------------

    def _handle_now_playing(self):
        self._send_json(self.station.call(self.station.now_playing))

    def _handle_get_config(self):
        self._send_json(self.station.call(self.station.radio.config.to_dict))

    def _handle_put_config(self):
        changes = self._read_json()
        if changes is None:
            raise ValueError("Body must be a JSON object")
        config = self.station.call(self.station.radio.update_config, changes)
        self._send_json(config.to_dict())

    def _handle_toggle(self):
        enabled = self.station.call(self.station.radio.toggle)
        # Clears any prepared announcement when switched off
        self.station.call(self.station.orchestrator.schedule_pre_generation)
        self._send_json({"enabled": enabled})

    def _handle_reset_memory(self):
        self.station.call(self.station.radio.reset_memory)
        self._send_json({"status": "ok"})

    def _handle_peek(self):
        self._send_json(self.station.call(self.station.radio.peek).to_dict())

    def _handle_check(self):
        self._send_json(self.station.call(self.station.radio.check).to_dict())

    def _handle_next(self):
        self.station.call(self.station.orchestrator.next, timeout=120.0)
        self._send_json(self.station.call(self.station.now_playing))

    def _handle_previous(self):
        self.station.call(self.station.orchestrator.previous, timeout=120.0)
        self._send_json(self.station.call(self.station.now_playing))

    def _handle_clear_cache(self):
        cleared = self.station.call(self.station.proxy.clear)
        self._send_json({"cleared": cleared})

    def _handle_audio(self, encoded: str):
        try:
            ref = decode_ref(encoded)
        except ValueError:
            self._send_error_json(400, "Invalid audio reference")
            return
        try:
            data = self.station.call(self.station.proxy.fetch, ref)
        except (concurrent.futures.TimeoutError, RadioError) as e:
            logger.warning(f"[HTTP] Audio proxy failed for {ref}: {e}")
            self._send_error_json(502, "Audio fetch failed")
            return
        self.send_response(200)
        self.send_header("Content-Type", content_type_for(ref))
        self.send_header("Content-Length", str(len(data)))
        self.send_header("Cache-Control", "max-age=3600")
        self.end_headers()
        self.wfile.write(data)


def create_http_server(station, host: str, port: int) -> ThreadingHTTPServer:
    """Bind a server whose handler talks to ``station``."""
    handler = type("BoundRadioHTTPHandler", (RadioHTTPHandler,), {"station": station})
    server = ThreadingHTTPServer((host, port), handler)
    server.daemon_threads = True
    return server

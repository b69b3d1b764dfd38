"""
Station wiring for Airwaves.

Builds every component from Settings, runs the orchestrator on the asyncio
loop and the HTTP control surface on its own thread.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, Optional

from airwaves.app.radio_service import RadioService
from airwaves.app.settings import Settings
from airwaves.broadcast_core.media_player import MediaPlayer, SpeechPlayer
from airwaves.broadcast_core.transition_orchestrator import TransitionOrchestrator
from airwaves.dj_logic.announcement_builder import AnnouncementBuilder
from airwaves.dj_logic.script_generator import ScriptGenerator
from airwaves.log_file import attach_file_handler
from airwaves.music_logic.play_queue import PlayQueue
from airwaves.outputs.audio_proxy import AudioProxy
from airwaves.outputs.llm_client import LLMClient
from airwaves.outputs.speech_synthesizer import SpeechSynthesizer
from airwaves.state.radio_state_store import RadioStateStore

logger = logging.getLogger(__name__)
attach_file_handler(logger)

LOOP_CALL_TIMEOUT_SECONDS = 30.0


class Station:
    """
    Owns the component graph.

    The orchestrator, session memory and gate are only touched on the event
    loop; other threads go through call().
    """

    def __init__(self, settings: Settings, queue: PlayQueue, player: MediaPlayer,
                 speech: Optional[SpeechPlayer] = None,
                 radio: Optional[RadioService] = None):
        """
        Args:
            settings: Process settings
            queue: Songs to play
            player: Music output
            speech: Speech output (defaults to ``player`` when it implements both)
            radio: Pre-built radio service (tests); built from settings otherwise
        """
        self.settings = settings
        self.queue = queue
        self.player = player
        self.radio = radio or RadioService(RadioStateStore(settings.state_path))

        self.llm = LLMClient(settings.openai_api_key)
        self.synthesizer = SpeechSynthesizer(settings.replicate_api_token)
        self.proxy = AudioProxy()
        self.generator = ScriptGenerator(self.llm, self.radio.memory, self.radio.config)
        self.builder = AnnouncementBuilder(
            self.generator, self.synthesizer, self.radio.memory, self.radio.config,
            on_built=self.radio.save,
        )
        self.orchestrator = TransitionOrchestrator(
            queue=queue,
            player=player,
            speech=speech or player,
            gate=self.radio.gate,
            builder=self.builder,
            memory=self.radio.memory,
            proxy=self.proxy,
            volume=settings.volume,
        )

        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop: Optional[asyncio.Event] = None
        self._http_server = None
        self._http_thread: Optional[threading.Thread] = None

        if not self.llm.configured or not self.synthesizer.configured:
            logger.warning("[STATION] OPENAI_API_KEY or REPLICATE_API_TOKEN missing, "
                           "announcements will be skipped")

    @property
    def running(self) -> bool:
        return self._stop is not None and not self._stop.is_set()

    async def run(self, serve_http: bool = True) -> None:
        """Play until stop() is called or the queue runs out."""
        self.loop = asyncio.get_running_loop()
        self._stop = asyncio.Event()
        if serve_http:
            self._start_http()
        logger.info(f"[STATION] Starting with {len(self.queue)} songs")
        try:
            await self.orchestrator.run(self._stop)
        finally:
            self._stop.set()
            self._stop_http()
            close = getattr(self.player, "close", None)
            if callable(close):
                close()
            self.radio.save()
            logger.info("[STATION] Stopped")

    def stop(self) -> None:
        """Thread-safe stop request."""
        if self.loop is None or self._stop is None:
            return
        self.loop.call_soon_threadsafe(self._stop.set)

    def call(self, func: Callable[..., Any], *args, timeout: float = LOOP_CALL_TIMEOUT_SECONDS) -> Any:
        """
        Run ``func`` on the event loop from another thread and return its
        result. Coroutine functions are awaited.
        """
        if self.loop is None:
            raise RuntimeError("Station loop is not running")

        async def invoke():
            result = func(*args)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        return asyncio.run_coroutine_threadsafe(invoke(), self.loop).result(timeout=timeout)

    def now_playing(self) -> Optional[Dict[str, Any]]:
        song = self.queue.current()
        if song is None:
            return None
        orchestrator = self.orchestrator
        return {
            "id": song.id,
            "title": song.title,
            "artist": song.artist,
            "album": song.album,
            "position": self.player.position(),
            "duration": self.player.duration(),
            "state": orchestrator.state.value,
            "announcementPlaying": orchestrator.announcement_playing,
            "nextTransitionHasAnnouncement": orchestrator.next_transition_has_announcement,
        }

    def _start_http(self) -> None:
        from airwaves.app.http_server import create_http_server

        try:
            self._http_server = create_http_server(self, self.settings.http_host, self.settings.http_port)
        except OSError as e:
            logger.error(f"[STATION] HTTP control surface unavailable: {e}")
            return
        self._http_thread = threading.Thread(
            target=self._http_server.serve_forever, name="http-control", daemon=True
        )
        self._http_thread.start()
        logger.info(f"[HTTP] Listening on http://{self.settings.http_host}:{self.settings.http_port}")

    def _stop_http(self) -> None:
        if self._http_server is None:
            return
        self._http_server.shutdown()
        self._http_server.server_close()
        self._http_server = None
        if self._http_thread is not None:
            self._http_thread.join(timeout=2.0)
            self._http_thread = None

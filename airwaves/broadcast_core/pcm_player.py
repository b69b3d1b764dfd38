"""
PCM playback backend for Airwaves.

Music and speech are decoded by ffmpeg into 48 kHz stereo int16 frames,
scaled and summed by the Mixer, and written to an output sink from one
worker thread paced at real time. The asyncio side only flips channel state
and awaits clip completion.
"""

import asyncio
import logging
import threading
import time
from typing import Callable, Optional, Union

from airwaves.broadcast_core.clip_timing import probe_file_duration, probe_bytes_duration
from airwaves.broadcast_core.ffmpeg_decoder import FFmpegDecoder, FRAME_SIZE, SAMPLE_RATE
from airwaves.broadcast_core.media_player import MediaPlayer, SpeechPlayer
from airwaves.errors import PlaybackError
from airwaves.log_file import attach_file_handler
from airwaves.mixer.mixer import Mixer
from airwaves.music_logic.play_queue import Song
from airwaves.outputs.base_sink import BaseSink

logger = logging.getLogger(__name__)
attach_file_handler(logger)

FRAME_SECONDS = FRAME_SIZE / SAMPLE_RATE
MAX_LAG_SECONDS = 1.0

DecoderFactory = Callable[..., FFmpegDecoder]


class _Channel:
    """One decoder stream feeding the output loop."""

    def __init__(self, decoder: FFmpegDecoder):
        self.decoder = decoder
        self._frames = decoder.read_frames()
        self.samples = 0
        self.done = False

    def next_frame(self):
        if self.done:
            return None
        try:
            frame = next(self._frames)
        except StopIteration:
            self.done = True
            return None
        self.samples += len(frame)
        return frame

    def close(self) -> None:
        self.done = True
        self.decoder.close()


class PcmPlayer(MediaPlayer, SpeechPlayer):
    """
    Real audio playback through ffmpeg and a BaseSink.

    Implements both player surfaces so announcements mix over the music bed.
    """

    def __init__(self, sink: BaseSink, mixer: Optional[Mixer] = None,
                 decoder_factory: DecoderFactory = FFmpegDecoder,
                 realtime: bool = True):
        """
        Args:
            sink: Output for mixed frames
            mixer: Gain/summing stage (default: a new Mixer)
            decoder_factory: Builds decoders from a path, URL or bytes
            realtime: Pace output at playback speed (off for tests with NullSink)
        """
        self.sink = sink
        self.mixer = mixer or Mixer()
        self._decoder_factory = decoder_factory
        self._realtime = realtime

        self._lock = threading.Lock()
        self._volume = 1.0
        self._music: Optional[_Channel] = None
        self._music_offset = 0.0
        self._paused = False
        self._ended = False
        self._duration: Optional[float] = None
        self._current: Optional[Song] = None

        self._speech: Optional[_Channel] = None
        self._speech_gain = 1.0
        self._speech_done: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

        self._running = False
        self._thread: Optional[threading.Thread] = None

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(target=self._output_loop, name="pcm-output", daemon=True)
        self._thread.start()
        logger.info("[PLAYER] Output loop started")

    def close(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        with self._lock:
            if self._music:
                self._music.close()
                self._music = None
            self._finish_speech(error=None)
        self.sink.close()
        logger.info("[PLAYER] Output loop stopped")

    def _open(self, source: Union[str, bytes], start_seconds: float = 0.0) -> _Channel:
        try:
            return _Channel(self._decoder_factory(source, start_seconds=start_seconds))
        except OSError as e:
            raise PlaybackError(f"Could not start decoder: {e}") from e

    # -- MediaPlayer -------------------------------------------------------

    @property
    def volume(self) -> float:
        return self._volume

    @volume.setter
    def volume(self, value: float) -> None:
        self._volume = min(max(float(value), 0.0), 1.0)

    async def play(self, song: Song) -> None:
        self._loop = asyncio.get_running_loop()
        channel = self._open(song.path)
        with self._lock:
            if self._music:
                self._music.close()
            self._music = channel
            self._music_offset = 0.0
            self._paused = False
            self._ended = False
            self._duration = None
            self._current = song
        self.start()
        logger.info(f"[PLAYER] Playing {song.label()}")
        duration = await self._loop.run_in_executor(None, probe_file_duration, song.path)
        with self._lock:
            if self._current is song:
                self._duration = duration

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    def stop(self) -> None:
        with self._lock:
            if self._music:
                self._music.close()
                self._music = None
            self._current = None
            self._music_offset = 0.0
            self._ended = False

    def seek(self, seconds: float) -> None:
        with self._lock:
            song = self._current
            if song is None:
                return
            if self._music:
                self._music.close()
            self._music = self._open(song.path, start_seconds=seconds)
            self._music_offset = seconds
            self._ended = False

    def position(self) -> float:
        music = self._music
        if music is None:
            return self._music_offset
        return self._music_offset + music.samples / SAMPLE_RATE

    def duration(self) -> Optional[float]:
        return self._duration

    def ended(self) -> bool:
        return self._ended

    # -- SpeechPlayer ------------------------------------------------------

    async def play_clip(self, audio: bytes, gain: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        done = loop.create_future()
        channel = self._open(audio)
        with self._lock:
            self._finish_speech(error=None)
            self._speech = channel
            self._speech_gain = gain
            self._speech_done = done
        self.start()
        await done

    async def measure(self, audio: bytes) -> Optional[float]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, probe_bytes_duration, audio)

    def _finish_speech(self, error: Optional[Exception]) -> None:
        # Caller holds the lock
        if self._speech is not None:
            self._speech.close()
            self._speech = None
        done, self._speech_done = self._speech_done, None
        if done is None or self._loop is None:
            return

        def settle():
            if done.done():
                return
            if error is None:
                done.set_result(None)
            else:
                done.set_exception(error)

        self._loop.call_soon_threadsafe(settle)

    # -- output thread -----------------------------------------------------

    def _output_loop(self) -> None:
        deadline = time.monotonic()
        while self._running:
            with self._lock:
                layers = []
                music = self._music
                if music is not None and not self._paused:
                    frame = music.next_frame()
                    if frame is None:
                        self._music_offset += music.samples / SAMPLE_RATE
                        music.close()
                        self._music = None
                        self._ended = True
                        logger.debug("[PLAYER] Track ended")
                    else:
                        layers.append((frame, self._volume))

                speech = self._speech
                if speech is not None:
                    frame = speech.next_frame()
                    if frame is None:
                        error = None if speech.samples else PlaybackError("Clip produced no audio")
                        self._finish_speech(error)
                    else:
                        layers.append((frame, self._speech_gain))

            self.sink.write(self.mixer.combine(layers, (FRAME_SIZE, 2)))

            if not layers and not self._realtime:
                time.sleep(FRAME_SECONDS)
            elif self._realtime:
                deadline += FRAME_SECONDS
                lag = time.monotonic() - deadline
                if lag > MAX_LAG_SECONDS:
                    deadline = time.monotonic()
                elif lag < 0:
                    time.sleep(-lag)

"""
Contract tests for the PCM playback backend.

Decoders are scripted so the output thread runs without ffmpeg; the sink
discards audio.
"""

import asyncio

import numpy as np
import pytest

from airwaves.broadcast_core.ffmpeg_decoder import FRAME_SIZE, SAMPLE_RATE
from airwaves.broadcast_core.pcm_player import PcmPlayer
from airwaves.errors import PlaybackError
from airwaves.outputs.null_sink import NullSink
from airwaves.tests.contracts.test_doubles import make_songs


class ScriptedDecoder:
    """Yields ``frames`` full frames of a constant sample value."""

    def __init__(self, frames: int, value: int = 1000):
        self.frames = frames
        self.value = value
        self.closed = False

    def read_frames(self):
        for _ in range(self.frames):
            yield np.full((FRAME_SIZE, 2), self.value, dtype=np.int16)

    def close(self):
        self.closed = True


def _factory(music_frames=5, clip_frames=3):
    created = []

    def factory(source, start_seconds=0.0):
        frames = clip_frames if isinstance(source, bytes) else music_frames
        decoder = ScriptedDecoder(frames)
        created.append((source, start_seconds, decoder))
        return decoder

    factory.created = created
    return factory


async def _wait_for(predicate, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not reached in time")
        await asyncio.sleep(0.01)


class TestPcm_Music:

    @pytest.mark.asyncio
    async def test_track_plays_to_end(self):
        sink = NullSink()
        player = PcmPlayer(sink, decoder_factory=_factory(music_frames=5), realtime=False)
        try:
            await player.play(make_songs(1)[0])
            await _wait_for(player.ended)
            assert player.position() == pytest.approx(5 * FRAME_SIZE / SAMPLE_RATE)
            assert sink.frames_written >= 5
        finally:
            player.close()

    def test_volume_clamped(self):
        player = PcmPlayer(NullSink(), decoder_factory=_factory(), realtime=False)
        player.volume = 1.7
        assert player.volume == 1.0
        player.volume = -1
        assert player.volume == 0.0

    @pytest.mark.asyncio
    async def test_seek_reopens_at_offset(self):
        factory = _factory(music_frames=100000)
        player = PcmPlayer(NullSink(), decoder_factory=factory, realtime=False)
        try:
            await player.play(make_songs(1)[0])
            player.pause()
            player.seek(42.0)
            assert factory.created[-1][1] == 42.0
            assert player.position() == pytest.approx(42.0)
        finally:
            player.close()


class TestPcm_Speech:

    @pytest.mark.asyncio
    async def test_clip_completes(self):
        sink = NullSink()
        player = PcmPlayer(sink, decoder_factory=_factory(clip_frames=3), realtime=False)
        try:
            await asyncio.wait_for(player.play_clip(b"RIFF....", gain=2.5), timeout=5.0)
            assert sink.frames_written >= 3
        finally:
            player.close()

    @pytest.mark.asyncio
    async def test_empty_clip_is_playback_error(self):
        player = PcmPlayer(NullSink(), decoder_factory=_factory(clip_frames=0), realtime=False)
        try:
            with pytest.raises(PlaybackError):
                await asyncio.wait_for(player.play_clip(b"junk"), timeout=5.0)
        finally:
            player.close()

    @pytest.mark.asyncio
    async def test_decoder_start_failure(self):
        def broken(source, start_seconds=0.0):
            raise FileNotFoundError("ffmpeg")

        player = PcmPlayer(NullSink(), decoder_factory=broken, realtime=False)
        with pytest.raises(PlaybackError):
            await player.play_clip(b"audio")

"""
Contract tests for station wiring.

- Without credentials the station still plays music
- stop() ends the run and persists state
"""

import asyncio

import pytest

from airwaves.app.radio_service import RadioService
from airwaves.app.settings import Settings
from airwaves.app.station import Station
from airwaves.broadcast_core.simulated_player import SimulatedPlayer
from airwaves.tests.contracts.test_doubles import make_queue


def _settings(tmp_path):
    return Settings(
        openai_api_key=None,
        replicate_api_token=None,
        state_path=str(tmp_path / "radio_state.json"),
        music_dir=None,
        http_host="127.0.0.1",
        http_port=0,
        player="simulated",
        volume=0.8,
    )


class TestStation:

    def test_wiring_without_credentials(self, tmp_path, state_store):
        station = Station(_settings(tmp_path), make_queue(), SimulatedPlayer(),
                          radio=RadioService(state_store))
        assert station.orchestrator.speech is station.player
        assert station.orchestrator.target_volume == 0.8
        assert station.now_playing()["title"] == "Song 1"
        assert station.running is False

    @pytest.mark.asyncio
    async def test_run_and_stop(self, tmp_path, state_store):
        player = SimulatedPlayer()
        station = Station(_settings(tmp_path), make_queue(), player, radio=RadioService(state_store))

        task = asyncio.create_task(station.run(serve_http=False))
        for _ in range(100):
            if station.running and player.played:
                break
            await asyncio.sleep(0.01)
        assert [s.id for s in player.played] == ["1"]
        assert player.volume == 0.8

        now = station.now_playing()
        assert now["state"] == "PLAYING"
        assert now["announcementPlaying"] is False

        station.stop()
        await asyncio.wait_for(task, timeout=5.0)
        assert station.running is False
        assert state_store.load() is not None, "State saved on shutdown"

    @pytest.mark.asyncio
    async def test_call_runs_on_loop(self, tmp_path, state_store):
        station = Station(_settings(tmp_path), make_queue(), SimulatedPlayer(),
                          radio=RadioService(state_store))
        task = asyncio.create_task(station.run(serve_http=False))
        for _ in range(100):
            if station.running:
                break
            await asyncio.sleep(0.01)

        loop = asyncio.get_running_loop()
        status = await loop.run_in_executor(None, station.call, station.radio.peek)
        assert status.enabled is False

        station.stop()
        await asyncio.wait_for(task, timeout=5.0)

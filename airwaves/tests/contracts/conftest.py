"""
Shared pytest fixtures for Airwaves contract tests.

Contract tests use test doubles (fakes, stubs) to avoid real dependencies.
No API keys, audio devices or wall-clock waits are used; state files live
under pytest tmp_path.
"""

import pytest

from airwaves.broadcast_core.simulated_player import SimulatedPlayer
from airwaves.dj_logic.announcement_gate import AnnouncementGate
from airwaves.dj_logic.session_memory import SessionMemory
from airwaves.state.radio_config import RadioConfig
from airwaves.state.radio_state_store import RadioStateStore
from airwaves.tests.contracts.test_doubles import (
    FakeClock,
    RecordingSleep,
    FakeProxy,
    clip_seconds,
)


@pytest.fixture
def radio_config():
    """Enabled radio, announce every song."""
    return RadioConfig(enabled=True, frequency=1)


@pytest.fixture
def gate(radio_config):
    return AnnouncementGate(radio_config)


@pytest.fixture
def memory():
    return SessionMemory()


@pytest.fixture
def state_store(tmp_path):
    return RadioStateStore(str(tmp_path / "state" / "radio_state.json"))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    """Recording sleep that does not move any clock."""
    return RecordingSleep()


@pytest.fixture
def player(clock, sleep):
    """Clock-driven player timing clips by their ``clip-<seconds>`` payload."""
    return SimulatedPlayer(clock=clock, sleep=sleep, clip_duration=clip_seconds)


@pytest.fixture
def proxy():
    return FakeProxy()

"""
Contract tests for session memory.

- Script history stays within its character budget, evicting oldest first
- Song history keeps the last ten entries
- Formatted history uses a sentinel before the first announcement
- Reset and restore
"""

from datetime import datetime, timedelta

from airwaves.dj_logic.session_memory import (
    SessionMemory,
    SessionIdentity,
    MAX_SCRIPT_CHARS,
    MAX_SONG_HISTORY,
    FIRST_ANNOUNCEMENT_SENTINEL,
)


class TestMemory_ScriptBudget:
    """Scripts never exceed the character budget."""

    def test_oldest_scripts_evicted(self):
        memory = SessionMemory()
        for i in range(5):
            memory.add_script(str(i) * 1500)

        assert memory.total_script_chars() <= MAX_SCRIPT_CHARS
        assert memory.scripts == ["3" * 1500, "4" * 1500], "Only the newest scripts that fit remain"
        assert memory.announcement_count == 5, "Count includes evicted scripts"

    def test_oversized_script_evicts_everything(self):
        memory = SessionMemory()
        memory.add_script("a" * 100)
        memory.add_script("b" * (MAX_SCRIPT_CHARS + 1))
        assert memory.scripts == []

    def test_blank_script_ignored(self):
        memory = SessionMemory()
        memory.add_script("   ")
        assert memory.scripts == []
        assert memory.is_first_announcement()


class TestMemory_SongHistory:
    """Previous songs are capped and labelled."""

    def test_cap_keeps_latest(self):
        memory = SessionMemory()
        for i in range(15):
            memory.add_previous_song(f"T{i}", f"A{i}")
        assert len(memory.previous_songs) == MAX_SONG_HISTORY
        assert memory.previous_songs[0] == "T5 - A5"
        assert memory.previous_songs[-1] == "T14 - A14"

    def test_missing_fields_become_unknown(self):
        memory = SessionMemory()
        memory.add_previous_song(None, None)
        memory.add_previous_song("Song", "")
        assert memory.previous_songs == ["Unknown - Unknown", "Song - Unknown"]
        assert memory.formatted_previous_songs() == "Unknown - Unknown, Song - Unknown"


class TestMemory_Formatting:

    def test_sentinel_before_first_announcement(self):
        assert SessionMemory().formatted_history() == FIRST_ANNOUNCEMENT_SENTINEL

    def test_numbered_history(self):
        memory = SessionMemory()
        memory.add_script("first")
        memory.add_script("second")
        assert memory.formatted_history() == "[Announcement 1]: first\n\n[Announcement 2]: second"

    def test_session_minutes(self):
        now = [datetime(2024, 1, 1, 20, 0)]
        memory = SessionMemory(now=lambda: now[0])
        now[0] += timedelta(minutes=42, seconds=30)
        assert memory.session_minutes() == 42


class TestMemory_ResetAndRestore:

    def test_reset_clears_everything(self):
        memory = SessionMemory()
        memory.set_identity(SessionIdentity("Night Drive", "moody", "Lights low.", "calm"))
        memory.add_script("hello")
        memory.add_previous_song("T", "A")

        memory.reset()

        assert not memory.has_identity()
        assert memory.scripts == []
        assert memory.previous_songs == []
        assert memory.is_first_announcement()

    def test_restore_round_trip(self):
        original = SessionMemory()
        original.set_identity(SessionIdentity("Night Drive", "moody", "Lights low.", "calm"))
        original.add_script("hello there")
        original.add_previous_song("T", "A")

        restored = SessionMemory()
        restored.restore(original.to_dict())

        assert restored.identity == original.identity
        assert restored.scripts == ["hello there"]
        assert restored.previous_songs == ["T - A"]
        assert restored.announcement_count == 1
        assert restored.session_start == original.session_start

    def test_restore_reapplies_budgets(self):
        memory = SessionMemory()
        memory.restore({
            "scripts": ["x" * 3000, "y" * 3000],
            "previous_songs": [f"S{i} - A" for i in range(20)],
            "announcement_count": 2,
        })
        assert memory.scripts == ["y" * 3000]
        assert len(memory.previous_songs) == MAX_SONG_HISTORY

    def test_restore_none_is_noop(self):
        memory = SessionMemory()
        memory.add_script("keep")
        memory.restore(None)
        assert memory.scripts == ["keep"]

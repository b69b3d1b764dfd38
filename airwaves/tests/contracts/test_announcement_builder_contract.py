"""
Contract tests for the announcement builder.

- Single host: one clip in voice1
- Dual host: up to three clips, alternating voices, partial failures tolerated
- Missing credentials skip the announcement
- The previous song and a lazily generated identity land in memory
"""

import json

import pytest

from airwaves.dj_logic.announcement_builder import AnnouncementBuilder
from airwaves.dj_logic.script_generator import ScriptGenerator
from airwaves.dj_logic.session_memory import SessionMemory
from airwaves.dj_logic.transition_context import build_context
from airwaves.errors import ConfigurationError, TransportError
from airwaves.state.radio_config import RadioConfig
from airwaves.tests.contracts.test_doubles import FakeLLMClient, FakeSynthesizer, make_queue

IDENTITY_REPLY = json.dumps({
    "sessionName": "Late Shift",
    "sessionVibe": "warm",
    "openingNarrative": "Settle in.",
    "djStyle": "easy",
})


def _builder(replies, config=None, synthesizer=None, on_built=None, configured=True):
    memory = SessionMemory()
    config = config or RadioConfig(enabled=True)
    llm = FakeLLMClient(replies, configured=configured)
    generator = ScriptGenerator(llm, memory, config)
    return AnnouncementBuilder(generator, synthesizer or FakeSynthesizer(), memory, config,
                               on_built=on_built)


class TestBuilder_SingleHost:

    @pytest.mark.asyncio
    async def test_single_clip_in_voice1(self):
        built = []
        builder = _builder([IDENTITY_REPLY, "Here comes Song 2!"],
                           on_built=lambda: built.append(True))

        result = await builder.build(build_context(make_queue()))

        assert len(result.clips) == 1
        assert result.script == "Here comes Song 2!"
        assert builder.synthesizer.calls == [("Here comes Song 2!", "af_bella", 1.0)]
        assert result.transition.fade_out_ms == 2000, "4s of speech uses the short fade"
        assert built == [True], "on_built fires after a successful build"

    @pytest.mark.asyncio
    async def test_memory_gets_previous_song_and_identity(self):
        builder = _builder([IDENTITY_REPLY, "Hello."])
        await builder.build(build_context(make_queue()))

        assert builder.memory.previous_songs == ["Song 1 - Artist 1"]
        assert builder.memory.identity.session_name == "Late Shift"
        assert builder.memory.scripts == ["Hello."]

    @pytest.mark.asyncio
    async def test_identity_generated_once(self):
        builder = _builder([IDENTITY_REPLY, "One.", "Two."])
        await builder.build(build_context(make_queue()))
        await builder.build(build_context(make_queue()))
        assert len(builder.generator.llm.prompts) == 3

    @pytest.mark.asyncio
    async def test_rebuild_records_previous_song_once(self):
        builder = _builder([IDENTITY_REPLY, "First try.", "Second try.", "Next one."],
                           synthesizer=FakeSynthesizer(fail_on=[0], error=TransportError("tts down")))
        queue = make_queue()
        with pytest.raises(TransportError):
            await builder.build(build_context(queue))
        await builder.build(build_context(queue))
        assert builder.memory.previous_songs == ["Song 1 - Artist 1"]

        queue.advance()
        await builder.build(build_context(queue))
        assert builder.memory.previous_songs == ["Song 1 - Artist 1", "Song 2 - Artist 2"]

    @pytest.mark.asyncio
    async def test_identity_retried_after_failed_request(self):
        builder = _builder([TransportError("down"), "One.", IDENTITY_REPLY, "Two."])

        await builder.build(build_context(make_queue()))
        assert builder.memory.identity is None, "No identity stored after a failed request"

        await builder.build(build_context(make_queue()))
        assert builder.memory.identity.session_name == "Late Shift"
        assert len(builder.generator.llm.prompts) == 4

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        builder = _builder([], configured=False)
        with pytest.raises(ConfigurationError):
            await builder.build(build_context(make_queue()))
        assert builder.memory.previous_songs == [], "Nothing recorded when skipped"


class TestBuilder_DualHost:

    DIALOGUE = "[HOST1] One.\n[HOST2] Two.\n[HOST1] Three.\n[HOST2] Four."

    def _config(self):
        return RadioConfig(enabled=True, dual_mode=True, voice2="am_adam")

    @pytest.mark.asyncio
    async def test_alternating_voices_capped_at_three(self):
        builder = _builder([IDENTITY_REPLY, self.DIALOGUE], config=self._config())
        result = await builder.build(build_context(make_queue()))

        voices = [voice for _, voice, _ in builder.synthesizer.calls]
        assert voices == ["af_bella", "am_adam", "af_bella"]
        assert len(result.clips) == 3
        assert result.audio_url.startswith("multi:")
        assert result.script == "[HOST1] One.\n[HOST2] Two.\n[HOST1] Three."

    @pytest.mark.asyncio
    async def test_failed_line_is_skipped(self):
        synthesizer = FakeSynthesizer(fail_on=[1])
        builder = _builder([IDENTITY_REPLY, self.DIALOGUE], config=self._config(),
                           synthesizer=synthesizer)
        result = await builder.build(build_context(make_queue()))
        assert len(result.clips) == 2
        assert result.script == "[HOST1] One.\n[HOST1] Three."

    @pytest.mark.asyncio
    async def test_all_lines_failed(self):
        synthesizer = FakeSynthesizer(fail_on=[0, 1, 2])
        builder = _builder([IDENTITY_REPLY, self.DIALOGUE], config=self._config(),
                           synthesizer=synthesizer)
        with pytest.raises(TransportError):
            await builder.build(build_context(make_queue()))

    @pytest.mark.asyncio
    async def test_dual_flag_without_second_voice_is_single(self):
        config = RadioConfig(enabled=True, dual_mode=True, voice2=None)
        builder = _builder([IDENTITY_REPLY, "Solo."], config=config)
        result = await builder.build(build_context(make_queue()))
        assert len(result.clips) == 1

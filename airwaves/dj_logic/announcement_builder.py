"""
Announcement Builder for Airwaves.

THINK side of a transition: script first, then one synthesis job per line,
packaged as an AnnouncementResult the orchestrator can play.
"""

import logging
from typing import Callable, List, Optional

from airwaves.broadcast_core.announcement import (
    AnnouncementResult,
    SpeechClip,
    calculate_transition,
)
from airwaves.dj_logic.script_generator import ScriptGenerator
from airwaves.dj_logic.session_memory import SessionMemory
from airwaves.dj_logic.transition_context import TransitionContext
from airwaves.errors import ConfigurationError, RadioError, TransportError
from airwaves.log_file import attach_file_handler
from airwaves.outputs.speech_synthesizer import SpeechSynthesizer
from airwaves.state.radio_config import RadioConfig

logger = logging.getLogger(__name__)
attach_file_handler(logger)

MAX_DIALOGUE_CLIPS = 3
SPEECH_SPEED = 1.0


class AnnouncementBuilder:
    """Builds a complete announcement for one transition."""

    def __init__(self, generator: ScriptGenerator, synthesizer: SpeechSynthesizer,
                 memory: SessionMemory, config: RadioConfig,
                 on_built: Optional[Callable[[], None]] = None):
        """
        Args:
            generator: Script generator (writes the transcript to memory)
            synthesizer: TTS client
            memory: Session memory shared with the generator
            config: Radio configuration, read on every build
            on_built: Called after a successful build, e.g. to persist memory
        """
        self.generator = generator
        self.synthesizer = synthesizer
        self.memory = memory
        self.config = config
        self._on_built = on_built
        self._recorded_for = None

    async def build(self, context: TransitionContext) -> AnnouncementResult:
        """
        Generate script and audio for ``context``.

        Raises:
            RadioError: Nothing playable could be produced
        """
        if not self.generator.llm.configured or not self.synthesizer.configured:
            raise ConfigurationError("Radio credentials are not configured")

        self._record_previous(context)

        if not self.memory.has_identity():
            identity = await self.generator.generate_identity(context.upcoming)
            if identity is not None:
                self.memory.set_identity(identity)

        if self.config.is_dual:
            result = await self._build_dialogue(context)
        else:
            result = await self._build_single(context)

        logger.info(f"[RADIO] Announcement ready: {len(result.clips)} clip(s), "
                    f"~{result.total_estimated_seconds:.1f}s")
        if self._on_built is not None:
            self._on_built()
        return result

    def _record_previous(self, context: TransitionContext) -> None:
        # A rebuild for the same transition records the outgoing song once
        if context.previous is None:
            return
        key = (context.previous, context.next)
        if key == self._recorded_for and self.memory.previous_songs:
            return
        self.memory.add_previous_song(context.previous.title, context.previous.artist)
        self._recorded_for = key

    async def _build_single(self, context: TransitionContext) -> AnnouncementResult:
        script = await self.generator.generate_single_line(context)
        clip = await self.synthesizer.synthesize(script, self.config.voice1, SPEECH_SPEED)
        return AnnouncementResult(
            clips=[clip],
            script=script,
            transition=calculate_transition(clip.duration_seconds),
        )

    async def _build_dialogue(self, context: TransitionContext) -> AnnouncementResult:
        lines = (await self.generator.generate_dialogue(context))[:MAX_DIALOGUE_CLIPS]
        voices = self.config.voices()

        clips: List[SpeechClip] = []
        script_lines: List[str] = []
        last_error = None
        for i, line in enumerate(lines):
            host = i % 2
            try:
                clip = await self.synthesizer.synthesize(line, voices[host], SPEECH_SPEED)
            except RadioError as e:
                # A missing line is tolerable; a missing dialogue is not
                logger.warning(f"[RADIO] Skipping dialogue line {i + 1}: {e}")
                last_error = e
                continue
            clips.append(clip)
            script_lines.append(f"[HOST{host + 1}] {line}")

        if not clips:
            raise TransportError(f"No dialogue line could be synthesized: {last_error}")

        total = sum(c.duration_seconds for c in clips)
        return AnnouncementResult(
            clips=clips,
            script="\n".join(script_lines),
            transition=calculate_transition(total),
        )

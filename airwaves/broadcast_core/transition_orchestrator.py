"""
Transition Orchestrator for Airwaves.

Owns the track-to-track transition: asks the gate whether an announcement is
due, prepares it while the current track plays (THINK), and executes the
fade / silence / speech / bring-up / fade-in choreography (DO).

Single-threaded asyncio. The only suspension points are network calls,
fixed sleeps, and clip playback. Exactly one generation may be in flight and
exactly one fade may run at a time. Any failure degrades to "next track, no
announcement"; music never stops because of the radio.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from airwaves.broadcast_core.announcement import AnnouncementResult, SpeechClip
from airwaves.broadcast_core.media_player import MediaPlayer, SpeechPlayer
from airwaves.broadcast_core.transition_state import (
    TransitionState,
    TransitionEvent,
    GenerationState,
    TRANSITION_STATES,
    next_state,
)
from airwaves.dj_logic.announcement_builder import AnnouncementBuilder
from airwaves.dj_logic.announcement_gate import AnnouncementGate
from airwaves.dj_logic.session_memory import SessionMemory
from airwaves.dj_logic.transition_context import TransitionContext, build_context
from airwaves.errors import RadioError
from airwaves.log_file import attach_file_handler
from airwaves.mixer.volume_fader import ramp_volume
from airwaves.music_logic.play_queue import PlayQueue, Song
from airwaves.outputs.audio_proxy import AudioProxy

logger = logging.getLogger(__name__)
attach_file_handler(logger)

FADE_OUT_MS = 5000
BACKGROUND_VOLUME = 0.2
FADE_STEPS = 25
QUICK_FADE_STEPS = 10
QUICK_FADE_STEP_MS = 80
CLIP_GAP_MS = 350
SPEECH_GAIN = 2.5
BRING_UP_BEFORE_END_MS = 15000
MIN_BRING_UP_DELAY_MS = 3000
MIN_POST_SILENCE_MS = 5000
FALLBACK_CLIP_MS = 8000
REPLAY_WINDOW_SECONDS = 5.0
RESTART_THRESHOLD_SECONDS = 3.0
MONITOR_INTERVAL_SECONDS = 0.25

Sleep = Callable[[float], Awaitable[None]]

S = TransitionState
E = TransitionEvent


def bring_up_delay_ms(total_ms: float) -> float:
    """When to start the next track under the announcement."""
    return max(total_ms - BRING_UP_BEFORE_END_MS, MIN_BRING_UP_DELAY_MS)


@dataclass
class PendingAnnouncement:
    """An announcement prepared for the transition into ``target_id``."""
    target_id: str
    result: AnnouncementResult


class TransitionOrchestrator:
    """
    Radio transition state machine.

    Attributes:
        state: Current TransitionState
        generation: Lifecycle of the pending-announcement slot
        announcement_playing: True while speech is audible (for UI/title)
        next_transition_has_announcement: True once the gate said the next
            transition is due and generation started
        songs_played_count: Tracks started this session
    """

    def __init__(self, queue: PlayQueue, player: MediaPlayer, speech: SpeechPlayer,
                 gate: AnnouncementGate, builder: AnnouncementBuilder,
                 memory: SessionMemory, proxy: AudioProxy,
                 volume: float = 1.0, sleep: Sleep = asyncio.sleep):
        """
        Args:
            queue: Play queue; the orchestrator is the only thing moving its cursor
            player: Music output
            speech: Announcement output
            gate: Frequency gate
            builder: Script + speech synthesis
            memory: Session memory (read for context timing)
            proxy: Clip byte fetcher with cache
            volume: Listener's target volume, 0.0-1.0
            sleep: Awaitable sleep for silences, fade steps and the monitor
        """
        self.queue = queue
        self.player = player
        self.speech = speech
        self.gate = gate
        self.builder = builder
        self.memory = memory
        self.proxy = proxy
        self.target_volume = volume
        self._sleep = sleep

        self.state = S.PLAYING
        self.generation = GenerationState.IDLE
        self.announcement_playing = False
        self.next_transition_has_announcement = False
        self.songs_played_count = 0
        self.stopped = False

        self._pending: Optional[PendingAnnouncement] = None
        self._last_played: Optional[AnnouncementResult] = None
        self._last_played_for: Optional[str] = None
        self._fading = False
        self._generation_task: Optional[asyncio.Task] = None
        self._generation_target: Optional[str] = None

    # -- state ------------------------------------------------------------

    def _fire(self, event: TransitionEvent) -> None:
        previous = self.state
        self.state = next_state(previous, event)
        if previous is not self.state:
            logger.debug(f"[RADIO] {previous.value} -> {self.state.value} ({event.value})")

    @property
    def in_transition(self) -> bool:
        return self._fading or self.announcement_playing or self.state in TRANSITION_STATES

    @property
    def pending(self) -> Optional[AnnouncementResult]:
        return self._pending.result if self._pending else None

    @property
    def last_played(self) -> Optional[AnnouncementResult]:
        return self._last_played

    def set_volume(self, volume: float) -> None:
        """Listener volume change. Applied now unless a fade owns the volume."""
        self.target_volume = min(max(volume, 0.0), 1.0)
        if not self.in_transition:
            self.player.volume = self.target_volume

    # -- playback entry points ---------------------------------------------

    async def start(self) -> None:
        song = self.queue.current()
        if song is None:
            logger.warning("[RADIO] Queue is empty, nothing to play")
            self.stopped = True
            return
        await self.play_song(song)

    async def play_song(self, song: Song, pre_generate: bool = True) -> None:
        """Start ``song`` at the listener volume and prepare the next transition."""
        self.player.volume = self.target_volume
        await self.player.play(song)
        self.songs_played_count += 1
        if pre_generate:
            self.schedule_pre_generation()

    async def next(self) -> None:
        """Manual skip. Counts toward the gate like a finished track."""
        if self.in_transition:
            logger.info("[RADIO] Skip ignored, transition in progress")
            return
        if not self.queue.has_next():
            return
        await self._advance_through_gate()

    async def previous(self) -> None:
        """
        Replay the last announcement if the track after it just started,
        otherwise restart the track or step back.
        """
        if self.in_transition:
            return
        position = self.player.position()
        current = self.queue.current()
        if (self._last_played is not None and current is not None
                and self._last_played_for == current.id
                and position < REPLAY_WINDOW_SECONDS):
            await self.replay_last_announcement()
            return
        if position > RESTART_THRESHOLD_SECONDS:
            self.player.seek(0)
            return
        song = self.queue.step_back()
        if song is None:
            self.player.seek(0)
            return
        await self.play_song(song)

    # -- monitor -----------------------------------------------------------

    async def run(self, stop: asyncio.Event) -> None:
        """
        Play the queue until ``stop`` is set or the queue runs out, polling
        the player for position updates and track ends.
        """
        await self.start()
        while not stop.is_set() and not self.stopped:
            await self._sleep(MONITOR_INTERVAL_SECONDS)
            if self.player.ended():
                await self.on_track_ended()
            else:
                await self.on_position(self.player.position(), self.player.duration())
        logger.info("[RADIO] Monitor stopped")

    async def on_position(self, position: float, duration: Optional[float]) -> None:
        """
        Anticipated path: with an announcement ready, start fading as soon as
        the remaining time drops inside the fade-out window.
        """
        if self._pending is None or self._fading or self.announcement_playing:
            return
        if not self.gate.enabled:
            return
        if not duration or duration <= 0:
            return
        remaining = duration - position
        if 0 < remaining <= FADE_OUT_MS / 1000:
            self._fading = True
            await self._anticipated_transition()

    async def on_track_ended(self) -> None:
        """Reactive path: the track ran out without an anticipated fade."""
        if self._fading or self.announcement_playing:
            return
        if not self.queue.has_next():
            logger.info("[RADIO] End of queue")
            self.player.stop()
            self.stopped = True
            return
        await self._advance_through_gate()

    # -- pre-generation (THINK) --------------------------------------------

    def schedule_pre_generation(self) -> Optional[asyncio.Task]:
        """
        Prepare the announcement for the transition after the current track.

        Clears whatever was pending. Returns the background task, or None
        when nothing was started (radio off, no next track, or a generation
        still in flight).
        """
        self._pending = None
        self.next_transition_has_announcement = False
        self._fading = False
        if self.generation is GenerationState.READY:
            self.generation = GenerationState.IDLE

        if not self.gate.enabled:
            return None
        if self.generation is GenerationState.IN_FLIGHT:
            logger.debug("[RADIO] Generation already in flight, not starting another")
            return None
        target = self.queue.peek_next()
        if target is None:
            return None

        self.generation = GenerationState.IN_FLIGHT
        self._generation_target = target.id
        self._generation_task = asyncio.create_task(self._pre_generate(target))
        return self._generation_task

    async def _pre_generate(self, target: Song) -> None:
        try:
            status = self.gate.peek()
            if not status.should_announce:
                return
            self.next_transition_has_announcement = True
            if self.state is S.PLAYING:
                self._fire(E.GENERATION_STARTED)
            logger.info(f"[RADIO] Preparing announcement before {target.label()}")

            result = await self.builder.build(self._context())
            if not self.gate.enabled:
                logger.info("[RADIO] Radio switched off, discarding announcement")
                self.next_transition_has_announcement = False
                return
            if self.queue.peek_next() is not target:
                # The queue moved on while we were generating
                logger.info("[RADIO] Discarding stale announcement")
                self.next_transition_has_announcement = False
                return
            self._pending = PendingAnnouncement(target.id, result)
            self.generation = GenerationState.READY
        except RadioError as e:
            logger.warning(f"[RADIO] Pre-generation skipped: {e}")
            self.next_transition_has_announcement = False
        except Exception as e:
            logger.error(f"[RADIO] Pre-generation crashed: {e}", exc_info=True)
            self.next_transition_has_announcement = False
        finally:
            if self.generation is GenerationState.IN_FLIGHT:
                self.generation = GenerationState.IDLE
            self._generation_target = None
            self._fire(E.GENERATION_SETTLED)

    def _context(self) -> TransitionContext:
        context = build_context(
            self.queue,
            songs_played_count=self.songs_played_count,
            session_minutes=self.memory.session_minutes(),
        )
        if context is None:
            raise RadioError("No next track to announce")
        return context

    def _take_pending(self) -> Optional[AnnouncementResult]:
        """Pop the pending announcement if it still targets the next track."""
        pending, self._pending = self._pending, None
        if self.generation is GenerationState.READY:
            self.generation = GenerationState.IDLE
        if pending is None:
            return None
        upcoming = self.queue.peek_next()
        if upcoming is None or upcoming.id != pending.target_id:
            logger.info("[RADIO] Pending announcement no longer matches the next track")
            return None
        return pending.result

    async def _announcement_on_demand(self, target: Song) -> AnnouncementResult:
        """
        Reuse an in-flight generation for the same track, otherwise build
        one now.
        """
        task = self._generation_task
        if task is not None and not task.done() and self._generation_target == target.id:
            logger.info("[RADIO] Waiting for in-flight generation")
            await task
            ready = self._take_pending()
            if ready is not None:
                return ready
        return await self.builder.build(self._context())

    # -- transitions (DO) --------------------------------------------------

    async def _advance_through_gate(self) -> None:
        if self.gate.enabled:
            announcement = self._take_pending()
            if announcement is not None:
                self.gate.consume()
                await self._reactive_transition(announcement)
                return
            status = self.gate.consume()
            if status.should_announce:
                await self._reactive_transition(None)
                return
        await self._advance_plain()

    async def _advance_plain(self) -> None:
        song = self.queue.advance()
        if song is None:
            return
        await self.play_song(song)

    async def _reactive_transition(self, announcement: Optional[AnnouncementResult]) -> None:
        """
        The outgoing track is over (or skipped): speech over the background
        level, then the next track fades in.
        """
        next_song = self.queue.peek_next()
        if next_song is None:
            await self._advance_plain()
            return

        self._fading = True
        try:
            self._fire(E.FADE_STARTED)
            if announcement is None:
                await self._fade(self.player.volume, BACKGROUND_VOLUME,
                                 QUICK_FADE_STEPS, QUICK_FADE_STEP_MS)
                announcement = await self._announcement_on_demand(next_song)
            self._fire(E.FADE_FINISHED)

            self._last_played = announcement
            self.player.volume = BACKGROUND_VOLUME
            await self._sleep(announcement.transition.pre_silence_ms / 1000)

            self.announcement_playing = True
            self._fire(E.SPEECH_STARTED)
            await self._play_clips(announcement.clips)
            self.announcement_playing = False
            self.next_transition_has_announcement = False
            self._fire(E.SPEECH_FINISHED)

            await self._sleep(max(announcement.transition.post_silence_ms, MIN_POST_SILENCE_MS) / 1000)

            self._fire(E.FADE_IN_STARTED)
            self.queue.advance()
            self.player.volume = BACKGROUND_VOLUME
            await self.player.play(next_song)
            self.songs_played_count += 1
            self._last_played_for = next_song.id
            await self._fade(BACKGROUND_VOLUME, self.target_volume,
                             FADE_STEPS, announcement.transition.fade_in_ms / FADE_STEPS)
            self._fire(E.FADE_IN_FINISHED)
            self._fading = False
            self.schedule_pre_generation()
        except Exception as e:
            await self._abort(next_song, e)

    async def _anticipated_transition(self) -> None:
        """
        The announcement is ready and the track is in its last seconds:
        fade the tail down, then speak while the next track comes up under.
        """
        next_song = self.queue.peek_next()
        try:
            self._fire(E.FADE_STARTED)
            await self._fade(self.player.volume, BACKGROUND_VOLUME,
                             FADE_STEPS, FADE_OUT_MS / FADE_STEPS)
            self.player.pause()
            self._fire(E.FADE_FINISHED)

            announcement = self._take_pending()
            status = self.gate.consume()
            if announcement is None or next_song is None or not status.enabled:
                self._fading = False
                self._fire(E.ABORTED)
                await self._advance_plain()
                return

            await self._announce_over_next_track(announcement, next_song)
            self._fire(E.FADE_IN_STARTED)
            await self._fade(BACKGROUND_VOLUME, self.target_volume,
                             FADE_STEPS, announcement.transition.fade_in_ms / FADE_STEPS)
            self._fire(E.FADE_IN_FINISHED)
            self._fading = False
            self.schedule_pre_generation()
        except Exception as e:
            await self._abort(next_song, e)

    async def _announce_over_next_track(self, announcement: AnnouncementResult,
                                        next_song: Song) -> None:
        self._last_played = announcement
        self.announcement_playing = True
        await self._sleep(announcement.transition.pre_silence_ms / 1000)
        self._fire(E.SPEECH_STARTED)

        total_ms = await self.total_duration_ms(announcement.clips)
        delay_ms = bring_up_delay_ms(total_ms)
        logger.info(f"[RADIO] Announcement ~{total_ms / 1000:.1f}s, next track in {delay_ms / 1000:.1f}s")

        bring_up = asyncio.create_task(self._bring_up_after(delay_ms, next_song))
        try:
            await self._play_clips(announcement.clips)
            await bring_up
        finally:
            if not bring_up.done():
                bring_up.cancel()

        self.announcement_playing = False
        self.next_transition_has_announcement = False
        self._fire(E.SPEECH_FINISHED)
        await self._sleep(max(announcement.transition.post_silence_ms, MIN_POST_SILENCE_MS) / 1000)

    async def _bring_up_after(self, delay_ms: float, song: Song) -> None:
        await self._sleep(delay_ms / 1000)
        self.queue.advance()
        self.player.volume = BACKGROUND_VOLUME
        await self.player.play(song)
        self.songs_played_count += 1
        self._last_played_for = song.id
        if self.state is S.ANNOUNCING:
            self._fire(E.BACKGROUND_STARTED)

    async def replay_last_announcement(self) -> None:
        """Play the last announcement again over the current track."""
        announcement = self._last_played
        if announcement is None or self.in_transition:
            return
        self._fading = True
        try:
            await self._fade(self.player.volume, BACKGROUND_VOLUME,
                             QUICK_FADE_STEPS, QUICK_FADE_STEP_MS)
            self.announcement_playing = True
            await self._play_clips(announcement.clips)
        except RadioError as e:
            logger.warning(f"[RADIO] Replay failed: {e}")
        finally:
            self.announcement_playing = False
            self.player.volume = self.target_volume
            self.player.resume()
            self._fading = False

    async def _abort(self, next_song: Optional[Song], error: Exception) -> None:
        """Collapse to PLAYING on the next track at normal volume."""
        if isinstance(error, RadioError):
            logger.warning(f"[RADIO] Transition aborted: {error}")
        else:
            logger.error(f"[RADIO] Transition crashed: {error}", exc_info=True)
        self.announcement_playing = False
        self.next_transition_has_announcement = False
        self._fading = False
        self._fire(E.ABORTED)

        if next_song is not None and self.queue.current() is next_song:
            # Bring-up already started it
            self.player.volume = self.target_volume
            self.player.resume()
            self.schedule_pre_generation()
            return
        try:
            await self._advance_plain()
        except RadioError as e:
            logger.error(f"[RADIO] Could not start next track: {e}")

    # -- helpers -----------------------------------------------------------

    async def _fade(self, start: float, end: float, steps: int, step_ms: float) -> None:
        def apply(level: float) -> None:
            self.player.volume = level
        await ramp_volume(apply, start, end, steps, step_ms / 1000, sleep=self._sleep)

    async def _play_clips(self, clips: List[SpeechClip]) -> None:
        for i, clip in enumerate(clips):
            audio = await self.proxy.fetch(clip.audio_ref)
            await self.speech.play_clip(audio, SPEECH_GAIN)
            if i < len(clips) - 1:
                await self._sleep(CLIP_GAP_MS / 1000)

    async def total_duration_ms(self, clips: List[SpeechClip]) -> float:
        """
        Announcement length including gaps. Each clip is measured from its
        bytes; unmeasurable clips use their estimate, or 8 s without one.
        """
        total = 0.0
        for clip in clips:
            seconds = None
            try:
                seconds = await self.speech.measure(await self.proxy.fetch(clip.audio_ref))
            except RadioError as e:
                logger.debug(f"[RADIO] Could not measure clip: {e}")
            if not seconds or seconds <= 0:
                seconds = clip.duration_seconds if clip.duration_seconds > 0 else FALLBACK_CLIP_MS / 1000
            total += seconds * 1000
        if len(clips) > 1:
            total += CLIP_GAP_MS * (len(clips) - 1)
        return total

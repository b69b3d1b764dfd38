"""
Script Generator for Airwaves.

Turns session memory plus a TransitionContext into a generation request,
calls the text model and parses the reply into one line (single host) or up
to three lines of dialogue (two hosts).

Memory is written only after a successful generation.
"""

import json
import logging
import re
from datetime import datetime
from typing import Callable, Optional, List, Sequence

from airwaves.dj_logic.personalities import personality_prompt, dj_name
from airwaves.dj_logic.session_memory import SessionMemory, SessionIdentity
from airwaves.dj_logic.transition_context import TransitionContext, SongInfo
from airwaves.errors import ParseError, RadioError
from airwaves.log_file import attach_file_handler
from airwaves.outputs.llm_client import LLMClient
from airwaves.state.radio_config import RadioConfig

logger = logging.getLogger(__name__)
attach_file_handler(logger)

SINGLE_TEMPERATURE = 0.8
DIALOGUE_TEMPERATURE = 0.85
IDENTITY_TEMPERATURE = 0.9
IDENTITY_SONG_SAMPLE = 5
DIALOGUE_LINES = 3

HOST_TAG_LINE = re.compile(r"^\[HOST[12]\]")
HOST_TAG = re.compile(r"\[HOST[12]\]\s*")
HOST_TAG_ANYWHERE = re.compile(r"\[HOST[12]\]")
CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")

DEFAULT_IDENTITY = SessionIdentity(
    session_name="Radio Session",
    session_vibe="chill and friendly",
    opening_narrative="Let's enjoy some great music together!",
    dj_style="friendly and casual",
)


def time_of_day(hour: int) -> str:
    if hour < 6:
        return "Late night / early morning"
    if hour < 12:
        return "Morning"
    if hour < 17:
        return "Afternoon"
    if hour < 21:
        return "Evening"
    return "Night"


def parse_dialogue(raw: str) -> List[str]:
    """
    Extract host lines from a tagged dialogue.

    Lines starting with [HOST1] or [HOST2] are kept in order with the tag
    removed; empty results are dropped. If no tagged line exists the whole
    reply, with every tag removed, becomes a single line.
    """
    lines = []
    for line in raw.splitlines():
        line = line.strip()
        if not HOST_TAG_LINE.match(line):
            continue
        text = HOST_TAG.sub("", line, count=1).strip()
        if text:
            lines.append(text)
    if lines:
        return lines
    return [HOST_TAG_ANYWHERE.sub("", raw).strip()]


def parse_identity(raw: str) -> SessionIdentity:
    """
    Parse the identity JSON object, tolerating markdown fences.

    Malformed input gives DEFAULT_IDENTITY; missing keys take per-key defaults.
    """
    text = CODE_FENCE.sub("", raw.strip()).strip()
    try:
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ParseError("Identity reply is not a JSON object")
    except (ValueError, ParseError) as e:
        logger.warning(f"[SCRIPT] Could not parse session identity, using default: {e}")
        return DEFAULT_IDENTITY
    return SessionIdentity(
        session_name=str(data.get("sessionName") or DEFAULT_IDENTITY.session_name),
        session_vibe=str(data.get("sessionVibe") or DEFAULT_IDENTITY.session_vibe),
        opening_narrative=str(data.get("openingNarrative") or ""),
        dj_style=str(data.get("djStyle") or DEFAULT_IDENTITY.dj_style),
    )


def _describe_song(heading: str, song: Optional[SongInfo]) -> List[str]:
    if song is None or not song.title:
        return []
    out = [f"{heading}:", f"- Title: {song.title}", f"- Artist: {song.artist}"]
    if song.album:
        out.append(f"- Album: {song.album}")
    if song.year:
        out.append(f"- Year: {song.year}")
    if song.genre:
        out.append(f"- Genre: {song.genre}")
    if song.description:
        out.append(f"- Description: {song.description}")
    if song.rank_position is not None:
        out.append(f"- User Ranking: #{song.rank_position} in their personal chart")
    return out


class ScriptGenerator:
    """
    Writes what the DJ says.

    Reads the radio config on every call, so settings edits apply to the
    next announcement without a restart.
    """

    def __init__(self, llm: LLMClient, memory: SessionMemory, config: RadioConfig,
                 now: Callable[[], datetime] = datetime.now):
        self.llm = llm
        self.memory = memory
        self.config = config
        self._now = now

    # -- prompts -----------------------------------------------------------

    def _shared_sections(self, context: TransitionContext) -> List[str]:
        memory = self.memory
        out: List[str] = []

        identity = memory.identity
        if identity is not None:
            out += [
                "",
                "=== SESSION IDENTITY ===",
                f"Tonight's theme: {identity.session_name}",
                f"Vibe: {identity.session_vibe}",
                f"Narrative: {identity.opening_narrative}",
                f"Style tonight: {identity.dj_style}",
            ]

        user_name = (self.config.user_name or "").strip()
        if user_name:
            out += [
                "",
                "=== LISTENER ===",
                f"The listener's name is {user_name}. Greet them by name now and then, not every time.",
            ]

        if not memory.is_first_announcement():
            out += [
                "",
                "=== WHAT YOU'VE ALREADY SAID ===",
                "Do not repeat facts or stories from these announcements.",
                "",
                memory.formatted_history(),
            ]

        if memory.previous_songs:
            out += ["", "=== SONGS WE'VE PLAYED ==="]
            out += [f"- {s}" for s in memory.previous_songs]

        if context.upcoming:
            out += ["", "=== COMING UP LATER ==="]
            out += [f"- {s}" for s in context.upcoming]

        out += ["", "=== CURRENT TRANSITION ==="]
        out += _describe_song("Just finished", context.previous)
        out += [""]
        out += _describe_song("Now playing", context.next)
        out += [
            "",
            f"Time of day: {time_of_day(self._now().hour)}",
            f"Announcement #{memory.announcement_count + 1} of this session",
        ]
        return out

    def _opening_hint(self) -> str:
        if self.memory.is_first_announcement():
            return "This is the FIRST announcement: introduce tonight's theme."
        return "Continue the thread from your previous announcements."

    def build_single_prompt(self, context: TransitionContext) -> str:
        config = self.config
        name = dj_name(config.dj_name1, config.voice1)
        lines = [
            f'You are {name}, a radio DJ for the station "{config.radio_name}".',
            "",
            "=== YOUR PERSONALITY ===",
            personality_prompt(config.personality, config.custom_personality),
        ]
        lines += self._shared_sections(context)
        lines += [
            "",
            "=== INSTRUCTIONS ===",
            "Write a SHORT spoken radio announcement of 30-60 words.",
            self._opening_hint(),
            "Include one hook: a fun fact, a callback to an earlier song, or a tease of what's coming up later.",
            "Plain spoken English only. No emojis, hashtags, speaker prefixes or stage directions.",
            "",
            "Your announcement:",
        ]
        return "\n".join(lines)

    def build_dialogue_prompt(self, context: TransitionContext) -> str:
        config = self.config
        host1 = dj_name(config.dj_name1, config.voice1)
        host2 = dj_name(config.dj_name2, config.voice2)
        lines = [
            f'Write a dialogue between two radio hosts of the station "{config.radio_name}".',
            "",
            f"=== HOST 1: {host1} (lead) ===",
            personality_prompt(config.personality, config.custom_personality),
            "",
            f"=== HOST 2: {host2} (sidekick) ===",
            personality_prompt(config.personality2, config.custom_personality2),
        ]
        lines += self._shared_sections(context)
        lines += [
            "",
            "=== INSTRUCTIONS ===",
            f"Write EXACTLY {DIALOGUE_LINES} lines, alternating hosts, starting with HOST1.",
            "Each line is 10-25 spoken words. HOST1 leads and introduces the next song.",
            self._opening_hint(),
            "Format every line as:",
            "[HOST1] text",
            "[HOST2] text",
            "[HOST1] text",
            "No other text, no emojis, no stage directions.",
        ]
        return "\n".join(lines)

    def build_identity_prompt(self, upcoming: Sequence[str]) -> str:
        lines = [
            "You are preparing a radio DJ for tonight's listening session.",
            "Invent a short session identity that fits the music.",
        ]
        instructions = (self.config.user_instructions or "").strip()
        if instructions:
            lines += ["", f"Listener instructions: {instructions}"]
        sample = list(upcoming)[:IDENTITY_SONG_SAMPLE]
        if sample:
            lines += ["", "Songs in tonight's queue:"]
            lines += [f"- {s}" for s in sample]
        lines += [
            "",
            "Reply with a JSON object with exactly these keys:",
            '{"sessionName": "...", "sessionVibe": "...", "openingNarrative": "...", "djStyle": "..."}',
        ]
        return "\n".join(lines)

    # -- generation --------------------------------------------------------

    async def generate_single_line(self, context: TransitionContext) -> str:
        """
        One-host announcement.

        Raises:
            RadioError: Credentials missing, transport failure or unusable reply.
                Memory is untouched in that case.
        """
        prompt = self.build_single_prompt(context)
        text = await self.llm.complete(prompt, temperature=SINGLE_TEMPERATURE)
        text = HOST_TAG_ANYWHERE.sub("", text).strip()
        if not text:
            raise ParseError("Announcement reply is empty")
        self.memory.add_script(text)
        logger.info(f"[SCRIPT] Single-host script ready ({len(text)} chars)")
        return text

    async def generate_dialogue(self, context: TransitionContext) -> List[str]:
        """
        Two-host dialogue, normally three lines. Callers must accept one to three.

        Raises:
            RadioError: As generate_single_line.
        """
        prompt = self.build_dialogue_prompt(context)
        raw = await self.llm.complete(prompt, temperature=DIALOGUE_TEMPERATURE)
        lines = parse_dialogue(raw)
        if not lines or not lines[0]:
            raise ParseError("Dialogue reply is empty")
        if len(lines) == 1:
            logger.warning("[SCRIPT] Dialogue reply had no host tags, using it as one line")
        self.memory.add_script(raw)
        logger.info(f"[SCRIPT] Dialogue ready ({len(lines)} lines)")
        return lines

    async def generate_identity(self, upcoming: Sequence[str]) -> Optional[SessionIdentity]:
        """
        Create the session identity.

        An unusable reply gives DEFAULT_IDENTITY. A failed request gives None
        so the caller can try again on the next announcement.
        """
        try:
            raw = await self.llm.complete(
                self.build_identity_prompt(upcoming),
                temperature=IDENTITY_TEMPERATURE,
                json_mode=True,
            )
        except ParseError as e:
            logger.warning(f"[SCRIPT] Identity reply unusable, using default: {e}")
            return DEFAULT_IDENTITY
        except RadioError as e:
            logger.warning(f"[SCRIPT] Identity generation failed, will retry: {e}")
            return None
        return parse_identity(raw)

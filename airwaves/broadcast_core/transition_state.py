"""
Transition state machine for Airwaves.

Named states of a track-to-track transition and a pure function computing
the next state from an event. The orchestrator drives it; tests can check
every legal and illegal move without any audio.
"""

from enum import Enum
from typing import Dict, Tuple


class TransitionState(str, Enum):
    PLAYING = "PLAYING"
    PENDING_GENERATION = "PENDING_GENERATION"   # playing, announcement being prepared
    FADING_OUT = "FADING_OUT"
    PRE_SILENCE = "PRE_SILENCE"
    ANNOUNCING = "ANNOUNCING"
    BACKGROUND_BRING_UP = "BACKGROUND_BRING_UP"  # announcing, next track started underneath
    POST_SILENCE = "POST_SILENCE"
    FADING_IN = "FADING_IN"


class TransitionEvent(str, Enum):
    GENERATION_STARTED = "GENERATION_STARTED"
    GENERATION_SETTLED = "GENERATION_SETTLED"
    FADE_STARTED = "FADE_STARTED"
    FADE_FINISHED = "FADE_FINISHED"
    SPEECH_STARTED = "SPEECH_STARTED"
    BACKGROUND_STARTED = "BACKGROUND_STARTED"
    SPEECH_FINISHED = "SPEECH_FINISHED"
    FADE_IN_STARTED = "FADE_IN_STARTED"
    FADE_IN_FINISHED = "FADE_IN_FINISHED"
    ABORTED = "ABORTED"


class GenerationState(str, Enum):
    """Lifecycle of the single pending-announcement slot."""
    IDLE = "IDLE"
    IN_FLIGHT = "IN_FLIGHT"
    READY = "READY"


S = TransitionState
E = TransitionEvent

TRANSITIONS: Dict[Tuple[TransitionState, TransitionEvent], TransitionState] = {
    (S.PLAYING, E.GENERATION_STARTED): S.PENDING_GENERATION,
    (S.PENDING_GENERATION, E.GENERATION_SETTLED): S.PLAYING,
    (S.PLAYING, E.FADE_STARTED): S.FADING_OUT,
    (S.PENDING_GENERATION, E.FADE_STARTED): S.FADING_OUT,
    (S.FADING_OUT, E.FADE_FINISHED): S.PRE_SILENCE,
    (S.PRE_SILENCE, E.SPEECH_STARTED): S.ANNOUNCING,
    (S.ANNOUNCING, E.BACKGROUND_STARTED): S.BACKGROUND_BRING_UP,
    (S.ANNOUNCING, E.SPEECH_FINISHED): S.POST_SILENCE,
    (S.BACKGROUND_BRING_UP, E.SPEECH_FINISHED): S.POST_SILENCE,
    (S.POST_SILENCE, E.FADE_IN_STARTED): S.FADING_IN,
    (S.FADING_IN, E.FADE_IN_FINISHED): S.PLAYING,
}

# States during which a transition is under way
TRANSITION_STATES = frozenset({
    S.FADING_OUT,
    S.PRE_SILENCE,
    S.ANNOUNCING,
    S.BACKGROUND_BRING_UP,
    S.POST_SILENCE,
    S.FADING_IN,
})


class InvalidTransition(ValueError):
    def __init__(self, state: TransitionState, event: TransitionEvent):
        super().__init__(f"Event {event.value} is not allowed in state {state.value}")
        self.state = state
        self.event = event


def next_state(state: TransitionState, event: TransitionEvent) -> TransitionState:
    """
    Pure transition function.

    ABORTED always collapses to PLAYING. A generation settling while a
    transition is already under way leaves the state alone.

    Raises:
        InvalidTransition: The event is not legal in ``state``
    """
    if event is E.ABORTED:
        return S.PLAYING
    if event is E.GENERATION_SETTLED and state is not S.PENDING_GENERATION:
        return state
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(state, event) from None

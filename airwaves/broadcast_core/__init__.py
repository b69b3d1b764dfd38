"""
Broadcast Core module for Airwaves.

Announcement model, transition state machine, playback backends and the
transition orchestrator.
"""

from airwaves.broadcast_core.announcement import AnnouncementResult, SpeechClip, TransitionParams
from airwaves.broadcast_core.transition_state import TransitionState, GenerationState

__all__ = ["AnnouncementResult", "SpeechClip", "TransitionParams", "TransitionState", "GenerationState"]

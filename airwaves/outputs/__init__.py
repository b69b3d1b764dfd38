"""
Outputs module for Airwaves.

Audio sinks plus the clients that talk to the outside world (text
generation, speech synthesis, audio fetching).
"""

from .base_sink import BaseSink
from .null_sink import NullSink
from .ffplay_sink import FFplaySink
from .audio_proxy import AudioProxy
from .llm_client import LLMClient
from .speech_synthesizer import SpeechSynthesizer

__all__ = [
    "BaseSink",
    "NullSink",
    "FFplaySink",
    "AudioProxy",
    "LLMClient",
    "SpeechSynthesizer",
]

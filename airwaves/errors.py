"""
Error types for the Airwaves radio subsystem.

Nothing raised from here may stop music playback. Callers at the transition
boundary catch RadioError and degrade to "no announcement this time".
"""


class RadioError(Exception):
    """Base class for every recoverable radio failure."""


class ConfigurationError(RadioError):
    """Missing credentials or unusable settings. The announcement is skipped."""


class TransportError(RadioError):
    """Network or timeout failure talking to a generation or synthesis backend."""


class SynthesisTimeoutError(TransportError):
    """A synthesis job did not reach a terminal state within the poll cap."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(f"Synthesis job {job_id} still pending after {attempts} polls")
        self.job_id = job_id
        self.attempts = attempts


class SynthesisFailedError(RadioError):
    """A synthesis job reached a definitive failed or canceled state."""

    def __init__(self, job_id: str, status: str, detail: str = ""):
        message = f"Synthesis job {job_id} {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.job_id = job_id
        self.status = status


class ParseError(RadioError):
    """A backend reply could not be interpreted."""


class PlaybackError(RadioError):
    """Audio could not be decoded or played."""

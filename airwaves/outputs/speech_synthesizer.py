"""
Speech Synthesizer for Airwaves.

Client for an asynchronous text-to-speech job API (Replicate predictions
running Kokoro). A job is submitted, then polled until it reaches a terminal
state. Transport failures retry the whole submit+poll cycle.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Dict, Any

import httpx

from airwaves.broadcast_core.announcement import SpeechClip
from airwaves.errors import (
    ConfigurationError,
    TransportError,
    SynthesisTimeoutError,
    SynthesisFailedError,
)
from airwaves.log_file import attach_file_handler

logger = logging.getLogger(__name__)
attach_file_handler(logger)

REPLICATE_API_URL = "https://api.replicate.com/v1/predictions"
KOKORO_MODEL_VERSION = "f559560eb822dc509045f3921a1921234918b91739db4bf3daab2169b71c7a13"

POLL_INTERVAL_SECONDS = 1.0
MAX_POLL_ATTEMPTS = 30
MAX_ATTEMPTS = 3
RETRY_BACKOFF_SECONDS = 2.0
CHARS_PER_SECOND = 15.0

STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"
STATUS_CANCELED = "canceled"

Sleep = Callable[[float], Awaitable[None]]


def estimate_duration(text: str) -> float:
    """
    Approximate spoken length when the backend does not report it.

    About fifteen characters per second, never under one second.
    """
    return max(1.0, len(text) / CHARS_PER_SECOND)


def _extract_output(job: Dict[str, Any]) -> Optional[str]:
    output = job.get("output")
    if isinstance(output, str) and output:
        return output
    if isinstance(output, list) and output and isinstance(output[0], str):
        return output[0]
    return None


class SpeechSynthesizer:
    """
    Text to audio reference.

    The duration estimator is swappable; anything that measures real audio
    length can replace the character heuristic.
    """

    def __init__(self, api_token: Optional[str],
                 client: Optional[httpx.AsyncClient] = None,
                 sleep: Sleep = asyncio.sleep,
                 duration_estimator: Callable[[str], float] = estimate_duration,
                 api_url: str = REPLICATE_API_URL,
                 model_version: str = KOKORO_MODEL_VERSION,
                 poll_interval: float = POLL_INTERVAL_SECONDS,
                 max_polls: int = MAX_POLL_ATTEMPTS,
                 max_attempts: int = MAX_ATTEMPTS,
                 retry_backoff: float = RETRY_BACKOFF_SECONDS,
                 timeout: float = 30.0):
        """
        Args:
            api_token: Replicate API token. Empty means every call raises ConfigurationError.
            client: Optional shared AsyncClient (tests pass one with a MockTransport)
            sleep: Awaitable sleep used between polls and before retries
            duration_estimator: Maps input text to estimated seconds
            api_url: Predictions endpoint
            model_version: Model version hash submitted with each job
            poll_interval: Seconds between polls
            max_polls: Poll cap per attempt
            max_attempts: Submit+poll attempts on transport failure
            retry_backoff: Seconds to wait before each retry
            timeout: Per-request timeout in seconds
        """
        self.api_token = api_token
        self.api_url = api_url.rstrip("/")
        self.model_version = model_version
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.max_attempts = max_attempts
        self.retry_backoff = retry_backoff
        self.timeout = timeout
        self._client = client
        self._sleep = sleep
        self._estimate = duration_estimator

        logging.getLogger("httpx").setLevel(logging.WARNING)

    @property
    def configured(self) -> bool:
        return bool(self.api_token)

    async def synthesize(self, text: str, voice: str, speed: float = 1.0) -> SpeechClip:
        """
        Synthesize one line.

        Returns:
            SpeechClip with the output audio URL and estimated duration

        Raises:
            ConfigurationError: No API token
            SynthesisFailedError: The job ended failed or canceled (not retried)
            SynthesisTimeoutError: The job never finished within the poll cap
            TransportError: Every attempt failed at the request level
        """
        if not self.api_token:
            raise ConfigurationError("No speech synthesis API token configured")

        last_error: Optional[TransportError] = None
        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                logger.info(f"[TTS] Retry {attempt}/{self.max_attempts} in {self.retry_backoff}s")
                await self._sleep(self.retry_backoff)
            try:
                return await self._run_job(text, voice, speed)
            except SynthesisTimeoutError:
                raise
            except TransportError as e:
                last_error = e
                logger.warning(f"[TTS] Attempt {attempt}/{self.max_attempts} failed: {e}")

        raise TransportError(f"Speech synthesis failed after {self.max_attempts} attempts: {last_error}")

    async def _run_job(self, text: str, voice: str, speed: float) -> SpeechClip:
        if self._client is not None:
            return await self._submit_and_poll(self._client, text, voice, speed)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._submit_and_poll(client, text, voice, speed)

    def _headers(self, wait: bool = False) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.api_token}"}
        if wait:
            headers["Prefer"] = "wait=5"
        return headers

    async def _submit_and_poll(self, client: httpx.AsyncClient, text: str,
                               voice: str, speed: float) -> SpeechClip:
        body = {
            "version": self.model_version,
            "input": {"text": text, "voice": voice, "speed": speed},
        }
        try:
            response = await client.post(self.api_url, json=body,
                                         headers=self._headers(wait=True), timeout=self.timeout)
        except httpx.HTTPError as e:
            raise TransportError(f"Submit failed: {e}") from e
        if response.status_code not in (200, 201):
            raise TransportError(f"Submit rejected with HTTP {response.status_code}")
        try:
            job = response.json()
        except ValueError as e:
            raise TransportError(f"Submit returned invalid JSON: {e}") from e

        job_id = job.get("id")
        if job.get("status") == STATUS_SUCCEEDED:
            clip = self._clip_from(job, text)
            if clip is not None:
                logger.debug(f"[TTS] Job {job_id} finished immediately")
                return clip
        if not job_id:
            raise TransportError("Submit returned no job id")

        logger.debug(f"[TTS] Job {job_id} submitted ({len(text)} chars, voice={voice})")
        return await self._poll(client, job_id, text)

    async def _poll(self, client: httpx.AsyncClient, job_id: str, text: str) -> SpeechClip:
        url = f"{self.api_url}/{job_id}"
        for attempt in range(1, self.max_polls + 1):
            try:
                response = await client.get(url, headers=self._headers(), timeout=self.timeout)
                response.raise_for_status()
                job = response.json()
            except httpx.HTTPError as e:
                raise TransportError(f"Poll of job {job_id} failed: {e}") from e
            except ValueError as e:
                raise TransportError(f"Poll of job {job_id} returned invalid JSON: {e}") from e

            status = job.get("status")
            logger.debug(f"[TTS] Job {job_id} status={status} (poll {attempt})")
            if status == STATUS_SUCCEEDED:
                clip = self._clip_from(job, text)
                if clip is None:
                    raise SynthesisFailedError(job_id, status, "no output audio")
                return clip
            if status in (STATUS_FAILED, STATUS_CANCELED):
                raise SynthesisFailedError(job_id, status, str(job.get("error") or ""))
            if status not in ("starting", "processing"):
                logger.warning(f"[TTS] Unknown job status {status!r}, still waiting")
            if attempt < self.max_polls:
                await self._sleep(self.poll_interval)

        raise SynthesisTimeoutError(job_id, self.max_polls)

    def _clip_from(self, job: Dict[str, Any], text: str) -> Optional[SpeechClip]:
        output = _extract_output(job)
        if output is None:
            return None
        return SpeechClip(audio_ref=output, duration_seconds=self._estimate(text))

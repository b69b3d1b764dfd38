"""
Contract tests for the speech synthesizer job client.

- Submit then poll until a terminal status
- Exactly max_polls polls before giving up, without retrying
- Transport failures retry the whole job after a fixed backoff
- Failed or canceled jobs are not retried
"""

import json

import httpx
import pytest

from airwaves.errors import (
    ConfigurationError,
    SynthesisFailedError,
    SynthesisTimeoutError,
    TransportError,
)
from airwaves.outputs.speech_synthesizer import (
    SpeechSynthesizer,
    REPLICATE_API_URL,
    estimate_duration,
)
from airwaves.tests.contracts.test_doubles import RecordingSleep, json_response, routed_transport

OUTPUT_URL = "https://replicate.delivery/out/speech.wav"


class FakeJobApi:
    """Scripted predictions endpoint."""

    def __init__(self, submit=None, polls=None):
        self.submit = list(submit or [json_response(201, {"id": "job1", "status": "starting"})])
        self.polls = list(polls or [])
        self.posts = []
        self.gets = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            self.posts.append(json.loads(request.content))
            response = self.submit.pop(0) if len(self.submit) > 1 else self.submit[0]
        else:
            self.gets.append(str(request.url))
            response = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        if isinstance(response, Exception):
            raise response
        return response


def _status(status, **extra):
    return json_response(200, dict({"id": "job1", "status": status}, **extra))


def _synthesizer(api, sleep, token="r8_test"):
    return SpeechSynthesizer(token, client=routed_transport(api), sleep=sleep)


class TestSynth_Polling:

    @pytest.mark.asyncio
    async def test_succeeds_on_fifth_poll(self):
        api = FakeJobApi(polls=[_status("starting")] + [_status("processing")] * 3
                         + [_status("succeeded", output=OUTPUT_URL)])
        sleep = RecordingSleep()

        clip = await _synthesizer(api, sleep).synthesize("Hello there listeners", "af_bella")

        assert clip.audio_ref == OUTPUT_URL
        assert clip.duration_seconds == estimate_duration("Hello there listeners")
        assert len(api.gets) == 5
        assert sleep.calls == [1.0] * 4, "One poll interval between consecutive polls"
        assert api.gets[0] == f"{REPLICATE_API_URL}/job1"

    @pytest.mark.asyncio
    async def test_submit_body(self):
        api = FakeJobApi(polls=[_status("succeeded", output=[OUTPUT_URL])])
        await _synthesizer(api, RecordingSleep()).synthesize("Hi", "am_adam", 1.0)
        assert api.posts[0]["input"] == {"text": "Hi", "voice": "am_adam", "speed": 1.0}

    @pytest.mark.asyncio
    async def test_immediate_success_skips_polling(self):
        api = FakeJobApi(submit=[json_response(201, {"id": "job1", "status": "succeeded",
                                                     "output": OUTPUT_URL})])
        clip = await _synthesizer(api, RecordingSleep()).synthesize("Hi", "af_bella")
        assert clip.audio_ref == OUTPUT_URL
        assert api.gets == []

    @pytest.mark.asyncio
    async def test_timeout_after_exactly_thirty_polls(self):
        api = FakeJobApi(polls=[_status("processing")])
        sleep = RecordingSleep()

        with pytest.raises(SynthesisTimeoutError) as excinfo:
            await _synthesizer(api, sleep).synthesize("Hi", "af_bella")

        assert len(api.gets) == 30
        assert len(api.posts) == 1, "A timed-out job is not resubmitted"
        assert excinfo.value.attempts == 30
        assert 2.0 not in sleep.calls

    @pytest.mark.asyncio
    async def test_failed_job_not_retried(self):
        api = FakeJobApi(polls=[_status("failed", error="voice not found")])
        with pytest.raises(SynthesisFailedError) as excinfo:
            await _synthesizer(api, RecordingSleep()).synthesize("Hi", "xx_nobody")
        assert excinfo.value.status == "failed"
        assert len(api.posts) == 1

    @pytest.mark.asyncio
    async def test_canceled_job(self):
        api = FakeJobApi(polls=[_status("canceled")])
        with pytest.raises(SynthesisFailedError):
            await _synthesizer(api, RecordingSleep()).synthesize("Hi", "af_bella")


class TestSynth_Retry:

    @pytest.mark.asyncio
    async def test_submit_fails_twice_then_succeeds(self):
        api = FakeJobApi(
            submit=[json_response(500, {"detail": "busy"}), json_response(502, {}),
                    json_response(201, {"id": "job1", "status": "starting"})],
            polls=[_status("succeeded", output=OUTPUT_URL)],
        )
        sleep = RecordingSleep()

        clip = await _synthesizer(api, sleep).synthesize("Hi", "af_bella")

        assert clip.audio_ref == OUTPUT_URL
        assert len(api.posts) == 3
        assert sleep.calls == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_network_error_exhausts_attempts(self):
        api = FakeJobApi(submit=[httpx.ConnectError("no route")])
        sleep = RecordingSleep()
        with pytest.raises(TransportError):
            await _synthesizer(api, sleep).synthesize("Hi", "af_bella")
        assert len(api.posts) == 3
        assert sleep.calls == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_missing_token(self):
        api = FakeJobApi()
        with pytest.raises(ConfigurationError):
            await _synthesizer(api, RecordingSleep(), token=None).synthesize("Hi", "af_bella")
        assert api.posts == []


def test_estimate_duration_floor():
    assert estimate_duration("") == 1.0
    assert estimate_duration("x" * 150) == 10.0

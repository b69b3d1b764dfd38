"""
Contract tests for the text generation client and the audio proxy.

- Completion requests carry the key, the prompt and the JSON mode flag
- Every failure surfaces as a RadioError subclass
- The proxy caches the ten most recently used clips
"""

import json

import httpx
import pytest

from airwaves.errors import ConfigurationError, ParseError, TransportError
from airwaves.outputs.audio_proxy import (
    AudioProxy,
    MAX_CACHE_ENTRIES,
    content_type_for,
    decode_ref,
    encode_ref,
)
from airwaves.outputs.llm_client import LLMClient
from airwaves.tests.contracts.test_doubles import completion_body, json_response, routed_transport


class TestLLM_Complete:

    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = []

        def handler(request):
            seen.append(request)
            return json_response(200, completion_body("  On air!  "))

        client = LLMClient("sk-test", client=routed_transport(handler))
        text = await client.complete("Say hi", temperature=0.9, json_mode=True)

        assert text == "On air!"
        request = seen[0]
        body = json.loads(request.content)
        assert request.url.path.endswith("/chat/completions")
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert body["messages"] == [{"role": "user", "content": "Say hi"}]
        assert body["temperature"] == 0.9
        assert body["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_plain_mode_has_no_response_format(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return json_response(200, completion_body("ok"))

        await LLMClient("sk-test", client=routed_transport(handler)).complete("x")
        assert "response_format" not in seen[0]

    @pytest.mark.asyncio
    async def test_http_error_is_transport_error(self):
        client = LLMClient("sk-test", client=routed_transport(lambda r: json_response(500, {})))
        with pytest.raises(TransportError):
            await client.complete("x")

    @pytest.mark.asyncio
    async def test_missing_content_is_parse_error(self):
        client = LLMClient("sk-test", client=routed_transport(lambda r: json_response(200, {"choices": []})))
        with pytest.raises(ParseError):
            await client.complete("x")

    @pytest.mark.asyncio
    async def test_missing_key(self):
        client = LLMClient(None)
        assert client.configured is False
        with pytest.raises(ConfigurationError):
            await client.complete("x")


class TestProxy_Cache:

    def _proxy(self, status=200):
        self.requests = []

        def handler(request):
            self.requests.append(str(request.url))
            return httpx.Response(status, content=str(request.url).encode("utf-8"))

        return AudioProxy(client=routed_transport(handler))

    @pytest.mark.asyncio
    async def test_cached_fetch_hits_network_once(self):
        proxy = self._proxy()
        first = await proxy.fetch("https://audio.test/a.wav")
        second = await proxy.fetch("https://audio.test/a.wav")
        assert first == second == b"https://audio.test/a.wav"
        assert len(self.requests) == 1

    @pytest.mark.asyncio
    async def test_least_recently_used_evicted(self):
        proxy = self._proxy()
        refs = [f"https://audio.test/{i}.wav" for i in range(MAX_CACHE_ENTRIES)]
        for ref in refs:
            await proxy.fetch(ref)
        await proxy.fetch(refs[0])  # refresh the oldest
        await proxy.fetch("https://audio.test/new.wav")

        assert len(proxy) == MAX_CACHE_ENTRIES
        assert refs[0] in proxy, "Recently used entry survives"
        assert refs[1] not in proxy, "Least recently used entry is evicted"

    @pytest.mark.asyncio
    async def test_fetch_failure(self):
        proxy = self._proxy(status=404)
        with pytest.raises(TransportError):
            await proxy.fetch("https://audio.test/missing.wav")
        assert len(proxy) == 0

    @pytest.mark.asyncio
    async def test_clear_reports_count(self):
        proxy = self._proxy()
        await proxy.fetch("https://audio.test/a.wav")
        await proxy.fetch("https://audio.test/b.wav")
        assert proxy.clear() == 2
        assert len(proxy) == 0


class TestProxy_References:

    def test_ref_encoding_tolerates_missing_padding(self):
        ref = "https://replicate.delivery/abc/out.wav?x=1"
        assert decode_ref(encode_ref(ref).rstrip("=")) == ref

    def test_bad_ref(self):
        with pytest.raises(ValueError):
            decode_ref("_w")

    @pytest.mark.parametrize("ref,expected", [
        ("https://x/a.mp3", "audio/mpeg"),
        ("https://x/a.OGG?sig=1", "audio/ogg"),
        ("https://x/a.wav", "audio/wav"),
        ("https://x/stream", "audio/wav"),
    ])
    def test_content_type(self, ref, expected):
        assert content_type_for(ref) == expected

"""
Audio proxy for Airwaves.

Fetches synthesized speech by its remote reference and keeps the most
recently used clips in memory. Players and the HTTP surface read clip bytes
through here instead of hitting the synthesis backend directly.
"""

import base64
import logging
from collections import OrderedDict
from typing import Optional

import httpx

from airwaves.errors import TransportError

logger = logging.getLogger(__name__)

MAX_CACHE_ENTRIES = 10


def encode_ref(ref: str) -> str:
    """URL-safe base64 of a reference, usable as one path segment."""
    return base64.urlsafe_b64encode(ref.encode("utf-8")).decode("ascii")


def decode_ref(encoded: str) -> str:
    """
    Inverse of encode_ref. Missing padding is tolerated.

    Raises:
        ValueError: ``encoded`` is not valid base64 text
    """
    padded = encoded + "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


def content_type_for(ref: str) -> str:
    lowered = ref.lower().split("?", 1)[0]
    if lowered.endswith(".mp3"):
        return "audio/mpeg"
    if lowered.endswith(".ogg"):
        return "audio/ogg"
    return "audio/wav"


class AudioProxy:
    """Byte fetcher with a bounded least-recently-used cache."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 max_entries: int = MAX_CACHE_ENTRIES, timeout: float = 30.0):
        self.max_entries = max_entries
        self.timeout = timeout
        self._client = client
        self._cache: "OrderedDict[str, bytes]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, ref: str) -> bool:
        return ref in self._cache

    async def fetch(self, ref: str) -> bytes:
        """
        Bytes for ``ref``, from cache when possible.

        Raises:
            TransportError: The download failed
        """
        cached = self._cache.get(ref)
        if cached is not None:
            self._cache.move_to_end(ref)
            return cached

        try:
            if self._client is not None:
                response = await self._client.get(ref, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(ref)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"[PROXY] Fetch failed for {ref}: {e}")
            raise TransportError(f"Audio fetch failed: {e}") from e

        data = response.content
        self._cache[ref] = data
        while len(self._cache) > self.max_entries:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"[PROXY] Evicted {evicted}")
        logger.debug(f"[PROXY] Cached {ref} ({len(data)} bytes)")
        return data

    def clear(self) -> int:
        """Drop every cached clip. Returns how many were dropped."""
        count = len(self._cache)
        self._cache.clear()
        logger.info(f"[PROXY] Cache cleared ({count} entries)")
        return count

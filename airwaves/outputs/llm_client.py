"""
Text generation client for Airwaves.

Sends a single-prompt chat completion to an OpenAI-compatible API and
returns the reply text. Supports the JSON-object response mode used for the
one-time session identity.
"""

import logging
from typing import Optional

import httpx

from airwaves.errors import ConfigurationError, TransportError, ParseError

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


class LLMClient:
    """
    Transport-only client for chat completions.

    It makes no decisions about what to say; the script generator owns the
    prompts. Every failure is raised as a RadioError subclass.
    """

    def __init__(self, api_key: Optional[str], model: str = DEFAULT_MODEL,
                 base_url: str = OPENAI_BASE_URL, timeout: float = 30.0,
                 client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            api_key: Bearer token. When empty every call raises ConfigurationError.
            model: Chat model name
            base_url: API root
            timeout: Per-request timeout in seconds
            client: Optional shared AsyncClient (tests pass one with a MockTransport)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

        # Suppress httpx INFO level logging
        logging.getLogger("httpx").setLevel(logging.WARNING)

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def complete(self, prompt: str, temperature: float = 0.8,
                       json_mode: bool = False) -> str:
        """
        Run one completion.

        Args:
            prompt: Full prompt text, sent as the user message
            temperature: Sampling temperature
            json_mode: Ask the model for a single JSON object

        Returns:
            The reply text, stripped

        Raises:
            ConfigurationError: No API key configured
            TransportError: Network failure or non-2xx status
            ParseError: Response body missing the reply text
        """
        if not self.api_key:
            raise ConfigurationError("No text generation API key configured")

        body = {
            "model": self.model,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if json_mode:
            body["response_format"] = {"type": "json_object"}

        headers = {"Authorization": f"Bearer {self.api_key}"}
        url = f"{self.base_url}/chat/completions"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=body, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"[LLM] Completion request failed: {e}")
            raise TransportError(f"Completion request failed: {e}") from e
        except ValueError as e:
            raise ParseError(f"Completion response is not JSON: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ParseError(f"Completion response missing content: {e}") from e
        if not isinstance(content, str) or not content.strip():
            raise ParseError("Completion response is empty")
        return content.strip()

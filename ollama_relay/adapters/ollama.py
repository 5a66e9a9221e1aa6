"""
OllamaClient - one long-lived HTTP client per configured connection.

Owns every HTTP-level concern of a connection: base address, basic auth,
the per-connection TLS override and the hour-long timeout.
"""

import json
import logging
from typing import Any, Optional

import httpx

from ollama_relay.adapters.schema import GenerationRequest
from ollama_relay.config import REQUEST_TIMEOUT_SECONDS, ServerConnection
from ollama_relay.errors import BackendError, BackendUnreachable

logger = logging.getLogger(__name__)

GENERATE_PATH = "/api/generate"
TAGS_PATH = "/api/tags"


class OllamaClient:
    """
    Ollama implementation of InferenceBackend.

    The underlying httpx.AsyncClient is created on first use and reused for
    every later call on the same connection (pooling is left to httpx).
    """

    def __init__(
        self,
        connection: ServerConnection,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
    ):
        self.connection = connection
        self._timeout = timeout_seconds
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def name(self) -> str:
        return self.connection.name

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            auth = None
            if self.connection.has_credentials:
                auth = httpx.BasicAuth(self.connection.user, self.connection.password)
            # verify=False is scoped to this connection's client only
            self._client = httpx.AsyncClient(
                base_url=self.connection.base_url,
                timeout=httpx.Timeout(self._timeout),
                auth=auth,
                verify=not self.connection.ignore_ssl,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise BackendUnreachable(self.connection.base_url, e) from e

        if response.is_error:
            raise BackendError(response.status_code, response.text, response.reason_phrase)
        return response

    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[dict[str, Any]] = None,
    ) -> str:
        """
        POST /api/generate with streaming disabled.

        Returns the "response" field, or the raw body when the field is
        missing or the body is not JSON.
        """
        request = GenerationRequest(
            model=model,
            prompt=prompt,
            options=options,
            connection_name=self.connection.name,
        )
        logger.debug(f"generate: connection={self.name}, model={model}, prompt_chars={len(prompt)}")
        response = await self._send("POST", GENERATE_PATH, json=request.to_payload())

        body = response.text
        try:
            data = response.json()
        except ValueError:
            return body

        if isinstance(data, dict) and "response" in data:
            text = data["response"]
            if text is None:
                return ""
            if isinstance(text, str):
                return text
            return json.dumps(text, ensure_ascii=False)
        return body

    async def list_models(self) -> set[str]:
        """GET /api/tags; entries without a name are skipped."""
        response = await self._send("GET", TAGS_PATH)
        try:
            data = response.json()
        except ValueError:
            logger.warning(f"Model list from '{self.name}' is not JSON; treating as empty")
            return set()

        entries = data.get("models", []) if isinstance(data, dict) else []
        names = set()
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name")
            if isinstance(name, str) and name.strip():
                names.add(name)
        return names

"""
ConnectionRegistry - resolves a logical connection name to its configuration
and hands out one pooled OllamaClient per connection.
"""

import logging
from typing import Iterable, Optional

from ollama_relay.adapters.ollama import OllamaClient
from ollama_relay.config import (
    DEFAULT_CONNECTION_NAME,
    AppConfig,
    ServerConnection,
    get_default_base_url,
)
from ollama_relay.errors import ConfigurationError, NoConnectionsConfigured, UnknownConnection

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """
    Ordered, read-only set of named connections plus the default name.

    Names are unique and compared case-insensitively. The connection list is
    fixed at construction; only the client cache grows afterwards.
    """

    def __init__(
        self,
        connections: Iterable[ServerConnection] = (),
        default_name: Optional[str] = None,
    ):
        self._connections: tuple[ServerConnection, ...] = tuple(connections)
        seen = set()
        for connection in self._connections:
            key = connection.name.casefold()
            if key in seen:
                raise ConfigurationError(f"Duplicate Ollama server name '{connection.name}'.")
            seen.add(key)

        default_name = (default_name or "").strip() or None
        if default_name and self._find(default_name) is None:
            logger.warning(
                f"Default connection '{default_name}' matches no configured server; "
                "falling back to the first one"
            )
            default_name = None
        self._default_name = default_name
        self._clients: dict[str, OllamaClient] = {}

    @classmethod
    def from_config(cls, config: AppConfig) -> "ConnectionRegistry":
        """
        Build a registry from AppConfig.

        With nothing configured, a single "local" connection pointing at the
        loopback default (or OLLAMA_HOST) is synthesized and made the default.
        """
        servers = list(config.servers)
        default_name = config.default_server_name
        if not servers:
            servers = [ServerConnection(name=DEFAULT_CONNECTION_NAME, base_url=get_default_base_url())]
            default_name = DEFAULT_CONNECTION_NAME

        registry = cls(servers, default_name)
        logger.info(f"Connection registry initialized with {len(servers)} server(s)")
        return registry

    @property
    def connections(self) -> tuple[ServerConnection, ...]:
        return self._connections

    @property
    def default_name(self) -> Optional[str]:
        return self._default_name

    def _find(self, name: str) -> Optional[ServerConnection]:
        key = name.casefold()
        for connection in self._connections:
            if connection.name.casefold() == key:
                return connection
        return None

    def resolve(self, name: Optional[str] = None) -> ServerConnection:
        """
        Resolve a connection: explicit name, then default name, then first.

        Raises:
            NoConnectionsConfigured: registry is empty
            UnknownConnection: explicit name matches nothing (exact, case-insensitive)
        """
        requested = (name or "").strip() or self._default_name
        if requested:
            connection = self._find(requested)
            if connection is None:
                raise UnknownConnection(requested)
            return connection

        if not self._connections:
            raise NoConnectionsConfigured()
        return self._connections[0]

    def client(self, name: Optional[str] = None) -> OllamaClient:
        """Return the long-lived client for a resolved connection."""
        connection = self.resolve(name)
        key = connection.name.casefold()
        client = self._clients.get(key)
        if client is None:
            client = OllamaClient(connection)
            self._clients[key] = client
        return client

    def describe(self) -> list[dict]:
        """Redacted view of every connection, in configuration order."""
        return [connection.redacted() for connection in self._connections]

    async def aclose(self) -> None:
        """Close every pooled HTTP client."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()

"""MCP tool: list_connections - configured Ollama connections, passwords redacted."""

import json
import logging

from ollama_relay.connections import ConnectionRegistry
from ollama_relay.mcp.registry import get_registry

logger = logging.getLogger(__name__)


def execute_list_connections(registry: ConnectionRegistry) -> str:
    configs = registry.describe()
    logger.info(f"Returning {len(configs)} connection configurations")
    return json.dumps(configs, indent=2)


def list_connections() -> str:
    """List available Ollama server connections."""
    return execute_list_connections(get_registry())

"""MCP tool: list_models - models installed on one Ollama connection.

Usage:
    result = await execute_list_models(registry, "gpu-box")
    print(result)  # '["llama3:8b", "mistral:7b"]'
"""

import json
import logging
from typing import Optional

from ollama_relay.connections import ConnectionRegistry
from ollama_relay.mcp.registry import get_registry
from ollama_relay.mcp.tools.query import error_text
from ollama_relay.model_resolver import normalize_model_list

logger = logging.getLogger(__name__)


async def execute_list_models(registry: ConnectionRegistry, connection: Optional[str] = None) -> str:
    """
    Returns:
        Indented JSON array of model names (deduplicated, sorted), or "Error: ..." text.
    """
    logger.info(f"list_models called: connection={connection or 'default'}")
    try:
        client = registry.client(connection)
        models = await client.list_models()
    except Exception as e:
        logger.error(f"Error executing list_models: {e}")
        return error_text(e)
    return json.dumps(normalize_model_list(models), indent=2)


async def list_models(connection: Optional[str] = None) -> str:
    """
    List available models on an Ollama server.

    Args:
        connection: Optional Ollama connection name; the default is used if omitted.
    """
    return await execute_list_models(get_registry(), connection)

"""MCP tool: query_backend - single generation against a named connection.

The FastMCP wrapper only wires collaborators; execute_query holds the logic
and takes everything it needs as explicit arguments.

Usage:
    text = await execute_query(
        GenerationRequest(model="llama3", prompt="Hello"),
        registry,
        negotiator=None,
    )
"""

import logging
from typing import Any, Optional

from mcp.server.fastmcp import Context

from ollama_relay.adapters.schema import GenerationRequest
from ollama_relay.connections import ConnectionRegistry
from ollama_relay.mcp.negotiation import negotiator_for
from ollama_relay.mcp.registry import get_registry
from ollama_relay.model_resolver import Negotiator, Proceed, resolve_model

logger = logging.getLogger(__name__)


def error_text(message: Any) -> str:
    return f"Error: {message}"


async def execute_query(
    request: GenerationRequest,
    registry: ConnectionRegistry,
    negotiator: Optional[Negotiator] = None,
) -> str:
    """
    Validate the model, then run one generation.

    Returns:
        Generated text, or "Error: ..." text on any failure.
    """
    if not request.model.strip():
        return error_text("model is required.")

    label = request.connection_name or "default"
    logger.info(f"query_backend called: model={request.model}, connection={label}")

    try:
        client = registry.client(request.connection_name)
        resolution = await resolve_model(client, request.model, negotiator, label)
        if not isinstance(resolution, Proceed):
            return error_text(resolution.message)
        return await client.generate(resolution.model, request.prompt, request.options)
    except Exception as e:
        logger.error(f"Error executing query_backend: {e}")
        return error_text(e)


async def query_backend(
    model: str,
    prompt: str,
    options: Optional[dict[str, Any]] = None,
    connection: Optional[str] = None,
    *,
    ctx: Context,
) -> str:
    """
    Send a prompt to a local Ollama model and get the response.
    Useful for testing prompts against small local models.

    Args:
        model: The name of the model to query (e.g., 'llama3', 'mistral').
        prompt: The prompt text to send to the model.
        options: Optional model parameters (e.g., temperature, top_p).
        connection: Optional Ollama connection name; the default is used if omitted.
    """
    request = GenerationRequest(
        model=model,
        prompt=prompt,
        options=options,
        connection_name=connection,
    )
    return await execute_query(request, get_registry(), negotiator_for(ctx))

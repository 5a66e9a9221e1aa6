"""
MCP Connection Registry slot - central point for dependency injection.

The server registers one ConnectionRegistry at startup; tool wrappers fetch
it here and pass it explicitly to the execute_* functions they delegate to.

Usage:
    # At startup (server.run / cli.main)
    register_default_registry()

    # In MCP tools
    registry = get_registry()
    return await execute_query(request, registry, negotiator)
"""

import logging
from pathlib import Path
from typing import Optional

from ollama_relay.config import load_app_config
from ollama_relay.connections import ConnectionRegistry

logger = logging.getLogger(__name__)

_registry: Optional[ConnectionRegistry] = None


def register_registry(registry: ConnectionRegistry) -> None:
    """
    Register the process-wide ConnectionRegistry.

    Replaces any previous registration wholesale.
    """
    global _registry
    _registry = registry


def get_registry() -> ConnectionRegistry:
    """
    Get the registered ConnectionRegistry.

    Raises:
        RuntimeError: If no registry has been registered
    """
    if _registry is None:
        raise RuntimeError(
            "No connection registry registered. Call register_registry() at startup."
        )
    return _registry


def clear_registry() -> None:
    """
    Forget the registered registry.

    Primarily useful for testing to reset state between tests.
    """
    global _registry
    _registry = None


async def close_registry() -> None:
    """Close pooled HTTP clients of the registered registry, if any."""
    if _registry is not None:
        await _registry.aclose()


def register_default_registry(config_path: Optional[Path] = None) -> ConnectionRegistry:
    """
    Build a registry from the config file and environment, then register it.

    Falls back to a synthesized "local" connection when nothing is configured.
    """
    registry = ConnectionRegistry.from_config(load_app_config(config_path))
    register_registry(registry)
    return registry

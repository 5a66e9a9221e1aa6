"""MCP protocol server for ollama-relay.

Exposes the tool layer over MCP stdio transport. Hosts (desktop assistants,
IDE agents, any MCP client) launch this as a subprocess and call tools via
JSON-RPC.

Entry points:
    ollama-relay-mcp          (console script)
    python -m ollama_relay.mcp
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from dotenv import load_dotenv
from mcp import types
from mcp.server import FastMCP

from ollama_relay.config import get_log_level
from ollama_relay.mcp.registry import close_registry, register_default_registry
from ollama_relay.mcp.roots import roots_state
from ollama_relay.mcp.tools import (
    list_connections,
    list_models,
    query_backend,
    query_backend_with_files,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# SERVER
# ─────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[None]:
    try:
        yield
    finally:
        await close_registry()


mcp = FastMCP(
    "ollama-relay",
    instructions=(
        "Query local Ollama models through named connections. "
        "Provides single-prompt generation, prompt templates over workspace "
        "files, connection listing and model discovery."
    ),
    lifespan=lifespan,
)

mcp.add_tool(query_backend)
mcp.add_tool(query_backend_with_files)
mcp.add_tool(list_connections)
mcp.add_tool(list_models)


async def _on_roots_changed(notification) -> None:
    logger.debug(f"Dropping cached workspace roots after {type(notification).__name__}.")
    roots_state.invalidate()


def register_notification_handler(server: FastMCP, notification_type: type, handler) -> None:
    """Route one client notification type to `handler`."""
    # FastMCP has no public hook for client notifications
    server._mcp_server.notification_handlers[notification_type] = handler


register_notification_handler(mcp, types.RootsListChangedNotification, _on_roots_changed)
register_notification_handler(mcp, types.InitializedNotification, _on_roots_changed)


# ─────────────────────────────────────────────────────────────────────
# ENTRY POINT
# ─────────────────────────────────────────────────────────────────────

def run():
    """Entry point for ollama-relay MCP server."""
    load_dotenv()
    # stdout carries the protocol; logs go to stderr
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    register_default_registry()

    mcp.run(transport="stdio")


if __name__ == "__main__":
    run()

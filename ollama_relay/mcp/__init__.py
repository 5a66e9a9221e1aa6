"""
ollama-relay MCP server package.

Exposes named Ollama connections and workspace file batches as MCP tools.

Usage:
    python -m ollama_relay.mcp
"""

from ollama_relay.mcp.server import mcp, run

__all__ = ["mcp", "run"]

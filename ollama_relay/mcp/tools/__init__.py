"""MCP tool implementations.

Each tool is a thin async wrapper that pulls collaborators from the registry
and request context, then delegates to an execute_* function that takes them
explicitly.
"""

from ollama_relay.mcp.tools.connections import execute_list_connections, list_connections
from ollama_relay.mcp.tools.files import execute_file_query, query_backend_with_files
from ollama_relay.mcp.tools.list_models import execute_list_models, list_models
from ollama_relay.mcp.tools.query import execute_query, query_backend

__all__ = [
    "execute_file_query",
    "execute_list_connections",
    "execute_list_models",
    "execute_query",
    "list_connections",
    "list_models",
    "query_backend",
    "query_backend_with_files",
]

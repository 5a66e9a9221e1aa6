"""
Run ollama-relay as MCP server.

Usage:
    python -m ollama_relay.mcp

Connections come from appsettings.json (or OLLAMA_RELAY_CONFIG) and the
environment:
    OLLAMA_SERVER_1=http://gpu-box:11434
    OLLAMA_HOST=http://localhost:11434      # loopback default override
"""

from ollama_relay.mcp.server import run

if __name__ == "__main__":
    run()

"""
ollama-relay: named Ollama connections and workspace file batches over MCP.
"""

__version__ = "2.0.0"

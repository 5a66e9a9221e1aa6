"""CLI entry point for ollama-relay.

Headless access to the same tool internals the MCP server exposes, for
checking a configuration from a terminal.

Entry point:
    ollama-relay-cli --version
    ollama-relay-cli connections [--json]
    ollama-relay-cli models [--connection NAME] [--json]
    ollama-relay-cli query --model M --prompt P [--connection NAME]
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from ollama_relay import __version__

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
# ARGUMENT PARSING
# ─────────────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ollama-relay-cli",
        description="Inspect ollama-relay connections and query models.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--version", action="store_true", help="Print version and config file location"
    )
    parser.add_argument("--config", default=None, help="Config file (default: OLLAMA_RELAY_CONFIG or appsettings.json)")
    sub = parser.add_subparsers(dest="command")

    conn_p = sub.add_parser("connections", help="List configured connections")
    conn_p.add_argument("--json", action="store_true", dest="json_output", help="Full JSON output")

    models_p = sub.add_parser("models", help="List models on a connection")
    models_p.add_argument("--connection", default=None, help="Connection name (default connection if omitted)")
    models_p.add_argument("--json", action="store_true", dest="json_output", help="JSON array output")

    query_p = sub.add_parser("query", help="Send one prompt to a model")
    query_p.add_argument("--model", required=True, help="Model name")
    query_p.add_argument("--prompt", required=True, help="Prompt text")
    query_p.add_argument("--connection", default=None, help="Connection name (default connection if omitted)")

    return parser


# ─────────────────────────────────────────────────────────────────────
# COMMANDS
# ─────────────────────────────────────────────────────────────────────


def _cmd_version(config_path: Optional[str]) -> int:
    from pathlib import Path
    from ollama_relay.config import get_config_path

    path = Path(config_path) if config_path else get_config_path()
    print(f"ollama-relay v{__version__}")
    print(f"Config file: {path.resolve()}")
    print(f"Config exists: {path.is_file()}")
    return 0


def _cmd_connections(json_output: bool = False) -> int:
    """List configured connections. Returns exit code."""
    from ollama_relay.mcp.registry import get_registry
    from ollama_relay.mcp.tools.connections import execute_list_connections

    registry = get_registry()
    if json_output:
        sys.stdout.write(execute_list_connections(registry))
        sys.stdout.write("\n")
        return 0

    for conn in registry.describe():
        marker = " (default)" if registry.default_name and conn["name"].casefold() == registry.default_name.casefold() else ""
        print(f"{conn['name']}\t{conn['base_url']}{marker}")
    return 0


async def _cmd_models(connection: Optional[str], json_output: bool = False) -> int:
    """List models on a connection. Returns exit code."""
    from ollama_relay.mcp.registry import get_registry
    from ollama_relay.mcp.tools.list_models import execute_list_models

    result = await execute_list_models(get_registry(), connection)
    if result.startswith("Error:"):
        print(result, file=sys.stderr)
        return 1

    if json_output:
        sys.stdout.write(result)
        sys.stdout.write("\n")
    else:
        for model in json.loads(result):
            print(model)
    return 0


async def _cmd_query(model: str, prompt: str, connection: Optional[str]) -> int:
    """Run one generation without host negotiation. Returns exit code."""
    from ollama_relay.adapters.schema import GenerationRequest
    from ollama_relay.mcp.registry import get_registry
    from ollama_relay.mcp.tools.query import execute_query

    request = GenerationRequest(model=model, prompt=prompt, connection_name=connection)
    result = await execute_query(request, get_registry())

    if result.startswith("Error:"):
        print(result, file=sys.stderr)
        return 1
    print(result)
    return 0


async def _run_async(coro_factory) -> int:
    from ollama_relay.mcp.registry import close_registry

    try:
        return await coro_factory()
    finally:
        await close_registry()


# ─────────────────────────────────────────────────────────────────────
# MAIN
# ─────────────────────────────────────────────────────────────────────


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s %(message)s", stream=sys.stderr)

    if args.version:
        return _cmd_version(args.config)

    if args.command is None:
        parser.print_help()
        return 1

    from dotenv import load_dotenv
    from ollama_relay.errors import ConfigurationError
    from ollama_relay.mcp.registry import register_default_registry

    load_dotenv()
    try:
        register_default_registry(args.config)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "connections":
        return _cmd_connections(json_output=args.json_output)
    if args.command == "models":
        return asyncio.run(_run_async(lambda: _cmd_models(args.connection, args.json_output)))
    if args.command == "query":
        return asyncio.run(_run_async(lambda: _cmd_query(args.model, args.prompt, args.connection)))

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())

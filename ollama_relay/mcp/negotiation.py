"""
McpNegotiator - Negotiator implementation over MCP elicitation.
"""

import logging
from typing import Optional

from mcp import types
from mcp.server.fastmcp import Context
from mcp.server.session import ServerSession
from mcp.shared.exceptions import McpError

from ollama_relay.model_resolver import (
    NegotiationAccepted,
    NegotiationDeclined,
    NegotiationOutcome,
    NegotiationUnsupported,
)

logger = logging.getLogger(__name__)


def build_choice_schema(
    field: str,
    title: str,
    description: str,
    options: list[str],
    default: str,
) -> dict:
    """Single required string property restricted to `options`."""
    return {
        "type": "object",
        "properties": {
            field: {
                "type": "string",
                "title": title,
                "description": description,
                "enum": list(options),
                "default": default,
            }
        },
        "required": [field],
    }


class McpNegotiator:

    def __init__(self, session: ServerSession):
        self._session = session

    async def choose(
        self,
        message: str,
        field: str,
        title: str,
        description: str,
        options: list[str],
        default: str,
    ) -> NegotiationOutcome:
        schema = build_choice_schema(field, title, description, options, default)
        try:
            result = await self._session.elicit(message=message, requestedSchema=schema)
        except McpError as e:
            logger.warning(f"Elicitation failed or is not supported by the client: {e}")
            return NegotiationUnsupported(str(e))
        except Exception as e:
            logger.warning(f"Elicitation request failed: {e}")
            return NegotiationUnsupported(str(e))

        if result.action != "accept" or result.content is None:
            return NegotiationDeclined()

        value = result.content.get(field)
        return NegotiationAccepted(value if isinstance(value, str) else None)


def negotiator_for(ctx: Optional[Context]) -> Optional[McpNegotiator]:
    """Negotiator for this request, or None when the host cannot elicit."""
    if ctx is None:
        return None
    session = ctx.session
    supports_elicitation = session.check_client_capability(
        types.ClientCapabilities(elicitation=types.ElicitationCapability())
    )
    if not supports_elicitation:
        return None
    return McpNegotiator(session)

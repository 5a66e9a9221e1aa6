"""
RootsState - session cache of the host's workspace roots.

Roots are fetched lazily with a roots/list request the first time a tool
needs the workspace, and dropped whenever the host announces a change.
The cached tuple is only ever replaced, never mutated.
"""

import logging
from typing import Optional

from mcp import types
from mcp.server.session import ServerSession
from mcp.shared.exceptions import McpError

from ollama_relay.errors import NoUsableRoots
from ollama_relay.workspace import HostRoot, WorkspaceFileSystem

logger = logging.getLogger(__name__)


class RootsState:

    def __init__(self):
        self._roots: Optional[tuple[HostRoot, ...]] = None
        self._last_error: Optional[str] = None

    @property
    def has_fetched(self) -> bool:
        return self._roots is not None

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    def invalidate(self) -> None:
        """Forget cached roots; the next workspace() call refetches."""
        self._roots = None
        self._last_error = None

    async def refresh(self, session: ServerSession) -> tuple[HostRoot, ...]:
        roots: tuple[HostRoot, ...] = ()
        error = None

        supports_roots = session.check_client_capability(
            types.ClientCapabilities(roots=types.RootsCapability())
        )
        if not supports_roots:
            error = "Connected MCP host does not advertise roots/list support."
            logger.debug("Client does not advertise roots/list support.")
        else:
            try:
                result = await session.list_roots()
            except McpError as e:
                error = "Connected MCP host rejected roots/list requests."
                logger.warning(f"MCP host rejected roots/list request: {e}")
            except Exception as e:
                error = f"Failed to request roots from the MCP host: {e}"
                logger.error(f"Unexpected error while requesting roots from the MCP host: {e}")
            else:
                roots = tuple(
                    HostRoot(uri=str(root.uri), name=root.name) for root in result.roots or []
                )
                if not roots:
                    error = "The MCP host did not report any workspace roots."
                    logger.warning("MCP host responded with zero workspace roots.")
                else:
                    logger.info(f"Cached {len(roots)} workspace roots.")

        self._roots = roots
        self._last_error = error
        return roots

    async def workspace(self, session: ServerSession) -> WorkspaceFileSystem:
        """
        Build a WorkspaceFileSystem from the (cached) host roots.

        Raises:
            NoUsableRoots: host offers no usable file-system roots
        """
        roots = self._roots
        if roots is None:
            roots = await self.refresh(session)

        if not roots:
            raise NoUsableRoots(
                self._last_error or "The MCP host did not expose any usable file-system roots."
            )
        return WorkspaceFileSystem.from_host_roots(roots)


roots_state = RootsState()

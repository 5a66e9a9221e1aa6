"""
Error taxonomy for ollama-relay.

Everything raised on purpose derives from RelayError so the tool layer can
turn it into an "Error: ..." text result for the host.
"""

from typing import Optional, Sequence


class RelayError(Exception):
    """Base class for errors surfaced to the calling host as text."""
    pass


# ─────────────────────────────────────────────────────────────────────
# CONFIGURATION
# ─────────────────────────────────────────────────────────────────────

class ConfigurationError(RelayError):
    """Connection configuration is missing or inconsistent."""
    pass


class NoConnectionsConfigured(ConfigurationError):
    def __init__(self):
        super().__init__("No Ollama servers configured.")


class UnknownConnection(ConfigurationError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Ollama server configuration '{name}' not found.")


# ─────────────────────────────────────────────────────────────────────
# TRANSPORT
# ─────────────────────────────────────────────────────────────────────

class TransportError(RelayError):
    """The backend could not be reached or refused the request."""
    pass


class BackendUnreachable(TransportError):
    def __init__(self, base_url: str, cause: Exception):
        self.base_url = base_url
        self.cause = cause
        detail = str(cause) or type(cause).__name__
        super().__init__(f"Ollama server at {base_url} is unreachable: {detail}")


class BackendError(TransportError):
    """Non-success HTTP status. Carries the status and the raw body."""

    def __init__(self, status_code: int, body: str, reason: str = ""):
        self.status_code = status_code
        self.body = body
        self.reason = reason
        status = f"{status_code} {reason}".strip()
        super().__init__(f"Ollama API error: {status} - {body}")


# ─────────────────────────────────────────────────────────────────────
# SANDBOX
# ─────────────────────────────────────────────────────────────────────

class SandboxViolation(RelayError):
    """A file request could not be satisfied inside the workspace roots."""
    pass


class OutsideRoots(SandboxViolation):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Path '{path}' is outside the allowed roots.")


class AmbiguousFile(SandboxViolation):
    def __init__(self, path: str, roots: Sequence[str] = ()):
        self.path = path
        self.roots = list(roots)
        super().__init__(
            f"File '{path}' is ambiguous across multiple roots. Provide root_name."
        )


class WorkspaceFileNotFound(SandboxViolation):
    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"File '{path}' was not found under the allowed roots.")


class UnknownRoot(SandboxViolation):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Root '{name}' is not available.")


class NoUsableRoots(SandboxViolation):
    def __init__(self, message: str = "The MCP host did not expose any usable file-system roots."):
        super().__init__(message)


# ─────────────────────────────────────────────────────────────────────
# VALIDATION
# ─────────────────────────────────────────────────────────────────────

class ValidationError(RelayError):
    """Tool arguments rejected before any network activity."""
    pass

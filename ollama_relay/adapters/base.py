"""
InferenceBackend Protocol - defines the contract for a text-generation backend.

This is the WHAT (interface), not the HOW (implementation).
See ollama.py for the concrete implementation.
"""

from typing import Any, Optional, Protocol


class InferenceBackend(Protocol):
    """
    Contract for one backend connection.

    Implementations must provide:
    - Model discovery (list_models)
    - Single non-streaming generation (generate)
    """

    async def list_models(self) -> set[str]:
        """
        Return the names of models installed on this backend.

        Raises:
            BackendUnreachable: network failure
            BackendError: non-success status
        """
        ...

    async def generate(
        self,
        model: str,
        prompt: str,
        options: Optional[dict[str, Any]] = None,
    ) -> str:
        """
        Run one generation and return the response text.

        Raises:
            BackendUnreachable: network failure
            BackendError: non-success status
        """
        ...

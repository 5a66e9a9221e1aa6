from typing import Any, Dict, Optional

from pydantic import BaseModel


class GenerationRequest(BaseModel):
    """
    Single non-streaming generation request.

    Built per call by the query tool and by OllamaClient.generate; never stored.
    """
    model: str
    prompt: str
    options: Optional[Dict[str, Any]] = None
    connection_name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Body for POST /api/generate."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": self.prompt,
            "stream": False,
        }
        if self.options:
            payload["options"] = self.options
        return payload


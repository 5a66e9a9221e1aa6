"""
Adapters for text-generation backends.

Protocol defines WHAT, implementations define HOW.
"""

from .base import InferenceBackend
from .ollama import OllamaClient
from .schema import GenerationRequest

__all__ = ["GenerationRequest", "InferenceBackend", "OllamaClient"]

"""Provider adapters."""

from .base import AdapterFactory, GenerationAdapter
from .gemini import GoogleGenAIAdapter

__all__ = ["AdapterFactory", "GenerationAdapter", "GoogleGenAIAdapter"]

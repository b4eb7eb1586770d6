"""Text-generation providers used by the question synthesizer."""
from examgen.services.llm.base import LLMMessage, LLMProvider, LLMResponse
from examgen.services.llm.factory import create_provider

__all__ = ["LLMMessage", "LLMProvider", "LLMResponse", "create_provider"]

"""Base LLM provider interface."""
import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class LLMMessage(BaseModel):
    """Message for LLM conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


class LLMResponse(BaseModel):
    """Response from LLM."""

    content: str
    tokens_used: int
    model: str
    finish_reason: str


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of model output.

    Accepts bare JSON, JSON wrapped in a Markdown code fence, or JSON surrounded by
    prose (the outermost ``{...}`` span is used).

    Raises:
        ValueError: If no JSON object can be recovered
    """
    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = candidate.strip("`").strip()
        if candidate.lower().startswith("json"):
            candidate = candidate[4:].strip()

    try:
        parsed = json.loads(candidate)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("No JSON object found in model response")

    try:
        parsed = json.loads(candidate[start : end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"Model response is not valid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("Model response JSON is not an object")
    return parsed


class LLMProvider(ABC):
    """Abstract base class for all LLM providers."""

    @abstractmethod
    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> LLMResponse:
        """Generate text completion.

        Args:
            messages: List of conversation messages
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate
            **kwargs: Provider-specific arguments

        Returns:
            LLMResponse with generated content
        """
        pass

    @abstractmethod
    async def generate_structured(
        self,
        messages: List[LLMMessage],
        response_format: Optional[Dict] = None,
        **kwargs,
    ) -> Dict:
        """Generate structured JSON response.

        Args:
            messages: List of conversation messages
            response_format: Expected JSON schema
            **kwargs: Provider-specific arguments

        Returns:
            Parsed JSON dictionary
        """
        pass

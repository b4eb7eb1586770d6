"""Anthropic LLM provider implementation."""
import logging
from typing import Dict, List, Optional

from anthropic import AsyncAnthropic

from examgen.services.llm.base import LLMMessage, LLMProvider, LLMResponse, parse_json_object

logger = logging.getLogger(__name__)

JSON_INSTRUCTION = "Respond with ONLY valid JSON. No markdown, no explanations, just the JSON object."


class AnthropicProvider(LLMProvider):
    """Anthropic (Claude) implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "claude-sonnet-4-5",
        mini_model: str = "claude-haiku-4-5",
    ):
        if not api_key or not api_key.strip():
            raise ValueError("ANTHROPIC_API_KEY is not configured")

        self.client = AsyncAnthropic(api_key=api_key)
        self.default_model = default_model
        self.mini_model = mini_model

    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = 4096,
        use_mini: bool = False,
        **kwargs,
    ) -> LLMResponse:
        """Generate text using Anthropic.

        System messages are merged into the separate ``system`` parameter.
        """
        model = self.mini_model if use_mini else self.default_model

        system_parts = [m.content for m in messages if m.role == "system"]
        conversation = [{"role": m.role, "content": m.content} for m in messages if m.role != "system"]

        request = {
            "model": model,
            "messages": conversation,
            "temperature": temperature,
            "max_tokens": max_tokens or 4096,
            **kwargs,
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)

        response = await self.client.messages.create(**request)

        content_text = "".join(
            block.text for block in (response.content or []) if getattr(block, "type", "text") == "text"
        )
        tokens_used = (
            response.usage.input_tokens + response.usage.output_tokens
            if response.usage
            else 0
        )

        return LLMResponse(
            content=content_text,
            tokens_used=tokens_used,
            model=model,
            finish_reason=response.stop_reason or "stop",
        )

    async def generate_structured(
        self,
        messages: List[LLMMessage],
        response_format: Optional[Dict] = None,
        use_mini: bool = False,
        **kwargs,
    ) -> Dict:
        """Generate structured JSON using Anthropic.

        There is no native schema mode, so the JSON requirement is appended to the
        final user turn and the reply is parsed leniently.
        """
        if messages and messages[-1].role == "user":
            last = messages[-1]
            prompt = messages[:-1] + [LLMMessage(role="user", content=f"{last.content}\n\nIMPORTANT: {JSON_INSTRUCTION}")]
        else:
            prompt = list(messages) + [LLMMessage(role="user", content=JSON_INSTRUCTION)]

        response = await self.generate_text(prompt, use_mini=use_mini, **kwargs)

        try:
            return parse_json_object(response.content)
        except ValueError as e:
            logger.error(f"Failed to parse JSON from Anthropic response: {e}")
            logger.error(f"Response content: {response.content[:500]}")
            raise ValueError(f"Anthropic response was not valid JSON: {e}") from e

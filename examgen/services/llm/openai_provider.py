"""OpenAI LLM provider implementation (Responses API)."""
import logging
import re
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI, BadRequestError

from examgen.services.llm.base import LLMMessage, LLMProvider, LLMResponse, parse_json_object

logger = logging.getLogger(__name__)

# GPT-5 and the o-series reasoning models reject sampling parameters.
_REASONING_MODEL_PREFIXES = ("gpt-5", "o1", "o3", "o4")
_SAMPLING_PARAMS = ("temperature", "top_p", "logprobs")
_ROLES = {"system", "user", "assistant"}

JSON_ONLY_INSTRUCTION = (
    "Return a single valid JSON object only. "
    "Do not include markdown, code fences, comments, or explanatory prose."
)


def _is_reasoning_model(model: str) -> bool:
    return (model or "").lower().startswith(_REASONING_MODEL_PREFIXES)


def _as_messages(messages: List[Any]) -> List[LLMMessage]:
    result: List[LLMMessage] = []
    for message in messages:
        if isinstance(message, LLMMessage):
            result.append(message)
        elif isinstance(message, dict):
            result.append(
                LLMMessage(role=str(message.get("role", "user")), content=str(message.get("content", "")))
            )
        else:
            raise TypeError("messages must be LLMMessage or dict entries")
    return result


def _responses_input(messages: List[LLMMessage]) -> List[Dict[str, Any]]:
    return [
        {
            "role": message.role if message.role in _ROLES else "user",
            "content": [{"type": "input_text", "text": message.content}],
        }
        for message in messages
    ]


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read an attribute from an SDK object or a key from a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _response_text(response: Any) -> str:
    output_text = _field(response, "output_text")
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    parts: List[str] = []
    for item in _field(response, "output", []) or []:
        for content in _field(item, "content", []) or []:
            text = _field(content, "text")
            if isinstance(text, str) and text:
                parts.append(text)
    return "".join(parts).strip()


def _token_usage(response: Any) -> int:
    usage = _field(response, "usage")
    if usage is None:
        return 0
    total = _field(usage, "total_tokens")
    if isinstance(total, int):
        return total
    return int(_field(usage, "input_tokens", 0) or 0) + int(_field(usage, "output_tokens", 0) or 0)


def _schema_name(raw_name: Optional[str]) -> str:
    sanitized = re.sub(r"[^a-zA-Z0-9_-]", "_", (raw_name or "").strip())[:64]
    return sanitized or "structured_output"


def _text_format(response_format: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Build the Responses ``text.format`` block.

    Accepts the Chat Completions shape (``{"type": "json_schema", "json_schema": {...}}``),
    the flat Responses shape, or a bare ``{"name": ..., "schema": ...}`` dict.
    """
    definition: Dict[str, Any] = {}
    if isinstance(response_format, dict):
        nested = response_format.get("json_schema")
        definition = nested if isinstance(nested, dict) else response_format

    schema = definition.get("schema")
    if not isinstance(schema, dict):
        schema = {"type": "object", "properties": {}, "additionalProperties": True}

    text_format: Dict[str, Any] = {
        "type": "json_schema",
        "name": _schema_name(definition.get("name")),
        "strict": bool(definition.get("strict", True)),
        "schema": schema,
    }
    if definition.get("description"):
        text_format["description"] = str(definition["description"])
    return text_format


class OpenAIProvider(LLMProvider):
    """OpenAI implementation of LLM provider."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-5",
        mini_model: str = "gpt-5-mini",
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key
            default_model: Default model for generation
            mini_model: Model for simple tasks
        """
        if not api_key or not api_key.strip():
            raise ValueError("OPENAI_API_KEY is not configured")

        self.client = AsyncOpenAI(api_key=api_key)
        self.default_model = default_model
        self.mini_model = mini_model

    def _request(
        self,
        model: str,
        messages: List[LLMMessage],
        temperature: Optional[float] = None,
        **kwargs,
    ) -> Dict[str, Any]:
        request: Dict[str, Any] = {"model": model, "input": _responses_input(messages), **kwargs}
        if temperature is not None:
            request["temperature"] = temperature
        if _is_reasoning_model(model):
            for param in _SAMPLING_PARAMS:
                request.pop(param, None)
        return request

    async def generate_text(
        self,
        messages: List[LLMMessage],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        use_mini: bool = False,
        **kwargs,
    ) -> LLMResponse:
        model = self.mini_model if use_mini else self.default_model
        if max_tokens is not None:
            kwargs["max_output_tokens"] = max_tokens

        response = await self.client.responses.create(
            **self._request(model, _as_messages(messages), temperature, **kwargs)
        )
        return LLMResponse(
            content=_response_text(response),
            tokens_used=_token_usage(response),
            model=model,
            finish_reason=str(_field(response, "status", "completed") or "completed"),
        )

    async def generate_structured(
        self,
        messages: List[LLMMessage],
        response_format: Optional[Dict] = None,
        use_mini: bool = False,
        **kwargs,
    ) -> Dict:
        """Generate structured JSON using OpenAI.

        Tries strict JSON-schema output first. If the API rejects the schema or the
        output cannot be parsed, retries once with a plain JSON-only instruction.
        """
        model = self.mini_model if use_mini else self.default_model
        conversation = _as_messages(messages)
        temperature = kwargs.pop("temperature", None)

        try:
            response = await self.client.responses.create(
                **self._request(
                    model,
                    conversation,
                    temperature,
                    text={"format": _text_format(response_format)},
                    **kwargs,
                )
            )
            return parse_json_object(_response_text(response) or "{}")
        except (BadRequestError, ValueError) as exc:
            logger.warning(f"Structured output failed on {model}, retrying without schema: {exc}")
            fallback = [LLMMessage(role="system", content=JSON_ONLY_INSTRUCTION), *conversation]
            response = await self.client.responses.create(
                **self._request(model, fallback, temperature, **kwargs)
            )
            try:
                return parse_json_object(_response_text(response) or "{}")
            except ValueError as parse_exc:
                raise ValueError(
                    f"Failed to parse structured output via strict schema and fallback modes: {parse_exc}"
                ) from exc

"""
Generator interface for HRPilot.

This module is the only place that *directly* calls an LLM.  Everything else (classifier,
orchestrator, tools) talks to the text-generation capability through :class:`BaseGenerator`.

Two back-ends are supported out of the box:

1. **OpenAI** via the async SDK: streamed chat completions with function tools, and the Responses
   API with ``web_search_preview`` for agents that search the web.
2. **Anthropic** via the async SDK: streamed messages with tool use.

Additional providers can be added by subclassing :class:`BaseGenerator` and registering via
:func:`register_generator`.
"""

import json
import logging
import re
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    List,
    Literal,
    Optional,
    Type,
    Union,
)

from pydantic import (
    BaseModel,
    Field,
)

from hrpilot.config import (
    normalize_api_key,
    normalize_model,
    settings,
)
from hrpilot.core.schema import (
    ChatMessage,
    ToolCall,
)

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Raised when the generation capability fails or returns nothing usable."""


# ---------------------------------------------------------------------------
# Request / chunk models
# ---------------------------------------------------------------------------
class GenerationRequest(BaseModel):
    """Everything one generation round needs."""

    instructions: str
    messages: List[ChatMessage]
    tools: List[Dict[str, Any]] = Field(default_factory=list)
    max_output_tokens: int = 1024
    web_search: bool = False


class TextDelta(BaseModel):
    """A fragment of answer text."""

    delta: str


class SearchProgress(BaseModel):
    """Web-search progress reported by the provider."""

    label: str
    status: Literal["active", "done"]


class Completion(BaseModel):
    """Last chunk of every round: the full message and any proposed tool calls."""

    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)


GenerationChunk = Union[TextDelta, SearchProgress, Completion]


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_GENERATOR_REGISTRY: dict[str, Type["BaseGenerator"]] = {}


def register_generator(name: str) -> Callable:
    """Decorator to register a generator class under *name*."""

    def wrapper(cls: Type["BaseGenerator"]) -> Type["BaseGenerator"]:
        _GENERATOR_REGISTRY[name] = cls
        return cls

    return wrapper


def load_generator(name: str | None = None) -> "BaseGenerator":
    """
    Factory that returns an instantiated generator.

    Fallback order:
    1. *name* arg
    2. ``settings.GENERATOR`` env option
    3. default: ``"openai"``
    """

    target = name or getattr(settings, "GENERATOR", "openai")
    cls = _GENERATOR_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Generator '{target}' is not registered.")
    return cls()


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class BaseGenerator(ABC):
    """Abstract text-generation capability."""

    @property
    @abstractmethod
    def available(self) -> bool:
        """True when a credential is configured and calls can be attempted."""

    @abstractmethod
    def stream(self, request: GenerationRequest) -> AsyncIterator[GenerationChunk]:
        """
        Run one generation round.

        Yields :class:`TextDelta` and :class:`SearchProgress` chunks as they arrive and ends with
        exactly one :class:`Completion`.  Raises :class:`GenerationError` on provider failure.
        """

    @abstractmethod
    async def complete_json(self, system: str, user: str, max_output_tokens: int) -> str | None:
        """Single non-streamed completion expected to contain one JSON object."""


def sanitize_json_string(content: str) -> str:
    """Clean up JSON strings returned by LLMs."""
    # Strip markdown code blocks if present
    if "```" in content:
        match = re.search(r"```(?:json)?\s*(.+?)```", content, re.DOTALL)
        if match:
            content = match.group(1).strip()

    # Remove control characters except whitespace
    content = "".join(ch for ch in content if ch >= " " or ch in "\n\r\t")

    # Keep only the outermost JSON object
    open_idx = content.find("{")
    if open_idx >= 0:
        depth = 0
        for i in range(open_idx, len(content)):
            if content[i] == "{":
                depth += 1
            elif content[i] == "}":
                depth -= 1
                if depth == 0:
                    return content[open_idx : i + 1]
    return content


# ---------------------------------------------------------------------------
# Transcript conversion
# ---------------------------------------------------------------------------
def to_openai_messages(instructions: str, messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    """Render the transcript in Chat Completions shape, instructions first."""
    out: List[Dict[str, Any]] = [{"role": "system", "content": instructions}]
    for msg in messages:
        if msg.role == "assistant" and msg.tool_calls:
            out.append(
                {
                    "role": "assistant",
                    "content": msg.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": call.arguments},
                        }
                        for call in msg.tool_calls
                    ],
                }
            )
        elif msg.role == "tool":
            out.append(
                {"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content or ""}
            )
        elif msg.role == "user" and msg.file_ids:
            parts: List[Dict[str, Any]] = [
                {"type": "file", "file": {"file_id": file_id}} for file_id in msg.file_ids
            ]
            parts.append({"type": "text", "text": msg.content or ""})
            out.append({"role": "user", "content": parts})
        else:
            out.append({"role": msg.role, "content": msg.content or ""})
    return out


def to_responses_input(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    """Render user/assistant turns as Responses API input items."""
    items: List[Dict[str, Any]] = []
    for msg in messages:
        if msg.role not in ("user", "assistant"):
            continue
        if msg.role == "user" and msg.file_ids:
            content: List[Dict[str, Any]] = [
                {"type": "input_file", "file_id": file_id} for file_id in msg.file_ids
            ]
            content.append({"type": "input_text", "text": msg.content or ""})
            items.append({"role": "user", "content": content})
        else:
            items.append({"role": msg.role, "content": msg.content or ""})
    return items


def to_anthropic_messages(messages: List[ChatMessage]) -> List[Dict[str, Any]]:
    """Render the transcript as Anthropic content blocks; tool results ride on user turns."""
    out: List[Dict[str, Any]] = []
    for msg in messages:
        if msg.role == "system":
            continue
        if msg.role == "tool":
            block = {
                "type": "tool_result",
                "tool_use_id": msg.tool_call_id,
                "content": msg.content or "",
            }
            if out and out[-1]["role"] == "user" and isinstance(out[-1]["content"], list):
                out[-1]["content"].append(block)
            else:
                out.append({"role": "user", "content": [block]})
        elif msg.role == "assistant" and msg.tool_calls:
            blocks: List[Dict[str, Any]] = []
            if msg.content:
                blocks.append({"type": "text", "text": msg.content})
            for call in msg.tool_calls:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.name,
                        "input": call.parsed_arguments(),
                    }
                )
            out.append({"role": "assistant", "content": blocks})
        else:
            if msg.file_ids:
                logger.debug("Anthropic generator ignores %d file id(s)", len(msg.file_ids))
            out.append({"role": msg.role, "content": msg.content or ""})
    return out


# ---------------------------------------------------------------------------
# Concrete generators
# ---------------------------------------------------------------------------
@register_generator("openai")
class OpenAIGenerator(BaseGenerator):
    """OpenAI-backed generator using the async SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        router_model: str | None = None,
        client: Any = None,
    ) -> None:
        self.api_key = normalize_api_key(
            api_key if api_key is not None else settings.OPENAI_API_KEY
        )
        self.model = normalize_model(model or settings.OPENAI_MODEL, "gpt-4o")
        self.router_model = normalize_model(router_model or settings.ROUTER_MODEL, self.model)
        self._client = client

    @property
    def available(self) -> bool:
        return self.api_key is not None

    def _get_client(self) -> Any:
        if self._client is None:
            import openai  # pylint: disable=import-outside-toplevel

            self._client = openai.AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def stream(self, request: GenerationRequest) -> AsyncIterator[GenerationChunk]:
        import openai  # pylint: disable=import-outside-toplevel

        try:
            if request.web_search:
                async for chunk in self._stream_responses(request):
                    yield chunk
            else:
                async for chunk in self._stream_chat(request):
                    yield chunk
        except openai.OpenAIError as exc:
            logger.error("OpenAI generation error: %s", exc)
            raise GenerationError(str(exc)) from exc

    async def _stream_chat(self, request: GenerationRequest) -> AsyncIterator[GenerationChunk]:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": to_openai_messages(request.instructions, request.messages),
            "max_completion_tokens": request.max_output_tokens,
            "stream": True,
        }
        if request.tools:
            kwargs["tools"] = request.tools

        response = await self._get_client().chat.completions.create(**kwargs)
        text_parts: List[str] = []
        # Tool calls arrive as fragments keyed by their index in the final message.
        fragments: Dict[int, Dict[str, str]] = {}
        async for chunk in response:
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta
            if delta.content:
                text_parts.append(delta.content)
                yield TextDelta(delta=delta.content)
            for tc in delta.tool_calls or []:
                slot = fragments.setdefault(tc.index, {"id": "", "name": "", "arguments": ""})
                if tc.id:
                    slot["id"] = tc.id
                if tc.function is not None:
                    slot["name"] += tc.function.name or ""
                    slot["arguments"] += tc.function.arguments or ""

        calls = [
            ToolCall(id=slot["id"] or f"call_{idx}", name=slot["name"], arguments=slot["arguments"])
            for idx, slot in sorted(fragments.items())
        ]
        yield Completion(content="".join(text_parts) or None, tool_calls=calls)

    async def _stream_responses(self, request: GenerationRequest) -> AsyncIterator[GenerationChunk]:
        response = await self._get_client().responses.create(
            model=self.model,
            instructions=request.instructions,
            input=to_responses_input(request.messages),
            max_output_tokens=request.max_output_tokens,
            tools=[{"type": "web_search_preview"}],
            stream=True,
        )
        text_parts: List[str] = []
        async for event in response:
            kind = getattr(event, "type", "")
            if kind == "response.web_search_call.searching":
                yield SearchProgress(
                    label="Searching the web for current information…", status="active"
                )
            elif kind == "response.web_search_call.in_progress":
                yield SearchProgress(label="Reading sources…", status="active")
            elif kind == "response.web_search_call.completed":
                yield SearchProgress(label="Found relevant sources", status="done")
            elif kind == "response.output_text.delta":
                delta = getattr(event, "delta", None)
                if isinstance(delta, str) and delta:
                    text_parts.append(delta)
                    yield TextDelta(delta=delta)
            elif kind in ("response.failed", "error"):
                raise GenerationError(f"Response stream failed: {kind}")
        yield Completion(content="".join(text_parts) or None)

    async def complete_json(self, system: str, user: str, max_output_tokens: int) -> str | None:
        import openai  # pylint: disable=import-outside-toplevel

        try:
            resp = await self._get_client().chat.completions.create(
                model=self.router_model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                max_completion_tokens=max_output_tokens,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as exc:
            raise GenerationError(str(exc)) from exc

        if not resp.choices:
            return None
        content = resp.choices[0].message.content
        return content.strip() if content else None


@register_generator("anthropic")
class AnthropicGenerator(BaseGenerator):
    """Anthropic Claude-based generator."""

    def __init__(
        self, api_key: str | None = None, model: str | None = None, client: Any = None
    ) -> None:
        self.api_key = normalize_api_key(
            api_key if api_key is not None else settings.ANTHROPIC_API_KEY
        )
        self.model = normalize_model(model or settings.ANTHROPIC_MODEL, "claude-3-5-haiku-latest")
        self._client = client

    @property
    def available(self) -> bool:
        return self.api_key is not None

    def _get_client(self) -> Any:
        if self._client is None:
            import anthropic  # pylint: disable=import-outside-toplevel

            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def stream(self, request: GenerationRequest) -> AsyncIterator[GenerationChunk]:
        import anthropic  # pylint: disable=import-outside-toplevel

        if request.web_search:
            logger.debug("Web search is not wired for Anthropic; answering from the model only")

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_output_tokens,
            "system": request.instructions,
            "messages": to_anthropic_messages(request.messages),
        }
        if request.tools:
            kwargs["tools"] = [
                {
                    "name": spec["function"]["name"],
                    "description": spec["function"]["description"],
                    "input_schema": spec["function"]["parameters"],
                }
                for spec in request.tools
            ]

        try:
            async with self._get_client().messages.stream(**kwargs) as stream:
                async for text in stream.text_stream:
                    if text:
                        yield TextDelta(delta=text)
                final = await stream.get_final_message()
        except anthropic.AnthropicError as exc:
            logger.error("Anthropic generation error: %s", exc)
            raise GenerationError(str(exc)) from exc

        text = "".join(block.text for block in final.content if block.type == "text")
        calls = [
            ToolCall(id=block.id, name=block.name, arguments=json.dumps(block.input))
            for block in final.content
            if block.type == "tool_use"
        ]
        yield Completion(content=text or None, tool_calls=calls)

    async def complete_json(self, system: str, user: str, max_output_tokens: int) -> str | None:
        import anthropic  # pylint: disable=import-outside-toplevel

        try:
            response = await self._get_client().messages.create(
                model=self.model,
                max_tokens=max_output_tokens,
                system=system,
                messages=[{"role": "user", "content": user}],
                temperature=0.0,
            )
        except anthropic.AnthropicError as exc:
            raise GenerationError(str(exc)) from exc

        text = "".join(block.text for block in response.content if block.type == "text").strip()
        return sanitize_json_string(text) if text else None

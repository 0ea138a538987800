"""
Shared fixtures.

``ScriptedGenerator`` stands in for the model: each call to ``stream`` plays the next scripted
round, and ``complete_json`` returns a canned router reply.
"""

import asyncio
from typing import (
    Any,
    AsyncIterator,
    List,
    Sequence,
)

import pytest

from hrpilot.agent.generator_interface import (
    BaseGenerator,
    Completion,
    GenerationChunk,
    GenerationError,
    GenerationRequest,
    TextDelta,
)
from hrpilot.core.schema import ToolCall


class ScriptedGenerator(BaseGenerator):
    """In-memory generator that replays scripted rounds and records every request."""

    def __init__(
        self,
        rounds: Sequence[Sequence[Any]] = (),
        router_reply: Any = None,
        available: bool = True,
    ) -> None:
        self.rounds: List[Sequence[Any]] = list(rounds)
        self.router_reply = router_reply
        self._available = available
        self.requests: List[GenerationRequest] = []
        self.router_calls: List[tuple] = []

    @property
    def available(self) -> bool:
        return self._available

    async def stream(self, request: GenerationRequest) -> AsyncIterator[GenerationChunk]:
        self.requests.append(request.model_copy(deep=True))
        if not self.rounds:
            raise GenerationError("Script exhausted.")
        for chunk in self.rounds.pop(0):
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    async def complete_json(self, system: str, user: str, max_output_tokens: int) -> str | None:
        self.router_calls.append((system, user, max_output_tokens))
        if isinstance(self.router_reply, Exception):
            raise self.router_reply
        return self.router_reply


def text_round(*deltas: str) -> List[Any]:
    """A round that streams *deltas* and proposes no tools."""
    return [TextDelta(delta=d) for d in deltas] + [Completion(content="".join(deltas) or None)]


def tool_round(*calls: ToolCall, text: str = "") -> List[Any]:
    """A round that proposes *calls*, optionally after some text."""
    chunks: List[Any] = [TextDelta(delta=text)] if text else []
    chunks.append(Completion(content=text or None, tool_calls=list(calls)))
    return chunks


def call(call_id: str, name: str, arguments: str = "{}") -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=arguments)


def collect(events: AsyncIterator[Any]) -> List[Any]:
    """Drain an async event iterator from synchronous test code."""

    async def _drain() -> List[Any]:
        return [event async for event in events]

    return asyncio.run(_drain())


@pytest.fixture
def scripted():
    """Factory for :class:`ScriptedGenerator`."""
    return ScriptedGenerator

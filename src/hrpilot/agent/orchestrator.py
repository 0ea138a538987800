"""
Turn orchestration.

A turn moves through ``Routing -> Generating -> (ToolRunning <-> Generating)* -> terminal``, where
the terminal state is Done, Errored or PendingApproval.  Routing happens in the HTTP layer (and is
skipped on resume: the agent is fixed by the continuation), so this module starts at Generating.

Rules the loop keeps:

- tool calls run one at a time, in the order the generator emitted them;
- auto-executed results are appended to the transcript before any approval pause is considered,
  and travel inside the continuation so they never run twice;
- the ``Generating -> ToolRunning`` cycle is bounded by ``max_rounds`` across the whole turn,
  pause included; hitting the bound ends the turn with the text produced so far;
- generator failures end the turn with a single ``error`` event and are never retried here.
"""

import asyncio
import logging
from typing import (
    AsyncIterator,
    Collection,
    List,
    Mapping,
    Sequence,
)

from hrpilot.agent.approval import (
    requires_approval,
    split_tool_calls,
)
from hrpilot.agent.continuation import (
    PausedTurn,
    encode_continuation,
)
from hrpilot.agent.generator_interface import (
    BaseGenerator,
    Completion,
    GenerationError,
    GenerationRequest,
    SearchProgress,
    TextDelta,
)
from hrpilot.agent.profiles import (
    AgentProfile,
    get_profile,
)
from hrpilot.agent.tool_executor import execute_tool
from hrpilot.config import settings
from hrpilot.core.schema import (
    AgentId,
    ChatMessage,
    DoneEvent,
    ErrorEvent,
    PendingCall,
    PendingToolCallsEvent,
    StepEvent,
    StreamEvent,
    TextEvent,
    ToolCall,
    TurnParams,
)
from hrpilot.tools import (
    ToolContext,
    get_tool_definitions,
)

logger = logging.getLogger(__name__)

AGENT_STEP_ID = "agent"
WEB_SEARCH_STEP_ID = "web_search"
DECLINED_RESULT = '{"message": "User declined to run this tool."}'


def tool_step_id(call: ToolCall) -> str:
    """Step id for one tool call; unique within a turn even when a tool runs twice."""
    return f"tool:{call.id}"


class TurnOrchestrator:
    """Drives one agent turn against a generator and streams :data:`StreamEvent` objects."""

    def __init__(
        self,
        generator: BaseGenerator,
        max_rounds: int | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self.generator = generator
        self.max_rounds = max_rounds if max_rounds is not None else settings.MAX_TOOL_ROUNDS
        self.max_output_tokens = (
            max_output_tokens if max_output_tokens is not None else settings.MAX_OUTPUT_TOKENS
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------
    async def start(
        self,
        agent: AgentId,
        message: str,
        history: Sequence[Mapping[str, str]] = (),
        params: TurnParams | None = None,
        file_ids: Sequence[str] = (),
    ) -> AsyncIterator[StreamEvent]:
        """Run a new turn for *message*."""
        params = params or TurnParams()
        transcript: List[ChatMessage] = [
            ChatMessage(role=item["role"], content=item["content"]) for item in history
        ]
        transcript.append(ChatMessage(role="user", content=message, file_ids=list(file_ids)))
        logger.info(
            "Starting %s turn (history=%d, files=%d)", agent.value, len(history), len(file_ids)
        )

        profile = get_profile(agent)
        yield StepEvent(id=AGENT_STEP_ID, label=f"{profile.label} is thinking…", status="active")
        async for event in self._run(profile, transcript, params, rounds=0):
            yield event

    async def resume(
        self, paused: PausedTurn, approved_ids: Collection[str]
    ) -> AsyncIterator[StreamEvent]:
        """
        Continue a paused turn.

        Every unresolved call of the pending assistant message is settled first: gated calls run
        only if their id is in *approved_ids* and are otherwise answered with a decline notice;
        ungated calls run.  Calls that already have a result are left alone.
        """
        approved = set(approved_ids)
        profile = get_profile(paused.agent)
        transcript = list(paused.messages)
        context = self._tool_context(paused.params)
        logger.info(
            "Resuming %s turn: %d pending call(s), %d approved",
            paused.agent.value,
            len(paused.unresolved_calls),
            len(approved),
        )

        yield StepEvent(id=AGENT_STEP_ID, label=f"{profile.label} is thinking…", status="active")
        for call in paused.unresolved_calls:
            if requires_approval(call.name) and call.id not in approved:
                logger.info("User declined tool '%s' (%s)", call.name, call.id)
                transcript.append(
                    ChatMessage(role="tool", tool_call_id=call.id, content=DECLINED_RESULT)
                )
                continue
            async for event in self._execute(call, transcript, context):
                yield event

        # The paused batch was counted before pausing, declined calls included.
        rounds = min(paused.rounds, self.max_rounds)
        async for event in self._run(profile, transcript, paused.params, rounds=rounds):
            yield event

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------
    def _tool_context(self, params: TurnParams) -> ToolContext:
        return ToolContext(
            job_title=params.job_title, location=params.location, generator=self.generator
        )

    async def _execute(
        self, call: ToolCall, transcript: List[ChatMessage], context: ToolContext
    ) -> AsyncIterator[StreamEvent]:
        step_id = tool_step_id(call)
        yield StepEvent(id=step_id, label=f"Running {call.name}…", status="active")
        result = await asyncio.to_thread(
            execute_tool, call.name, call.parsed_arguments(), context
        )
        transcript.append(ChatMessage(role="tool", tool_call_id=call.id, content=result))
        yield StepEvent(id=step_id, label=call.name, status="done")

    async def _run(
        self,
        profile: AgentProfile,
        transcript: List[ChatMessage],
        params: TurnParams,
        rounds: int,
    ) -> AsyncIterator[StreamEvent]:
        instructions = profile.instructions(params)
        tools = get_tool_definitions(profile.tools) if profile.tools else []
        context = self._tool_context(params)
        text_parts: List[str] = []

        try:
            while True:
                if rounds >= self.max_rounds:
                    logger.warning(
                        "%s turn hit the %d-round limit; ending with partial text",
                        profile.agent.value,
                        self.max_rounds,
                    )
                    break

                request = GenerationRequest(
                    instructions=instructions,
                    messages=transcript,
                    tools=tools,
                    max_output_tokens=self.max_output_tokens,
                    web_search=profile.web_search,
                )
                completion: Completion | None = None
                async for chunk in self.generator.stream(request):
                    if isinstance(chunk, TextDelta):
                        text_parts.append(chunk.delta)
                        yield TextEvent(delta=chunk.delta)
                    elif isinstance(chunk, SearchProgress):
                        yield StepEvent(
                            id=WEB_SEARCH_STEP_ID, label=chunk.label, status=chunk.status
                        )
                    elif isinstance(chunk, Completion):
                        completion = chunk
                if completion is None:
                    raise GenerationError("No message in response.")
                if not completion.tool_calls:
                    break

                transcript.append(
                    ChatMessage(
                        role="assistant",
                        content=completion.content,
                        tool_calls=completion.tool_calls,
                    )
                )
                auto, gated = split_tool_calls(completion.tool_calls)
                for call in auto:
                    async for event in self._execute(call, transcript, context):
                        yield event
                rounds += 1

                if gated:
                    yield StepEvent(id=AGENT_STEP_ID, label="Waiting for approval", status="done")
                    yield self._pause(profile, transcript, params, rounds, gated)
                    return
        except GenerationError as exc:
            logger.error("Generation failed during %s turn: %s", profile.agent.value, exc)
            yield ErrorEvent(error=str(exc) or "Request failed")
            return

        yield StepEvent(id=AGENT_STEP_ID, label=profile.label, status="done")
        yield DoneEvent(text=profile.finish("".join(text_parts)))

    def _pause(
        self,
        profile: AgentProfile,
        transcript: List[ChatMessage],
        params: TurnParams,
        rounds: int,
        gated: Sequence[ToolCall],
    ) -> PendingToolCallsEvent:
        token = encode_continuation(
            PausedTurn(agent=profile.agent, rounds=rounds, params=params, messages=transcript)
        )
        logger.info(
            "Pausing %s turn for approval of %s",
            profile.agent.value,
            [call.name for call in gated],
        )
        return PendingToolCallsEvent(
            calls=[
                PendingCall(id=call.id, name=call.name, args=call.parsed_arguments())
                for call in gated
            ],
            continuation=token,
        )

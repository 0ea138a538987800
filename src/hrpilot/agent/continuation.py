"""
Continuation codec.

A turn that pauses for approval is exported as a self-contained, opaque token: base64 text of a
JSON document holding the transcript, the agent, the turn parameters and the rounds already used.
Nothing is kept server-side, so the resume request can land on any process.

The token is legible to the client and is treated as untrusted input: :func:`decode_continuation`
validates its structure, drops any ``system`` messages (instructions are always rebuilt from the
agent id) and checks that there is something left to resume.  Whether a pending call is gated is
decided again at resume time by :mod:`hrpilot.agent.approval`, never read from the token.
"""

import base64
import binascii
import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Optional,
    Set,
)

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
)

from hrpilot.core.schema import (
    AgentId,
    ChatMessage,
    ToolCall,
    TurnParams,
)

logger = logging.getLogger(__name__)

TOKEN_VERSION = 1


class InvalidContinuation(ValueError):
    """Raised when a continuation token cannot be resumed."""


class PausedTurn(BaseModel):
    """Conversation state paused mid-turn, waiting on the user's approval decisions."""

    agent: AgentId = AgentId.RECRUITING
    rounds: int = Field(0, ge=0, description="Tool rounds consumed before the pause")
    params: TurnParams = Field(default_factory=TurnParams)
    messages: List[ChatMessage] = Field(default_factory=list)

    def _pending_index(self) -> Optional[int]:
        """Index of the assistant message whose calls are (partly) unresolved."""
        idx = len(self.messages) - 1
        while idx >= 0 and self.messages[idx].role == "tool":
            idx -= 1
        if idx < 0:
            return None
        msg = self.messages[idx]
        if msg.role != "assistant" or not msg.tool_calls:
            return None
        return idx

    @property
    def pending_message(self) -> Optional[ChatMessage]:
        """The last assistant message carrying tool calls, if the transcript ends on one."""
        idx = self._pending_index()
        return None if idx is None else self.messages[idx]

    @property
    def resolved_ids(self) -> Set[str]:
        """Ids of pending-message calls that already have a tool result (auto-executed)."""
        idx = self._pending_index()
        if idx is None:
            return set()
        return {m.tool_call_id for m in self.messages[idx + 1 :] if m.tool_call_id}

    @property
    def unresolved_calls(self) -> List[ToolCall]:
        """Calls of the pending message still waiting for a result, in emission order."""
        pending = self.pending_message
        if pending is None:
            return []
        done = self.resolved_ids
        return [call for call in pending.tool_calls if call.id not in done]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _strip_system(messages: List[ChatMessage]) -> List[ChatMessage]:
    return [m for m in messages if m.role != "system"]


def _has_dangling_tool_result(messages: List[ChatMessage]) -> bool:
    """True if a tool message does not answer a call of the nearest preceding assistant message."""
    open_ids: Set[str] = set()
    for msg in messages:
        if msg.role == "assistant":
            open_ids = {call.id for call in msg.tool_calls}
        elif msg.role == "tool":
            if msg.tool_call_id not in open_ids:
                return True
        else:
            open_ids = set()
    return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def encode_continuation(paused: PausedTurn) -> str:
    """Serialise *paused* into an opaque, text-safe token."""
    payload: Dict[str, Any] = {"v": TOKEN_VERSION}
    payload.update(
        paused.model_copy(update={"messages": _strip_system(paused.messages)}).model_dump(
            mode="json", exclude_none=True
        )
    )
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_continuation(token: str) -> PausedTurn:
    """
    Decode *token* back into a :class:`PausedTurn`.

    Raises
    ------
    InvalidContinuation
        If the token is not base64, not a JSON object, fails validation, carries an empty
        transcript, contains a dangling tool result, or has no pending tool calls.
    """
    if not isinstance(token, str) or not token.strip():
        raise InvalidContinuation("Continuation is required.")

    try:
        raw = base64.b64decode(token.strip(), validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as exc:
        logger.info("Rejected undecodable continuation: %s", exc)
        raise InvalidContinuation("Invalid continuation payload.") from exc

    if not isinstance(data, dict):
        raise InvalidContinuation("Invalid continuation payload.")
    version = data.pop("v", TOKEN_VERSION)
    if version != TOKEN_VERSION:
        raise InvalidContinuation(f"Unsupported continuation version: {version!r}.")

    try:
        paused = PausedTurn.model_validate(data)
    except ValidationError as exc:
        logger.info("Rejected malformed continuation: %s", exc)
        raise InvalidContinuation("Invalid continuation payload.") from exc

    paused.messages = _strip_system(paused.messages)
    if not paused.messages:
        raise InvalidContinuation("Continuation transcript is empty.")
    if _has_dangling_tool_result(paused.messages):
        raise InvalidContinuation("Continuation has a tool result without a matching tool call.")
    if not paused.unresolved_calls:
        raise InvalidContinuation("Continuation has no pending tool calls.")
    return paused

"""
Schema definitions for router <-> orchestrator <-> tool messages.

These data models serve as the contract between the generation capability, the turn orchestrator,
the continuation codec and the HTTP layer.  We keep them separate from runtime logic so they can be
imported anywhere without side-effects.
"""

import json
import logging
from enum import Enum
from typing import (
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Agents and routing
# ---------------------------------------------------------------------------
class AgentId(str, Enum):
    """Every agent that can own a turn."""

    # Compliance-chat family
    GENERAL_HR_ASSISTANT = "general_hr_assistant"
    COMPLIANCE_AGENT = "compliance_agent"
    POLICY_DOC_AGENT = "policy_doc_agent"
    RISK_CONTROLS_AGENT = "risk_controls_agent"
    # Top-level chat family
    RECRUITING = "recruiting"
    ONBOARDING = "onboarding"
    LEARNING_DEVELOPMENT = "learning_development"


COMPLIANCE_FAMILY = frozenset(
    {
        AgentId.GENERAL_HR_ASSISTANT,
        AgentId.COMPLIANCE_AGENT,
        AgentId.POLICY_DOC_AGENT,
        AgentId.RISK_CONTROLS_AGENT,
    }
)


class ChatAgent(str, Enum):
    """Agents offered by the top-level routing-only interface."""

    RECRUITING = "recruiting"
    COMPLIANCE = "compliance"
    ONBOARDING = "onboarding"
    LEARNING_DEVELOPMENT = "learning_development"


class RoutingDecision(BaseModel):
    """Which compliance-family agent handles a message, and why."""

    model_config = ConfigDict(frozen=True)

    agent: AgentId
    reason: Optional[str] = None
    required_questions: Optional[List[str]] = None


class RouteSuggestion(BaseModel):
    """Suggested top-level agent, shown to the user for approval before the turn starts."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    suggested_agent: ChatAgent = Field(..., alias="suggestedAgent")
    reason: str


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------
class ToolCall(BaseModel):
    """A call that the generator wants the orchestrator to execute."""

    id: str = Field(..., description="Opaque id, unique within a turn")
    name: str = Field(..., description="Tool name as proposed by the generator")
    arguments: str = Field("{}", description="Raw JSON text of the call arguments")

    def parsed_arguments(self) -> Dict[str, Any]:
        """Decode :attr:`arguments`, falling back to an empty mapping when malformed."""
        try:
            parsed = json.loads(self.arguments or "{}")
        except (TypeError, ValueError):
            logger.debug("Malformed arguments for tool call %s: %r", self.id, self.arguments)
            return {}
        return parsed if isinstance(parsed, dict) else {}


Role = Literal["system", "user", "assistant", "tool"]


class ChatMessage(BaseModel):
    """One transcript entry."""

    role: Role
    content: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_call_id: Optional[str] = None
    file_ids: List[str] = Field(default_factory=list)


class TurnParams(BaseModel):
    """Agent-specific parameters supplied with a new turn."""

    job_title: Optional[str] = Field(None, max_length=200)
    location: Optional[str] = Field(None, max_length=200)
    experience_level: Optional[str] = Field(None, max_length=100)
    max_candidates: Optional[int] = Field(None, ge=1, le=50)
    jurisdiction: Optional[Literal["NA", "CA", "US"]] = None


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------
class StepEvent(BaseModel):
    """Progress row; two events with the same id describe one row changing state."""

    type: Literal["step"] = "step"
    id: str
    label: str
    status: Literal["active", "done"]


class TextEvent(BaseModel):
    """Incremental output fragment."""

    type: Literal["text"] = "text"
    delta: str


class DoneEvent(BaseModel):
    """Terminal: the complete answer."""

    type: Literal["done"] = "done"
    text: str


class ErrorEvent(BaseModel):
    """Terminal: the turn failed."""

    type: Literal["error"] = "error"
    error: str


class PendingCall(BaseModel):
    """A gated tool call awaiting the user's decision."""

    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class PendingToolCallsEvent(BaseModel):
    """Terminal for the request: the turn paused for approval."""

    type: Literal["pending_tool_calls"] = "pending_tool_calls"
    calls: List[PendingCall]
    continuation: str


StreamEvent = Union[StepEvent, TextEvent, DoneEvent, ErrorEvent, PendingToolCallsEvent]

TERMINAL_EVENTS = (DoneEvent, ErrorEvent, PendingToolCallsEvent)


def is_terminal(event: StreamEvent) -> bool:
    """Return True for the events that close a request's stream."""
    return isinstance(event, TERMINAL_EVENTS)

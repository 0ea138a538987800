"""
Pydantic models for HRPilot API requests.

Responses are either small JSON documents or NDJSON streams of the events defined in
:mod:`hrpilot.core.schema`.
"""

from typing import (
    List,
    Literal,
)

from pydantic import (
    BaseModel,
    Field,
)

from hrpilot.core.schema import TurnParams

MAX_MESSAGE_CHARS = 8000
MAX_HISTORY_ITEMS = 20
MAX_FILES = 10

TopLevelAgent = Literal["recruiting", "onboarding", "learning_development"]


# ---------------------------------------------------------------------------
# Pydantic request schema
# ---------------------------------------------------------------------------
class HistoryItem(BaseModel):
    """A previous turn supplied by the client."""

    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=MAX_MESSAGE_CHARS)


class RouteRequest(BaseModel):
    """Message to classify for the routing-only interface."""

    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)


class HrRequest(BaseModel):
    """Single-shot compliance question answered with one JSON document."""

    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)
    jurisdiction: Literal["NA", "CA", "US"]
    history: List[HistoryItem] = Field(default_factory=list, max_length=MAX_HISTORY_ITEMS)


class HrStreamRequest(BaseModel):
    """New compliance-family turn."""

    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)
    jurisdiction: Literal["NA", "CA", "US"] = "NA"
    history: List[HistoryItem] = Field(default_factory=list, max_length=MAX_HISTORY_ITEMS)
    file_ids: List[str] = Field(default_factory=list, max_length=MAX_FILES)
    file_filenames: List[str] = Field(default_factory=list, max_length=MAX_FILES)


class AgentStreamRequest(BaseModel):
    """New top-level family turn."""

    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_CHARS)
    history: List[HistoryItem] = Field(default_factory=list, max_length=MAX_HISTORY_ITEMS)
    params: TurnParams = Field(default_factory=TurnParams)
    agent: TopLevelAgent = "recruiting"


class ContinueRequest(BaseModel):
    """Approval decisions for a paused turn."""

    continuation: str = Field(..., min_length=1, description="Token from pending_tool_calls")
    approved_tool_call_ids: List[str] = Field(
        ..., description="Ids of gated calls the user approved; others are declined"
    )


# ---------------------------------------------------------------------------
# Pydantic response schema
# ---------------------------------------------------------------------------
class HrResponse(BaseModel):
    """Complete answer from the non-streaming compliance endpoint."""

    text: str

"""Human-approval gate for side-effecting tools."""

from typing import (
    FrozenSet,
    List,
    Sequence,
    Tuple,
)

from hrpilot.core.schema import ToolCall
from hrpilot.tools import ToolName

APPROVAL_REQUIRED: FrozenSet[ToolName] = frozenset(
    {
        ToolName.SEND_OUTREACH,
        ToolName.SCHEDULE_INTERVIEW,
        ToolName.UPDATE_ATS,
    }
)
"""Tools that must be confirmed by the user before they run.  Everything else auto-executes."""


def requires_approval(name: str) -> bool:
    """Return True if *name* is a gated tool.  Unknown names are never gated."""
    try:
        return ToolName(name) in APPROVAL_REQUIRED
    except ValueError:
        return False


def split_tool_calls(calls: Sequence[ToolCall]) -> Tuple[List[ToolCall], List[ToolCall]]:
    """
    Partition *calls* into ``(auto, gated)``.

    Both lists keep the order in which the generator emitted the calls.
    """
    auto: List[ToolCall] = []
    gated: List[ToolCall] = []
    for call in calls:
        (gated if requires_approval(call.name) else auto).append(call)
    return auto, gated

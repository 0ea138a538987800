"""Approval gate partition."""

from conftest import call

from hrpilot.agent.approval import (
    APPROVAL_REQUIRED,
    requires_approval,
    split_tool_calls,
)
from hrpilot.tools import ToolName


def test_gated_set_is_exactly_the_side_effecting_tools() -> None:
    assert {name.value for name in APPROVAL_REQUIRED} == {
        "send_outreach",
        "schedule_interview",
        "update_ats",
    }


def test_every_tool_has_a_decision() -> None:
    gated = {name for name in ToolName if requires_approval(name.value)}
    assert gated == set(APPROVAL_REQUIRED)
    assert not requires_approval("search_candidates")
    assert not requires_approval("get_sourcing_workflow")


def test_unknown_names_are_not_gated() -> None:
    assert requires_approval("drop_database") is False
    assert requires_approval("") is False


def test_split_preserves_emission_order() -> None:
    calls = [
        call("1", "update_ats"),
        call("2", "search_candidates"),
        call("3", "send_outreach"),
        call("4", "screen_resume"),
        call("5", "unknown_tool"),
    ]

    auto, gated = split_tool_calls(calls)

    assert [c.id for c in auto] == ["2", "4", "5"]
    assert [c.id for c in gated] == ["1", "3"]

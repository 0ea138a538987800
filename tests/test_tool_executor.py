"""
Basic sanity tests for the tool executor.

Run with:
$ pytest -q
"""

import json

import pytest

from hrpilot.agent.tool_executor import (
    ToolExecutionError,
    execute_tool,
    run_tool,
)
from hrpilot.tools import (
    TOOL_REGISTRY,
    ToolContext,
    ToolName,
    ToolSpec,
)
from hrpilot.tools.recruiting import UpdateAtsArgs


def test_execute_tool_success() -> None:
    """Outreach is simulated and echoes the recipient and subject."""

    result = json.loads(
        execute_tool(
            "send_outreach",
            {"candidate_email": "jane@example.com", "subject": "Interview", "body": "Hi"},
        )
    )

    assert result["would_send_to"] == "jane@example.com"
    assert result["subject"] == "Interview"
    assert result["status"] == "simulated"


def test_execute_tool_missing() -> None:
    """Unknown tools come back as an error payload, never an exception."""

    assert json.loads(execute_tool("not_a_tool", {})) == {"error": "Unknown tool: not_a_tool"}


def test_run_tool_missing_raises() -> None:
    """The raising variant reports the unknown name."""

    try:
        run_tool("not_a_tool", {})
    except ToolExecutionError as exc:
        assert "not_a_tool" in str(exc)
    else:  # pragma: no cover
        raise AssertionError("ToolExecutionError was not raised")


def test_execute_tool_bad_args() -> None:
    """A missing required field is reported as invalid arguments."""

    result = json.loads(execute_tool("update_ats", {"status": "screened"}))

    assert result["error"].startswith("Invalid arguments for tool 'update_ats'")
    assert "candidate_email" in result["error"]


def test_execute_tool_handler_error(monkeypatch: pytest.MonkeyPatch) -> None:
    """Handler exceptions are wrapped, not propagated."""

    def _boom(args, context):
        raise RuntimeError("ATS is down")

    monkeypatch.setitem(
        TOOL_REGISTRY,
        ToolName.UPDATE_ATS,
        ToolSpec(ToolName.UPDATE_ATS, "broken", UpdateAtsArgs, _boom),
    )

    result = json.loads(
        execute_tool("update_ats", {"candidate_email": "a@b.c", "status": "hired"})
    )

    assert result == {"error": "Tool 'update_ats' raised an error: ATS is down"}


@pytest.mark.parametrize("args", [None, [], "max_results=3", 42])
def test_non_mapping_arguments_are_treated_as_empty(args) -> None:
    result = json.loads(execute_tool("search_candidates", args))
    assert result["total"] == 5


@pytest.mark.parametrize(
    "max_results, expected",
    [(None, 5), ("abc", 5), (True, 5), (3, 3), ("4", 4), (2.9, 2), (100, 20), (0, 5), (-4, 1)],
)
def test_search_candidates_clamps_max_results(max_results, expected) -> None:
    result = json.loads(execute_tool("search_candidates", {"max_results": max_results}))

    assert result["total"] == expected
    assert len(result["candidates"]) == expected
    assert result["candidates"][0]["email"] == "candidate1@example.com"


def test_context_supplies_missing_job_title_and_location() -> None:
    context = ToolContext(job_title="Data Engineer", location="Vancouver")

    result = json.loads(execute_tool("search_candidates", {"job_title": "  "}, context))
    candidate = result["candidates"][0]

    assert candidate["job_title"] == "Data Engineer"
    assert candidate["location"] == "Vancouver"
    assert candidate["experience"] == "mid"


def test_search_candidates_defaults_without_context() -> None:
    candidate = json.loads(execute_tool("search_candidates", {}))["candidates"][0]

    assert candidate["job_title"] == "role"
    assert candidate["location"] == "anywhere"


def test_screen_resume_score_is_deterministic_and_bounded() -> None:
    args = {"job_title": "SRE", "resume_text": "10 years of Kubernetes"}

    first = json.loads(execute_tool("screen_resume", args))
    second = json.loads(execute_tool("screen_resume", args))

    assert first["score"] == second["score"]
    assert 60 <= first["score"] <= 94
    for text in ("a", "b", "c", "d", "e", "f"):
        score = json.loads(execute_tool("screen_resume", {"resume_text": text}))["score"]
        assert 60 <= score <= 94


def test_schedule_interview_defaults_duration() -> None:
    for duration in (None, 0, "soon"):
        result = json.loads(
            execute_tool(
                "schedule_interview",
                {"candidate_email": "jane@example.com", "duration_minutes": duration},
            )
        )
        assert result["duration_minutes"] == 30
        assert result["status"] == "simulated"
        assert result["booking_link"].startswith("https://")


def test_update_ats_returns_ats_id() -> None:
    result = json.loads(
        execute_tool("update_ats", {"candidate_email": "jane@example.com", "status": "screened"})
    )

    assert result["candidate_email"] == "jane@example.com"
    assert result["status"] == "screened"
    assert result["ats_id"].startswith("ats_")

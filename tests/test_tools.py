"""Tool registry, parameter schemas and the sourcing workflow."""

import json

import pytest
from pydantic import BaseModel

from hrpilot.agent.tool_executor import execute_tool
from hrpilot.tools import (
    TOOL_REGISTRY,
    ToolContext,
    ToolName,
    get_tool_definitions,
    lookup_tool,
    register_tool,
)
from hrpilot.tools.sourcing import (
    build_sourcing_workflow,
    is_ml_platform_search,
)


def test_every_tool_is_registered() -> None:
    assert set(TOOL_REGISTRY) == set(ToolName)


def test_duplicate_registration_is_rejected() -> None:
    class _Args(BaseModel):
        pass

    with pytest.raises(ValueError, match="already registered"):
        register_tool(ToolName.SEARCH_CANDIDATES, "again", _Args)


def test_lookup_tool() -> None:
    assert lookup_tool("update_ats").name is ToolName.UPDATE_ATS
    assert lookup_tool("rm -rf") is None


def test_tool_definitions_are_openai_function_specs() -> None:
    definitions = {d["function"]["name"]: d for d in get_tool_definitions()}

    assert set(definitions) == {name.value for name in ToolName}
    for definition in definitions.values():
        assert definition["type"] == "function"
        assert definition["function"]["description"]
        assert definition["function"]["parameters"]["type"] == "object"
        for prop in definition["function"]["parameters"]["properties"].values():
            assert "title" not in prop
            assert "anyOf" not in prop

    outreach = definitions["send_outreach"]["function"]["parameters"]
    assert outreach["required"] == ["candidate_email", "subject", "body"]
    assert outreach["properties"]["candidate_email"]["type"] == "string"
    assert outreach["properties"]["candidate_name"]["type"] == "string"

    ats = definitions["update_ats"]["function"]["parameters"]
    assert set(ats["required"]) == {"candidate_email", "status"}

    search = definitions["search_candidates"]["function"]["parameters"]
    assert search["properties"]["max_results"]["type"] == "integer"


def test_tool_definitions_subset() -> None:
    names = [d["function"]["name"] for d in get_tool_definitions([ToolName.UPDATE_ATS])]
    assert names == ["update_ats"]


# ---------------------------------------------------------------------------
# Sourcing workflow
# ---------------------------------------------------------------------------
def test_ml_platform_detection() -> None:
    assert is_ml_platform_search("MLOps Engineer", "")
    assert is_ml_platform_search("Backend Engineer", "Python, Kubeflow")
    assert not is_ml_platform_search("Backend Engineer", "Java, Spring")


def test_workflow_echoes_inputs() -> None:
    text = build_sourcing_workflow(
        job_title="Platform Engineer",
        location="Toronto",
        seniority="Staff",
        core_stack="Go; GCP",
        work_model="remote-from-ON",
        must_haves="fintech",
    )

    for value in ("Platform Engineer", "Staff", "Go; GCP", "remote-from-ON", "fintech"):
        assert value in text
    assert "Location = Greater Toronto Area" in text
    assert "Google X-Ray for MLOps" not in text


def test_workflow_adds_mlops_block_for_ml_vocabulary() -> None:
    text = build_sourcing_workflow("ML Platform Engineer", "Vancouver", core_stack="MLflow")

    assert "D) Google X-Ray for MLOps / ML platform (Vancouver)" in text
    assert "Location = Vancouver" in text


def test_get_sourcing_workflow_tool_uses_context_then_defaults() -> None:
    with_context = json.loads(
        execute_tool(
            "get_sourcing_workflow",
            {},
            ToolContext(job_title="Data Engineer", location="Montreal"),
        )
    )
    assert with_context["job_title"] == "Data Engineer"
    assert with_context["location"] == "Montreal"
    assert "Montreal" in with_context["workflow"]

    defaults = json.loads(execute_tool("get_sourcing_workflow", {}))
    assert defaults["job_title"] == "Backend Engineer"
    assert defaults["location"] == "Toronto"
    assert "(you said: Intermediate / Senior)" in defaults["workflow"]

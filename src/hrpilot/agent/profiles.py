"""
Agent profiles and instruction templates.

A profile fixes, per :class:`AgentId`, the instructions sent to the generator, the tools the agent
may call and how its final answer is finished (disclaimer, empty-answer placeholder).
"""

from dataclasses import dataclass
from typing import (
    Callable,
    Dict,
    Sequence,
    Tuple,
)

from hrpilot.core.schema import (
    COMPLIANCE_FAMILY,
    AgentId,
    TurnParams,
)
from hrpilot.tools import ToolName

DISCLAIMER = "Not legal advice."

# ---------------------------------------------------------------------------
# Compliance family
# ---------------------------------------------------------------------------
_SHARED_RULES = """\
You are an HR compliance assistant for North America (NA/CA/US). Provide general guidance and \
best practices only.
- When you need current rules or official guidance, use web search, then summarise.
- If the answer depends on a province (Canada) or state (US) the user has not given, ask which one.
- Encourage checking official government labour resources when relevant.
- For case-specific or legal questions, give general information and suggest a qualified legal \
or HR professional.
- Every response MUST end with the exact phrase: "Not legal advice."
- Keep answers concise and practical."""

_JURISDICTION_SCOPE: Dict[str, str] = {
    "NA": "Your scope is North America generally (Canada and United States). When the answer "
    "differs by country or region, say so and suggest the user specify their jurisdiction.",
    "CA": "Your scope is Canada. When the answer differs by province/territory, ask which one if "
    "not specified, or mention the variation.",
    "US": "Your scope is the United States. When the answer differs by state, ask which state if "
    "not specified, or mention state-specific considerations.",
}

_SPECIALISATION: Dict[AgentId, str] = {
    AgentId.GENERAL_HR_ASSISTANT: "",
    AgentId.COMPLIANCE_AGENT: "The user attached a document. Review it for HR compliance gaps: "
    "list each gap, why it matters and a suggested fix.",
    AgentId.POLICY_DOC_AGENT: "The user attached a policy document. Answer strictly from what the "
    "document says, quoting the relevant section; say so when the document is silent.",
    AgentId.RISK_CONTROLS_AGENT: "The user attached a process or policy document. Map it to the "
    "requested control framework (ISO 9001, SOC 2 or similar) as a table of control, evidence in "
    "the document, and gap.",
}


def compliance_instructions(agent: AgentId, jurisdiction: str | None) -> str:
    """Instructions for a compliance-family agent in *jurisdiction* (default ``NA``)."""
    scope = _JURISDICTION_SCOPE.get(jurisdiction or "NA", _JURISDICTION_SCOPE["NA"])
    parts = [_SHARED_RULES, scope, _SPECIALISATION.get(agent, "")]
    return "\n\n".join(part for part in parts if part)


# ---------------------------------------------------------------------------
# Top-level family
# ---------------------------------------------------------------------------
def recruiting_instructions(params: TurnParams) -> str:
    """Instructions for the recruiting agent, with the user's parameters injected."""
    return f"""\
You are an autonomous recruitment agent for North America (jurisdiction: \
{params.jurisdiction or "NA"}). You help users find, screen, and move candidates through a \
hiring pipeline.

Tools:
- search_candidates: find candidates by job title, location and experience.
- get_sourcing_workflow: when the user asks for candidates but no real candidate database is \
available, get a copy/paste sourcing workflow and present it in full.
- screen_resume: score a resume (file_id or raw text) against a job spec.
- send_outreach, schedule_interview, update_ats: act on a candidate. These require the user's \
approval before they run; if the user declines, acknowledge it and continue.

Current context (use these in tool calls when the user has not specified otherwise):
- Job title: {params.job_title or "the role"}
- Location: {params.location or "any location"}
- Experience level: {params.experience_level or "any level"}
- Max candidates to consider: {params.max_candidates or 10}

Do not make up candidate data; use only what the tools return. If a tool returns mock data, \
say so. End with "Not legal advice." when giving sourcing or hiring guidance."""


def onboarding_instructions(params: TurnParams) -> str:
    return (
        "You are an onboarding assistant for new hires in North America "
        f"(jurisdiction: {params.jurisdiction or 'NA'}). Help with first-day and first-week "
        "plans, who to contact, IT access and equipment, benefits enrollment, direct deposit, "
        "tax forms and orientation. Keep answers as short checklists. If a question depends on "
        "company-specific details you do not have, say what to ask HR."
    )


def learning_instructions(params: TurnParams) -> str:
    return (
        "You are a learning and development advisor. Recommend training, courses, "
        "certifications, coaching and learning paths matched to the user's role and goals. "
        "Ask about current skills and target role when they are missing. Prefer concrete, "
        "sequenced plans over long lists."
    )


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------
def router_prompts(
    message: str, history: Sequence[Tuple[str, str]], has_document: bool
) -> Tuple[str, str]:
    """Return ``(system, user)`` prompts for the fallback routing call."""
    agents = ", ".join(agent.value for agent in sorted(COMPLIANCE_FAMILY, key=lambda a: a.value))
    system = (
        "You are a strict router for an HR assistant. Choose exactly one agent from: "
        f"{agents}. Respond with ONE JSON object and nothing else: "
        '{"agent": "<agent>", "reason": "<short reason>", "required_questions": ["..."]}. '
        "compliance_agent, policy_doc_agent and risk_controls_agent need an attached document; "
        "without one choose general_hr_assistant."
    )
    lines = [f"{role}: {content}" for role, content in history]
    transcript = "\n".join(lines) if lines else "(none)"
    user = (
        f"Document attached: {'yes' if has_document else 'no'}\n"
        f"Recent conversation:\n{transcript}\n\n"
        f"Message to route:\n{message}"
    )
    return system, user


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class AgentProfile:
    """Static description of one agent."""

    agent: AgentId
    label: str
    build_instructions: Callable[[TurnParams], str]
    tools: Tuple[ToolName, ...] = ()
    web_search: bool = False
    disclaimer: bool = False
    empty_text: str = "Done."

    def instructions(self, params: TurnParams) -> str:
        return self.build_instructions(params)

    def finish(self, text: str) -> str:
        """Trim *text*, substitute the placeholder when empty and append the disclaimer."""
        text = text.strip()
        if not text:
            return self.empty_text
        if self.disclaimer and not text.endswith(DISCLAIMER):
            return f"{text}\n\n{DISCLAIMER}"
        return text


def _compliance(agent: AgentId, label: str) -> AgentProfile:
    return AgentProfile(
        agent=agent,
        label=label,
        build_instructions=lambda params: compliance_instructions(agent, params.jurisdiction),
        web_search=True,
        disclaimer=True,
        empty_text="No response.",
    )


PROFILES: Dict[AgentId, AgentProfile] = {
    AgentId.GENERAL_HR_ASSISTANT: _compliance(AgentId.GENERAL_HR_ASSISTANT, "HR assistant"),
    AgentId.COMPLIANCE_AGENT: _compliance(AgentId.COMPLIANCE_AGENT, "Compliance agent"),
    AgentId.POLICY_DOC_AGENT: _compliance(AgentId.POLICY_DOC_AGENT, "Policy document agent"),
    AgentId.RISK_CONTROLS_AGENT: _compliance(AgentId.RISK_CONTROLS_AGENT, "Risk & controls agent"),
    AgentId.RECRUITING: AgentProfile(
        agent=AgentId.RECRUITING,
        label="Recruiting agent",
        build_instructions=recruiting_instructions,
        tools=tuple(ToolName),
    ),
    AgentId.ONBOARDING: AgentProfile(
        agent=AgentId.ONBOARDING,
        label="Onboarding agent",
        build_instructions=onboarding_instructions,
    ),
    AgentId.LEARNING_DEVELOPMENT: AgentProfile(
        agent=AgentId.LEARNING_DEVELOPMENT,
        label="Learning & development agent",
        build_instructions=learning_instructions,
    ),
}


def get_profile(agent: AgentId) -> AgentProfile:
    return PROFILES[agent]

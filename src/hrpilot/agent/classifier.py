"""
Agent classifier.

Two entry points:

- :func:`choose_agent` picks the compliance-family agent for ``/hr/stream``.  A deterministic
  keyword tier runs first; only when it is inconclusive is the generator asked to act as a JSON
  router.  Every failure of that fallback degrades to ``general_hr_assistant``.
- :func:`suggest_chat_agent` suggests a top-level agent for the routing-only interface.  It is
  keyword-only.

Matching is case-insensitive substring matching, and phrase lists are tested in a fixed order:
the first list that decides wins.
"""

import json
import logging
from typing import (
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
)

from hrpilot.agent.generator_interface import (
    BaseGenerator,
    GenerationError,
    sanitize_json_string,
)
from hrpilot.agent.profiles import router_prompts
from hrpilot.config import settings
from hrpilot.core.schema import (
    COMPLIANCE_FAMILY,
    AgentId,
    ChatAgent,
    RouteSuggestion,
    RoutingDecision,
)

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 10

# ---------------------------------------------------------------------------
# Compliance family phrase lists
# ---------------------------------------------------------------------------
COMPLIANCE_KEYWORDS = (
    "compliance check",
    "audit",
    "soc2",
    "iso",
    "iso9001",
    "controls",
    "gap analysis",
    "policy review",
    "handbook",
    "employee handbook",
    "hr compliance",
    "legal",
    "risk register",
)

POLICY_DOC_PHRASES = (
    "handbook say",
    "document say",
    "policy say",
    "what does our",
    "what does the handbook",
    "what does the doc",
    "what does the policy",
    "what does the document",
)

RISK_CONTROLS_PHRASES = (
    "map to iso",
    "map to iso 9001",
    "soc2 controls",
    "iso 9001 controls",
    "controls mapping",
    "map this process to",
)

# ---------------------------------------------------------------------------
# Top-level family phrase lists
# ---------------------------------------------------------------------------
RECRUITING_PHRASES = (
    "hire",
    "recruit",
    "candidates",
    "job opening",
    "job posting",
    "find engineers",
    "talent",
    "position",
    "headcount",
    "staffing",
    "backfill",
    "role",
    "applicants",
    "sourcing",
    "kubeflow",
    "mlflow",
    "backend engineer",
    "frontend",
    "toronto",
    "vancouver",
)

ONBOARDING_PHRASES = (
    "first day",
    "first week",
    "new hire",
    "onboarding",
    "who do i contact",
    "who to contact",
    "it access",
    "equipment",
    "laptop",
    "benefits enrollment",
    "direct deposit",
    "tax forms",
    "i-9",
    "handbook",
    "orientation",
)

LEARNING_DEVELOPMENT_PHRASES = (
    "training",
    "learning",
    "development",
    "l&d",
    "l and d",
    "career development",
    "skills",
    "course",
    "certification",
    "upskill",
    "reskill",
    "professional development",
    "leadership development",
    "coaching",
    "mentoring",
    "workshop",
    "webinar",
    "learning path",
    "competency",
)


def matches_any(text: str, phrases: Iterable[str]) -> bool:
    """True if *text* contains any of *phrases*, ignoring case."""
    lower = text.lower()
    return any(phrase in lower for phrase in phrases)


# ---------------------------------------------------------------------------
# Compliance family
# ---------------------------------------------------------------------------
def heuristic_agent(message: str, has_document: bool) -> Optional[AgentId]:
    """
    Keyword tier.  Returns None when the message needs the fallback router.

    Without a document only the general assistant is eligible; the specialised agents all
    work on an attached document.
    """
    if not has_document:
        return AgentId.GENERAL_HR_ASSISTANT
    if not matches_any(message, COMPLIANCE_KEYWORDS):
        return None
    if matches_any(message, POLICY_DOC_PHRASES):
        return AgentId.POLICY_DOC_AGENT
    if matches_any(message, RISK_CONTROLS_PHRASES):
        return AgentId.RISK_CONTROLS_AGENT
    return AgentId.COMPLIANCE_AGENT


def parse_router_reply(content: str) -> Optional[RoutingDecision]:
    """Turn the router's JSON reply into a decision, or None if it names no known agent."""
    try:
        parsed = json.loads(sanitize_json_string(content))
    except ValueError:
        logger.warning("Router reply is not JSON: %r", content[:200])
        return None
    if not isinstance(parsed, dict):
        return None
    try:
        agent = AgentId(parsed.get("agent"))
    except ValueError:
        logger.warning("Router named an unknown agent: %r", parsed.get("agent"))
        return None
    if agent not in COMPLIANCE_FAMILY:
        logger.warning("Router named an agent outside the compliance family: %s", agent.value)
        return None

    reason = parsed.get("reason")
    questions = parsed.get("required_questions")
    return RoutingDecision(
        agent=agent,
        reason=reason if isinstance(reason, str) else None,
        required_questions=(
            [q for q in questions if isinstance(q, str)] if isinstance(questions, list) else None
        ),
    )


async def llm_router(
    message: str,
    history: Sequence[Mapping[str, str]],
    has_document: bool,
    generator: BaseGenerator | None,
) -> RoutingDecision:
    """Fallback tier.  Never raises."""
    if generator is None or not generator.available:
        return RoutingDecision(agent=AgentId.GENERAL_HR_ASSISTANT, reason="no-api-key")

    turns = [(str(m.get("role", "")), str(m.get("content", ""))) for m in history]
    system, user = router_prompts(message, turns, has_document)
    try:
        content = await generator.complete_json(system, user, settings.ROUTER_MAX_TOKENS)
    except GenerationError as exc:
        logger.warning("LLM router request failed: %s", exc)
        return RoutingDecision(agent=AgentId.GENERAL_HR_ASSISTANT, reason="fallback")
    except Exception as exc:  # pylint: disable=broad-except
        logger.error("LLM router error: %s", str(exc))
        return RoutingDecision(agent=AgentId.GENERAL_HR_ASSISTANT, reason="fallback")

    if not content or not content.strip():
        return RoutingDecision(agent=AgentId.GENERAL_HR_ASSISTANT, reason="empty-response")

    decision = parse_router_reply(content)
    if decision is None:
        return RoutingDecision(agent=AgentId.GENERAL_HR_ASSISTANT, reason="fallback")
    return decision


async def choose_agent(
    message: str,
    history: Sequence[Mapping[str, str]] | None = None,
    has_document: bool = False,
    generator: BaseGenerator | None = None,
) -> RoutingDecision:
    """Select the compliance-family agent for *message*."""
    agent = heuristic_agent(message, has_document)
    if agent is not None:
        decision = RoutingDecision(agent=agent)
    else:
        recent: List[Mapping[str, str]] = list(history or [])[-HISTORY_WINDOW:]
        decision = await llm_router(message, recent, has_document, generator)
    logger.info(
        "Routed message (document=%s) to %s (reason=%s)",
        has_document,
        decision.agent.value,
        decision.reason,
    )
    return decision


# ---------------------------------------------------------------------------
# Top-level family
# ---------------------------------------------------------------------------
def suggest_chat_agent(message: str) -> RouteSuggestion:
    """
    Suggest which top-level agent should handle *message*.

    Precedence: recruiting only, onboarding only, both (onboarding wins, for its new-hire focus),
    learning & development, then compliance as the default.
    """
    lower = message.lower().strip()
    if not lower:
        return RouteSuggestion(
            suggested_agent=ChatAgent.COMPLIANCE,
            reason="No message; defaulting to Compliance (low confidence).",
        )

    has_recruiting = matches_any(lower, RECRUITING_PHRASES)
    has_onboarding = matches_any(lower, ONBOARDING_PHRASES)
    has_learning = matches_any(lower, LEARNING_DEVELOPMENT_PHRASES)

    if has_recruiting and not has_onboarding:
        return RouteSuggestion(
            suggested_agent=ChatAgent.RECRUITING,
            reason="Your message seems to be about hiring, recruiting, or finding candidates.",
        )
    if has_onboarding and not has_recruiting:
        return RouteSuggestion(
            suggested_agent=ChatAgent.ONBOARDING,
            reason="Your message seems to be about new hire onboarding, first day, "
            "or who to contact.",
        )
    if has_recruiting and has_onboarding:
        return RouteSuggestion(
            suggested_agent=ChatAgent.ONBOARDING,
            reason="Your message touches both recruiting and onboarding; suggesting Onboarding "
            "for new-hire focus.",
        )
    if has_learning:
        return RouteSuggestion(
            suggested_agent=ChatAgent.LEARNING_DEVELOPMENT,
            reason="Your message seems to be about learning, training, or career development.",
        )
    return RouteSuggestion(
        suggested_agent=ChatAgent.COMPLIANCE,
        reason="Your message is best handled by the Compliance agent "
        "(policies, regulations, audits).",
    )

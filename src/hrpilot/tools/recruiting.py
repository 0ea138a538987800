"""
Recruiting tools.

All handlers are simulated: they synthesise a plausible structured result instead of contacting a
candidate database, mail provider, calendar or ATS.  Arguments arriving from the model are
dynamically typed, so every field is coerced leniently and falls back to a documented default.
"""

import hashlib
import time
from typing import (
    Annotated,
    Any,
    Dict,
    Optional,
)

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
)

from hrpilot.tools import (
    ToolContext,
    ToolName,
    register_tool,
)
from hrpilot.tools.sourcing import build_sourcing_workflow

DEFAULT_MAX_RESULTS = 5
MAX_RESULTS_CEILING = 20
DEFAULT_INTERVIEW_MINUTES = 30
BOOKING_LINK = "https://calendly.com/your-team/placeholder"


# ---------------------------------------------------------------------------
# Lenient coercion
# ---------------------------------------------------------------------------
def _as_text(value: Any) -> Any:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def _as_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return None
    return None


Text = Annotated[Optional[str], BeforeValidator(_as_text)]
RequiredText = Annotated[str, BeforeValidator(_as_text)]
Count = Annotated[Optional[int], BeforeValidator(_as_count)]


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------
class SearchCandidatesArgs(BaseModel):
    model_config = ConfigDict(json_schema_extra={"required": ["job_title"]})

    job_title: Text = Field(None, description="Job title or role to search for")
    location: Text = Field(None, description="City, region, or remote")
    experience_level: Text = Field(None, description="e.g. entry, mid, senior")
    max_results: Count = Field(None, description="Maximum number of candidates to return")


class ScreenResumeArgs(BaseModel):
    model_config = ConfigDict(json_schema_extra={"required": ["job_title"]})

    job_title: Text = Field(None, description="Job title to score against")
    file_id: Text = Field(None, description="File ID of the uploaded resume")
    resume_text: Text = Field(None, description="Raw resume text if no file")
    job_requirements: Text = Field(None, description="Brief job requirements")


class SendOutreachArgs(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"required": ["candidate_email", "subject", "body"]}
    )

    candidate_email: RequiredText = Field(..., description="Candidate email address")
    candidate_name: Text = Field(None, description="Candidate name")
    subject: Text = Field(None, description="Email subject")
    body: Text = Field(None, description="Email or message body")


class ScheduleInterviewArgs(BaseModel):
    candidate_email: RequiredText = Field(..., description="Candidate email")
    candidate_name: Text = Field(None, description="Candidate name")
    duration_minutes: Count = Field(None, description="Interview duration in minutes")
    note: Text = Field(None, description="Optional note for the invite")


class UpdateAtsArgs(BaseModel):
    candidate_email: RequiredText = Field(..., description="Email")
    status: RequiredText = Field(
        ..., description="e.g. new, screened, contacted, scheduled, hired, rejected"
    )
    candidate_name: Text = Field(None, description="Full name")
    job_title: Text = Field(None, description="Role they are being considered for")
    notes: Text = Field(None, description="Optional notes")


class SourcingWorkflowArgs(BaseModel):
    model_config = ConfigDict(json_schema_extra={"required": ["job_title", "location"]})

    job_title: Text = Field(None, description="Role e.g. Backend Engineer, Software Engineer")
    location: Text = Field(None, description="City/region e.g. Toronto, Greater Toronto Area")
    seniority: Text = Field(None, description="e.g. Intermediate, Senior, Staff")
    core_stack: Text = Field(None, description="e.g. Java+Spring, Go, Python, Node; AWS/GCP; Kafka")
    work_model: Text = Field(None, description="e.g. onsite, hybrid, remote-from-ON")
    must_haves: Text = Field(None, description="e.g. years, domain, security clearance, fintech")


# ---------------------------------------------------------------------------
# Read-only tools
# ---------------------------------------------------------------------------
@register_tool(
    ToolName.SEARCH_CANDIDATES,
    "Search for candidates by job title, location, and experience level. "
    "Returns a list of candidate summaries.",
    SearchCandidatesArgs,
)
def search_candidates(args: SearchCandidatesArgs, context: ToolContext) -> Dict[str, Any]:
    job = args.job_title or context.job_title or "role"
    loc = args.location or context.location or "anywhere"
    total = max(1, min(args.max_results or DEFAULT_MAX_RESULTS, MAX_RESULTS_CEILING))
    candidates = [
        {
            "id": f"cand_{i}",
            "name": f"Candidate {i}",
            "email": f"candidate{i}@example.com",
            "job_title": job,
            "location": loc,
            "experience": args.experience_level or "mid",
        }
        for i in range(1, total + 1)
    ]
    return {
        "message": "[Stub] Search not connected to a candidate source yet.",
        "candidates": candidates,
        "total": total,
    }


@register_tool(
    ToolName.SCREEN_RESUME,
    "Score a resume against a job specification. Pass either file_id or resume_text. "
    "Returns score 0-100 and a short summary.",
    ScreenResumeArgs,
)
def screen_resume(args: ScreenResumeArgs, context: ToolContext) -> Dict[str, Any]:
    job = args.job_title or context.job_title or "role"
    seed = "|".join([job, args.file_id or "", args.resume_text or "", args.job_requirements or ""])
    # Mock score in [60, 94], stable for identical inputs.
    score = 60 + int(hashlib.sha256(seed.encode("utf-8")).hexdigest(), 16) % 35
    return {
        "message": "[Stub] Resume screening uses mock scoring.",
        "score": score,
        "summary": f"Candidate appears to match {job} at a {score}/100 fit.",
        "job_title": job,
    }


@register_tool(
    ToolName.GET_SOURCING_WORKFLOW,
    "Get a ready-to-run sourcing workflow when you cannot return a list of real candidates. "
    "Returns clarifying questions (seniority, core stack, work model, must-haves), a LinkedIn "
    "boolean search string, a Google X-ray for LinkedIn, a GitHub search, a 10-minute shortlist "
    "scorecard and an outreach email template.",
    SourcingWorkflowArgs,
)
def get_sourcing_workflow(args: SourcingWorkflowArgs, context: ToolContext) -> Dict[str, Any]:
    job = args.job_title or context.job_title or "Backend Engineer"
    loc = args.location or context.location or "Toronto"
    workflow = build_sourcing_workflow(
        job_title=job,
        location=loc,
        seniority=args.seniority,
        core_stack=args.core_stack,
        work_model=args.work_model,
        must_haves=args.must_haves,
    )
    return {"workflow": workflow, "job_title": job, "location": loc}


# ---------------------------------------------------------------------------
# Side-effecting tools (gated by approval)
# ---------------------------------------------------------------------------
@register_tool(
    ToolName.SEND_OUTREACH,
    "Send an outreach email or message to a candidate.",
    SendOutreachArgs,
)
def send_outreach(args: SendOutreachArgs, context: ToolContext) -> Dict[str, Any]:
    return {
        "message": "[Stub] Email not sent; no provider configured.",
        "would_send_to": args.candidate_email,
        "subject": args.subject or "",
        "status": "simulated",
    }


@register_tool(
    ToolName.SCHEDULE_INTERVIEW,
    "Schedule an interview slot for a candidate. Returns a booking link or confirmation.",
    ScheduleInterviewArgs,
)
def schedule_interview(args: ScheduleInterviewArgs, context: ToolContext) -> Dict[str, Any]:
    duration = args.duration_minutes
    if duration is None or duration <= 0:
        duration = DEFAULT_INTERVIEW_MINUTES
    return {
        "message": "[Stub] No calendar integration yet.",
        "candidate_email": args.candidate_email,
        "duration_minutes": duration,
        "booking_link": BOOKING_LINK,
        "status": "simulated",
    }


@register_tool(
    ToolName.UPDATE_ATS,
    "Add or update a candidate in the ATS (applicant tracking system) with a status.",
    UpdateAtsArgs,
)
def update_ats(args: UpdateAtsArgs, context: ToolContext) -> Dict[str, Any]:
    return {
        "message": "[Stub] ATS not connected; update simulated.",
        "candidate_email": args.candidate_email,
        "status": args.status,
        "ats_id": f"ats_{int(time.time() * 1000)}",
    }

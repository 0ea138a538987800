"""Copy/paste sourcing workflow used when no real candidate source is connected."""

import re

DEFAULT_SENIORITY = "Intermediate / Senior"
DEFAULT_STACK = "Java, Go, Python, Node; AWS/GCP; Docker/Kubernetes"
DEFAULT_WORK_MODEL = "hybrid"
DEFAULT_MUST_HAVES = "none specified"

_ML_PLATFORM = re.compile(
    r"kubeflow|mlflow|mlops|ml platform|machine learning infrastructure|model serving|ml engineer",
    re.IGNORECASE,
)

_URL_EXTRACTION = """\
How to pull LinkedIn profile links from Google X-Ray results (repeatable)
1) Run the Google X-Ray query below in Google search.
2) Copy LinkedIn profile links from the results: right-click the result title -> Copy link \
address, or open the result and copy the URL from the address bar.
3) (Optional) Keep only public profile URLs (https://www.linkedin.com/in/<handle>/) and drop \
.../jobs/, .../learning/, .../company/, .../posts/
4) Faster extraction: after searching, set Tools -> Verbatim so Google does not rewrite your \
terms."""

_SCORECARD = """\
10-minute shortlist scorecard (0-2 points per line, max 10)
- Backend language depth (Go/Java/Python/Node)
- Cloud (AWS/GCP/Azure) + infra (Docker/K8s)
- API design + microservices/distributed systems
- Evidence of impact (metrics, scale, ownership)
- Communication (clear summaries, docs, OSS PRs)"""


def is_ml_platform_search(job_title: str, core_stack: str) -> bool:
    """True when the role or stack mentions ML-platform vocabulary."""
    return bool(_ML_PLATFORM.search(f"{job_title} {core_stack}"))


def _regional_name(location: str) -> str:
    return "Greater Toronto Area" if location == "Toronto" else location


def _ml_xray(location: str, region: str) -> str:
    return (
        f"D) Google X-Ray for MLOps / ML platform ({location})\n"
        'site:linkedin.com/in (Kubeflow OR "KubeFlow") ("MLflow" OR "ML Flow") '
        '(MLOps OR "ml platform" OR "machine learning infrastructure" OR "model serving") '
        f'({location} OR "{region}" OR GTA) -jobs -learning -recruiter -talent -intern -student\n'
        "Use the same steps above to copy and filter LinkedIn profile URLs."
    )


def build_sourcing_workflow(
    job_title: str,
    location: str,
    seniority: str | None = None,
    core_stack: str | None = None,
    work_model: str | None = None,
    must_haves: str | None = None,
) -> str:
    """
    Render the sourcing workflow text.

    Every input that shaped the output is echoed back in the clarifying-questions block so the
    user can see which defaults were assumed.
    """
    seniority = seniority or DEFAULT_SENIORITY
    core_stack = core_stack or DEFAULT_STACK
    work_model = work_model or DEFAULT_WORK_MODEL
    must_haves = must_haves or DEFAULT_MUST_HAVES
    region = _regional_name(location)

    sections = [
        "I can't hand you a curated list of specific people's LinkedIn profiles. What I can do "
        "is give you copy/paste X-Ray and boolean strings to pull 5+ candidates yourself, and "
        "show you how to collect the profile URLs in a repeatable way.",
        "Before I tailor the strings, answer these 4 items (one line each is fine):\n"
        f"- Seniority: Intermediate / Senior / Staff? (you said: {seniority})\n"
        f"- Core stack: (e.g., Java+Spring, Go, Python, Node; Kubeflow, MLflow) "
        f"(you said: {core_stack})\n"
        f"- Work model: onsite {location} / hybrid / remote? (you said: {work_model})\n"
        f"- Any must-haves: (years, domain, security clearance, fintech) "
        f"(you said: {must_haves})",
        f"Ready-to-run searches ({location}, {job_title})",
        f"A) LinkedIn boolean (set Location = {region})\n"
        '("backend engineer" OR "software engineer" OR "backend developer" OR "server-side")\n'
        'AND (API OR microservices OR "distributed systems")\n'
        "AND (AWS OR GCP OR Azure OR Kubernetes OR Docker)\n"
        'AND (Java OR Go OR Golang OR Python OR Node OR "C#")\n'
        'NOT (intern OR internship OR "front end" OR frontend OR "full stack" OR "mobile")\n'
        f"Filters: Location = {region}; Experience = 3-8 years (intermediate) or 5-12 (senior).",
        f"B) Google X-ray for LinkedIn ({location})\n"
        f'site:linkedin.com/in ("{region}" OR {location}) '
        '("Backend Engineer" OR "Software Engineer")\n'
        "(AWS OR GCP OR Azure) (Kubernetes OR Docker) (Java OR Go OR Python OR Node)",
        f"C) GitHub: location:{location} (language:Go OR language:Java OR language:Python OR "
        "language:TypeScript). Shortlist: recent commits, production-style repos (tests, CI, "
        "README), API/microservices projects.",
    ]
    if is_ml_platform_search(job_title, core_stack):
        sections.append(_ml_xray(location, region))
    sections.extend(
        [
            _URL_EXTRACTION,
            _SCORECARD,
            f"Outreach template ({job_title}, {location})\n"
            f"Subject: {job_title} role ({location} / {work_model}) - quick chat?\n"
            "Body: 1 sentence why you're reaching out. 1 sentence role mission + stack. "
            "1 sentence comp range + work model + interview steps. "
            'Close: "Open to a 15-minute chat this week?"',
            "If you reply with seniority + stack + work model + must-haves, I can tighten the "
            "booleans and add a checklist to pull 5 qualified profiles in 15-30 minutes.",
        ]
    )
    return "\n\n".join(sections)

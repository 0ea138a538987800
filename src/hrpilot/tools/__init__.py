"""
Tool registry for HRPilot.

The set of tools is closed: every name lives in :class:`ToolName` and is bound to exactly one
handler at import time through :func:`register_tool`.  A handler receives its arguments already
validated into a per-tool pydantic model, plus the turn-level :class:`ToolContext`, and returns a
JSON-serialisable mapping.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Type,
)

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """Every tool the recruiting agent may call."""

    SEARCH_CANDIDATES = "search_candidates"
    SCREEN_RESUME = "screen_resume"
    SEND_OUTREACH = "send_outreach"
    SCHEDULE_INTERVIEW = "schedule_interview"
    UPDATE_ATS = "update_ats"
    GET_SOURCING_WORKFLOW = "get_sourcing_workflow"


@dataclass(frozen=True)
class ToolContext:
    """Turn-level defaults handed to every tool call."""

    job_title: Optional[str] = None
    location: Optional[str] = None
    generator: Any = None  # reserved for tools that call back into the model


ToolHandler = Callable[[Any, ToolContext], Mapping[str, Any]]


@dataclass(frozen=True)
class ToolSpec:
    """A registered tool: its public description, argument model and handler."""

    name: ToolName
    description: str
    args_model: Type[BaseModel]
    handler: ToolHandler


TOOL_REGISTRY: Dict[ToolName, ToolSpec] = {}
"""Global registry of tool specs."""


def register_tool(name: ToolName, description: str, args_model: Type[BaseModel]) -> Callable:
    """
    Register a tool handler under *name*.

    Used as a decorator:
        @register_tool(ToolName.UPDATE_ATS, "Update the ATS.", UpdateAtsArgs)
        def update_ats(args: UpdateAtsArgs, context: ToolContext) -> dict:
            ...

    Parameters
    ----------
    name: ToolName
        The tool's name.  Each member of :class:`ToolName` is registered exactly once.
    description: str
        Human-readable description forwarded to the generation capability.
    args_model: Type[BaseModel]
        Pydantic model the raw arguments are validated into; also the source of the
        parameter schema.
    Returns
    -------
    Callable
        A decorator that registers the handler.
    Raises
    ------
    ValueError
        If a handler for *name* is already registered.
    """
    if name in TOOL_REGISTRY:
        raise ValueError(f"Tool '{name.value}' is already registered.")
    logger.debug("Registering tool '%s'", name.value)

    def wrapper(fn: ToolHandler) -> ToolHandler:
        TOOL_REGISTRY[name] = ToolSpec(
            name=name, description=description, args_model=args_model, handler=fn
        )
        return fn

    return wrapper


def lookup_tool(name: str) -> Optional[ToolSpec]:
    """Return the spec registered for *name*, or None for names outside the closed set."""
    try:
        return TOOL_REGISTRY.get(ToolName(name))
    except ValueError:
        return None


def _clean_schema(node: Any) -> Any:
    """Drop pydantic titles and collapse ``Optional[X]`` into ``X``."""
    if isinstance(node, list):
        return [_clean_schema(item) for item in node]
    if not isinstance(node, dict):
        return node
    if "anyOf" in node:
        variants = [v for v in node["anyOf"] if v.get("type") != "null"]
        if len(variants) == 1:
            merged = {k: v for k, v in node.items() if k != "anyOf"}
            merged.update(variants[0])
            node = merged
    return {k: _clean_schema(v) for k, v in node.items() if k not in {"title", "default"}}


def get_tool_definitions(names: Iterable[ToolName] | None = None) -> List[Dict[str, Any]]:
    """Build OpenAI-style function specs for *names* (all tools when omitted)."""
    selected = list(names) if names is not None else list(ToolName)
    definitions: List[Dict[str, Any]] = []
    for name in selected:
        spec = TOOL_REGISTRY[name]
        schema = _clean_schema(spec.args_model.model_json_schema())
        definitions.append(
            {
                "type": "function",
                "function": {
                    "name": name.value,
                    "description": spec.description,
                    "parameters": {
                        "type": "object",
                        "properties": schema.get("properties", {}),
                        "required": schema.get("required", []),
                    },
                },
            }
        )
    return definitions


# Handlers register themselves on import.
from hrpilot.tools import recruiting  # noqa: E402,F401  pylint: disable=wrong-import-position

_missing = [name.value for name in ToolName if name not in TOOL_REGISTRY]
if _missing:
    raise RuntimeError(f"Tools without a handler: {', '.join(_missing)}")

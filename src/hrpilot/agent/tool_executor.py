"""Dispatches tool calls registered in ``hrpilot.tools`` and wraps errors."""

import json
import logging
from typing import (
    Any,
    Dict,
    Mapping,
)

from pydantic import ValidationError

from hrpilot.tools import (
    ToolContext,
    lookup_tool,
)

logger = logging.getLogger(__name__)


class ToolExecutionError(RuntimeError):
    """Raised when a requested tool cannot run or fails."""


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err.get("loc", ())) or "arguments"
        parts.append(f"{field}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def run_tool(
    name: str, args: Mapping[str, Any] | None = None, context: ToolContext | None = None
) -> Dict[str, Any]:
    """
    Look up *name* in the registry and invoke it with *args*.

    Parameters
    ----------
    name:
        The tool name as proposed by the generator.
    args:
        Raw, untyped arguments.  They are validated into the tool's argument model first.  If
        *None*, an empty mapping is assumed.
    context:
        Turn-level defaults (job title, location, generator).

    Returns
    -------
    dict
        Whatever the tool handler returns.

    Raises
    ------
    ToolExecutionError
        If the tool is unknown, its arguments are invalid, or the handler raises.
    """
    spec = lookup_tool(name)
    if spec is None:
        raise ToolExecutionError(f"Unknown tool: {name}")

    raw = dict(args) if isinstance(args, Mapping) else {}
    try:
        parsed = spec.args_model.model_validate(raw)
    except ValidationError as exc:
        raise ToolExecutionError(
            f"Invalid arguments for tool '{name}': {_describe_validation_error(exc)}"
        ) from exc

    try:
        logger.debug("Executing tool '%s' with args=%s", name, parsed.model_dump())
        return dict(spec.handler(parsed, context or ToolContext()))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled error in tool '%s'", name)
        raise ToolExecutionError(f"Tool '{name}' raised an error: {exc}") from exc


def execute_tool(
    name: str, args: Mapping[str, Any] | None = None, context: ToolContext | None = None
) -> str:
    """
    Run a tool and return its result as JSON text.

    Never raises: failures become a ``{"error": "..."}`` payload so the orchestrator can feed
    them back to the generator as ordinary tool output.
    """
    try:
        result = run_tool(name, args, context)
    except ToolExecutionError as exc:
        logger.warning("Tool failure: %s", exc)
        result = {"error": str(exc)}
    return json.dumps(result, ensure_ascii=False)

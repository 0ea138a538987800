"""CLI client for the HRPilot API."""

from __future__ import annotations

import json
import logging
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
    cast,
)

import httpx

from hrpilot.common import (
    AnsiColors,
    colored_print,
    step_color,
)
from hrpilot.config import settings

logger = logging.getLogger(__name__)

MAX_HISTORY = 20
AGENT_CHOICES = ("recruiting", "compliance", "onboarding", "learning_development")


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------
def api_url(endpoint: str) -> str:
    return f"http://localhost:{settings.API_PORT}{endpoint}"


def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return f"HTTP {response.status_code}"


def call_api(
    endpoint: str, data: Dict[str, Any], max_retries: int = 5
) -> Optional[Dict[str, Any]]:
    """POST *data* and return the JSON reply, retrying while the API is still starting."""
    for attempt in range(max_retries):
        try:
            with httpx.Client(timeout=30.0) as client:
                response = client.post(api_url(endpoint), json=data)
        except httpx.ConnectError:
            if attempt < max_retries - 1:
                retry_delay = 0.5 * (2**attempt)  # exponential backoff: 0.5s, 1s, 2s, 4s...
                logger.info(
                    "API not ready yet, retrying in %.1f seconds (attempt %d/%d)...",
                    retry_delay,
                    attempt + 1,
                    max_retries,
                )
                import time  # pylint: disable=import-outside-toplevel

                time.sleep(retry_delay)
                continue
            break
        except httpx.HTTPError as exc:
            logger.error("API request error: %s", exc)
            colored_print(f"Error connecting to API: {exc}", AnsiColors.RED)
            return None

        if response.is_error:
            colored_print(f"API error: {_error_detail(response)}", AnsiColors.RED)
            return None
        return cast(Dict[str, Any], response.json())

    colored_print(f"Failed to connect to API after {max_retries} attempts", AnsiColors.RED)
    return None


def iter_events(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """Parse NDJSON *lines* into event dicts, skipping blank and malformed lines."""
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except ValueError:
            logger.debug("Skipping malformed stream line: %r", line[:200])
            continue
        if isinstance(event, dict) and "type" in event:
            yield event


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
class TurnPrinter:
    """Renders stream events and remembers the terminal one."""

    def __init__(self) -> None:
        self.terminal: Optional[Dict[str, Any]] = None
        self._in_text = False
        self._streamed: List[str] = []

    def _end_text(self) -> None:
        if self._in_text:
            print()
            self._in_text = False

    def _print_remainder(self, text: str) -> None:
        """Show the parts of the final text that were not streamed (placeholder, disclaimer)."""
        streamed = "".join(self._streamed).strip()
        if not streamed:
            colored_print(f"🤖 {text}", AnsiColors.YELLOW)
        elif text.startswith(streamed) and text != streamed:
            colored_print(text[len(streamed) :].strip(), AnsiColors.YELLOW)

    def handle(self, event: Dict[str, Any]) -> None:
        kind = event.get("type")
        if kind == "step":
            self._end_text()
            status = str(event.get("status", ""))
            marker = "✓" if status == "done" else "…"
            colored_print(f"  {marker} {event.get('label', '')}", step_color(status))
        elif kind == "text":
            if not self._in_text:
                colored_print("🤖 ", AnsiColors.YELLOW, end="")
                self._in_text = True
            delta = str(event.get("delta", ""))
            self._streamed.append(delta)
            print(delta, end="", flush=True)
        elif kind == "done":
            self._end_text()
            self._print_remainder(str(event.get("text", "")))
            self.terminal = event
        elif kind == "error":
            self._end_text()
            colored_print(f"⚠️ {event.get('error', 'Request failed')}", AnsiColors.RED)
            self.terminal = event
        elif kind == "pending_tool_calls":
            self._end_text()
            self.terminal = event


def stream_turn(endpoint: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """POST *payload*, render the NDJSON stream and return its terminal event."""
    printer = TurnPrinter()
    try:
        with httpx.Client(timeout=httpx.Timeout(30.0, read=None)) as client:
            with client.stream("POST", api_url(endpoint), json=payload) as response:
                if response.is_error:
                    response.read()
                    colored_print(f"API error: {_error_detail(response)}", AnsiColors.RED)
                    return None
                for event in iter_events(response.iter_lines()):
                    printer.handle(event)
    except httpx.HTTPError as exc:
        logger.error("Stream error: %s", exc)
        colored_print(f"Error connecting to API: {exc}", AnsiColors.RED)
        return None
    return printer.terminal


# ---------------------------------------------------------------------------
# Interaction
# ---------------------------------------------------------------------------
def ask_approval(
    calls: List[Dict[str, Any]], read: Callable[[str], str] = input
) -> List[str]:
    """Ask about each pending call; return the ids the user approved."""
    approved: List[str] = []
    for call in calls:
        args = json.dumps(call.get("args", {}), ensure_ascii=False)
        try:
            answer = read(f"Run {call.get('name')} {args}? [y/N] ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            answer = ""
        if answer in {"y", "yes"}:
            approved.append(str(call.get("id")))
    return approved


def pick_agent(message: str, read: Callable[[str], str] = input) -> str:
    """Ask the API for a suggestion and let the user accept it or name another agent."""
    suggestion = call_api("/chat/route", {"message": message}) or {}
    suggested = suggestion.get("suggestedAgent", "compliance")
    if suggestion.get("reason"):
        colored_print(suggestion["reason"], AnsiColors.GREY)
    try:
        answer = read(f"Agent [{suggested}] ({'/'.join(AGENT_CHOICES)}): ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        answer = ""
    return answer if answer in AGENT_CHOICES else suggested


def run_turn(agent: str, message: str, history: List[Dict[str, str]]) -> Optional[str]:
    """Run one turn, handling any number of approval pauses.  Returns the final text."""
    if agent == "compliance":
        terminal = stream_turn("/hr/stream", {"message": message, "history": history})
    else:
        terminal = stream_turn(
            "/agent/stream", {"message": message, "history": history, "agent": agent}
        )

    while terminal is not None and terminal.get("type") == "pending_tool_calls":
        approved = ask_approval(terminal.get("calls", []))
        terminal = stream_turn(
            "/agent/stream/continue",
            {"continuation": terminal.get("continuation", ""), "approved_tool_call_ids": approved},
        )

    if terminal is not None and terminal.get("type") == "done":
        return str(terminal.get("text", ""))
    return None


def run_cli() -> None:
    """Run the CLI client that communicates with the API."""
    history: List[Dict[str, str]] = []

    colored_print(
        "\n🔮 HRPilot shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN
    )
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        agent = pick_agent(user_msg)
        reply = run_turn(agent, user_msg, history)
        if reply is None:
            continue
        history.extend(
            [{"role": "user", "content": user_msg}, {"role": "assistant", "content": reply}]
        )
        del history[:-MAX_HISTORY]


if __name__ == "__main__":
    run_cli()

"""Terminal client helpers and the entry-point parser."""

import pytest

from hrpilot.client import cli
from hrpilot.main import build_parser


def test_iter_events_skips_blank_and_malformed_lines() -> None:
    lines = [
        '{"type": "step", "id": "agent", "label": "x", "status": "active"}',
        "",
        "   ",
        "{not json",
        "[1, 2]",
        '{"no_type": true}',
        '{"type": "done", "text": "ok"}',
    ]

    assert [e["type"] for e in cli.iter_events(lines)] == ["step", "done"]


def test_ask_approval_collects_yes_answers() -> None:
    answers = iter(["y", "no", "YES"])
    calls = [
        {"id": "c1", "name": "send_outreach", "args": {}},
        {"id": "c2", "name": "update_ats", "args": {}},
        {"id": "c3", "name": "schedule_interview", "args": {}},
    ]

    assert cli.ask_approval(calls, read=lambda _prompt: next(answers)) == ["c1", "c3"]


def test_ask_approval_treats_eof_as_decline() -> None:
    def _eof(_prompt):
        raise EOFError

    assert cli.ask_approval([{"id": "c1", "name": "update_ats"}], read=_eof) == []


def test_printer_shows_unstreamed_disclaimer(capsys: pytest.CaptureFixture) -> None:
    printer = cli.TurnPrinter()
    printer.handle({"type": "text", "delta": "Answer."})
    printer.handle({"type": "done", "text": "Answer.\n\nNot legal advice."})

    out = capsys.readouterr().out
    assert "Answer." in out
    assert "Not legal advice." in out
    assert "\033[" not in out
    assert printer.terminal == {"type": "done", "text": "Answer.\n\nNot legal advice."}


def test_printer_records_pending_terminal() -> None:
    printer = cli.TurnPrinter()
    event = {"type": "pending_tool_calls", "calls": [], "continuation": "abc"}
    printer.handle(event)
    assert printer.terminal == event


def test_pick_agent_accepts_suggestion_or_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cli, "call_api", lambda endpoint, data: {"suggestedAgent": "recruiting", "reason": "r"}
    )

    assert cli.pick_agent("hire", read=lambda _prompt: "") == "recruiting"
    assert cli.pick_agent("hire", read=lambda _prompt: "onboarding") == "onboarding"
    assert cli.pick_agent("hire", read=lambda _prompt: "nonsense") == "recruiting"


def test_run_turn_follows_approval_pauses(monkeypatch: pytest.MonkeyPatch) -> None:
    posted = []
    replies = iter(
        [
            {"type": "pending_tool_calls", "calls": [{"id": "c1"}], "continuation": "tok"},
            {"type": "done", "text": "All set."},
        ]
    )

    def _stream_turn(endpoint, payload):
        posted.append((endpoint, payload))
        return next(replies)

    monkeypatch.setattr(cli, "stream_turn", _stream_turn)
    monkeypatch.setattr(cli, "ask_approval", lambda calls: ["c1"])

    assert cli.run_turn("recruiting", "email jane", []) == "All set."
    assert posted[0][0] == "/agent/stream"
    assert posted[0][1]["agent"] == "recruiting"
    assert posted[1] == (
        "/agent/stream/continue",
        {"continuation": "tok", "approved_tool_call_ids": ["c1"]},
    )


def test_run_turn_uses_compliance_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    posted = []
    monkeypatch.setattr(
        cli,
        "stream_turn",
        lambda endpoint, payload: posted.append(endpoint) or {"type": "error", "error": "x"},
    )

    assert cli.run_turn("compliance", "overtime?", []) is None
    assert posted == ["/hr/stream"]


def test_parser_modes() -> None:
    parser = build_parser()
    assert parser.parse_args([]).mode == "api"
    assert parser.parse_args(["--mode", "CLI", "--log-level", "DEBUG"]).log_level == "debug"
    with pytest.raises(SystemExit):
        parser.parse_args(["--mode", "web"])

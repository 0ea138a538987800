"""Generator back-ends against fake SDK clients, plus transcript conversion."""

import asyncio
import json
from types import SimpleNamespace

import anthropic
import openai
import pytest
from conftest import (
    call,
    collect,
)

from hrpilot.agent.generator_interface import (
    AnthropicGenerator,
    Completion,
    GenerationError,
    GenerationRequest,
    OpenAIGenerator,
    SearchProgress,
    TextDelta,
    load_generator,
    sanitize_json_string,
    to_anthropic_messages,
    to_openai_messages,
    to_responses_input,
)
from hrpilot.core.schema import ChatMessage
from hrpilot.tools import (
    ToolName,
    get_tool_definitions,
)


async def _aiter(items):
    for item in items:
        yield item


class FakeEndpoint:
    """Stands in for ``client.chat.completions`` / ``client.responses``."""

    def __init__(self, result=None, error=None) -> None:
        self.result = result
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def _openai_client(chat=None, responses=None):
    return SimpleNamespace(
        chat=SimpleNamespace(completions=chat or FakeEndpoint()),
        responses=responses or FakeEndpoint(),
    )


def _chunk(content=None, tool_calls=None):
    delta = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(delta=delta)])


def _fragment(index, call_id=None, name=None, arguments=None):
    return SimpleNamespace(
        index=index, id=call_id, function=SimpleNamespace(name=name, arguments=arguments)
    )


def _request(**kwargs) -> GenerationRequest:
    kwargs.setdefault("instructions", "Be brief.")
    kwargs.setdefault("messages", [ChatMessage(role="user", content="hi")])
    return GenerationRequest(**kwargs)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def test_sanitize_json_string() -> None:
    assert sanitize_json_string('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert sanitize_json_string('Sure! {"a": {"b": 2}} hope that helps') == '{"a": {"b": 2}}'
    assert sanitize_json_string("no json") == "no json"


def test_load_generator() -> None:
    assert isinstance(load_generator("openai"), OpenAIGenerator)
    assert isinstance(load_generator("Anthropic"), AnthropicGenerator)
    with pytest.raises(ValueError, match="not registered"):
        load_generator("tgi")


def test_availability_follows_normalised_key() -> None:
    assert OpenAIGenerator(api_key="Bearer sk-test").api_key == "sk-test"
    assert OpenAIGenerator(api_key="sk-test").available
    assert not OpenAIGenerator(api_key="  ").available
    assert not AnthropicGenerator(api_key="").available


def test_to_openai_messages() -> None:
    messages = [
        ChatMessage(role="user", content="review this", file_ids=["file-1"]),
        ChatMessage(role="assistant", tool_calls=[call("c1", "search_candidates", "{}")]),
        ChatMessage(role="tool", tool_call_id="c1", content='{"total": 1}'),
    ]

    out = to_openai_messages("rules", messages)

    assert out[0] == {"role": "system", "content": "rules"}
    assert out[1]["content"][0] == {"type": "file", "file": {"file_id": "file-1"}}
    assert out[1]["content"][-1] == {"type": "text", "text": "review this"}
    assert out[2]["tool_calls"][0]["function"] == {"name": "search_candidates", "arguments": "{}"}
    assert out[3] == {"role": "tool", "tool_call_id": "c1", "content": '{"total": 1}'}


def test_to_responses_input_keeps_only_conversation_turns() -> None:
    messages = [
        ChatMessage(role="user", content="policy?", file_ids=["file-9"]),
        ChatMessage(role="assistant", content="Which province?"),
        ChatMessage(role="tool", tool_call_id="x", content="{}"),
    ]

    items = to_responses_input(messages)

    assert len(items) == 2
    assert items[0]["content"][0] == {"type": "input_file", "file_id": "file-9"}
    assert items[1] == {"role": "assistant", "content": "Which province?"}


def test_to_anthropic_messages_groups_tool_results() -> None:
    messages = [
        ChatMessage(role="system", content="dropped"),
        ChatMessage(role="user", content="go"),
        ChatMessage(
            role="assistant",
            content="Working.",
            tool_calls=[call("a", "search_candidates", '{"job_title": "SRE"}'), call("b", "x")],
        ),
        ChatMessage(role="tool", tool_call_id="a", content="{}"),
        ChatMessage(role="tool", tool_call_id="b", content="{}"),
    ]

    out = to_anthropic_messages(messages)

    assert [m["role"] for m in out] == ["user", "assistant", "user"]
    assert out[1]["content"][0] == {"type": "text", "text": "Working."}
    assert out[1]["content"][1]["input"] == {"job_title": "SRE"}
    assert [b["tool_use_id"] for b in out[2]["content"]] == ["a", "b"]


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------
def test_openai_stream_accumulates_tool_call_fragments() -> None:
    chat = FakeEndpoint(
        _aiter(
            [
                _chunk(content="Let me "),
                _chunk(content="look."),
                _chunk(tool_calls=[_fragment(0, "call_1", "search_candidates", '{"job_')]),
                _chunk(tool_calls=[_fragment(0, arguments='title": "SRE"}')]),
                _chunk(tool_calls=[_fragment(1, "call_2", "update_ats", "{}")]),
                SimpleNamespace(choices=[]),
            ]
        )
    )
    generator = OpenAIGenerator(api_key="sk-test", model="gpt-test", client=_openai_client(chat))
    tools = get_tool_definitions([ToolName.SEARCH_CANDIDATES])

    chunks = collect(generator.stream(_request(tools=tools)))

    assert chunks[:2] == [TextDelta(delta="Let me "), TextDelta(delta="look.")]
    completion = chunks[-1]
    assert isinstance(completion, Completion)
    assert completion.content == "Let me look."
    assert [(c.id, c.name) for c in completion.tool_calls] == [
        ("call_1", "search_candidates"),
        ("call_2", "update_ats"),
    ]
    assert completion.tool_calls[0].parsed_arguments() == {"job_title": "SRE"}
    sent = chat.calls[0]
    assert sent["model"] == "gpt-test"
    assert sent["stream"] is True
    assert sent["tools"] == tools
    assert sent["messages"][0] == {"role": "system", "content": "Be brief."}


def test_openai_web_search_uses_responses_api() -> None:
    responses = FakeEndpoint(
        _aiter(
            [
                SimpleNamespace(type="response.created"),
                SimpleNamespace(type="response.web_search_call.searching"),
                SimpleNamespace(type="response.web_search_call.completed"),
                SimpleNamespace(type="response.output_text.delta", delta="Ontario: 44h."),
                SimpleNamespace(type="response.output_text.done", text="Ontario: 44h."),
            ]
        )
    )
    generator = OpenAIGenerator(api_key="sk-test", client=_openai_client(responses=responses))

    chunks = collect(generator.stream(_request(web_search=True)))

    assert isinstance(chunks[0], SearchProgress) and chunks[0].status == "active"
    assert isinstance(chunks[1], SearchProgress) and chunks[1].status == "done"
    assert chunks[2] == TextDelta(delta="Ontario: 44h.")
    assert chunks[3] == Completion(content="Ontario: 44h.")
    assert responses.calls[0]["tools"] == [{"type": "web_search_preview"}]
    assert responses.calls[0]["instructions"] == "Be brief."


def test_openai_failed_response_raises_generation_error() -> None:
    responses = FakeEndpoint(_aiter([SimpleNamespace(type="response.failed")]))
    generator = OpenAIGenerator(api_key="sk-test", client=_openai_client(responses=responses))

    with pytest.raises(GenerationError):
        collect(generator.stream(_request(web_search=True)))


def test_openai_sdk_errors_are_wrapped() -> None:
    chat = FakeEndpoint(error=openai.OpenAIError("quota exceeded"))
    generator = OpenAIGenerator(api_key="sk-test", client=_openai_client(chat))

    with pytest.raises(GenerationError, match="quota exceeded"):
        collect(generator.stream(_request()))


def test_openai_complete_json_uses_router_model() -> None:
    reply = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=' {"agent": "x"} '))]
    )
    chat = FakeEndpoint(reply)
    generator = OpenAIGenerator(
        api_key="sk-test", model="gpt-big", router_model="gpt-small", client=_openai_client(chat)
    )

    content = asyncio.run(generator.complete_json("sys", "user", 64))

    assert content == '{"agent": "x"}'
    assert chat.calls[0]["model"] == "gpt-small"
    assert chat.calls[0]["response_format"] == {"type": "json_object"}
    assert chat.calls[0]["max_completion_tokens"] == 64


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------
class FakeAnthropicStream:
    def __init__(self, texts, final) -> None:
        self.texts = texts
        self.final = final

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    @property
    def text_stream(self):
        return _aiter(self.texts)

    async def get_final_message(self):
        return self.final


class FakeAnthropicMessages:
    def __init__(self, texts=(), final=None, reply=None) -> None:
        self.texts = list(texts)
        self.final = final
        self.reply = reply
        self.calls = []

    def stream(self, **kwargs):
        self.calls.append(kwargs)
        return FakeAnthropicStream(self.texts, self.final)

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


def test_anthropic_stream_maps_tool_use_blocks() -> None:
    final = SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="Checking."),
            SimpleNamespace(
                type="tool_use", id="toolu_1", name="search_candidates", input={"job_title": "SRE"}
            ),
        ]
    )
    messages = FakeAnthropicMessages(texts=["Check", "ing."], final=final)
    generator = AnthropicGenerator(api_key="sk-ant", client=SimpleNamespace(messages=messages))
    tools = get_tool_definitions([ToolName.SEARCH_CANDIDATES])

    chunks = collect(generator.stream(_request(tools=tools)))

    assert chunks[:2] == [TextDelta(delta="Check"), TextDelta(delta="ing.")]
    completion = chunks[-1]
    assert completion.content == "Checking."
    assert completion.tool_calls[0].id == "toolu_1"
    assert json.loads(completion.tool_calls[0].arguments) == {"job_title": "SRE"}
    sent = messages.calls[0]
    assert sent["system"] == "Be brief."
    assert sent["tools"][0]["name"] == "search_candidates"
    assert sent["tools"][0]["input_schema"]["type"] == "object"


def test_anthropic_complete_json_strips_fences() -> None:
    reply = SimpleNamespace(
        content=[SimpleNamespace(type="text", text='```json\n{"agent": "compliance_agent"}\n```')]
    )
    generator = AnthropicGenerator(
        api_key="sk-ant", client=SimpleNamespace(messages=FakeAnthropicMessages(reply=reply))
    )

    assert asyncio.run(generator.complete_json("s", "u", 32)) == '{"agent": "compliance_agent"}'


def test_anthropic_sdk_errors_are_wrapped() -> None:
    messages = FakeAnthropicMessages(reply=anthropic.AnthropicError("overloaded"))
    generator = AnthropicGenerator(api_key="sk-ant", client=SimpleNamespace(messages=messages))

    with pytest.raises(GenerationError, match="overloaded"):
        asyncio.run(generator.complete_json("s", "u", 32))

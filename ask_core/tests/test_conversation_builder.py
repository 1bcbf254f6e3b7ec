import pytest

from ask_core.agents.conversation_builder import ConversationBuilder
from ask_core.providers.tool_calls import InlineMarkupToolCalls, StructuredToolCalls
from ask_core.tools.definitions import ToolCall, ToolResult


def test_initial_conversation_is_system_then_user():
    msgs = ConversationBuilder("sys").build_initial("1+1?")
    assert [(m.role, m.content) for m in msgs] == [("system", "sys"), ("user", "1+1?")]


def test_followup_structured_echoes_tool_calls_verbatim():
    raw = (
        {"id": "a", "type": "function", "function": {"name": "calc", "arguments": '{"expr": "1+1"}'}},
        {"id": "b", "type": "function", "function": {"name": "search_web", "arguments": '{"query": "x"}'}},
    )
    decision = StructuredToolCalls(
        content="",
        raw_tool_calls=raw,
        calls=(
            ToolCall(id="a", name="calc", arguments={"expr": "1+1"}),
            ToolCall(id="b", name="search_web", arguments={"query": "x"}),
        ),
    )
    results = [ToolResult(call_id="a", name="calc", content="2.0"), ToolResult(call_id="b", name="search_web", content="r")]
    msgs = ConversationBuilder("sys").build_followup(decision, "q", results)

    payloads = [m.to_payload() for m in msgs]
    assert payloads[0] == {"role": "system", "content": "sys"}
    assert payloads[1] == {"role": "user", "content": "q"}
    assert payloads[2] == {"role": "assistant", "tool_calls": list(raw)}
    assert payloads[3] == {"role": "tool", "content": "2.0", "tool_call_id": "a", "name": "calc"}
    assert payloads[4] == {"role": "tool", "content": "r", "tool_call_id": "b", "name": "search_web"}


def test_followup_inline_echoes_markup():
    markup = '<｜DSML｜invoke name="calc"><｜DSML｜parameter name="expr">3*3</｜DSML｜parameter></｜DSML｜invoke>'
    decision = InlineMarkupToolCalls(
        markup=markup,
        calls=(ToolCall(id="dsml-tool-call-0", name="calc", arguments={"expr": "3*3"}),),
    )
    msgs = ConversationBuilder("sys").build_followup(
        decision, "q", [ToolResult(call_id="dsml-tool-call-0", name="calc", content="9.0")]
    )
    assert msgs[2].role == "assistant"
    assert msgs[2].content == markup
    assert msgs[2].tool_calls is None
    assert msgs[3].tool_call_id == "dsml-tool-call-0"
    assert len(msgs) == 4


def test_followup_rejects_mismatched_results():
    decision = InlineMarkupToolCalls(
        markup="function_calls",
        calls=(ToolCall(id="dsml-tool-call-0", name="calc", arguments={}),),
    )
    with pytest.raises(ValueError):
        ConversationBuilder("sys").build_followup(decision, "q", [])

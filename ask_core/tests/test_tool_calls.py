from ask_core.providers.tool_calls import (
    FinalAnswer,
    InlineMarkupToolCalls,
    StructuredToolCalls,
    detect_tool_calls,
    parse_arguments,
    parse_inline_markup,
)


def _response(message):
    return {"choices": [{"index": 0, "message": message, "finish_reason": "stop"}]}


DSML = (
    "<｜DSML｜function_calls>\n"
    '<｜DSML｜invoke name="calc">\n'
    '<｜DSML｜parameter name="expr" string="true">3*3</｜DSML｜parameter>\n'
    "</｜DSML｜invoke>\n"
    '<｜DSML｜invoke name="search_web">\n'
    '<｜DSML｜parameter name="query" string="true">  北京 天气\n</｜DSML｜parameter>\n'
    "</｜DSML｜invoke>\n"
    "</｜DSML｜function_calls>"
)


def test_plain_answer_is_final():
    decision = detect_tool_calls(_response({"role": "assistant", "content": "你好"}))
    assert decision == FinalAnswer(content="你好")


def test_empty_or_odd_response_is_final():
    assert detect_tool_calls({}) == FinalAnswer(content="")
    assert detect_tool_calls({"choices": []}) == FinalAnswer(content="")
    assert detect_tool_calls(_response({"role": "assistant", "content": None, "tool_calls": []})) == FinalAnswer(
        content=""
    )


def test_structured_tool_calls_keep_order_and_ids():
    tool_calls = [
        {"id": "call_a", "type": "function", "function": {"name": "search_web", "arguments": '{"query": "今天新闻"}'}},
        {"id": "call_b", "type": "function", "function": {"name": "calc", "arguments": '{"expr": "1+2"}'}},
    ]
    decision = detect_tool_calls(_response({"role": "assistant", "content": None, "tool_calls": tool_calls}))

    assert isinstance(decision, StructuredToolCalls)
    assert [c.id for c in decision.calls] == ["call_a", "call_b"]
    assert [c.name for c in decision.calls] == ["search_web", "calc"]
    assert decision.calls[0].arguments == {"query": "今天新闻"}
    assert list(decision.raw_tool_calls) == tool_calls


def test_structured_missing_id_is_synthesized_in_both_views():
    tool_calls = [{"function": {"name": "calc", "arguments": '{"expr": "2"}'}}]
    decision = detect_tool_calls(_response({"role": "assistant", "tool_calls": tool_calls}))
    assert decision.calls[0].id == "tool_call_0"
    assert decision.raw_tool_calls[0]["id"] == "tool_call_0"
    assert "id" not in tool_calls[0]


def test_structured_wins_over_inline_markers():
    message = {
        "role": "assistant",
        "content": "function_calls",
        "tool_calls": [{"id": "x", "function": {"name": "calc", "arguments": "{}"}}],
    }
    assert isinstance(detect_tool_calls(_response(message)), StructuredToolCalls)


def test_inline_markup_single_invoke():
    markup = '<｜DSML｜invoke name="calc"><｜DSML｜parameter name="expr">3*3</｜DSML｜parameter></｜DSML｜invoke>'
    decision = detect_tool_calls(_response({"role": "assistant", "content": markup}))

    assert isinstance(decision, InlineMarkupToolCalls)
    assert decision.markup == markup
    assert len(decision.calls) == 1
    call = decision.calls[0]
    assert call.name == "calc"
    assert call.arguments == {"expr": "3*3"}
    assert call.id == "dsml-tool-call-0"


def test_inline_markup_with_wrapper_and_decorators():
    calls = parse_inline_markup(DSML)
    assert [c.name for c in calls] == ["calc", "search_web"]
    assert [c.id for c in calls] == ["dsml-tool-call-0", "dsml-tool-call-1"]
    assert calls[0].arguments == {"expr": "3*3"}
    assert calls[1].arguments == {"query": "北京 天气"}


def test_inline_value_decorator_is_stripped():
    markup = '<｜DSML｜invoke name="calc"><｜DSML｜parameter name="expr">string="true" 1+1</｜DSML｜parameter></｜DSML｜invoke>'
    assert parse_inline_markup(markup)[0].arguments == {"expr": "1+1"}


def test_malformed_inline_markup_degrades_to_no_calls():
    markup = '<｜DSML｜function_calls><｜DSML｜invoke name="calc"><｜DSML｜parameter name="expr">1'
    decision = detect_tool_calls(_response({"role": "assistant", "content": markup}))
    assert isinstance(decision, InlineMarkupToolCalls)
    assert decision.calls == ()
    assert parse_inline_markup("") == []
    assert parse_inline_markup(None) == []


def test_detection_is_idempotent():
    response = _response({"role": "assistant", "content": DSML})
    assert detect_tool_calls(response) == detect_tool_calls(response)


def test_parse_arguments_variants():
    assert parse_arguments('{"expr": "1+1"}') == {"expr": "1+1"}
    assert parse_arguments({"n": 3}) == {"n": "3"}
    assert parse_arguments("") == {}
    assert parse_arguments(None) == {}
    assert parse_arguments("{bad json") == {"_raw": "{bad json"}

import pytest

from ask_core.agents.stream_relay import RelayState, StreamRelay, classify_line
from ask_core.domain.exceptions import ApiError, NetworkError, SinkClosedError
from ask_core.domain.models import StreamIncrement
from ask_core.infrastructure.sink import QueueSink, ResponseChannel


def _run(lines):
    sink = QueueSink()
    channel = ResponseChannel(sink, "s-1")
    StreamRelay("s-1").run(lines, channel)
    return sink, list(sink)


def test_classify_line():
    assert classify_line(": keep-alive").state is RelayState.SKIP
    assert classify_line("").state is RelayState.SKIP
    assert classify_line("data: [DONE]").state is RelayState.TERMINATE
    assert classify_line("data: {not json").state is RelayState.SKIP
    frame = classify_line('data: {"choices": [{"delta": {"content": "hi"}}]}')
    assert frame.state is RelayState.EMIT_DELTA
    assert frame.delta == "hi"
    frame = classify_line('data: {"choices": [{"delta": {"content": "end"}, "finish_reason": "stop"}]}')
    assert (frame.state, frame.delta) == (RelayState.TERMINATE, "end")
    frame = classify_line('data: {"error": {"message": "quota"}}')
    assert (frame.state, frame.final_delta) == (RelayState.TERMINATE, "模型错误: quota")
    assert classify_line('data: {"choices": [{"delta": {"role": "assistant"}}]}').state is RelayState.SKIP


def test_relay_forwards_deltas_then_single_terminal_on_done():
    sink, out = _run(
        [
            'data: {"choices": [{"delta": {"content": "你"}}]}',
            "",
            'data: {"choices": [{"delta": {"content": "好"}}]}',
            "data: [DONE]",
            'data: {"choices": [{"delta": {"content": "ignored"}}]}',
        ]
    )
    assert out == [
        StreamIncrement("你", False),
        StreamIncrement("好", False),
        StreamIncrement("", True),
    ]
    assert sink.closed
    with pytest.raises(SinkClosedError):
        sink.send(StreamIncrement("late", False))


def test_relay_stop_forwards_trailing_delta():
    _, out = _run(
        [
            'data: {"choices": [{"delta": {"content": "a"}}]}',
            'data: {"choices": [{"delta": {"content": "b"}, "finish_reason": "stop"}]}',
            "data: [DONE]",
        ]
    )
    assert out == [StreamIncrement("a"), StreamIncrement("b"), StreamIncrement("", True)]


def test_relay_error_frame_is_terminal_diagnostic():
    _, out = _run(
        [
            'data: {"choices": [{"delta": {"content": "a"}}]}',
            'data: {"error": {"message": "overloaded"}}',
        ]
    )
    assert out == [StreamIncrement("a"), StreamIncrement("模型错误: overloaded", True)]


def test_relay_skips_malformed_frames_and_terminates_at_eof():
    _, out = _run(["event: ping", "data: {oops", 'data: {"choices": [{"delta": {"content": "x"}}]}'])
    assert out == [StreamIncrement("x"), StreamIncrement("", True)]


def test_relay_open_failure_single_diagnostic():
    def failing():
        raise ApiError(code="API_ERROR", message="busy", http_status=503)
        yield  # pragma: no cover

    _, out = _run(failing())
    assert out == [StreamIncrement("模型响应失败: 503", True)]

    def unreachable():
        raise NetworkError(code="NETWORK_ERROR", message="refused")
        yield  # pragma: no cover

    _, out = _run(unreachable())
    assert out == [StreamIncrement("服务异常", True)]


def test_relay_closes_upstream_when_finishing_early():
    closed = []

    def upstream():
        try:
            yield 'data: {"choices": [{"delta": {"content": "a"}, "finish_reason": "stop"}]}'
            yield 'data: {"choices": [{"delta": {"content": "never"}}]}'
        finally:
            closed.append(True)

    _, out = _run(upstream())
    assert out == [StreamIncrement("a"), StreamIncrement("", True)]
    assert closed == [True]


def test_relay_stops_when_client_gone():
    sink = QueueSink()
    channel = ResponseChannel(sink, "s-2")
    sink.cancel()
    with pytest.raises(SinkClosedError):
        StreamRelay("s-2").run(['data: {"choices": [{"delta": {"content": "a"}}]}'], channel)
    assert channel.abandoned

"""流式转发：把上游 SSE 原始行转换为统一的 StreamIncrement。

每一行按如下规则分类（AWAIT_FRAME -> EMIT_DELTA / SKIP / TERMINATE）：

- 非 "data:" 开头的行：SKIP。
- "data: [DONE]"：TERMINATE。
- 携带 error 对象：TERMINATE，终止增量携带 "模型错误: <message>"。
- 携带 delta.content：EMIT_DELTA，转发为非终止增量。
- finish_reason == "stop"：转发末尾 delta 后 TERMINATE。
- 无法解析的 JSON：记录日志后 SKIP。

TERMINATE 时恰好发送一个终止增量并关闭输出通道；
上游打开失败或返回非成功状态时只发送一个终止诊断增量。
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable

from ask_core.domain.exceptions import ApiError, RateLimitError, TransportError
from ask_core.infrastructure.logging.logger import logger
from ask_core.infrastructure.sink import SERVICE_ERROR_TEXT, ResponseChannel


DONE_SENTINEL = "[DONE]"


class RelayState(Enum):
    AWAIT_FRAME = "await_frame"
    EMIT_DELTA = "emit_delta"
    SKIP = "skip"
    TERMINATE = "terminate"


@dataclass(frozen=True)
class RelayFrame:
    """单行的分类结果。

    - delta: 需要以非终止增量转发的内容。
    - final_delta: 进入 TERMINATE 时终止增量携带的内容。
    """

    state: RelayState
    delta: str = ""
    final_delta: str = ""


_SKIP = RelayFrame(RelayState.SKIP)


def classify_line(line: str) -> RelayFrame:
    if not line or not line.startswith("data:"):
        return _SKIP
    data = line[len("data:"):].strip()
    if data == DONE_SENTINEL:
        return RelayFrame(RelayState.TERMINATE)
    try:
        chunk = json.loads(data)
    except json.JSONDecodeError as exc:
        logger.warning("Error processing SSE chunk", extra={"extra": {"line": line, "error": str(exc)}})
        return _SKIP
    if not isinstance(chunk, dict):
        return _SKIP

    error = chunk.get("error")
    if error is not None:
        message = error.get("message", "") if isinstance(error, dict) else str(error)
        return RelayFrame(RelayState.TERMINATE, final_delta=f"模型错误: {message}")

    choices = chunk.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return _SKIP
    choice: Dict[str, Any] = choices[0]
    delta = choice.get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    text = content if isinstance(content, str) else ""
    if choice.get("finish_reason") == "stop":
        return RelayFrame(RelayState.TERMINATE, delta=text)
    if text:
        return RelayFrame(RelayState.EMIT_DELTA, delta=text)
    return _SKIP


class StreamRelay:
    """消费上游原始行，向 ResponseChannel 推送增量。"""

    def __init__(self, session_id: str):
        self._session_id = session_id

    def run(self, lines: Iterable[str], channel: ResponseChannel) -> None:
        iterator = iter(lines)
        try:
            for line in iterator:
                frame = classify_line(line)
                if frame.delta:
                    channel.emit(frame.delta)
                if frame.state is RelayState.TERMINATE:
                    self._log("Received finish signal", final_delta=frame.final_delta)
                    channel.finish(frame.final_delta)
                    return
            self._log("Upstream stream ended without finish signal")
            channel.finish("")
        except (ApiError, RateLimitError) as exc:
            logger.error(
                "Model stream failed",
                extra={"extra": {"session_id": self._session_id, "status": exc.http_status, "error": exc.message}},
            )
            channel.finish(f"模型响应失败: {exc.http_status}")
        except TransportError as exc:
            logger.error(
                "Model stream failed",
                extra={"extra": {"session_id": self._session_id, "code": exc.code, "error": exc.message}},
            )
            channel.finish(SERVICE_ERROR_TEXT)
        finally:
            close = getattr(iterator, "close", None)
            if close is not None:
                close()

    def _log(self, message: str, **fields: Any) -> None:
        payload = {"session_id": self._session_id}
        payload.update(fields)
        logger.info(message, extra={"extra": payload})

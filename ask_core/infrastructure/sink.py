"""客户端输出通道。

OutputSink 是一条长生命周期、不设超时的推送通道：核心不断写入 StreamIncrement，
在写入 finish=True 的增量后关闭。QueueSink 用线程安全队列实现，
工作线程写入、HTTP 层（或调用方）在另一线程中迭代读取。

ResponseChannel 包装 sink，作为单次请求唯一的收尾点：无论成功、
工具异常、上游异常还是客户端断开，退出 with 块时 sink 都恰好被终止一次。
"""

import queue
import threading
from types import TracebackType
from typing import Iterator, Optional, Protocol, Type

from ask_core.domain.exceptions import SinkClosedError
from ask_core.domain.models import StreamIncrement
from ask_core.infrastructure.logging.logger import logger


SERVICE_ERROR_TEXT = "服务异常"


class OutputSink(Protocol):
    """客户端输出通道协议。"""

    @property
    def closed(self) -> bool:
        ...

    def send(self, increment: StreamIncrement) -> None:
        """写入一个增量；通道关闭或客户端已断开时抛出 SinkClosedError。"""

        ...

    def close(self) -> None:
        ...


_CLOSE = object()


class QueueSink:
    """基于 queue.Queue 的输出通道，可直接迭代读取增量。"""

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._cancelled = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def send(self, increment: StreamIncrement) -> None:
        with self._lock:
            if self._cancelled:
                raise SinkClosedError(code="CLIENT_GONE", message="client disconnected")
            if self._closed:
                raise SinkClosedError(code="SINK_CLOSED", message="sink already closed")
            self._queue.put(increment)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSE)

    def cancel(self) -> None:
        """读取方（客户端）断开时调用，之后的写入都会失败。"""

        with self._lock:
            self._cancelled = True
        self.close()

    def __iter__(self) -> Iterator[StreamIncrement]:
        while True:
            item = self._queue.get()
            if item is _CLOSE:
                return
            yield item  # type: ignore[misc]


class ResponseChannel:
    """单次请求的输出收尾点。

    - emit: 发送非终止增量。
    - finish: 发送唯一的终止增量并关闭 sink。
    - 作为上下文管理器使用时，退出时若尚未终止则补发终止增量：
      正常退出补发空 delta，异常退出补发 "服务异常"。
    """

    def __init__(self, sink: OutputSink, session_id: str):
        self._sink = sink
        self._session_id = session_id
        self.finished = False
        self.abandoned = False

    @property
    def is_open(self) -> bool:
        return not (self.finished or self.abandoned or self._sink.closed)

    def emit(self, delta: str) -> None:
        self._send(StreamIncrement(delta=delta, finish=False))

    def finish(self, delta: str = "") -> None:
        if self.finished or self.abandoned:
            return
        self.finished = True
        try:
            self._send(StreamIncrement(delta=delta, finish=True))
        finally:
            self._sink.close()

    def _send(self, increment: StreamIncrement) -> None:
        if self.abandoned:
            raise SinkClosedError(code="CLIENT_GONE", message="exchange abandoned")
        try:
            self._sink.send(increment)
        except SinkClosedError as exc:
            self._abandon(exc)
            raise
        except Exception as exc:
            self._abandon(exc)
            raise SinkClosedError(code="SINK_WRITE_FAILED", message=str(exc)) from exc

    def _abandon(self, exc: Exception) -> None:
        self.abandoned = True
        logger.error(
            "Send chunk failed",
            extra={"extra": {"session_id": self._session_id, "error": str(exc)}},
        )
        self._sink.close()

    def __enter__(self) -> "ResponseChannel":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        if exc_type is not None and issubclass(exc_type, SinkClosedError):
            return True
        if exc is not None:
            logger.error(
                "LLM streaming failed",
                exc_info=(exc_type, exc, tb),
                extra={"extra": {"session_id": self._session_id, "error": str(exc)}},
            )
        try:
            self.finish(SERVICE_ERROR_TEXT if exc is not None else "")
        except SinkClosedError:
            pass
        return exc is not None and issubclass(exc_type, Exception)

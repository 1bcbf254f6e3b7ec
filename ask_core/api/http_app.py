"""HTTP 接入层（FastAPI）。

- POST /api/ask：以 text/event-stream 返回增量，每条为 `data: {"delta": ..., "finish": ...}`。
- GET /api/health：健康检查。

本层只负责路由、参数校验与开始流式输出之前的异常转换，编排逻辑都在 api.service 中。
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from ask_core.api import service
from ask_core.domain.models import StreamIncrement
from ask_core.infrastructure.http import close_http_client
from ask_core.infrastructure.logging.logger import logger


class AskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(min_length=1, description="用户问题")
    session_id: str = Field(default="", alias="sessionId", description="会话ID，仅用于日志关联")


class Result(BaseModel):
    code: int = 0
    message: str = "ok"
    data: Optional[Any] = None

    @classmethod
    def ok(cls, data: Any) -> "Result":
        return cls(code=0, message="ok", data=data)

    @classmethod
    def error(cls, message: str, code: int = 500) -> "Result":
        return cls(code=code, message=message, data=None)


def _sse_format(increment: StreamIncrement) -> str:
    return f"data: {json.dumps(increment.to_dict(), ensure_ascii=False)}\n\n"


def _event_stream(increments: Iterator[StreamIncrement]) -> Iterator[str]:
    for increment in increments:
        yield _sse_format(increment)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    # 进程退出时释放共享连接池
    close_http_client()
    logger.info("HTTP client pool closed")


app = FastAPI(title="ask_core", lifespan=lifespan)


@app.exception_handler(Exception)
async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"extra": {"path": request.url.path, "error": str(exc)}},
    )
    return JSONResponse(status_code=500, content=Result.error("服务异常，请稍后重试").model_dump())


@app.post("/api/ask")
def ask(request: AskRequest) -> StreamingResponse:
    increments = service.ask(request.question, request.session_id)
    return StreamingResponse(
        _event_stream(increments),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@app.get("/api/health")
def health() -> Result:
    return Result.ok("ok")

"""问答编排核心模块。

一次请求最多两轮模型调用：

1. 携带工具定义的非流式调用，判断模型是否请求工具。
2. 若请求了工具：按模型给出的顺序逐个执行，把结果拼进后续消息，
   以流式方式获取最终答案并转发给客户端；否则直接把首轮答案作为唯一终止增量发送。
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence
from uuid import uuid4

from ask_core.agents.conversation_builder import ConversationBuilder
from ask_core.agents.stream_relay import StreamRelay
from ask_core.domain.exceptions import ApiError, RateLimitError, TransportError
from ask_core.domain.models import AskContext
from ask_core.infrastructure.logging.logger import logger
from ask_core.infrastructure.sink import SERVICE_ERROR_TEXT, ResponseChannel
from ask_core.providers.base import ModelGateway
from ask_core.providers.tool_calls import FinalAnswer, detect_tool_calls
from ask_core.tools.definitions import ToolDef, ToolResult
from ask_core.tools.executor import ToolExecutor


@dataclass(frozen=True)
class EngineConfig:
    system_prompt: str
    direct_calc_prefix: str = ""


class AskEngine:
    """无状态编排器，可被多个请求线程同时使用；请求级状态都在 AskContext 中。"""

    def __init__(
        self,
        gateway: ModelGateway,
        tool_executor: ToolExecutor,
        tool_defs: Sequence[ToolDef],
        config: EngineConfig,
    ):
        self._gateway = gateway
        self._tool_executor = tool_executor
        self._tool_defs = tuple(tool_defs)
        self._config = config
        self._builder = ConversationBuilder(config.system_prompt)

    def handle(self, ctx: AskContext, channel: ResponseChannel) -> None:
        """处理一次问答，把增量推送到 channel。

        TransportError 在这里转换为终止诊断增量；其他异常交给
        channel 的上下文管理器统一收尾。
        """

        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "session_id": ctx.session_id,
        }
        self._log(logging.INFO, "LLM request start", log_ctx)

        prefix = self._config.direct_calc_prefix
        if prefix and ctx.question.startswith(prefix):
            expr = ctx.question[len(prefix):].strip()
            result = self._tool_executor.run("calc", {"expr": expr})
            self._log(logging.INFO, "Direct calc", log_ctx, expr=expr, result=result)
            channel.finish(result)
            return

        try:
            self._run_rounds(ctx, channel, log_ctx)
        except (ApiError, RateLimitError) as exc:
            self._log(logging.ERROR, "Model request failed", log_ctx, status=exc.http_status, error=exc.message)
            channel.finish(f"模型响应失败: {exc.http_status}")
        except TransportError as exc:
            self._log(logging.ERROR, "Model request failed", log_ctx, code=exc.code, error=exc.message)
            channel.finish(SERVICE_ERROR_TEXT)

    def _run_rounds(self, ctx: AskContext, channel: ResponseChannel, log_ctx: Dict[str, Any]) -> None:
        conversation = self._builder.build_initial(ctx.question)
        response = self._gateway.call_for_decision(conversation, self._tool_defs)
        decision = detect_tool_calls(response)

        if isinstance(decision, FinalAnswer):
            self._log(logging.INFO, "No tool calls, answering directly", log_ctx)
            channel.finish(decision.content)
            return

        self._log(
            logging.INFO,
            "Tool calls detected",
            log_ctx,
            format=type(decision).__name__,
            count=len(decision.calls),
        )
        # 顺序执行，tool 消息必须与调用顺序一致
        results: List[ToolResult] = []
        for call in decision.calls:
            result = self._tool_executor.execute(call)
            self._log(
                logging.INFO,
                "Tool execution result",
                log_ctx,
                tool=call.name,
                call_id=call.id,
                result=result.content,
            )
            results.append(result)

        if not channel.is_open:
            self._log(logging.WARNING, "Client gone before final answer, abandoning", log_ctx)
            return

        followup = self._builder.build_followup(decision, ctx.question, results)
        StreamRelay(ctx.session_id).run(self._gateway.call_streaming(followup), channel)

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})

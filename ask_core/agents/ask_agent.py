"""问答 Agent 的对外包装。

每个请求在独立线程中运行编排流程，慢请求或长时间流式输出不会阻塞其他请求；
输出通道在线程函数退出时由 ResponseChannel 统一收尾。
"""

import threading
from typing import Iterator, List, Optional

import httpx

from ask_core.agents.ask_engine import AskEngine, EngineConfig
from ask_core.config.settings import Settings, settings as default_settings
from ask_core.domain.models import AskContext, StreamIncrement
from ask_core.infrastructure.http import build_http_client, get_http_client
from ask_core.infrastructure.logging.logger import logger
from ask_core.infrastructure.sink import OutputSink, QueueSink, ResponseChannel
from ask_core.prompts import load_system_prompt
from ask_core.providers import create_gateway
from ask_core.providers.base import ModelGateway
from ask_core.tools.definitions import ToolDef
from ask_core.tools.executor import ToolExecutor, default_tool_defs, default_tools


class AskAgent:
    """问答 Agent 的便捷包装类。"""

    def __init__(
        self,
        gateway: ModelGateway,
        tool_executor: ToolExecutor,
        tool_defs: Optional[List[ToolDef]] = None,
        system_prompt: str = "",
        direct_calc_prefix: str = "",
    ):
        """初始化问答 Agent。

        Args:
            gateway: 模型网关
            tool_executor: 工具执行器
            tool_defs: 暴露给模型的工具定义，默认为 search_web 与 calc
            system_prompt: 系统提示词
            direct_calc_prefix: 直接计算前缀，为空表示关闭
        """
        self._engine = AskEngine(
            gateway=gateway,
            tool_executor=tool_executor,
            tool_defs=tool_defs if tool_defs is not None else default_tool_defs(),
            config=EngineConfig(system_prompt=system_prompt, direct_calc_prefix=direct_calc_prefix),
        )

    @classmethod
    def from_settings(
        cls,
        cfg: Optional[Settings] = None,
        http: Optional[httpx.Client] = None,
    ) -> "AskAgent":
        if http is None:
            # 自定义配置使用独立连接池，超时与池大小按该配置生效
            http = build_http_client(cfg) if cfg is not None else get_http_client()
        cfg = cfg or default_settings
        return cls(
            gateway=create_gateway(cfg, http),
            tool_executor=ToolExecutor(default_tools(http, cfg)),
            system_prompt=load_system_prompt(cfg),
            direct_calc_prefix=cfg.direct_calc_prefix,
        )

    def answer(self, question: str, session_id: str, sink: OutputSink) -> None:
        """在当前线程中完成一次问答，返回时 sink 一定已被终止。"""

        with ResponseChannel(sink, session_id) as channel:
            self._engine.handle(AskContext(question=question, session_id=session_id), channel)

    def stream_answer(self, question: str, session_id: str, sink: OutputSink) -> threading.Thread:
        """在新线程中处理问答，立即返回该线程。"""

        worker = threading.Thread(
            target=self.answer,
            args=(question, session_id, sink),
            name=f"ask-{session_id}",
            daemon=True,
        )
        worker.start()
        return worker

    def ask(self, question: str, session_id: str) -> Iterator[StreamIncrement]:
        """以迭代器形式返回增量；调用方提前停止迭代视为客户端断开。"""

        sink = QueueSink()
        self.stream_answer(question, session_id, sink)
        finished = False
        try:
            for increment in sink:
                finished = increment.finish
                yield increment
        finally:
            if not finished:
                logger.info("Client disconnected", extra={"extra": {"session_id": session_id}})
                sink.cancel()

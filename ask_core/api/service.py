"""对外 API 服务模块。

提供简化的函数接口供上层应用（HTTP 层、脚本）调用。
"""

import threading
from typing import Iterator, Optional

from ask_core.agents.ask_agent import AskAgent
from ask_core.domain.models import StreamIncrement
from ask_core.infrastructure.logging.logger import logger
from ask_core.infrastructure.sink import OutputSink


_agent: Optional[AskAgent] = None
_agent_lock = threading.Lock()


def get_default_agent() -> AskAgent:
    """获取默认的问答 Agent 实例（单例，只持有不可变配置与共享连接池）。"""
    global _agent
    with _agent_lock:
        if _agent is None:
            _agent = AskAgent.from_settings()
        return _agent


def set_default_agent(agent: Optional[AskAgent]) -> None:
    """替换默认 Agent，主要用于测试。"""
    global _agent
    with _agent_lock:
        _agent = agent


def ask(question: str, session_id: str) -> Iterator[StreamIncrement]:
    """回答用户问题，逐个返回增量，最后一个增量 finish=True。

    Args:
        question: 用户问题
        session_id: 会话ID，仅用于日志关联
    """
    logger.info("Incoming ask request", extra={"extra": {"session_id": session_id}})
    return get_default_agent().ask(question, session_id)


def stream_answer(question: str, session_id: str, sink: OutputSink) -> threading.Thread:
    """推送式接口：在后台线程中回答问题并写入 sink。"""
    logger.info("Incoming ask request", extra={"extra": {"session_id": session_id}})
    return get_default_agent().stream_answer(question, session_id, sink)

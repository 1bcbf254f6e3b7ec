"""ask_core 顶层包。

该包实现“带工具调用的流式问答”核心：
向模型发送问题与工具定义，识别两种格式的工具调用，执行工具后
发起后续流式调用，并把上游增量转换为统一的 {delta, finish} 事件推送给客户端。
"""

from ask_core.api.service import ask, stream_answer

__all__ = ["ask", "stream_answer"]

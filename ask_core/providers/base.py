"""模型网关抽象接口。

编排层不直接依赖具体厂商的 HTTP 细节，而是依赖此协议：

- call_for_decision: 非流式调用，携带工具定义，返回完整解析后的响应 JSON。
- call_streaming: 流式调用，返回上游原始行的惰性序列，交给 StreamRelay 消费。

这样可以在不改编排代码的前提下替换传输实现（测试中即用假网关）。
"""

from typing import Any, Dict, Iterator, Protocol, Sequence

from ask_core.domain.models import ChatMessage
from ask_core.tools.definitions import ToolDef


class ModelGateway(Protocol):
    """LLM chat/completions 网关协议。"""

    name: str

    def call_for_decision(
        self, conversation: Sequence[ChatMessage], tools: Sequence[ToolDef]
    ) -> Dict[str, Any]:
        ...

    def call_streaming(self, conversation: Sequence[ChatMessage]) -> Iterator[str]:
        """打开流式响应，逐行产出上游原始帧；有限且不可重启。"""

        ...

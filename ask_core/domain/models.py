"""统一的对话与流式结果数据模型。

本模块定义了编排层、Provider 网关与工具层之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant/tool）。
- StreamIncrement: 推送给客户端的唯一数据单元。

Provider 网关负责把 ChatMessage 序列转换成各家 API 的 JSON 请求体。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional


# LLM 消息角色类型（与 OpenAI / DeepSeek 等厂商的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class ChatMessage:
    """一条对话消息。

    - role: 消息角色。
    - content: 纯文本内容；结构化工具调用的 assistant 消息可以为空。
    - tool_calls: 结构化格式下模型返回的原始 tool_calls 列表，原样回传给模型。
    - tool_call_id: role 为 "tool" 时关联的工具调用 ID。
    - name: role 为 "tool" 时对应的工具名称。
    """

    role: Role
    content: str = ""
    tool_calls: Optional[List[Dict[str, Any]]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": self.role}
        if self.content or not self.tool_calls:
            payload["content"] = self.content
        if self.tool_calls:
            payload["tool_calls"] = self.tool_calls
        if self.tool_call_id is not None:
            payload["tool_call_id"] = self.tool_call_id
        if self.name is not None:
            payload["name"] = self.name
        return payload


# 发给模型的有序消息序列，顺序有语义
Conversation = List[ChatMessage]


@dataclass(frozen=True)
class StreamIncrement:
    """推送给客户端的增量。

    整个问答过程中有且只有一个 finish=True 的增量，它可以携带空 delta。
    """

    delta: str
    finish: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"delta": self.delta, "finish": self.finish}


@dataclass
class AskContext:
    """单次请求的上下文，按值在编排流程中传递，不跨请求共享。"""

    question: str
    session_id: str

"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具列表暴露给 LLM（ToolDef / ToolParam）。
- 在编排层中保存和执行模型触发的工具调用（ToolCall / ToolResult）。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class ToolParam:
    """单个工具参数的定义。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any] = field(default_factory=lambda: {"type": "string"})


@dataclass(frozen=True)
class ToolDef:
    """一个可供 LLM 调用的工具定义，进程内只定义一次。"""

    name: str
    description: str
    params: Dict[str, ToolParam]

    def to_schema(self) -> Dict[str, Any]:
        """转成 chat/completions 的 function tool 描述。"""

        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in self.params.items():
            schema = dict(param.schema or {"type": "string"})
            if param.description:
                schema["description"] = param.description
            properties[name] = schema
            if param.required:
                required.append(name)
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            },
        }


@dataclass(frozen=True)
class ToolCall:
    """模型发起的一次工具调用请求。

    内联标记格式没有调用 ID，由解析器合成 "dsml-tool-call-<index>"。
    """

    id: str
    name: str
    arguments: Dict[str, str]


@dataclass(frozen=True)
class ToolResult:
    """工具执行结果的封装（总是文本，失败时为哨兵文本）。"""

    call_id: str
    name: str
    content: str

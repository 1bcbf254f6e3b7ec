"""工具调用格式识别与归一化。

模型在第一轮响应中可能用两种互不兼容的方式请求工具：

- 结构化格式：message.tool_calls 数组，arguments 为 JSON 文本。
- 内联标记格式（DSML）：工具调用以标记文本的形式写在 message.content 中，例如::

    <｜DSML｜function_calls>
    <｜DSML｜invoke name="calc">
    <｜DSML｜parameter name="expr" string="true">3*3</｜DSML｜parameter>
    </｜DSML｜invoke>
    </｜DSML｜function_calls>

detect_tool_calls 把响应归一化为 FinalAnswer / StructuredToolCalls /
InlineMarkupToolCalls 三者之一，下游只依赖统一的 ToolCall 列表。
解析是纯函数，同一响应重复解析得到相同结果。
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from ask_core.infrastructure.logging.logger import logger
from ask_core.tools.definitions import ToolCall


INLINE_MARKERS = ("function_calls", "<｜DSML｜invoke")
INLINE_ID_PREFIX = "dsml-tool-call-"

_WRAPPER_OPEN = re.compile(r"<｜DSML｜function_calls>\s*")
_WRAPPER_CLOSE = re.compile(r"\s*</｜DSML｜function_calls>")
_INVOKE = re.compile(
    r'<｜DSML｜invoke\s+name="([^"]+)"[^>]*>(.*?)</｜DSML｜invoke>',
    re.DOTALL,
)
_PARAMETER = re.compile(
    r'<｜DSML｜parameter\s+name="([^"]+)"[^>]*>(.*?)</｜DSML｜parameter>',
    re.DOTALL,
)
_DECORATOR = re.compile(r'string="true"\s*')


@dataclass(frozen=True)
class FinalAnswer:
    """模型没有请求工具，content 即最终答案。"""

    content: str


@dataclass(frozen=True)
class StructuredToolCalls:
    """结构化格式；raw_tool_calls 会原样作为 assistant 消息回传给模型。"""

    content: str
    raw_tool_calls: Tuple[Dict[str, Any], ...]
    calls: Tuple[ToolCall, ...]


@dataclass(frozen=True)
class InlineMarkupToolCalls:
    """内联标记格式；markup 为模型输出的原始标记文本，需要原样回传。"""

    markup: str
    calls: Tuple[ToolCall, ...]


ToolCallDecision = Union[FinalAnswer, StructuredToolCalls, InlineMarkupToolCalls]


def _first_message(response: Dict[str, Any]) -> Dict[str, Any]:
    choices = response.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    message = choices[0].get("message")
    return message if isinstance(message, dict) else {}


def detect_tool_calls(response: Dict[str, Any]) -> ToolCallDecision:
    """识别第一轮响应使用的工具调用格式。"""

    message = _first_message(response)
    raw_content = message.get("content")
    content = raw_content if isinstance(raw_content, str) else ""

    tool_calls = message.get("tool_calls")
    if isinstance(tool_calls, list) and tool_calls:
        raw_calls, calls = _normalize_structured(tool_calls)
        return StructuredToolCalls(content=content, raw_tool_calls=raw_calls, calls=calls)

    if content and any(marker in content for marker in INLINE_MARKERS):
        return InlineMarkupToolCalls(markup=content, calls=tuple(parse_inline_markup(content)))

    return FinalAnswer(content=content)


def _normalize_structured(
    tool_calls: List[Any],
) -> Tuple[Tuple[Dict[str, Any], ...], Tuple[ToolCall, ...]]:
    raw_calls: List[Dict[str, Any]] = []
    calls: List[ToolCall] = []
    for idx, call in enumerate(tool_calls):
        if not isinstance(call, dict):
            continue
        # 缺失 id 时补齐，保证回传的 assistant 消息与 tool 消息能对应上
        call_id = call.get("id") or f"tool_call_{idx}"
        raw = dict(call)
        raw["id"] = call_id
        func = call.get("function") or {}
        calls.append(
            ToolCall(
                id=str(call_id),
                name=str(func.get("name") or call.get("name") or ""),
                arguments=parse_arguments(func.get("arguments")),
            )
        )
        raw_calls.append(raw)
    return tuple(raw_calls), tuple(calls)


def parse_arguments(raw: Any) -> Dict[str, str]:
    """解析结构化格式的 arguments 字段，统一成 str -> str 映射。

    arguments 一般是 JSON 字符串；解析失败时保留原文到 `_raw`，避免信息丢失。
    """

    if isinstance(raw, str):
        try:
            raw = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            return {"_raw": raw}
    if not isinstance(raw, dict):
        return {} if raw is None else {"_raw": json.dumps(raw, ensure_ascii=False)}
    return {str(k): v if isinstance(v, str) else json.dumps(v, ensure_ascii=False) for k, v in raw.items()}


def parse_inline_markup(markup: Optional[str]) -> List[ToolCall]:
    """宽松解析内联标记，格式不合法时返回空列表而不是抛出异常。"""

    if not markup:
        return []
    cleaned = _WRAPPER_CLOSE.sub("", _WRAPPER_OPEN.sub("", markup))
    calls: List[ToolCall] = []
    for index, invoke in enumerate(_INVOKE.finditer(cleaned)):
        name, body = invoke.group(1), invoke.group(2)
        arguments: Dict[str, str] = {}
        for param in _PARAMETER.finditer(body):
            arguments[param.group(1)] = _DECORATOR.sub("", param.group(2)).strip()
        calls.append(ToolCall(id=f"{INLINE_ID_PREFIX}{index}", name=name, arguments=arguments))
    logger.info(
        "Inline markup parsed",
        extra={"extra": {"count": len(calls), "tools": [c.name for c in calls]}},
    )
    return calls

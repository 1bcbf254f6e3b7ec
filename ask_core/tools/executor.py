from typing import Callable, Dict, List, Mapping, Optional

import httpx

from ask_core.config.settings import Settings, settings as default_settings
from ask_core.infrastructure.logging.logger import logger
from .calculator import calc
from .definitions import ToolCall, ToolDef, ToolParam, ToolResult
from .search import WebSearchClient, get_search_profile


ToolFunc = Callable[[Mapping[str, str]], str]

UNKNOWN_TOOL = "未知工具"
TOOL_FAILED = "工具执行失败"


class ToolExecutor:
    """工具名 + 参数 -> 结果文本。

    execute 是全函数：未知工具、工具内部异常都会转换为哨兵文本，
    保证结果总能作为 tool 消息回传给模型。执行器无状态，可被并发调用。
    """

    def __init__(self, tools: Dict[str, ToolFunc]):
        self._tools = dict(tools)

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def register(self, name: str, func: ToolFunc) -> None:
        self._tools[name] = func

    def run(self, name: str, arguments: Mapping[str, str]) -> str:
        func = self._tools.get(name)
        if func is None:
            logger.warning("Unknown tool", extra={"extra": {"tool": name}})
            return UNKNOWN_TOOL
        try:
            return str(func(arguments))
        except Exception as exc:
            logger.exception(
                "Tool execution failed",
                extra={"extra": {"tool": name, "arguments": dict(arguments), "error": str(exc)}},
            )
            return TOOL_FAILED

    def execute(self, call: ToolCall) -> ToolResult:
        content = self.run(call.name, call.arguments)
        logger.info(
            "Tool executed",
            extra={"extra": {"tool": call.name, "call_id": call.id, "result": content}},
        )
        return ToolResult(call_id=call.id, name=call.name, content=content)


def _make_calc_tool() -> ToolFunc:
    def _run(args: Mapping[str, str]) -> str:
        return calc(str(args.get("expr") or ""))

    return _run


def _make_search_tool(client: WebSearchClient) -> ToolFunc:
    def _run(args: Mapping[str, str]) -> str:
        return client.search(str(args.get("query") or ""))

    return _run


def default_tools(
    http: httpx.Client,
    cfg: Optional[Settings] = None,
) -> Dict[str, ToolFunc]:
    cfg = cfg or default_settings
    search_client = WebSearchClient(
        http,
        endpoint=cfg.search_endpoint,
        api_key=cfg.search_api_key,
        profile=get_search_profile(cfg.search_provider),
        max_results=cfg.search_max_results,
    )
    return {
        "search_web": _make_search_tool(search_client),
        "calc": _make_calc_tool(),
    }


DEFAULT_TOOL_DEFS: List[ToolDef] = [
    ToolDef(
        name="search_web",
        description="使用搜索引擎获取实时信息",
        params={
            "query": ToolParam(
                name="query",
                description="搜索关键词",
                required=True,
                schema={"type": "string"},
            )
        },
    ),
    ToolDef(
        name="calc",
        description="计算数学表达式",
        params={
            "expr": ToolParam(
                name="expr",
                description="数学表达式",
                required=True,
                schema={"type": "string"},
            )
        },
    ),
]


def default_tool_defs() -> List[ToolDef]:
    return list(DEFAULT_TOOL_DEFS)

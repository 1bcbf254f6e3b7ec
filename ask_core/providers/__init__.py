"""LLM Provider 集成层。

该包下的模块负责：
- 定义模型网关抽象接口 (base)。
- 维护各厂商的请求形态差异 (registry)。
- 提供 OpenAI 兼容的 chat/completions 实现 (chat_client)。
- 识别并归一化两种工具调用格式 (tool_calls)。
"""

from typing import Optional

import httpx

from ask_core.config.settings import Settings, settings
from ask_core.infrastructure.http import get_http_client
from ask_core.providers.base import ModelGateway
from ask_core.providers.chat_client import ChatCompletionsClient


def create_gateway(cfg: Optional[Settings] = None, http: Optional[httpx.Client] = None) -> ModelGateway:
    """根据配置创建模型网关，默认使用全局配置与共享连接池。"""

    return ChatCompletionsClient(cfg or settings, http or get_http_client())

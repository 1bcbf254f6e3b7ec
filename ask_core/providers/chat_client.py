"""OpenAI 兼容 chat/completions 网关实现。

本模块负责：

1. 接收统一的 ChatMessage 序列与 ToolDef 列表。
2. 按 ProviderProfile 组装请求体（端点路径、辅助参数由 profile 决定）。
3. 通过共享连接池发送请求，并把网络/状态码/解析异常映射为 TransportError 一族。
4. 非流式调用返回完整 JSON；流式调用逐行产出原始帧，由 StreamRelay 负责语义解析。

- URL: {base_url}{profile.chat_path}
- 认证: Authorization: Bearer <api_key>
"""

from typing import Any, Dict, Iterator, Optional, Sequence

import httpx

from ask_core.config.settings import Settings
from ask_core.domain.exceptions import ApiError, NetworkError, ParseError, RateLimitError, ValidationError
from ask_core.domain.models import ChatMessage
from ask_core.infrastructure.logging.logger import logger
from ask_core.providers.registry import ProviderProfile, resolve_provider_profile
from ask_core.tools.definitions import ToolDef


class ChatCompletionsClient:
    """chat/completions 网关客户端。

    - name: Provider profile 名称（供日志使用）。
    - call_for_decision: 携带工具定义的非流式调用。
    - call_streaming: 不带工具定义的流式调用。
    """

    def __init__(
        self,
        cfg: Settings,
        http: httpx.Client,
        profile: Optional[ProviderProfile] = None,
    ):
        self._settings = cfg
        self._http = http
        self._profile = profile or resolve_provider_profile(cfg.base_url, cfg.provider)
        self.name = self._profile.name

    @property
    def url(self) -> str:
        return f"{self._settings.base_url}{self._profile.chat_path}"

    # ---- 非流式 ----

    def call_for_decision(
        self, conversation: Sequence[ChatMessage], tools: Sequence[ToolDef]
    ) -> Dict[str, Any]:
        payload = self._build_payload(conversation, stream=False)
        if tools:
            payload["tools"] = [tool.to_schema() for tool in tools]
            payload["tool_choice"] = "auto"
        logger.info(
            "Model decision request",
            extra={"extra": {"provider": self.name, "url": self.url, "body": payload}},
        )
        try:
            resp = self._http.post(self.url, json=payload, headers=self._headers())
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))
        logger.info(
            "Model decision response",
            extra={"extra": {"provider": self.name, "status": resp.status_code, "body": resp.text}},
        )
        self._raise_for_status(resp.status_code, resp.text)
        try:
            data = resp.json()
        except ValueError as e:
            raise ParseError(code="PARSE_ERROR", message=f"LLM response invalid: {e}")
        if not isinstance(data, dict):
            raise ParseError(code="PARSE_ERROR", message="LLM response invalid: body is not an object")
        return data

    # ---- 流式 ----

    def call_streaming(self, conversation: Sequence[ChatMessage]) -> Iterator[str]:
        payload = self._build_payload(conversation, stream=True)
        logger.info(
            "Model stream request",
            extra={"extra": {"provider": self.name, "url": self.url, "body": payload}},
        )
        try:
            with self._http.stream("POST", self.url, json=payload, headers=self._headers()) as resp:
                logger.info(
                    "Model stream response",
                    extra={"extra": {"provider": self.name, "status": resp.status_code}},
                )
                if resp.status_code < 200 or resp.status_code >= 300:
                    resp.read()
                    self._raise_for_status(resp.status_code, resp.text)
                for line in resp.iter_lines():
                    yield line
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e))

    # ---- 辅助方法 ----

    def _headers(self) -> Dict[str, str]:
        if not self._settings.api_key:
            raise ValidationError(code="MISSING_API_KEY", message="API_KEY not set")
        return {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, conversation: Sequence[ChatMessage], stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self._settings.model,
            "messages": [m.to_payload() for m in conversation],
            "stream": stream,
        }
        return self._profile.apply(payload, streaming=stream)

    def _raise_for_status(self, status: int, body: str) -> None:
        if status == 429:
            raise RateLimitError(code="RATE_LIMIT", message="LLM rate limit", http_status=status)
        if status < 200 or status >= 300:
            raise ApiError(code="API_ERROR", message=body, http_status=status)

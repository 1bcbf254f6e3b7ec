"""search_web 工具：调用外部搜索服务并提取前几条结果摘要。

不同搜索服务的认证方式与返回结构不同，这里用 SearchProfile 描述差异，
解析逻辑只依赖 profile 中的字段路径。
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import httpx

from ask_core.infrastructure.logging.logger import logger


NO_RESULTS = "未检索到结果"
SERVICE_UNAVAILABLE = "搜索服务暂不可用"
SERVICE_ERROR = "搜索服务异常"


@dataclass(frozen=True)
class SearchProfile:
    """某个搜索服务的请求/响应形态。"""

    name: str
    auth_header: str
    auth_prefix: str
    query_param: str
    count_param: str
    items_path: str
    title_key: str
    snippet_key: str
    url_key: str


BING_PROFILE = SearchProfile(
    name="bing",
    auth_header="Ocp-Apim-Subscription-Key",
    auth_prefix="",
    query_param="q",
    count_param="count",
    items_path="webPages.value",
    title_key="name",
    snippet_key="snippet",
    url_key="url",
)

GENERIC_PROFILE = SearchProfile(
    name="generic",
    auth_header="Authorization",
    auth_prefix="Bearer ",
    query_param="q",
    count_param="num",
    items_path="results",
    title_key="title",
    snippet_key="snippet",
    url_key="url",
)

SEARCH_PROFILES: Mapping[str, SearchProfile] = {
    "bing": BING_PROFILE,
    "generic": GENERIC_PROFILE,
}


def get_search_profile(name: str) -> SearchProfile:
    """根据名称获取 SearchProfile，名称不区分大小写。"""

    try:
        return SEARCH_PROFILES[name.lower()]
    except KeyError:
        raise KeyError(f"Unknown search provider: {name!r}") from None


def _dig(data: Any, path: str) -> Any:
    for key in path.split("."):
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


class WebSearchClient:
    """搜索服务客户端，复用共享连接池。"""

    def __init__(
        self,
        http: httpx.Client,
        endpoint: str,
        api_key: Optional[str] = None,
        profile: SearchProfile = BING_PROFILE,
        max_results: int = 3,
    ):
        self._http = http
        self._endpoint = endpoint
        self._api_key = api_key
        self._profile = profile
        self._max_results = max_results

    def search(self, query: str) -> str:
        """执行搜索，返回 "<title> - <snippet> (<url>)" 按行拼接的文本。

        任何失败都转换为哨兵文本返回，不向上抛出。
        """

        profile = self._profile
        headers: Dict[str, str] = {}
        if self._api_key:
            headers[profile.auth_header] = f"{profile.auth_prefix}{self._api_key}"
        params = {profile.query_param: query, profile.count_param: self._max_results}
        logger.info(
            "Calling search API",
            extra={"extra": {"provider": profile.name, "query": query}},
        )
        try:
            resp = self._http.get(self._endpoint, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(
                "Search API failed",
                extra={"extra": {"query": query, "error": str(exc)}},
            )
            return SERVICE_ERROR
        if resp.status_code < 200 or resp.status_code >= 300:
            logger.warning(
                "Search API non-success status",
                extra={"extra": {"query": query, "status": resp.status_code}},
            )
            return SERVICE_UNAVAILABLE
        try:
            data = resp.json()
        except ValueError as exc:
            logger.error(
                "Search API returned invalid JSON",
                extra={"extra": {"query": query, "error": str(exc)}},
            )
            return SERVICE_ERROR
        return self._format_items(_dig(data, profile.items_path))

    def _format_items(self, items: Any) -> str:
        if not isinstance(items, list) or not items:
            return NO_RESULTS
        profile = self._profile
        lines: List[str] = []
        for item in items[: self._max_results]:
            if not isinstance(item, dict):
                continue
            title = str(item.get(profile.title_key) or "")
            snippet = str(item.get(profile.snippet_key) or "")
            url = str(item.get(profile.url_key) or "")
            lines.append(f"{title} - {snippet} ({url})")
        return "\n".join(lines) if lines else NO_RESULTS

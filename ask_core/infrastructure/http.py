"""进程级共享的出站 HTTP 连接池。

模型网关与搜索工具共用同一个 httpx.Client；httpx.Client 本身线程安全，
可以被互不相关的请求并发使用。读超时是唯一的时间上限，核心不额外设置请求级超时。
"""

import threading
from typing import Optional

import httpx

from ask_core.config.settings import Settings, settings as default_settings


_client: Optional[httpx.Client] = None
_lock = threading.Lock()


def build_http_client(cfg: Settings = default_settings) -> httpx.Client:
    """按配置创建带连接池的 httpx.Client。"""

    return httpx.Client(
        timeout=httpx.Timeout(cfg.read_timeout, connect=cfg.connect_timeout),
        limits=httpx.Limits(
            max_keepalive_connections=cfg.pool_size,
            keepalive_expiry=cfg.pool_keepalive,
        ),
        trust_env=False,
    )


def get_http_client() -> httpx.Client:
    """获取共享连接池（懒加载单例）。"""

    global _client
    with _lock:
        if _client is None or _client.is_closed:
            _client = build_http_client(default_settings)
        return _client


def close_http_client() -> None:
    global _client
    with _lock:
        if _client is not None:
            _client.close()
            _client = None

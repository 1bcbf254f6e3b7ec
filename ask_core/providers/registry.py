"""Provider 请求形态配置。

不同厂商的 chat/completions 接口在端点路径和辅助参数上略有差异，
这里把差异集中成数据（ProviderProfile），网关按 profile 组装请求，
编排层、解析器与消息构造都不感知具体厂商。"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class ProviderProfile:
    """某个 Provider 的请求形态。

    - match: base_url 中包含该子串时自动选中此 profile。
    - chat_path: 拼接在 base_url 之后的端点路径。
    - decision_extra / followup_extra: 第一轮判定请求 / 后续流式请求额外附加的字段。
    - drop_keys: 发送前从请求体中移除的字段。
    """

    name: str
    chat_path: str
    match: Optional[str] = None
    decision_extra: Mapping[str, Any] = field(default_factory=dict)
    followup_extra: Mapping[str, Any] = field(default_factory=dict)
    drop_keys: Tuple[str, ...] = ()

    def apply(self, payload: Dict[str, Any], streaming: bool) -> Dict[str, Any]:
        body = dict(payload)
        for key in self.drop_keys:
            body.pop(key, None)
        body.update(self.followup_extra if streaming else self.decision_extra)
        return body


OPENAI_PROFILE = ProviderProfile(
    name="openai",
    chat_path="/v1/chat/completions",
    drop_keys=("response_format",),
)

# DeepSeek：端点无 /v1 前缀；关闭 DSML，后续请求强制自然语言输出
DEEPSEEK_PROFILE = ProviderProfile(
    name="deepseek",
    chat_path="/chat/completions",
    match="deepseek",
    decision_extra={"dsml": "false"},
    followup_extra={"dsml": "false", "response_format": {"type": "text"}},
    drop_keys=("response_format",),
)


PROVIDER_REGISTRY: Mapping[str, ProviderProfile] = {
    "openai": OPENAI_PROFILE,
    "deepseek": DEEPSEEK_PROFILE,
}


def get_provider_profile(name: str) -> ProviderProfile:
    """根据名称获取 ProviderProfile，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")


def resolve_provider_profile(base_url: str, name: Optional[str] = None) -> ProviderProfile:
    """显式名称优先，否则按 base_url 子串匹配，都不命中时使用 openai。"""

    if name:
        return get_provider_profile(name)
    url = base_url.lower()
    for profile in PROVIDER_REGISTRY.values():
        if profile.match and profile.match in url:
            return profile
    return OPENAI_PROFILE

"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置，
启动时加载一次，之后核心逻辑只读使用。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("ASK_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 模型服务 ----
    base_url: str = Field(default="https://api.openai.com", description="模型 API 基础URL")
    model: str = Field(default="gpt-4o-mini", description="模型名称")
    api_key: Optional[str] = Field(default=None, description="模型 API 密钥")
    system_prompt: str = Field(
        default="请优先调用工具获取实时信息，再给出回答",
        description="系统提示词",
    )
    system_prompt_file: Optional[str] = Field(
        default=None,
        description="系统提示词文件，设置后优先于 system_prompt",
    )
    provider: Optional[str] = Field(
        default=None,
        description="显式指定 Provider 配置名，为空时按 base_url 自动识别",
    )

    # ---- 搜索工具 ----
    search_provider: str = Field(default="bing", description="搜索服务配置名，如 bing、generic")
    search_endpoint: str = Field(
        default="https://api.bing.microsoft.com/v7.0/search",
        description="搜索引擎API端点",
    )
    search_api_key: Optional[str] = Field(default=None, description="搜索引擎API密钥")
    search_max_results: int = Field(default=3, ge=1, le=10, description="搜索结果条数")

    # ---- HTTP 连接 ----
    connect_timeout: float = Field(default=15.0, gt=0, description="连接超时时间（秒）")
    read_timeout: float = Field(default=60.0, gt=0, description="读取超时时间（秒）")
    pool_size: int = Field(default=5, ge=1, description="连接池空闲连接数")
    pool_keepalive: float = Field(default=300.0, gt=0, description="空闲连接保活时间（秒）")

    # ---- 其他 ----
    direct_calc_prefix: str = Field(
        default="计算：",
        description="以该前缀开头的问题直接调用 calc 工具，为空表示关闭",
    )
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")
    host: str = Field(default="0.0.0.0", description="HTTP 服务监听地址")
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP 服务端口")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("base_url", "search_endpoint")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()

"""
描述: Phantombuster MCP Server 全局配置加载器
主要功能:
    - 统一管理服务、上游 API、日志配置
    - 支持 YAML 文件加载与环境变量覆盖
    - 启动时解析 Phantombuster 基础地址与兜底 API Key
"""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

DEFAULT_API_BASE = "https://api.phantombuster.com/api/v2"


class ConfigurationError(RuntimeError):
    """启动配置缺失或非法"""
    pass


# region 基础配置模型
class ServerSettings(BaseModel):
    """服务监听配置"""
    host: str = "0.0.0.0"
    port: int = 3000
    path: str = "/mcp"


class PhantombusterSettings(BaseModel):
    """Phantombuster 上游 API 配置"""
    api_key: str = ""
    api_base: str = DEFAULT_API_BASE
    key_header: str = "X-Phantombuster-Key-1"
    timeout: float = 60.0


class ToolsSettings(BaseModel):
    enabled: list[str] = Field(default_factory=list)


class LoggingSettings(BaseModel):
    """日志系统配置"""
    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """配置聚合根"""
    server: ServerSettings = Field(default_factory=ServerSettings)
    phantombuster: PhantombusterSettings = Field(default_factory=PhantombusterSettings)
    tools: ToolsSettings = Field(default_factory=ToolsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
# endregion


# region 配置加载逻辑
def _expand_env(value: Any) -> Any:
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            expr = match.group(1)
            if ":-" in expr:
                key, default = expr.split(":-", 1)
                return os.getenv(key, default)
            return os.getenv(expr, "")

        return _ENV_PATTERN.sub(replace, value)
    if isinstance(value, list):
        return [_expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: _expand_env(val) for key, val in value.items()}
    return value


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return _expand_env(data)


def _set_nested(data: dict[str, Any], keys: list[str], value: Any) -> None:
    current = data
    for key in keys[:-1]:
        current = current.setdefault(key, {})
    current[keys[-1]] = value


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    mapping = {
        "PHANTOMBUSTER_API_KEY": ["phantombuster", "api_key"],
        "PHANTOMBUSTER_API_BASE": ["phantombuster", "api_base"],
        "HOST": ["server", "host"],
        "PORT": ["server", "port"],
        "LOG_LEVEL": ["logging", "level"],
        "LOG_FORMAT": ["logging", "format"],
    }
    for env_key, path in mapping.items():
        env_value = os.getenv(env_key)
        if env_value is not None and env_value != "":
            _set_nested(data, path, env_value)
    return data


def load_settings(config_path: str | None = None) -> Settings:
    path = Path(config_path or os.getenv("CONFIG_PATH", "config.yaml"))
    data = _load_yaml(path)
    data = _apply_env_overrides(data)
    return Settings.model_validate(data)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """获取单例配置对象"""
    return load_settings()
# endregion


# region 凭证解析
def get_phantombuster_api_key(settings: Settings) -> str:
    """
    解析兜底 API Key

    仅用于启动自检: 出站请求始终使用调用方在请求头中携带的 Key。

    抛出:
        ConfigurationError: 未配置或为空白
    """
    key = settings.phantombuster.api_key
    if not key or not key.strip():
        logger.error("Missing PHANTOMBUSTER_API_KEY in environment")
        raise ConfigurationError(
            "PHANTOMBUSTER_API_KEY is required for the Phantombuster MCP server."
        )
    return key.strip()


def get_phantombuster_base_url(settings: Settings) -> str:
    """返回去除末尾斜杠的上游基础地址"""
    base = settings.phantombuster.api_base or DEFAULT_API_BASE
    return base.rstrip("/")
# endregion

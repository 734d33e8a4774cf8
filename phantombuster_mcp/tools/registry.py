"""
描述: MCP 工具注册中心
主要功能:
    - 统一管理所有 MCP 工具的注册
    - 提供工具查找与元数据列表功能
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Type

from phantombuster_mcp.tools.base import BaseTool


# region 工具注册中心
class ToolRegistry:
    """工具注册中心 (单例模式)"""
    _tools: dict[str, Type[BaseTool]] = {}
    _logger = logging.getLogger(__name__)

    @classmethod
    def register(cls, tool_cls: Type[BaseTool]) -> Type[BaseTool]:
        tool_name = getattr(tool_cls, "name", "")
        if not tool_name:
            cls._logger.warning(
                "Tool %s has no 'name' attribute, skipping registration",
                tool_cls.__name__,
            )
            return tool_cls
        if tool_name in cls._tools:
            cls._logger.warning("Tool %s already registered, overwriting", tool_name)
        cls._tools[tool_name] = tool_cls
        return tool_cls

    @classmethod
    def get(cls, name: str, enabled: Iterable[str] | None = None) -> Type[BaseTool] | None:
        """按名称查找工具; enabled 非空时仅返回白名单内的工具"""
        allowed = set(enabled or ())
        if allowed and name not in allowed:
            return None
        return cls._tools.get(name)

    @classmethod
    def tool_classes(cls, enabled: Iterable[str] | None = None) -> list[Type[BaseTool]]:
        allowed = set(enabled or ())
        return [
            tool_cls
            for name, tool_cls in cls._tools.items()
            if not allowed or name in allowed
        ]

    @classmethod
    def list_tools(cls, enabled: Iterable[str] | None = None) -> list[dict[str, Any]]:
        """获取已注册工具的元数据"""
        return [
            {
                "name": tool_cls.name,
                "description": tool_cls.description,
                "inputSchema": tool_cls.input_schema(),
            }
            for tool_cls in cls.tool_classes(enabled)
        ]
# endregion

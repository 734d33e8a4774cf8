"""
描述: MCP 协议服务定义
主要功能:
    - 基于官方 mcp SDK 的低层 Server 注册工具列表与调用入口
    - 工具查找、白名单过滤与执行分发
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from mcp import types
from mcp.server.lowlevel import Server

from phantombuster_mcp import __version__
from phantombuster_mcp.config import Settings
from phantombuster_mcp.phantombuster.client import PhantombusterClient
from phantombuster_mcp.tools.base import ToolContext, ToolResult
from phantombuster_mcp.tools.registry import ToolRegistry
import phantombuster_mcp.tools  # noqa: F401


logger = logging.getLogger(__name__)

SERVER_NAME = "phantombuster-mcp-server"

ClientFactory = Callable[[], PhantombusterClient]


async def dispatch_tool(
    settings: Settings,
    client_factory: ClientFactory,
    name: str,
    arguments: dict[str, Any] | None,
) -> ToolResult:
    """按名称查找并执行工具, 结果总是 ToolResult"""
    tool_cls = ToolRegistry.get(name, settings.tools.enabled)
    if tool_cls is None:
        return ToolResult.fail(f"Unknown tool: {name}")

    context = ToolContext(settings=settings, client=client_factory())
    logger.info("Calling tool", extra={"tool": name})
    return await tool_cls(context).execute(arguments)


def build_mcp_server(
    settings: Settings,
    client_factory: ClientFactory | None = None,
) -> Server:
    """
    构建 MCP Server

    参数:
        settings: 全局配置对象
        client_factory: Phantombuster 客户端工厂 (默认按 settings 创建)

    返回:
        启动后只读共享的 Server 实例
    """
    factory = client_factory or (lambda: PhantombusterClient(settings))
    server: Server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=tool["name"],
                description=tool["description"],
                inputSchema=tool["inputSchema"],
            )
            for tool in ToolRegistry.list_tools(settings.tools.enabled)
        ]

    # 入参由各工具自行校验, 以便校验失败同样返回错误信封
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        result = await dispatch_tool(settings, factory, name, arguments)
        return [types.TextContent(type="text", text=result.render())]

    return server

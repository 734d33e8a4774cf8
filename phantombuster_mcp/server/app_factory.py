"""Application factory for the Phantombuster MCP server."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from phantombuster_mcp import __version__
from phantombuster_mcp.config import (
    Settings,
    get_phantombuster_api_key,
    get_phantombuster_base_url,
)
from phantombuster_mcp.server.http import McpEndpoint, router as http_router
from phantombuster_mcp.server.mcp import ClientFactory, build_mcp_server


logger = logging.getLogger(__name__)


def create_app(settings: Settings, client_factory: ClientFactory | None = None) -> FastAPI:
    """
    构建 FastAPI 应用

    兜底 API Key 缺失时抛出 ConfigurationError, 进程在监听端口前退出。
    """
    # 兜底 Key 只做启动自检, 出站请求使用调用方的 Key
    get_phantombuster_api_key(settings)
    base_url = get_phantombuster_base_url(settings)

    mcp_server = build_mcp_server(settings, client_factory)

    app = FastAPI(title="Phantombuster MCP Server", version=__version__)
    app.include_router(http_router)
    app.add_route(settings.server.path, McpEndpoint(mcp_server), include_in_schema=False)

    logger.info(
        "MCP server config loaded",
        extra={
            "api_base": base_url,
            "mcp_path": settings.server.path,
            "tools_enabled_count": len(settings.tools.enabled),
        },
    )
    return app

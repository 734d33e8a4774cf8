"""
描述: MCP Server 启动脚本
主要功能:
    - 配置 asyncio 策略 (Windows)
    - 使用 uvicorn 启动 ASGI 服务
    - 监听 PORT 端口 (默认 3000)
"""

from __future__ import annotations

import asyncio
import sys

# Windows 兼容性：在任何 asyncio 操作前设置策略
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from dotenv import load_dotenv

load_dotenv()

import uvicorn

from phantombuster_mcp.config import get_settings


if __name__ == "__main__":
    server_settings = get_settings().server
    print(
        "Starting Phantombuster MCP server on "
        f"http://{server_settings.host}:{server_settings.port}{server_settings.path}"
    )
    print("Press Ctrl+C to stop")
    uvicorn.run(
        "phantombuster_mcp.main:app",
        host=server_settings.host,
        port=server_settings.port,
        log_level="info",
    )

"""
描述: MCP Server 主入口
主要功能:
    - 环境变量与配置加载
    - 日志初始化
    - FastAPI 应用组装 (MCP 端点 & 健康检查)
"""

from __future__ import annotations

from dotenv import load_dotenv

from phantombuster_mcp.config import get_settings
from phantombuster_mcp.server.app_factory import create_app
from phantombuster_mcp.utils.logger import setup_logging


# region 初始化
load_dotenv()
settings = get_settings()
setup_logging(settings.logging)
# endregion

app = create_app(settings)

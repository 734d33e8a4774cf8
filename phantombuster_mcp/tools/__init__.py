"""
描述: MCP 工具注册入口。
主要功能:
    - 导入并注册 Phantom 工具
    - 在服务启动时完成工具发现
"""

from phantombuster_mcp.tools import agents  # noqa: F401

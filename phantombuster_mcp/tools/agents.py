"""
描述: Phantombuster Phantom (agent) 工具集
主要功能:
    - 启动 Phantom
    - 查询 Phantom 状态
    - 获取最近一次运行结果
    - 列出账户下所有 Phantom
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field

from phantombuster_mcp.phantombuster.client import UpstreamError
from phantombuster_mcp.tools.base import BaseTool, ToolInput, ToolResult
from phantombuster_mcp.tools.registry import ToolRegistry


logger = logging.getLogger(__name__)

_AGENT_ID_DESCRIPTION = "Phantom/agent ID from Phantombuster dashboard"

RAW_MODE_NOTE = "raw mode - not fetching data, only URL/meta"


# region 辅助函数
def _dig(data: Any, *keys: str) -> Any:
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def resolve_result_url(agent: Any) -> str | None:
    """按顺序查找结果地址字段, 首个非空者生效"""
    candidates = (
        ("lastResultObject", "s3Folder"),
        ("lastResultObject", "s3Url"),
        ("lastContainer", "output", "url"),
        ("lastResultUrl",),
    )
    for path in candidates:
        value = _dig(agent, *path)
        if value:
            return value
    return None
# endregion


# region 入参模型
class LaunchInput(ToolInput):
    agentId: str = Field(description=_AGENT_ID_DESCRIPTION)
    argument: dict[str, Any] = Field(
        default_factory=dict,
        description="Phantom input configuration (object passed as argument)",
    )
    manual: bool = Field(
        default=False,
        description="If true, launches in manual mode (depends on Phantom settings)",
    )


class AgentInput(ToolInput):
    agentId: str = Field(description=_AGENT_ID_DESCRIPTION)


class ResultsInput(ToolInput):
    agentId: str = Field(description=_AGENT_ID_DESCRIPTION)
    raw: bool = Field(
        default=False,
        description=(
            "If true, returns raw result URL and meta; if false, tries to fetch "
            "and parse JSON from result URL."
        ),
    )


class ListInput(ToolInput):
    pass
# endregion


# region Phantom 工具
@ToolRegistry.register
class PhantomLaunchTool(BaseTool):
    name = "phantom_launch"
    description = (
        "Launch a Phantombuster Phantom by its ID with optional arguments (input). "
        "Returns launch information."
    )
    input_model = LaunchInput

    async def run(self, params: LaunchInput) -> ToolResult:
        data = await self.context.client.request(
            "POST",
            "/agents/launch",
            body={
                "id": params.agentId,
                "argument": params.argument,
                "manual": params.manual,
            },
        )
        return ToolResult.ok({
            "action": "launch",
            "agentId": params.agentId,
            "response": data,
        })


@ToolRegistry.register
class PhantomStatusTool(BaseTool):
    name = "phantom_status"
    description = (
        "Get status and metadata of a Phantombuster Phantom by its ID "
        "(last launch, state, etc)."
    )
    input_model = AgentInput

    async def run(self, params: AgentInput) -> ToolResult:
        data = await self.context.client.request(
            "GET", "/agents/fetch", params={"id": params.agentId}
        )
        return ToolResult.ok({
            "action": "status",
            "agentId": params.agentId,
            "agent": data,
        })


@ToolRegistry.register
class PhantomResultsTool(BaseTool):
    """
    获取 Phantom 最近一次运行结果

    结果地址可能位于 lastResultObject、lastContainer 或 lastResultUrl;
    raw 模式下只返回地址, 否则尝试拉取并解析内容。
    """
    name = "phantom_results"
    description = (
        "Fetch the latest results for a Phantombuster Phantom by ID. "
        "Returns metadata and, if accessible, parsed JSON."
    )
    input_model = ResultsInput

    async def run(self, params: ResultsInput) -> ToolResult:
        agent = await self.context.client.request(
            "GET", "/agents/fetch", params={"id": params.agentId}
        )
        result_url = resolve_result_url(agent)
        if not result_url:
            return ToolResult.fail(
                f"No result URL found for Phantom agentId={params.agentId}. "
                "Check if it has run successfully."
            )

        if params.raw:
            return ToolResult.ok({
                "action": "results",
                "agentId": params.agentId,
                "resultUrl": result_url,
                "note": RAW_MODE_NOTE,
            })

        results_data: Any = None
        try:
            results_data = await self.context.client.fetch_url(result_url)
        except UpstreamError as exc:
            logger.error(
                "Error fetching results from result URL",
                extra={"agent_id": params.agentId, "error": str(exc)},
            )

        return ToolResult.ok({
            "action": "results",
            "agentId": params.agentId,
            "resultUrl": result_url,
            "results": results_data,
        })


@ToolRegistry.register
class PhantomListTool(BaseTool):
    name = "phantom_list"
    description = (
        "List all Phantombuster Phantoms/agents in your account. "
        "Returns a list of agents with their IDs, names, and scripts."
    )
    input_model = ListInput

    async def run(self, params: ListInput) -> ToolResult:
        data = await self.context.client.request("GET", "/agents/fetch-all")
        return ToolResult.ok({
            "action": "list",
            "agents": data,
            "count": len(data) if isinstance(data, list) else "unknown",
        })
# endregion

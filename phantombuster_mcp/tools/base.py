"""
描述: MCP 工具基类定义
主要功能:
    - 定义 BaseTool 抽象基类 (入参校验 + 异常边界)
    - 定义 ToolContext 上下文对象
    - 定义 ToolResult 统一返回信封
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import json
import logging
from typing import Any, ClassVar, Type

from pydantic import BaseModel, ConfigDict, ValidationError

from phantombuster_mcp.config import Settings
from phantombuster_mcp.phantombuster.client import PhantombusterClient


logger = logging.getLogger(__name__)


def pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, default=str)


def format_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "input"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts) or str(exc)


# region 工具上下文与返回信封
@dataclass
class ToolContext:
    """工具执行上下文 (依赖注入)"""
    settings: Settings
    client: PhantombusterClient


@dataclass(frozen=True)
class ToolResult:
    """工具返回信封: 成功负载与错误信息二选一"""
    payload: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, payload: Any) -> "ToolResult":
        return cls(payload=payload)

    @classmethod
    def fail(cls, message: str) -> "ToolResult":
        return cls(error=message)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def render(self) -> str:
        if self.error is not None:
            return f"Error: {self.error}"
        return pretty(self.payload)


class ToolInput(BaseModel):
    """工具入参基类: 类型严格校验, 忽略未知字段"""
    model_config = ConfigDict(strict=True, extra="ignore")
# endregion


# region 工具基类
class BaseTool(ABC):
    """MCP 工具抽象基类"""
    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    input_model: ClassVar[Type[ToolInput]] = ToolInput

    def __init__(self, context: ToolContext) -> None:
        self.context = context
        if not self.name:
            raise ValueError(f"{self.__class__.__name__} must define 'name' attribute")

    @classmethod
    def input_schema(cls) -> dict[str, Any]:
        schema = cls.input_model.model_json_schema()
        schema.pop("title", None)
        return schema

    async def execute(self, arguments: dict[str, Any] | None) -> ToolResult:
        """
        校验入参并执行工具

        所有异常在此处转换为错误信封, 不会向协议层抛出。
        """
        try:
            params = self.input_model.model_validate(arguments or {})
            return await self.run(params)
        except ValidationError as exc:
            return ToolResult.fail(format_validation_error(exc))
        except Exception as exc:
            logger.warning("Tool %s failed: %s", self.name, exc)
            return ToolResult.fail(str(exc) or exc.__class__.__name__)

    @abstractmethod
    async def run(self, params: Any) -> ToolResult:
        """
        执行工具逻辑

        参数:
            params: 已校验的入参模型

        返回:
            ToolResult
        """
        raise NotImplementedError
# endregion

"""
描述: 请求级上下文载体
主要功能:
    - 将调用方 API Key 绑定到单次 HTTP 请求的异步执行范围
    - 深层调用 (工具 -> 网关) 无需显式传参即可读取
    - 基于 ContextVar, 并发请求互不可见
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterator, TypeVar


T = TypeVar("T")


def generate_request_id() -> str:
    """生成请求 ID"""
    return str(uuid.uuid4())[:12]


@dataclass(frozen=True)
class RequestContext:
    """单次入站请求的上下文"""
    external_api_key: str
    request_id: str = field(default_factory=generate_request_id)


# region 上下文载体
class RequestContextCarrier:
    """
    请求上下文载体

    功能:
        - bind: 在 with 块内绑定上下文, 退出时还原外层绑定
        - run: 在绑定范围内执行协程函数
        - get: 读取当前绑定, 未绑定返回 None
    """

    def __init__(self, name: str = "request_context") -> None:
        self._var: ContextVar[RequestContext | None] = ContextVar(name, default=None)

    @contextmanager
    def bind(self, context: RequestContext) -> Iterator[RequestContext]:
        token: Token[RequestContext | None] = self._var.set(context)
        try:
            yield context
        finally:
            self._var.reset(token)

    async def run(
        self,
        context: RequestContext,
        func: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        with self.bind(context):
            return await func(*args, **kwargs)

    def get(self) -> RequestContext | None:
        return self._var.get()
# endregion


request_context = RequestContextCarrier()


def current_request_id() -> str:
    context = request_context.get()
    return context.request_id if context else ""

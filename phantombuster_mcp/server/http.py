"""
描述: HTTP 入口
主要功能:
    - 健康检查路由
    - MCP Streamable HTTP 端点: 鉴权、绑定请求上下文、无会话传输分发
"""

from __future__ import annotations

import logging
from typing import Any

import anyio
from fastapi import APIRouter, Response
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import StreamableHTTPServerTransport
from mcp.server.transport_security import TransportSecuritySettings
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import Message, Receive, Scope, Send

from phantombuster_mcp.context import RequestContext, request_context
from phantombuster_mcp.server.schema import (
    INTERNAL_ERROR_CODE,
    INTERNAL_ERROR_MESSAGE,
    MISSING_API_KEY_CODE,
    MISSING_API_KEY_MESSAGE,
    jsonrpc_error,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok", "service": "phantombuster-mcp-server"}


@router.get("/favicon.ico")
async def favicon() -> Response:
    return Response(status_code=204)


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


def extract_api_key(header_value: str | None) -> str | None:
    """解析 Authorization 头: 支持 "Bearer <token>" (前缀不区分大小写) 或裸 token"""
    if not header_value:
        return None
    if header_value.lower().startswith("bearer "):
        token = header_value[len("bearer "):].strip()
    else:
        token = header_value.strip()
    return token or None


async def _close_transport(transport: StreamableHTTPServerTransport) -> None:
    # 尽力关闭, 清理失败不向外传播
    try:
        await transport.terminate()
    except Exception as exc:
        logger.debug("Ignoring transport close failure: %s", exc)


async def _read_body(receive: Receive) -> bytes | None:
    """读取完整请求体, 读取过程中客户端断开则返回 None"""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            return None
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            return b"".join(chunks)


def _replay_body(body: bytes, disconnected: anyio.Event) -> Receive:
    sent = False

    async def receive_replay() -> Message:
        nonlocal sent
        if not sent:
            sent = True
            return {"type": "http.request", "body": body, "more_body": False}
        await disconnected.wait()
        return {"type": "http.disconnect"}

    return receive_replay


# region MCP 端点
class McpEndpoint:
    """
    MCP HTTP 端点 (ASGI)

    每个请求:
        1. 校验 Authorization, 缺失直接 401
        2. 构建 RequestContext 并绑定到当前异步执行范围
        3. 新建无会话传输, 在绑定范围内运行协议分发
        4. 客户端断开时立即关闭传输并取消进行中的分发
        5. 未处理异常且尚未发送响应时返回 500
    """

    def __init__(self, server: Server) -> None:
        self._server = server

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        api_key = extract_api_key(request.headers.get("authorization"))
        if not api_key:
            response = JSONResponse(
                status_code=401,
                content=jsonrpc_error(MISSING_API_KEY_CODE, MISSING_API_KEY_MESSAGE),
            )
            await response(scope, receive, send)
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        with request_context.bind(RequestContext(external_api_key=api_key)):
            transport: StreamableHTTPServerTransport | None = None
            try:
                transport = StreamableHTTPServerTransport(
                    mcp_session_id=None,
                    is_json_response_enabled=True,
                    security_settings=TransportSecuritySettings(
                        enable_dns_rebinding_protection=False,
                    ),
                )
                await self._handle(transport, scope, receive, send_tracking)
            except Exception:
                logger.exception("Error handling MCP request")
                if not response_started:
                    response = JSONResponse(
                        status_code=500,
                        content=jsonrpc_error(INTERNAL_ERROR_CODE, INTERNAL_ERROR_MESSAGE),
                    )
                    await response(scope, receive, send)
            finally:
                if transport is not None:
                    await _close_transport(transport)

    async def _handle(
        self,
        transport: StreamableHTTPServerTransport,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        body = await _read_body(receive)
        if body is None:
            logger.debug("Client disconnected before request body was read")
            return

        disconnected = anyio.Event()
        async with transport.connect() as (read_stream, write_stream):
            async with anyio.create_task_group() as task_group:
                task_group.start_soon(self._run_server, read_stream, write_stream)
                task_group.start_soon(
                    self._watch_disconnect,
                    receive,
                    transport,
                    disconnected,
                )
                await transport.handle_request(scope, _replay_body(body, disconnected), send)
                task_group.cancel_scope.cancel()

    async def _run_server(self, read_stream: Any, write_stream: Any) -> None:
        await self._server.run(
            read_stream,
            write_stream,
            self._server.create_initialization_options(),
            stateless=True,
        )

    @staticmethod
    async def _watch_disconnect(
        receive: Receive,
        transport: StreamableHTTPServerTransport,
        disconnected: anyio.Event,
    ) -> None:
        # 请求体已读完, 此后 receive 只会返回 http.disconnect
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
        disconnected.set()
        logger.debug("Client disconnected, closing MCP transport")
        # 关闭传输即可让 handle_request 结束等待, 不主动取消出站调用
        await _close_transport(transport)
# endregion

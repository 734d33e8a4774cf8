"""
JSON-RPC error envelopes returned by the HTTP endpoint.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


MISSING_API_KEY_CODE = 401
MISSING_API_KEY_MESSAGE = "Missing Authorization API key"
INTERNAL_ERROR_CODE = -32603
INTERNAL_ERROR_MESSAGE = "Internal server error"


class JsonRpcErrorBody(BaseModel):
    code: int
    message: str


class JsonRpcErrorResponse(BaseModel):
    jsonrpc: str = "2.0"
    error: JsonRpcErrorBody
    id: Any | None = None


def jsonrpc_error(code: int, message: str) -> dict[str, Any]:
    return JsonRpcErrorResponse(error=JsonRpcErrorBody(code=code, message=message)).model_dump()

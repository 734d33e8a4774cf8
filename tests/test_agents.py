from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from phantombuster_mcp.config import Settings
from phantombuster_mcp.context import RequestContext, request_context
from phantombuster_mcp.phantombuster.client import AuthenticationError, PhantombusterClient, UpstreamError
from phantombuster_mcp.tools.agents import (
    RAW_MODE_NOTE,
    PhantomLaunchTool,
    PhantomListTool,
    PhantomResultsTool,
    PhantomStatusTool,
    resolve_result_url,
)
from phantombuster_mcp.tools.base import ToolContext, ToolResult
from phantombuster_mcp.tools.registry import ToolRegistry


class FakeClient:
    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        error: Exception | None = None,
        fetch_error: Exception | None = None,
    ) -> None:
        self.calls: list[tuple[str, str, Any, dict[str, Any] | None]] = []
        self.fetched: list[str] = []
        self._responses = responses or {}
        self._error = error
        self._fetch_error = fetch_error

    async def request(
        self,
        method: str,
        path: str,
        body: Any | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        self.calls.append((method, path, body, params))
        if self._error is not None:
            raise self._error
        return self._responses.get(path)

    async def fetch_url(self, url: str) -> Any:
        self.fetched.append(url)
        if self._fetch_error is not None:
            raise self._fetch_error
        return self._responses.get(url)


def _context(client: FakeClient) -> ToolContext:
    return ToolContext(settings=Settings(), client=client)  # type: ignore[arg-type]


def _payload(result: ToolResult) -> dict[str, Any]:
    assert not result.is_error, result.error
    return json.loads(result.render())


def test_launch_defaults_manual_false_and_empty_argument() -> None:
    client = FakeClient({"/agents/launch": {"containerId": "c1"}})
    result = asyncio.run(PhantomLaunchTool(_context(client)).execute({"agentId": "a1"}))

    assert client.calls == [
        ("POST", "/agents/launch", {"id": "a1", "argument": {}, "manual": False}, None)
    ]
    payload = _payload(result)
    assert payload == {"action": "launch", "agentId": "a1", "response": {"containerId": "c1"}}


def test_launch_passes_argument_and_manual() -> None:
    client = FakeClient({"/agents/launch": {}})
    asyncio.run(
        PhantomLaunchTool(_context(client)).execute(
            {"agentId": "a1", "argument": {"search": "ceo"}, "manual": True}
        )
    )
    assert client.calls[0][2] == {"id": "a1", "argument": {"search": "ceo"}, "manual": True}


@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"agentId": 123},
        {"agentId": "a1", "manual": "yes"},
        {"agentId": "a1", "argument": ["not", "a", "map"]},
        {"agentId": "a1", "argument": None},
    ],
)
def test_launch_invalid_input_returns_error_without_calls(arguments: dict[str, Any]) -> None:
    client = FakeClient()
    result = asyncio.run(PhantomLaunchTool(_context(client)).execute(arguments))

    assert result.is_error
    assert result.render().startswith("Error: ")
    assert client.calls == []


def test_status_fetches_agent_by_id() -> None:
    agent = {"id": "a1", "name": "Scraper"}
    client = FakeClient({"/agents/fetch": agent})
    result = asyncio.run(PhantomStatusTool(_context(client)).execute({"agentId": "a1"}))

    assert client.calls == [("GET", "/agents/fetch", None, {"id": "a1"})]
    assert _payload(result) == {"action": "status", "agentId": "a1", "agent": agent}


@pytest.mark.parametrize(
    ("agent", "expected"),
    [
        (
            {
                "lastResultObject": {"s3Folder": "folder", "s3Url": "url"},
                "lastContainer": {"output": {"url": "container"}},
                "lastResultUrl": "last",
            },
            "folder",
        ),
        ({"lastResultObject": {"s3Url": "url"}, "lastResultUrl": "last"}, "url"),
        ({"lastContainer": {"output": {"url": "container"}}, "lastResultUrl": "last"}, "container"),
        ({"lastResultUrl": "last"}, "last"),
        ({"lastResultObject": {"s3Folder": ""}}, None),
        ({}, None),
        (None, None),
        (["not", "a", "record"], None),
    ],
)
def test_resolve_result_url_order(agent: Any, expected: str | None) -> None:
    assert resolve_result_url(agent) == expected


def test_results_raw_mode_skips_second_call() -> None:
    client = FakeClient({"/agents/fetch": {"lastResultUrl": "https://files.test/r.json"}})
    result = asyncio.run(
        PhantomResultsTool(_context(client)).execute({"agentId": "a1", "raw": True})
    )

    assert len(client.calls) == 1
    assert client.fetched == []
    assert _payload(result) == {
        "action": "results",
        "agentId": "a1",
        "resultUrl": "https://files.test/r.json",
        "note": RAW_MODE_NOTE,
    }


def test_results_without_locator_is_error_with_agent_id() -> None:
    client = FakeClient({"/agents/fetch": {"id": "a1", "lastContainer": {}}})
    result = asyncio.run(PhantomResultsTool(_context(client)).execute({"agentId": "a1"}))

    assert result.is_error
    assert "agentId=a1" in result.render()
    assert client.fetched == []


def test_results_fetches_locator_payload() -> None:
    url = "https://files.test/r.json"
    client = FakeClient({
        "/agents/fetch": {"lastResultObject": {"s3Url": url}},
        url: [{"name": "Ada"}],
    })
    result = asyncio.run(PhantomResultsTool(_context(client)).execute({"agentId": "a1"}))

    assert client.fetched == [url]
    assert _payload(result) == {
        "action": "results",
        "agentId": "a1",
        "resultUrl": url,
        "results": [{"name": "Ada"}],
    }


def test_results_fetch_failure_is_not_fatal() -> None:
    url = "https://files.test/r.json"
    client = FakeClient(
        {"/agents/fetch": {"lastResultUrl": url}},
        fetch_error=UpstreamError(message="403 Forbidden", status_code=403),
    )
    result = asyncio.run(PhantomResultsTool(_context(client)).execute({"agentId": "a1"}))

    payload = _payload(result)
    assert payload["resultUrl"] == url
    assert payload["results"] is None


def test_list_counts_array_and_unknown() -> None:
    client = FakeClient({"/agents/fetch-all": [{"id": "a1"}, {"id": "a2"}]})
    result = asyncio.run(PhantomListTool(_context(client)).execute({}))
    assert _payload(result)["count"] == 2
    assert client.calls == [("GET", "/agents/fetch-all", None, None)]

    client = FakeClient({"/agents/fetch-all": {"agents": []}})
    result = asyncio.run(PhantomListTool(_context(client)).execute(None))
    payload = _payload(result)
    assert payload == {"action": "list", "agents": {"agents": []}, "count": "unknown"}


@pytest.mark.parametrize(
    "error",
    [
        AuthenticationError("No API key provided."),
        UpstreamError(message="Agent not found", status_code=404),
    ],
)
def test_gateway_errors_become_error_envelopes(error: Exception) -> None:
    client = FakeClient(error=error)
    for tool_cls, arguments in (
        (PhantomLaunchTool, {"agentId": "a1"}),
        (PhantomStatusTool, {"agentId": "a1"}),
        (PhantomResultsTool, {"agentId": "a1"}),
        (PhantomListTool, {}),
    ):
        result = asyncio.run(tool_cls(_context(client)).execute(arguments))
        assert result.is_error
        assert result.render() == f"Error: {error}"


def test_registry_exposes_four_tools_with_schemas() -> None:
    tools = {tool["name"]: tool for tool in ToolRegistry.list_tools()}
    assert set(tools) == {"phantom_launch", "phantom_status", "phantom_results", "phantom_list"}

    launch_schema = tools["phantom_launch"]["inputSchema"]
    assert launch_schema["required"] == ["agentId"]
    assert set(launch_schema["properties"]) == {"agentId", "argument", "manual"}
    assert launch_schema["properties"]["argument"]["type"] == "object"
    assert "anyOf" not in launch_schema["properties"]["argument"]
    assert tools["phantom_results"]["inputSchema"]["properties"]["raw"]["default"] is False
    assert tools["phantom_list"]["inputSchema"]["properties"] == {}

    assert [tool["name"] for tool in ToolRegistry.list_tools(["phantom_list"])] == ["phantom_list"]
    assert ToolRegistry.get("phantom_status", ["phantom_list"]) is None


@pytest.mark.parametrize(
    "locator",
    [
        "http://files.test:notaport/r.json",
        12345,
        "https://files.test/missing.json",
    ],
)
def test_results_bad_locator_is_not_fatal_with_real_client(locator: Any) -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path == "/api/v2/agents/fetch":
            return httpx.Response(200, json={"id": "a1", "lastResultUrl": locator})
        return httpx.Response(404, text="missing")

    settings = Settings()
    settings.phantombuster.api_base = "https://pb.test/api/v2"
    client = PhantombusterClient(settings, transport=httpx.MockTransport(handler))
    context = ToolContext(settings=settings, client=client)

    async def run() -> ToolResult:
        with request_context.bind(RequestContext(external_api_key="k")):
            return await PhantomResultsTool(context).execute({"agentId": "a1"})

    payload = _payload(asyncio.run(run()))
    assert payload == {
        "action": "results",
        "agentId": "a1",
        "resultUrl": locator,
        "results": None,
    }
    assert seen[0] == "/api/v2/agents/fetch"

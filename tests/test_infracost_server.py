"""Tests for the MCP server surface: error codes, metrics, log formatting."""

import json
import logging
from unittest.mock import AsyncMock

import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    METHOD_NOT_FOUND,
    CallToolRequest,
    CallToolRequestParams,
    TextContent,
)

from infracost_mcp.config import McpConfig
from infracost_mcp.dispatcher import ToolDispatcher
from infracost_mcp.envelope import CommandResult
from infracost_mcp.errors import INSTALL_HINT
from infracost_mcp.observability import JsonLogFormatter, MetricsCollector
from infracost_mcp.server import InfracostMcpServer
from infracost_mcp.tools.cli import InfracostCli


@pytest.fixture
def cli_spy() -> AsyncMock:
    cli = AsyncMock(spec=InfracostCli)
    cli.is_installed.return_value = True
    return cli


def _server(config: McpConfig, cli: AsyncMock) -> InfracostMcpServer:
    return InfracostMcpServer(config, dispatcher=ToolDispatcher(config, cli=cli))


def test_server_advertises_all_tools(cli_spy):
    server = _server(McpConfig(), cli_spy)
    assert len(server.tools) == 16
    assert {t.name for t in server.tools} == set(server.dispatcher.tool_names)


@pytest.mark.asyncio
async def test_successful_call_returns_text(cli_spy):
    cli_spy.upload.return_value = CommandResult.ok("Uploaded to Infracost Cloud")
    server = _server(McpConfig(), cli_spy)

    response = await server.call_tool("infracost_upload", {"path": "infracost.json"})

    assert response == [TextContent(type="text", text="Uploaded to Infracost Cloud")]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("name", "arguments", "code"),
    [
        ("infracost_nope", {}, METHOD_NOT_FOUND),
        ("infracost_upload", {}, INVALID_PARAMS),
        ("infracost_cloud_list_guardrails", {}, INTERNAL_ERROR),
    ],
)
async def test_failures_carry_error_codes(cli_spy, name, arguments, code):
    server = _server(McpConfig(), cli_spy)

    with pytest.raises(McpError) as exc_info:
        await server.call_tool(name, arguments)

    assert exc_info.value.error.code == code


@pytest.mark.asyncio
async def test_missing_org_is_invalid_params(cli_spy, cloud_config):
    cloud_config.cloud.org_slug = None
    server = _server(cloud_config, cli_spy)

    with pytest.raises(McpError) as exc_info:
        await server.call_tool("infracost_cloud_list_guardrails", {})

    assert exc_info.value.error.code == INVALID_PARAMS


@pytest.mark.asyncio
async def test_validation_issues_in_error_data(cli_spy):
    server = _server(McpConfig(), cli_spy)

    with pytest.raises(McpError) as exc_info:
        await server.call_tool("infracost_diff", {"path": "."})

    error = exc_info.value.error
    assert "compareTo" in error.message
    assert error.data == [
        {"path": "compareTo", "constraint": "required", "message": "field is required"}
    ]


@pytest.mark.asyncio
async def test_cli_absent_message(cli_spy):
    cli_spy.is_installed.return_value = False
    server = _server(McpConfig(), cli_spy)

    with pytest.raises(McpError) as exc_info:
        await server.call_tool("infracost_breakdown", {"path": "."})

    assert exc_info.value.error.message == INSTALL_HINT


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_internal_error(cli_spy):
    cli_spy.output.side_effect = RuntimeError("event loop exploded")
    server = _server(McpConfig(), cli_spy)

    with pytest.raises(McpError) as exc_info:
        await server.call_tool("infracost_output", {"path": "infracost.json"})

    assert exc_info.value.error.code == INTERNAL_ERROR
    assert exc_info.value.error.message == "event loop exploded"


@pytest.mark.asyncio
async def test_metrics_recorded_when_enabled(cli_spy):
    config = McpConfig()
    config.observability.enabled = True
    cli_spy.upload.return_value = CommandResult.ok("ok")
    server = _server(config, cli_spy)

    await server.call_tool("infracost_upload", {"path": "a.json"})
    with pytest.raises(McpError):
        await server.call_tool("infracost_upload", {})

    stats = server.obs.get_stats()
    assert stats["total_requests"] == 2
    assert stats["total_errors"] == 1
    assert stats["tools"]["infracost_upload"]["calls"] == 2
    assert stats["tools"]["infracost_upload"]["errors"] == 1


@pytest.mark.asyncio
async def test_metrics_skipped_when_disabled(cli_spy):
    cli_spy.upload.return_value = CommandResult.ok("ok")
    server = _server(McpConfig(), cli_spy)

    await server.call_tool("infracost_upload", {"path": "a.json"})

    assert server.obs.get_stats()["total_requests"] == 0


def test_metrics_collector_reset():
    metrics = MetricsCollector()
    metrics.record_call("infracost_diff", latency_ms=12.5, success=True)
    metrics.record_call("infracost_diff", latency_ms=7.5, success=False)

    tool = metrics.get_stats()["tools"]["infracost_diff"]
    assert tool == {"calls": 2, "errors": 1, "avg_ms": 10.0, "min_ms": 7.5, "max_ms": 12.5}

    metrics.reset()
    assert metrics.get_stats()["tools"] == {}


def test_json_log_formatter_includes_extra_fields():
    record = logging.LogRecord(
        name="infracost-mcp",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="call_tool done: %s",
        args=("infracost_diff",),
        exc_info=None,
    )
    record.correlation_id = "abcd1234"
    record.tool = "infracost_diff"
    record.latency_ms = 3.21
    record.status = "ok"

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["level"] == "info"
    assert payload["msg"] == "call_tool done: infracost_diff"
    assert payload["cid"] == "abcd1234"
    assert payload["tool"] == "infracost_diff"
    assert payload["latency_ms"] == 3.21
    assert payload["status"] == "ok"
    assert "error" not in payload

    assert "cid" not in json.loads(JsonLogFormatter(include_correlation_id=False).format(record))


# --- JSON-RPC request path ---


def _call_request(name: str, arguments: dict | None) -> CallToolRequest:
    return CallToolRequest(
        method="tools/call", params=CallToolRequestParams(name=name, arguments=arguments)
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("name", "arguments", "code"),
    [
        ("infracost_nope", {}, METHOD_NOT_FOUND),
        ("infracost_breakdown", {"format": "json"}, INVALID_PARAMS),
        ("infracost_cloud_list_guardrails", {"orgSlug": "acme"}, INTERNAL_ERROR),
    ],
)
async def test_request_handler_raises_typed_errors(cli_spy, name, arguments, code):
    server = _server(McpConfig(), cli_spy)
    handler = server.server.request_handlers[CallToolRequest]

    with pytest.raises(McpError) as exc_info:
        await handler(_call_request(name, arguments))

    assert exc_info.value.error.code == code


@pytest.mark.asyncio
async def test_request_handler_keeps_field_level_issues(cli_spy):
    server = _server(McpConfig(), cli_spy)
    handler = server.server.request_handlers[CallToolRequest]

    with pytest.raises(McpError) as exc_info:
        await handler(_call_request("infracost_cloud_create_guardrail", {"name": "budget"}))

    assert exc_info.value.error.data == [
        {"path": "scope", "constraint": "required", "message": "field is required"}
    ]


@pytest.mark.asyncio
async def test_request_handler_success_result(cli_spy):
    cli_spy.upload.return_value = CommandResult.ok("Uploaded")
    server = _server(McpConfig(), cli_spy)
    handler = server.server.request_handlers[CallToolRequest]

    result = await handler(_call_request("infracost_upload", {"path": "a.json"}))

    assert result.root.isError is False
    assert result.root.content == [TextContent(type="text", text="Uploaded")]


@pytest.mark.asyncio
async def test_client_session_receives_jsonrpc_errors(cli_spy):
    cli_spy.upload.return_value = CommandResult.ok("Uploaded")
    server = _server(McpConfig(), cli_spy)

    async with create_connected_server_and_client_session(server.server) as client:
        listed = await client.list_tools()
        assert len(listed.tools) == 16

        ok = await client.call_tool("infracost_upload", {"path": "a.json"})
        assert not ok.isError
        assert ok.content[0].text == "Uploaded"

        with pytest.raises(McpError) as exc_info:
            await client.call_tool("infracost_diff", {"path": "."})
        assert exc_info.value.error.code == INVALID_PARAMS
        assert exc_info.value.error.data[0]["path"] == "compareTo"

        with pytest.raises(McpError) as exc_info:
            await client.call_tool("infracost_nope", {})
        assert exc_info.value.error.code == METHOD_NOT_FOUND


# --- metrics snapshot ---


@pytest.mark.asyncio
async def test_log_metrics_reports_snapshot(cli_spy, caplog):
    config = McpConfig()
    config.observability.enabled = True
    cli_spy.upload.return_value = CommandResult.ok("ok")
    server = _server(config, cli_spy)
    await server.call_tool("infracost_upload", {"path": "a.json"})

    with caplog.at_level(logging.INFO, logger="infracost-mcp"):
        server.log_metrics()

    line = next(r.getMessage() for r in caplog.records if r.getMessage().startswith("Tool metrics"))
    stats = json.loads(line.removeprefix("Tool metrics: "))
    assert stats["tools"]["infracost_upload"]["calls"] == 1


def test_log_metrics_silent_when_disabled(cli_spy, caplog):
    server = _server(McpConfig(), cli_spy)

    with caplog.at_level(logging.INFO, logger="infracost-mcp"):
        server.log_metrics()

    assert not any(r.getMessage().startswith("Tool metrics") for r in caplog.records)

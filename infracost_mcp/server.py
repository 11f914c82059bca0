#!/usr/bin/env python3
"""
Infracost MCP Server - Model Context Protocol interface for Infracost.

Supports stdio transport for Claude Desktop and other MCP clients.
Run with: python -m infracost_mcp

Tools:
- infracost_breakdown / diff / output / upload / comment: local infracost CLI
- infracost_cloud_*: Infracost Cloud API (tagging policies, guardrails,
  custom properties); need INFRACOST_SERVICE_TOKEN
"""  # noqa: I001

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolRequest, CallToolResult, ServerResult, TextContent, Tool

from infracost_mcp import __version__
from infracost_mcp.config import McpConfig, load_config, load_dotenv_if_present
from infracost_mcp.dispatcher import ToolDispatcher
from infracost_mcp.errors import InfracostToolError
from infracost_mcp.observability import (
    TEXT_LOG_FORMAT,
    ObservabilityContext,
    setup_logging,
)
from infracost_mcp.schemas import TOOL_SPECS

# Configure logging to stderr (stdout is the protocol channel)
logging.basicConfig(level=logging.INFO, format=TEXT_LOG_FORMAT, stream=sys.stderr)
logger = logging.getLogger("infracost-mcp")

TOOLS: list[Tool] = [
    Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema)
    for spec in TOOL_SPECS
]


class InfracostMcpServer:
    """Infracost MCP Server implementation."""

    def __init__(self, config: McpConfig, dispatcher: ToolDispatcher | None = None):
        self.config = config
        self.server = Server(config.server.name, version=__version__)
        self.obs = ObservabilityContext(config.observability)
        self.dispatcher = dispatcher or ToolDispatcher(config)
        self.tools = list(TOOLS)

        self._register_handlers()
        logger.info(
            f"Infracost MCP Server initialized ({len(self.tools)} tools, "
            f"cloud={'enabled' if self.dispatcher.cloud else 'disabled'})"
        )

    def _register_handlers(self):
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            logger.debug("list_tools called")
            return self.tools

        # Raw handler: McpError must reach the JSON-RPC layer as an error response
        self.server.request_handlers[CallToolRequest] = self._handle_call_tool_request

    async def _handle_call_tool_request(self, req: CallToolRequest) -> ServerResult:
        content = await self.call_tool(req.params.name, req.params.arguments)
        return ServerResult(CallToolResult(content=content, isError=False))

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> list[TextContent]:
        """Handle tool invocation with observability.

        Every failure leaves as an McpError carrying a JSON-RPC error code.
        """
        cid = self.obs.correlation_id()
        start_time = time.time()
        success = True
        error_msg = None

        logger.info(f"call_tool: {name}", extra={"correlation_id": cid, "tool": name})

        try:
            return await self.dispatcher.dispatch(name, arguments)
        except InfracostToolError as e:
            success = False
            error_msg = e.message
            raise e.to_mcp_error() from e
        except Exception as e:
            success = False
            error_msg = str(e) or type(e).__name__
            logger.exception(
                f"Tool {name} failed: {e}", extra={"correlation_id": cid, "tool": name}
            )
            raise InfracostToolError(error_msg).to_mcp_error() from e
        finally:
            latency_ms = (time.time() - start_time) * 1000
            self.obs.record(tool=name, latency_ms=latency_ms, success=success)
            logger.info(
                f"call_tool done: {name}",
                extra={
                    "correlation_id": cid,
                    "tool": name,
                    "latency_ms": round(latency_ms, 2),
                    "status": "ok" if success else "error",
                    "error": error_msg,
                },
            )

    async def run(self):
        """Run the server with stdio transport."""
        logger.info("Starting Infracost MCP server (stdio transport)")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(),
                )
        finally:
            self.log_metrics()

    def log_metrics(self) -> None:
        """Log the per-tool metrics snapshot (no-op when observability is off)."""
        if not self.obs.enabled:
            return
        logger.info(f"Tool metrics: {json.dumps(self.obs.get_stats(), sort_keys=True)}")


def main():
    """Entry point for the Infracost MCP server."""
    parser = argparse.ArgumentParser(description="Infracost MCP Server")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to infracost-mcp.toml config file",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Override log level",
    )
    args = parser.parse_args()

    load_dotenv_if_present()
    config = load_config(args.config)

    if args.log_level:
        config.server.log_level = args.log_level
        config.observability.log_level = args.log_level

    global logger  # noqa: PLW0603
    if config.observability.enabled:
        logger = setup_logging(config.observability, "infracost-mcp")
    else:
        log_level = getattr(logging, config.server.log_level.upper(), logging.INFO)
        logging.getLogger().setLevel(log_level)
        logger.setLevel(log_level)

    # Effective config, token masked
    logger.info("Infracost MCP Server Configuration:")
    logger.info(f"- Service Token: {config.cloud.masked_token()}")
    logger.info(f"- Organization: {config.cloud.org_slug or 'Not set'}")
    logger.info(f"- CLI binary: {config.cli.binary}")
    logger.info(f"- Cloud API: {config.cloud.api_base}")

    server = InfracostMcpServer(config)
    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Fatal error in main()")
        sys.exit(1)


if __name__ == "__main__":
    main()

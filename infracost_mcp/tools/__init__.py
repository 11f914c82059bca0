"""Infracost MCP backends - local CLI and Infracost Cloud API adapters."""

from infracost_mcp.tools.cli import (  # noqa: F401
    InfracostCli,
    OutputLimitExceeded,
    breakdown_args,
    comment_args,
    diff_args,
    output_args,
    upload_args,
)
from infracost_mcp.tools.cloud import InfracostCloudClient, jsonapi_envelope  # noqa: F401

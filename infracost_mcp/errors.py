"""Tool call failures and their JSON-RPC error codes."""

from __future__ import annotations

from typing import Any

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, ErrorData

INSTALL_HINT = (
    "Infracost CLI is not installed. Please install it from https://www.infracost.io/docs/"
)


class InfracostToolError(Exception):
    """Base class for failures raised while handling a tool call."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Any = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_mcp_error(self) -> McpError:
        return McpError(ErrorData(code=self.code, message=self.message, data=self.data))


class UnknownToolError(InfracostToolError):
    code = METHOD_NOT_FOUND

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ArgumentValidationError(InfracostToolError):
    """Arguments failed schema validation.

    ``issues`` is a list of ``{"path", "constraint", "message"}`` dicts.
    """

    code = INVALID_PARAMS

    def __init__(self, tool: str, issues: list[dict[str, str]]):
        summary = "; ".join(f"{i['path']}: {i['message']}" for i in issues)
        super().__init__(f"Invalid arguments for {tool}: {summary}", data=issues)
        self.tool = tool
        self.issues = issues


class MissingOrganizationError(InfracostToolError):
    code = INVALID_PARAMS

    def __init__(self):
        super().__init__(
            "Organization slug is required. Provide it via orgSlug parameter "
            "or set INFRACOST_ORG environment variable"
        )


class NotConfiguredError(InfracostToolError):
    code = INTERNAL_ERROR

    def __init__(self, token_env: str = "INFRACOST_SERVICE_TOKEN"):
        super().__init__(f"{token_env} is not configured for Infracost Cloud API operations")


class BackendUnavailableError(InfracostToolError):
    code = INTERNAL_ERROR

    def __init__(self, message: str = INSTALL_HINT):
        super().__init__(message)


class BackendError(InfracostToolError):
    """The backend returned a failure envelope."""

    code = INTERNAL_ERROR

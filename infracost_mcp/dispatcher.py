"""Tool registry and dispatch.

The dispatcher is the only place that turns a backend CommandResult into a
tool response or a typed failure.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
import logging
from types import MappingProxyType
from typing import Any

from mcp.types import TextContent

from infracost_mcp.config import McpConfig
from infracost_mcp.envelope import CommandResult
from infracost_mcp.errors import (
    BackendError,
    BackendUnavailableError,
    MissingOrganizationError,
    NotConfiguredError,
    UnknownToolError,
)
from infracost_mcp.schemas import TOOL_SPECS, ToolSpec
from infracost_mcp.tools.cli import InfracostCli
from infracost_mcp.tools.cloud import InfracostCloudClient
from infracost_mcp.transforms import (
    build_create_guardrail,
    build_create_tagging_policy,
    build_update_guardrail,
    build_update_tagging_policy,
    resolve_org_slug,
)

logger = logging.getLogger("infracost-mcp.dispatch")

ToolHandler = Callable[[dict[str, Any]], Awaitable[list[TextContent]]]


@dataclass(frozen=True)
class ToolDescriptor:
    """A registered tool: its spec (schema) and its handler."""

    spec: ToolSpec
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.spec.name


def text_response(result: CommandResult, default_message: str) -> list[TextContent]:
    return [TextContent(type="text", text=result.output or default_message)]


class ToolDispatcher:
    """Validates tool calls and routes them to the CLI or Cloud backend.

    ``cloud`` is None unless a service token was configured; every Cloud tool
    checks for it before doing anything else.
    """

    def __init__(
        self,
        config: McpConfig,
        cli: InfracostCli | None = None,
        cloud: InfracostCloudClient | None = None,
    ):
        self.config = config
        self.cli = cli or InfracostCli(config.cli)
        if cloud is None and config.cloud.configured:
            cloud = InfracostCloudClient(config.cloud)
        self.cloud = cloud

        handlers: dict[str, ToolHandler] = {
            "infracost_breakdown": self._handle_breakdown,
            "infracost_diff": self._handle_diff,
            "infracost_output": self._handle_output,
            "infracost_upload": self._handle_upload,
            "infracost_comment": self._handle_comment,
            "infracost_cloud_list_tagging_policies": self._handle_list_tagging_policies,
            "infracost_cloud_get_tagging_policy": self._handle_get_tagging_policy,
            "infracost_cloud_create_tagging_policy": self._handle_create_tagging_policy,
            "infracost_cloud_update_tagging_policy": self._handle_update_tagging_policy,
            "infracost_cloud_delete_tagging_policy": self._handle_delete_tagging_policy,
            "infracost_cloud_list_guardrails": self._handle_list_guardrails,
            "infracost_cloud_get_guardrail": self._handle_get_guardrail,
            "infracost_cloud_create_guardrail": self._handle_create_guardrail,
            "infracost_cloud_update_guardrail": self._handle_update_guardrail,
            "infracost_cloud_delete_guardrail": self._handle_delete_guardrail,
            "infracost_cloud_upload_custom_properties": self._handle_upload_custom_properties,
        }
        self.registry: Mapping[str, ToolDescriptor] = MappingProxyType(
            {spec.name: ToolDescriptor(spec, handlers[spec.name]) for spec in TOOL_SPECS}
        )

    @property
    def tool_names(self) -> list[str]:
        return list(self.registry)

    async def dispatch(self, name: str, arguments: Any) -> list[TextContent]:
        """
        Run one tool call.

        Raises:
            UnknownToolError: name not registered
            ArgumentValidationError: arguments fail the tool's schema
            InfracostToolError: configuration, availability or backend failure
        """
        descriptor = self.registry.get(name)
        if descriptor is None:
            raise UnknownToolError(name)

        args = descriptor.spec.validate(arguments)
        return await descriptor.handler(args)

    # --- shared checks ---

    def _require_cloud(self, args: dict[str, Any]) -> tuple[InfracostCloudClient, str]:
        if self.cloud is None:
            raise NotConfiguredError(self.config.cloud.token_env)
        org_slug = resolve_org_slug(args, self.config.cloud.org_slug)
        if not org_slug:
            raise MissingOrganizationError()
        return self.cloud, org_slug

    async def _require_cli(self) -> InfracostCli:
        if not await self.cli.is_installed():
            raise BackendUnavailableError()
        return self.cli

    @staticmethod
    def _unwrap(result: CommandResult, failure: str, success: str) -> list[TextContent]:
        if not result.success:
            raise BackendError(result.error or failure)
        return text_response(result, success)

    # --- CLI tools ---

    async def _handle_breakdown(self, args: dict[str, Any]) -> list[TextContent]:
        cli = await self._require_cli()
        result = await cli.breakdown(args)  # type: ignore[arg-type]
        return self._unwrap(result, "Breakdown command failed", "Breakdown completed successfully")

    async def _handle_diff(self, args: dict[str, Any]) -> list[TextContent]:
        cli = await self._require_cli()
        result = await cli.diff(args)  # type: ignore[arg-type]
        return self._unwrap(result, "Diff command failed", "Diff completed successfully")

    async def _handle_output(self, args: dict[str, Any]) -> list[TextContent]:
        cli = await self._require_cli()
        result = await cli.output(args)  # type: ignore[arg-type]
        return self._unwrap(result, "Output command failed", "Output generated successfully")

    async def _handle_upload(self, args: dict[str, Any]) -> list[TextContent]:
        cli = await self._require_cli()
        result = await cli.upload(args)  # type: ignore[arg-type]
        return self._unwrap(result, "Upload command failed", "Upload completed successfully")

    async def _handle_comment(self, args: dict[str, Any]) -> list[TextContent]:
        cli = await self._require_cli()
        result = await cli.comment(args)  # type: ignore[arg-type]
        return self._unwrap(result, "Comment command failed", "Comment posted successfully")

    # --- Cloud: tagging policies ---

    async def _handle_list_tagging_policies(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.list_tagging_policies(org)
        return self._unwrap(
            result,
            "List tagging policies request failed",
            "Tagging policies retrieved successfully",
        )

    async def _handle_get_tagging_policy(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.get_tagging_policy(org, args["policyId"])
        return self._unwrap(
            result, "Get tagging policy request failed", "Tagging policy retrieved successfully"
        )

    async def _handle_create_tagging_policy(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.create_tagging_policy(org, build_create_tagging_policy(args))
        return self._unwrap(
            result, "Create tagging policy request failed", "Tagging policy created successfully"
        )

    async def _handle_update_tagging_policy(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.update_tagging_policy(
            org, args["policyId"], build_update_tagging_policy(args)
        )
        return self._unwrap(
            result, "Update tagging policy request failed", "Tagging policy updated successfully"
        )

    async def _handle_delete_tagging_policy(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.delete_tagging_policy(org, args["policyId"])
        return self._unwrap(
            result, "Delete tagging policy request failed", "Tagging policy deleted successfully"
        )

    # --- Cloud: guardrails ---

    async def _handle_list_guardrails(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.list_guardrails(org)
        return self._unwrap(
            result, "List guardrails request failed", "Guardrails retrieved successfully"
        )

    async def _handle_get_guardrail(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.get_guardrail(org, args["guardrailId"])
        return self._unwrap(
            result, "Get guardrail request failed", "Guardrail retrieved successfully"
        )

    async def _handle_create_guardrail(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.create_guardrail(org, build_create_guardrail(args))
        return self._unwrap(
            result, "Create guardrail request failed", "Guardrail created successfully"
        )

    async def _handle_update_guardrail(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.update_guardrail(
            org, args["guardrailId"], build_update_guardrail(args)
        )
        return self._unwrap(
            result, "Update guardrail request failed", "Guardrail updated successfully"
        )

    async def _handle_delete_guardrail(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.delete_guardrail(org, args["guardrailId"])
        return self._unwrap(
            result, "Delete guardrail request failed", "Guardrail deleted successfully"
        )

    # --- Cloud: custom properties ---

    async def _handle_upload_custom_properties(self, args: dict[str, Any]) -> list[TextContent]:
        cloud, org = self._require_cloud(args)
        result = await cloud.upload_custom_properties(org, args["csvData"])
        return self._unwrap(
            result,
            "Upload custom properties request failed",
            "Custom properties uploaded successfully",
        )

"""Infracost Cloud API client.

One authenticated HTTP call per operation against ``{api_base}/orgs/{org}/...``.
Every outcome, including network failures, comes back as a CommandResult.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from infracost_mcp.config import InfracostCloudConfig
from infracost_mcp.envelope import CommandResult
from infracost_mcp.types import GuardrailAttributes, TaggingPolicyAttributes

logger = logging.getLogger("infracost-mcp.cloud")

TAGGING_POLICIES = "tagging-policies"
GUARDRAILS = "guardrails"
CUSTOM_PROPERTIES = "custom-properties"


def jsonapi_envelope(resource_type: str, attributes: dict[str, Any]) -> dict[str, Any]:
    """Wrap a write payload as ``{"data": {"type": ..., "attributes": ...}}``."""
    return {"data": {"type": resource_type, "attributes": attributes}}


def _segment(value: str) -> str:
    return quote(value, safe="")


class InfracostCloudClient:
    """Client for the Infracost Cloud REST API.

    Holds only the immutable credential, so one instance is safe to share
    between concurrent tool calls.
    """

    def __init__(self, config: InfracostCloudConfig):
        if not config.service_token:
            raise ValueError(f"{config.token_env} is required for Infracost Cloud API operations")
        self.base_url = config.api_base.rstrip("/")
        self.timeout = config.timeout
        self._service_token = config.service_token

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._service_token}"}

    def _client(self) -> httpx.AsyncClient:
        if self.timeout is None:
            return httpx.AsyncClient()
        return httpx.AsyncClient(timeout=self.timeout)

    def url(self, org_slug: str, collection: str, resource_id: str | None = None) -> str:
        url = f"{self.base_url}/orgs/{_segment(org_slug)}/{collection}"
        if resource_id is not None:
            url += f"/{_segment(resource_id)}"
        return url

    async def request(
        self,
        method: str,
        url: str,
        *,
        json_body: dict[str, Any] | None = None,
        csv_body: str | None = None,
        success_message: str = "Request completed successfully",
    ) -> CommandResult:
        """Send one request and normalize the response.

        - non-2xx: failure with status code and raw body text
        - 204: ``success_message``
        - JSON body: parsed ``data`` plus pretty-printed ``output``
        - anything else: ``success_message``
        """
        headers = self.headers
        content: str | None = None
        if json_body is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(json_body)
        elif csv_body is not None:
            headers["Content-Type"] = "text/csv"
            content = csv_body

        logger.debug(f"{method} {url}")
        try:
            async with self._client() as client:
                response = await client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e!r}")
            return CommandResult.fail(str(e) or type(e).__name__)

        if not response.is_success:
            return CommandResult.fail(
                f"API request failed with status {response.status_code}: {response.text}"
            )

        if response.status_code == 204 or not response.content:
            return CommandResult.ok(output=success_message)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return CommandResult.ok(output=success_message)

        try:
            data = response.json()
        except ValueError as e:
            return CommandResult.fail(
                f"API returned invalid JSON (status {response.status_code}): {e}"
            )

        return CommandResult.ok(output=json.dumps(data, indent=2), data=data)

    # --- tagging policies ---

    async def list_tagging_policies(self, org_slug: str) -> CommandResult:
        return await self.request(
            "GET",
            self.url(org_slug, TAGGING_POLICIES),
            success_message="Tagging policies retrieved successfully",
        )

    async def get_tagging_policy(self, org_slug: str, policy_id: str) -> CommandResult:
        return await self.request(
            "GET",
            self.url(org_slug, TAGGING_POLICIES, policy_id),
            success_message="Tagging policy retrieved successfully",
        )

    async def create_tagging_policy(
        self, org_slug: str, attributes: TaggingPolicyAttributes
    ) -> CommandResult:
        return await self.request(
            "POST",
            self.url(org_slug, TAGGING_POLICIES),
            json_body=jsonapi_envelope(TAGGING_POLICIES, dict(attributes)),
            success_message="Tagging policy created successfully",
        )

    async def update_tagging_policy(
        self, org_slug: str, policy_id: str, attributes: TaggingPolicyAttributes
    ) -> CommandResult:
        return await self.request(
            "PATCH",
            self.url(org_slug, TAGGING_POLICIES, policy_id),
            json_body=jsonapi_envelope(TAGGING_POLICIES, dict(attributes)),
            success_message="Tagging policy updated successfully",
        )

    async def delete_tagging_policy(self, org_slug: str, policy_id: str) -> CommandResult:
        return await self.request(
            "DELETE",
            self.url(org_slug, TAGGING_POLICIES, policy_id),
            success_message="Tagging policy deleted successfully",
        )

    # --- guardrails ---

    async def list_guardrails(self, org_slug: str) -> CommandResult:
        return await self.request(
            "GET",
            self.url(org_slug, GUARDRAILS),
            success_message="Guardrails retrieved successfully",
        )

    async def get_guardrail(self, org_slug: str, guardrail_id: str) -> CommandResult:
        return await self.request(
            "GET",
            self.url(org_slug, GUARDRAILS, guardrail_id),
            success_message="Guardrail retrieved successfully",
        )

    async def create_guardrail(
        self, org_slug: str, attributes: GuardrailAttributes
    ) -> CommandResult:
        return await self.request(
            "POST",
            self.url(org_slug, GUARDRAILS),
            json_body=jsonapi_envelope(GUARDRAILS, dict(attributes)),
            success_message="Guardrail created successfully",
        )

    async def update_guardrail(
        self, org_slug: str, guardrail_id: str, attributes: GuardrailAttributes
    ) -> CommandResult:
        return await self.request(
            "PATCH",
            self.url(org_slug, GUARDRAILS, guardrail_id),
            json_body=jsonapi_envelope(GUARDRAILS, dict(attributes)),
            success_message="Guardrail updated successfully",
        )

    async def delete_guardrail(self, org_slug: str, guardrail_id: str) -> CommandResult:
        return await self.request(
            "DELETE",
            self.url(org_slug, GUARDRAILS, guardrail_id),
            success_message="Guardrail deleted successfully",
        )

    # --- custom properties ---

    async def upload_custom_properties(self, org_slug: str, csv_data: str) -> CommandResult:
        return await self.request(
            "POST",
            self.url(org_slug, CUSTOM_PROPERTIES),
            csv_body=csv_data,
            success_message="Custom properties uploaded successfully",
        )

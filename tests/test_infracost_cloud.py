"""Tests for the Infracost Cloud API client (HTTP mocked with respx)."""

import json

import httpx
import pytest
import respx

from infracost_mcp.config import DEFAULT_API_BASE as API_BASE, InfracostCloudConfig
from infracost_mcp.tools.cloud import InfracostCloudClient, jsonapi_envelope

TOKEN = "ics_test_token_1234567890"


@pytest.fixture
def client() -> InfracostCloudClient:
    return InfracostCloudClient(InfracostCloudConfig(service_token=TOKEN, org_slug="acme"))


def test_client_requires_token():
    with pytest.raises(ValueError, match="INFRACOST_SERVICE_TOKEN"):
        InfracostCloudClient(InfracostCloudConfig())


def test_url_building(client):
    assert client.url("acme", "guardrails") == f"{API_BASE}/orgs/acme/guardrails"
    assert (
        client.url("acme", "tagging-policies", "tp/1")
        == f"{API_BASE}/orgs/acme/tagging-policies/tp%2F1"
    )


def test_custom_api_base_trailing_slash():
    client = InfracostCloudClient(
        InfracostCloudConfig(service_token=TOKEN, api_base="https://cloud.example/api/")
    )
    assert client.url("o", "guardrails") == "https://cloud.example/api/orgs/o/guardrails"


@pytest.mark.asyncio
@respx.mock
async def test_list_sends_bearer_token_and_parses_json(client):
    body = {"data": [{"id": "tp-1", "type": "tagging-policies"}]}
    route = respx.get(f"{API_BASE}/orgs/acme/tagging-policies").mock(
        return_value=httpx.Response(200, json=body)
    )

    result = await client.list_tagging_policies("acme")

    assert route.call_count == 1
    assert route.calls.last.request.headers["Authorization"] == f"Bearer {TOKEN}"
    assert result.success
    assert result.data == body
    assert result.output == json.dumps(body, indent=2)


@pytest.mark.asyncio
@respx.mock
async def test_delete_204_uses_success_message(client):
    respx.delete(f"{API_BASE}/orgs/acme/guardrails/g-1").mock(
        return_value=httpx.Response(204)
    )

    result = await client.delete_guardrail("acme", "g-1")

    assert result.success
    assert result.output == "Guardrail deleted successfully"
    assert result.data is None


@pytest.mark.asyncio
@respx.mock
async def test_empty_200_body_uses_success_message(client):
    respx.delete(f"{API_BASE}/orgs/acme/tagging-policies/tp-1").mock(
        return_value=httpx.Response(200, content=b"")
    )

    result = await client.delete_tagging_policy("acme", "tp-1")

    assert result.success
    assert result.output == "Tagging policy deleted successfully"


@pytest.mark.asyncio
@respx.mock
async def test_non_json_success_uses_success_message(client):
    respx.get(f"{API_BASE}/orgs/acme/guardrails").mock(
        return_value=httpx.Response(
            200, text="<html>ok</html>", headers={"Content-Type": "text/html"}
        )
    )

    result = await client.list_guardrails("acme")

    assert result.success
    assert result.output == "Guardrails retrieved successfully"
    assert result.data is None


@pytest.mark.asyncio
@respx.mock
async def test_error_status_carries_code_and_body(client):
    respx.get(f"{API_BASE}/orgs/acme/guardrails/missing").mock(
        return_value=httpx.Response(404, text='{"error":"not found"}')
    )

    result = await client.get_guardrail("acme", "missing")

    assert not result.success
    assert result.error == 'API request failed with status 404: {"error":"not found"}'
    assert result.output is None
    assert result.data is None


@pytest.mark.asyncio
@respx.mock
async def test_invalid_json_on_success_is_a_failure(client):
    respx.get(f"{API_BASE}/orgs/acme/guardrails").mock(
        return_value=httpx.Response(
            200, content=b"{not json", headers={"Content-Type": "application/json"}
        )
    )

    result = await client.list_guardrails("acme")

    assert not result.success
    assert "invalid JSON" in result.error


@pytest.mark.asyncio
@respx.mock
async def test_network_error_is_a_failure(client):
    respx.get(f"{API_BASE}/orgs/acme/guardrails").mock(
        side_effect=httpx.ConnectError("Connection refused")
    )

    result = await client.list_guardrails("acme")

    assert not result.success
    assert "Connection refused" in result.error


@pytest.mark.asyncio
@respx.mock
async def test_create_wraps_attributes_in_jsonapi_envelope(client):
    route = respx.post(f"{API_BASE}/orgs/acme/guardrails").mock(
        return_value=httpx.Response(201, json={"data": {"id": "g-9"}})
    )
    attributes = {"name": "Budget", "scope": "REPO", "webhookUrl": ""}

    result = await client.create_guardrail("acme", attributes)

    request = route.calls.last.request
    assert request.headers["Content-Type"] == "application/json"
    assert json.loads(request.content) == {
        "data": {"type": "guardrails", "attributes": attributes}
    }
    assert result.success
    assert result.data == {"data": {"id": "g-9"}}


@pytest.mark.asyncio
@respx.mock
async def test_update_tagging_policy_uses_patch(client):
    route = respx.patch(f"{API_BASE}/orgs/acme/tagging-policies/tp-1").mock(
        return_value=httpx.Response(200, json={"data": {"id": "tp-1"}})
    )

    result = await client.update_tagging_policy("acme", "tp-1", {"prComment": True})

    assert result.success
    assert json.loads(route.calls.last.request.content) == jsonapi_envelope(
        "tagging-policies", {"prComment": True}
    )


@pytest.mark.asyncio
@respx.mock
async def test_custom_properties_upload_sends_csv(client):
    csv_data = "resource,owner\naws_instance.web,platform\n"
    route = respx.post(f"{API_BASE}/orgs/acme/custom-properties").mock(
        return_value=httpx.Response(204)
    )

    result = await client.upload_custom_properties("acme", csv_data)

    request = route.calls.last.request
    assert request.headers["Content-Type"] == "text/csv"
    assert request.content.decode() == csv_data
    assert result.success
    assert result.output == "Custom properties uploaded successfully"

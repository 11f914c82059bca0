"""Reshape validated tool input into Infracost Cloud API attribute payloads.

All functions are pure. Optional fields absent from the input are absent from
the output; nothing is filled with ``None``.
"""

from __future__ import annotations

from typing import Any

from infracost_mcp.types import (
    Filters,
    GuardrailAttributes,
    GuardrailRequest,
    GuardrailScope,
    TaggingPolicyAttributes,
    TaggingPolicyRequest,
)

# Tool argument name -> API attribute name
GUARDRAIL_RENAMES = {
    "blockPullRequest": "blockPr",
    "commentOnPullRequest": "prComment",
}

# Copied through unchanged when present
GUARDRAIL_PASSTHROUGH = (
    "name",
    "increaseThreshold",
    "increasePercentThreshold",
    "totalThreshold",
    "message",
    "webhookUrl",
    "emailRecipientOrgMemberIds",
    "mailingListEmails",
    "msTeamsEmails",
)


def resolve_org_slug(args: dict[str, Any], default: str | None) -> str | None:
    """Explicit ``orgSlug`` argument, else the configured default."""
    return args.get("orgSlug") or default or None


def collapse_guardrail_scope(scope: GuardrailScope) -> dict[str, Any]:
    """
    Collapse a tool scope into the API's ``scope`` string plus ``filters``.

    ALL_PROJECTS and REPO both become "REPO"; only PROJECT becomes "PROJECT".
    ``filters.repos`` / ``filters.projects`` appear only for non-empty lists,
    and ``filters`` itself only when one of them does.
    """
    # TODO: confirm with the Cloud API owners whether ALL_PROJECTS should keep its own value
    result: dict[str, Any] = {"scope": "PROJECT" if scope["type"] == "PROJECT" else "REPO"}

    scope_filters: Filters = {}
    if scope.get("repositories"):
        scope_filters["repos"] = {"include": list(scope["repositories"])}
    if scope.get("projects"):
        scope_filters["projects"] = {"include": list(scope["projects"])}
    if scope_filters:
        result["filters"] = scope_filters

    return result


def _guardrail_attributes(args: GuardrailRequest) -> GuardrailAttributes:
    attributes: dict[str, Any] = {}
    for key in GUARDRAIL_PASSTHROUGH:
        if key in args:
            attributes[key] = args[key]  # type: ignore[literal-required]
    for key, api_key in GUARDRAIL_RENAMES.items():
        if key in args:
            attributes[api_key] = args[key]  # type: ignore[literal-required]
    if "scope" in args:
        attributes.update(collapse_guardrail_scope(args["scope"]))
    return attributes  # type: ignore[return-value]


def build_create_guardrail(args: GuardrailRequest) -> GuardrailAttributes:
    """Create payload. ``webhookUrl`` is always sent (empty string when absent)."""
    attributes = _guardrail_attributes(args)
    attributes["webhookUrl"] = args.get("webhookUrl") or ""
    return attributes


def build_update_guardrail(args: GuardrailRequest) -> GuardrailAttributes:
    """Partial update payload: only fields present in ``args``."""
    return _guardrail_attributes(args)


def build_create_tagging_policy(args: TaggingPolicyRequest) -> TaggingPolicyAttributes:
    return {k: v for k, v in args.items() if k != "orgSlug"}  # type: ignore[return-value]


def build_update_tagging_policy(args: TaggingPolicyRequest) -> TaggingPolicyAttributes:
    return {
        k: v for k, v in args.items() if k not in ("orgSlug", "policyId")
    }  # type: ignore[return-value]

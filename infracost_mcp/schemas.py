"""Tool input schemas.

Each tool has exactly one JSON Schema (draft 7) dictionary. The same
dictionary is advertised as the tool's ``inputSchema`` and compiled into the
validator, so the two cannot drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from jsonschema import Draft7Validator

from infracost_mcp.errors import ArgumentValidationError

ORG_SLUG_DESCRIPTION = (
    "Organization slug from Infracost Cloud (defaults to INFRACOST_ORG env var)"
)
CLI_NOTE = "Requires infracost CLI to be installed."
CLOUD_NOTE = "Requires INFRACOST_SERVICE_TOKEN environment variable."


# --- schema building blocks ---


def string(description: str | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "string"}
    if description:
        schema["description"] = description
    return schema


def enum(values: list[str], description: str) -> dict[str, Any]:
    return {"type": "string", "enum": values, "description": description}


def number(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


def boolean(description: str) -> dict[str, Any]:
    return {"type": "boolean", "description": description}


def string_list(description: str | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "array", "items": {"type": "string"}}
    if description:
        schema["description"] = description
    return schema


def string_map(description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "additionalProperties": {"type": "string"},
        "description": description,
    }


def obj(
    properties: dict[str, Any],
    required: list[str] | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    if description:
        schema["description"] = description
    return schema


def filter_set(description: str) -> dict[str, Any]:
    return obj({"include": string_list(), "exclude": string_list()}, description=description)


def filters(description: str) -> dict[str, Any]:
    return obj(
        {
            "repos": filter_set("Repository filters"),
            "projects": filter_set("Project filters"),
            "baseBranches": filter_set("Base branch filters"),
            "resources": filter_set("Resource filters"),
        },
        description=description,
    )


TAG_DEFINITION = obj(
    {
        "key": string("Tag key name"),
        "mandatory": boolean("Whether the tag is required"),
        "valueType": enum(
            ["ANY", "LIST", "REGEX"],
            "Value type: ANY (any value), LIST (predefined values), or REGEX (regex pattern)",
        ),
        "allowedValues": string_list("List of allowed values (for LIST type)"),
        "allowedRegex": string("Regex pattern for allowed values (for REGEX type)"),
        "message": string("Optional message to display if the tag is missing/invalid"),
    },
    required=["key", "mandatory", "valueType"],
)

GUARDRAIL_SCOPE = obj(
    {
        "type": enum(["ALL_PROJECTS", "REPO", "PROJECT"], "Scope type for the guardrail"),
        "repositories": string_list("Repository names (for REPO scope)"),
        "projects": string_list("Project names (for PROJECT scope)"),
    },
    required=["type"],
    description="Scope configuration",
)


def _tagging_policy_fields() -> dict[str, Any]:
    return {
        "name": string("Name for the tagging policy"),
        "message": string("The message to display in the PR comment"),
        "prComment": boolean("Whether to add a comment to the PR"),
        "blockPr": boolean("Whether to block the PR"),
        "tags": {
            "type": "array",
            "items": TAG_DEFINITION,
            "description": "Array of tag definitions",
        },
        "filters": filters("Filters to limit scope of the policy"),
    }


def _guardrail_fields() -> dict[str, Any]:
    return {
        "name": string("Name for the guardrail"),
        "scope": GUARDRAIL_SCOPE,
        "increaseThreshold": number("Threshold for cost increases (monthly dollar amount)"),
        "increasePercentThreshold": number("Threshold for cost increases (percentage)"),
        "totalThreshold": number("Threshold for total cost (monthly dollar amount)"),
        "message": string("Custom message to display when threshold is exceeded"),
        "webhookUrl": string("Webhook URL to notify when threshold is exceeded"),
        "blockPullRequest": boolean("Whether to block PR when threshold is exceeded"),
        "commentOnPullRequest": boolean("Whether to comment on PR when threshold is exceeded"),
        "emailRecipientOrgMemberIds": string_list("Array of organization member IDs to email"),
        "mailingListEmails": string_list("Array of email addresses to notify"),
        "msTeamsEmails": string_list("Array of MS Teams email addresses to notify"),
    }


def _org(**properties: Any) -> dict[str, Any]:
    return {"orgSlug": string(ORG_SLUG_DESCRIPTION), **properties}


# --- per-tool schemas ---


BREAKDOWN_SCHEMA = obj(
    {
        "path": string("Path to Terraform directory or plan JSON file"),
        "format": enum(["json", "table", "html"], "Output format (default: table)"),
        "outFile": string("Save output to a file"),
        "terraformVarFile": string_list("Terraform variable file paths"),
        "terraformVar": string_map("Terraform variables as key-value pairs"),
    },
    required=["path"],
)

DIFF_SCHEMA = obj(
    {
        "path": string("Path to current Terraform directory or plan JSON file"),
        "compareTo": string("Path to baseline Terraform directory or plan JSON file"),
        "format": enum(["json", "diff"], "Output format (default: diff)"),
        "outFile": string("Save output to a file"),
    },
    required=["path", "compareTo"],
)

OUTPUT_SCHEMA = obj(
    {
        "path": string("Path to Infracost JSON file(s) - supports glob patterns"),
        "format": enum(
            [
                "json",
                "table",
                "html",
                "diff",
                "github-comment",
                "gitlab-comment",
                "azure-repos-comment",
                "bitbucket-comment",
            ],
            "Output format",
        ),
        "outFile": string("Save output to a file"),
        "fields": string_list('Fields to include in output (e.g., ["price", "monthlyQuantity"])'),
        "showSkipped": boolean("Show skipped resources in output"),
    },
    required=["path"],
)

UPLOAD_SCHEMA = obj(
    {"path": string("Path to Infracost JSON file to upload")},
    required=["path"],
)

COMMENT_SCHEMA = obj(
    {
        "path": string("Path to Infracost JSON file"),
        "platform": enum(["github", "gitlab", "azure-repos", "bitbucket"], "Git platform"),
        "repo": string("Repository in format owner/repo"),
        "pullRequest": string("Pull request number"),
        "commit": string("Commit SHA to associate comment with"),
        "tag": string("Tag for comment identification"),
        "behavior": enum(
            ["update", "new", "delete-and-new"],
            "How to handle existing comments (default: update)",
        ),
    },
    required=["path", "platform"],
)

LIST_TAGGING_POLICIES_SCHEMA = obj(_org())

GET_TAGGING_POLICY_SCHEMA = obj(_org(policyId=string("Policy ID")), required=["policyId"])

CREATE_TAGGING_POLICY_SCHEMA = obj(_org(**_tagging_policy_fields()), required=["name", "tags"])

UPDATE_TAGGING_POLICY_SCHEMA = obj(
    _org(
        policyId=string("Policy ID from the URL in Infracost Cloud UI"),
        **_tagging_policy_fields(),
    ),
    required=["policyId"],
)

DELETE_TAGGING_POLICY_SCHEMA = obj(
    _org(policyId=string("Policy ID to delete")), required=["policyId"]
)

LIST_GUARDRAILS_SCHEMA = obj(_org())

GET_GUARDRAIL_SCHEMA = obj(_org(guardrailId=string("Guardrail ID")), required=["guardrailId"])

CREATE_GUARDRAIL_SCHEMA = obj(_org(**_guardrail_fields()), required=["name", "scope"])

UPDATE_GUARDRAIL_SCHEMA = obj(
    _org(guardrailId=string("Guardrail ID"), **_guardrail_fields()),
    required=["guardrailId"],
)

DELETE_GUARDRAIL_SCHEMA = obj(
    _org(guardrailId=string("Guardrail ID to delete")), required=["guardrailId"]
)

UPLOAD_CUSTOM_PROPERTIES_SCHEMA = obj(
    _org(csvData=string("CSV data containing custom properties")),
    required=["csvData"],
)


# --- tool specs ---


@dataclass(frozen=True)
class ToolSpec:
    """Name, description and input schema of one tool."""

    name: str
    description: str
    input_schema: dict[str, Any]
    validator: Draft7Validator = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        Draft7Validator.check_schema(self.input_schema)
        object.__setattr__(self, "validator", Draft7Validator(self.input_schema))

    def validate(self, arguments: Any) -> dict[str, Any]:
        return validate_arguments(self, arguments)


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        "infracost_breakdown",
        "Generate a cost breakdown for Terraform infrastructure. Analyzes Terraform "
        "configuration and provides detailed cost estimates for resources. " + CLI_NOTE,
        BREAKDOWN_SCHEMA,
    ),
    ToolSpec(
        "infracost_diff",
        "Show cost differences between two Terraform configurations. Compares baseline "
        "and current infrastructure to identify cost changes. " + CLI_NOTE,
        DIFF_SCHEMA,
    ),
    ToolSpec(
        "infracost_output",
        "Combine and format Infracost JSON files. Useful for merging multiple cost "
        "estimates or converting formats. " + CLI_NOTE,
        OUTPUT_SCHEMA,
    ),
    ToolSpec(
        "infracost_upload",
        "Upload Infracost JSON output to Infracost Cloud for centralized cost tracking "
        "and reporting. " + CLI_NOTE,
        UPLOAD_SCHEMA,
    ),
    ToolSpec(
        "infracost_comment",
        "Post cost estimate comments to pull requests on GitHub, GitLab, Azure Repos, or "
        "Bitbucket. Automatically updates existing comments. Requires infracost CLI to be "
        "installed and appropriate platform credentials.",
        COMMENT_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_list_tagging_policies",
        "List all tagging policies in Infracost Cloud. " + CLOUD_NOTE,
        LIST_TAGGING_POLICIES_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_get_tagging_policy",
        "Get a specific tagging policy from Infracost Cloud. " + CLOUD_NOTE,
        GET_TAGGING_POLICY_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_create_tagging_policy",
        "Create a new tagging policy in Infracost Cloud for tag validation in pull "
        "requests. " + CLOUD_NOTE,
        CREATE_TAGGING_POLICY_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_update_tagging_policy",
        "Update tagging policies in Infracost Cloud with allowed tag values for "
        "validation in pull requests. " + CLOUD_NOTE,
        UPDATE_TAGGING_POLICY_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_delete_tagging_policy",
        "Delete a tagging policy from Infracost Cloud. " + CLOUD_NOTE,
        DELETE_TAGGING_POLICY_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_list_guardrails",
        "List all guardrails in Infracost Cloud. " + CLOUD_NOTE,
        LIST_GUARDRAILS_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_get_guardrail",
        "Get a specific guardrail from Infracost Cloud. " + CLOUD_NOTE,
        GET_GUARDRAIL_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_create_guardrail",
        "Create cost guardrails in Infracost Cloud that notify stakeholders or block PRs "
        "when cost thresholds are exceeded. " + CLOUD_NOTE,
        CREATE_GUARDRAIL_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_update_guardrail",
        "Update an existing guardrail in Infracost Cloud. " + CLOUD_NOTE,
        UPDATE_GUARDRAIL_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_delete_guardrail",
        "Delete a guardrail from Infracost Cloud. " + CLOUD_NOTE,
        DELETE_GUARDRAIL_SCHEMA,
    ),
    ToolSpec(
        "infracost_cloud_upload_custom_properties",
        "Upload custom property values to Infracost Cloud via CSV for resource "
        "classification. " + CLOUD_NOTE,
        UPLOAD_CUSTOM_PROPERTIES_SCHEMA,
    ),
)

TOOL_SPECS_BY_NAME: dict[str, ToolSpec] = {spec.name: spec for spec in TOOL_SPECS}


# --- validation ---


def _field_path(parts: Any) -> str:
    path = ".".join(str(p) for p in parts)
    return path or "<root>"


def _issues(validator: Draft7Validator, arguments: Any) -> list[dict[str, str]]:
    issues: list[dict[str, str]] = []
    seen: set[tuple[str, str]] = set()

    errors = sorted(
        validator.iter_errors(arguments),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    for error in errors:
        parts = list(error.absolute_path)
        if error.validator == "required" and isinstance(error.instance, dict):
            for name in error.validator_value:
                if name in error.instance:
                    continue
                path = _field_path([*parts, name])
                if (path, "required") not in seen:
                    seen.add((path, "required"))
                    issues.append(
                        {"path": path, "constraint": "required", "message": "field is required"}
                    )
            continue

        path = _field_path(parts)
        key = (path, str(error.validator))
        if key in seen:
            continue
        seen.add(key)
        issues.append({"path": path, "constraint": str(error.validator), "message": error.message})

    return issues


def prune(schema: dict[str, Any], value: Any) -> Any:
    """Drop keys the schema does not declare, at every level.

    Objects without ``properties`` (free-form maps) are kept whole.
    """
    kind = schema.get("type")
    if kind == "object" and isinstance(value, dict):
        properties = schema.get("properties")
        if properties is None:
            return dict(value)
        return {k: prune(properties[k], v) for k, v in value.items() if k in properties}
    if kind == "array" and isinstance(value, list):
        items = schema.get("items", {})
        return [prune(items, v) for v in value]
    return value


def validate_arguments(spec: ToolSpec, arguments: Any) -> dict[str, Any]:
    """
    Validate raw tool arguments.

    Args:
        spec: Tool whose schema applies
        arguments: Untyped caller input (``None`` is treated as ``{}``)

    Returns:
        Normalized argument tree with unknown keys removed. Optional fields the
        caller omitted stay absent.

    Raises:
        ArgumentValidationError: With one issue per offending field path.
    """
    if arguments is None:
        arguments = {}

    issues = _issues(spec.validator, arguments)
    if issues:
        raise ArgumentValidationError(spec.name, issues)

    return prune(spec.input_schema, arguments)

"""Request shapes for every tool, after schema validation.

Optional keys are absent when the caller did not provide them; they are never
filled with ``None`` or an empty default.
"""

from typing import Literal, NotRequired, TypedDict


# --- CLI requests ---


class BreakdownOptions(TypedDict):
    path: str
    format: NotRequired[Literal["json", "table", "html"]]
    outFile: NotRequired[str]
    terraformVarFile: NotRequired[list[str]]
    terraformVar: NotRequired[dict[str, str]]


class DiffOptions(TypedDict):
    path: str
    compareTo: str
    format: NotRequired[Literal["json", "diff"]]
    outFile: NotRequired[str]


OutputFormat = Literal[
    "json",
    "table",
    "html",
    "diff",
    "github-comment",
    "gitlab-comment",
    "azure-repos-comment",
    "bitbucket-comment",
]


class OutputOptions(TypedDict):
    path: str
    format: NotRequired[OutputFormat]
    outFile: NotRequired[str]
    fields: NotRequired[list[str]]
    showSkipped: NotRequired[bool]


class UploadOptions(TypedDict):
    path: str


class CommentOptions(TypedDict):
    path: str
    platform: Literal["github", "gitlab", "azure-repos", "bitbucket"]
    repo: NotRequired[str]
    pullRequest: NotRequired[str]
    commit: NotRequired[str]
    tag: NotRequired[str]
    behavior: NotRequired[Literal["update", "new", "delete-and-new"]]


# --- Cloud shared shapes ---


class FilterSet(TypedDict, total=False):
    include: list[str]
    exclude: list[str]


class Filters(TypedDict, total=False):
    repos: FilterSet
    projects: FilterSet
    baseBranches: FilterSet
    resources: FilterSet


class TagDefinition(TypedDict):
    key: str
    mandatory: bool
    valueType: Literal["ANY", "LIST", "REGEX"]
    allowedValues: NotRequired[list[str]]  # valueType == "LIST"
    allowedRegex: NotRequired[str]  # valueType == "REGEX"
    message: NotRequired[str]


class GuardrailScope(TypedDict):
    type: Literal["ALL_PROJECTS", "REPO", "PROJECT"]
    repositories: NotRequired[list[str]]
    projects: NotRequired[list[str]]


# --- Cloud requests (tool input) ---


class OrgRequest(TypedDict, total=False):
    orgSlug: str


class TaggingPolicyRequest(TypedDict, total=False):
    orgSlug: str
    policyId: str
    name: str
    message: str
    prComment: bool
    blockPr: bool
    tags: list[TagDefinition]
    filters: Filters


class GuardrailRequest(TypedDict, total=False):
    orgSlug: str
    guardrailId: str
    name: str
    scope: GuardrailScope
    increaseThreshold: float
    increasePercentThreshold: float
    totalThreshold: float
    message: str
    webhookUrl: str
    blockPullRequest: bool
    commentOnPullRequest: bool
    emailRecipientOrgMemberIds: list[str]
    mailingListEmails: list[str]
    msTeamsEmails: list[str]


class CustomPropertiesRequest(TypedDict, total=False):
    orgSlug: str
    csvData: str


# --- Cloud API attribute payloads (backend shape) ---


class GuardrailAttributes(TypedDict, total=False):
    name: str
    scope: Literal["REPO", "PROJECT"]
    filters: Filters
    increaseThreshold: float
    increasePercentThreshold: float
    totalThreshold: float
    message: str
    webhookUrl: str
    prComment: bool
    blockPr: bool
    emailRecipientOrgMemberIds: list[str]
    mailingListEmails: list[str]
    msTeamsEmails: list[str]


class TaggingPolicyAttributes(TypedDict, total=False):
    name: str
    message: str
    filters: Filters
    prComment: bool
    blockPr: bool
    tags: list[TagDefinition]

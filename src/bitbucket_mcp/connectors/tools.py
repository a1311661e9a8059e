"""MCP tool definitions for the Bitbucket connector.

Tool names and input schemas are the public contract with MCP clients and
must not change shape.
"""

from enum import Enum
from typing import Any, Dict, List

from mcp import types


class ToolName(str, Enum):
    """Every tool the server publishes."""

    LIST_REPOSITORIES = "listRepositories"
    GET_REPOSITORY = "getRepository"
    GET_PULL_REQUESTS = "getPullRequests"
    CREATE_PULL_REQUEST = "createPullRequest"
    GET_PULL_REQUEST = "getPullRequest"
    UPDATE_PULL_REQUEST = "updatePullRequest"
    GET_PULL_REQUEST_ACTIVITY = "getPullRequestActivity"
    APPROVE_PULL_REQUEST = "approvePullRequest"
    UNAPPROVE_PULL_REQUEST = "unapprovePullRequest"
    DECLINE_PULL_REQUEST = "declinePullRequest"
    MERGE_PULL_REQUEST = "mergePullRequest"
    GET_PULL_REQUEST_COMMENTS = "getPullRequestComments"
    GET_PULL_REQUEST_DIFF = "getPullRequestDiff"
    GET_PULL_REQUEST_COMMITS = "getPullRequestCommits"
    ADD_PULL_REQUEST_COMMENT = "addPullRequestComment"
    ADD_PENDING_PULL_REQUEST_COMMENT = "addPendingPullRequestComment"
    REPLY_TO_PULL_REQUEST_COMMENT = "replyToPullRequestComment"
    PUBLISH_PENDING_COMMENTS = "publishPendingComments"
    GET_REPOSITORY_BRANCHING_MODEL = "getRepositoryBranchingModel"
    GET_REPOSITORY_BRANCHING_MODEL_SETTINGS = "getRepositoryBranchingModelSettings"
    UPDATE_REPOSITORY_BRANCHING_MODEL_SETTINGS = "updateRepositoryBranchingModelSettings"
    GET_EFFECTIVE_REPOSITORY_BRANCHING_MODEL = "getEffectiveRepositoryBranchingModel"
    GET_PROJECT_BRANCHING_MODEL = "getProjectBranchingModel"
    GET_PROJECT_BRANCHING_MODEL_SETTINGS = "getProjectBranchingModelSettings"
    UPDATE_PROJECT_BRANCHING_MODEL_SETTINGS = "updateProjectBranchingModelSettings"
    CREATE_DRAFT_PULL_REQUEST = "createDraftPullRequest"
    PUBLISH_DRAFT_PULL_REQUEST = "publishDraftPullRequest"
    CONVERT_TO_DRAFT = "convertTodraft"
    GET_PENDING_REVIEW_PRS = "getPendingReviewPRs"
    LIST_PIPELINE_RUNS = "listPipelineRuns"
    GET_PIPELINE_RUN = "getPipelineRun"
    RUN_PIPELINE = "runPipeline"
    STOP_PIPELINE = "stopPipeline"
    GET_PIPELINE_STEPS = "getPipelineSteps"
    GET_PIPELINE_STEP = "getPipelineStep"
    GET_PIPELINE_STEP_LOGS = "getPipelineStepLogs"


# ── Shared schema fragments ──────────────────────────────────────────

def _workspace() -> Dict[str, Any]:
    return {"type": "string", "description": "Bitbucket workspace name"}


def _repo_slug() -> Dict[str, Any]:
    return {"type": "string", "description": "Repository slug"}


def _pull_request_id() -> Dict[str, Any]:
    return {"type": "string", "description": "Pull request ID"}


def _pipeline_uuid() -> Dict[str, Any]:
    return {"type": "string", "description": "Pipeline UUID"}


def _step_uuid() -> Dict[str, Any]:
    return {"type": "string", "description": "Step UUID"}


def _project_key() -> Dict[str, Any]:
    return {"type": "string", "description": "Project key"}


def _inline() -> Dict[str, Any]:
    return {
        "type": "object",
        "description": "Inline comment information for commenting on specific lines",
        "properties": {
            "path": {
                "type": "string",
                "description": "Path to the file in the repository",
            },
            "from": {
                "type": "number",
                "description": "Line number in the old version of the file (for deleted or modified lines)",
            },
            "to": {
                "type": "number",
                "description": "Line number in the new version of the file (for added or modified lines)",
            },
        },
        "required": ["path"],
    }


def _branching_model_settings_properties() -> Dict[str, Any]:
    return {
        "development": {
            "type": "object",
            "description": "Development branch settings",
            "properties": {
                "name": {"type": "string", "description": "Branch name"},
                "use_mainbranch": {
                    "type": "boolean",
                    "description": "Use main branch",
                },
            },
        },
        "production": {
            "type": "object",
            "description": "Production branch settings",
            "properties": {
                "name": {"type": "string", "description": "Branch name"},
                "use_mainbranch": {
                    "type": "boolean",
                    "description": "Use main branch",
                },
                "enabled": {
                    "type": "boolean",
                    "description": "Enable production branch",
                },
            },
        },
        "branch_types": {
            "type": "array",
            "description": "Branch types configuration",
            "items": {
                "type": "object",
                "properties": {
                    "kind": {
                        "type": "string",
                        "description": "Branch type kind (e.g., bugfix, feature)",
                    },
                    "prefix": {"type": "string", "description": "Branch prefix"},
                    "enabled": {
                        "type": "boolean",
                        "description": "Enable this branch type",
                    },
                },
                "required": ["kind"],
            },
        },
    }


def _repository_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "workspace": _workspace(),
            "repo_slug": _repo_slug(),
        },
        "required": ["workspace", "repo_slug"],
    }


def _pull_request_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "workspace": _workspace(),
            "repo_slug": _repo_slug(),
            "pull_request_id": _pull_request_id(),
        },
        "required": ["workspace", "repo_slug", "pull_request_id"],
    }


def _project_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "workspace": _workspace(),
            "project_key": _project_key(),
        },
        "required": ["workspace", "project_key"],
    }


def _pipeline_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "workspace": _workspace(),
            "repo_slug": _repo_slug(),
            "pipeline_uuid": _pipeline_uuid(),
        },
        "required": ["workspace", "repo_slug", "pipeline_uuid"],
    }


def _pipeline_step_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "workspace": _workspace(),
            "repo_slug": _repo_slug(),
            "pipeline_uuid": _pipeline_uuid(),
            "step_uuid": _step_uuid(),
        },
        "required": ["workspace", "repo_slug", "pipeline_uuid", "step_uuid"],
    }


def _create_pull_request_schema(with_draft: bool) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        "workspace": _workspace(),
        "repo_slug": _repo_slug(),
        "title": {"type": "string", "description": "Pull request title"},
        "description": {
            "type": "string",
            "description": "Pull request description",
        },
        "sourceBranch": {
            "type": "string",
            "description": "Source branch name",
        },
        "targetBranch": {
            "type": "string",
            "description": "Target branch name",
        },
        "reviewers": {
            "type": "array",
            "items": {"type": "string"},
            "description": "List of reviewer usernames",
        },
    }
    if with_draft:
        properties["draft"] = {
            "type": "boolean",
            "description": "Whether to create the pull request as a draft",
        }
    return {
        "type": "object",
        "properties": properties,
        "required": [
            "workspace",
            "repo_slug",
            "title",
            "description",
            "sourceBranch",
            "targetBranch",
        ],
    }


def _update_branching_model_settings_schema(scope_field: str) -> Dict[str, Any]:
    scope_property = _repo_slug() if scope_field == "repo_slug" else _project_key()
    return {
        "type": "object",
        "properties": {
            "workspace": _workspace(),
            scope_field: scope_property,
            **_branching_model_settings_properties(),
        },
        "required": ["workspace", scope_field],
    }


def _extend(schema: Dict[str, Any], extra_properties: Dict[str, Any]) -> Dict[str, Any]:
    schema["properties"].update(extra_properties)
    return schema


# ── Tool list ────────────────────────────────────────────────────────

def get_tools() -> List[types.Tool]:
    """Return the full list of Bitbucket tools, in publication order."""
    return [
        types.Tool(
            name=ToolName.LIST_REPOSITORIES.value,
            description="List Bitbucket repositories",
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _workspace(),
                    "limit": {
                        "type": "number",
                        "description": "Maximum number of repositories to return",
                    },
                    "name": {
                        "type": "string",
                        "description": "Filter repositories by name (partial match supported)",
                    },
                },
            },
        ),
        types.Tool(
            name=ToolName.GET_REPOSITORY.value,
            description="Get repository details",
            inputSchema=_repository_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PULL_REQUESTS.value,
            description="Get pull requests for a repository",
            inputSchema=_extend(_repository_schema(), {
                "state": {
                    "type": "string",
                    "enum": ["OPEN", "MERGED", "DECLINED", "SUPERSEDED"],
                    "description": "Pull request state",
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of pull requests to return",
                },
            }),
        ),
        types.Tool(
            name=ToolName.CREATE_PULL_REQUEST.value,
            description="Create a new pull request",
            inputSchema=_create_pull_request_schema(with_draft=True),
        ),
        types.Tool(
            name=ToolName.GET_PULL_REQUEST.value,
            description="Get details for a specific pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.UPDATE_PULL_REQUEST.value,
            description="Update a pull request",
            inputSchema=_extend(_pull_request_schema(), {
                "title": {"type": "string", "description": "New pull request title"},
                "description": {
                    "type": "string",
                    "description": "New pull request description",
                },
            }),
        ),
        types.Tool(
            name=ToolName.GET_PULL_REQUEST_ACTIVITY.value,
            description="Get activity log for a pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.APPROVE_PULL_REQUEST.value,
            description="Approve a pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.UNAPPROVE_PULL_REQUEST.value,
            description="Remove approval from a pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.DECLINE_PULL_REQUEST.value,
            description="Decline a pull request",
            inputSchema=_extend(_pull_request_schema(), {
                "message": {"type": "string", "description": "Reason for declining"},
            }),
        ),
        types.Tool(
            name=ToolName.MERGE_PULL_REQUEST.value,
            description="Merge a pull request",
            inputSchema=_extend(_pull_request_schema(), {
                "message": {"type": "string", "description": "Merge commit message"},
                "strategy": {
                    "type": "string",
                    "enum": ["merge-commit", "squash", "fast-forward"],
                    "description": "Merge strategy",
                },
            }),
        ),
        types.Tool(
            name=ToolName.GET_PULL_REQUEST_COMMENTS.value,
            description="List comments on a pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PULL_REQUEST_DIFF.value,
            description="Get diff for a pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PULL_REQUEST_COMMITS.value,
            description="Get commits on a pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.ADD_PULL_REQUEST_COMMENT.value,
            description="Add a comment to a pull request (general, inline, or reply to parent comment)",
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _workspace(),
                    "repo_slug": _repo_slug(),
                    "pull_request_id": _pull_request_id(),
                    "content": {
                        "type": "string",
                        "description": "Comment content in markdown format",
                    },
                    "pending": {
                        "type": "boolean",
                        "description": "Whether to create this comment as a pending comment (draft state)",
                    },
                    "inline": _inline(),
                    "parent": {
                        "type": "object",
                        "description": "Parent comment information for replying to an existing comment",
                        "properties": {
                            "id": {
                                "type": "string",
                                "description": "ID of the parent comment to reply to",
                            },
                        },
                        "required": ["id"],
                    },
                },
                "required": ["workspace", "repo_slug", "pull_request_id", "content"],
            },
        ),
        types.Tool(
            name=ToolName.ADD_PENDING_PULL_REQUEST_COMMENT.value,
            description="Add a pending (draft) comment to a pull request that can be published later",
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _workspace(),
                    "repo_slug": _repo_slug(),
                    "pull_request_id": _pull_request_id(),
                    "content": {
                        "type": "string",
                        "description": "Comment content in markdown format",
                    },
                    "inline": _inline(),
                },
                "required": ["workspace", "repo_slug", "pull_request_id", "content"],
            },
        ),
        types.Tool(
            name=ToolName.REPLY_TO_PULL_REQUEST_COMMENT.value,
            description="Reply to an existing comment on a pull request",
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _workspace(),
                    "repo_slug": _repo_slug(),
                    "pull_request_id": _pull_request_id(),
                    "parent_comment_id": {
                        "type": "string",
                        "description": "ID of the parent comment to reply to",
                    },
                    "content": {
                        "type": "string",
                        "description": "Reply content in markdown format",
                    },
                    "pending": {
                        "type": "boolean",
                        "description": "Whether to create this reply as a pending comment (draft state)",
                    },
                },
                "required": ["workspace", "repo_slug", "pull_request_id", "parent_comment_id", "content"],
            },
        ),
        types.Tool(
            name=ToolName.PUBLISH_PENDING_COMMENTS.value,
            description="Publish all pending comments for a pull request",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.GET_REPOSITORY_BRANCHING_MODEL.value,
            description="Get the branching model for a repository",
            inputSchema=_repository_schema(),
        ),
        types.Tool(
            name=ToolName.GET_REPOSITORY_BRANCHING_MODEL_SETTINGS.value,
            description="Get the branching model config for a repository",
            inputSchema=_repository_schema(),
        ),
        types.Tool(
            name=ToolName.UPDATE_REPOSITORY_BRANCHING_MODEL_SETTINGS.value,
            description="Update the branching model config for a repository",
            inputSchema=_update_branching_model_settings_schema("repo_slug"),
        ),
        types.Tool(
            name=ToolName.GET_EFFECTIVE_REPOSITORY_BRANCHING_MODEL.value,
            description="Get the effective branching model for a repository",
            inputSchema=_repository_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PROJECT_BRANCHING_MODEL.value,
            description="Get the branching model for a project",
            inputSchema=_project_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PROJECT_BRANCHING_MODEL_SETTINGS.value,
            description="Get the branching model config for a project",
            inputSchema=_project_schema(),
        ),
        types.Tool(
            name=ToolName.UPDATE_PROJECT_BRANCHING_MODEL_SETTINGS.value,
            description="Update the branching model config for a project",
            inputSchema=_update_branching_model_settings_schema("project_key"),
        ),
        types.Tool(
            name=ToolName.CREATE_DRAFT_PULL_REQUEST.value,
            description="Create a new draft pull request",
            inputSchema=_create_pull_request_schema(with_draft=False),
        ),
        types.Tool(
            name=ToolName.PUBLISH_DRAFT_PULL_REQUEST.value,
            description="Publish a draft pull request to make it ready for review",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.CONVERT_TO_DRAFT.value,
            description="Convert a regular pull request to draft status",
            inputSchema=_pull_request_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PENDING_REVIEW_PRS.value,
            description=(
                "List all open pull requests in the workspace where the authenticated "
                "user is a reviewer and has not yet approved."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": {
                        "type": "string",
                        "description": "Bitbucket workspace name (optional, defaults to BITBUCKET_WORKSPACE)",
                    },
                    "limit": {
                        "type": "number",
                        "description": "Maximum number of PRs to return (optional)",
                    },
                    "repositoryList": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "List of repository slugs to check (optional)",
                    },
                },
            },
        ),
        types.Tool(
            name=ToolName.LIST_PIPELINE_RUNS.value,
            description="List pipeline runs for a repository",
            inputSchema=_extend(_repository_schema(), {
                "limit": {
                    "type": "number",
                    "description": "Maximum number of pipelines to return",
                },
                "status": {
                    "type": "string",
                    "enum": ["PENDING", "IN_PROGRESS", "SUCCESSFUL", "FAILED", "ERROR", "STOPPED"],
                    "description": "Filter pipelines by status",
                },
                "target_branch": {
                    "type": "string",
                    "description": "Filter pipelines by target branch",
                },
                "trigger_type": {
                    "type": "string",
                    "enum": ["manual", "push", "pullrequest", "schedule"],
                    "description": "Filter pipelines by trigger type",
                },
            }),
        ),
        types.Tool(
            name=ToolName.GET_PIPELINE_RUN.value,
            description="Get details for a specific pipeline run",
            inputSchema=_pipeline_schema(),
        ),
        types.Tool(
            name=ToolName.RUN_PIPELINE.value,
            description="Trigger a new pipeline run",
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _workspace(),
                    "repo_slug": _repo_slug(),
                    "target": {
                        "type": "object",
                        "description": "Pipeline target configuration",
                        "properties": {
                            "ref_type": {
                                "type": "string",
                                "enum": ["branch", "tag", "bookmark", "named_branch"],
                                "description": "Reference type",
                            },
                            "ref_name": {
                                "type": "string",
                                "description": "Reference name (branch, tag, etc.)",
                            },
                            "commit_hash": {
                                "type": "string",
                                "description": "Specific commit hash to run pipeline on",
                            },
                            "selector_type": {
                                "type": "string",
                                "enum": ["default", "custom", "pull-requests"],
                                "description": "Pipeline selector type",
                            },
                            "selector_pattern": {
                                "type": "string",
                                "description": "Pipeline selector pattern (for custom pipelines)",
                            },
                        },
                        "required": ["ref_type", "ref_name"],
                    },
                    "variables": {
                        "type": "array",
                        "description": "Pipeline variables",
                        "items": {
                            "type": "object",
                            "properties": {
                                "key": {"type": "string", "description": "Variable name"},
                                "value": {"type": "string", "description": "Variable value"},
                                "secured": {
                                    "type": "boolean",
                                    "description": "Whether the variable is secured",
                                },
                            },
                            "required": ["key", "value"],
                        },
                    },
                },
                "required": ["workspace", "repo_slug", "target"],
            },
        ),
        types.Tool(
            name=ToolName.STOP_PIPELINE.value,
            description="Stop a running pipeline",
            inputSchema=_pipeline_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PIPELINE_STEPS.value,
            description="List steps for a pipeline run",
            inputSchema=_pipeline_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PIPELINE_STEP.value,
            description="Get details for a specific pipeline step",
            inputSchema=_pipeline_step_schema(),
        ),
        types.Tool(
            name=ToolName.GET_PIPELINE_STEP_LOGS.value,
            description="Get logs for a specific pipeline step",
            inputSchema=_pipeline_step_schema(),
        ),
    ]


def get_input_schemas() -> Dict[str, Dict[str, Any]]:
    """Map each tool name to its input schema."""
    return {tool.name: tool.inputSchema for tool in get_tools()}

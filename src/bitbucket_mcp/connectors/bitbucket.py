"""Bitbucket Cloud connector implementation.

Provides 36 tools for interacting with Bitbucket Cloud API v2: repositories,
pull requests and their comments, branching models, and pipelines.
API base: https://api.bitbucket.org/2.0/ (overridable with BITBUCKET_URL).

Almost every tool is a single request: check the required arguments, map
them onto one endpoint, and return the JSON body (pretty printed) or raw
text. The exceptions are the diff lookup, pending comment publication, and
the pending review scan in ``pending_review``.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from mcp import types

from ..config import Settings
from ..observability.logging import clear_log_context, set_log_context
from .exceptions import BitbucketError, InvalidInputError, UnknownToolError, UpstreamError
from .http_client import BitbucketClient
from .pending_review import PendingReviewAggregator
from .tools import ToolName, get_input_schemas, get_tools

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any]], Awaitable[str]]

DEFAULT_PAGE_LIMIT = 10

# Bitbucket rejects page sizes above these
MAX_REPOSITORY_PAGELEN = 100
MAX_PULL_REQUEST_PAGELEN = 50
MAX_PIPELINE_PAGELEN = 100

APPROVAL_REMOVED_MESSAGE = "Pull request approval removed successfully."
PIPELINE_STOPPED_MESSAGE = "Pipeline stop signal sent successfully."
NO_PENDING_COMMENTS_MESSAGE = "No pending comments found to publish."


class BitbucketConnector:
    """Bitbucket Cloud connector for repositories, pull requests, branching models, and pipelines."""

    def __init__(self, client: BitbucketClient, settings: Settings):
        self.client = client
        self.settings = settings
        self.pending_reviews = PendingReviewAggregator(client, settings)
        self._schemas = get_input_schemas()
        self._handlers: Dict[ToolName, Handler] = {
            ToolName.LIST_REPOSITORIES: self._list_repositories,
            ToolName.GET_REPOSITORY: self._get_repository,
            ToolName.GET_PULL_REQUESTS: self._get_pull_requests,
            ToolName.CREATE_PULL_REQUEST: self._create_pull_request,
            ToolName.GET_PULL_REQUEST: self._get_pull_request,
            ToolName.UPDATE_PULL_REQUEST: self._update_pull_request,
            ToolName.GET_PULL_REQUEST_ACTIVITY: self._get_pull_request_activity,
            ToolName.APPROVE_PULL_REQUEST: self._approve_pull_request,
            ToolName.UNAPPROVE_PULL_REQUEST: self._unapprove_pull_request,
            ToolName.DECLINE_PULL_REQUEST: self._decline_pull_request,
            ToolName.MERGE_PULL_REQUEST: self._merge_pull_request,
            ToolName.GET_PULL_REQUEST_COMMENTS: self._get_pull_request_comments,
            ToolName.GET_PULL_REQUEST_DIFF: self._get_pull_request_diff,
            ToolName.GET_PULL_REQUEST_COMMITS: self._get_pull_request_commits,
            ToolName.ADD_PULL_REQUEST_COMMENT: self._add_pull_request_comment,
            ToolName.ADD_PENDING_PULL_REQUEST_COMMENT: self._add_pending_pull_request_comment,
            ToolName.REPLY_TO_PULL_REQUEST_COMMENT: self._reply_to_pull_request_comment,
            ToolName.PUBLISH_PENDING_COMMENTS: self._publish_pending_comments,
            ToolName.GET_REPOSITORY_BRANCHING_MODEL: self._get_repository_branching_model,
            ToolName.GET_REPOSITORY_BRANCHING_MODEL_SETTINGS: self._get_repository_branching_model_settings,
            ToolName.UPDATE_REPOSITORY_BRANCHING_MODEL_SETTINGS: self._update_repository_branching_model_settings,
            ToolName.GET_EFFECTIVE_REPOSITORY_BRANCHING_MODEL: self._get_effective_repository_branching_model,
            ToolName.GET_PROJECT_BRANCHING_MODEL: self._get_project_branching_model,
            ToolName.GET_PROJECT_BRANCHING_MODEL_SETTINGS: self._get_project_branching_model_settings,
            ToolName.UPDATE_PROJECT_BRANCHING_MODEL_SETTINGS: self._update_project_branching_model_settings,
            ToolName.CREATE_DRAFT_PULL_REQUEST: self._create_draft_pull_request,
            ToolName.PUBLISH_DRAFT_PULL_REQUEST: self._publish_draft_pull_request,
            ToolName.CONVERT_TO_DRAFT: self._convert_to_draft,
            ToolName.GET_PENDING_REVIEW_PRS: self._get_pending_review_prs,
            ToolName.LIST_PIPELINE_RUNS: self._list_pipeline_runs,
            ToolName.GET_PIPELINE_RUN: self._get_pipeline_run,
            ToolName.RUN_PIPELINE: self._run_pipeline,
            ToolName.STOP_PIPELINE: self._stop_pipeline,
            ToolName.GET_PIPELINE_STEPS: self._get_pipeline_steps,
            ToolName.GET_PIPELINE_STEP: self._get_pipeline_step,
            ToolName.GET_PIPELINE_STEP_LOGS: self._get_pipeline_step_logs,
        }

        missing = [tool.value for tool in ToolName if tool not in self._handlers]
        if missing:
            raise RuntimeError(f"No handler registered for tools: {', '.join(missing)}")
        unpublished = {tool.value for tool in ToolName} ^ set(self._schemas)
        if unpublished:
            raise RuntimeError(f"Tool schemas out of sync with ToolName: {', '.join(sorted(unpublished))}")

    @property
    def display_name(self) -> str:
        return "Bitbucket"

    @property
    def description(self) -> str:
        return "Access Bitbucket Cloud repositories, pull requests, branching models, and pipelines"

    @property
    def handled_tools(self) -> List[ToolName]:
        return list(self._handlers)

    async def get_tools(self) -> List[types.Tool]:
        """Get available Bitbucket tools."""
        return get_tools()

    async def execute_tool(self, tool_name: str, arguments: Optional[Dict[str, Any]] = None) -> str:
        """Execute a Bitbucket tool and return its text result.

        Raises:
            UnknownToolError: The tool name is not published.
            InvalidInputError: A required argument is missing; no request was sent.
            UpstreamError: Bitbucket rejected the request or was unreachable.
        """
        try:
            tool = ToolName(tool_name)
        except ValueError:
            logger.warning("Unknown tool requested: %s", tool_name)
            raise UnknownToolError(tool_name) from None

        arguments = dict(arguments or {})
        set_log_context(
            tool=tool.value,
            workspace=_as_text(arguments.get("workspace")),
            repo_slug=_as_text(arguments.get("repo_slug")),
            pull_request_id=_as_text(arguments.get("pull_request_id")),
        )
        try:
            logger.info("Called tool: %s", tool.value)
            validate_arguments(self._schemas[tool.value], arguments)
            return await self._handlers[tool](arguments)
        except BitbucketError as e:
            logger.error("Tool %s failed: %s", tool.value, e)
            raise
        finally:
            clear_log_context()

    # ── Repository tools ─────────────────────────────────────────────

    async def _list_repositories(self, arguments: Dict[str, Any]) -> str:
        """List repositories in a workspace, optionally filtered by name."""
        workspace = self._resolve_workspace(arguments)
        limit = _optional_int(arguments, "limit", DEFAULT_PAGE_LIMIT)
        params: Dict[str, Any] = {"pagelen": min(limit, MAX_REPOSITORY_PAGELEN)}

        name = arguments.get("name")
        if name:
            params["q"] = f'name~"{name}"'

        response = await self.client.get(f"/repositories/{workspace}", params=params)
        return _dump(response.json().get("values", []))

    async def _get_repository(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(_repository_path(arguments))
        return _dump(response.json())

    # ── Pull request tools ───────────────────────────────────────────

    async def _get_pull_requests(self, arguments: Dict[str, Any]) -> str:
        """List pull requests for a repository."""
        limit = _optional_int(arguments, "limit", DEFAULT_PAGE_LIMIT)
        params: Dict[str, Any] = {"pagelen": min(limit, MAX_PULL_REQUEST_PAGELEN)}
        if arguments.get("state"):
            params["state"] = arguments["state"]

        response = await self.client.get(
            f"{_repository_path(arguments)}/pullrequests",
            params=params,
        )
        return _dump(response.json().get("values", []))

    async def _create_pull_request(self, arguments: Dict[str, Any]) -> str:
        return await self._submit_pull_request(arguments, draft=arguments.get("draft") is True)

    async def _create_draft_pull_request(self, arguments: Dict[str, Any]) -> str:
        return await self._submit_pull_request(arguments, draft=True)

    async def _submit_pull_request(self, arguments: Dict[str, Any], draft: bool) -> str:
        """Create a pull request; the source branch is closed on merge."""
        reviewers = arguments.get("reviewers") or []
        body = {
            "title": arguments["title"],
            "description": arguments["description"],
            "source": {"branch": {"name": arguments["sourceBranch"]}},
            "destination": {"branch": {"name": arguments["targetBranch"]}},
            "reviewers": [{"username": username} for username in reviewers],
            "close_source_branch": True,
            "draft": draft,
        }

        logger.info(
            "Creating %spull request %s -> %s",
            "draft " if draft else "",
            arguments["sourceBranch"],
            arguments["targetBranch"],
        )
        response = await self.client.post(
            f"{_repository_path(arguments)}/pullrequests",
            json=body,
        )
        return _dump(response.json())

    async def _get_pull_request(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(_pull_request_path(arguments))
        return _dump(response.json())

    async def _update_pull_request(self, arguments: Dict[str, Any]) -> str:
        """Update title and/or description; omitted fields are left alone."""
        body: Dict[str, Any] = {}
        if arguments.get("title") is not None:
            body["title"] = arguments["title"]
        if arguments.get("description") is not None:
            body["description"] = arguments["description"]

        response = await self.client.put(_pull_request_path(arguments), json=body)
        return _dump(response.json())

    async def _publish_draft_pull_request(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.put(_pull_request_path(arguments), json={"draft": False})
        return _dump(response.json())

    async def _convert_to_draft(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.put(_pull_request_path(arguments), json={"draft": True})
        return _dump(response.json())

    async def _get_pull_request_activity(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_pull_request_path(arguments)}/activity")
        return _dump(response.json().get("values", []))

    async def _approve_pull_request(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.post(f"{_pull_request_path(arguments)}/approve")
        return _dump(response.json())

    async def _unapprove_pull_request(self, arguments: Dict[str, Any]) -> str:
        await self.client.delete(f"{_pull_request_path(arguments)}/approve")
        return APPROVAL_REMOVED_MESSAGE

    async def _decline_pull_request(self, arguments: Dict[str, Any]) -> str:
        message = arguments.get("message")
        body = {"message": message} if message else {}
        response = await self.client.post(f"{_pull_request_path(arguments)}/decline", json=body)
        return _dump(response.json())

    async def _merge_pull_request(self, arguments: Dict[str, Any]) -> str:
        body: Dict[str, Any] = {}
        if arguments.get("message"):
            body["message"] = arguments["message"]
        if arguments.get("strategy"):
            body["merge_strategy"] = arguments["strategy"]

        response = await self.client.post(f"{_pull_request_path(arguments)}/merge", json=body)
        return _dump(response.json())

    async def _get_pull_request_commits(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_pull_request_path(arguments)}/commits")
        return _dump(response.json().get("values", []))

    async def _get_pull_request_diff(self, arguments: Dict[str, Any]) -> str:
        """Get the diff of a pull request as plain text.

        Bitbucket has no single endpoint for this: the pull request supplies
        the source and destination commits, and the diff between them is
        fetched from the repository diff endpoint. Large diffs are redirected
        to object storage, so redirects are followed.
        """
        workspace = arguments["workspace"]
        repo_slug = arguments["repo_slug"]
        pr_id = arguments["pull_request_id"]

        response = await self.client.get(_pull_request_path(arguments))
        pull_request = response.json()

        source_commit = _commit_hash(pull_request, "source")
        destination_commit = _commit_hash(pull_request, "destination")
        if not source_commit or not destination_commit:
            raise UpstreamError(
                f"Pull request {pr_id} is missing source or destination commit information"
            )

        logger.info("Fetching diff %s..%s", source_commit, destination_commit)
        response = await self.client.get(
            build_diff_path(workspace, repo_slug, source_commit, destination_commit),
            params={"from_pullrequest_id": str(pr_id), "topic": "true"},
            headers={"Accept": "text/plain"},
            follow_redirects=True,
        )
        return response.text

    # ── Comment tools ────────────────────────────────────────────────

    async def _get_pull_request_comments(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_pull_request_path(arguments)}/comments")
        return _dump(response.json().get("values", []))

    async def _add_pull_request_comment(self, arguments: Dict[str, Any]) -> str:
        parent = arguments.get("parent") or {}
        body = build_comment_body(
            arguments["content"],
            inline=arguments.get("inline"),
            pending=arguments.get("pending"),
            parent_id=parent.get("id"),
        )
        return await self._post_comment(arguments, body)

    async def _add_pending_pull_request_comment(self, arguments: Dict[str, Any]) -> str:
        body = build_comment_body(
            arguments["content"],
            inline=arguments.get("inline"),
            pending=True,
        )
        return await self._post_comment(arguments, body)

    async def _reply_to_pull_request_comment(self, arguments: Dict[str, Any]) -> str:
        body = build_comment_body(
            arguments["content"],
            pending=arguments.get("pending"),
            parent_id=arguments["parent_comment_id"],
        )
        return await self._post_comment(arguments, body)

    async def _post_comment(self, arguments: Dict[str, Any], body: Dict[str, Any]) -> str:
        logger.info(
            "Adding %s comment (pending=%s)",
            "inline" if "inline" in body else "general",
            body.get("pending", False),
        )
        response = await self.client.post(f"{_pull_request_path(arguments)}/comments", json=body)
        return _dump(response.json())

    async def _publish_pending_comments(self, arguments: Dict[str, Any]) -> str:
        """Publish every pending comment on a pull request.

        Each comment is updated on its own; one failing update is recorded in
        the result list and does not stop the others.
        """
        comments_path = f"{_pull_request_path(arguments)}/comments"
        response = await self.client.get(comments_path)
        comments = response.json().get("values") or []
        pending_comments = [c for c in comments if c.get("pending") is True]

        if not pending_comments:
            return NO_PENDING_COMMENTS_MESSAGE

        results = []
        for comment in pending_comments:
            comment_id = comment.get("id")
            body: Dict[str, Any] = {"content": comment.get("content"), "pending": False}
            if comment.get("inline"):
                body["inline"] = comment["inline"]

            try:
                update = await self.client.put(f"{comments_path}/{comment_id}", json=body)
                results.append({
                    "commentId": comment_id,
                    "status": "published",
                    "data": update.json(),
                })
            except BitbucketError as e:
                logger.warning("Failed to publish comment %s: %s", comment_id, e)
                results.append({
                    "commentId": comment_id,
                    "status": "error",
                    "error": str(e),
                })

        return _dump({
            "message": f"Published {len(pending_comments)} pending comments",
            "results": results,
        })

    # ── Branching model tools ────────────────────────────────────────

    async def _get_repository_branching_model(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_repository_path(arguments)}/branching-model")
        return _dump(response.json())

    async def _get_repository_branching_model_settings(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_repository_path(arguments)}/branching-model/settings")
        return _dump(response.json())

    async def _update_repository_branching_model_settings(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.put(
            f"{_repository_path(arguments)}/branching-model/settings",
            json=build_branching_model_update(arguments),
        )
        return _dump(response.json())

    async def _get_effective_repository_branching_model(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_repository_path(arguments)}/effective-branching-model")
        return _dump(response.json())

    async def _get_project_branching_model(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_project_path(arguments)}/branching-model")
        return _dump(response.json())

    async def _get_project_branching_model_settings(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_project_path(arguments)}/branching-model/settings")
        return _dump(response.json())

    async def _update_project_branching_model_settings(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.put(
            f"{_project_path(arguments)}/branching-model/settings",
            json=build_branching_model_update(arguments),
        )
        return _dump(response.json())

    # ── Pending review tool ──────────────────────────────────────────

    async def _get_pending_review_prs(self, arguments: Dict[str, Any]) -> str:
        repository_list = arguments.get("repositoryList")
        if repository_list is not None and (
            not isinstance(repository_list, list)
            or not all(isinstance(slug, str) and slug for slug in repository_list)
        ):
            raise InvalidInputError("repositoryList must be a list of repository slugs")

        report = await self.pending_reviews.find_pending_reviews(
            workspace=arguments.get("workspace"),
            limit=arguments.get("limit"),
            repository_list=repository_list,
        )
        return _dump(report.to_dict())

    # ── Pipeline tools ───────────────────────────────────────────────

    async def _list_pipeline_runs(self, arguments: Dict[str, Any]) -> str:
        """List pipeline runs; filters are applied by Bitbucket."""
        params: Dict[str, Any] = {}
        limit = _optional_int(arguments, "limit", None)
        if limit:
            params["pagelen"] = min(limit, MAX_PIPELINE_PAGELEN)
        if arguments.get("status"):
            params["status"] = arguments["status"]
        if arguments.get("target_branch"):
            params["target.branch"] = arguments["target_branch"]
        if arguments.get("trigger_type"):
            params["trigger_type"] = arguments["trigger_type"]

        response = await self.client.get(f"{_repository_path(arguments)}/pipelines", params=params)
        return _dump(response.json().get("values", []))

    async def _get_pipeline_run(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(_pipeline_path(arguments))
        return _dump(response.json())

    async def _run_pipeline(self, arguments: Dict[str, Any]) -> str:
        body = build_pipeline_request(arguments["target"], arguments.get("variables"))
        logger.info(
            "Triggering pipeline on %s %s",
            body["target"]["ref_type"],
            body["target"]["ref_name"],
        )
        response = await self.client.post(f"{_repository_path(arguments)}/pipelines", json=body)
        return _dump(response.json())

    async def _stop_pipeline(self, arguments: Dict[str, Any]) -> str:
        await self.client.post(f"{_pipeline_path(arguments)}/stopPipeline")
        return PIPELINE_STOPPED_MESSAGE

    async def _get_pipeline_steps(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(f"{_pipeline_path(arguments)}/steps")
        return _dump(response.json().get("values", []))

    async def _get_pipeline_step(self, arguments: Dict[str, Any]) -> str:
        response = await self.client.get(_pipeline_step_path(arguments))
        return _dump(response.json())

    async def _get_pipeline_step_logs(self, arguments: Dict[str, Any]) -> str:
        # Logs are served from object storage behind a redirect
        response = await self.client.get(
            f"{_pipeline_step_path(arguments)}/log",
            headers={"Accept": "*/*"},
            follow_redirects=True,
        )
        return response.text

    # ── Helpers ──────────────────────────────────────────────────────

    def _resolve_workspace(self, arguments: Dict[str, Any]) -> str:
        workspace = arguments.get("workspace") or self.settings.bitbucket_workspace
        if not workspace:
            raise InvalidInputError(
                "Workspace must be provided either as a parameter or through "
                "BITBUCKET_WORKSPACE environment variable"
            )
        return workspace


# ── Argument validation ─────────────────────────────────────────────

def validate_arguments(schema: Dict[str, Any], arguments: Dict[str, Any], prefix: str = ""):
    """Check the schema's required fields, recursing into objects and arrays.

    Only presence and container shape are checked; value types are left to
    Bitbucket.

    Raises:
        InvalidInputError: Naming the first missing argument.
    """
    for name in schema.get("required", []):
        if _is_missing(arguments.get(name)):
            raise InvalidInputError(f"Missing required argument: {prefix}{name}")

    for name, prop in schema.get("properties", {}).items():
        value = arguments.get(name)
        if value is None:
            continue

        if prop.get("type") == "object":
            if not isinstance(value, dict):
                raise InvalidInputError(f"Argument {prefix}{name} must be an object")
            validate_arguments(prop, value, prefix=f"{prefix}{name}.")

        elif prop.get("type") == "array":
            if not isinstance(value, list):
                raise InvalidInputError(f"Argument {prefix}{name} must be an array")
            items = prop.get("items", {})
            if items.get("type") != "object":
                continue
            for index, item in enumerate(value):
                if not isinstance(item, dict):
                    raise InvalidInputError(f"Argument {prefix}{name}[{index}] must be an object")
                validate_arguments(items, item, prefix=f"{prefix}{name}[{index}].")


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _optional_int(arguments: Dict[str, Any], name: str, default: Optional[int]) -> Optional[int]:
    value = arguments.get(name)
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"Argument {name} must be a number, got {value!r}") from None
    if number < 1:
        raise InvalidInputError(f"Argument {name} must be at least 1, got {value!r}")
    return number


# ── Request builders ────────────────────────────────────────────────

def build_comment_body(
    content: str,
    inline: Optional[Dict[str, Any]] = None,
    pending: Optional[bool] = None,
    parent_id: Any = None,
) -> Dict[str, Any]:
    """Build a pull request comment payload (general, inline, or reply)."""
    body: Dict[str, Any] = {"content": {"raw": content}}

    if pending is not None:
        body["pending"] = pending

    if inline:
        body["inline"] = {"path": inline["path"]}
        if inline.get("from") is not None:
            body["inline"]["from"] = inline["from"]
        if inline.get("to") is not None:
            body["inline"]["to"] = inline["to"]

    if parent_id is not None:
        body["parent"] = {"id": parent_id}

    return body


def build_branching_model_update(arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Only the sections the caller supplied are sent."""
    body: Dict[str, Any] = {}
    for section in ("development", "production", "branch_types"):
        if arguments.get(section):
            body[section] = arguments[section]
    return body


def build_pipeline_request(
    target: Dict[str, Any],
    variables: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Translate the tool's flat target description into a Pipelines API payload.

    A commit hash switches the target to ``pipeline_commit_target``; a
    selector is only sent when both its type and pattern are given.
    """
    commit_hash = target.get("commit_hash")
    pipeline_target: Dict[str, Any] = {
        "type": "pipeline_commit_target" if commit_hash else "pipeline_ref_target",
        "ref_type": target["ref_type"],
        "ref_name": target["ref_name"],
    }

    if commit_hash:
        pipeline_target["commit"] = {"type": "commit", "hash": commit_hash}

    if target.get("selector_type") and target.get("selector_pattern"):
        pipeline_target["selector"] = {
            "type": target["selector_type"],
            "pattern": target["selector_pattern"],
        }

    body: Dict[str, Any] = {"target": pipeline_target}
    if variables:
        body["variables"] = [
            {
                "key": variable["key"],
                "value": variable["value"],
                "secured": bool(variable.get("secured", False)),
            }
            for variable in variables
        ]
    return body


def build_diff_path(workspace: str, repo_slug: str, source_commit: str, destination_commit: str) -> str:
    """Repository diff endpoint for ``source..destination``.

    The revision range is ``{workspace}/{repo}:{source}`` joined to the
    destination commit by an encoded carriage return, the form Bitbucket's
    own UI uses for pull request diffs.
    """
    revisions = f"{workspace}/{repo_slug}:{source_commit}%0D{destination_commit}"
    return f"/repositories/{workspace}/{repo_slug}/diff/{revisions}"


def normalize_uuid(value: Any) -> str:
    """Bitbucket UUIDs are addressed in their ``{...}`` form."""
    text = str(value).strip()
    if text.startswith("{"):
        return text
    return f"{{{text}}}"


# ── Paths and formatting ────────────────────────────────────────────

def _repository_path(arguments: Dict[str, Any]) -> str:
    return f"/repositories/{arguments['workspace']}/{arguments['repo_slug']}"


def _pull_request_path(arguments: Dict[str, Any]) -> str:
    return f"{_repository_path(arguments)}/pullrequests/{arguments['pull_request_id']}"


def _project_path(arguments: Dict[str, Any]) -> str:
    return f"/workspaces/{arguments['workspace']}/projects/{arguments['project_key']}"


def _pipeline_path(arguments: Dict[str, Any]) -> str:
    return f"{_repository_path(arguments)}/pipelines/{normalize_uuid(arguments['pipeline_uuid'])}"


def _pipeline_step_path(arguments: Dict[str, Any]) -> str:
    return f"{_pipeline_path(arguments)}/steps/{normalize_uuid(arguments['step_uuid'])}"


def _commit_hash(pull_request: Dict[str, Any], side: str) -> Optional[str]:
    return ((pull_request.get(side) or {}).get("commit") or {}).get("hash")


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2)

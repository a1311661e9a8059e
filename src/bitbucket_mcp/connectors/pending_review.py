"""Pending review aggregation across a workspace.

Answers "which open pull requests are waiting on my review" by scanning
repositories in small concurrent batches and keeping the pull requests where
the configured user is a reviewer who has not approved yet.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictBool, ValidationError

from ..config import Settings
from .exceptions import InvalidInputError, UpstreamError
from .http_client import BitbucketClient

logger = logging.getLogger(__name__)

BATCH_SIZE = 5
DEFAULT_LIMIT = 50
REPOSITORY_PAGE_SIZE = 100
MAX_PULL_REQUESTS_PER_REPOSITORY = 50

REVIEWER_ROLE = "REVIEWER"

# Partial response selector; keeps per-repository payloads small
PULL_REQUEST_FIELDS = ",".join([
    "values.id",
    "values.title",
    "values.description",
    "values.state",
    "values.created_on",
    "values.updated_on",
    "values.author",
    "values.source",
    "values.destination",
    "values.participants.user.nickname",
    "values.participants.role",
    "values.participants.approved",
    "values.links",
])

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class Participant(BaseModel):
    """A user's involvement in a pull request."""

    model_config = ConfigDict(extra="allow")

    user: Optional[Dict[str, Any]] = None
    role: Optional[str] = None
    # Only a literal false marks a pending review; 0 or "false" do not
    approved: Optional[StrictBool] = None

    @property
    def nickname(self) -> Optional[str]:
        return (self.user or {}).get("nickname")

    def is_pending_reviewer(self, username: str) -> bool:
        return (
            self.nickname == username
            and self.role == REVIEWER_ROLE
            and self.approved is False
        )


class PullRequestSummary(BaseModel):
    """The pull request fields needed to filter and display a review request."""

    model_config = ConfigDict(extra="allow")

    id: Optional[int] = None
    title: Optional[str] = None
    state: Optional[str] = None
    created_on: Optional[str] = None
    updated_on: Optional[str] = None
    author: Optional[Dict[str, Any]] = None
    source: Optional[Dict[str, Any]] = None
    destination: Optional[Dict[str, Any]] = None
    participants: List[Participant] = []

    def awaits_review_from(self, username: str) -> bool:
        return any(p.is_pending_reviewer(username) for p in self.participants)


class RepositoryRef(BaseModel):
    name: str
    full_name: str


class PendingReviewResult(PullRequestSummary):
    """A pull request waiting on the user, tagged with its repository."""

    repository: RepositoryRef

    def updated_at(self) -> datetime:
        return parse_timestamp(self.updated_on)


@dataclass(frozen=True)
class ReviewTarget:
    """Workspace plus the resolved repository slugs to scan."""

    workspace: str
    repositories: List[str]


@dataclass
class PendingReviewReport:
    user: str
    workspace: str
    searched_repositories: int
    pull_requests: List[PendingReviewResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pending_review_prs": [
                pr.model_dump(mode="json", exclude_unset=True) for pr in self.pull_requests
            ],
            "total_found": len(self.pull_requests),
            "searched_repositories": self.searched_repositories,
            "user": self.user,
            "workspace": self.workspace,
        }


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse a Bitbucket ISO-8601 timestamp; unparseable values sort oldest."""
    if not value:
        return _OLDEST
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class PendingReviewAggregator:
    """Collects open pull requests awaiting review from the configured user."""

    def __init__(self, client: BitbucketClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def find_pending_reviews(
        self,
        workspace: Optional[str] = None,
        limit: Optional[int] = None,
        repository_list: Optional[List[str]] = None,
    ) -> PendingReviewReport:
        """Scan the workspace and return at most ``limit`` pending reviews.

        Args:
            workspace: Workspace slug; falls back to the configured default.
            limit: Maximum results (default 50).
            repository_list: Restrict the scan to these repository slugs.

        Raises:
            InvalidInputError: No workspace, no configured username, or bad limit.
            UpstreamError: The workspace repository listing failed.
        """
        workspace = workspace or self.settings.bitbucket_workspace
        if not workspace:
            raise InvalidInputError(
                "Workspace must be provided either as a parameter or through "
                "BITBUCKET_WORKSPACE environment variable"
            )

        username = self.settings.bitbucket_username
        if not username:
            raise InvalidInputError(
                "Username must be provided through BITBUCKET_USERNAME environment variable"
            )

        limit = _coerce_limit(limit)

        logger.info(
            "Getting pending review PRs: workspace=%s user=%s scope=%s limit=%d",
            workspace,
            username,
            len(repository_list) if repository_list else "all repositories",
            limit,
        )

        target = await self.resolve_target(workspace, repository_list)

        pending: List[PendingReviewResult] = []
        for batch in _chunks(target.repositories, BATCH_SIZE):
            batch_results = await asyncio.gather(*[
                self._scan_repository(workspace, repo_slug, username, limit)
                for repo_slug in batch
            ])

            for repo_results in batch_results:
                pending.extend(repo_results)
                if len(pending) >= limit:
                    break

            if len(pending) >= limit:
                break

        final = sorted(pending[:limit], key=lambda pr: pr.updated_at(), reverse=True)

        logger.info("Found %d pending review PRs", len(final))
        return PendingReviewReport(
            user=username,
            workspace=workspace,
            searched_repositories=len(target.repositories),
            pull_requests=final,
        )

    async def resolve_target(
        self,
        workspace: str,
        repository_list: Optional[List[str]] = None,
    ) -> ReviewTarget:
        """Use the caller's repositories, or list the whole workspace."""
        if repository_list:
            logger.info("Checking specific repositories: %s", ", ".join(repository_list))
            return ReviewTarget(workspace=workspace, repositories=list(repository_list))

        logger.info("Getting all repositories in workspace %s", workspace)
        response = await self.client.get(
            f"/repositories/{workspace}",
            params={"pagelen": REPOSITORY_PAGE_SIZE},
        )
        values = response.json().get("values")
        if values is None:
            raise UpstreamError("Failed to fetch repositories")

        repositories = [
            repo.get("slug") or repo.get("name")
            for repo in values
            if repo.get("slug") or repo.get("name")
        ]
        logger.info("Found %d repositories to check", len(repositories))
        return ReviewTarget(workspace=workspace, repositories=repositories)

    async def _scan_repository(
        self,
        workspace: str,
        repo_slug: str,
        username: str,
        limit: int,
    ) -> List[PendingReviewResult]:
        """Pending reviews for one repository.

        A failed fetch yields no results. A malformed pull request is skipped
        without affecting the rest of the repository.
        """
        try:
            logger.debug("Checking repository: %s", repo_slug)
            response = await self.client.get(
                f"/repositories/{workspace}/{repo_slug}/pullrequests",
                params={
                    "state": "OPEN",
                    "pagelen": min(limit, MAX_PULL_REQUESTS_PER_REPOSITORY),
                    "fields": PULL_REQUEST_FIELDS,
                },
            )
            values = response.json().get("values") or []
        except Exception as e:
            logger.warning("Error checking repository %s: %s", repo_slug, e)
            return []

        repository = RepositoryRef(name=repo_slug, full_name=f"{workspace}/{repo_slug}")
        results = []
        for raw in values:
            result = _pending_result(raw, repository, username)
            if result is not None:
                results.append(result)
        return results


def _pending_result(
    raw: Any,
    repository: RepositoryRef,
    username: str,
) -> Optional[PendingReviewResult]:
    try:
        pr = PullRequestSummary.model_validate(raw)
        if not pr.awaits_review_from(username):
            return None
        return PendingReviewResult.model_validate({
            **raw,
            "repository": repository.model_dump(),
        })
    except ValidationError as e:
        logger.debug(
            "Skipping malformed pull request in %s: %s",
            repository.full_name,
            e,
        )
        return None


def _coerce_limit(limit: Any) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise InvalidInputError(f"limit must be a positive integer, got {limit!r}")
    if value < 1:
        raise InvalidInputError(f"limit must be a positive integer, got {limit!r}")
    return value


def _chunks(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]

"""Bitbucket connector: HTTP client, tool catalogue, and tool handlers."""

from .bitbucket import BitbucketConnector
from .http_client import BitbucketClient
from .tools import ToolName

__all__ = ["BitbucketClient", "BitbucketConnector", "ToolName"]

"""Bitbucket connector exception types.

Raised by the HTTP client and the connector; the MCP server layer logs them
and lets the SDK report the call as an error result.
"""


class BitbucketError(Exception):
    """Base exception for all Bitbucket connector errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidInputError(BitbucketError):
    """Missing or invalid tool argument, detected before any HTTP call."""

    pass


class UnknownToolError(BitbucketError):
    """Tool name is not part of the published tool surface."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class UpstreamError(BitbucketError):
    """Bitbucket returned an error response or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response_body: str = "",
    ):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message)


class AuthError(UpstreamError):
    """Authentication or authorization failure (401/403)."""

    pass


class NotFoundError(UpstreamError):
    """Resource not found (404)."""

    def __init__(self, message: str, response_body: str = ""):
        super().__init__(message, status_code=404, response_body=response_body)

"""HTTP client for the Bitbucket Cloud REST API.

Wraps a single ``httpx.AsyncClient`` configured from ``Settings``. Every
request is sent once; HTTP and transport failures are translated into the
connector exception types and never retried.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from .exceptions import AuthError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

# Bitbucket redirects large diffs and step logs to object storage
MAX_REDIRECTS = 5

AUTH_FAILURE_CODES = {401, 403}


class BitbucketClient:
    """Async client bound to one Bitbucket base URL and one set of credentials."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings

        headers = {"Accept": "application/json"}
        auth = None
        if settings.uses_token_auth:
            headers["Authorization"] = f"Bearer {settings.bitbucket_token}"
        else:
            auth = httpx.BasicAuth(settings.bitbucket_username, settings.bitbucket_password)

        self._client = httpx.AsyncClient(
            base_url=settings.bitbucket_url,
            headers=headers,
            auth=auth,
            timeout=settings.http_timeout,
            max_redirects=MAX_REDIRECTS,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        follow_redirects: bool = False,
    ) -> httpx.Response:
        """Send one request and return the successful response.

        Raises:
            AuthError: On 401/403.
            NotFoundError: On 404.
            UpstreamError: On any other error status or transport failure.
        """
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
                follow_redirects=follow_redirects,
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            raise translate_http_error(exc.response) from exc
        except httpx.TooManyRedirects as exc:
            raise UpstreamError(f"Bitbucket API error: too many redirects for {path}") from exc
        except httpx.RequestError as exc:
            raise UpstreamError(
                f"Bitbucket API error: request failed ({type(exc).__name__}: {exc})"
            ) from exc

    async def get(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self):
        """Close the underlying connection pool."""
        await self._client.aclose()


def translate_http_error(response: httpx.Response) -> UpstreamError:
    """Map an error response onto the connector exception hierarchy."""
    status = response.status_code
    body = response.text[:500]
    message = f"Bitbucket API error: {_extract_error_message(response)}"

    if status in AUTH_FAILURE_CODES:
        return AuthError(message, status_code=status, response_body=body)
    if status == 404:
        return NotFoundError(message, response_body=body)
    return UpstreamError(message, status_code=status, response_body=body)


def _extract_error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Bitbucket error body.

    Bitbucket errors look like ``{"type": "error", "error": {"message": ...}}``.
    """
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if data.get("message"):
            return str(data["message"])

    text = response.text.strip()
    if text:
        return text[:500]
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()

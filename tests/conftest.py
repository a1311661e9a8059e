"""Test configuration and fixtures."""

import os
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import unquote

import httpx
import pytest
import pytest_asyncio

# Set test environment variables BEFORE importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ["BITBUCKET_TOKEN"] = "test-token"
os.environ["BITBUCKET_USERNAME"] = "reviewer"
os.environ["BITBUCKET_WORKSPACE"] = "acme"
os.environ.pop("BITBUCKET_PASSWORD", None)
os.environ.pop("BITBUCKET_URL", None)

from bitbucket_mcp.config import Settings, get_settings
from bitbucket_mcp.connectors.bitbucket import BitbucketConnector
from bitbucket_mcp.connectors.http_client import BitbucketClient
from bitbucket_mcp.observability.logging import clear_log_context

API_ROOT = "/2.0"

Route = Union[httpx.Response, Callable[[httpx.Request], Any]]


class MockBitbucket:
    """Fake Bitbucket API for ``httpx.MockTransport``.

    Routes are keyed by method and path relative to the API root, compared
    percent-decoded; every request is recorded. Unrouted requests get a
    Bitbucket style 404.
    """

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Route] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json: Any = None,
        status_code: int = 200,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        handler: Optional[Callable[[httpx.Request], Any]] = None,
    ):
        if handler is not None:
            route = handler
        elif text is not None:
            route = httpx.Response(status_code, text=text, headers=headers)
        else:
            route = httpx.Response(status_code, json=json, headers=headers)
        self.routes[(method, unquote(path))] = route

    @staticmethod
    def path_of(request: httpx.Request) -> str:
        path = request.url.raw_path.decode("ascii").split("?", 1)[0]
        if path.startswith(API_ROOT):
            path = path[len(API_ROOT):]
        return path

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            request for request in self.requests
            if (method is None or request.method == method)
            and (path is None or unquote(self.path_of(request)) == unquote(path))
        ]

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        route = self.routes.get((request.method, unquote(self.path_of(request))))
        if route is None:
            return httpx.Response(
                404,
                json={"type": "error", "error": {"message": f"No route for {request.method} {request.url.path}"}},
            )
        if isinstance(route, httpx.Response):
            # Responses are single-use once their body has been read
            return httpx.Response(route.status_code, content=route.content, headers=route.headers)
        return route(request)


def build_settings(**overrides) -> Settings:
    values = {
        "bitbucket_url": "https://api.bitbucket.org/2.0",
        "bitbucket_token": "test-token",
        "bitbucket_username": "reviewer",
        "bitbucket_workspace": "acme",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(autouse=True)
def reset_state():
    """Each test starts with fresh settings and no logging context."""
    get_settings.cache_clear()
    clear_log_context()
    yield
    get_settings.cache_clear()
    clear_log_context()


@pytest.fixture
def settings_factory():
    """Build Settings from test defaults plus overrides."""
    return build_settings


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def bitbucket() -> MockBitbucket:
    return MockBitbucket()


@pytest_asyncio.fixture
async def client(settings, bitbucket):
    client = BitbucketClient(settings, transport=httpx.MockTransport(bitbucket))
    yield client
    await client.aclose()


@pytest.fixture
def connector(client, settings) -> BitbucketConnector:
    return BitbucketConnector(client, settings)

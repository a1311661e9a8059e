"""Entry point for the Bitbucket MCP server (stdio or HTTP)."""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import FastAPI
from pydantic import ValidationError

from .api.mcp import router as mcp_router
from .config import Settings, get_settings
from .connectors.bitbucket import BitbucketConnector
from .connectors.http_client import BitbucketClient
from .mcp.server import MCPServer
from .mcp.transport import MCPTransport
from .observability.logging import configure_logging

logger = logging.getLogger(__name__)


def build_server(settings: Settings, client: BitbucketClient) -> MCPServer:
    """Wire the connector and MCP server around an open client."""
    connector = BitbucketConnector(client, settings)
    return MCPServer(connector, version=settings.app_version)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = BitbucketClient(settings, transport=transport)
        mcp_server = build_server(settings, client)
        app.state.mcp_transport = MCPTransport(mcp_server, version=settings.app_version)
        logger.info("Bitbucket MCP HTTP transport ready (base URL %s)", settings.bitbucket_url)

        yield

        await client.aclose()
        logger.info("HTTP client closed")

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="MCP server for Bitbucket Cloud",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.include_router(mcp_router)

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return app


async def run_stdio(settings: Settings):
    client = BitbucketClient(settings)
    try:
        await build_server(settings, client).run_stdio()
    finally:
        await client.aclose()


def main():
    """Console entry point; MCP_TRANSPORT selects stdio or HTTP."""
    try:
        settings = get_settings()
    except ValidationError as e:
        sys.exit(f"Invalid configuration: {e}")

    configure_logging(
        environment=settings.environment,
        log_level=settings.get_log_level(),
        log_file=settings.log_file,
    )

    if settings.mcp_transport == "http":
        import uvicorn

        logger.info("Starting HTTP transport on %s:%d", settings.host, settings.port)
        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            log_level=settings.get_log_level().lower(),
        )
    else:
        asyncio.run(run_stdio(settings))


if __name__ == "__main__":
    main()

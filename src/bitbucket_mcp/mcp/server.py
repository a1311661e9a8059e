"""MCP Server implementation for the Bitbucket connector."""

import logging
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from ..connectors.bitbucket import BitbucketConnector
from ..connectors.exceptions import BitbucketError

logger = logging.getLogger(__name__)

SERVER_NAME = "bitbucket-mcp"


class MCPServer:
    """Single-connector MCP server exposing the Bitbucket tools."""

    def __init__(self, connector: BitbucketConnector, version: Optional[str] = None):
        self.connector = connector
        self.server = Server(SERVER_NAME, version=version)
        self._setup_handlers()

    def _setup_handlers(self):
        """Set up MCP protocol handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            return await self.list_tools()

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Optional[Dict[str, Any]] = None
        ) -> List[types.TextContent]:
            # Raised errors are reported to the client as isError results
            return await self.call_tool(name, arguments)

    async def list_tools(self) -> List[types.Tool]:
        tools = await self.connector.get_tools()
        logger.debug("Returning %d tools", len(tools))
        return tools

    async def call_tool(
        self, name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> List[types.TextContent]:
        """Run one tool and wrap its text result."""
        try:
            result = await self.connector.execute_tool(name, arguments or {})
        except BitbucketError:
            # Already logged by the connector with its context
            raise
        except Exception:
            logger.exception("Tool execution failed: %s", name)
            raise

        return [types.TextContent(type="text", text=result)]

    async def run_stdio(self):
        """Serve MCP over stdin/stdout until the client disconnects."""
        logger.info("Bitbucket MCP server running on stdio")
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )

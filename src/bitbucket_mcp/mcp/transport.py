"""JSON-RPC message handling for the HTTP transport."""

import logging
from typing import Any, Dict, Optional

from mcp.types import CallToolRequest, ListToolsRequest

from .server import SERVER_NAME, MCPServer

logger = logging.getLogger(__name__)

# Supported MCP protocol versions (newest first)
SUPPORTED_PROTOCOL_VERSIONS = ["2025-06-18", "2024-11-05"]


def _error_response(message_id: Any, code: int, message: str) -> Dict[str, Any]:
    """Build a JSON-RPC 2.0 error response."""
    return {
        "jsonrpc": "2.0",
        "id": message_id,
        "error": {"code": code, "message": message},
    }


def _result_response(message_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": message_id, "result": result}


def _negotiate_protocol_version(client_version: str) -> Optional[str]:
    """Negotiate protocol version.

    Returns the latest server-supported version that is <= client_version,
    or None if no compatible version exists.
    """
    for version in SUPPORTED_PROTOCOL_VERSIONS:
        if version <= client_version:
            return version
    return None


def _unwrap(result: Any) -> Any:
    """Request handlers return a ServerResult wrapping the typed result."""
    return getattr(result, "root", result)


class MCPTransport:
    """Routes single JSON-RPC messages to the MCP server's request handlers."""

    def __init__(self, mcp_server: MCPServer, version: str = "0.1.0"):
        self.mcp_server = mcp_server
        self.version = version

    async def handle_http_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Handle single HTTP message for MCP protocol.

        Returns None for notifications, which never receive a response.
        """
        try:
            method = message.get("method")
            message_id = message.get("id")
            params = message.get("params") or {}

            logger.debug("Received message: method=%s, id=%s", method, message_id)

            if message_id is None:
                return None

            if method == "initialize":
                client_protocol = params.get("protocolVersion", "2024-11-05")
                negotiated = _negotiate_protocol_version(client_protocol)

                if negotiated is None:
                    return _error_response(
                        message_id,
                        -32602,
                        f"Unsupported protocol version: {client_protocol}. "
                        f"Supported: {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}",
                    )

                return _result_response(message_id, {
                    "protocolVersion": negotiated,
                    "capabilities": {"tools": {"listChanged": False}},
                    "serverInfo": {"name": SERVER_NAME, "version": self.version},
                })

            elif method == "ping":
                return _result_response(message_id, {})

            elif method == "tools/list":
                return await self._list_tools(message_id, params)

            elif method == "tools/call":
                return await self._call_tool(message_id, params)

            else:
                return _error_response(message_id, -32601, f"Method not found: {method}")

        except Exception as e:
            logger.exception("Error handling MCP message")
            return _error_response(message.get("id"), -32603, f"Internal error: {str(e)}")

    async def _list_tools(self, message_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        handler = self.mcp_server.server.request_handlers[ListToolsRequest]
        try:
            result = _unwrap(await handler(ListToolsRequest(method="tools/list", params=params or None)))
        except Exception as e:
            return _error_response(message_id, -32603, f"Error listing tools: {str(e)}")

        tools = [
            tool.model_dump(mode="json", by_alias=True, exclude_none=True)
            for tool in result.tools
        ]
        return _result_response(message_id, {"tools": tools})

    async def _call_tool(self, message_id: Any, params: Dict[str, Any]) -> Dict[str, Any]:
        if not params.get("name"):
            return _error_response(message_id, -32602, "Invalid params: tool name is required")

        handler = self.mcp_server.server.request_handlers[CallToolRequest]
        try:
            result = _unwrap(await handler(CallToolRequest(method="tools/call", params=params)))
        except Exception as e:
            return _error_response(message_id, -32603, f"Tool execution error: {str(e)}")

        content = [
            {"type": item.type, "text": item.text}
            for item in result.content
            if item.type == "text"
        ]
        return _result_response(message_id, {
            "content": content,
            "isError": bool(result.isError),
        })

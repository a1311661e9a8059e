"""MCP API routes for the HTTP transport."""

import json
import logging
from enum import Enum
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..mcp.transport import MCPTransport

logger = logging.getLogger(__name__)

router = APIRouter()


class MessageKind(str, Enum):
    REQUEST = "request"
    NOTIFICATION = "notification"
    RESPONSE = "response"
    INVALID = "invalid"


def classify_message(message: Any) -> MessageKind:
    """Sort an incoming JSON-RPC payload by whether it expects a reply."""
    if not isinstance(message, dict):
        return MessageKind.INVALID
    if "result" in message or "error" in message:
        return MessageKind.RESPONSE
    if message.get("method") is None:
        return MessageKind.INVALID
    if message.get("id") is None:
        return MessageKind.NOTIFICATION
    return MessageKind.REQUEST


def _invalid_request(message: Any) -> Dict[str, Any]:
    message_id = message.get("id") if isinstance(message, dict) else None
    return {
        "jsonrpc": "2.0",
        "id": message_id,
        "error": {
            "code": -32600,
            "message": "Invalid Request: message must be a request, response, or notification",
        },
    }


def _get_transport(request: Request) -> MCPTransport:
    transport = getattr(request.app.state, "mcp_transport", None)
    if transport is None:
        raise HTTPException(status_code=503, detail="MCP server is not initialized")
    return transport


@router.post("/mcp")
async def mcp_http_post(request: Request):
    """HTTP POST endpoint for MCP protocol communication.

    Notifications and client responses are acknowledged with 202 Accepted.
    Requests get a JSON-RPC response; a batch gets an array of them.
    """
    if "application/json" not in request.headers.get("accept", ""):
        raise HTTPException(status_code=400, detail="Accept header must include application/json")

    if "application/json" not in request.headers.get("content-type", ""):
        raise HTTPException(status_code=400, detail="Content-Type must be application/json")

    try:
        body = await request.json()
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON")

    transport = _get_transport(request)

    if isinstance(body, list):
        replies = await _dispatch_all(transport, body)
        if not body:
            return JSONResponse(content=[])
        if not replies:
            return Response(status_code=202)
        return JSONResponse(content=jsonable_encoder(replies))

    kind = classify_message(body)
    if kind is MessageKind.INVALID:
        return JSONResponse(content=_invalid_request(body), status_code=400)

    replies = await _dispatch_all(transport, [body])
    if not replies:
        return Response(status_code=202)
    return JSONResponse(content=jsonable_encoder(replies[0]))


async def _dispatch_all(transport: MCPTransport, messages: List[Any]) -> List[Dict[str, Any]]:
    """Run every request in order; one reply per request or invalid entry."""
    replies = []
    for message in messages:
        kind = classify_message(message)
        if kind is MessageKind.INVALID:
            replies.append(_invalid_request(message))
        elif kind is MessageKind.REQUEST:
            reply = await transport.handle_http_message(message)
            if reply is None:
                raise HTTPException(
                    status_code=500,
                    detail="Internal error: No response generated for request",
                )
            replies.append(reply)
        else:
            logger.debug("Acknowledged %s: %s", kind.value, message.get("method"))
    return replies

"""Logging configuration for the Bitbucket MCP server.

Provides JSON-formatted structured logging with contextual fields
(tool, workspace, repo_slug, pull_request_id) via contextvars.

Everything goes to stderr: under the stdio transport stdout carries the
MCP protocol stream.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Dict, Optional

# Context variables for call-scoped logging fields
_tool: ContextVar[Optional[str]] = ContextVar("tool", default=None)
_workspace: ContextVar[Optional[str]] = ContextVar("workspace", default=None)
_repo_slug: ContextVar[Optional[str]] = ContextVar("repo_slug", default=None)
_pull_request_id: ContextVar[Optional[str]] = ContextVar("pull_request_id", default=None)

_CONTEXT_VARS = (
    ("tool", _tool),
    ("workspace", _workspace),
    ("repo_slug", _repo_slug),
    ("pull_request_id", _pull_request_id),
)


def set_log_context(
    tool: Optional[str] = None,
    workspace: Optional[str] = None,
    repo_slug: Optional[str] = None,
    pull_request_id: Optional[str] = None,
):
    """Set contextual logging fields for the current async context."""
    if tool is not None:
        _tool.set(tool)
    if workspace is not None:
        _workspace.set(workspace)
    if repo_slug is not None:
        _repo_slug.set(repo_slug)
    if pull_request_id is not None:
        _pull_request_id.set(str(pull_request_id))


def clear_log_context():
    """Clear all contextual logging fields."""
    for _, var in _CONTEXT_VARS:
        var.set(None)


def get_log_context() -> Dict[str, str]:
    """Return the context fields that are currently set."""
    return {name: var.get() for name, var in _CONTEXT_VARS if var.get()}


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter with context fields."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(get_log_context())

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable log formatter with context fields for development."""

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"[{self.formatTime(record, self.datefmt)}]",
            f"{record.levelname:8s}",
            f"{record.name}:",
            record.getMessage(),
        ]

        context = get_log_context()
        if context:
            parts.append("[" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]")

        msg = " ".join(parts)

        if record.exc_info and record.exc_info[1]:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_file: Optional[str] = None,
):
    """Configure logging for the application.

    Args:
        environment: "production" for JSON output, anything else for human-readable.
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path; records are also appended there as JSON lines.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)

    if environment == "production":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter(
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    root_logger.addHandler(handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    # Quiet noisy third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error taxonomy for tool results.

Tool failures never crash a session. They are converted to a ``ToolError``
and serialized as the tool-result text, so the reasoning service sees the
failure and can adapt.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class ToolErrorType(Enum):
    """Standardized error categories for tool execution failures."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    VALIDATION_ERROR = "validation_error"
    UNKNOWN_TOOL = "unknown_tool"
    REJECTED = "rejected"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


@dataclass
class ToolError:
    """Structured error representation for tool execution failures."""

    error_type: ToolErrorType
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    suggested_recovery: List[str] = field(default_factory=list)
    original_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        data: Dict[str, Any] = {
            "error": self.message,
            "error_type": self.error_type.value,
        }
        if self.context:
            data["context"] = self.context
        if self.suggested_recovery:
            data["suggested_recovery"] = self.suggested_recovery
        if self.original_error:
            data["original_error"] = self.original_error
        return data

    def to_result(self) -> str:
        """Render as the tool-result text fed back to the reasoning service."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_exception(cls, exc: Exception, tool_name: str, path: str = "") -> "ToolError":
        """Create a ToolError from an OS/decoding exception raised by a tool."""
        if isinstance(exc, (FileNotFoundError, NotADirectoryError, IsADirectoryError)):
            error_type = ToolErrorType.NOT_FOUND
        elif isinstance(exc, PermissionError):
            error_type = ToolErrorType.PERMISSION_DENIED
        elif isinstance(exc, FileExistsError):
            error_type = ToolErrorType.CONFLICT
        elif isinstance(exc, (ValueError, UnicodeDecodeError)):
            error_type = ToolErrorType.VALIDATION_ERROR
        else:
            error_type = ToolErrorType.UNKNOWN

        context = {"tool": tool_name, "exception_type": type(exc).__name__}
        if path:
            context["path"] = path
        return cls(
            error_type=error_type,
            message=f"{tool_name}: {exc}",
            context=context,
            original_error=str(exc),
        )


def validation_error(error_msg: str, tool_name: str, invalid_params: Optional[Dict[str, Any]] = None) -> ToolError:
    """Create a VALIDATION_ERROR for malformed or missing arguments."""
    context: Dict[str, Any] = {"tool": tool_name}
    if invalid_params:
        context["invalid_params"] = invalid_params
    return ToolError(
        error_type=ToolErrorType.VALIDATION_ERROR,
        message=f"{tool_name}: Validation error - {error_msg}",
        context=context,
        suggested_recovery=["Check the tool's parameter schema and required fields"],
    )


def unknown_tool_error(tool_name: str, available: List[str]) -> ToolError:
    """Create the error returned for names outside the session's catalog."""
    return ToolError(
        error_type=ToolErrorType.UNKNOWN_TOOL,
        message=f"Unknown tool: {tool_name}",
        context={"tool": tool_name, "available_tools": available},
    )


def policy_violation_error(tool_name: str, path: str, rule: str, reason: str) -> ToolError:
    """Create the PERMISSION_DENIED error for a path blocked by policy.

    ``context.rule`` names the rule so the reasoning service can tell a
    policy block from a transient failure.
    """
    return ToolError(
        error_type=ToolErrorType.PERMISSION_DENIED,
        message=f"{tool_name}: Blocked by path policy ({rule}) - {reason}",
        context={"tool": tool_name, "path": path, "rule": rule},
        suggested_recovery=["Do not retry this path; choose a different, permitted path"],
    )


def rejected_write_error(path: str, tool_name: str) -> ToolError:
    """Create the REJECTED error returned when the user declines a write."""
    return ToolError(
        error_type=ToolErrorType.REJECTED,
        message=f"{tool_name}: The user rejected this write. {path} was NOT modified (no file was created or changed).",
        context={"tool": tool_name, "path": path, "written": False},
        suggested_recovery=["Do not assume the content was saved; ask the user or continue without it"],
    )


class ToolExecutionError(Exception):
    """Raised inside a tool handler to return a specific ToolError."""

    def __init__(self, error: ToolError):
        super().__init__(error.message)
        self.error = error

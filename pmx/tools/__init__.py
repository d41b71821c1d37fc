#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tools for pmx - path policy, tool catalog, handlers and dispatcher."""

from pmx.tools.catalog import (
    AUTHORING_CATALOG,
    CORE_CATALOG,
    INVESTIGATION_CATALOG,
    REPL_CATALOG,
    ToolName,
    ToolSpec,
)
from pmx.tools.errors import ToolError, ToolErrorType, ToolExecutionError
from pmx.tools.path_policy import (
    Operation,
    PathDecision,
    PolicyViolation,
    Verdict,
    classify,
    enforce,
    resolve_links,
)
from pmx.tools.registry import (
    SessionContext,
    ToolDispatcher,
    ToolEvent,
    ToolEventLog,
    ToolHandler,
    ToolOutcome,
    default_handlers,
)

__all__ = [
    # Catalog
    "AUTHORING_CATALOG",
    "CORE_CATALOG",
    "INVESTIGATION_CATALOG",
    "REPL_CATALOG",
    "ToolName",
    "ToolSpec",
    # Errors
    "ToolError",
    "ToolErrorType",
    "ToolExecutionError",
    # Path policy
    "Operation",
    "PathDecision",
    "PolicyViolation",
    "Verdict",
    "classify",
    "enforce",
    "resolve_links",
    # Dispatch
    "SessionContext",
    "ToolDispatcher",
    "ToolEvent",
    "ToolEventLog",
    "ToolHandler",
    "ToolOutcome",
    "default_handlers",
]

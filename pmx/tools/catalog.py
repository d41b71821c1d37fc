#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tool catalog: the actions a reasoning service may request in a session.

Each catalog is a static tuple of ``ToolSpec`` declarations. ``ToolName`` is
the closed set of identifiers the dispatcher knows how to handle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class ToolName(str, Enum):
    """Closed enumeration of tool identifiers."""

    LIST_DIRECTORY = "list_directory"
    READ_FILE = "read_file"
    READ_OUTLINE = "read_outline"
    SEARCH_TEXT = "search_text"
    PROPOSE_WRITE = "propose_write"
    SUBMIT_REPORT = "submit_report"
    UPDATE_MEMORY = "update_memory"
    RUN_INVESTIGATION = "run_investigation"
    RUN_FEATURE_FLOW = "run_feature_flow"

    @classmethod
    def parse(cls, name: str) -> Optional["ToolName"]:
        """Return the matching ToolName, or None for an unrecognized name."""
        try:
            return cls((name or "").strip())
        except ValueError:
            return None


@dataclass(frozen=True)
class ToolSpec:
    """Declaration of one tool: name, description and parameter schema."""

    name: ToolName
    description: str
    parameters: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    required: Tuple[str, ...] = ()

    def to_openai(self) -> Dict[str, Any]:
        """Render in OpenAI function-calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": self.parameters,
                    "required": list(self.required),
                },
            },
        }

    def missing_arguments(self, args: Dict[str, Any]) -> List[str]:
        """Return required parameters absent (or null) in ``args``."""
        return [name for name in self.required if args.get(name) is None]


LIST_DIRECTORY = ToolSpec(
    name=ToolName.LIST_DIRECTORY,
    description=(
        "List files under a directory, recursively. Use '.' for the project root. "
        "Protected directories (.git, node_modules, build output) are skipped."
    ),
    parameters={
        "path": {"type": "string", "description": "Directory path relative to the project root (default: .)"},
    },
)

READ_FILE = ToolSpec(
    name=ToolName.READ_FILE,
    description="Read the contents of a file. Large files are truncated; use read_outline for big files.",
    parameters={
        "path": {"type": "string", "description": "File path relative to the project root (e.g. src/index.ts)"},
    },
    required=("path",),
)

READ_OUTLINE = ToolSpec(
    name=ToolName.READ_OUTLINE,
    description="Read only the structure (imports, classes, functions) of a file, with line numbers.",
    parameters={
        "path": {"type": "string", "description": "File path relative to the project root"},
    },
    required=("path",),
)

SEARCH_TEXT = ToolSpec(
    name=ToolName.SEARCH_TEXT,
    description="Search file contents for a regular expression (or plain string). Returns matching lines.",
    parameters={
        "pattern": {"type": "string", "description": "Regular expression or literal text to search for"},
        "path": {"type": "string", "description": "Directory to search in (default: .)"},
    },
    required=("pattern",),
)

PROPOSE_WRITE = ToolSpec(
    name=ToolName.PROPOSE_WRITE,
    description=(
        "Propose writing a documentation file. The user reviews and must approve the change. "
        "Only docs/, .pmx/, README.md and PMX.md are writable; source code is read-only."
    ),
    parameters={
        "path": {"type": "string", "description": "Target path (e.g. docs/features/dark-mode.md)"},
        "content": {"type": "string", "description": "The full new content of the file"},
        "reason": {"type": "string", "description": "Short justification shown to the user"},
    },
    required=("path", "content", "reason"),
)

SUBMIT_REPORT = ToolSpec(
    name=ToolName.SUBMIT_REPORT,
    description="Submit the final report and end the session.",
    parameters={
        "summary": {"type": "string", "description": "Executive summary of findings"},
        "details": {"type": "string", "description": "Detailed markdown report"},
        "evidence": {
            "type": "array",
            "description": "Evidence items supporting the report",
            "items": {
                "type": "object",
                "properties": {
                    "path": {"type": "string"},
                    "summary": {"type": "string"},
                    "snippet": {"type": "string"},
                },
                "required": ["path", "summary"],
            },
        },
    },
    required=("summary", "details"),
)

UPDATE_MEMORY = ToolSpec(
    name=ToolName.UPDATE_MEMORY,
    description="Record structured findings about the product (identity, risks, personas) in project memory.",
    parameters={
        "identity": {
            "type": "object",
            "description": "Product identity",
            "properties": {
                "name": {"type": "string"},
                "stack": {"type": "string"},
                "vision": {"type": "string"},
            },
        },
        "risks": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "description": {"type": "string"},
                    "severity": {"type": "string", "enum": ["low", "medium", "high", "critical"]},
                    "mitigation": {"type": "string"},
                },
                "required": ["description"],
            },
        },
        "personas": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "role": {"type": "string"},
                    "goals": {"type": "array", "items": {"type": "string"}},
                    "painPoints": {"type": "array", "items": {"type": "string"}},
                },
                "required": ["role"],
            },
        },
    },
)

RUN_INVESTIGATION = ToolSpec(
    name=ToolName.RUN_INVESTIGATION,
    description=(
        "Delegate a deep, autonomous codebase investigation to a sub-agent. Use this for questions "
        "that require reading multiple files (\"How does X work?\", \"Audit Y\")."
    ),
    parameters={
        "objective": {"type": "string", "description": "The question or goal to investigate"},
    },
    required=("objective",),
)

RUN_FEATURE_FLOW = ToolSpec(
    name=ToolName.RUN_FEATURE_FLOW,
    description=(
        "Delegate writing a product requirements document for a feature. Use this when the user asks "
        "to plan, spec or design a new feature."
    ),
    parameters={
        "request": {"type": "string", "description": "The feature request or idea"},
    },
    required=("request",),
)

ALL_SPECS: Dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        LIST_DIRECTORY, READ_FILE, READ_OUTLINE, SEARCH_TEXT, PROPOSE_WRITE,
        SUBMIT_REPORT, UPDATE_MEMORY, RUN_INVESTIGATION, RUN_FEATURE_FLOW,
    )
}

CORE_CATALOG: Tuple[ToolSpec, ...] = (LIST_DIRECTORY, READ_FILE, SEARCH_TEXT, PROPOSE_WRITE, SUBMIT_REPORT)
INVESTIGATION_CATALOG: Tuple[ToolSpec, ...] = (
    LIST_DIRECTORY, READ_FILE, READ_OUTLINE, SEARCH_TEXT, UPDATE_MEMORY, SUBMIT_REPORT,
)
AUTHORING_CATALOG: Tuple[ToolSpec, ...] = (
    LIST_DIRECTORY, READ_FILE, READ_OUTLINE, SEARCH_TEXT, PROPOSE_WRITE, SUBMIT_REPORT,
)
REPL_CATALOG: Tuple[ToolSpec, ...] = (
    LIST_DIRECTORY, READ_FILE, SEARCH_TEXT, PROPOSE_WRITE, RUN_INVESTIGATION, RUN_FEATURE_FLOW,
)


def catalog_names(catalog: Iterable[ToolSpec]) -> List[str]:
    return [spec.name.value for spec in catalog]


def to_openai_tools(catalog: Iterable[ToolSpec]) -> List[Dict[str, Any]]:
    """Render a catalog for an OpenAI-compatible ``tools`` request field."""
    return [spec.to_openai() for spec in catalog]

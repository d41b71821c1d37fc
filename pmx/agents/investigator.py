#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Investigator agent: read-only codebase investigation ending in a report."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from pmx.config import PMXConfig
from pmx.debug_logger import get_logger
from pmx.execution.budget import SessionBudget
from pmx.execution.confirmation import ConfirmationGate
from pmx.execution.orchestrator import InvestigationResult, Orchestrator, ReasoningService
from pmx.tools.catalog import INVESTIGATION_CATALOG, ToolSpec
from pmx.tools.registry import MemoryUpdater, SessionContext, ToolDispatcher, ToolEventLog, default_handlers


INVESTIGATOR_PROMPT = """You are a codebase investigator.
Answer the user's objective by exploring the project in the current working directory.

Guidelines:
1. Use list_directory to explore structure and search_text to find keywords.
2. Use read_file (or read_outline for large files) to examine relevant code.
3. Only rely on what you have actually read. Do not invent files.
4. If you learn the product's identity, risks or personas, record them with update_memory.
5. When you have enough information, call submit_report with a summary, detailed markdown
   and the evidence (path + summary) supporting it.
6. Be efficient: you have a limited number of turns.

You are read-only. You cannot modify files.
"""


def new_context(
    root: Path,
    config: PMXConfig,
    gate: Optional[ConfirmationGate] = None,
    memory: Optional[MemoryUpdater] = None,
    events: Optional[ToolEventLog] = None,
) -> SessionContext:
    """Fresh session state for one run, with limits taken from ``config``."""
    return SessionContext(
        root=root,
        events=events if events is not None else ToolEventLog(),
        gate=gate,
        memory=memory,
        max_read_chars=config.max_read_chars,
        list_limit=config.list_limit,
        search_limit=config.search_match_limit,
        max_file_bytes=config.max_file_bytes,
    )


async def run_investigation(
    objective: str,
    service: ReasoningService,
    root: Path,
    config: PMXConfig,
    gate: Optional[ConfirmationGate] = None,
    memory: Optional[MemoryUpdater] = None,
    events: Optional[ToolEventLog] = None,
    max_turns: Optional[int] = None,
    max_seconds: Optional[float] = None,
    catalog: Sequence[ToolSpec] = INVESTIGATION_CATALOG,
) -> InvestigationResult:
    """Run one investigation session and return its result.

    Raises:
        SessionFailedError: If the reasoning service fails.
    """
    budget = SessionBudget(
        max_turns or config.investigation_max_turns,
        max_seconds or config.investigation_max_seconds,
    )
    context = new_context(root, config, gate=gate, memory=memory, events=events)
    context.budget = budget
    dispatcher = ToolDispatcher(default_handlers(), catalog)

    get_logger().log("investigator", "INVESTIGATION_START", {
        "objective": objective[:200],
        "max_turns": budget.max_turns,
        "max_seconds": budget.max_seconds,
    })
    orchestrator = Orchestrator(service, dispatcher, context, budget)
    return await orchestrator.run(objective, INVESTIGATOR_PROMPT)


def report_markdown(result: InvestigationResult) -> str:
    """Markdown document for saving an investigation under docs/investigations/."""
    lines = [
        f"# Investigation: {result.objective}",
        "",
        "## Summary",
        result.summary,
        "",
        "## Details",
        result.details,
    ]
    if result.evidence:
        lines.extend(["", "## Evidence"])
        lines.extend(f"- **{item.path}**: {item.summary}" for item in result.evidence)
    return "\n".join(lines) + "\n"

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Ticket agent: breaks a PRD into engineering tickets under docs/tickets/.

The PRD is read up front through the path policy and placed in the system
prompt. The ticket file is written only through ``propose_write`` and the
confirmation gate.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

from pmx.agents.investigator import new_context
from pmx.agents.scribe import written_paths
from pmx.config import PMXConfig
from pmx.debug_logger import get_logger
from pmx.execution.budget import SessionBudget
from pmx.execution.confirmation import ConfirmationGate
from pmx.execution.orchestrator import InvestigationResult, Orchestrator, ReasoningService
from pmx.tools import file_ops
from pmx.tools.catalog import AUTHORING_CATALOG
from pmx.tools.errors import ToolExecutionError
from pmx.tools.path_policy import Operation
from pmx.tools.registry import SessionContext, ToolDispatcher, ToolEventLog, default_handlers


TICKETS_DIR = "docs/tickets"
CSV_HEADER = "Summary,Description,Type,Priority,Estimate"

TICKETS_PROMPT = """You are a technical project manager.
Break the Product Requirements Document below into actionable engineering tickets.

PRD ({path}):
{content}

Instructions:
1. Build the tickets from the "Technical Implementation Plan" and "User Stories" sections.
2. Keep tickets granular. Each has a type (Task, Story or Bug), a priority (Low, Medium or High),
   an estimate (t-shirt size or hours) and a specific description.
3. Use read_outline, search_text or read_file when a ticket should name a module or file.
4. Save the tickets with propose_write to {output} as CSV with the header line
   {header}
   Quote any field that contains a comma. The user must approve the file.
5. Call submit_report with the number of tickets and a short summary. If the write was
   rejected, say so in the report.
"""


class DocumentError(Exception):
    """The source document could not be read."""


def tickets_path(prd_path: str) -> str:
    """Where the tickets for ``prd_path`` are written."""
    return f"{TICKETS_DIR}/{PurePosixPath(prd_path).stem}-tickets.csv"


async def read_document(context: SessionContext, path: str) -> Tuple[str, str]:
    """Read ``path`` under the read policy and record it as evidence.

    Returns:
        The normalized path and the (possibly truncated) text.

    Raises:
        DocumentError: If the path is blocked, missing or unreadable.
    """
    try:
        decision = context.check_path("tickets", path, Operation.READ)
        result = await asyncio.to_thread(
            file_ops.read_text, context.root, decision.normalized, context.max_read_chars, context.max_file_bytes
        )
    except ToolExecutionError as e:
        raise DocumentError(f"Could not read PRD at {path}: {e.error.message}") from e
    except (OSError, ValueError) as e:
        raise DocumentError(f"Could not read PRD at {path}: {e}") from e
    context.ledger.record(decision.normalized, f"PRD loaded ({result.total_chars} characters)", result.snippet)
    return decision.normalized, result.text


async def run_ticket_flow(
    prd_path: str,
    service: ReasoningService,
    root: Path,
    config: PMXConfig,
    gate: Optional[ConfirmationGate] = None,
    events: Optional[ToolEventLog] = None,
    max_turns: Optional[int] = None,
    max_seconds: Optional[float] = None,
) -> InvestigationResult:
    """Generate tickets for the PRD at ``prd_path``.

    The result's details end with the saved ticket file, or a note that
    nothing was saved.

    Raises:
        DocumentError: If the PRD cannot be read.
        SessionFailedError: If the reasoning service fails.
    """
    events = events if events is not None else ToolEventLog()
    budget = SessionBudget(
        max_turns or config.feature_max_turns,
        max_seconds or config.feature_max_seconds,
    )
    context = new_context(root, config, gate=gate, events=events)
    context.budget = budget

    rel, content = await read_document(context, prd_path)
    output = tickets_path(rel)
    get_logger().log("tickets", "TICKETS_START", {"prd": rel, "output": output})

    dispatcher = ToolDispatcher(default_handlers(), AUTHORING_CATALOG)
    start = len(events)
    orchestrator = Orchestrator(service, dispatcher, context, budget)
    result = await orchestrator.run(
        f"Generate engineering tickets from {rel}",
        TICKETS_PROMPT.format(path=rel, content=content, output=output, header=CSV_HEADER),
    )

    saved = written_paths(events, since=start)
    if not saved:
        return replace(result, details=result.details + "\n\nNo ticket file was saved.")
    saved_lines = "\n".join(f"- {path}" for path in saved)
    return replace(result, details=result.details + f"\n\nTickets saved:\n{saved_lines}")

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Scribe agent: turns a feature request into a PRD under docs/features/.

The draft is grounded in the product identity stored in memory. When memory
has no identity yet, a short investigation establishes one first. The
document is written only through ``propose_write`` and the confirmation gate.
"""

from __future__ import annotations

import re
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from pmx.agents.investigator import new_context, run_investigation
from pmx.config import PMXConfig
from pmx.debug_logger import get_logger
from pmx.execution.budget import SessionBudget
from pmx.execution.confirmation import ConfirmationGate
from pmx.execution.orchestrator import InvestigationResult, Orchestrator, ReasoningService, SessionFailedError
from pmx.memory.product_memory import MemoryStore
from pmx.tools.catalog import AUTHORING_CATALOG, ToolName
from pmx.tools.registry import ToolDispatcher, ToolEvent, ToolEventLog, default_handlers


IDENTITY_OBJECTIVE = (
    "Identify the product name, tech stack and key architecture patterns of this project. "
    "Use the update_memory tool to save the identity, then submit_report."
)
IDENTITY_MAX_TURNS = 5
IDENTITY_MAX_SECONDS = 30.0
UNKNOWN_IDENTITY = "Identity could not be established automatically."

SCRIBE_PROMPT = """You are the Scribe, a product manager agent.
Turn the feature request into a pragmatic Product Requirements Document (PRD).

REPO IDENTITY:
{identity}

Plan for THIS project and its stack, not for any other tool.
Be ruthless about scope and separate the MVP from later phases.

Structure the PRD as:
# <Feature name>
## 1. Context & Why Now
## 2. Success Metrics
## 3. Scope & Phasing (Phase 0 MVP, Phase 1, Future, Non-Goals)
## 4. User Stories
## 5. Solution Overview
## 6. Technical Implementation Plan (commands/routes, modules/files, integration points)
## 7. Risks & Open Questions

Process:
1. Check the code with list_directory, search_text, read_outline and read_file where the identity is not enough.
2. Save the document with propose_write to docs/features/{slug}.md. The user must approve it.
3. Call submit_report with a short summary. If the write was rejected, say so in the report.
"""


def slugify(text: str, max_length: int = 48) -> str:
    """Filesystem-safe slug for a feature title."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    return slug[:max_length].rstrip("-") or "feature"


def written_paths(events: ToolEventLog, since: int = 0) -> List[str]:
    """Paths of approved writes recorded in ``events`` after index ``since``."""
    return [
        event.target
        for event in events.events[since:]
        if event.kind == ToolName.PROPOSE_WRITE.value and event.status == "ok"
    ]


async def establish_identity(
    service: ReasoningService,
    root: Path,
    config: PMXConfig,
    memory: MemoryStore,
    events: Optional[ToolEventLog] = None,
) -> str:
    """Identity block from memory, running a short investigation if needed."""
    summary = memory.identity_summary()
    if summary:
        if events is not None:
            events.emit(ToolEvent(kind="memory", target=".pmx/memory.json", status="ok",
                                  message="Loaded repo identity from memory."))
        return summary

    try:
        await run_investigation(
            IDENTITY_OBJECTIVE, service, root, config,
            memory=memory, events=events,
            max_turns=IDENTITY_MAX_TURNS, max_seconds=IDENTITY_MAX_SECONDS,
        )
    except SessionFailedError as e:
        get_logger().log_error("scribe", e, {"phase": "grounding"})
        return UNKNOWN_IDENTITY
    return memory.identity_summary() or UNKNOWN_IDENTITY


async def run_feature_flow(
    request: str,
    service: ReasoningService,
    root: Path,
    config: PMXConfig,
    gate: Optional[ConfirmationGate] = None,
    memory: Optional[MemoryStore] = None,
    events: Optional[ToolEventLog] = None,
    max_turns: Optional[int] = None,
    max_seconds: Optional[float] = None,
) -> InvestigationResult:
    """Draft a PRD for ``request`` and propose it for writing.

    The result's details name the saved document when the user approved it.

    Raises:
        SessionFailedError: If the reasoning service fails during drafting.
    """
    memory = memory if memory is not None else MemoryStore(root)
    events = events if events is not None else ToolEventLog()
    identity = await establish_identity(service, root, config, memory, events)

    slug = slugify(request)
    budget = SessionBudget(
        max_turns or config.feature_max_turns,
        max_seconds or config.feature_max_seconds,
    )
    context = new_context(root, config, gate=gate, memory=memory, events=events)
    context.budget = budget
    dispatcher = ToolDispatcher(default_handlers(), AUTHORING_CATALOG)

    start = len(events)
    orchestrator = Orchestrator(service, dispatcher, context, budget)
    result = await orchestrator.run(
        f"Feature request: {request}",
        SCRIBE_PROMPT.format(identity=identity, slug=slug),
    )

    saved = written_paths(events, since=start)
    if not saved:
        return replace(result, details=result.details + "\n\nNo document was saved.")

    for path in saved:
        if path.startswith("docs/features/"):
            memory.record_feature(slugify(Path(path).stem), request, path)
    saved_lines = "\n".join(f"- {path}" for path in saved)
    return replace(result, details=result.details + f"\n\nDocument saved:\n{saved_lines}")

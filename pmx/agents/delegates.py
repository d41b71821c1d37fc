#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tool handlers that delegate to a nested agent session.

Each call runs an independent session (own ledger, budget and history) that
shares only the project root, confirmation gate, memory store and
operational log with the calling session. The caller's wall clock is paused
while the nested session runs; the nested session is bounded by its own
budget.
"""

from __future__ import annotations

from contextlib import nullcontext
from typing import Any, Dict

from pmx.agents.investigator import run_investigation
from pmx.agents.scribe import run_feature_flow
from pmx.config import PMXConfig
from pmx.execution.orchestrator import InvestigationResult, ReasoningService, SessionFailedError
from pmx.memory.product_memory import MemoryStore
from pmx.tools.catalog import ToolName
from pmx.tools.errors import ToolError, ToolErrorType, ToolExecutionError
from pmx.tools.registry import SessionContext, ToolHandler


def render_result(result: InvestigationResult, label: str = "Investigation") -> str:
    """Text rendering of a nested result for the calling session."""
    status = "complete" if result.complete else "INCOMPLETE (budget exhausted)"
    lines = [
        f"{label} result ({status}, {result.turns} turns):",
        f"Summary: {result.summary}",
        "",
        "Details:",
        result.details,
    ]
    evidence = result.reported_evidence or result.evidence
    if evidence:
        lines.append("")
        lines.append("Evidence:")
        lines.extend(f"- {item.path}: {item.summary}" for item in evidence)
    return "\n".join(lines)


def _delegation_failed(tool: str, error: SessionFailedError) -> ToolExecutionError:
    return ToolExecutionError(ToolError(
        error_type=ToolErrorType.UNKNOWN,
        message=f"{tool}: delegated session failed on turn {error.turn}: {error}",
        context={"tool": tool, "turn": error.turn},
    ))


class RunInvestigationHandler(ToolHandler):
    name = ToolName.RUN_INVESTIGATION

    def __init__(self, service: ReasoningService, config: PMXConfig):
        self.service = service
        self.config = config

    def target(self, args: Dict[str, Any], context: SessionContext) -> str:
        return str(args.get("objective") or "")[:80]

    async def run(self, args, context: SessionContext) -> str:
        objective = str(args.get("objective") or "").strip()
        pause = context.budget.paused() if context.budget is not None else nullcontext()
        try:
            with pause:
                result = await run_investigation(
                    objective, self.service, context.root, self.config,
                    gate=context.gate, memory=context.memory, events=context.events,
                )
        except SessionFailedError as e:
            raise _delegation_failed(self.name.value, e) from e
        return render_result(result)


class RunFeatureFlowHandler(ToolHandler):
    name = ToolName.RUN_FEATURE_FLOW

    def __init__(self, service: ReasoningService, config: PMXConfig):
        self.service = service
        self.config = config

    def target(self, args: Dict[str, Any], context: SessionContext) -> str:
        return str(args.get("request") or "")[:80]

    async def run(self, args, context: SessionContext) -> str:
        request = str(args.get("request") or "").strip()
        memory = context.memory if isinstance(context.memory, MemoryStore) else MemoryStore(context.root)
        pause = context.budget.paused() if context.budget is not None else nullcontext()
        try:
            with pause:
                result = await run_feature_flow(
                    request, self.service, context.root, self.config,
                    gate=context.gate, memory=memory, events=context.events,
                )
        except SessionFailedError as e:
            raise _delegation_failed(self.name.value, e) from e
        return render_result(result, label="Feature flow")


def delegate_handlers(service: ReasoningService, config: PMXConfig) -> Dict[ToolName, ToolHandler]:
    """Handlers for the delegate tools, bound to ``service`` and ``config``."""
    handlers = (RunInvestigationHandler(service, config), RunFeatureFlowHandler(service, config))
    return {handler.name: handler for handler in handlers}

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Terminal rendering for tool events, write confirmations and results."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from pmx.execution.confirmation import ConfirmationChoice, ConfirmationRequest
from pmx.execution.orchestrator import InvestigationResult, Termination
from pmx.terminal.formatting import (
    Colors,
    Symbols,
    colorize,
    create_box,
    create_bullet_item,
    create_header,
    create_section,
    format_file_change,
)
from pmx.tools.registry import ToolEvent


_EVENT_LABELS = {
    "list_directory": "List",
    "read_file": "Read",
    "read_outline": "Outline",
    "search_text": "Search",
    "propose_write": "Write",
    "update_memory": "Memory",
    "memory": "Memory",
    "run_investigation": "Delegate",
    "run_feature_flow": "Delegate",
}

_CHOICES = {
    "a": ConfirmationChoice.APPROVE_ONCE,
    "approve": ConfirmationChoice.APPROVE_ONCE,
    "y": ConfirmationChoice.APPROVE_ONCE,
    "yes": ConfirmationChoice.APPROVE_ONCE,
    "r": ConfirmationChoice.REJECT,
    "reject": ConfirmationChoice.REJECT,
    "n": ConfirmationChoice.REJECT,
    "no": ConfirmationChoice.REJECT,
    "f": ConfirmationChoice.SHOW_FULL,
    "full": ConfirmationChoice.SHOW_FULL,
    "s": ConfirmationChoice.SHOW_FULL,
}


def render_tool_event(event: ToolEvent) -> str:
    """One or two lines describing a tool event."""
    label = _EVENT_LABELS.get(event.kind, event.kind)
    if event.status == "pending":
        details = colorize("awaiting your approval", Colors.BRIGHT_YELLOW)
    elif event.status == "cancelled":
        details = colorize(f"{Symbols.CROSS} not saved (rejected)", Colors.BRIGHT_YELLOW)
    elif event.status == "error":
        details = colorize(f"{Symbols.CROSS} {event.message}", Colors.BRIGHT_RED)
    elif event.kind == "propose_write":
        details = colorize(f"{Symbols.CHECK} saved", Colors.BRIGHT_GREEN)
    else:
        details = event.message or None
    return format_file_change(label, event.target or "", details)


def print_tool_event(event: ToolEvent) -> None:
    """ToolEventLog listener that prints each event."""
    print(render_tool_event(event))


def parse_choice(answer: str) -> Optional[ConfirmationChoice]:
    return _CHOICES.get(answer.strip().lower())


class ConsoleConfirmationPrompt:
    """Confirmation prompt on stdin/stdout.

    Reading happens in a worker thread so the event loop stays responsive.
    End of input or Ctrl+C counts as a rejection; the gate never approves on
    its own.
    """

    def __init__(self, input_func: Callable[[str], str] = input, output: Callable[[str], None] = print):
        self.input_func = input_func
        self.output = output

    def render(self, request: ConfirmationRequest) -> str:
        kind = "Create" if request.is_new_file else "Overwrite"
        lines = [
            f"{kind}: {request.path}",
            f"Reason: {request.justification or '(none given)'}",
            "",
        ]
        lines.extend(request.content.splitlines() or [""])
        title = "Proposed write (full content)" if request.full else "Proposed write (preview)"
        return create_box(colorize(title, Colors.BRIGHT_YELLOW, bold=True), lines)

    async def ask(self, request: ConfirmationRequest) -> ConfirmationChoice:
        self.output("\n" + self.render(request))
        prompt = f"{colorize('Write this file?', Colors.BRIGHT_WHITE, bold=True)} [a]pprove once / [r]eject / [f]ull content: "
        while True:
            try:
                answer = await asyncio.to_thread(self.input_func, prompt)
            except (EOFError, KeyboardInterrupt):
                self.output(colorize("\n[No answer - write rejected, file not saved]", Colors.BRIGHT_YELLOW))
                return ConfirmationChoice.REJECT
            choice = parse_choice(answer)
            if choice is not None:
                return choice
            self.output("  Please answer 'a', 'r' or 'f'.")


def format_result(result: InvestigationResult) -> str:
    """Render a session result; incomplete results are labeled as such."""
    if result.termination is Termination.BUDGET_EXHAUSTED:
        title = colorize("INCOMPLETE - session stopped before a conclusion", Colors.BRIGHT_YELLOW, bold=True)
    elif result.termination is Termination.REPORT_SUBMITTED:
        title = "Report"
    else:
        title = "Answer"

    out = [create_header(title), create_section("Summary"), result.summary]
    if result.details and result.details != result.summary:
        out.extend([create_section("Details"), result.details])

    evidence = result.reported_evidence or result.evidence
    if evidence:
        out.append(create_section("Evidence"))
        out.extend(create_bullet_item(f"{item.path}: {item.summary}") for item in evidence)

    footer = f"{result.turns} turn(s), {result.elapsed_seconds:.1f}s, {len(result.evidence)} artifact(s) inspected"
    out.append("\n" + colorize(footer, Colors.BRIGHT_BLACK))
    return "\n".join(out)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Interactive REPL with a persistent conversation.

Each user input runs one orchestrator session over the conversation so far.
Only the user's message and the final answer are kept in the conversation; a
request that fails is dropped entirely so it is never replayed.
"""

import asyncio
import sys
from pathlib import Path
from typing import Callable, List, Optional

from pmx.agents.delegates import delegate_handlers
from pmx.agents.investigator import new_context, report_markdown, run_investigation
from pmx.agents.scribe import run_feature_flow, slugify
from pmx.agents.tickets import DocumentError, run_ticket_flow
from pmx.config import PMXConfig
from pmx.debug_logger import get_logger
from pmx.execution.budget import SessionBudget
from pmx.execution.confirmation import ConfirmationGate, ConfirmationPrompt, PausableInput
from pmx.execution.orchestrator import (
    InvestigationResult,
    Message,
    Orchestrator,
    ReasoningService,
    SessionFailedError,
)
from pmx.memory.product_memory import MemoryStore
from pmx.memory.project_context import ProjectContext, load_project_context
from pmx.terminal.commands import EXIT_MARKER, execute_command
from pmx.terminal.formatting import Colors, colorize
from pmx.terminal.ui import ConsoleConfirmationPrompt, format_result, print_tool_event
from pmx.tools.catalog import REPL_CATALOG
from pmx.tools.registry import ToolDispatcher, ToolEventLog, default_handlers


ASSISTANT_PROMPT = """You are pmx, a product manager co-pilot running in the user's terminal.
Bridge product strategy and technical execution. Be terse and start answering immediately.

Tools:
- list_directory, read_file, search_text: explore the project yourself for simple questions.
- propose_write: create or update documentation (docs/, README.md, PMX.md). The user must approve
  every write; never claim a file was saved unless the tool result says so.
- run_investigation: delegate questions that need many files ("How does auth work?").
- run_feature_flow: delegate PRD/spec/feature planning requests.

Source code is read-only. You cannot run shell commands or access the network.
"""


class ReplSession:
    """Conversation state and session wiring for the REPL."""

    def __init__(
        self,
        service: ReasoningService,
        root: Path,
        config: PMXConfig,
        prompt: Optional[ConfirmationPrompt] = None,
        input_func: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        memory: Optional[MemoryStore] = None,
    ):
        self.service = service
        self.root = Path(root)
        self.config = config
        self.input_func = input_func
        self.output = output
        self.history: List[Message] = []
        self.input_control = PausableInput()
        self.gate = ConfirmationGate(
            prompt or ConsoleConfirmationPrompt(input_func=input_func, output=output),
            self.input_control,
        )
        self.memory = memory if memory is not None else MemoryStore(self.root)
        self.events = ToolEventLog()
        self.events.subscribe(print_tool_event)
        handlers = {**default_handlers(), **delegate_handlers(service, config)}
        self.dispatcher = ToolDispatcher(handlers, REPL_CATALOG)
        self.logger = get_logger()

    def project_context(self) -> ProjectContext:
        return load_project_context(self.root, self.config.max_read_chars)

    def system_prompt(self) -> str:
        prompt = ASSISTANT_PROMPT
        identity = self.memory.identity_summary()
        if identity:
            prompt += f"\nKnown product identity:\n{identity}\n"
        context = self.project_context().system_context()
        if context:
            prompt += f"\nProject context:\n{context}\n"
        return prompt

    def _remember(self, text: str, result: InvestigationResult) -> None:
        answer = result.details if result.complete else f"(incomplete) {result.summary}"
        self.history.extend([Message.user(text), Message.assistant(answer)])

    def _report_failure(self, error: Exception, what: str) -> None:
        self.logger.log_error("repl", error, {"request": what})
        self.output(colorize(f"\n{error}", Colors.BRIGHT_RED))
        self.output(colorize(f"The {what} was not added to the conversation; run it again to retry.",
                             Colors.BRIGHT_BLACK))

    async def ask(self, text: str) -> Optional[InvestigationResult]:
        """Run one session for ``text``; None when the request failed."""
        budget = SessionBudget(self.config.repl_max_turns, self.config.repl_max_seconds)
        context = new_context(self.root, self.config, gate=self.gate, memory=self.memory, events=self.events)
        context.budget = budget
        orchestrator = Orchestrator(self.service, self.dispatcher, context, budget)
        try:
            result = await orchestrator.run(text, self.system_prompt(), history=tuple(self.history))
        except SessionFailedError as e:
            self.logger.log_error("repl", e, {"turn": e.turn})
            self.output(colorize(f"\n{e}", Colors.BRIGHT_RED))
            self.output(colorize("Your message was not added to the conversation; send it again to retry.",
                                 Colors.BRIGHT_BLACK))
            return None

        self._remember(text, result)
        self.output(format_result(result))
        return result

    async def investigate(self, objective: str) -> Optional[InvestigationResult]:
        """/investigate: a full investigation, then an offer to save the report."""
        self.output(colorize(f"\nStarting investigation: {objective}", Colors.BRIGHT_MAGENTA))
        try:
            result = await run_investigation(
                objective, self.service, self.root, self.config,
                gate=self.gate, memory=self.memory, events=self.events,
            )
        except SessionFailedError as e:
            self._report_failure(e, "investigation")
            return None

        self.output(format_result(result))
        # The confirmation prompt doubles as the "save this report?" question.
        context = new_context(self.root, self.config, gate=self.gate, events=self.events)
        await self.dispatcher.dispatch("propose_write", {
            "path": f"docs/investigations/{slugify(objective)}.md",
            "content": report_markdown(result),
            "reason": "Save investigation report",
        }, context)
        self._remember(f"/investigate {objective}", result)
        return result

    async def plan(self, request: str) -> Optional[InvestigationResult]:
        """/plan: the feature flow, drafting a PRD through the confirmation gate."""
        self.output(colorize(f"\nStarting feature planning: {request}", Colors.BRIGHT_CYAN))
        try:
            result = await run_feature_flow(
                request, self.service, self.root, self.config,
                gate=self.gate, memory=self.memory, events=self.events,
            )
        except SessionFailedError as e:
            self._report_failure(e, "plan request")
            return None
        self.output(format_result(result))
        self._remember(f"/plan {request}", result)
        return result

    async def tickets(self, prd_path: str) -> Optional[InvestigationResult]:
        """/tickets: break a PRD into a ticket file under docs/tickets/."""
        self.output(colorize(f"\nGenerating tickets from {prd_path}", Colors.BRIGHT_CYAN))
        try:
            result = await run_ticket_flow(
                prd_path, self.service, self.root, self.config, gate=self.gate, events=self.events,
            )
        except DocumentError as e:
            self.output(colorize(str(e), Colors.BRIGHT_RED))
            return None
        except SessionFailedError as e:
            self._report_failure(e, "ticket request")
            return None
        self.output(format_result(result))
        self._remember(f"/tickets {prd_path}", result)
        return result

    async def handle(self, line: str) -> bool:
        """Process one input line; False means leave the REPL."""
        line = line.strip()
        if not line:
            return True
        if line.startswith("/"):
            parts = line[1:].split()
            command = parts[0] if parts else ""
            reply = await execute_command(command, parts[1:], self)
            if reply == EXIT_MARKER:
                return False
            if reply:
                self.output(reply)
            return True
        await self.ask(line)
        return True

    async def run(self) -> None:
        prompt = f"\n{colorize('pmx', Colors.BRIGHT_MAGENTA)}{colorize('>', Colors.BRIGHT_BLACK)} "
        while True:
            await self.input_control.wait_until_resumed()
            try:
                line = await asyncio.to_thread(self.input_func, prompt)
            except (KeyboardInterrupt, EOFError):
                self.output("\nExiting REPL")
                break
            if not await self.handle(line):
                self.output(colorize("Exiting REPL", Colors.BRIGHT_CYAN))
                break


def repl_mode(service: ReasoningService, root: Path, config: PMXConfig) -> None:
    """Interactive REPL entry point.

    Exits with a short message when stdin is not a TTY, where the REPL
    would otherwise block waiting for input.
    """
    if not sys.stdin.isatty():
        print("[pmx] Non-interactive environment detected - exiting REPL.")
        return

    provider_name = getattr(getattr(service, "provider", None), "name", "?")
    print(f"{colorize('pmx interactive', Colors.BRIGHT_CYAN, bold=True)}  "
          f"{colorize(f'({provider_name}, {config.model})', Colors.BRIGHT_BLACK)}")
    print(f"{colorize('-' * 80, Colors.BRIGHT_BLACK)}")
    print(f"  {colorize('[i] Type /help for commands', Colors.BRIGHT_BLUE)}")
    print(f"  {colorize('[i] Writes to docs/ always ask for your approval', Colors.BRIGHT_YELLOW)}")

    session = ReplSession(service, root, config)
    try:
        asyncio.run(session.run())
    except KeyboardInterrupt:
        print("\nExiting REPL")

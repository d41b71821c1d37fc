#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Slash command handlers for the REPL."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from pmx.terminal.repl import ReplSession


# Returned by a handler to leave the REPL.
EXIT_MARKER = "__EXIT__"


class CommandHandler(ABC):
    """Base class for slash command handlers."""

    def __init__(self, name: str, description: str, usage: str = "", aliases: Optional[List[str]] = None):
        self.name = name
        self.description = description
        self.usage = usage
        self.aliases = aliases or []

    @abstractmethod
    async def execute(self, args: List[str], session: "ReplSession") -> Optional[str]:
        """Run the command; the returned text (if any) is shown to the user."""

    def help_line(self) -> str:
        signature = f"/{self.name} {self.usage}".rstrip()
        return f"  {signature:<26}{self.description}"


class HelpCommand(CommandHandler):
    def __init__(self):
        super().__init__("help", "Show this help")

    async def execute(self, args, session):
        return HELP_TEXT


class MemoryCommand(CommandHandler):
    def __init__(self):
        super().__init__("memory", "Show what pmx remembers about this product")

    async def execute(self, args, session):
        return session.memory.describe()


class ContextCommand(CommandHandler):
    def __init__(self):
        super().__init__("context", "Show the loaded context files (PMX.md, product docs)")

    async def execute(self, args, session):
        return session.project_context().describe()


class InvestigateCommand(CommandHandler):
    def __init__(self):
        super().__init__("investigate", "Run a deep investigation of the codebase", usage="<objective>")

    async def execute(self, args, session):
        objective = " ".join(args).strip()
        if not objective:
            return f"Usage: /{self.name} {self.usage}"
        await session.investigate(objective)
        return None


class PlanCommand(CommandHandler):
    def __init__(self):
        super().__init__(
            "plan",
            "Draft a PRD under docs/features/",
            usage="<feature description>",
            aliases=["feature"],
        )

    async def execute(self, args, session):
        request = " ".join(args).strip()
        if not request:
            return f"Usage: /{self.name} {self.usage}"
        await session.plan(request)
        return None


class TicketsCommand(CommandHandler):
    def __init__(self):
        super().__init__("tickets", "Generate engineering tickets from a PRD", usage="<path/to/prd.md>")

    async def execute(self, args, session):
        if len(args) != 1:
            return f"Usage: /{self.name} {self.usage}"
        await session.tickets(args[0])
        return None


class ExitCommand(CommandHandler):
    def __init__(self):
        super().__init__("exit", "Leave the REPL", aliases=["quit"])

    async def execute(self, args, session):
        return EXIT_MARKER


COMMANDS: List[CommandHandler] = [
    HelpCommand(),
    MemoryCommand(),
    ContextCommand(),
    InvestigateCommand(),
    PlanCommand(),
    TicketsCommand(),
    ExitCommand(),
]


def _build_command_registry() -> Dict[str, CommandHandler]:
    registry: Dict[str, CommandHandler] = {}
    for handler in COMMANDS:
        registry[handler.name] = handler
        for alias in handler.aliases:
            registry[alias] = handler
    return registry


COMMAND_HANDLERS = _build_command_registry()

HELP_TEXT = "\n".join(
    ["Commands:"]
    + [handler.help_line() for handler in COMMANDS]
    + ["Anything else is sent to the assistant."]
)


async def execute_command(command: str, args: List[str], session: "ReplSession") -> Optional[str]:
    """Run the slash command ``command`` (without the slash)."""
    handler = COMMAND_HANDLERS.get(command.lower())
    if handler is None:
        return f"Unknown command: /{command} (try /help)"
    return await handler.execute(args, session)

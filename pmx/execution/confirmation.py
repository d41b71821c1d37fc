#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Confirmation gate for proposed writes.

The gate is the only point where a session waits on a human. A proposed
write is presented (path, justification, preview) and suspended until the
human approves it once or rejects it; asking to see the full content shows it
and asks again. There is no timeout and no auto-approval.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from pmx.debug_logger import get_logger


PREVIEW_CHARS = 1200
PREVIEW_LINES = 40


@dataclass(frozen=True)
class PendingWrite:
    """A write proposed by the reasoning service, awaiting a decision."""

    path: str
    old_content: Optional[str]
    new_content: str
    justification: str

    @property
    def is_new_file(self) -> bool:
        return self.old_content is None


class ConfirmationChoice(Enum):
    """The three responses a human can give to a confirmation request."""
    APPROVE_ONCE = "approve_once"
    REJECT = "reject"
    SHOW_FULL = "show_full"


class WriteDecision(Enum):
    """Final outcome of a confirmation."""
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ConfirmationRequest:
    """What the human is shown for one ask.

    ``content`` is a preview unless ``full`` is True.
    """

    path: str
    justification: str
    content: str
    full: bool
    is_new_file: bool


class ConfirmationPrompt(Protocol):
    """UI side of the gate: show a request and return the human's choice."""

    async def ask(self, request: ConfirmationRequest) -> ConfirmationChoice:
        ...


class InputControl(Protocol):
    """Pause/resume hook for the surrounding interactive input loop."""

    def pause(self) -> None:
        ...

    def resume(self) -> None:
        ...


class PausableInput:
    """Default InputControl: a flag the input loop checks before reading.

    ``wait_until_resumed`` lets an async input loop hold off reading while a
    confirmation is outstanding.
    """

    def __init__(self) -> None:
        self._resumed = asyncio.Event()
        self._resumed.set()
        self.pause_count = 0

    @property
    def paused(self) -> bool:
        return not self._resumed.is_set()

    def pause(self) -> None:
        self.pause_count += 1
        self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    async def wait_until_resumed(self) -> None:
        await self._resumed.wait()


def preview_content(content: str, max_chars: int = PREVIEW_CHARS, max_lines: int = PREVIEW_LINES) -> str:
    """Return a bounded preview of ``content`` with a hint when cut."""
    lines = content.splitlines()
    preview = "\n".join(lines[:max_lines])
    if len(preview) > max_chars:
        preview = preview[:max_chars]
    if preview != content and len(preview) < len(content):
        preview += f"\n... ({len(content) - len(preview)} more characters; choose 'show full' to see everything)"
    return preview


class ConfirmationGate:
    """Single request/response channel between a session and the human.

    Only one confirmation is outstanding at a time. The interactive input
    loop is paused for the duration of a request and resumed afterwards.
    A prompt that fails or answers with an unknown choice counts as a
    rejection, so nothing is written without an explicit approval.
    """

    def __init__(self, prompt: ConfirmationPrompt, input_control: Optional[InputControl] = None):
        self.prompt = prompt
        self.input_control = input_control
        self.waited_seconds = 0.0
        self._lock = asyncio.Lock()
        self.logger = get_logger()

    async def request_approval(self, pending: PendingWrite) -> WriteDecision:
        """Suspend until the human approves or rejects ``pending``."""
        async with self._lock:
            started = time.monotonic()
            if self.input_control is not None:
                self.input_control.pause()
            try:
                decision = await self._ask_until_decided(pending)
            except Exception as e:
                # No usable answer means no approval.
                self.logger.log_error("confirmation", e, {"path": pending.path})
                decision = WriteDecision.REJECTED
            finally:
                if self.input_control is not None:
                    self.input_control.resume()
                self.waited_seconds += time.monotonic() - started

        self.logger.log("confirmation", "WRITE_DECISION", {
            "path": pending.path,
            "decision": decision.value,
            "new_file": pending.is_new_file,
        })
        return decision

    async def _ask_until_decided(self, pending: PendingWrite) -> WriteDecision:
        full = False
        while True:
            request = ConfirmationRequest(
                path=pending.path,
                justification=pending.justification,
                content=pending.new_content if full else preview_content(pending.new_content),
                full=full,
                is_new_file=pending.is_new_file,
            )
            choice = await self.prompt.ask(request)
            if choice is ConfirmationChoice.APPROVE_ONCE:
                return WriteDecision.APPROVED
            if choice is ConfirmationChoice.REJECT:
                return WriteDecision.REJECTED
            if choice is ConfirmationChoice.SHOW_FULL:
                full = True
                continue
            self.logger.warning(f"Unsupported confirmation choice {choice!r} for {pending.path}; treating as reject")
            return WriteDecision.REJECTED

"""Tests for the write confirmation gate."""

import asyncio

import pytest

from pmx.execution.confirmation import (
    ConfirmationChoice,
    ConfirmationGate,
    PausableInput,
    PendingWrite,
    WriteDecision,
    preview_content,
)
from pmx.terminal.ui import ConsoleConfirmationPrompt, parse_choice

from conftest import ScriptedPrompt


def pending(content: str = "hello", old=None) -> PendingWrite:
    return PendingWrite(path="docs/out.md", old_content=old, new_content=content, justification="notes")


@pytest.mark.asyncio
async def test_approve_once():
    prompt = ScriptedPrompt([ConfirmationChoice.APPROVE_ONCE])
    gate = ConfirmationGate(prompt)
    assert await gate.request_approval(pending()) is WriteDecision.APPROVED
    request = prompt.requests[0]
    assert request.path == "docs/out.md"
    assert request.justification == "notes"
    assert request.is_new_file


@pytest.mark.asyncio
async def test_show_full_asks_again_with_full_content():
    long_content = "\n".join(f"line {i}" for i in range(200))
    prompt = ScriptedPrompt([ConfirmationChoice.SHOW_FULL, ConfirmationChoice.REJECT])
    gate = ConfirmationGate(prompt)
    decision = await gate.request_approval(pending(long_content, old="previous"))

    assert decision is WriteDecision.REJECTED
    preview, full = prompt.requests
    assert not preview.full and "more characters" in preview.content
    assert full.full and full.content == long_content
    assert not full.is_new_file


@pytest.mark.asyncio
async def test_input_is_paused_during_the_request_and_resumed_after():
    control = PausableInput()
    seen = []
    prompt = ScriptedPrompt([ConfirmationChoice.REJECT], on_ask=lambda request: seen.append(control.paused))
    gate = ConfirmationGate(prompt, control)

    await gate.request_approval(pending())
    assert seen == [True]
    assert not control.paused
    assert control.pause_count == 1


@pytest.mark.asyncio
async def test_prompt_failure_is_a_rejection_and_input_is_resumed():
    control = PausableInput()

    class BrokenPrompt:
        async def ask(self, request):
            raise RuntimeError("terminal went away")

    gate = ConfirmationGate(BrokenPrompt(), control)
    assert await gate.request_approval(pending()) is WriteDecision.REJECTED
    assert not control.paused


@pytest.mark.asyncio
async def test_unknown_choice_is_a_rejection():
    gate = ConfirmationGate(ScriptedPrompt(["approve-always"]))
    assert await gate.request_approval(pending()) is WriteDecision.REJECTED


@pytest.mark.asyncio
async def test_only_one_request_is_outstanding_at_a_time():
    active = []
    overlaps = []

    class SlowPrompt:
        async def ask(self, request):
            active.append(request.path)
            overlaps.append(len(active))
            await asyncio.sleep(0.01)
            active.pop()
            return ConfirmationChoice.APPROVE_ONCE

    gate = ConfirmationGate(SlowPrompt())
    await asyncio.gather(gate.request_approval(pending()), gate.request_approval(pending()))
    assert overlaps == [1, 1]


def test_preview_is_bounded():
    assert preview_content("short") == "short"
    preview = preview_content("x" * 5000, max_chars=100)
    assert preview.startswith("x" * 100)
    assert "4900 more characters" in preview


def test_parse_choice_aliases():
    assert parse_choice("a") is ConfirmationChoice.APPROVE_ONCE
    assert parse_choice(" Yes ") is ConfirmationChoice.APPROVE_ONCE
    assert parse_choice("n") is ConfirmationChoice.REJECT
    assert parse_choice("full") is ConfirmationChoice.SHOW_FULL
    assert parse_choice("maybe") is None


@pytest.mark.asyncio
async def test_console_prompt_reprompts_and_treats_eof_as_reject():
    answers = iter(["maybe", "r"])
    output = []
    prompt = ConsoleConfirmationPrompt(input_func=lambda _: next(answers), output=output.append)
    gate = ConfirmationGate(prompt)
    assert await gate.request_approval(pending()) is WriteDecision.REJECTED
    assert any("Please answer" in line for line in output)

    def eof(_):
        raise EOFError

    gate = ConfirmationGate(ConsoleConfirmationPrompt(input_func=eof, output=output.append))
    assert await gate.request_approval(pending()) is WriteDecision.REJECTED

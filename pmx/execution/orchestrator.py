#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Orchestrator: the bounded tool-calling conversation with a reasoning service.

One ``Orchestrator`` drives one session. Each turn sends the full message
history plus the tool catalog to the reasoning service, executes every
requested tool call in order through the dispatcher, appends one tool-result
message per call, and repeats until one of three terminations:

* the report tool was called successfully (``REPORT_SUBMITTED``),
* the service answered in plain text without tool calls (``FINAL_ANSWER``),
* the turn or time budget ran out (``BUDGET_EXHAUSTED``).

A reasoning-service failure is not a termination; it is raised to the caller
as ``SessionFailedError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence, Set, Tuple

from pmx.debug_logger import get_logger
from pmx.execution.budget import SessionBudget
from pmx.execution.evidence import EvidenceItem
from pmx.tools.catalog import ToolName, ToolSpec
from pmx.tools.registry import SessionContext, ToolDispatcher


LAST_TURN_NUDGE = (
    "This is your final turn. Call {tool} now with a summary and details of what you "
    "have found so far. Do not request any other tool."
)
SUMMARY_CHARS = 300


# ========== Conversation model ==========

class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class ToolInvocationRequest:
    """A tool call requested by the reasoning service.

    ``arguments`` is the raw payload: usually a JSON string, sometimes
    already a mapping.
    """

    id: str
    name: str
    arguments: Any = None


@dataclass(frozen=True)
class Message:
    """One immutable entry in the conversation history."""

    role: Role
    content: Optional[str] = None
    tool_calls: Tuple[ToolInvocationRequest, ...] = ()
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(Role.SYSTEM, content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(Role.USER, content)

    @classmethod
    def assistant(cls, content: Optional[str], tool_calls: Sequence[ToolInvocationRequest] = ()) -> "Message":
        return cls(Role.ASSISTANT, content, tuple(tool_calls))

    @classmethod
    def tool_result(cls, call_id: str, content: str, name: Optional[str] = None) -> "Message":
        return cls(Role.TOOL, content, tool_call_id=call_id, name=name)


@dataclass(frozen=True)
class ServiceResponse:
    """What the reasoning service returned for one turn; either part may be absent."""

    text: Optional[str] = None
    tool_calls: Tuple[ToolInvocationRequest, ...] = ()


class ReasoningService(Protocol):
    """The external reasoning service, as seen by the orchestrator."""

    async def send(self, messages: Sequence[Message], catalog: Sequence[ToolSpec]) -> ServiceResponse:
        ...


class ReasoningServiceError(Exception):
    """Transport failure or malformed response from the reasoning service."""


class SessionFailedError(Exception):
    """A session ended because the reasoning service failed.

    Attributes:
        turn: The turn during which the failure happened.
        transcript: Messages up to (not including) the failed request's answer.
    """

    def __init__(self, message: str, turn: int, transcript: Sequence[Message] = ()):
        super().__init__(message)
        self.turn = turn
        self.transcript = tuple(transcript)


# ========== Session state and result ==========

class SessionState(Enum):
    RUNNING = "running"
    AWAITING_TOOL_RESULTS = "awaiting_tool_results"
    TERMINATED = "terminated"


class Termination(Enum):
    """How a session ended (the provenance of its result)."""
    REPORT_SUBMITTED = "report_submitted"
    FINAL_ANSWER = "final_answer"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class InvestigationResult:
    """Terminal output of a session, produced exactly once."""

    objective: str
    summary: str
    details: str
    evidence: Tuple[EvidenceItem, ...]
    termination: Termination
    turns: int
    reported_evidence: Tuple[EvidenceItem, ...] = ()
    transcript: Tuple[Message, ...] = field(default=(), repr=False)
    elapsed_seconds: float = 0.0

    @property
    def complete(self) -> bool:
        """False for a budget-exhausted result, which must not be presented as an answer."""
        return self.termination is not Termination.BUDGET_EXHAUSTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "objective": self.objective,
            "summary": self.summary,
            "details": self.details,
            "termination": self.termination.value,
            "complete": self.complete,
            "turns": self.turns,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "evidence": [item.to_dict() for item in self.evidence],
            "reported_evidence": [item.to_dict() for item in self.reported_evidence],
        }


def _first_paragraph(text: str) -> str:
    paragraph = text.strip().split("\n\n", 1)[0].strip()
    if len(paragraph) > SUMMARY_CHARS:
        paragraph = paragraph[:SUMMARY_CHARS].rstrip() + "..."
    return paragraph


# ========== Turn loop ==========

class Orchestrator:
    """Runs one session against ``service`` using ``dispatcher``'s catalog.

    Args:
        service: The reasoning service.
        dispatcher: Tool dispatcher; its catalog is what the service is offered.
        context: Session context (root, ledger, gate, ...) for tool handlers.
        budget: Turn and wall-clock limits for this session.
        report_tool: Tool whose successful call ends the session with a report.
    """

    def __init__(
        self,
        service: ReasoningService,
        dispatcher: ToolDispatcher,
        context: SessionContext,
        budget: SessionBudget,
        report_tool: ToolName = ToolName.SUBMIT_REPORT,
    ):
        self.service = service
        self.dispatcher = dispatcher
        self.context = context
        self.budget = budget
        self.report_tool = report_tool
        self.state = SessionState.RUNNING
        self.messages: List[Message] = []
        self.result: Optional[InvestigationResult] = None
        self.logger = get_logger()
        if context.budget is None:
            context.budget = budget

    @property
    def offers_report_tool(self) -> bool:
        return any(spec.name is self.report_tool for spec in self.dispatcher.catalog)

    def _transition(self, state: SessionState, **details: Any) -> None:
        self.state = state
        self.logger.log_workflow_phase(state.value, details or None)

    async def run(self, objective: str, system_prompt: str, history: Sequence[Message] = ()) -> InvestigationResult:
        """Drive the session to termination and return its result.

        Raises:
            SessionFailedError: If the reasoning service fails.
            RuntimeError: If this orchestrator already ran.
        """
        if self.result is not None or self.messages:
            raise RuntimeError("An Orchestrator runs a single session; create a new one")

        self.messages = [Message.system(system_prompt), *history, Message.user(objective)]
        self.budget.start()
        self._transition(SessionState.RUNNING, objective=objective[:200])
        nudged = False

        while True:
            reason = self.budget.exhaustion_reason()
            if reason is not None:
                return self._finish(self._budget_result(objective, reason))

            if not nudged and self.budget.turns_remaining == 1 and self.offers_report_tool:
                self.messages.append(Message.user(LAST_TURN_NUDGE.format(tool=self.report_tool.value)))
                nudged = True

            turn = self.budget.record_turn()
            try:
                response = await self.service.send(tuple(self.messages), self.dispatcher.catalog)
            except ReasoningServiceError as e:
                self.logger.log_error("orchestrator", e, {"turn": turn})
                self._transition(SessionState.TERMINATED, failed=True, turn=turn)
                raise SessionFailedError(f"Reasoning service failed on turn {turn}: {e}", turn, self.messages) from e

            if not response.tool_calls:
                text = (response.text or "").strip()
                self.messages.append(Message.assistant(text))
                return self._finish(self._answer_result(objective, text))

            requests = self._unique_ids(response.tool_calls, turn)
            self.messages.append(Message.assistant(response.text, requests))
            self._transition(SessionState.AWAITING_TOOL_RESULTS, turn=turn, calls=[r.name for r in requests])

            report: Optional[Dict[str, Any]] = None
            for request in requests:
                outcome = await self.dispatcher.dispatch(request.name, request.arguments, self.context)
                self.messages.append(Message.tool_result(request.id, outcome.text, request.name))
                if report is None and outcome.ok and self.dispatcher.resolve(request.name) is self.report_tool:
                    report = outcome.arguments

            if report is not None:
                return self._finish(self._report_result(objective, report))
            self._transition(SessionState.RUNNING, turn=turn)

    @staticmethod
    def _unique_ids(calls: Sequence[ToolInvocationRequest], turn: int) -> Tuple[ToolInvocationRequest, ...]:
        """Re-key missing or duplicate ids so each call in the turn is unique."""
        seen: Set[str] = set()
        unique = []
        for index, call in enumerate(calls):
            call_id = (call.id or "").strip()
            if not call_id or call_id in seen:
                call_id = f"call_{turn}_{index}"
                while call_id in seen:
                    call_id += "_"
                call = ToolInvocationRequest(call_id, call.name, call.arguments)
            seen.add(call_id)
            unique.append(call)
        return tuple(unique)

    def _result(self, objective: str, summary: str, details: str, termination: Termination,
                reported: Tuple[EvidenceItem, ...] = ()) -> InvestigationResult:
        return InvestigationResult(
            objective=objective,
            summary=summary,
            details=details,
            evidence=self.context.ledger.snapshot(),
            termination=termination,
            turns=self.budget.turns_used,
            reported_evidence=reported,
            transcript=tuple(self.messages),
            elapsed_seconds=self.budget.elapsed(),
        )

    def _report_result(self, objective: str, report: Dict[str, Any]) -> InvestigationResult:
        items = (EvidenceItem.from_dict(item) for item in report.get("evidence") or ())
        return self._result(
            objective,
            summary=str(report.get("summary", "")).strip(),
            details=str(report.get("details", "")).strip(),
            termination=Termination.REPORT_SUBMITTED,
            reported=tuple(item for item in items if item is not None),
        )

    def _answer_result(self, objective: str, text: str) -> InvestigationResult:
        if not text:
            text = "(The reasoning service ended the session without an answer.)"
        return self._result(objective, _first_paragraph(text), text, Termination.FINAL_ANSWER)

    def _budget_result(self, objective: str, reason: str) -> InvestigationResult:
        lines = [f"The session stopped before reaching a conclusion: {reason}."]
        paths = self.context.ledger.paths()
        if paths:
            lines.append("")
            lines.append("Files inspected before stopping:")
            lines.extend(f"- {path}" for path in paths)
        last_text = next(
            (m.content for m in reversed(self.messages) if m.role is Role.ASSISTANT and m.content),
            None,
        )
        if last_text:
            lines.append("")
            lines.append("Last partial notes from the assistant:")
            lines.append(last_text.strip())
        return self._result(
            objective,
            summary=f"Incomplete: no conclusion was reached ({reason}).",
            details="\n".join(lines),
            termination=Termination.BUDGET_EXHAUSTED,
        )

    def _finish(self, result: InvestigationResult) -> InvestigationResult:
        self.result = result
        self._transition(
            SessionState.TERMINATED,
            termination=result.termination.value,
            turns=result.turns,
            evidence=len(result.evidence),
        )
        return result

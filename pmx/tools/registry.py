#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Tool registry and dispatcher for pmx.

A ``ToolDispatcher`` maps the closed ``ToolName`` enumeration to ``ToolHandler``
implementations. ``execute`` never raises for tool-level problems: unknown
names, malformed arguments, policy blocks and I/O failures all come back as
JSON error text for the reasoning service.
"""

from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from contextlib import nullcontext
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple, Union

from pmx.config import LIST_LIMIT, MAX_FILE_BYTES, MAX_READ_CHARS, SEARCH_MATCH_LIMIT
from pmx.debug_logger import get_logger
from pmx.execution.budget import SessionBudget
from pmx.execution.confirmation import ConfirmationGate, PendingWrite, WriteDecision
from pmx.execution.evidence import EvidenceLedger
from pmx.tools import file_ops
from pmx.tools.catalog import ToolName, ToolSpec, catalog_names
from pmx.tools.errors import (
    ToolError,
    ToolErrorType,
    ToolExecutionError,
    policy_violation_error,
    rejected_write_error,
    unknown_tool_error,
    validation_error,
)
from pmx.tools.path_policy import Operation, PathDecision, PolicyViolation, enforce, normalize


# ========== Operational log ==========

@dataclass(frozen=True)
class ToolEvent:
    """One entry in the operational log shown by the terminal UI.

    ``status`` is ``pending`` (a write awaiting confirmation) or one of the
    terminal statuses ``ok``, ``error`` and ``cancelled``.
    """

    kind: str
    target: str
    status: str
    message: str = ""
    preview: str = ""


ToolEventListener = Callable[[ToolEvent], None]


class ToolEventLog:
    """In-memory record of dispatches with listener callbacks."""

    def __init__(self) -> None:
        self.events: List[ToolEvent] = []
        self._listeners: List[ToolEventListener] = []

    def subscribe(self, listener: ToolEventListener) -> None:
        self._listeners.append(listener)

    def emit(self, event: ToolEvent) -> None:
        self.events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                # A broken renderer must not affect the session.
                get_logger().log_error("tools", e, {"event": event.kind})

    def __len__(self) -> int:
        return len(self.events)


# ========== Session context ==========

class MemoryUpdater(Protocol):
    """Persisted product memory that accepts partial structured findings."""

    def update(self, partial: Dict[str, Any]) -> None:
        ...


@dataclass
class SessionContext:
    """Everything a tool handler may touch, passed explicitly per session."""

    root: Path
    ledger: EvidenceLedger = field(default_factory=EvidenceLedger)
    events: ToolEventLog = field(default_factory=ToolEventLog)
    budget: Optional[SessionBudget] = None
    gate: Optional[ConfirmationGate] = None
    memory: Optional[MemoryUpdater] = None
    max_read_chars: int = MAX_READ_CHARS
    list_limit: int = LIST_LIMIT
    search_limit: int = SEARCH_MATCH_LIMIT
    max_file_bytes: int = MAX_FILE_BYTES

    def __post_init__(self) -> None:
        self.root = Path(self.root).expanduser().resolve()

    def check_path(self, tool_name: str, path: str, operation: Operation) -> PathDecision:
        """Enforce the path policy, following symlinks; raise ToolExecutionError when blocked."""
        try:
            return enforce(path, operation, self.root, follow_links=True)
        except PolicyViolation as e:
            decision = e.decision
            raise ToolExecutionError(
                policy_violation_error(tool_name, decision.normalized or path, decision.rule, decision.reason)
            ) from e


# ========== Argument parsing ==========

def parse_arguments(raw: Union[str, Mapping[str, Any], None]) -> Dict[str, Any]:
    """Decode a tool-call argument payload into a dict.

    Raises:
        ValueError: If the payload is not valid JSON or not an object.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        args = dict(raw)
    else:
        text = str(raw).strip()
        if not text:
            return {}
        try:
            args = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"arguments are not valid JSON ({e.msg} at position {e.pos})") from e
        if not isinstance(args, dict):
            raise ValueError(f"arguments must be a JSON object, got {type(args).__name__}")

    # Some models wrap tool args one level deep (e.g. {"arguments": {...}}).
    while len(args) == 1 and isinstance(args.get("arguments"), dict):
        args = args["arguments"]
    return args


def _string_arg(args: Dict[str, Any], name: str, tool_name: str, default: Optional[str] = None) -> str:
    value = args.get(name)
    if value is None:
        value = default
    if value is None:
        raise ToolExecutionError(validation_error(f"missing required parameter '{name}'", tool_name))
    if not isinstance(value, str):
        raise ToolExecutionError(
            validation_error(f"parameter '{name}' must be a string", tool_name, {name: type(value).__name__})
        )
    return value


# ========== Handlers ==========

class ToolHandler(ABC):
    """Capability interface implemented by every tool."""

    name: ToolName

    @abstractmethod
    async def run(self, args: Dict[str, Any], context: SessionContext) -> str:
        """Perform the tool and return the result text."""

    def target(self, args: Dict[str, Any], context: SessionContext) -> str:
        """Short description of what the call touches, for the operational log.

        Paths are shown in their normalized project-relative form when the
        path can be placed inside the project.
        """
        raw = str(args.get("path") or ".")
        return normalize(raw, context.root) or raw


class ListDirectoryHandler(ToolHandler):
    name = ToolName.LIST_DIRECTORY

    async def run(self, args, context):
        path = _string_arg(args, "path", self.name.value, default=".")
        decision = context.check_path(self.name.value, path, Operation.READ)
        listing = await asyncio.to_thread(
            file_ops.list_files, context.root, decision.normalized, context.list_limit
        )
        return json.dumps(listing, ensure_ascii=False)


class ReadFileHandler(ToolHandler):
    name = ToolName.READ_FILE

    async def run(self, args, context):
        path = _string_arg(args, "path", self.name.value)
        decision = context.check_path(self.name.value, path, Operation.READ)
        result = await asyncio.to_thread(
            file_ops.read_text, context.root, decision.normalized, context.max_read_chars, context.max_file_bytes
        )
        summary = f"Read {result.total_chars} characters"
        if result.truncated:
            summary += " (truncated)"
        context.ledger.record(decision.normalized, summary, result.snippet)
        return result.text


class ReadOutlineHandler(ToolHandler):
    name = ToolName.READ_OUTLINE

    async def run(self, args, context):
        path = _string_arg(args, "path", self.name.value)
        decision = context.check_path(self.name.value, path, Operation.READ)
        outline, count = await asyncio.to_thread(
            file_ops.read_outline, context.root, decision.normalized, context.max_read_chars, context.max_file_bytes
        )
        context.ledger.record(decision.normalized, f"Outline ({count} declarations)")
        return outline


class SearchTextHandler(ToolHandler):
    name = ToolName.SEARCH_TEXT

    def target(self, args, context):
        return f"'{args.get('pattern', '')}' in {args.get('path') or '.'}"

    async def run(self, args, context):
        pattern = _string_arg(args, "pattern", self.name.value)
        if not pattern:
            raise ToolExecutionError(validation_error("pattern must not be empty", self.name.value))
        path = _string_arg(args, "path", self.name.value, default=".")
        decision = context.check_path(self.name.value, path, Operation.READ)
        result = await asyncio.to_thread(
            file_ops.search_files,
            context.root, decision.normalized, pattern, context.search_limit, context.max_file_bytes,
        )
        first_hits: Dict[str, Dict[str, Any]] = {}
        for match in result["matches"]:
            first_hits.setdefault(match["file"], match)
        for file, match in first_hits.items():
            context.ledger.record(file, f"Matches '{pattern}' (line {match['line']})", match["text"])
        return json.dumps(result, ensure_ascii=False)


class ProposeWriteHandler(ToolHandler):
    """Policy check, then the confirmation gate, then the write."""

    name = ToolName.PROPOSE_WRITE

    async def run(self, args, context):
        tool = self.name.value
        path = _string_arg(args, "path", tool)
        content = _string_arg(args, "content", tool)
        reason = _string_arg(args, "reason", tool, default="")
        decision = context.check_path(tool, path, Operation.WRITE)
        rel = decision.normalized

        if context.gate is None:
            raise ToolExecutionError(ToolError(
                error_type=ToolErrorType.PERMISSION_DENIED,
                message=f"{tool}: No confirmation channel is available in this session. {rel} was NOT modified.",
                context={"tool": tool, "path": rel, "written": False},
            ))

        old_content = await asyncio.to_thread(file_ops.read_existing, context.root, rel)
        pending = PendingWrite(path=rel, old_content=old_content, new_content=content, justification=reason)
        context.events.emit(ToolEvent(
            kind=tool, target=rel, status="pending", message=reason, preview=content[:file_ops.SNIPPET_CHARS],
        ))

        pause = context.budget.paused() if context.budget is not None else nullcontext()
        with pause:
            verdict = await context.gate.request_approval(pending)

        if verdict is not WriteDecision.APPROVED:
            raise ToolExecutionError(rejected_write_error(rel, tool))

        written = await asyncio.to_thread(file_ops.apply_write, context.root, rel, content)
        return json.dumps({
            "wrote": rel,
            "bytes": written,
            "created": pending.is_new_file,
            "message": f"Saved {rel} (approved by the user)",
        })


class SubmitReportHandler(ToolHandler):
    """Validates the report; the orchestrator captures its arguments."""

    name = ToolName.SUBMIT_REPORT

    def target(self, args, context):
        return str(args.get("summary") or "")[:80]

    async def run(self, args, context):
        tool = self.name.value
        _string_arg(args, "summary", tool)
        _string_arg(args, "details", tool)
        evidence = args.get("evidence")
        if evidence is not None and not isinstance(evidence, list):
            raise ToolExecutionError(validation_error("evidence must be an array", tool))
        return json.dumps({"status": "submitted", "evidence_items": len(evidence or [])})


class UpdateMemoryHandler(ToolHandler):
    """Fire-and-forget forward of structured findings to the memory store."""

    name = ToolName.UPDATE_MEMORY

    MEMORY_KEYS = ("identity", "risks", "personas")

    def target(self, args, context):
        return ", ".join(key for key in self.MEMORY_KEYS if key in args) or "memory"

    async def run(self, args, context):
        partial = {key: args[key] for key in self.MEMORY_KEYS if args.get(key) is not None}
        if not partial:
            raise ToolExecutionError(
                validation_error("provide at least one of identity, risks, personas", self.name.value)
            )
        if context.memory is None:
            return json.dumps({"status": "ignored", "reason": "no memory store in this session"})
        try:
            await asyncio.to_thread(context.memory.update, partial)
        except (OSError, ValueError, TypeError) as e:
            get_logger().log_error("memory", e, {"keys": list(partial)})
        return json.dumps({"status": "recorded", "keys": list(partial)})


def default_handlers() -> Dict[ToolName, ToolHandler]:
    """The standard handlers for the file and report tools."""
    handlers: Iterable[ToolHandler] = (
        ListDirectoryHandler(),
        ReadFileHandler(),
        ReadOutlineHandler(),
        SearchTextHandler(),
        ProposeWriteHandler(),
        SubmitReportHandler(),
        UpdateMemoryHandler(),
    )
    return {handler.name: handler for handler in handlers}


# ========== Dispatcher ==========

@dataclass(frozen=True)
class ToolOutcome:
    """Result of one dispatch: the text for the reasoning service plus status."""

    tool: str
    text: str
    ok: bool
    arguments: Dict[str, Any] = field(default_factory=dict)
    error_type: Optional[ToolErrorType] = None


def _terminal_status(error: Optional[ToolError]) -> str:
    if error is None:
        return "ok"
    if error.error_type is ToolErrorType.REJECTED:
        return "cancelled"
    return "error"


class ToolDispatcher:
    """Typed registry from ToolName to handler, restricted to one catalog."""

    def __init__(self, handlers: Mapping[ToolName, ToolHandler], catalog: Sequence[ToolSpec]):
        self.handlers: Dict[ToolName, ToolHandler] = dict(handlers)
        self.catalog: Tuple[ToolSpec, ...] = tuple(catalog)
        missing = [spec.name.value for spec in self.catalog if spec.name not in self.handlers]
        if missing:
            raise ValueError(f"No handler registered for catalog tools: {', '.join(missing)}")
        self._specs = {spec.name: spec for spec in self.catalog}
        self.logger = get_logger()

    def with_handler(self, handler: ToolHandler) -> "ToolDispatcher":
        """Return a new dispatcher with ``handler`` added (or replaced)."""
        handlers = dict(self.handlers)
        handlers[handler.name] = handler
        return ToolDispatcher(handlers, self.catalog)

    def resolve(self, tool_name: str) -> Optional[ToolName]:
        """The ToolName for ``tool_name`` if it is offered in this catalog."""
        name = ToolName.parse(tool_name)
        if name is None or name not in self._specs:
            return None
        return name

    async def execute(self, tool_name: str, arguments: Any, context: SessionContext) -> str:
        """Execute one tool call and return its result text."""
        outcome = await self.dispatch(tool_name, arguments, context)
        return outcome.text

    async def dispatch(self, tool_name: str, arguments: Any, context: SessionContext) -> ToolOutcome:
        """Execute one tool call; every call emits exactly one terminal event."""
        start_time = time.time()
        args: Dict[str, Any] = {}
        error: Optional[ToolError] = None
        result = ""
        target = ""

        name = self.resolve(tool_name)
        if name is None:
            error = unknown_tool_error(str(tool_name), catalog_names(self.catalog))
        else:
            handler = self.handlers[name]
            try:
                args = parse_arguments(arguments)
                target = handler.target(args, context)
                missing = self._specs[name].missing_arguments(args)
                if missing:
                    raise ToolExecutionError(validation_error(
                        f"missing required parameter(s): {', '.join(missing)}", name.value,
                    ))
                result = await handler.run(args, context)
            except ToolExecutionError as e:
                error = e.error
            except ValueError as e:
                error = validation_error(str(e), name.value)
            except OSError as e:
                error = ToolError.from_exception(e, name.value, target)

        duration = (time.time() - start_time) * 1000
        status = _terminal_status(error)
        text = error.to_result() if error is not None else result
        self.logger.log_tool_execution(
            str(tool_name), args, result if error is None else None,
            error=error.message if error is not None else None, duration_ms=duration,
        )
        context.events.emit(ToolEvent(
            kind=str(tool_name),
            target=target,
            status=status,
            message=error.message if error is not None else "",
            preview=text[:file_ops.SNIPPET_CHARS],
        ))
        return ToolOutcome(
            tool=str(tool_name),
            text=text,
            ok=error is None,
            arguments=args,
            error_type=error.error_type if error is not None else None,
        )

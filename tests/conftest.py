"""Shared fixtures: a small project tree, a scripted reasoning service, a
scripted confirmation prompt and a controllable clock."""

import json
from pathlib import Path

import pytest

from pmx.debug_logger import DebugLogger
from pmx.execution.budget import SessionBudget
from pmx.execution.confirmation import ConfirmationGate, PausableInput
from pmx.execution.orchestrator import ServiceResponse, ToolInvocationRequest
from pmx.tools.registry import SessionContext


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeReasoningService:
    """Returns scripted responses in order and records every request.

    An exception in the script is raised instead of returned. With
    ``repeat_last`` the final response is returned forever.
    """

    def __init__(self, responses, repeat_last: bool = False, on_send=None):
        self.responses = list(responses)
        self.repeat_last = repeat_last
        self.on_send = on_send
        self.requests = []

    async def send(self, messages, catalog):
        self.requests.append((tuple(messages), tuple(catalog)))
        if self.on_send is not None:
            self.on_send()
        if not self.responses:
            raise AssertionError("reasoning service called more often than scripted")
        item = self.responses[0] if (self.repeat_last and len(self.responses) == 1) else self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def calls(self) -> int:
        return len(self.requests)

    def catalog_names(self, index: int = 0):
        return [spec.name.value for spec in self.requests[index][1]]


class ScriptedPrompt:
    """ConfirmationPrompt that answers from a list and records requests."""

    def __init__(self, choices, on_ask=None):
        self.choices = list(choices)
        self.on_ask = on_ask
        self.requests = []

    async def ask(self, request):
        self.requests.append(request)
        if self.on_ask is not None:
            self.on_ask(request)
        return self.choices.pop(0)


def tool_call(name: str, arguments=None, call_id: str = None) -> ToolInvocationRequest:
    """A tool call with JSON-string arguments, as providers deliver them."""
    payload = json.dumps(arguments) if isinstance(arguments, dict) else arguments
    return ToolInvocationRequest(call_id if call_id is not None else f"call_{name}", name, payload)


def calls(*requests) -> ServiceResponse:
    return ServiceResponse(text=None, tool_calls=tuple(requests))


def answer(text: str) -> ServiceResponse:
    return ServiceResponse(text=text)


@pytest.fixture(autouse=True)
def reset_debug_logger():
    """Each test starts with a fresh, disabled logger."""
    DebugLogger.reset()
    yield
    DebugLogger.reset()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "app.py").write_text(
        "import os\n\n\ndef main():\n    return 'hello world'\n\n\nclass Server:\n    pass\n",
        encoding="utf-8",
    )
    (root / "src" / "util.py").write_text("def helper():\n    return 42\n", encoding="utf-8")
    (root / "docs").mkdir()
    (root / "docs" / "intro.md").write_text("# Intro\n\nThis project says hello.\n", encoding="utf-8")
    (root / "README.md").write_text("# Demo\n", encoding="utf-8")
    (root / ".git").mkdir()
    (root / ".git" / "config").write_text("[core]\nhello = 1\n", encoding="utf-8")
    (root / "node_modules" / "left-pad").mkdir(parents=True)
    (root / "node_modules" / "left-pad" / "index.js").write_text("// hello\n", encoding="utf-8")
    (root / ".env").write_text("SECRET=hello\n", encoding="utf-8")
    return root


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_context(project: Path):
    """Factory for a SessionContext over the project fixture."""

    def factory(choices=(), on_ask=None, budget=None, with_gate=True, **kwargs):
        prompt = ScriptedPrompt(choices, on_ask=on_ask)
        gate = ConfirmationGate(prompt, PausableInput()) if with_gate else None
        context = SessionContext(root=project, gate=gate, budget=budget, **kwargs)
        context.prompt = prompt
        return context

    return factory


@pytest.fixture
def budget_factory(clock: FakeClock):
    def factory(max_turns: int = 10, max_seconds: float = 60.0) -> SessionBudget:
        return SessionBudget(max_turns, max_seconds, clock=clock)

    return factory

"""Tests for terminal rendering of events and results."""

from pmx.execution.evidence import EvidenceItem
from pmx.execution.orchestrator import InvestigationResult, Termination
from pmx.terminal.formatting import create_box, strip_ansi
from pmx.terminal.ui import format_result, render_tool_event
from pmx.tools.registry import ToolEvent


def result(termination):
    return InvestigationResult(
        objective="q",
        summary="Short answer",
        details="Longer details",
        evidence=(EvidenceItem("src/app.py", "Read 10 characters"),),
        termination=termination,
        turns=2,
        elapsed_seconds=1.5,
    )


def test_incomplete_results_are_labeled():
    text = strip_ansi(format_result(result(Termination.BUDGET_EXHAUSTED)))
    assert text.lstrip().startswith("INCOMPLETE")
    assert "src/app.py: Read 10 characters" in text
    assert "2 turn(s), 1.5s, 1 artifact(s) inspected" in text


def test_report_and_answer_titles():
    assert strip_ansi(format_result(result(Termination.REPORT_SUBMITTED))).lstrip().startswith("Report")
    assert strip_ansi(format_result(result(Termination.FINAL_ANSWER))).lstrip().startswith("Answer")


def test_tool_event_lines():
    pending = strip_ansi(render_tool_event(ToolEvent("propose_write", "docs/a.md", "pending")))
    assert "Write(docs/a.md)" in pending and "awaiting your approval" in pending

    rejected = strip_ansi(render_tool_event(ToolEvent("propose_write", "docs/a.md", "cancelled")))
    assert "not saved" in rejected

    saved = strip_ansi(render_tool_event(ToolEvent("propose_write", "docs/a.md", "ok")))
    assert "saved" in saved

    failed = strip_ansi(render_tool_event(ToolEvent("read_file", ".env", "error", message="blocked")))
    assert "Read(.env)" in failed and "blocked" in failed


def test_create_box_clips_long_lines():
    box = strip_ansi(create_box("Title", ["x" * 200], width=40)).splitlines()
    assert all(len(line) == 40 for line in box[1:])

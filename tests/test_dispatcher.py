"""Tests for the typed tool registry and dispatcher."""

import json
import os

import pytest

from pmx.execution.confirmation import ConfirmationChoice
from pmx.tools.catalog import (
    AUTHORING_CATALOG,
    CORE_CATALOG,
    REPL_CATALOG,
    UPDATE_MEMORY,
    ToolName,
)
from pmx.tools.errors import ToolErrorType
from pmx.tools.registry import ToolDispatcher, ToolHandler, default_handlers, parse_arguments


FULL_CATALOG = AUTHORING_CATALOG + (UPDATE_MEMORY,)


@pytest.fixture
def dispatcher():
    return ToolDispatcher(default_handlers(), FULL_CATALOG)


def terminal_events(context):
    return [e for e in context.events.events if e.status in ("ok", "error", "cancelled")]


class TestParseArguments:
    def test_accepts_json_mapping_and_none(self):
        assert parse_arguments('{"path": "a"}') == {"path": "a"}
        assert parse_arguments({"path": "a"}) == {"path": "a"}
        assert parse_arguments(None) == {}
        assert parse_arguments("  ") == {}

    def test_unwraps_nested_arguments(self):
        assert parse_arguments('{"arguments": {"path": "a"}}') == {"path": "a"}

    def test_rejects_invalid_payloads(self):
        with pytest.raises(ValueError, match="not valid JSON"):
            parse_arguments("{path: a")
        with pytest.raises(ValueError, match="JSON object"):
            parse_arguments('["a"]')


def test_every_catalog_tool_needs_a_handler():
    with pytest.raises(ValueError, match="run_investigation"):
        ToolDispatcher(default_handlers(), REPL_CATALOG)


@pytest.mark.asyncio
async def test_read_file_success_records_evidence(dispatcher, make_context):
    context = make_context()
    outcome = await dispatcher.dispatch("read_file", '{"path": "src/app.py"}', context)
    assert outcome.ok
    assert "def main" in outcome.text
    items = context.ledger.snapshot()
    assert [item.path for item in items] == ["src/app.py"]
    assert items[0].summary.startswith("Read ")
    assert items[0].snippet.startswith("import os")


@pytest.mark.asyncio
async def test_missing_file_is_an_error_result_not_an_exception(dispatcher, make_context):
    context = make_context()
    outcome = await dispatcher.dispatch("read_file", {"path": "docs/x.md"}, context)
    assert not outcome.ok
    assert outcome.error_type is ToolErrorType.NOT_FOUND
    payload = json.loads(outcome.text)
    assert payload["error_type"] == "not_found"
    assert "docs/x.md" in payload["error"]
    assert len(context.ledger) == 0


@pytest.mark.asyncio
async def test_blocked_read_names_the_rule(dispatcher, make_context):
    context = make_context()
    outcome = await dispatcher.dispatch("read_file", {"path": ".env"}, context)
    payload = json.loads(outcome.text)
    assert payload["error_type"] == "permission_denied"
    assert payload["context"]["rule"] == "read-blocked:secrets:.env"
    assert len(context.ledger) == 0


@pytest.mark.asyncio
async def test_write_outside_allowlist_never_reaches_the_gate(dispatcher, make_context, project):
    context = make_context(choices=[ConfirmationChoice.APPROVE_ONCE])
    args = {"path": "src/app.ts", "content": "x", "reason": "refactor"}
    outcome = await dispatcher.dispatch("propose_write", args, context)

    payload = json.loads(outcome.text)
    assert payload["error_type"] == "permission_denied"
    assert payload["context"]["rule"] == "write-allowlist"
    assert context.prompt.requests == []
    assert not (project / "src" / "app.ts").exists()
    assert [e.status for e in context.events.events] == ["error"]


@pytest.mark.asyncio
async def test_rejected_write_leaves_disk_untouched(dispatcher, make_context, project):
    context = make_context(choices=[ConfirmationChoice.REJECT])
    args = {"path": "docs/out.md", "content": "hello", "reason": "notes"}
    outcome = await dispatcher.dispatch("propose_write", args, context)

    assert outcome.error_type is ToolErrorType.REJECTED
    assert "NOT modified" in outcome.text
    assert json.loads(outcome.text)["context"]["written"] is False
    assert not (project / "docs" / "out.md").exists()
    assert [e.status for e in context.events.events] == ["pending", "cancelled"]


@pytest.mark.asyncio
async def test_approved_write_is_saved(dispatcher, make_context, project):
    context = make_context(choices=[ConfirmationChoice.SHOW_FULL, ConfirmationChoice.APPROVE_ONCE])
    args = {"path": "docs/out.md", "content": "hello", "reason": "notes"}
    outcome = await dispatcher.dispatch("propose_write", args, context)

    assert outcome.ok
    result = json.loads(outcome.text)
    assert result["wrote"] == "docs/out.md"
    assert result["created"] is True
    assert (project / "docs" / "out.md").read_text(encoding="utf-8") == "hello"
    assert [r.full for r in context.prompt.requests] == [False, True]
    assert [e.status for e in context.events.events] == ["pending", "ok"]


@pytest.mark.asyncio
async def test_write_without_gate_is_denied(dispatcher, make_context, project):
    context = make_context(with_gate=False)
    args = {"path": "docs/out.md", "content": "hello", "reason": "notes"}
    outcome = await dispatcher.dispatch("propose_write", args, context)
    assert outcome.error_type is ToolErrorType.PERMISSION_DENIED
    assert "NOT modified" in outcome.text
    assert not (project / "docs" / "out.md").exists()


@pytest.mark.asyncio
async def test_unknown_and_uncatalogued_tools(make_context):
    dispatcher = ToolDispatcher(default_handlers(), CORE_CATALOG)
    context = make_context()

    outcome = await dispatcher.dispatch("delete_file", {"path": "README.md"}, context)
    payload = json.loads(outcome.text)
    assert payload["error_type"] == "unknown_tool"
    assert "read_file" in payload["context"]["available_tools"]

    # A real tool that this session's catalog does not offer is also unknown.
    outcome = await dispatcher.dispatch("read_outline", {"path": "src/app.py"}, context)
    assert outcome.error_type is ToolErrorType.UNKNOWN_TOOL


@pytest.mark.asyncio
async def test_malformed_and_missing_arguments(dispatcher, make_context):
    context = make_context()
    outcome = await dispatcher.dispatch("read_file", "{not json", context)
    assert outcome.error_type is ToolErrorType.VALIDATION_ERROR

    outcome = await dispatcher.dispatch("read_file", "{}", context)
    assert outcome.error_type is ToolErrorType.VALIDATION_ERROR
    assert "path" in json.loads(outcome.text)["error"]

    outcome = await dispatcher.dispatch("read_file", {"path": 3}, context)
    assert outcome.error_type is ToolErrorType.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_search_records_one_item_per_file(dispatcher, make_context):
    context = make_context()
    outcome = await dispatcher.dispatch("search_text", {"pattern": "hello"}, context)
    assert outcome.ok
    assert sorted(context.ledger.paths()) == ["docs/intro.md", "src/app.py"]

    outcome = await dispatcher.dispatch("search_text", {"pattern": "("}, context)
    assert outcome.error_type is ToolErrorType.VALIDATION_ERROR


@pytest.mark.asyncio
async def test_list_directory_defaults_to_root(dispatcher, make_context):
    context = make_context()
    outcome = await dispatcher.dispatch("list_directory", None, context)
    listing = json.loads(outcome.text)
    assert listing["path"] == "."
    assert "README.md" in listing["entries"]


@pytest.mark.asyncio
async def test_submit_report_validation(dispatcher, make_context):
    context = make_context()
    outcome = await dispatcher.dispatch("submit_report", {"summary": "s", "details": "d", "evidence": "x"}, context)
    assert outcome.error_type is ToolErrorType.VALIDATION_ERROR

    outcome = await dispatcher.dispatch("submit_report", {"summary": "s", "details": "d"}, context)
    assert outcome.ok
    assert outcome.arguments == {"summary": "s", "details": "d"}


@pytest.mark.asyncio
async def test_update_memory_forwards_partial(dispatcher, make_context):
    class RecordingMemory:
        def __init__(self):
            self.updates = []

        def update(self, partial):
            self.updates.append(partial)

    memory = RecordingMemory()
    context = make_context(memory=memory)
    outcome = await dispatcher.dispatch("update_memory", {"identity": {"name": "Demo"}}, context)
    assert json.loads(outcome.text)["status"] == "recorded"
    assert memory.updates == [{"identity": {"name": "Demo"}}]

    outcome = await dispatcher.dispatch("update_memory", {}, make_context())
    assert outcome.error_type is ToolErrorType.VALIDATION_ERROR

    outcome = await dispatcher.dispatch("update_memory", {"risks": []}, make_context())
    assert json.loads(outcome.text)["status"] == "ignored"


@pytest.mark.asyncio
async def test_each_call_emits_exactly_one_terminal_event(dispatcher, make_context):
    context = make_context(choices=[ConfirmationChoice.REJECT])
    requests = [
        ("read_file", {"path": "README.md"}),
        ("read_file", {"path": "missing.md"}),
        ("nonexistent", {}),
        ("propose_write", {"path": "docs/a.md", "content": "x", "reason": "r"}),
        ("propose_write", {"path": "src/a.py", "content": "x", "reason": "r"}),
    ]
    for name, args in requests:
        await dispatcher.dispatch(name, args, context)
    assert len(terminal_events(context)) == len(requests)


@pytest.mark.asyncio
async def test_execute_returns_text(dispatcher, make_context):
    text = await dispatcher.execute(ToolName.READ_FILE.value, {"path": "README.md"}, make_context())
    assert text == "# Demo\n"


class CannedReadHandler(ToolHandler):
    name = ToolName.READ_FILE

    async def run(self, args, context):
        return f"canned {args['path']}"


@pytest.mark.asyncio
async def test_with_handler_returns_an_extended_copy(dispatcher, make_context):
    replaced = dispatcher.with_handler(CannedReadHandler())

    outcome = await replaced.dispatch("read_file", {"path": "README.md"}, make_context())

    assert outcome.text == "canned README.md"
    assert replaced.catalog == dispatcher.catalog
    assert not isinstance(dispatcher.handlers[ToolName.READ_FILE], CannedReadHandler)


@pytest.mark.asyncio
async def test_write_through_a_symlink_onto_source_is_blocked(dispatcher, make_context, project):
    os.symlink(project / "src" / "app.py", project / "docs" / "notes.md")
    original = (project / "src" / "app.py").read_text(encoding="utf-8")
    context = make_context(choices=[ConfirmationChoice.APPROVE_ONCE])

    outcome = await dispatcher.dispatch(
        "propose_write", {"path": "docs/notes.md", "content": "overwritten", "reason": "notes"}, context,
    )

    assert json.loads(outcome.text)["context"]["rule"] == "symlink-escape"
    assert context.prompt.requests == []
    assert (project / "src" / "app.py").read_text(encoding="utf-8") == original


@pytest.mark.asyncio
async def test_read_through_a_symlinked_directory_is_blocked(dispatcher, make_context, project):
    os.symlink(project / ".git", project / "docs" / "vcs")
    context = make_context()

    read = await dispatcher.dispatch("read_file", {"path": "docs/vcs/config"}, context)
    listing = await dispatcher.dispatch("list_directory", {"path": "docs"}, context)
    search = await dispatcher.dispatch("search_text", {"pattern": "core", "path": "docs"}, context)

    assert json.loads(read.text)["context"]["rule"] == "symlink-escape"
    assert "docs/vcs/" not in json.loads(listing.text)["entries"]
    assert json.loads(search.text)["matches"] == []
    assert len(context.ledger) == 0


@pytest.mark.asyncio
async def test_failed_confirmation_reports_the_file_untouched(dispatcher, make_context, project):
    def broken_terminal(request):
        raise OSError("terminal closed")

    context = make_context(choices=[ConfirmationChoice.APPROVE_ONCE], on_ask=broken_terminal)
    outcome = await dispatcher.dispatch(
        "propose_write", {"path": "docs/out.md", "content": "hello", "reason": "notes"}, context,
    )

    assert outcome.error_type is ToolErrorType.REJECTED
    assert "NOT modified" in outcome.text
    assert not (project / "docs" / "out.md").exists()

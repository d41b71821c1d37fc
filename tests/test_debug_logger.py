from pathlib import Path

from pmx.debug_logger import DebugLogger, get_logger, is_debug_enabled, prune_old_logs


def test_plain_logging_helpers_write_when_enabled(tmp_path: Path):
    logger = DebugLogger.initialize(enabled=True, log_dir=tmp_path)

    logger.info("info message")
    logger.warning("warn %s", "message")
    logger.error("error message")
    logger.debug("debug message")
    logger.close()

    log_file = logger.log_file_path
    assert log_file is not None
    assert log_file.exists()

    content = log_file.read_text()
    assert "pmx.general" in content
    assert "info message" in content
    assert "warn message" in content
    assert "error message" in content
    assert "debug message" in content


def test_plain_logging_helpers_are_noops_when_disabled(tmp_path: Path):
    logger = DebugLogger.initialize(enabled=False, log_dir=tmp_path)

    logger.info("info message")
    logger.warning("warn message")

    assert logger.log_file_path is None
    assert not any(tmp_path.iterdir())
    assert get_logger() is logger
    assert not is_debug_enabled()


def test_structured_events(tmp_path: Path):
    logger = DebugLogger.initialize(enabled=True, log_dir=tmp_path)

    logger.log_tool_execution("read_file", {"path": "README.md"}, "# Demo", duration_ms=1.25)
    logger.log_tool_execution("read_file", {"path": ".env"}, error="blocked")
    logger.log_workflow_phase("running", {"turn": 1})
    logger.log_error("orchestrator", RuntimeError("boom"), {"turn": 2})
    logger.log_llm_response("m", {"message": {"content": "hi", "tool_calls": [
        {"id": "c1", "function": {"name": "read_file", "arguments": "{}"}},
    ]}})
    logger.close()

    content = logger.log_file_path.read_text()
    assert "[TOOL_EXECUTION]" in content
    assert '"error": "blocked"' in content
    assert "[WORKFLOW_PHASE]" in content
    assert "RuntimeError" in content
    assert "[LLM_RESPONSE]" in content
    assert "DEBUG_SESSION_END" in content


def test_prune_old_logs_keeps_newest(tmp_path: Path):
    import os

    for index in range(5):
        path = tmp_path / f"pmx_debug_{index}.log"
        path.write_text("x")
        os.utime(path, (index, index))

    prune_old_logs(tmp_path, keep=2)

    assert sorted(p.name for p in tmp_path.iterdir()) == ["pmx_debug_3.log", "pmx_debug_4.log"]

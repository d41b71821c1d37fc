#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Centralized debug logging system for pmx.

Debug logging is enabled with the ``--debug`` flag (or ``PMX_DEBUG=1``).
Logs are written to ``.pmx/logs/`` in a format that is easy to review after
a session: one structured event per entry, payloads rendered as JSON.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


def prune_old_logs(log_dir: Path, keep: int) -> None:
    """Remove old log files beyond the configured retention limit."""

    if keep < 1 or not log_dir.exists():
        return

    log_files = sorted(
        [path for path in log_dir.glob("*.log") if path.is_file()],
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )

    for stale_file in log_files[keep:]:
        try:
            stale_file.unlink()
        except OSError:
            continue


class DebugLogger:
    """Centralized debug logger with component-specific logging."""

    _instance: Optional['DebugLogger'] = None

    def __init__(self, enabled: bool = False, log_dir: Optional[Path] = None, retention: int = 10):
        """Initialize the debug logger.

        Args:
            enabled: Whether debug logging is enabled
            log_dir: Directory to store log files (defaults to ./.pmx/logs/)
            retention: Number of log files to keep
        """
        self._enabled = enabled
        self._log_file: Optional[Path] = None
        self._loggers: Dict[str, logging.Logger] = {}

        if enabled:
            if log_dir is None:
                log_dir = Path.cwd() / ".pmx" / "logs"
            log_dir.mkdir(exist_ok=True, parents=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            self._log_file = log_dir / f"pmx_debug_{timestamp}.log"

            self._setup_logging()
            prune_old_logs(log_dir, retention)

            self.log("system", "DEBUG_SESSION_START", {
                "timestamp": datetime.now().isoformat(),
                "log_file": str(self._log_file),
            })

    @classmethod
    def initialize(cls, enabled: bool = False, log_dir: Optional[Path] = None, retention: int = 10) -> 'DebugLogger':
        """Initialize the global debug logger instance (replacing a disabled one)."""
        if cls._instance is None or not cls._instance.enabled:
            cls._instance = cls(enabled, log_dir, retention)
        return cls._instance

    @classmethod
    def get_instance(cls) -> 'DebugLogger':
        """Get the global debug logger instance."""
        if cls._instance is None:
            cls._instance = cls(enabled=False)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Close and drop the global instance (mainly for tests)."""
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    def _setup_logging(self):
        formatter = logging.Formatter(
            '%(asctime)s | %(name)-20s | %(levelname)-8s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        file_handler = logging.FileHandler(self._log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)

        root_logger = logging.getLogger('pmx')
        root_logger.setLevel(logging.DEBUG)
        root_logger.addHandler(file_handler)
        root_logger.propagate = False

    def get_logger(self, component: str) -> logging.Logger:
        """Get or create a logger for a specific component (e.g. 'llm', 'tools')."""
        if component not in self._loggers:
            self._loggers[component] = logging.getLogger(f'pmx.{component}')
        return self._loggers[component]

    def log(self, component: str, event: str, data: Optional[Dict[str, Any]] = None, level: str = "INFO"):
        """Log a structured event.

        Args:
            component: Component name (e.g., 'main', 'llm', 'tools')
            event: Event type/name
            data: Optional dictionary of event data
            level: Log level (DEBUG, INFO, WARNING, ERROR)
        """
        if not self._enabled:
            return

        logger = self.get_logger(component)

        message = f"[{event}]"
        if data:
            message += f" {json.dumps(data, indent=2, default=str)}"

        log_level = getattr(logging, level.upper(), logging.INFO)
        logger.log(log_level, message)

    def log_llm_request(self, model: str, messages: list, tools: Optional[list] = None):
        """Log a reasoning-service request."""
        if not self._enabled:
            return

        data = {
            "model": model,
            "message_count": len(messages),
            "messages": [
                {
                    "role": msg.get("role"),
                    "content": str(msg.get("content", ""))[:500]
                }
                for msg in messages
            ],
        }
        if tools:
            data["tools_count"] = len(tools)
            data["tools"] = [tool.get("function", {}).get("name") for tool in tools]

        self.log("llm", "LLM_REQUEST", data, "DEBUG")

    def log_llm_response(self, model: str, response: dict):
        """Log a reasoning-service response."""
        if not self._enabled:
            return

        data: Dict[str, Any] = {"model": model}
        if isinstance(response, dict) and "message" in response:
            msg = response["message"]
            data["content_preview"] = str(msg.get("content", ""))[:500]
            if msg.get("tool_calls"):
                data["tool_calls"] = [
                    {
                        "id": tc.get("id"),
                        "name": tc.get("function", {}).get("name"),
                        "args_preview": str(tc.get("function", {}).get("arguments", ""))[:200]
                    }
                    for tc in msg["tool_calls"]
                ]
        elif isinstance(response, dict) and "error" in response:
            data["error"] = response["error"]

        self.log("llm", "LLM_RESPONSE", data, "DEBUG")

    def log_tool_execution(self, tool_name: str, arguments: Any, result: Any = None, error: Optional[str] = None,
                           duration_ms: Optional[float] = None):
        """Log a tool execution."""
        if not self._enabled:
            return

        if isinstance(arguments, dict):
            args_view: Any = {k: str(v)[:200] for k, v in arguments.items()}
        else:
            args_view = str(arguments)[:200]
        data: Dict[str, Any] = {"tool": tool_name, "arguments": args_view}

        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 1)
        if error:
            data["error"] = str(error)
            level = "ERROR"
        else:
            data["result_preview"] = str(result)[:500] if result is not None else None
            level = "DEBUG"

        self.log("tools", "TOOL_EXECUTION", data, level)

    def log_error(self, component: str, error: Exception, context: Optional[Dict[str, Any]] = None):
        """Log an error with context."""
        if not self._enabled:
            return

        data: Dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
        if context:
            data["context"] = context

        self.log(component, "ERROR", data, "ERROR")

    def log_workflow_phase(self, phase: str, details: Optional[Dict[str, Any]] = None):
        """Log an orchestrator state transition."""
        if not self._enabled:
            return

        data: Dict[str, Any] = {"phase": phase}
        if details:
            data.update(details)

        self.log("orchestrator", "WORKFLOW_PHASE", data, "INFO")

    def _log_plain(self, level: str, msg: str, *args: Any, **kwargs: Any) -> None:
        if not self._enabled:
            return

        logger = self.get_logger("general")
        log_level = getattr(logging, level.upper(), logging.INFO)
        logger.log(log_level, msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_plain("INFO", msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_plain("WARNING", msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_plain("ERROR", msg, *args, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_plain("DEBUG", msg, *args, **kwargs)

    @property
    def enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self._enabled

    @property
    def log_file_path(self) -> Optional[Path]:
        """Get the path to the current log file."""
        return self._log_file

    def close(self):
        """Close the logger and write session end marker."""
        if not self._enabled:
            return
        self.log("system", "DEBUG_SESSION_END", {"timestamp": datetime.now().isoformat()})

        root_logger = logging.getLogger('pmx')
        for handler in root_logger.handlers[:]:
            handler.close()
            root_logger.removeHandler(handler)
        self._enabled = False


def get_logger() -> DebugLogger:
    """Get the global debug logger instance."""
    return DebugLogger.get_instance()


def is_debug_enabled() -> bool:
    """Check if debug logging is enabled."""
    return get_logger().enabled

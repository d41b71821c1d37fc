#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Main entry point for the pmx CLI."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from pmx._version import PMX_VERSION
from pmx.agents.investigator import run_investigation
from pmx.agents.scribe import run_feature_flow
from pmx.config import PMXConfig, load_config
from pmx.debug_logger import DebugLogger
from pmx.execution.confirmation import ConfirmationGate, PausableInput
from pmx.execution.orchestrator import InvestigationResult, SessionFailedError
from pmx.llm.client import ReasoningClient
from pmx.llm.provider_factory import get_provider_for_config, list_available_providers
from pmx.memory.product_memory import MemoryStore
from pmx.terminal.formatting import Colors, colorize
from pmx.terminal.repl import repl_mode
from pmx.terminal.ui import ConsoleConfirmationPrompt, format_result, print_tool_event
from pmx.tools.registry import ToolEventLog
from pmx.workspace import Workspace


def positive_int(text: str) -> int:
    """argparse type for turn limits."""
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def positive_float(text: str) -> float:
    """argparse type for time limits."""
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}")
    if not value > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pmx",
        description="pmx - product manager co-pilot for your repository"
    )
    parser.add_argument(
        "task",
        nargs="*",
        help="Question to investigate (one-shot mode); starts the REPL when omitted"
    )
    parser.add_argument(
        "--feature",
        action="store_true",
        help="Treat the task as a feature request and draft a PRD under docs/features/"
    )
    parser.add_argument(
        "--root",
        default=".",
        help="Project root (default: current directory)"
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model name (default: from config or PMX_MODEL)"
    )
    parser.add_argument(
        "--provider",
        choices=list_available_providers(),
        default=None,
        help="LLM provider (default: detected from the model name)"
    )
    parser.add_argument(
        "--max-turns",
        type=positive_int,
        default=None,
        help="Turn limit for this session"
    )
    parser.add_argument(
        "--max-seconds",
        type=positive_float,
        default=None,
        help="Wall-clock limit in seconds for this session (time spent answering write prompts is not counted)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Write a detailed debug log to .pmx/logs/"
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show pmx version information and exit"
    )
    return parser


def budget_overrides(args: argparse.Namespace) -> dict:
    """Config overrides for the session kind selected by ``args``."""
    if args.task and args.feature:
        prefix = "feature"
    elif args.task:
        prefix = "investigation"
    else:
        prefix = "repl"
    return {
        f"{prefix}_max_turns": args.max_turns,
        f"{prefix}_max_seconds": args.max_seconds,
    }


async def run_one_shot(
    task: str,
    feature: bool,
    client: ReasoningClient,
    workspace: Workspace,
    config: PMXConfig,
) -> InvestigationResult:
    input_control = PausableInput()
    gate = ConfirmationGate(ConsoleConfirmationPrompt(), input_control)
    memory = MemoryStore(workspace.root)
    events = ToolEventLog()
    events.subscribe(print_tool_event)
    if feature:
        return await run_feature_flow(task, client, workspace.root, config, gate=gate, memory=memory, events=events)
    return await run_investigation(task, client, workspace.root, config, gate=gate, memory=memory, events=events)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the pmx CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"pmx {PMX_VERSION}")
        return 0

    if args.feature and not args.task:
        parser.error("--feature needs a feature request")

    root = Path(args.root).expanduser()
    if not root.is_dir():
        print(f"[pmx] Project root not found: {root}", file=sys.stderr)
        return 2
    workspace = Workspace(root)

    config = load_config(
        workspace.root,
        model=args.model,
        provider=args.provider,
        debug=args.debug,
        **budget_overrides(args),
    )

    debug_logger = DebugLogger.initialize(
        enabled=config.debug,
        log_dir=workspace.logs_dir,
        retention=config.log_retention,
    )
    if debug_logger.enabled:
        print(f"Debug logging enabled: {debug_logger.log_file_path}")

    try:
        provider = get_provider_for_config(config)
    except ValueError as e:
        print(f"[pmx] {e}", file=sys.stderr)
        return 2
    if not provider.validate_config():
        print(colorize(f"[pmx] Warning: provider '{provider.name}' does not look configured "
                       f"(missing API key or server not reachable)", Colors.BRIGHT_YELLOW))

    client = ReasoningClient(provider, config.model, temperature=config.temperature)
    debug_logger.log("main", "CONFIGURATION", {
        "root": str(workspace.root),
        "provider": provider.name,
        "model": config.model,
        "mode": "feature" if args.feature else ("investigate" if args.task else "repl"),
    })

    try:
        if not args.task:
            repl_mode(client, workspace.root, config)
            return 0

        task = " ".join(args.task)
        try:
            result = asyncio.run(run_one_shot(task, args.feature, client, workspace, config))
        except SessionFailedError as e:
            debug_logger.log_error("main", e, {"turn": e.turn})
            print(colorize(f"\n[pmx] Session failed: {e}", Colors.BRIGHT_RED), file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            print("\n[pmx] Interrupted")
            return 130

        print(format_result(result))
        return 0 if result.complete else 3
    finally:
        debug_logger.close()


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Project context files (PMX.md and the product docs).

These hand-written files give the assistant background the code cannot:
vision, metrics, house rules. They are read through the path policy like any
other file, so a context file that is blocked or links somewhere blocked is
simply skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from pmx.config import MAX_FILE_BYTES, MAX_READ_CHARS
from pmx.debug_logger import get_logger
from pmx.tools import file_ops
from pmx.tools.path_policy import Operation, PolicyViolation, enforce


CONTEXT_FILES: Tuple[str, ...] = (
    "PMX.md",
    "docs/product-vision.md",
    "docs/metrics.md",
)
PREVIEW_CHARS = 300


@dataclass(frozen=True)
class ContextSource:
    path: str
    content: str

    @property
    def preview(self) -> str:
        text = self.content.strip()
        if len(text) <= PREVIEW_CHARS:
            return text
        return text[:PREVIEW_CHARS].rstrip() + "..."


@dataclass(frozen=True)
class ProjectContext:
    """The context files found in a project, in ``CONTEXT_FILES`` order."""

    sources: Tuple[ContextSource, ...] = ()

    def system_context(self) -> str:
        """Context block appended to a system prompt; empty when there are no files."""
        return "\n\n".join(
            f"--- START OF {source.path} ---\n{source.content}\n--- END OF {source.path} ---"
            for source in self.sources
        )

    def describe(self) -> str:
        """Overview for the REPL's /context command."""
        if not self.sources:
            return (
                "Project context loaded from: (none)\n"
                "Create PMX.md or docs/product-vision.md to give pmx more background."
            )
        lines = ["Project context loaded from:"]
        lines.extend(f"- {source.path}" for source in self.sources)
        for source in self.sources:
            lines.append("")
            lines.append(f"[{source.path}]")
            lines.append(source.preview)
        return "\n".join(lines)


def load_project_context(root: Path, max_chars: int = MAX_READ_CHARS) -> ProjectContext:
    """Read whichever of ``CONTEXT_FILES`` exist under ``root``."""
    root = Path(root).expanduser().resolve()
    logger = get_logger()
    sources = []
    for name in CONTEXT_FILES:
        if not (root / name).is_file():
            continue
        try:
            decision = enforce(name, Operation.READ, root, follow_links=True)
            result = file_ops.read_text(root, decision.normalized, max_chars, MAX_FILE_BYTES)
        except PolicyViolation as e:
            logger.warning(f"Skipping context file {name}: {e.rule}")
            continue
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping context file {name}: {e}")
            continue
        sources.append(ContextSource(decision.normalized, result.text))
    return ProjectContext(tuple(sources))

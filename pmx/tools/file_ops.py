#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""File operations behind the pmx tools.

These functions do plain, blocking file I/O on paths that the caller has
already cleared with the path policy (project-relative, forward slashes).
They raise on failure; the dispatcher turns exceptions into tool errors.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pmx.tools.path_policy import Operation, classify, resolve_links


TRUNCATION_MARKER = "\n... [truncated: showing first {shown} of {total} characters]"
SNIPPET_CHARS = 200

# Declaration lines kept by read_outline, across common languages.
OUTLINE_RE = re.compile(
    r"^\s*("
    r"import\s|from\s+\S+\s+import\s|export\s|"
    r"(async\s+)?def\s|class\s|"
    r"(export\s+)?(default\s+)?(async\s+)?function\b|"
    r"interface\s|type\s+\w+\s*=|enum\s|struct\s|trait\s|impl\b|"
    r"(pub\s+)?fn\s|func\s|package\s|module\s|namespace\s|"
    r"(public|private|protected)\s|"
    r"#{1,6}\s"
    r")"
)


@dataclass(frozen=True)
class ReadResult:
    """Text read from a file, possibly truncated."""

    text: str
    total_chars: int
    truncated: bool

    @property
    def snippet(self) -> str:
        return self.text[:SNIPPET_CHARS]


def truncate(text: str, limit: int) -> Tuple[str, bool]:
    """Bound ``text`` to ``limit`` characters, appending an explicit marker."""
    if limit <= 0 or len(text) <= limit:
        return text, False
    return text[:limit] + TRUNCATION_MARKER.format(shown=limit, total=len(text)), True


def is_text_file(path: Path) -> bool:
    """Check if file is text (no null bytes in the first block)."""
    try:
        with open(path, "rb") as f:
            return b"\x00" not in f.read(8192)
    except OSError:
        return False


def _check_readable_file(path: Path, rel: str, max_bytes: int) -> None:
    if not path.exists():
        raise FileNotFoundError(f"Not found: {rel}")
    if path.is_dir():
        raise IsADirectoryError(f"{rel} is a directory; use list_directory")
    size = path.stat().st_size
    if max_bytes and size > max_bytes:
        raise ValueError(f"Too large ({size} bytes > {max_bytes} bytes): {rel}. Use read_outline or search_text.")


def read_text(root: Path, rel: str, max_chars: int, max_bytes: int) -> ReadResult:
    """Read a project file, truncating to ``max_chars``."""
    path = root / rel
    _check_readable_file(path, rel, max_bytes)
    text = path.read_text(encoding="utf-8", errors="replace")
    bounded, truncated = truncate(text, max_chars)
    return ReadResult(text=bounded, total_chars=len(text), truncated=truncated)


def read_outline(root: Path, rel: str, max_chars: int, max_bytes: int) -> Tuple[str, int]:
    """Return the declaration lines of a file (``"<line>: <text>"``) and their count."""
    path = root / rel
    _check_readable_file(path, rel, max_bytes)
    lines = []
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for number, line in enumerate(f, 1):
            if OUTLINE_RE.match(line):
                lines.append(f"{number}: {line.rstrip()}")
    if not lines:
        return f"(no declarations found in {rel})", 0
    outline, _ = truncate("\n".join(lines), max_chars)
    return outline, len(lines)


def _readable(root: Path, rel: str) -> bool:
    return resolve_links(classify(rel, Operation.READ), root).allowed


def _walk(root: Path, rel_dir: str):
    """Yield (relative path, is_dir) under ``rel_dir``, skipping blocked entries."""
    base = root if rel_dir == "." else root / rel_dir
    prefix = "" if rel_dir == "." else rel_dir + "/"
    for current, dirs, files in os.walk(base):
        current_rel = Path(current).relative_to(base).as_posix()
        current_prefix = prefix if current_rel == "." else f"{prefix}{current_rel}/"
        dirs.sort()
        dirs[:] = [d for d in dirs if _readable(root, current_prefix + d)]
        for name in dirs:
            yield current_prefix + name, True
        for name in sorted(files):
            rel = current_prefix + name
            if _readable(root, rel):
                yield rel, False


def list_files(root: Path, rel: str, limit: int) -> Dict[str, Any]:
    """Recursively list ``rel``; directories carry a trailing slash."""
    path = root if rel == "." else root / rel
    if not path.exists():
        raise FileNotFoundError(f"Not found: {rel}")
    if not path.is_dir():
        raise NotADirectoryError(f"{rel} is a file; use read_file")

    entries: List[str] = []
    truncated = False
    for entry, is_dir in _walk(root, rel):
        if len(entries) >= limit:
            truncated = True
            break
        entries.append(entry + "/" if is_dir else entry)
    return {"path": rel, "count": len(entries), "entries": entries, "truncated": truncated}


def compile_pattern(pattern: str) -> "re.Pattern[str]":
    """Compile a search pattern; raises ValueError for an invalid regex."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise ValueError(f"Invalid regex '{pattern}': {e}") from e


def search_files(root: Path, rel: str, pattern: str, limit: int, max_bytes: int) -> Dict[str, Any]:
    """Search text files under ``rel`` for ``pattern``, line by line."""
    rex = compile_pattern(pattern)
    path = root if rel == "." else root / rel
    if not path.exists():
        raise FileNotFoundError(f"Not found: {rel}")

    if path.is_file():
        candidates = [rel]
    else:
        candidates = [entry for entry, is_dir in _walk(root, rel) if not is_dir]

    matches: List[Dict[str, Any]] = []
    for candidate in candidates:
        file_path = root / candidate
        try:
            if file_path.stat().st_size > max_bytes or not is_text_file(file_path):
                continue
            with open(file_path, "r", encoding="utf-8", errors="ignore") as f:
                for number, line in enumerate(f, 1):
                    if rex.search(line):
                        matches.append({"file": candidate, "line": number, "text": line.rstrip("\n")[:SNIPPET_CHARS]})
                        if len(matches) >= limit:
                            return {"pattern": pattern, "matches": matches, "truncated": True}
        except OSError:
            # Unreadable file (permissions, vanished mid-walk): skip it.
            continue
    return {"pattern": pattern, "matches": matches, "truncated": False}


def read_existing(root: Path, rel: str) -> Optional[str]:
    """Current content of ``rel``, or None when the file does not exist."""
    path = root / rel
    if not path.exists():
        return None
    if path.is_dir():
        raise IsADirectoryError(f"{rel} is a directory")
    return path.read_text(encoding="utf-8", errors="replace")


def apply_write(root: Path, rel: str, content: str) -> int:
    """Write ``content`` to ``rel``, creating parent directories; returns bytes written."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    data = content.encode("utf-8")
    path.write_bytes(data)
    return len(data)

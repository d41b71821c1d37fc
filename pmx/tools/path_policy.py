#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Path policy for pmx file access.

Reads are governed by a blocklist (the assistant is read-heavy, so anything
not sensitive is readable). Writes are governed by a small allowlist of
documentation and state locations.

``classify`` is a pure function of its inputs: it never touches the
filesystem and keeps no state, so the same (path, operation, root) always
yields the same decision. ``resolve_links`` is the filesystem half: it
follows symlinks from the project root and classifies the real target again.
"""

from __future__ import annotations

import fnmatch
import posixpath
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Optional, Tuple, Union


class Operation(Enum):
    """File operation being classified."""
    READ = "read"
    WRITE = "write"


class Verdict(Enum):
    """Outcome of a policy check."""
    ALLOWED = "allowed"
    BLOCKED = "blocked"


# Directory names that are never read, matched on any path segment.
READ_BLOCKED_PREFIXES: Tuple[str, ...] = (
    # version-control metadata
    ".git",
    ".hg",
    ".svn",
    # dependency caches / virtualenvs
    "node_modules",
    ".venv",
    "venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".tox",
    # build output
    "dist",
    "build",
    "coverage",
)

# Secret-bearing files, matched on the basename at any depth.
SECRET_FILE_PATTERNS: Tuple[str, ...] = (
    ".env",
    ".env.*",
    ".npmrc",
    ".pypirc",
    "id_rsa",
    "id_ed25519",
    "*.pem",
    "*.key",
)

# The project config file may carry API keys.
SECRET_FILES: Tuple[str, ...] = (".pmx/config.yaml",)

# Writes are allowed strictly inside these directories ...
WRITE_ALLOWED_PREFIXES: Tuple[str, ...] = ("docs", ".pmx")
# ... and to these root-level files.
WRITE_ALLOWED_FILES: Tuple[str, ...] = ("README.md", "PMX.md")


class PolicyViolation(ValueError):
    """Raised by ``enforce`` when a path is blocked for an operation."""

    def __init__(self, decision: "PathDecision"):
        super().__init__(decision.reason)
        self.decision = decision

    @property
    def rule(self) -> str:
        return self.decision.rule


@dataclass(frozen=True)
class PathDecision:
    """Result of classifying one path for one operation.

    Attributes:
        verdict: ALLOWED or BLOCKED.
        path: The path as supplied by the caller.
        normalized: Project-relative forward-slash path ("." for the root),
            or None if the path could not be placed inside the project.
        operation: The operation that was classified.
        rule: Identifier of the rule that decided the verdict.
        reason: Human/LLM-readable explanation.
    """

    verdict: Verdict
    path: str
    normalized: Optional[str]
    operation: Operation
    rule: str
    reason: str

    @property
    def allowed(self) -> bool:
        return self.verdict is Verdict.ALLOWED


def normalize(path: Union[str, Path], root: Optional[Union[str, Path]] = None) -> Optional[str]:
    """Lexically normalize a path to a project-relative POSIX string.

    Returns "." for the project root and None when the path escapes the
    project (``..`` traversal above the root, or an absolute path that is not
    inside ``root``; absolute paths are always rejected when no root is given).
    """
    raw = str(path).strip()
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "\"'":
        raw = raw[1:-1].strip()
    raw = raw.replace("\\", "/")
    if not raw:
        return "."

    is_absolute = raw.startswith("/") or PureWindowsPath(raw).drive != ""
    if is_absolute:
        if root is None:
            return None
        root_posix = str(root).replace("\\", "/").rstrip("/") or "/"
        candidate = posixpath.normpath(raw)
        root_norm = posixpath.normpath(root_posix)
        if candidate == root_norm:
            return "."
        if not candidate.startswith(root_norm.rstrip("/") + "/"):
            return None
        raw = candidate[len(root_norm.rstrip("/")) + 1:]

    normalized = posixpath.normpath(raw)
    if normalized == ".." or normalized.startswith("../"):
        return None
    # normpath keeps a leading "//" on POSIX; a relative path never has one.
    return normalized.lstrip("/") or "."


def _secret_rule(normalized: str) -> Optional[str]:
    folded = normalized.casefold()
    for secret in SECRET_FILES:
        if folded == secret.casefold():
            return secret
    name = PurePosixPath(folded).name
    for pattern in SECRET_FILE_PATTERNS:
        if fnmatch.fnmatchcase(name, pattern):
            return pattern
    return None


def _blocked_segment(normalized: str) -> Optional[str]:
    # Case-folded so that .GIT/ on a case-insensitive filesystem is still .git/.
    segments = {part.casefold() for part in normalized.split("/")}
    for prefix in READ_BLOCKED_PREFIXES:
        if prefix in segments:
            return prefix
    return None


def _classify_read(path: str, normalized: str) -> PathDecision:
    prefix = _blocked_segment(normalized)
    if prefix is not None:
        return PathDecision(
            Verdict.BLOCKED, path, normalized, Operation.READ,
            rule=f"read-blocked:{prefix}",
            reason=(
                f"Reading '{normalized}' is not allowed: '{prefix}/' is a protected "
                f"directory (version control, dependencies or build output). Do not retry this path."
            ),
        )
    secret = _secret_rule(normalized)
    if secret:
        return PathDecision(
            Verdict.BLOCKED, path, normalized, Operation.READ,
            rule=f"read-blocked:secrets:{secret}",
            reason=f"Reading '{normalized}' is not allowed: it matches the secrets rule '{secret}'. Do not retry this path.",
        )
    return PathDecision(
        Verdict.ALLOWED, path, normalized, Operation.READ,
        rule="read-default", reason=f"'{normalized}' is readable",
    )


def _classify_write(path: str, normalized: str) -> PathDecision:
    allowed = normalized in WRITE_ALLOWED_FILES or any(
        normalized.startswith(prefix + "/") for prefix in WRITE_ALLOWED_PREFIXES
    )
    if allowed and _secret_rule(normalized) is None:
        return PathDecision(
            Verdict.ALLOWED, path, normalized, Operation.WRITE,
            rule="write-allowlist", reason=f"'{normalized}' is a writable documentation path",
        )
    targets = ", ".join([f"{p}/" for p in WRITE_ALLOWED_PREFIXES] + list(WRITE_ALLOWED_FILES))
    return PathDecision(
        Verdict.BLOCKED, path, normalized, Operation.WRITE,
        rule="write-allowlist",
        reason=(
            f"Writing to '{normalized}' is not allowed: writes are restricted to {targets}. "
            f"Source code and other project files are read-only."
        ),
    )


def classify(
    path: Union[str, Path],
    operation: Operation,
    root: Optional[Union[str, Path]] = None,
) -> PathDecision:
    """Classify ``path`` for ``operation``.

    Args:
        path: Candidate path, relative to the project root (absolute paths
            are accepted only inside ``root``).
        operation: READ or WRITE.
        root: Project root used to relativize absolute paths.
    """
    original = str(path)
    normalized = normalize(path, root)
    if normalized is None:
        return PathDecision(
            Verdict.BLOCKED, original, None, operation,
            rule="outside-project-root",
            reason=f"Path '{original}' resolves outside the project root. Only project-relative paths are allowed.",
        )
    if operation is Operation.READ:
        return _classify_read(original, normalized)
    return _classify_write(original, normalized)


def _is_within_root(candidate: Path, root: Path) -> bool:
    try:
        candidate.relative_to(root)
        return True
    except ValueError:
        return False


def resolve_links(decision: PathDecision, root: Union[str, Path]) -> PathDecision:
    """Re-check an allowed decision against where the path really points.

    ``classify`` only sees the path text. This follows symlinks from
    ``root``, including a symlinked final component and one that does not
    exist yet, and classifies the resolved location again. The decision is
    blocked (rule ``symlink-escape``) when the target leaves the project or
    lands somewhere the same operation would not be allowed.
    """
    if not decision.allowed or decision.normalized is None:
        return decision
    root_path = Path(root).expanduser().resolve()
    target = (root_path / decision.normalized).resolve()
    if not _is_within_root(target, root_path):
        resolved = target.as_posix()
        verdict_reason = "it resolves outside the project root"
    else:
        resolved = target.relative_to(root_path).as_posix() or "."
        if resolved == decision.normalized:
            return decision
        relinked = classify(resolved, decision.operation)
        if relinked.allowed:
            return decision
        verdict_reason = f"it links to '{resolved}' ({relinked.rule})"
    return PathDecision(
        Verdict.BLOCKED, decision.path, decision.normalized, decision.operation,
        rule="symlink-escape",
        reason=(
            f"Access to '{decision.normalized}' is not allowed: {verdict_reason}. "
            f"Do not retry this path."
        ),
    )


def enforce(
    path: Union[str, Path],
    operation: Operation,
    root: Optional[Union[str, Path]] = None,
    follow_links: bool = False,
) -> PathDecision:
    """Classify and raise ``PolicyViolation`` when the path is blocked.

    With ``follow_links`` (and a ``root``) the decision is also checked
    against the filesystem through ``resolve_links``.
    """
    decision = classify(path, operation, root)
    if follow_links and root is not None:
        decision = resolve_links(decision, root)
    if not decision.allowed:
        raise PolicyViolation(decision)
    return decision

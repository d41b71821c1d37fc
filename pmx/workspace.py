#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Workspace: the project root and the paths pmx derives from it.

A Workspace is created once per CLI invocation and passed explicitly to the
sessions that need it; there is no process-wide current directory lookup
below the entry point.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pmx.config import PMX_DIR_NAME


@dataclass(frozen=True)
class Workspace:
    """Project root plus the derived ``.pmx/logs`` directory.

    Attributes:
        root: Resolved project root directory.
    """

    root: Path
    logs_dir: Path = field(init=False)

    def __post_init__(self) -> None:
        root = Path(self.root).expanduser().resolve()
        object.__setattr__(self, "root", root)
        object.__setattr__(self, "logs_dir", root / PMX_DIR_NAME / "logs")


#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Terminal rendering and REPL utilities for pmx."""

from pmx.terminal.repl import repl_mode
from pmx.terminal.formatting import (
    colorize, create_header, create_section, create_bullet_item, Colors, Symbols
)

__all__ = [
    "repl_mode",
    "colorize",
    "create_header",
    "create_section",
    "create_bullet_item",
    "Colors",
    "Symbols",
]

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Terminal formatting utilities."""

import os
import re
import sys


class Colors:
    """ANSI color codes."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    CYAN = '\033[36m'

    BRIGHT_BLACK = '\033[90m'
    BRIGHT_RED = '\033[91m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'
    BRIGHT_WHITE = '\033[97m'

    @staticmethod
    def is_enabled() -> bool:
        """Colors are used on a TTY unless NO_COLOR is set."""
        return sys.stdout.isatty() and not os.getenv("NO_COLOR")


class Symbols:
    """Unicode symbols for formatted output."""
    BULLET = '●'
    HOLLOW_BULLET = '○'
    ARROW = '→'
    CHECK = '✓'
    CROSS = '✗'
    WARNING = '⚠'
    INFO = 'ℹ'

    TREE_BRANCH = '⎿'
    BOX_H = '─'
    BOX_V = '│'
    BOX_TL = '┌'
    BOX_TR = '┐'
    BOX_BL = '└'
    BOX_BR = '┘'


_ANSI_RE = re.compile(r'\033\[[0-9;]+m')


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub('', text)


def colorize(text: str, color: str, bold: bool = False) -> str:
    """Colorize text if the terminal supports it.

    Args:
        text: Text to colorize
        color: Color code from Colors class
        bold: Whether to make text bold

    Returns:
        Formatted text
    """
    if not Colors.is_enabled():
        return text

    prefix = Colors.BOLD if bold else ''
    return f"{prefix}{color}{text}{Colors.RESET}"


def create_header(title: str, width: int = 80) -> str:
    """Create a styled header."""
    separator = Symbols.BOX_H * width
    return f"\n{colorize(title, Colors.BRIGHT_CYAN, bold=True)}\n{colorize(separator, Colors.BRIGHT_BLACK)}"


def create_section(title: str) -> str:
    return f"\n{colorize(title, Colors.BRIGHT_WHITE, bold=True)}"


def create_bullet_item(text: str, bullet_type: str = 'bullet', indent: int = 2) -> str:
    """Create a bullet point item.

    Args:
        text: Item text
        bullet_type: Type of bullet (bullet, check, cross, warning, info, hollow)
        indent: Indentation level
    """
    spaces = ' ' * indent
    bullets = {
        'bullet': (Symbols.BULLET, Colors.BRIGHT_BLUE),
        'check': (Symbols.CHECK, Colors.BRIGHT_GREEN),
        'cross': (Symbols.CROSS, Colors.BRIGHT_RED),
        'warning': (Symbols.WARNING, Colors.BRIGHT_YELLOW),
        'info': (Symbols.INFO, Colors.BRIGHT_CYAN),
        'hollow': (Symbols.HOLLOW_BULLET, Colors.BRIGHT_BLACK),
    }

    symbol, color = bullets.get(bullet_type, bullets['bullet'])
    return f"{spaces}{colorize(symbol, color)} {text}"


def create_box(title: str, lines: list, width: int = 80) -> str:
    """Create a bordered box around ``lines`` (long lines are clipped)."""
    inner = width - 4
    top = f"{Symbols.BOX_TL}{Symbols.BOX_H} {title} {Symbols.BOX_H * max(0, width - len(strip_ansi(title)) - 5)}{Symbols.BOX_TR}"
    body = []
    for line in lines:
        clean = strip_ansi(str(line))
        if len(clean) > inner:
            line = clean[:inner - 1] + '…'
            clean = line
        body.append(f"{Symbols.BOX_V} {line}{' ' * (inner - len(clean))} {Symbols.BOX_V}")
    bottom = f"{Symbols.BOX_BL}{Symbols.BOX_H * (width - 2)}{Symbols.BOX_BR}"
    return '\n'.join(
        [colorize(top, Colors.BRIGHT_BLACK)] + body + [colorize(bottom, Colors.BRIGHT_BLACK)]
    )


def format_file_change(operation: str, file_path: str, details: str = None) -> str:
    """Format a file operation line.

    Args:
        operation: Operation label (Read, List, Search, Write, ...)
        file_path: File path or target
        details: Optional details shown on a second line
    """
    ops = {
        'Read': Colors.BRIGHT_BLUE,
        'List': Colors.BRIGHT_BLUE,
        'Search': Colors.BRIGHT_BLUE,
        'Outline': Colors.BRIGHT_BLUE,
        'Write': Colors.BRIGHT_GREEN,
        'Memory': Colors.BRIGHT_MAGENTA,
        'Delegate': Colors.BRIGHT_CYAN,
    }

    color = ops.get(operation, Colors.BRIGHT_WHITE)
    bullet = colorize(Symbols.BULLET, color)
    op_text = colorize(operation, color, bold=True)

    output = [f"{bullet} {op_text}({file_path})"]

    if details:
        branch = colorize(Symbols.TREE_BRANCH, Colors.BRIGHT_BLACK)
        output.append(f"  {branch}  {details}")

    return '\n'.join(output)

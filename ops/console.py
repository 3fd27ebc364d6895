"""
Operator-facing console output.
"""

from __future__ import annotations

import logging
import os
import sys
from enum import StrEnum
from typing import Optional, TextIO

LOG_FORMAT = "%(name)s %(levelname)s %(asctime)s %(message)s"


class Level(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_SYMBOLS = {
    Level.INFO: "ℹ",
    Level.SUCCESS: "✓",
    Level.WARNING: "⚠",
    Level.ERROR: "✗",
}

_ANSI = {
    Level.INFO: "\033[36m",
    Level.SUCCESS: "\033[32m",
    Level.WARNING: "\033[33m",
    Level.ERROR: "\033[31m",
}
_RESET = "\033[0m"
_BOLD = "\033[1m"


def format_message(message: str, level: Level | str = Level.INFO, *, color: bool = False) -> str:
    level = Level(level)
    line = f"{_SYMBOLS[level]} {message}"
    if color:
        return f"{_ANSI[level]}{line}{_RESET}"
    return line


def use_color(stream: TextIO) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


def echo(message: str, level: Level | str = Level.INFO, *, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    print(format_message(message, level, color=use_color(stream)), file=stream)


def header(title: str, *, stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    text = f"\n{title}\n{'=' * len(title)}"
    if use_color(stream):
        text = f"{_BOLD}{text}{_RESET}"
    print(text, file=stream)


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )

"""Terminal styling shared by the HRPilot shell and the API start-up banner."""

import os
import sys
from enum import Enum
from typing import (
    Any,
    Dict,
    TextIO,
)

RESET = "\033[0m"


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    GREY = "\033[90m"


# Step rows are grey while running and green once finished.
STEP_COLORS: Dict[str, AnsiColors] = {
    "active": AnsiColors.GREY,
    "done": AnsiColors.GREEN,
}


def use_color(stream: TextIO | None = None) -> bool:
    """False when ``NO_COLOR`` is set or *stream* is not a terminal."""
    if os.environ.get("NO_COLOR"):
        return False
    stream = stream if stream is not None else sys.stdout
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def colored(text: str, color: AnsiColors, enabled: bool = True) -> str:
    return f"{color.value}{text}{RESET}" if enabled else text


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color, or plain when the target stream does not take escape codes.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print, including ``file``
    """
    print(colored(text, color, use_color(kwargs.get("file"))), *args, **kwargs)


def step_color(status: str) -> AnsiColors:
    return STEP_COLORS.get(status, AnsiColors.GREY)

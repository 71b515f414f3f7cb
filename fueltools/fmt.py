"""Terminal output helpers: coloured messages, headers and yes/no prompts."""

from __future__ import annotations

import logging
import sys

logger = logging.getLogger("fueltools")

_RESET = "\x1b[0m"
_COLOURS = {
    "black": 30,
    "red": 31,
    "green": 32,
    "yellow": 33,
    "blue": 34,
    "purple": 35,
    "cyan": 36,
    "white": 37,
}


def _paint(codes: str, text: str) -> str:
    return f"\x1b[{codes}m{text}{_RESET}"


def _colour_code(color: str) -> int:
    try:
        return _COLOURS[color.lower()]
    except KeyError:
        raise ValueError(f"unknown colour: {color!r}") from None


def println_error(txt: str) -> None:
    """Log an error message prefixed with a red 'error'."""
    logger.warning("%s: %s", _paint(str(_colour_code("red")), "error"), txt)


def println_info(txt: str) -> None:
    """Log an informational message."""
    logger.info("info: %s", txt)


def println_warn(txt: str) -> None:
    """Log a warning prefixed with a yellow 'warning'."""
    logger.warning("%s: %s", _paint(str(_colour_code("yellow")), "warning"), txt)


def bold(text: str) -> str:
    """Wrap text in ANSI bold."""
    return _paint("1", text)


def colored_bold(color: str, text: str) -> str:
    """Wrap text in ANSI bold plus the named foreground colour."""
    return _paint(f"1;{_colour_code(color)}", text)


def print_header(header: str) -> None:
    """Log a blank line, the bold header and an underline of dashes."""
    logger.info("")
    logger.info("%s", bold(header))
    logger.info("%s", "-" * len(header))


def ask_user_yes_no_question(question: str) -> bool:
    """Ask until the user answers y/Y or n/N; raise EOFError if input ends."""
    while True:
        print(f"{question} ", end="", flush=True)
        line = sys.stdin.readline()
        if not line:
            raise EOFError("no answer given")
        answer = line.strip()
        if answer in ("y", "Y"):
            return True
        if answer in ("n", "N"):
            return False
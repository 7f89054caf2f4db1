import sys
from typing import TextIO, Optional

GRAY = "\033[90m"
RESET = "\033[0m"


def gray(text: str) -> str:
    """Wrap text in ANSI gray."""
    return f"{GRAY}{text}{RESET}"


def print_event_gray(text: str, *, file: Optional[TextIO] = None) -> None:
    """
    Print an event trace line in gray.
    """
    print(gray(text), file=file if file is not None else sys.stdout)


def report_error(prog: str, message: str) -> None:
    """Print a '[prog] message' line on stderr."""
    print(f"[{prog}] {message}", file=sys.stderr)

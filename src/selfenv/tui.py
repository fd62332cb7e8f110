"""User-facing status output.

Status lines are not log records: they are what a person watching the
bootstrap reads. ``echo`` honors a process-wide state that can send output to
stdout, to stderr, or nowhere; ``error`` always goes to stderr.
"""

import sys
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, TextIO

from selfenv.logging import ColorCodes


class EchoState(Enum):
    STDOUT = 0
    STDERR = 1
    QUIET = 2


_ECHO_STATE = EchoState.STDOUT


def _stream_is_tty(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def style(text: object, *codes: str, stream: TextIO | None = None) -> str:
    """Wrap ``text`` in ANSI codes when the target stream is a terminal."""
    stream = stream or sys.stdout
    if not codes or not _stream_is_tty(stream):
        return str(text)
    return f"{''.join(codes)}{text}{ColorCodes.RESET}"


def echo_state() -> EchoState:
    return _ECHO_STATE


def echo(message: str = "") -> None:
    """Echo a line to the current output stream (usually stdout)."""
    if _ECHO_STATE is EchoState.STDOUT:
        print(message, file=sys.stdout, flush=True)
    elif _ECHO_STATE is EchoState.STDERR:
        print(message, file=sys.stderr, flush=True)


def elog(message: str = "") -> None:
    """Like echo but always goes to stderr."""
    print(message, file=sys.stderr, flush=True)


def error(message: str) -> None:
    elog(f"{style('error:', ColorCodes.RED, ColorCodes.BOLD, stream=sys.stderr)} {message}")


@contextmanager
def _echo_state(state: EchoState) -> Iterator[None]:
    global _ECHO_STATE
    old = _ECHO_STATE
    _ECHO_STATE = state
    try:
        yield
    finally:
        _ECHO_STATE = old


def redirect_to_stderr(yes: bool = True):
    """Until the block exits, echo goes to stderr."""
    return _echo_state(EchoState.STDERR if yes else EchoState.STDOUT)


def quiet(yes: bool = True):
    """Until the block exits, echo is silenced (``yes``) or back on stdout."""
    return _echo_state(EchoState.QUIET if yes else EchoState.STDOUT)

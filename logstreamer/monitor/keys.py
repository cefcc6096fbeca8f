"""Keyboard input for the live view.

Puts the terminal in cbreak mode for the lifetime of a ``KeyReader`` and
turns raw key bytes into loop events.  Reading is registered with the
asyncio loop (``add_reader``), so the loop never blocks waiting on stdin.
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from types import TracebackType
from typing import Callable

from logstreamer.models.events import Event, ScrollAction, ScrollRequested, UserQuit

logger = logging.getLogger(__name__)

_ESCAPE_SEQUENCES: dict[str, ScrollAction] = {
    "\x1b[A": ScrollAction.LINE_UP,
    "\x1bOA": ScrollAction.LINE_UP,
    "\x1b[B": ScrollAction.LINE_DOWN,
    "\x1bOB": ScrollAction.LINE_DOWN,
    "\x1b[5~": ScrollAction.PAGE_UP,
    "\x1b[6~": ScrollAction.PAGE_DOWN,
    "\x1b[H": ScrollAction.TOP,
    "\x1b[1~": ScrollAction.TOP,
    "\x1bOH": ScrollAction.TOP,
    "\x1b[F": ScrollAction.BOTTOM,
    "\x1b[4~": ScrollAction.BOTTOM,
    "\x1bOF": ScrollAction.BOTTOM,
}

_KEYS: dict[str, ScrollAction] = {
    "k": ScrollAction.LINE_UP,
    "j": ScrollAction.LINE_DOWN,
    "b": ScrollAction.PAGE_UP,
    "\x02": ScrollAction.PAGE_UP,  # Ctrl+B
    "f": ScrollAction.PAGE_DOWN,
    " ": ScrollAction.PAGE_DOWN,
    "\x06": ScrollAction.PAGE_DOWN,  # Ctrl+F
    "g": ScrollAction.TOP,
    "G": ScrollAction.BOTTOM,
}

_QUIT_KEYS = frozenset({"q", "Q", "\x04"})  # Ctrl+D


def decode_keys(data: str) -> list[Event]:
    """Translate a burst of raw key input into events.

    Unknown keys and unknown escape sequences are ignored.  A lone ESC
    quits.
    """
    events: list[Event] = []
    i = 0
    while i < len(data):
        char = data[i]
        if char == "\x1b":
            for seq, action in _ESCAPE_SEQUENCES.items():
                if data.startswith(seq, i):
                    events.append(ScrollRequested(action=action))
                    i += len(seq)
                    break
            else:
                if i + 1 == len(data):
                    events.append(UserQuit())
                    i += 1
                else:
                    # Unknown sequence: skip to its final letter
                    i += 1
                    while i < len(data) and not data[i].isalpha() and data[i] != "~":
                        i += 1
                    i += 1
            continue
        if char in _QUIT_KEYS:
            events.append(UserQuit())
        elif char in _KEYS:
            events.append(ScrollRequested(action=_KEYS[char]))
        i += 1
    return events


class KeyReader:
    """Cbreak-mode stdin reader feeding decoded events to ``emit``.

    Usage::

        with KeyReader(queue.put_nowait) as reader:
            reader.attach(asyncio.get_running_loop())
            ...

    On platforms without ``termios`` (or when stdin is not a TTY) the
    reader is inert and only Ctrl+C stops the view.
    """

    def __init__(self, emit: Callable[[Event], None], stream=None) -> None:
        self._emit = emit
        self._stream = stream or sys.stdin
        self._fd: int | None = None
        self._old_settings: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def __enter__(self) -> KeyReader:
        try:
            import termios
            import tty
        except ImportError:
            logger.info("termios unavailable; keyboard input disabled")
            return self

        try:
            fd = self._stream.fileno()
            if not os.isatty(fd):
                return self
            self._old_settings = termios.tcgetattr(fd)
            tty.setcbreak(fd)
            self._fd = fd
        except (termios.error, AttributeError, ValueError, OSError) as exc:
            logger.info("Keyboard input disabled: %s", exc)
            self._fd = None
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.detach()
        if self._fd is not None and self._old_settings is not None:
            import termios

            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_settings)
            except (termios.error, ValueError) as exc:
                logger.warning("Failed to restore terminal settings: %s", exc)
        self._fd = None

    @property
    def active(self) -> bool:
        return self._fd is not None

    def attach(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start delivering key events on ``loop``."""
        if self._fd is None:
            return
        loop.add_reader(self._fd, self._on_readable)
        self._loop = loop

    def detach(self) -> None:
        if self._loop is not None and self._fd is not None:
            self._loop.remove_reader(self._fd)
        self._loop = None

    def _on_readable(self) -> None:
        if self._fd is None:
            return
        try:
            data = os.read(self._fd, 64).decode("utf-8", errors="ignore")
        except OSError as exc:
            logger.warning("Keyboard read failed: %s", exc)
            return
        for event in decode_keys(data):
            self._emit(event)

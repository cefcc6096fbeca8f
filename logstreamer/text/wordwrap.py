"""ANSI-aware streaming word wrapper.

Greedy, single-pass wrapping of arbitrary text into lines of at most
``limit`` visible cells.  Terminal escape sequences (``ESC [ ... m`` and
friends) are carried along with the word they are attached to and never
count toward line width, so colored console output wraps exactly like its
plain-text rendition.

Rules
-----
- Lines break only at whitespace or after a hyphen; words are never split.
  A single word wider than the limit is emitted on its own line as-is.
- Whitespace is buffered and only written once the next word arrives on the
  same line.  Runs of whitespace on which a line is broken are dropped.
- A hyphen is a break point that stays in the output.  Like a word, it
  moves to the next line when it does not fit after the pending whitespace.
- A run made only of escape codes is written where it occurs but does not
  commit the whitespace before it, so it never changes a break decision.
- ``\\n`` forces a break when ``keep_newlines`` is set; otherwise it is
  ordinary collapsible whitespace.
- ``indent_wrapped`` spaces are prepended to lines produced by a forced
  wrap, never to lines following an explicit ``\\n``.

The writer is streaming-safe: text may be fed in arbitrary pieces through
``write()`` and produces the same output as a single call, provided
``close()`` is called at the end.
"""

from __future__ import annotations

import io

from rich.cells import cell_len

ESC = "\x1b"
NEWLINE = "\n"
BREAKPOINTS = frozenset("-")


def _is_escape_terminator(char: str) -> bool:
    """Final byte of an escape sequence: an ASCII letter."""
    return ("\x40" <= char <= "\x5a") or ("\x61" <= char <= "\x7a")


def _visible_width(char: str) -> int:
    """Terminal cells taken by ``char``; control characters take none."""
    if char < " " or "\x7f" <= char < "\xa0":
        return 0
    return cell_len(char)


class WordWrapWriter:
    """Streaming word wrapper.

    Parameters
    ----------
    limit:
        Maximum visible width of a line.  ``0`` disables wrapping.
    keep_newlines:
        Honor explicit ``\\n`` in the input as forced line breaks.
    indent_wrapped:
        Number of spaces prepended to every line started by a forced wrap.
    """

    def __init__(
        self,
        limit: int,
        *,
        keep_newlines: bool = True,
        indent_wrapped: int = 0,
    ) -> None:
        self.limit = max(limit, 0)
        self.keep_newlines = keep_newlines
        self.indent_wrapped = max(indent_wrapped, 0)

        self._buf = io.StringIO()
        self._space: list[str] = []
        self._word: list[str] = []
        self._word_width = 0
        self._line_len = 0
        # Visible width the current line started with (the indent, if any)
        self._line_start = 0
        self._line_has_text = False
        self._in_escape = False
        self._closed = False

    # ------------------------------------------------------------------
    # Buffer helpers
    # ------------------------------------------------------------------

    def _add_space(self) -> None:
        if self._space:
            spaces = "".join(self._space)
            self._line_len += len(spaces)
            self._buf.write(spaces)
            self._space.clear()

    def _add_word(self) -> None:
        if not self._word:
            return
        if self._word_width == 0:
            # Only escape codes: emit them, the whitespace stays pending
            self._buf.write("".join(self._word))
            self._word.clear()
            return
        self._add_space()
        self._line_len += self._word_width
        self._buf.write("".join(self._word))
        self._line_has_text = True
        self._word.clear()
        self._word_width = 0

    def _add_newline(self, *, wrapped: bool) -> None:
        self._buf.write(NEWLINE)
        self._line_len = 0
        self._space.clear()
        self._line_has_text = False
        if wrapped and self.indent_wrapped:
            self._buf.write(" " * self.indent_wrapped)
            self._line_len = self.indent_wrapped
        self._line_start = self._line_len

    def _overflows(self, width: int = 0) -> bool:
        """Pending space and word plus ``width`` more cells exceed the limit."""
        return bool(
            self.limit
            and self._line_len > self._line_start
            and self._line_len + len(self._space) + self._word_width + width > self.limit
        )

    # ------------------------------------------------------------------
    # Rune handlers
    # ------------------------------------------------------------------

    def _explicit_newline(self) -> None:
        if self._word_width == 0:
            # Whitespace before a break survives only if it fits the line
            if not self.limit or self._line_len + len(self._space) <= self.limit:
                self._buf.write("".join(self._space))
            self._space.clear()
        self._add_word()
        self._add_newline(wrapped=False)

    def _whitespace(self, char: str) -> None:
        self._add_word()
        if not self.keep_newlines:
            if not self._line_has_text:
                return
            if char == NEWLINE:
                char = " "
        self._space.append(char)

    def _breakpoint(self, char: str) -> None:
        width = _visible_width(char)
        if self._overflows(width):
            self._add_newline(wrapped=True)
        self._add_space()
        self._add_word()
        self._buf.write(char)
        self._line_len += width
        self._line_has_text = True

    def _ordinary(self, char: str) -> None:
        self._word.append(char)
        self._word_width += _visible_width(char)
        if self._overflows():
            self._add_newline(wrapped=True)

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def write(self, text: str) -> int:
        """Feed ``text`` through the wrapper.  Returns ``len(text)``."""
        if self._closed:
            raise ValueError("write to closed WordWrapWriter")

        if self.limit == 0 and self.keep_newlines:
            self._buf.write(text)
            return len(text)

        for char in text:
            if char == ESC:
                self._word.append(char)
                self._in_escape = True
            elif self._in_escape:
                self._word.append(char)
                if _is_escape_terminator(char):
                    self._in_escape = False
            elif char == NEWLINE and self.keep_newlines:
                self._explicit_newline()
            elif char.isspace():
                self._whitespace(char)
            elif char in BREAKPOINTS:
                self._breakpoint(char)
            else:
                self._ordinary(char)
        return len(text)

    def close(self) -> None:
        """Flush the pending word.  Pending whitespace is discarded."""
        if not self._closed:
            self._add_word()
            self._space.clear()
            self._closed = True

    def getvalue(self) -> str:
        """Return everything emitted so far (call ``close()`` first for the full result)."""
        return self._buf.getvalue()

    def preview(self) -> str:
        """Output so far plus the pending word, without closing the writer.

        Used by live views that display a stream before it ends; the pending
        word may still move to the next line once more text arrives.
        """
        if not self._word:
            return self._buf.getvalue()
        return self._buf.getvalue() + "".join(self._space) + "".join(self._word)

    @property
    def closed(self) -> bool:
        return self._closed


def wrap(
    text: str,
    limit: int,
    *,
    keep_newlines: bool = True,
    indent_wrapped: int = 0,
) -> str:
    """Wrap ``text`` to ``limit`` visible cells in one call."""
    writer = WordWrapWriter(
        limit, keep_newlines=keep_newlines, indent_wrapped=indent_wrapped
    )
    writer.write(text)
    writer.close()
    return writer.getvalue()

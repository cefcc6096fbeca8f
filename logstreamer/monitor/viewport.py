"""Bounded scrollable text surface and buffer -> viewport reconciliation.

``ViewportModel`` is a plain scrollable list of lines.  ``ViewportSync``
feeds a build's log buffer into it through a streaming ``WordWrapWriter``
and applies the auto-scroll policy: if the view was at the bottom before
new text arrived it stays pinned there; if the user scrolled up, the
scroll position is left alone.
"""

from __future__ import annotations

import logging

from logstreamer.models.events import ScrollAction
from logstreamer.models.log import BuildBuffer
from logstreamer.text.wordwrap import WordWrapWriter

logger = logging.getLogger(__name__)


class ViewportModel:
    """Scrollable window of ``height`` lines over some wrapped content."""

    def __init__(self, width: int, height: int) -> None:
        self.width = max(width, 1)
        self.height = max(height, 1)
        self.lines: list[str] = [""]
        self.scroll_offset = 0

    @property
    def max_offset(self) -> int:
        return max(0, len(self.lines) - self.height)

    def set_content(self, text: str) -> None:
        """Replace the content; the scroll offset is clamped, not reset."""
        self.lines = text.split("\n")
        self.scroll_offset = min(self.scroll_offset, self.max_offset)

    def at_bottom(self) -> bool:
        return self.scroll_offset >= self.max_offset

    def scroll_to_bottom(self) -> None:
        self.scroll_offset = self.max_offset

    def scroll_to_top(self) -> None:
        self.scroll_offset = 0

    def scroll_by(self, delta: int) -> None:
        self.scroll_offset = min(max(0, self.scroll_offset + delta), self.max_offset)

    def page_down(self) -> None:
        self.scroll_by(self.height)

    def page_up(self) -> None:
        self.scroll_by(-self.height)

    def apply(self, action: ScrollAction) -> None:
        """Apply a user scroll request."""
        if action is ScrollAction.LINE_UP:
            self.scroll_by(-1)
        elif action is ScrollAction.LINE_DOWN:
            self.scroll_by(1)
        elif action is ScrollAction.PAGE_UP:
            self.page_up()
        elif action is ScrollAction.PAGE_DOWN:
            self.page_down()
        elif action is ScrollAction.TOP:
            self.scroll_to_top()
        elif action is ScrollAction.BOTTOM:
            self.scroll_to_bottom()

    def resize(self, width: int, height: int) -> None:
        self.width = max(width, 1)
        self.height = max(height, 1)
        self.scroll_offset = min(self.scroll_offset, self.max_offset)

    def visible_lines(self) -> list[str]:
        return self.lines[self.scroll_offset : self.scroll_offset + self.height]


class ViewportSync:
    """Keeps a ``ViewportModel`` in step with the current ``BuildBuffer``.

    Only text appended since the previous ``sync()`` is wrapped; switching
    to a different build (or a resize) rewraps from scratch.

    Parameters
    ----------
    viewport:
        The surface to update.
    indent_wrapped:
        Indentation for continuation lines produced by forced wraps.
    """

    def __init__(self, viewport: ViewportModel, *, indent_wrapped: int = 0) -> None:
        self.viewport = viewport
        self.indent_wrapped = indent_wrapped
        self._build_number: int | None = None
        self._consumed = 0
        self._writer = self._new_writer()

    def _new_writer(self) -> WordWrapWriter:
        return WordWrapWriter(
            self.viewport.width,
            keep_newlines=True,
            indent_wrapped=self.indent_wrapped,
        )

    def _reset(self, build_number: int | None) -> None:
        self._build_number = build_number
        self._consumed = 0
        self._writer = self._new_writer()

    def sync(self, buffer: BuildBuffer | None) -> bool:
        """Bring the viewport up to date with ``buffer``.

        Returns ``True`` if the viewport content changed.
        """
        build_number = buffer.build_number if buffer is not None else None
        text = buffer.text if buffer is not None else ""

        rebuilt = False
        if build_number != self._build_number or len(text) < self._consumed:
            logger.debug("Viewport: rewrapping for build %s", build_number)
            self._reset(build_number)
            rebuilt = True

        pending = text[self._consumed :]
        if not pending and not rebuilt:
            return False

        was_at_bottom = self.viewport.at_bottom()
        self._writer.write(pending)
        self._consumed = len(text)
        self.viewport.set_content(self._writer.preview())
        if rebuilt:
            self.viewport.scroll_to_top()
        if was_at_bottom:
            self.viewport.scroll_to_bottom()
        return True

    def resize(self, width: int, height: int, buffer: BuildBuffer | None) -> None:
        """Change the surface size and rewrap everything at the new width."""
        was_at_bottom = self.viewport.at_bottom()
        self.viewport.resize(width, height)
        self._reset(buffer.build_number if buffer is not None else None)
        if buffer is not None:
            self._writer.write(buffer.text)
            self._consumed = len(buffer.text)
        self.viewport.set_content(self._writer.preview())
        if was_at_bottom:
            self.viewport.scroll_to_bottom()

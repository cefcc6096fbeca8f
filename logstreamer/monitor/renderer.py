"""Rich terminal renderer for the live log view.

Screen layout
-------------
- header  : bordered panel with build number, name, start time, result
- body    : the visible viewport lines (ANSI colors preserved)
- footer  : transient error text, or follow state and key help

Color scheme
------------
- green     : SUCCESS
- red       : FAILURE
- yellow    : UNSTABLE / running
- magenta   : ABORTED
- dim       : UNKNOWN
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from logstreamer.models.job import BuildResult, StatusSnapshot

if TYPE_CHECKING:
    from logstreamer.core.poll_scheduler import StreamState
    from logstreamer.monitor.viewport import ViewportModel


# ---------------------------------------------------------------------------
# Result -> Rich style mapping
# ---------------------------------------------------------------------------

_RESULT_STYLES: dict[BuildResult, str] = {
    BuildResult.SUCCESS: "bold green",
    BuildResult.FAILURE: "bold red",
    BuildResult.UNSTABLE: "bold yellow",
    BuildResult.ABORTED: "bold magenta",
    BuildResult.UNKNOWN: "dim",
}

# Header panel: two bordered rows around one line of text
HEADER_HEIGHT = 3
FOOTER_HEIGHT = 1

KEY_HELP = "q quit  j/k scroll  f/b page  g/G top/bottom"


def body_size(console: Console) -> tuple[int, int]:
    """Width and height available for log lines on ``console``."""
    width, height = console.size
    return max(width, 1), max(height - HEADER_HEIGHT - FOOTER_HEIGHT, 1)


def format_result(snapshot: StatusSnapshot) -> str:
    """Markup for the result column, ``RUNNING`` while the build is active."""
    if snapshot.is_running:
        return "[bold yellow]RUNNING[/bold yellow]"
    style = _RESULT_STYLES.get(snapshot.result, "")
    return f"[{style}]{snapshot.result.value}[/{style}]"


_SGR_RE = re.compile(r"\x1b\[([0-9;]*)m")


def carried_sgr(lines: list[str]) -> str:
    """SGR sequences still in effect at the end of ``lines``, oldest first.

    Scans backwards and stops at the most recent reset (``ESC[m`` or
    ``ESC[0...m``).  A reset that also sets attributes is kept.
    """
    carried: list[str] = []
    for line in reversed(lines):
        for match in reversed(list(_SGR_RE.finditer(line))):
            codes = match.group(1).split(";")
            if codes[0] in ("", "0"):
                if any(code not in ("", "0") for code in codes[1:]):
                    carried.append(match.group(0))
                return "".join(reversed(carried))
            carried.append(match.group(0))
    return "".join(reversed(carried))


class StreamRenderer:
    """Renders ``StreamState`` plus a ``ViewportModel`` as Rich output.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def render_header(self, snapshot: StatusSnapshot | None) -> Panel:
        """One-line build summary in a bordered panel."""
        if snapshot is None:
            summary = "[dim]Waiting for first status poll...[/dim]"
        else:
            summary = "  |  ".join(
                [
                    f"[bold]Build:[/bold] #{snapshot.build_number}",
                    f"[bold]Name:[/bold] {snapshot.display_name or '-'}",
                    f"[bold]Started:[/bold] "
                    f"{snapshot.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}",
                    f"[bold]Result:[/bold] {format_result(snapshot)}",
                ]
            )
        text = Text.from_markup(summary, overflow="ellipsis")
        text.no_wrap = True
        return Panel(
            text,
            border_style="blue",
            padding=(0, 1),
        )

    def render_body(self, viewport: ViewportModel) -> Text:
        """The visible lines, already wrapped to the viewport width."""
        # Colors opened above the viewport still apply to its first line
        carried = carried_sgr(viewport.lines[: viewport.scroll_offset])
        body = Text.from_ansi(
            carried + "\n".join(viewport.visible_lines()), no_wrap=True, overflow="crop"
        )
        # from_ansi drops trailing blank lines; pad back to the full height
        missing = viewport.height - len(body.plain.split("\n"))
        if missing > 0:
            body.append("\n" * missing)
        return body

    def render_footer(self, state: StreamState, viewport: ViewportModel) -> Table:
        grid = Table.grid(expand=True)
        grid.add_column(ratio=1, no_wrap=True, overflow="ellipsis")
        grid.add_column(justify="right", no_wrap=True)

        if state.status_text:
            left = Text(state.status_text, style="bold red")
        else:
            left = Text(KEY_HELP, style="dim")

        if viewport.at_bottom():
            right = Text("FOLLOWING", style="green")
        else:
            right = Text(
                f"line {viewport.scroll_offset + 1}/{len(viewport.lines)}",
                style="yellow",
            )
        grid.add_row(left, right)
        return grid

    # ------------------------------------------------------------------
    # Full screen
    # ------------------------------------------------------------------

    def render(self, state: StreamState, viewport: ViewportModel) -> Group:
        """Compose header, body and footer into one renderable."""
        return Group(
            self.render_header(state.snapshot),
            self.render_body(viewport),
            self.render_footer(state, viewport),
        )

    # ------------------------------------------------------------------
    # Standalone print
    # ------------------------------------------------------------------

    def print_status(self, snapshot: StatusSnapshot) -> None:
        """Print a build status as a small table (``status`` command)."""
        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column(style="bold cyan")
        table.add_column()
        table.add_row("Name", snapshot.display_name or "-")
        table.add_row("Build", f"#{snapshot.build_number}")
        table.add_row(
            "Start time", snapshot.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
        )
        style = _RESULT_STYLES.get(snapshot.result, "")
        table.add_row("Result", f"[{style}]{snapshot.result.value}[/{style}]")
        table.add_row("Building", str(snapshot.building))
        table.add_row("In Progress", str(snapshot.in_progress))
        self.console.print(table)

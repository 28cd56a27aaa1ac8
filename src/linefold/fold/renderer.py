"""Incremental repaint of laid out frames.

The renderer keeps the previous frame and, for each new frame, redraws only
the rows whose content changed, was added or was removed. All terminal
effects go through a :class:`TerminalIO` with three drawing calls, so the
diffing can be tested without a terminal.

Example:
    ```python
    from linefold.fold.renderer import Renderer

    renderer = Renderer(terminal)
    renderer.paint(layout.compute(tree, height=terminal.height))
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from linefold.fold.layout import DisplayRow, RowKind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

__all__ = [
    "ASCII_GLYPHS",
    "UNICODE_GLYPHS",
    "RowChange",
    "RowGlyphs",
    "Renderer",
    "TerminalIO",
    "diff_frames",
    "format_row",
    "row_glyph",
]

INDENT = "  "


class TerminalIO(Protocol):
    """Drawing capability used by the renderer."""

    def move_cursor(self, row: int) -> None:
        """Move the cursor to the start of a screen row (0-based)."""

    def clear_line(self) -> None:
        """Erase the row under the cursor."""

    def write_line(self, text: Any) -> None:
        """Write one row at the cursor, without a newline."""

    def flush(self) -> None:
        """Push buffered output to the terminal."""


@dataclass(frozen=True)
class RowGlyphs:
    """Prefixes drawn before each kind of row.

    Attributes:
        header: Open node header.
        summary: Collapsed node summary.
        text: Content line.
    """

    header: str
    summary: str
    text: str


UNICODE_GLYPHS = RowGlyphs(header="▼ ", summary="▶ ", text="│ ")
ASCII_GLYPHS = RowGlyphs(header="v ", summary="> ", text="| ")


def row_glyph(row: DisplayRow, glyphs: RowGlyphs = UNICODE_GLYPHS) -> str:
    """Prefix drawn before a row."""
    if row.kind is RowKind.TEXT:
        return glyphs.text
    if row.kind is RowKind.SUMMARY:
        return glyphs.summary
    # The root title row has no prefix
    return "" if row.depth == 0 else glyphs.header


def format_row(row: DisplayRow, glyphs: RowGlyphs = UNICODE_GLYPHS) -> str:
    """Plain-text rendering of a row."""
    text = f"{INDENT * row.depth}{row_glyph(row, glyphs)}{row.text}"
    if row.hidden:
        text += f"  (+{row.hidden} hidden)"
    return text


@dataclass(frozen=True)
class RowChange:
    """A screen row that must be redrawn.

    Attributes:
        row: Screen row (0-based).
        content: New row, or None when the row must be cleared.
    """

    row: int
    content: DisplayRow | None


def diff_frames(
    previous: Sequence[DisplayRow | None],
    current: Sequence[DisplayRow],
) -> list[RowChange]:
    """Rows that differ between two frames, in screen order.

    A row is changed when it is new, gone, or holds a different row at the
    same position. ``None`` in ``previous`` stands for unknown screen content.
    """
    changes: list[RowChange] = []
    for index in range(max(len(previous), len(current))):
        old = previous[index] if index < len(previous) else None
        new = current[index] if index < len(current) else None
        if new is None:
            changes.append(RowChange(row=index, content=None))
        elif old is None or old != new:
            changes.append(RowChange(row=index, content=new))
    return changes


class Renderer:
    """Paints frames through a :class:`TerminalIO`, one changed row at a time."""

    def __init__(
        self,
        terminal: TerminalIO,
        *,
        formatter: Callable[[DisplayRow], Any] | None = None,
    ) -> None:
        """Initialize the renderer.

        Args:
            terminal: Drawing capability.
            formatter: Turns a row into what ``write_line`` accepts. Defaults
                to :func:`format_row`.
        """
        self.terminal = terminal
        self.formatter = formatter or format_row
        self._previous: list[DisplayRow | None] = []

    @property
    def previous(self) -> list[DisplayRow | None]:
        """Rows currently believed to be on screen."""
        return list(self._previous)

    def invalidate(self) -> None:
        """Forget the screen content so the next paint redraws every row."""
        self._previous = [None] * len(self._previous)

    def paint(self, frame: Sequence[DisplayRow]) -> int:
        """Draw a frame, touching only the rows that changed.

        The cursor is parked on the row after the frame.

        Returns:
            Number of rows redrawn or cleared.
        """
        changes = diff_frames(self._previous, frame)
        if not changes:
            return 0

        for change in changes:
            self.terminal.move_cursor(change.row)
            self.terminal.clear_line()
            if change.content is not None:
                self.terminal.write_line(self.formatter(change.content))

        self.terminal.move_cursor(len(frame))
        self.terminal.flush()
        self._previous = list(frame)
        return len(changes)

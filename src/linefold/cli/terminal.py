"""rich-backed terminal drawing for the folded view.

:class:`RichTerminal` implements the renderer's three drawing calls with
rich control codes, and :func:`rich_row` turns display rows into styled
:class:`~rich.text.Text`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.control import Control, ControlType
from rich.text import Text

from linefold.cli.console import detect_terminal_capabilities, get_console
from linefold.exceptions import RenderError
from linefold.fold.layout import DisplayRow, RowKind
from linefold.fold.renderer import ASCII_GLYPHS, INDENT, UNICODE_GLYPHS, RowGlyphs, row_glyph
from linefold.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from rich.console import Console

__all__ = [
    "RichTerminal",
    "default_glyphs",
    "rich_row",
    "row_formatter",
]

logger = get_logger("cli.terminal")

# Erase the whole line under the cursor
_ERASE_LINE = Control((ControlType.ERASE_IN_LINE, 2))


def default_glyphs() -> RowGlyphs:
    """Row glyphs suited to the terminal's unicode support."""
    return UNICODE_GLYPHS if detect_terminal_capabilities().unicode_support else ASCII_GLYPHS


def _row_style(row: DisplayRow) -> str:
    if row.kind is RowKind.SUMMARY:
        return "row.summary"
    if row.kind is RowKind.HEADER:
        return "row.title" if row.depth == 0 else "row.header"
    return "row.text" if row.live else "row.stale"


def rich_row(row: DisplayRow, glyphs: RowGlyphs = UNICODE_GLYPHS) -> Text:
    """Styled rendering of a display row."""
    text = Text(no_wrap=True, overflow="ellipsis")
    text.append(INDENT * row.depth)
    text.append(row_glyph(row, glyphs), style="row.guide")
    text.append(row.text, style=_row_style(row))
    if row.hidden:
        text.append(f"  (+{row.hidden} hidden)", style="row.hidden")
    return text


def row_formatter(glyphs: RowGlyphs | None = None) -> Callable[[DisplayRow], Text]:
    """Formatter for :class:`~linefold.fold.renderer.Renderer`."""
    chosen = glyphs or default_glyphs()
    return lambda row: rich_row(row, chosen)


class RichTerminal:
    """Full-screen drawing through a rich console.

    Rows are absolute screen rows starting at the top of the screen. Every
    I/O failure is raised as :class:`RenderError`.
    """

    def __init__(self, console: Console | None = None, *, alt_screen: bool = False) -> None:
        """Initialize the terminal.

        Args:
            console: Console to draw on (defaults to the themed console).
            alt_screen: Draw in the alternate screen buffer.
        """
        self.console = console or get_console()
        self.alt_screen = alt_screen
        self._started = False

    @property
    def height(self) -> int:
        return self.console.size.height

    @property
    def width(self) -> int:
        return self.console.size.width

    def _guard(self, action: Callable[[], Any]) -> None:
        try:
            action()
        except OSError as e:
            raise RenderError(f"Terminal write failed: {e}") from e

    def start(self) -> None:
        """Take over the screen.

        Raises:
            RenderError: If the console is not an interactive terminal.
        """
        if not self.console.is_terminal or self.console.is_dumb_terminal:
            raise RenderError("Output is not an interactive terminal")

        def _start() -> None:
            if self.alt_screen:
                self.console.set_alt_screen(True)
            self.console.show_cursor(False)
            self.console.control(Control.clear(), Control.home())

        self._guard(_start)
        self._started = True
        logger.debug(f"Terminal started ({self.width}x{self.height}, alt_screen={self.alt_screen})")

    def stop(self) -> None:
        """Give the screen back, leaving the cursor below the last frame."""
        if not self._started:
            return
        self._started = False

        def _stop() -> None:
            self.console.show_cursor(True)
            if self.alt_screen:
                self.console.set_alt_screen(False)
            self.console.file.flush()

        self._guard(_stop)

    def clear_screen(self) -> None:
        self._guard(lambda: self.console.control(Control.clear(), Control.home()))

    def move_cursor(self, row: int) -> None:
        target = max(0, min(row, self.height - 1))
        self._guard(lambda: self.console.control(Control.move_to(0, target)))

    def clear_line(self) -> None:
        self._guard(lambda: self.console.control(_ERASE_LINE))

    def write_line(self, text: Any) -> None:
        # One column short of the edge so a full row never wraps
        width = max(self.width - 1, 1)
        self._guard(
            lambda: self.console.print(
                text,
                end="",
                width=width,
                no_wrap=True,
                overflow="ellipsis",
                crop=True,
            )
        )

    def flush(self) -> None:
        self._guard(self.console.file.flush)

"""Runs a line source through the folding pipeline.

For each line: fold it into the tree, lay out the tree for the viewport and
repaint the rows that changed. Lines are processed one at a time; reading the
next line is the only place the session waits.

If the terminal cannot be used the session switches to pass-through mode and
prints every line verbatim. A failing source ends the stream: the captured
tree is still painted and the error is reported in the result.

Example:
    ```python
    from linefold.cli.session import FoldSession
    from linefold.config import build_matcher, load_config

    config = load_config(start_patterns=[">> (?P<M>.*)"], end_patterns=["<< (?P<M>.*)"])
    session = FoldSession(config, build_matcher(config), title="<<stdin>>")
    result = session.run(stdin_lines())
    ```
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from linefold.cli.console import get_console
from linefold.cli.terminal import RichTerminal, row_formatter
from linefold.exceptions import RenderError, StreamReadError
from linefold.fold.folder import FoldStats, StreamFolder
from linefold.fold.layout import LayoutEngine
from linefold.fold.renderer import Renderer
from linefold.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rich.console import Console

    from linefold.config import FoldConfig
    from linefold.fold.matcher import Matcher
    from linefold.fold.renderer import TerminalIO
    from linefold.fold.tree import TreeModel

__all__ = [
    "FoldResult",
    "FoldSession",
    "OutputMode",
]

logger = get_logger("cli.session")

# Viewport used when neither the config nor the terminal gives a height
FALLBACK_HEIGHT = 24


class OutputMode(str, Enum):
    """How lines reach the screen."""

    FOLDED = "folded"
    PASSTHROUGH = "passthrough"


@dataclass
class FoldResult:
    """Outcome of a session.

    Attributes:
        tree: The folded tree.
        stats: Folder counters.
        mode: Output mode the session ended in.
        frames: Frames painted.
        rows_painted: Rows redrawn over all frames.
        interrupted: Whether the run was stopped by Ctrl-C.
        read_error: Source failure that ended the stream, if any.
        render_error: Terminal failure that caused pass-through, if any.
    """

    tree: TreeModel
    stats: FoldStats
    mode: OutputMode
    frames: int = 0
    rows_painted: int = 0
    interrupted: bool = False
    read_error: StreamReadError | None = None
    render_error: RenderError | None = None


class FoldSession:
    """Wires a line source to the folder, layout engine and renderer."""

    def __init__(
        self,
        config: FoldConfig,
        matcher: Matcher,
        *,
        title: str = "",
        terminal: TerminalIO | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            config: Run options.
            matcher: Compiled marker patterns.
            title: Label of the root node.
            terminal: Drawing capability (defaults to a RichTerminal).
            console: Console used for pass-through and final output.
        """
        self.config = config
        self.console = console or get_console()
        self.folder = StreamFolder(
            matcher,
            title=title,
            keep_marker_lines=config.keep_marker_lines,
            max_closed_lines=config.max_closed_lines,
        )
        self.layout = LayoutEngine(min_tail_rows=config.min_tail_rows)
        self.terminal = terminal or RichTerminal(self.console, alt_screen=config.replay)
        formatter = row_formatter() if isinstance(self.terminal, RichTerminal) else None
        self.renderer = Renderer(self.terminal, formatter=formatter)

        self.mode = OutputMode.FOLDED
        self._frames = 0
        self._rows_painted = 0
        self._last_paint = 0.0
        self._height: int | None = None
        self._render_error: RenderError | None = None

    @property
    def tree(self) -> TreeModel:
        return self.folder.tree

    # -------------------------------------------------------------------------
    # Viewport
    # -------------------------------------------------------------------------

    def viewport_height(self) -> int:
        """Rows available for the live frame."""
        if self.config.height is not None:
            return self.config.height
        height = getattr(self.terminal, "height", None)
        return height if isinstance(height, int) and height > 0 else FALLBACK_HEIGHT

    def _paint(self, height: int) -> None:
        if self._height is not None and height != self._height:
            logger.debug(f"Viewport height changed {self._height} -> {height}")
            clear_screen = getattr(self.terminal, "clear_screen", None)
            if clear_screen is not None:
                clear_screen()
            self.renderer.invalidate()
        self._height = height

        frame = self.layout.compute(self.tree, height)
        self._rows_painted += self.renderer.paint(frame)
        self._frames += 1
        self._last_paint = time.monotonic()

    def _maybe_paint(self) -> None:
        # A throttled frame is only drawn by a later line or by _finish
        now = time.monotonic()
        if self._frames and now - self._last_paint < self.config.refresh_interval:
            return
        self._paint(self.viewport_height())

    # -------------------------------------------------------------------------
    # Modes
    # -------------------------------------------------------------------------

    def _fall_back(self, error: RenderError) -> None:
        logger.warning(f"Folded view unavailable, passing lines through: {error}")
        self._render_error = error
        self.mode = OutputMode.PASSTHROUGH
        stop = getattr(self.terminal, "stop", None)
        if stop is not None:
            try:
                stop()
            except RenderError as e:
                logger.debug(f"Terminal stop failed: {e}")

    def _passthrough(self, line: str) -> None:
        self.console.out(line, highlight=False)

    def _start(self) -> None:
        start = getattr(self.terminal, "start", None)
        if start is None:
            return
        try:
            start()
        except RenderError as e:
            self._fall_back(e)

    def _finish(self) -> None:
        if self.mode is not OutputMode.FOLDED:
            return
        try:
            height = max(self.viewport_height() - self.config.final_shrink, 1)
            self._paint(height)
            stop = getattr(self.terminal, "stop", None)
            if stop is not None:
                stop()
        except RenderError as e:
            self._fall_back(e)

    # -------------------------------------------------------------------------
    # Main loop
    # -------------------------------------------------------------------------

    def feed(self, line: str) -> None:
        """Process one line completely: fold, then display."""
        self.folder.feed(line)

        if self.mode is OutputMode.PASSTHROUGH:
            self._passthrough(line)
            return

        try:
            self._maybe_paint()
        except RenderError as e:
            self._fall_back(e)

    def run(self, lines: Iterable[str]) -> FoldResult:
        """Fold every line of a source and paint the final frame.

        Ctrl-C stops reading; the final frame is still painted and the
        result is marked as interrupted.

        Returns:
            The session's result.
        """
        read_error: StreamReadError | None = None
        interrupted = False
        delay = self.config.interline_delay / 1000

        self._start()
        try:
            for line in lines:
                self.feed(line)
                if delay:
                    time.sleep(delay)
        except StreamReadError as e:
            logger.error(f"Input ended early: {e}")
            read_error = e
        except KeyboardInterrupt:
            logger.debug("Interrupted, painting final frame")
            interrupted = True
        finally:
            self._finish()

        return FoldResult(
            tree=self.tree,
            stats=self.folder.stats,
            mode=self.mode,
            frames=self._frames,
            rows_painted=self._rows_painted,
            interrupted=interrupted,
            read_error=read_error,
            render_error=self._render_error,
        )

"""Tests for FoldSession."""

from __future__ import annotations

import io

from fakes import FakeTerminal
from rich.console import Console

from linefold.cli.session import FoldSession, OutputMode
from linefold.config import load_config
from linefold.exceptions import StreamReadError
from linefold.fold.matcher import Matcher

START = r">>( (?P<M>.*))?"
END = r"<<( (?P<M>.*))?"


def _session(terminal: FakeTerminal, **options: object) -> tuple[FoldSession, io.StringIO]:
    options.setdefault("final_shrink", 0)
    config = load_config(**options)
    output = io.StringIO()
    session = FoldSession(
        config,
        Matcher.from_patterns([START], [END]),
        title="job",
        terminal=terminal,
        console=Console(file=output, width=80),
    )
    return session, output


def _failing(lines: list[str], error: BaseException):
    yield from lines
    raise error


class TestFoldedRun:
    """Tests for the live folded view."""

    def test_paints_every_line(self, terminal: FakeTerminal) -> None:
        """Test each line is painted and the final frame is drawn."""
        session, output = _session(terminal)
        result = session.run([">> build", "compiling a.c", "<< 0"])

        assert result.mode is OutputMode.FOLDED
        assert result.frames == 4
        assert terminal.started and terminal.stopped
        assert terminal.lines() == ["job", "  ▶ build (0) [1 line]"]
        assert output.getvalue() == ""

    def test_rows_painted_are_minimal(self, terminal: FakeTerminal) -> None:
        """Test appending lines to an open node redraws one row each."""
        session, _ = _session(terminal)
        session.run([">> build", *[f"line {i}" for i in range(5)]])

        assert terminal.count("write_line") == 2 + 5

    def test_height_option_overrides_terminal(self, terminal: FakeTerminal) -> None:
        """Test a configured height bounds the frame."""
        session, _ = _session(terminal, height=3)
        session.run([">> build", *[f"line {i}" for i in range(20)]])
        assert terminal.lines() == ["job", "  ▼ build  (+19 hidden)", "    │ line 19"]

    def test_final_shrink(self) -> None:
        """Test the final frame leaves rows free below it."""
        terminal = FakeTerminal(height=10)
        session, _ = _session(terminal, final_shrink=2)
        session.run([">> build", *[f"line {i}" for i in range(20)]])

        assert terminal.count("clear_screen") == 1
        assert len(terminal.lines()) == 8
        assert terminal.lines()[-1] == "    │ line 19"

    def test_refresh_interval(self, terminal: FakeTerminal) -> None:
        """Test throttled repaints still end with the final frame."""
        session, _ = _session(terminal, refresh_interval=60)
        result = session.run([">> build", "a", "b", "c"])

        assert result.frames == 2
        assert terminal.lines()[-1] == "    │ c"


class TestFallback:
    """Tests for pass-through mode and stream errors."""

    def test_unusable_terminal(self) -> None:
        """Test lines are printed verbatim when the terminal can't be used."""
        terminal = FakeTerminal(fail_on_start=True)
        session, output = _session(terminal)
        result = session.run([">> build", "compiling a.c", "<< 0"])

        assert result.mode is OutputMode.PASSTHROUGH
        assert result.render_error is not None
        assert result.frames == 0
        assert output.getvalue().splitlines() == [">> build", "compiling a.c", "<< 0"]
        assert result.tree.node(1).close_label == "0"

    def test_read_error_ends_stream(self, terminal: FakeTerminal) -> None:
        """Test a failing source still yields the tree and a final frame."""
        session, _ = _session(terminal)
        result = session.run(_failing([">> build", "a"], StreamReadError("broken pipe")))

        assert isinstance(result.read_error, StreamReadError)
        assert result.tree.node(1).is_open
        assert terminal.lines() == ["job", "  ▼ build", "    │ a"]
        assert terminal.stopped

    def test_interrupt(self, terminal: FakeTerminal) -> None:
        """Test Ctrl-C stops reading and keeps the folded tree."""
        session, _ = _session(terminal)
        result = session.run(_failing([">> build"], KeyboardInterrupt()))

        assert result.interrupted
        assert result.read_error is None
        assert result.stats.lines == 1
        assert terminal.stopped

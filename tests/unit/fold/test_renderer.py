"""Tests for the diffing renderer."""

from __future__ import annotations

from linefold.fold.folder import StreamFolder
from linefold.fold.layout import LayoutEngine
from linefold.fold.matcher import Matcher
from linefold.fold.renderer import (
    ASCII_GLYPHS,
    Renderer,
    RowChange,
    diff_frames,
    format_row,
)

from fakes import FakeTerminal

START = r">>( (?P<M>.*))?"
END = r"<<( (?P<M>.*))?"


def _folder() -> StreamFolder:
    return StreamFolder(Matcher.from_patterns([START], [END]), title="job")


class TestFormatRow:
    """Tests for plain-text row formatting."""

    def test_glyphs_and_indent(self) -> None:
        """Test each kind of row gets its prefix."""
        folder = _folder()
        folder.feed_many([">> a", "<< 0", ">> b", "text"])
        rows = LayoutEngine().compute(folder.tree)

        assert [format_row(row) for row in rows] == [
            "job",
            "  ▶ a (0) [0 lines]",
            "  ▼ b",
            "    │ text",
        ]
        assert format_row(rows[1], ASCII_GLYPHS) == "  > a (0) [0 lines]"

    def test_hidden_suffix(self) -> None:
        """Test headers show how many rows were left out."""
        folder = _folder()
        folder.feed_many([">> b", *[str(i) for i in range(10)]])
        rows = LayoutEngine().compute(folder.tree, 3)
        assert format_row(rows[1]) == "  ▼ b  (+9 hidden)"


class TestDiffFrames:
    """Tests for diff_frames."""

    def test_identical_frames(self) -> None:
        """Test no changes between equal frames."""
        folder = _folder()
        folder.feed_many([">> a", "x"])
        frame = LayoutEngine().compute(folder.tree)
        assert diff_frames(frame, list(frame)) == []

    def test_appended_row(self) -> None:
        """Test a new line only changes its own row."""
        folder = _folder()
        folder.feed_many([">> a", "x"])
        before = LayoutEngine().compute(folder.tree)
        folder.feed("y")
        after = LayoutEngine().compute(folder.tree)

        assert diff_frames(before, after) == [RowChange(row=3, content=after[3])]

    def test_shrinking_frame_clears_rows(self) -> None:
        """Test rows past the new frame are cleared."""
        folder = _folder()
        folder.feed_many([">> a", "x", "y"])
        before = LayoutEngine().compute(folder.tree)
        folder.feed("<<")
        after = LayoutEngine().compute(folder.tree)

        changes = diff_frames(before, after)
        assert [change.row for change in changes] == [1, 2, 3]
        assert changes[0].content == after[1]
        assert changes[1].content is None
        assert changes[2].content is None

    def test_unknown_rows_are_redrawn(self) -> None:
        """Test None in the previous frame forces a redraw."""
        folder = _folder()
        folder.feed_many([">> a", "x"])
        frame = LayoutEngine().compute(folder.tree)
        changes = diff_frames([None] * len(frame), frame)
        assert [change.row for change in changes] == [0, 1, 2]


class TestRenderer:
    """Tests for Renderer."""

    def test_first_paint_draws_every_row(self, terminal: FakeTerminal) -> None:
        """Test the first frame is drawn in full."""
        folder = _folder()
        folder.feed_many([">> a", "x"])
        renderer = Renderer(terminal)

        assert renderer.paint(LayoutEngine().compute(folder.tree)) == 3
        assert terminal.lines() == ["job", "  ▼ a", "    │ x"]
        assert terminal.count("flush") == 1
        assert terminal.calls[-2] == ("move_cursor", 3)

    def test_only_changed_rows_are_redrawn(self, terminal: FakeTerminal) -> None:
        """Test appending a line writes a single row."""
        folder = _folder()
        folder.feed_many([">> a", "x"])
        renderer = Renderer(terminal)
        renderer.paint(LayoutEngine().compute(folder.tree))
        terminal.calls.clear()

        folder.feed("y")
        assert renderer.paint(LayoutEngine().compute(folder.tree)) == 1
        assert terminal.count("write_line") == 1
        assert terminal.lines()[-1] == "    │ y"

    def test_unchanged_frame_does_no_io(self, terminal: FakeTerminal) -> None:
        """Test painting the same frame again touches nothing."""
        folder = _folder()
        folder.feed_many([">> a", "x"])
        renderer = Renderer(terminal)
        frame = LayoutEngine().compute(folder.tree)
        renderer.paint(frame)
        terminal.calls.clear()

        assert renderer.paint(frame) == 0
        assert terminal.calls == []

    def test_collapse_clears_leftover_rows(self, terminal: FakeTerminal) -> None:
        """Test a closing node leaves no stale rows on screen."""
        folder = _folder()
        folder.feed_many([">> a", "x", "y"])
        renderer = Renderer(terminal)
        renderer.paint(LayoutEngine().compute(folder.tree))

        folder.feed("<< 0")
        renderer.paint(LayoutEngine().compute(folder.tree))
        assert terminal.lines() == ["job", "  ▶ a (0) [2 lines]"]

    def test_invalidate(self, terminal: FakeTerminal) -> None:
        """Test invalidate forces a full redraw."""
        folder = _folder()
        folder.feed_many([">> a", "x"])
        renderer = Renderer(terminal)
        frame = LayoutEngine().compute(folder.tree)
        renderer.paint(frame)

        renderer.invalidate()
        assert renderer.previous == [None, None, None]
        assert renderer.paint(frame) == 3

    def test_custom_formatter(self, terminal: FakeTerminal) -> None:
        """Test the formatter decides what is written."""
        folder = _folder()
        folder.feed("plain")
        renderer = Renderer(terminal, formatter=lambda row: row.text.upper())
        renderer.paint(LayoutEngine().compute(folder.tree))
        assert terminal.lines() == ["JOB", "PLAIN"]

"""Tests for the layout engine."""

from __future__ import annotations

import pytest

from linefold.fold.folder import StreamFolder
from linefold.fold.layout import HEADER_INDEX, LayoutEngine, RowKey, RowKind, summary_text
from linefold.fold.matcher import Matcher
from linefold.fold.tree import TreeModel

START = r">>( (?P<M>.*))?"
END = r"<<( (?P<M>.*))?"


def _fold(lines: list[str], **kwargs: object) -> StreamFolder:
    folder = StreamFolder(Matcher.from_patterns([START], [END]), title="job", **kwargs)
    folder.feed_many(lines)
    return folder


def _texts(rows) -> list[str]:
    return [row.text for row in rows]


# =============================================================================
# Summary Text
# =============================================================================


class TestSummaryText:
    """Tests for summary_text."""

    def test_label_close_label_and_lines(self) -> None:
        """Test the basic summary form."""
        folder = _fold([">> build", "compiling a.c", "<< 0"])
        assert summary_text(folder.tree, 1) == "build (0) [1 line]"

    def test_nested_counts(self) -> None:
        """Test subtree lines and nodes are counted."""
        folder = _fold([">> tests", "a", ">> unit", "b", "c", "<<", "<< ok"])
        assert summary_text(folder.tree, 1) == "tests (ok) [3 lines, 1 node]"

    def test_empty_labels(self) -> None:
        """Test a node without labels still has counts."""
        folder = _fold([">>", "<<"])
        assert summary_text(folder.tree, 1) == "[0 lines]"

    def test_close_label_only(self) -> None:
        """Test a close label without a start label."""
        folder = _fold([">>", "x", "<< done"])
        assert summary_text(folder.tree, 1) == "(done) [1 line]"


# =============================================================================
# Unbounded Layout
# =============================================================================


class TestLayoutScenarios:
    """Tests for the documented layout scenarios."""

    def test_open_node_is_expanded(self) -> None:
        """Test an open node shows its header and content."""
        folder = _fold([">> build", "compiling a.c"])
        rows = LayoutEngine().compute(folder.tree, 10)

        assert _texts(rows) == ["job", "build", "compiling a.c"]
        assert [row.kind for row in rows] == [RowKind.HEADER, RowKind.HEADER, RowKind.TEXT]
        assert [row.depth for row in rows] == [0, 1, 2]
        assert rows[2].live
        assert rows[2].key == RowKey(1, 0)

    def test_closed_node_collapses(self) -> None:
        """Test a closed node becomes one summary row."""
        folder = _fold([">> build", "compiling a.c", "<< 0"])
        rows = LayoutEngine().compute(folder.tree, 10)

        assert _texts(rows) == ["job", "build (0) [1 line]"]
        assert rows[1].kind is RowKind.SUMMARY
        assert rows[1].key == RowKey(1, HEADER_INDEX)

    def test_nested_open_then_closed(self) -> None:
        """Test nested nodes expand while open and collapse once closed."""
        folder = _fold([">> outer", ">> inner", "work"])
        rows = LayoutEngine().compute(folder.tree, 10)
        assert _texts(rows) == ["job", "outer", "inner", "work"]
        assert [row.depth for row in rows] == [0, 1, 2, 3]

        folder.feed_many(["<< done-inner", "<< done-outer"])
        rows = LayoutEngine().compute(folder.tree, 10)
        assert _texts(rows) == ["job", "outer (done-outer) [1 line, 1 node]"]

    def test_only_innermost_lines_are_live(self) -> None:
        """Test lines of outer open nodes are not live."""
        folder = _fold(["root line", ">> build", "inner line"])
        rows = LayoutEngine().compute(folder.tree)
        live = {row.text: row.live for row in rows if row.kind is RowKind.TEXT}
        assert live == {"root line": False, "inner line": True}

    def test_idempotent(self) -> None:
        """Test the same tree and height give the same rows."""
        folder = _fold([">> a", "1", "<<", ">> b", *[str(i) for i in range(30)]])
        engine = LayoutEngine()
        for height in (None, 3, 7, 40):
            assert engine.compute(folder.tree, height) == engine.compute(folder.tree, height)

    def test_zero_height(self) -> None:
        """Test a viewport without rows gives no rows."""
        folder = _fold([">> a", "1"])
        assert LayoutEngine().compute(folder.tree, 0) == []

    def test_unminimized(self) -> None:
        """Test closed nodes are expanded when minimization is off."""
        folder = _fold([">> build", "compiling a.c", "<< 0", "after"])
        rows = LayoutEngine().compute(folder.tree, 2, minimize=False)

        assert _texts(rows) == ["job", "build (0) [1 line]", "compiling a.c", "after"]
        assert rows[1].kind is RowKind.HEADER
        assert not rows[1].live


# =============================================================================
# Overflow
# =============================================================================


class TestLayoutOverflow:
    """Tests for the overflow priority policy."""

    def test_long_tail(self) -> None:
        """Test a small viewport keeps the newest line of the innermost node."""
        folder = _fold([">> build", *[f"line {i}" for i in range(100)]])
        rows = LayoutEngine().compute(folder.tree, 3)

        assert len(rows) == 3
        assert _texts(rows) == ["job", "build", "line 99"]
        assert rows[1].hidden == 99

    @pytest.mark.parametrize("height", range(3, 20))
    def test_never_exceeds_height(self, height: int) -> None:
        """Test frames are bounded and always end with the newest line."""
        folder = _fold(
            [
                "boot",
                ">> a",
                "x",
                "<<",
                ">> b",
                ">> c",
                "y",
                "<<",
                *[f"line {i}" for i in range(50)],
            ]
        )
        rows = LayoutEngine().compute(folder.tree, height)
        assert len(rows) == height
        assert rows[-1].text == "line 49"

    def test_summaries_before_older_lines(self) -> None:
        """Test summaries are kept ahead of all but the newest lines."""
        folder = _fold(
            [">> s1", "<<", ">> s2", "<<", ">> s3", "<<", ">> cur"]
            + [f"line {i}" for i in range(10)]
        )
        rows = LayoutEngine().compute(folder.tree, 6)
        assert _texts(rows) == [
            "job",
            "s1 [0 lines]",
            "s2 [0 lines]",
            "s3 [0 lines]",
            "cur",
            "line 9",
        ]
        assert rows[4].hidden == 9

        rows = LayoutEngine().compute(folder.tree, 8)
        assert _texts(rows)[-3:] == ["line 7", "line 8", "line 9"]

    def test_newest_summaries_first(self) -> None:
        """Test older summaries are dropped first."""
        folder = _fold(
            [">> s1", "<<", ">> s2", "<<", ">> s3", "<<", ">> cur"]
            + [f"line {i}" for i in range(10)]
        )
        rows = LayoutEngine().compute(folder.tree, 5)
        assert _texts(rows) == ["job", "s2 [0 lines]", "s3 [0 lines]", "cur", "line 9"]
        assert rows[0].hidden == 1

    def test_without_tail_reserve(self) -> None:
        """Test min_tail_rows=0 lets summaries take every row."""
        folder = _fold(
            [">> s1", "<<", ">> s2", "<<", ">> s3", "<<", ">> cur"]
            + [f"line {i}" for i in range(10)]
        )
        rows = LayoutEngine(min_tail_rows=0).compute(folder.tree, 5)
        assert _texts(rows) == ["job", "s1 [0 lines]", "s2 [0 lines]", "s3 [0 lines]", "cur"]
        assert rows[-1].hidden == 10

    def test_outer_lines_last(self) -> None:
        """Test lines of outer open nodes fill what is left."""
        folder = _fold(["r0", "r1", ">> build", "b0", "b1"])
        rows = LayoutEngine().compute(folder.tree, 5)

        assert _texts(rows) == ["job", "r1", "build", "b0", "b1"]
        assert rows[0].hidden == 1

    def test_deep_chain(self) -> None:
        """Test the deepest headers are kept when headers alone overflow."""
        folder = _fold([">> l1", ">> l2", ">> l3", ">> l4", "work"])
        rows = LayoutEngine().compute(folder.tree, 2)

        assert _texts(rows) == ["l3", "l4"]
        assert all(row.kind is RowKind.HEADER for row in rows)
        assert rows[-1].hidden == 1

    def test_rows_in_tree_order(self) -> None:
        """Test kept rows keep their relative order."""
        folder = _fold(["r0", ">> a", "<<", "r1", ">> cur", *[str(i) for i in range(20)]])
        rows = LayoutEngine().compute(folder.tree, 8)

        root_children = [row.key.index for row in rows if row.key.node_id == TreeModel.ROOT]
        assert root_children == sorted(root_children)
        cur_lines = [row.key.index for row in rows if row.kind is RowKind.TEXT and row.live]
        assert cur_lines == sorted(cur_lines)


# =============================================================================
# Deep Nesting
# =============================================================================


class TestDeepNesting:
    """Tests for layouts of trees nested beyond the recursion limit."""

    DEPTH = 3000

    def _deep(self, *, closed: bool = False) -> StreamFolder:
        lines = [f">> n{i}" for i in range(self.DEPTH)] + ["tail"]
        if closed:
            lines += ["<< 0"] * self.DEPTH
        return _fold(lines)

    def test_open_chain_unbounded(self) -> None:
        """Test every open header and the live line are laid out."""
        tree = self._deep().tree

        for minimize in (True, False):
            rows = LayoutEngine().compute(tree, minimize=minimize)
            assert len(rows) == self.DEPTH + 2
            assert rows[-2].text == f"n{self.DEPTH - 1}"
            assert rows[-1].text == "tail"
            assert rows[-1].live

    def test_open_chain_bounded(self) -> None:
        """Test a short viewport keeps the deepest headers."""
        rows = LayoutEngine().compute(self._deep().tree, 10)

        assert len(rows) == 10
        assert all(row.kind is RowKind.HEADER for row in rows)
        assert rows[-1].text == f"n{self.DEPTH - 1}"

    def test_closed_chain(self) -> None:
        """Test a closed deep subtree collapses to one summary and expands fully."""
        tree = self._deep(closed=True).tree

        rows = LayoutEngine().compute(tree)
        assert _texts(rows) == ["job", f"n0 (0) [1 line, {self.DEPTH - 1} nodes]"]

        expanded = LayoutEngine().compute(tree, minimize=False)
        assert len(expanded) == self.DEPTH + 2
        assert expanded[-1].text == "tail"

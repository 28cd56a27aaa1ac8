"""Bounded-height layout of a fold tree.

Open nodes are shown expanded: a header row, then their children in arrival
order. Closed nodes collapse to a single summary row. When the expanded rows
do not fit the viewport, rows are kept in this order of priority:

1. headers of the open nodes (the context of the live region),
2. the newest ``min_tail_rows`` lines of the innermost open node,
3. summary rows of closed nodes, newest first,
4. the rest of the innermost node's lines, newest first,
5. lines of the outer open nodes, newest first.

Kept rows are emitted in tree order. Every row carries a key made of the
owning node and the content position so frames can be diffed.

Example:
    ```python
    from linefold.fold.layout import LayoutEngine

    rows = LayoutEngine().compute(folder.tree, height=24)
    for row in rows:
        print("  " * row.depth + row.text)
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, NamedTuple

from linefold.fold.tree import LineItem, NodeItem, TreeModel

if TYPE_CHECKING:
    from collections.abc import Iterator

    from linefold.fold.tree import Node

__all__ = [
    "HEADER_INDEX",
    "DisplayRow",
    "LayoutEngine",
    "RowKey",
    "RowKind",
    "summary_text",
]

# Content index used in the key of a node's own header or summary row
HEADER_INDEX = -1


class RowKind(str, Enum):
    """Kind of display row."""

    HEADER = "header"
    SUMMARY = "summary"
    TEXT = "text"


class RowKey(NamedTuple):
    """Stable identity of a display row."""

    node_id: int
    index: int


@dataclass(frozen=True)
class DisplayRow:
    """One row of a laid out frame.

    Attributes:
        key: Owning node and content position (HEADER_INDEX for the node's
            own header or summary row).
        kind: Header, summary or content text.
        depth: Indentation level.
        text: Row text without decoration.
        live: Whether the row belongs to the innermost open node.
        hidden: For headers, how many of the node's rows were left out.
    """

    key: RowKey
    kind: RowKind
    depth: int
    text: str
    live: bool = False
    hidden: int = 0


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def summary_text(tree: TreeModel, node_id: int) -> str:
    """Summary of a closed node: label, close label and counts.

    Example: ``build (0) [1 line]`` or ``tests (ok) [12 lines, 3 nodes]``.
    """
    node = tree.node(node_id)
    text = node.label
    if node.close_label:
        text = f"{text} ({node.close_label})" if text else f"({node.close_label})"

    counts = [_plural(tree.subtree_line_count(node_id), "line")]
    nodes = node.total_nodes if node.total_nodes is not None else tree.child_node_count(node_id)
    if nodes:
        counts.append(_plural(nodes, "node"))

    return f"{text} [{', '.join(counts)}]".lstrip()


class LayoutEngine:
    """Computes the display rows of a tree for a viewport height.

    The engine holds only options; ``compute`` is a pure function of the
    tree and its arguments.
    """

    def __init__(self, *, min_tail_rows: int = 1) -> None:
        """Initialize the engine.

        Args:
            min_tail_rows: Newest lines of the innermost open node that are
                kept ahead of summary rows when the frame overflows.
        """
        self.min_tail_rows = max(min_tail_rows, 0)

    def compute(
        self,
        tree: TreeModel,
        height: int | None = None,
        *,
        minimize: bool = True,
    ) -> list[DisplayRow]:
        """Lay out the tree.

        Args:
            tree: Tree to display.
            height: Maximum number of rows (None for no bound).
            minimize: Collapse closed nodes to summary rows. When False the
                whole tree is expanded and ``height`` is ignored.

        Returns:
            At most ``height`` rows, in display order.
        """
        if height is not None and height <= 0:
            return []

        chain = tree.open_chain()
        innermost = chain[-1]

        if not minimize:
            return list(self._expand(tree, TreeModel.ROOT, innermost, minimize=False))

        # One row per child of each open node (an open child's entry stands
        # for its header), plus the root header.
        total = 1 + sum(len(tree.node(node_id).children) for node_id in chain)
        if height is None or total <= height:
            return list(self._expand(tree, TreeModel.ROOT, innermost, minimize=True))

        return self._select(tree, chain, height)

    # -------------------------------------------------------------------------
    # Row builders
    # -------------------------------------------------------------------------

    def _header(self, tree: TreeModel, node: Node, *, hidden: int = 0) -> DisplayRow:
        return DisplayRow(
            key=RowKey(node.id, HEADER_INDEX),
            kind=RowKind.HEADER,
            depth=node.depth,
            text=node.label if node.is_open else summary_text(tree, node.id),
            live=node.is_open,
            hidden=hidden,
        )

    def _summary(self, tree: TreeModel, node: Node) -> DisplayRow:
        return DisplayRow(
            key=RowKey(node.id, HEADER_INDEX),
            kind=RowKind.SUMMARY,
            depth=node.depth,
            text=summary_text(tree, node.id),
        )

    def _line(self, node: Node, position: int, text: str, *, live: bool) -> DisplayRow:
        return DisplayRow(
            key=RowKey(node.id, position),
            kind=RowKind.TEXT,
            depth=node.depth + 1,
            text=text,
            live=live,
        )

    def _child_row(self, tree: TreeModel, node: Node, position: int, *, live: bool) -> DisplayRow:
        item = node.children[position]
        if isinstance(item, LineItem):
            return self._line(node, position, item.text, live=live)
        return self._summary(tree, tree.node(item.node_id))

    def _expand(
        self,
        tree: TreeModel,
        node_id: int,
        innermost: int,
        *,
        minimize: bool,
    ) -> Iterator[DisplayRow]:
        node = tree.node(node_id)
        yield self._header(tree, node)

        # (node, next child position) for each node being expanded
        stack = [(node, 0)]
        while stack:
            node, position = stack.pop()
            while position < len(node.children):
                item = node.children[position]
                position += 1
                if isinstance(item, LineItem):
                    yield self._line(node, position - 1, item.text, live=node.id == innermost)
                    continue

                child = tree.node(item.node_id)
                if minimize and not child.is_open and not tree.has_open_descendant(child.id):
                    yield self._summary(tree, child)
                    continue

                stack.append((node, position))
                yield self._header(tree, child)
                node, position = child, 0

    # -------------------------------------------------------------------------
    # Overflow selection
    # -------------------------------------------------------------------------

    @staticmethod
    def _newest_lines(node: Node) -> Iterator[int]:
        for position in range(len(node.children) - 1, -1, -1):
            if isinstance(node.children[position], LineItem):
                yield position

    @staticmethod
    def _newest_summaries(tree: TreeModel, node: Node) -> Iterator[int]:
        for position in reversed(node.child_nodes):
            item = node.children[position]
            assert isinstance(item, NodeItem)
            if not tree.node(item.node_id).is_open:
                yield position

    @staticmethod
    def _take(selected: set[int], positions: Iterator[int], limit: int) -> int:
        taken = 0
        while taken < limit:
            position = next(positions, None)
            if position is None:
                break
            selected.add(position)
            taken += 1
        return taken

    def _select(self, tree: TreeModel, chain: list[int], height: int) -> list[DisplayRow]:
        innermost = chain[-1]

        if len(chain) >= height:
            kept = chain[-height:]
            return [
                self._header(
                    tree,
                    tree.node(node_id),
                    hidden=len(tree.node(node_id).children) - (node_id != innermost),
                )
                for node_id in kept
            ]

        budget = height - len(chain)
        selected: dict[int, set[int]] = {node_id: set() for node_id in chain}
        inner = tree.node(innermost)
        tail = self._newest_lines(inner)

        budget -= self._take(selected[innermost], tail, min(self.min_tail_rows, budget))

        for node_id in reversed(chain):
            if budget == 0:
                break
            node = tree.node(node_id)
            budget -= self._take(selected[node_id], self._newest_summaries(tree, node), budget)

        budget -= self._take(selected[innermost], tail, budget)

        for node_id in reversed(chain[:-1]):
            if budget == 0:
                break
            node = tree.node(node_id)
            budget -= self._take(selected[node_id], self._newest_lines(node), budget)

        rows: list[DisplayRow] = []
        for node_id in chain:
            node = tree.node(node_id)
            shown = sorted(selected[node_id])
            content_rows = len(node.children) - (node_id != innermost)
            rows.append(self._header(tree, node, hidden=content_rows - len(shown)))
            rows.extend(
                self._child_row(tree, node, position, live=node_id == innermost)
                for position in shown
            )
        return rows

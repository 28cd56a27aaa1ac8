"""Output produced after (or instead of) the live view.

Example:
    ```python
    from linefold.cli.output import FoldTreeDisplay, print_replay

    console.print(FoldTreeDisplay(result.tree))
    print_replay(result.tree)
    ```
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console, ConsoleOptions, RenderResult
from rich.text import Text
from rich.tree import Tree

from linefold.cli.console import get_console
from linefold.cli.terminal import default_glyphs, rich_row
from linefold.fold.layout import LayoutEngine, summary_text
from linefold.fold.tree import LineItem, NodeItem, TreeModel

if TYPE_CHECKING:
    from collections.abc import Iterator

    from linefold.fold.folder import FoldStats

__all__ = [
    "FoldTreeDisplay",
    "iter_replay_lines",
    "print_expanded",
    "print_replay",
    "print_stats",
]

# Nesting drawn as branches before subtrees are summarized
DEFAULT_MAX_DEPTH = 16


# =============================================================================
# Tree Display
# =============================================================================


class FoldTreeDisplay:
    """Rich renderable showing the structure of a fold tree.

    Open nodes are marked as still running; content lines can be included
    verbatim, optionally limited to the newest lines of each node. Nodes
    nested deeper than ``max_depth`` are replaced by a count so the guide
    columns stay within the console width.
    """

    def __init__(
        self,
        tree: TreeModel,
        *,
        show_lines: bool = True,
        max_lines: int | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialize the display.

        Args:
            tree: Tree to show.
            show_lines: Include content lines.
            max_lines: Newest content lines shown per node (None for all).
            max_depth: Deepest node drawn with its own branch.
        """
        self.tree = tree
        self.show_lines = show_lines
        self.max_lines = max_lines
        self.max_depth = max(max_depth, 1)

    def _node_label(self, node_id: int) -> Text:
        node = self.tree.node(node_id)
        label = Text()
        if node.is_root:
            label.append(node.label or "(root)", style="row.title")
        elif node.is_open:
            label.append(node.label, style="row.header")
            label.append("  running", style="warning")
        else:
            label.append(summary_text(self.tree, node_id), style="row.summary")
        return label

    def _add_children(self, branch: Tree, node_id: int) -> list[tuple[Tree, int]]:
        """Fill one branch; returns the child branches still to be filled."""
        node = self.tree.node(node_id)
        if node.child_nodes and node.depth >= self.max_depth:
            nested = sum(1 for _ in self.tree.walk(node_id)) - 1
            branch.add(Text(f"... {nested} nested nodes", style="row.hidden"))
            return []

        line_positions = [i for i, item in enumerate(node.children) if isinstance(item, LineItem)]
        shown = set(line_positions)
        if self.max_lines is not None:
            shown = set(line_positions[len(line_positions) - self.max_lines :] if self.max_lines else [])

        omitted = len(line_positions) - len(shown) + node.dropped_lines
        if self.show_lines and omitted:
            branch.add(Text(f"... {omitted} earlier lines", style="row.hidden"))

        pending: list[tuple[Tree, int]] = []
        for position, item in enumerate(node.children):
            if isinstance(item, NodeItem):
                child = branch.add(self._node_label(item.node_id), guide_style="row.guide")
                pending.append((child, item.node_id))
            elif self.show_lines and position in shown:
                branch.add(Text(item.text, style="row.stale"))
        return pending

    def build(self) -> Tree:
        """Build the rich tree."""
        root = Tree(self._node_label(TreeModel.ROOT), guide_style="row.guide")
        pending = [(root, TreeModel.ROOT)]
        while pending:
            branch, node_id = pending.pop()
            pending.extend(self._add_children(branch, node_id))
        return root

    def __rich_console__(
        self,
        console: Console,
        options: ConsoleOptions,
    ) -> RenderResult:
        yield self.build()


# =============================================================================
# Replay
# =============================================================================


def iter_replay_lines(tree: TreeModel, node_id: int = TreeModel.ROOT) -> Iterator[str]:
    """The input lines held by the tree, in their original order.

    Lines removed by the retention window are not replayed.
    """
    node = tree.node(node_id)
    if node.start_line is not None and not node.marker_kept:
        yield node.start_line

    # (node, next child position) for each node being replayed
    stack = [(node, 0)]
    while stack:
        node, position = stack.pop()
        if position == len(node.children):
            if node.end_line is not None:
                yield node.end_line
            continue

        stack.append((node, position + 1))
        item = node.children[position]
        if isinstance(item, NodeItem):
            child = tree.node(item.node_id)
            if child.start_line is not None and not child.marker_kept:
                yield child.start_line
            stack.append((child, 0))
        else:
            yield item.text


def print_replay(tree: TreeModel, console: Console | None = None) -> int:
    """Print the original input verbatim.

    Returns:
        Number of lines printed.
    """
    console = console or get_console()
    count = 0
    for line in iter_replay_lines(tree):
        console.out(line, highlight=False)
        count += 1
    return count


# =============================================================================
# Final Frames
# =============================================================================


def print_expanded(tree: TreeModel, console: Console | None = None) -> None:
    """Print the whole tree with every node expanded."""
    console = console or get_console()
    glyphs = default_glyphs()
    for row in LayoutEngine().compute(tree, minimize=False):
        console.print(rich_row(row, glyphs), overflow="ellipsis", no_wrap=True)


def print_stats(stats: FoldStats, console: Console | None = None) -> None:
    """Print folder counters on one line."""
    console = console or get_console()
    text = Text()
    text.append(f"{stats.lines} lines", style="info")
    text.append(f"  {stats.opened} opened  {stats.closed} closed", style="muted")
    if stats.unmatched_ends:
        text.append(f"  {stats.unmatched_ends} unmatched end markers", style="warning")
    if stats.dropped_lines:
        text.append(f"  {stats.dropped_lines} lines dropped", style="muted")
    console.print(text)

"""Incremental folding of a line stream into a tree.

Each line is handled completely before the next one:

1. a start marker opens a node under the innermost open node;
2. otherwise an end marker closes the innermost open node (an end marker
   with nothing to close is kept as a plain root line);
3. otherwise the line becomes content of the innermost open node.

Nodes still open at end of stream stay open.

Example:
    ```python
    from linefold.fold.folder import StreamFolder
    from linefold.fold.matcher import Matcher

    matcher = Matcher.from_patterns([r">>( (?P<M>.*))?"], [r"<<( (?P<M>.*))?"])
    folder = StreamFolder(matcher)
    folder.feed_many([">> build", "compiling a.c", "<< 0"])
    folder.tree.to_dict()
    ```
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from linefold.fold.matcher import Matcher, Role
from linefold.fold.tree import TreeModel
from linefold.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "FoldAction",
    "FoldStats",
    "StreamFolder",
]

logger = get_logger("fold.folder")


class FoldAction(str, Enum):
    """What the folder did with a line."""

    OPENED = "opened"
    CLOSED = "closed"
    CONTENT = "content"
    UNMATCHED_END = "unmatched_end"


@dataclass
class FoldStats:
    """Counters over the lines folded so far.

    Attributes:
        lines: Lines fed.
        opened: Nodes opened.
        closed: Nodes closed.
        unmatched_ends: End markers found with no open node to close.
        dropped_lines: Content lines removed by the retention window.
    """

    lines: int = 0
    opened: int = 0
    closed: int = 0
    unmatched_ends: int = 0
    dropped_lines: int = 0


class StreamFolder:
    """Builds a :class:`TreeModel` from lines, one line at a time.

    The open stack is kept explicitly as arena indices, root first; new
    content always attaches to its last entry.
    """

    def __init__(
        self,
        matcher: Matcher,
        *,
        title: str = "",
        keep_marker_lines: bool = False,
        max_closed_lines: int | None = None,
    ) -> None:
        """Initialize the folder.

        Args:
            matcher: Marker matcher.
            title: Label of the root node.
            keep_marker_lines: Also store start marker lines as content.
            max_closed_lines: Keep only this many content lines of a node
                once it closes (None keeps everything).
        """
        self.matcher = matcher
        self.keep_marker_lines = keep_marker_lines
        self.max_closed_lines = max_closed_lines
        self.tree = TreeModel(title=title)
        self.stats = FoldStats()
        self._open_stack: list[int] = [TreeModel.ROOT]

    @property
    def open_stack(self) -> tuple[int, ...]:
        """Arena indices of the open nodes, root first."""
        return tuple(self._open_stack)

    @property
    def innermost(self) -> int:
        """Arena index of the node new content attaches to."""
        return self._open_stack[-1]

    @property
    def depth(self) -> int:
        """Number of open nodes below the root."""
        return len(self._open_stack) - 1

    def feed(self, line: str) -> FoldAction:
        """Fold one line into the tree.

        Args:
            line: Line without its trailing newline.

        Returns:
            The action taken.
        """
        self.stats.lines += 1

        start = self.matcher.find(line, Role.START)
        if start is not None:
            node_id = self.tree.open_node(
                self.innermost,
                start.label,
                pair_id=start.pair_id,
                start_line=line,
                keep_marker=self.keep_marker_lines,
            )
            self._open_stack.append(node_id)
            self.stats.opened += 1
            logger.debug(f"Opened node {node_id} ({start.label!r}) at depth {self.depth}")
            return FoldAction.OPENED

        end = self.matcher.find(line, Role.END)
        if end is not None:
            if len(self._open_stack) == 1:
                self.tree.append_line(TreeModel.ROOT, line)
                self.stats.unmatched_ends += 1
                logger.debug(f"Unmatched end marker kept as content: {line!r}")
                return FoldAction.UNMATCHED_END

            node_id = self._open_stack[-1]
            self.tree.close_node(node_id, end.label, end_line=line)
            self._open_stack.pop()
            self.stats.closed += 1
            logger.debug(f"Closed node {node_id} ({end.label!r})")

            if self.max_closed_lines is not None:
                self.stats.dropped_lines += self.tree.truncate_lines(
                    node_id, self.max_closed_lines
                )
            return FoldAction.CLOSED

        self.tree.append_line(self.innermost, line)
        return FoldAction.CONTENT

    def feed_many(self, lines: Iterable[str]) -> FoldStats:
        """Fold every line of an iterable.

        Returns:
            The folder's stats after the last line.
        """
        for line in lines:
            self.feed(line)
        return self.stats

"""Arena-backed tree of folded regions.

Nodes live in a flat list and refer to each other by integer index: a node's
``children`` holds :class:`NodeItem` references and :class:`LineItem` content
lines in arrival order, and ``parent`` is a plain index. Node 0 is the root,
which is always open.

Example:
    ```python
    from linefold.fold.tree import TreeModel

    tree = TreeModel(title="make all")
    build = tree.open_node(tree.ROOT, "build")
    tree.append_line(build, "compiling a.c")
    tree.close_node(build, "0")
    tree.line_count(build)  # 1
    ```
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from collections.abc import Iterator

__all__ = [
    "ChildItem",
    "LineItem",
    "Node",
    "NodeItem",
    "NodeState",
    "TreeModel",
]


class NodeState(str, Enum):
    """Lifecycle state of a node."""

    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class LineItem:
    """A raw content line."""

    text: str


@dataclass(frozen=True)
class NodeItem:
    """Reference to a child node by arena index."""

    node_id: int


ChildItem = Union[LineItem, NodeItem]


@dataclass
class Node:
    """One matched region, or the implicit root.

    Attributes:
        id: Arena index, stable for the lifetime of the tree.
        label: Label captured from the start marker.
        parent: Arena index of the parent (None for the root).
        depth: Nesting depth (root is 0).
        state: Open until its end marker is seen.
        close_label: Label captured from the end marker.
        pair_id: Pattern pair that opened the node.
        start_line: Raw start marker line.
        end_line: Raw end marker line.
        marker_kept: Whether the start line is also the first content line.
        children: Content lines and child node references in arrival order.
        child_nodes: Positions in ``children`` that hold node references.
        dropped_lines: Content lines removed by the retention window.
        total_lines: Content lines in the whole subtree, set when closed.
        total_nodes: Nodes in the subtree below this one, set when closed.
    """

    id: int
    label: str
    parent: int | None = None
    depth: int = 0
    state: NodeState = NodeState.OPEN
    close_label: str | None = None
    pair_id: int | None = None
    start_line: str | None = None
    end_line: str | None = None
    marker_kept: bool = False
    children: list[ChildItem] = field(default_factory=list)
    child_nodes: list[int] = field(default_factory=list)
    dropped_lines: int = 0
    total_lines: int | None = None
    total_nodes: int | None = None

    @property
    def is_open(self) -> bool:
        return self.state is NodeState.OPEN

    @property
    def is_root(self) -> bool:
        return self.parent is None


class TreeModel:
    """Rooted, ordered tree of nodes stored in an arena.

    Children are only ever appended. A closed node is frozen: appending to
    it, or opening a node under it, raises ValueError.
    """

    ROOT = 0

    def __init__(self, title: str = "") -> None:
        """Initialize the tree with its root.

        Args:
            title: Label of the root node (the description of the input).
        """
        self.nodes: list[Node] = [Node(id=self.ROOT, label=title)]

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def root(self) -> Node:
        return self.nodes[self.ROOT]

    def node(self, node_id: int) -> Node:
        """Get a node by arena index."""
        return self.nodes[node_id]

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def _require_open(self, node: Node) -> None:
        if not node.is_open:
            raise ValueError(f"Node {node.id} is closed")

    def open_node(
        self,
        parent_id: int,
        label: str,
        *,
        pair_id: int | None = None,
        start_line: str | None = None,
        keep_marker: bool = False,
    ) -> int:
        """Create a new open node as the last child of ``parent_id``.

        Args:
            parent_id: Arena index of an open node.
            label: Label captured from the start marker.
            pair_id: Pattern pair that matched.
            start_line: Raw marker line.
            keep_marker: Also store the marker line as first content line.

        Returns:
            Arena index of the new node.
        """
        parent = self.nodes[parent_id]
        self._require_open(parent)

        node = Node(
            id=len(self.nodes),
            label=label,
            parent=parent_id,
            depth=parent.depth + 1,
            pair_id=pair_id,
            start_line=start_line,
            marker_kept=keep_marker and start_line is not None,
        )
        if node.marker_kept:
            node.children.append(LineItem(start_line))  # type: ignore[arg-type]

        self.nodes.append(node)
        parent.child_nodes.append(len(parent.children))
        parent.children.append(NodeItem(node.id))
        return node.id

    def append_line(self, node_id: int, text: str) -> int:
        """Append a content line to an open node.

        Returns:
            Position of the line in the node's children.
        """
        node = self.nodes[node_id]
        self._require_open(node)
        node.children.append(LineItem(text))
        return len(node.children) - 1

    def close_node(self, node_id: int, close_label: str, *, end_line: str | None = None) -> None:
        """Close a node and freeze its subtree.

        Args:
            node_id: Arena index of a non-root open node.
            close_label: Label captured from the end marker.
            end_line: Raw end marker line.

        Raises:
            ValueError: If the node is the root, already closed, or still has
                an open child.
        """
        node = self.nodes[node_id]
        if node.is_root:
            raise ValueError("The root node is never closed")
        self._require_open(node)
        if node.child_nodes and self.nodes[self._last_child_node(node)].is_open:
            raise ValueError(f"Node {node_id} still has an open child")

        node.state = NodeState.CLOSED
        node.close_label = close_label
        node.end_line = end_line
        node.total_lines = self.subtree_line_count(node_id)
        node.total_nodes = sum(
            1 + self._nodes_below(child) for child in self.child_node_ids(node_id)
        )

    def truncate_lines(self, node_id: int, keep: int) -> int:
        """Drop all but the newest ``keep`` content lines of a closed node.

        Child node references are never removed. Summary counts computed at
        close time are unaffected.

        Returns:
            Number of lines dropped.
        """
        node = self.nodes[node_id]
        if node.is_open:
            raise ValueError(f"Node {node_id} is still open")

        line_positions = [i for i, item in enumerate(node.children) if isinstance(item, LineItem)]
        excess = len(line_positions) - max(keep, 0)
        if excess <= 0:
            return 0

        doomed = set(line_positions[:excess])
        node.children = [item for i, item in enumerate(node.children) if i not in doomed]
        node.child_nodes = [
            i for i, item in enumerate(node.children) if isinstance(item, NodeItem)
        ]
        node.dropped_lines += excess
        return excess

    # -------------------------------------------------------------------------
    # Structural queries
    # -------------------------------------------------------------------------

    def _last_child_node(self, node: Node) -> int:
        item = node.children[node.child_nodes[-1]]
        assert isinstance(item, NodeItem)
        return item.node_id

    def _nodes_below(self, node_id: int) -> int:
        total = self.nodes[node_id].total_nodes
        if total is not None:
            return total
        return sum(1 for _ in self.walk(node_id)) - 1

    def depth(self, node_id: int) -> int:
        return self.nodes[node_id].depth

    def ancestors(self, node_id: int) -> list[int]:
        """Arena indices from the root down to the parent of ``node_id``."""
        chain: list[int] = []
        parent = self.nodes[node_id].parent
        while parent is not None:
            chain.append(parent)
            parent = self.nodes[parent].parent
        chain.reverse()
        return chain

    def open_chain(self) -> list[int]:
        """Arena indices of the open nodes, root first.

        Only the last child node of an open node can itself be open, so the
        chain follows the last child node while it is open.
        """
        chain = [self.ROOT]
        node = self.root
        while node.child_nodes:
            last = self.nodes[self._last_child_node(node)]
            if not last.is_open:
                break
            chain.append(last.id)
            node = last
        return chain

    def has_open_descendant(self, node_id: int) -> bool:
        node = self.nodes[node_id]
        if not node.child_nodes:
            return False
        return self.nodes[self._last_child_node(node)].is_open

    def child_node_ids(self, node_id: int) -> list[int]:
        """Arena indices of the direct child nodes, in order."""
        node = self.nodes[node_id]
        return [node.children[i].node_id for i in node.child_nodes]  # type: ignore[union-attr]

    def child_node_count(self, node_id: int) -> int:
        return len(self.nodes[node_id].child_nodes)

    def line_count(self, node_id: int) -> int:
        """Direct content lines, including lines dropped by retention."""
        node = self.nodes[node_id]
        return len(node.children) - len(node.child_nodes) + node.dropped_lines

    def subtree_line_count(self, node_id: int) -> int:
        """Content lines in the whole subtree."""
        total = 0
        stack = [node_id]
        while stack:
            node = self.nodes[stack.pop()]
            if node.total_lines is not None:
                total += node.total_lines
                continue
            total += self.line_count(node.id)
            stack.extend(self.child_node_ids(node.id))
        return total

    def visible_size(self, node_id: int, *, minimize: bool = True) -> int:
        """Rows the node takes when laid out without a height bound."""
        size = 0
        stack = [node_id]
        while stack:
            node = self.nodes[stack.pop()]
            size += 1
            if minimize and not node.is_open:
                continue
            size += len(node.children) - len(node.child_nodes)
            stack.extend(self.child_node_ids(node.id))
        return size

    def walk(self, node_id: int = ROOT) -> Iterator[Node]:
        """Depth-first, pre-order traversal of a subtree."""
        stack = [node_id]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(self.child_node_ids(node.id)))

    def to_dict(self, node_id: int = ROOT) -> dict[str, object]:
        """Nested plain-data view of a subtree."""
        views: dict[int, dict[str, object]] = {node_id: {}}
        for node in self.walk(node_id):
            children: list[object] = []
            for item in node.children:
                if isinstance(item, NodeItem):
                    views[item.node_id] = {}
                    children.append(views[item.node_id])
                else:
                    children.append(item.text)
            views[node.id].update(
                id=node.id,
                label=node.label,
                state=node.state.value,
                close_label=node.close_label,
                children=children,
            )
        return views[node_id]

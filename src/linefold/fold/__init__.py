"""Folding engine: marker matching, tree building, layout and repaint."""

from linefold.fold.folder import FoldAction, FoldStats, StreamFolder
from linefold.fold.layout import DisplayRow, LayoutEngine, RowKey, RowKind, summary_text
from linefold.fold.matcher import MarkerMatch, Matcher, PatternPair, Role, compile_pattern
from linefold.fold.renderer import Renderer, RowChange, TerminalIO, diff_frames, format_row
from linefold.fold.tree import LineItem, Node, NodeItem, NodeState, TreeModel

__all__ = [
    # Matching
    "MarkerMatch",
    "Matcher",
    "PatternPair",
    "Role",
    "compile_pattern",
    # Tree
    "LineItem",
    "Node",
    "NodeItem",
    "NodeState",
    "TreeModel",
    # Folding
    "FoldAction",
    "FoldStats",
    "StreamFolder",
    # Layout
    "DisplayRow",
    "LayoutEngine",
    "RowKey",
    "RowKind",
    "summary_text",
    # Rendering
    "Renderer",
    "RowChange",
    "TerminalIO",
    "diff_frames",
    "format_row",
]

"""Start/end marker matching.

A :class:`Matcher` holds one or more start/end pattern pairs. A pattern matches
anywhere in the line unless it anchors itself with ``^`` and ``$``. The label
of a marker is taken from the capture group named ``M`` when the pattern has
one, otherwise from group 1; a pattern without groups, or a group that did not
take part in the match, yields an empty label.

Example:
    ```python
    from linefold.fold.matcher import Matcher, Role

    matcher = Matcher.from_patterns([r">>( (?P<M>.*))?"], [r"<<( (?P<M>.*))?"])
    matcher.match(">> build", Role.START)  # "build"
    matcher.match("<<", Role.END)  # ""
    matcher.match("compiling", Role.START)  # None
    ```
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from linefold.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "LABEL_GROUP",
    "MarkerMatch",
    "Matcher",
    "PatternPair",
    "Role",
    "compile_pattern",
]

# Name of the capture group holding the label when a pattern has several groups
LABEL_GROUP = "M"


class Role(str, Enum):
    """Which side of a region a pattern marks."""

    START = "start"
    END = "end"


@dataclass(frozen=True)
class PatternPair:
    """A compiled start/end pattern pair.

    Attributes:
        start: Pattern opening a region.
        end: Pattern closing a region.
    """

    start: re.Pattern[str]
    end: re.Pattern[str]

    def pattern(self, role: Role) -> re.Pattern[str]:
        return self.start if role is Role.START else self.end


@dataclass(frozen=True)
class MarkerMatch:
    """A successful marker match.

    Attributes:
        role: Start or end marker.
        label: Captured label (may be empty).
        pair_id: Index of the pattern pair that matched.
    """

    role: Role
    label: str
    pair_id: int


def compile_pattern(source: str) -> re.Pattern[str]:
    """Compile a marker pattern.

    Args:
        source: Regular expression text.

    Returns:
        Compiled pattern, searched for anywhere in a line.

    Raises:
        ConfigurationError: If the pattern is invalid or has several
            capture groups but none named ``M``.
    """
    try:
        pattern = re.compile(source)
    except re.error as e:
        raise ConfigurationError(f"Invalid pattern {source!r}: {e}") from e

    if pattern.groups > 1 and LABEL_GROUP not in pattern.groupindex:
        raise ConfigurationError(
            f"Pattern {source!r} has {pattern.groups} capture groups "
            f"but no group named {LABEL_GROUP}"
        )

    return pattern


def _extract_label(match: re.Match[str]) -> str:
    """Get the label of a marker match."""
    if LABEL_GROUP in match.re.groupindex:
        return match.group(LABEL_GROUP) or ""
    if match.re.groups:
        return match.group(1) or ""
    return ""


class Matcher:
    """Classifies lines as start markers, end markers or plain content.

    Matching has no state: the same line and role always give the same
    result, and no input line raises.
    """

    def __init__(self, pairs: Sequence[PatternPair] = ()) -> None:
        """Initialize the matcher.

        Args:
            pairs: Compiled pattern pairs, tried in order.
        """
        self.pairs: tuple[PatternPair, ...] = tuple(pairs)

    @classmethod
    def from_patterns(
        cls,
        start_patterns: Sequence[str],
        end_patterns: Sequence[str],
    ) -> Matcher:
        """Build a matcher from pattern sources.

        Args:
            start_patterns: Start pattern per pair.
            end_patterns: End pattern per pair.

        Returns:
            Matcher over the compiled pairs.

        Raises:
            ConfigurationError: If the counts differ or a pattern is invalid.
        """
        if len(start_patterns) != len(end_patterns):
            raise ConfigurationError(
                f"Start and end pattern counts don't match: "
                f"{len(start_patterns)} != {len(end_patterns)}"
            )

        pairs = [
            PatternPair(start=compile_pattern(start), end=compile_pattern(end))
            for start, end in zip(start_patterns, end_patterns)
        ]
        return cls(pairs)

    def __len__(self) -> int:
        return len(self.pairs)

    def find(self, line: str, role: Role) -> MarkerMatch | None:
        """Find the first pair whose ``role`` pattern matches the line.

        Args:
            line: Line without its trailing newline.
            role: Which pattern of each pair to try.

        Returns:
            The match, or None when no pair matches.
        """
        for pair_id, pair in enumerate(self.pairs):
            match = pair.pattern(role).search(line)
            if match is not None:
                return MarkerMatch(role=role, label=_extract_label(match), pair_id=pair_id)
        return None

    def match(self, line: str, role: Role) -> str | None:
        """Match a line against the ``role`` patterns.

        Args:
            line: Line without its trailing newline.
            role: Start or end.

        Returns:
            Captured label ("" when the pattern captures nothing), or None
            when the line is not a marker of that role.
        """
        found = self.find(line, role)
        return found.label if found is not None else None

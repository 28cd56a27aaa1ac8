"""Configuration for linefold.

Options come from the command line; pattern pairs may additionally be read
from a pairs file holding one start pattern line followed by one end pattern
line per pair:

    ^>>( (?P<M>.*))?$
    ^<<( (?P<M>.*))?$

When no pattern is given on the command line and no pairs file is named,
``~/.config/linefold/pairs`` is loaded if it exists (``LINEFOLD_PAIRS_FILE``
overrides that location).
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from linefold.exceptions import ConfigurationError
from linefold.fold.matcher import Matcher
from linefold.logging import get_logger

__all__ = [
    "CONFIG_DIR",
    "DEFAULT_PAIRS_FILE",
    "PAIRS_FILE_ENV",
    "FoldConfig",
    "build_matcher",
    "default_pairs_file",
    "load_config",
    "load_pairs_file",
]

logger = get_logger("config")

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "linefold"
DEFAULT_PAIRS_FILE = CONFIG_DIR / "pairs"

PAIRS_FILE_ENV = "LINEFOLD_PAIRS_FILE"


class FoldConfig(BaseModel):
    """Options of a folding run.

    Attributes:
        start_patterns: Start pattern per pair.
        end_patterns: End pattern per pair.
        pairs_file: File with additional pairs.
        height: Viewport rows (None uses the terminal height).
        final_shrink: Rows left free below the final frame.
        keep_marker_lines: Store start marker lines as node content too.
        max_closed_lines: Content lines kept per node once it closes.
        min_tail_rows: Live lines kept ahead of summaries on overflow.
        refresh_interval: Minimum seconds between repaints. A skipped repaint
            waits for the next line or the end of the stream.
        interline_delay: Milliseconds to wait after each line.
        replay: Use the alternate screen and print the input afterwards.
        expand_final: Print the fully expanded tree afterwards.
        debug: Verbose logging.
    """

    start_patterns: list[str] = Field(default_factory=list)
    end_patterns: list[str] = Field(default_factory=list)
    pairs_file: Path | None = None
    height: int | None = Field(default=None, ge=1)
    final_shrink: int = Field(default=2, ge=0)
    keep_marker_lines: bool = False
    max_closed_lines: int | None = Field(default=None, ge=0)
    min_tail_rows: int = Field(default=1, ge=0)
    refresh_interval: float = Field(default=0.0, ge=0.0)
    interline_delay: int = Field(default=0, ge=0)
    replay: bool = False
    expand_final: bool = False
    debug: bool = False

    @model_validator(mode="after")
    def _check_pair_counts(self) -> FoldConfig:
        if len(self.start_patterns) != len(self.end_patterns):
            raise ValueError(
                f"Start and end pattern counts don't match: "
                f"{len(self.start_patterns)} != {len(self.end_patterns)}"
            )
        return self

    def patterns(self) -> tuple[list[str], list[str]]:
        """All start and end patterns, command line pairs first.

        Raises:
            ConfigurationError: If the pairs file cannot be used.
        """
        starts = list(self.start_patterns)
        ends = list(self.end_patterns)

        pairs_file = self.pairs_file
        if pairs_file is None and not starts:
            candidate = default_pairs_file()
            if candidate.exists():
                logger.debug(f"Loading default pairs file {candidate}")
                pairs_file = candidate

        if pairs_file is not None:
            file_starts, file_ends = load_pairs_file(pairs_file)
            starts.extend(file_starts)
            ends.extend(file_ends)

        return starts, ends


def default_pairs_file() -> Path:
    """Location of the pairs file used when none is given."""
    override = os.environ.get(PAIRS_FILE_ENV)
    return Path(override).expanduser() if override else DEFAULT_PAIRS_FILE


def load_pairs_file(path: Path) -> tuple[list[str], list[str]]:
    """Read pattern pairs from a file.

    Args:
        path: File with alternating start and end pattern lines.

    Returns:
        Start patterns and end patterns.

    Raises:
        ConfigurationError: If the file cannot be read or has an odd number
            of lines.
    """
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read pairs file {path}: {e}") from e

    if len(lines) % 2:
        raise ConfigurationError(
            f"Unpaired pattern in {path}: {lines[-1]!r} (odd number of lines?)"
        )

    return lines[0::2], lines[1::2]


def load_config(**options: Any) -> FoldConfig:
    """Build a validated configuration.

    Raises:
        ConfigurationError: If an option is invalid.
    """
    try:
        return FoldConfig(**options)
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        raise ConfigurationError(messages) from e


def build_matcher(config: FoldConfig) -> Matcher:
    """Compile the configured pattern pairs.

    Raises:
        ConfigurationError: If a pattern is invalid or the pairs don't line up.
    """
    starts, ends = config.patterns()
    matcher = Matcher.from_patterns(starts, ends)
    if not len(matcher):
        logger.warning("No marker patterns configured; every line stays at the root")
    return matcher

"""Themed rich consoles for the linefold CLI.

Folded output goes to the stdout console from :func:`get_console`; messages
about the run (errors, warnings) go to stderr so they never land in a
replayed or piped stream.

Example:
    ```python
    from linefold.cli.console import get_console, print_error

    get_console().print("[row.summary]build (0) [1 line][/row.summary]")
    print_error("Invalid pattern", hint="Check the -s/-e options")
    ```
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Literal

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

# =============================================================================
# Theme
# =============================================================================

ACCENT = "cyan"

LINEFOLD_THEME = Theme(
    {
        # Messages
        "info": ACCENT,
        "warning": "bold yellow",
        "error": "bold red",
        "hint": "dim italic",
        "muted": "dim",
        # Folded rows
        "row.title": f"bold {ACCENT}",
        "row.header": f"bold {ACCENT}",
        "row.summary": "green",
        "row.text": "default",
        "row.stale": "dim",
        "row.guide": "dim",
        "row.hidden": "dim italic",
    }
)


# =============================================================================
# Terminal Capabilities
# =============================================================================


class ColorSupport(str, Enum):
    """Colors the terminal can show."""

    NONE = "none"
    BASIC = "standard"
    EXTENDED = "256"
    TRUECOLOR = "truecolor"

    @property
    def color_system(self) -> Literal["standard", "256", "truecolor"] | None:
        """Matching rich ``color_system`` (None disables color)."""
        if self is ColorSupport.NONE:
            return None
        return self.value  # type: ignore[return-value]


# TERM fragments and the color level they imply, most capable first
_TERM_COLORS = (
    (("256color", "256-color"), ColorSupport.EXTENDED),
    (("xterm", "screen", "tmux", "vt100", "linux", "ansi"), ColorSupport.BASIC),
)


@dataclass(frozen=True)
class TerminalCapabilities:
    """What the attached terminal supports.

    Attributes:
        color_support: Color level.
        unicode_support: Whether box and arrow glyphs can be drawn.
        interactive: Whether stdout is a TTY.
    """

    color_support: ColorSupport
    unicode_support: bool
    interactive: bool


def _color_support(interactive: bool) -> ColorSupport:
    env = os.environ
    if env.get("NO_COLOR"):
        return ColorSupport.NONE
    if env.get("FORCE_COLOR") or env.get("COLORTERM", "").lower() in ("truecolor", "24bit"):
        return ColorSupport.TRUECOLOR

    term = env.get("TERM", "").lower()
    if term in ("", "dumb"):
        return ColorSupport.NONE
    for fragments, support in _TERM_COLORS:
        if any(fragment in term for fragment in fragments):
            return support
    return ColorSupport.BASIC if interactive else ColorSupport.NONE


def _unicode_support() -> bool:
    candidates = [sys.stdout.encoding or ""]
    candidates += [os.environ.get(var, "") for var in ("LC_ALL", "LC_CTYPE", "LANG")]
    return any("utf" in value.lower() for value in candidates)


@lru_cache(maxsize=1)
def detect_terminal_capabilities() -> TerminalCapabilities:
    """Inspect the environment once; later calls reuse the result."""
    interactive = sys.stdout.isatty()
    return TerminalCapabilities(
        color_support=_color_support(interactive),
        unicode_support=_unicode_support(),
        interactive=interactive,
    )


# =============================================================================
# Consoles
# =============================================================================

_console: Console | None = None


def get_console(*, force_terminal: bool | None = None) -> Console:
    """Shared stdout console, created on first use.

    Args:
        force_terminal: Treat stdout as a terminal (tests).
    """
    global _console

    if _console is None:
        _console = Console(
            theme=LINEFOLD_THEME,
            force_terminal=force_terminal,
            color_system=detect_terminal_capabilities().color_support.color_system,
            highlight=False,
        )
    return _console


def reset_console() -> None:
    """Forget the shared console and the detected capabilities."""
    global _console
    _console = None
    detect_terminal_capabilities.cache_clear()


def get_error_console() -> Console:
    """Console writing to stderr, for messages that must not mix with output."""
    return Console(stderr=True, theme=LINEFOLD_THEME, highlight=False)


# =============================================================================
# Messages
# =============================================================================


def _message(marker: str, message: str, style: str) -> Text:
    text = Text()
    text.append(f"{marker} ", style=style)
    text.append(message, style=style)
    return text


def print_error(message: str, hint: str | None = None) -> None:
    """Print an error to stderr.

    Args:
        message: What went wrong.
        hint: How to fix it.
    """
    text = _message("[X]", message, "error")
    if hint:
        text.append("\n    Hint: ", style="muted")
        text.append(hint, style="hint")
    get_error_console().print(text)


def print_warning(message: str) -> None:
    """Print a warning to stderr."""
    get_error_console().print(_message("[!]", message, "warning"))


__all__ = [
    "LINEFOLD_THEME",
    "ColorSupport",
    "TerminalCapabilities",
    "detect_terminal_capabilities",
    "get_console",
    "get_error_console",
    "print_error",
    "print_warning",
    "reset_console",
]

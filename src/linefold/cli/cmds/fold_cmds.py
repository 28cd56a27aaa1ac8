"""
CLI commands for folding streams.

Usage:
    make 2>&1 | linefold run -s '>> (?P<M>.*)' -e '<< (?P<M>.*)'
    linefold run -f ~/.config/linefold/pairs -- make -j8 all
    linefold run --shell -f pairs -- 'make all && make test'
    linefold inspect -f pairs build.log

``run`` shows the live folded view while the stream is being read and exits
with the command's return code. ``inspect`` folds a file without a live view
and prints the resulting tree.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from linefold.cli.console import get_console, get_error_console, print_error, print_warning
from linefold.cli.output import FoldTreeDisplay, print_expanded, print_replay, print_stats
from linefold.cli.session import FoldSession, OutputMode
from linefold.config import build_matcher, load_config
from linefold.exceptions import ConfigurationError, StreamReadError
from linefold.fold.folder import StreamFolder
from linefold.logging import configure_logging, get_logger
from linefold.sources import STDIN_TITLE, CommandSource, iter_lines, stdin_lines

if TYPE_CHECKING:
    from collections.abc import Iterator

    from linefold.config import FoldConfig
    from linefold.fold.matcher import Matcher

logger = get_logger("cli.fold")

# Exit codes
EXIT_READ_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130

_PATTERN_HINT = (
    "Patterns are Python regular expressions searched for anywhere in the line "
    "(use ^ and $ to match whole lines); name the label group M when a pattern "
    "has several groups"
)


# =============================================================================
# Shared Options
# =============================================================================

StartOption = Annotated[
    list[str] | None,
    typer.Option(
        "--match-begin",
        "-s",
        help=(
            "Start marker pattern, searched for anywhere in the line (repeat for several "
            "pairs). The label is group M, or group 1 when it is the only group; several "
            "groups without an M group are rejected"
        ),
    ),
]
EndOption = Annotated[
    list[str] | None,
    typer.Option(
        "--match-end",
        "-e",
        help="End marker pattern, paired with the -s at the same position",
    ),
]
PairsFileOption = Annotated[
    Path | None,
    typer.Option(
        "--pairs-file",
        "-f",
        help="File of start/end pattern line pairs",
        dir_okay=False,
    ),
]
KeepMarkersOption = Annotated[
    bool,
    typer.Option(
        "--keep-markers",
        help="Also keep start marker lines as content of their node",
    ),
]
MaxClosedLinesOption = Annotated[
    int | None,
    typer.Option(
        "--max-closed-lines",
        help="Content lines kept per node once it closes (default: all)",
    ),
]
DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        "-d",
        help="Verbose logging and a tree dump at exit",
    ),
]
LogFileOption = Annotated[
    Path | None,
    typer.Option(
        "--log-file",
        help="Write log records to this file instead of stderr",
        dir_okay=False,
    ),
]


def _prepare(**options: object) -> tuple[FoldConfig, Matcher]:
    """Validate options and compile patterns, exiting with code 2 on failure."""
    try:
        config = load_config(**options)
        return config, build_matcher(config)
    except ConfigurationError as e:
        print_error(str(e), hint=_PATTERN_HINT)
        raise typer.Exit(EXIT_CONFIG_ERROR) from e


# =============================================================================
# run
# =============================================================================


def run_cmd(
    command: Annotated[
        list[str] | None,
        typer.Argument(
            help="Command to run (stdin is folded when omitted)",
            show_default=False,
        ),
    ] = None,
    match_begin: StartOption = None,
    match_end: EndOption = None,
    pairs_file: PairsFileOption = None,
    height: Annotated[
        int | None,
        typer.Option(
            "--height",
            help="Rows of the folded view (default: terminal height)",
        ),
    ] = None,
    final_shrink: Annotated[
        int,
        typer.Option(
            "--final-shrink",
            "-x",
            help="Rows left free below the final frame",
        ),
    ] = 2,
    keep_markers: KeepMarkersOption = False,
    max_closed_lines: MaxClosedLinesOption = None,
    min_tail_rows: Annotated[
        int,
        typer.Option(
            "--min-tail-rows",
            help="Newest lines kept visible ahead of summaries when rows run out",
        ),
    ] = 1,
    refresh_interval: Annotated[
        float,
        typer.Option(
            "--refresh-interval",
            help=(
                "Minimum seconds between repaints (0 = every line). A skipped repaint is "
                "drawn when the next line arrives or the stream ends, so the view can lag "
                "while the source is silent"
            ),
        ),
    ] = 0.0,
    interline_delay: Annotated[
        int,
        typer.Option(
            "--interline-delay",
            "-D",
            help="Milliseconds to wait after each line",
        ),
    ] = 0,
    replay: Annotated[
        bool,
        typer.Option(
            "--replay",
            "-r",
            help="Fold in the alternate screen, then print the input verbatim",
        ),
    ] = False,
    expand_final: Annotated[
        bool,
        typer.Option(
            "--expand-final",
            help="Print the fully expanded tree after the live view",
        ),
    ] = False,
    shell: Annotated[
        bool,
        typer.Option(
            "--shell",
            help="Run the command through /bin/sh -c",
        ),
    ] = False,
    debug: DebugOption = False,
    log_file: LogFileOption = None,
):
    """Fold the output of a command (or stdin) in a live view."""
    configure_logging(debug=debug, log_file=log_file)

    config, matcher = _prepare(
        start_patterns=match_begin or [],
        end_patterns=match_end or [],
        pairs_file=pairs_file,
        height=height,
        final_shrink=final_shrink,
        keep_marker_lines=keep_markers,
        max_closed_lines=max_closed_lines,
        min_tail_rows=min_tail_rows,
        refresh_interval=refresh_interval,
        interline_delay=interline_delay,
        replay=replay,
        expand_final=expand_final,
        debug=debug,
    )

    source: CommandSource | None = None
    lines: Iterator[str]
    if command:
        source = CommandSource(command, shell=shell)
        try:
            source.start()
        except StreamReadError as e:
            print_error(str(e))
            raise typer.Exit(EXIT_READ_ERROR) from e
        title = source.title
        lines = iter(source)
    else:
        title = STDIN_TITLE
        lines = stdin_lines()

    session = FoldSession(config, matcher, title=title)
    try:
        result = session.run(lines)
    finally:
        returncode = source.stop() if source is not None else None

    console = get_console()
    if result.mode is OutputMode.FOLDED and config.replay:
        print_replay(result.tree, console)
    if config.expand_final:
        print_expanded(result.tree, console)
    if config.debug:
        get_error_console().print(FoldTreeDisplay(result.tree))

    if result.read_error is not None:
        print_error(str(result.read_error))
        raise typer.Exit(EXIT_READ_ERROR)
    if result.interrupted:
        print_warning("Interrupted")
        raise typer.Exit(EXIT_INTERRUPTED)
    if returncode:
        logger.debug(f"{title} failed with {returncode}")
        raise typer.Exit(returncode)


# =============================================================================
# inspect
# =============================================================================


def inspect_cmd(
    file: Annotated[
        Path | None,
        typer.Argument(
            help="Log file to fold (stdin when omitted)",
            exists=True,
            dir_okay=False,
            show_default=False,
        ),
    ] = None,
    match_begin: StartOption = None,
    match_end: EndOption = None,
    pairs_file: PairsFileOption = None,
    keep_markers: KeepMarkersOption = False,
    max_closed_lines: MaxClosedLinesOption = None,
    max_lines: Annotated[
        int | None,
        typer.Option(
            "--max-lines",
            "-n",
            help="Newest content lines shown per node",
        ),
    ] = None,
    no_lines: Annotated[
        bool,
        typer.Option(
            "--no-lines",
            help="Show only the node structure",
        ),
    ] = False,
    stats: Annotated[
        bool,
        typer.Option(
            "--stats",
            help="Print line and node counters",
        ),
    ] = False,
    debug: DebugOption = False,
    log_file: LogFileOption = None,
):
    """Fold a file (or stdin) and print the resulting tree."""
    configure_logging(debug=debug, log_file=log_file)

    config, matcher = _prepare(
        start_patterns=match_begin or [],
        end_patterns=match_end or [],
        pairs_file=pairs_file,
        keep_marker_lines=keep_markers,
        max_closed_lines=max_closed_lines,
        debug=debug,
    )

    folder = StreamFolder(
        matcher,
        title=str(file) if file is not None else STDIN_TITLE,
        keep_marker_lines=config.keep_marker_lines,
        max_closed_lines=config.max_closed_lines,
    )

    try:
        if file is not None:
            with file.open("rb") as stream:
                folder.feed_many(iter_lines(stream))
        else:
            folder.feed_many(stdin_lines())
    except OSError as e:
        print_error(f"Cannot read {file}: {e}")
        raise typer.Exit(EXIT_READ_ERROR) from e
    except StreamReadError as e:
        print_error(str(e))
        raise typer.Exit(EXIT_READ_ERROR) from e
    except KeyboardInterrupt:
        raise typer.Exit(EXIT_INTERRUPTED)

    console = get_console()
    console.print(FoldTreeDisplay(folder.tree, show_lines=not no_lines, max_lines=max_lines))
    if stats:
        print_stats(folder.stats, console)


def register(parent: typer.Typer):
    """Register fold commands with the parent CLI app."""
    parent.command(
        "run",
        context_settings={"allow_interspersed_args": False},
        rich_help_panel="Folding",
    )(run_cmd)
    parent.command("inspect", rich_help_panel="Folding")(inspect_cmd)

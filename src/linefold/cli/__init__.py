from __future__ import annotations

import typer
from rich.text import Text

from linefold import __version__
from linefold.cli.cmds import register_fold
from linefold.cli.console import get_console


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        get_console().print(Text(f"linefold {__version__}", style="info"))
        raise typer.Exit()


_TYPER_HELP = """Fold marked sections of a log stream into a live, collapsible tree.

**Quick start:**

* `make 2>&1 | linefold run -s '>> (?P<M>.*)' -e '<< (?P<M>.*)'`: Fold piped output
* `linefold run -f pairs -- make all`: Run a command and fold its output
* `linefold inspect -f pairs build.log`: Print the folded tree of a log file
"""

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=_TYPER_HELP,
    rich_markup_mode="markdown",
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """linefold: fold log streams into a live tree."""


register_fold(app)


def main():
    app()


if __name__ == "__main__":
    main()

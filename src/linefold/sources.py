"""Line sources feeding the folder.

A source is any iterator of lines without their trailing newline. Read
failures surface as :class:`StreamReadError` so the caller can treat them as
end of stream.

Example:
    ```python
    from linefold.sources import CommandSource

    with CommandSource(["make", "all"]) as source:
        for line in source:
            folder.feed(line)
    print(source.returncode)
    ```
"""

from __future__ import annotations

import shlex
import subprocess
import sys
from typing import IO, TYPE_CHECKING, Any

from linefold.exceptions import StreamReadError
from linefold.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

__all__ = [
    "STDIN_TITLE",
    "CommandSource",
    "iter_lines",
    "stdin_lines",
]

logger = get_logger("sources")

STDIN_TITLE = "<<stdin>>"

DEFAULT_SHELL = "/bin/sh"


def _strip_newline(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


def iter_lines(stream: IO[Any], *, encoding: str = "utf-8") -> Iterator[str]:
    """Yield lines of a text or binary stream.

    Args:
        stream: Stream to read until EOF.
        encoding: Encoding for binary streams; undecodable bytes are replaced.

    Raises:
        StreamReadError: If reading fails.
    """
    while True:
        try:
            raw = stream.readline()
        except (OSError, ValueError) as e:
            raise StreamReadError(f"Reading input failed: {e}") from e

        if not raw:
            return
        if isinstance(raw, bytes):
            raw = raw.decode(encoding, errors="replace")
        yield _strip_newline(raw)


def stdin_lines() -> Iterator[str]:
    """Lines of standard input."""
    return iter_lines(sys.stdin.buffer)


class CommandSource:
    """Runs a command and yields its combined stdout and stderr lines."""

    def __init__(
        self,
        argv: Sequence[str],
        *,
        shell: bool = False,
        shell_path: str = DEFAULT_SHELL,
    ) -> None:
        """Initialize the source.

        Args:
            argv: Command and arguments. With ``shell`` the arguments are
                joined and passed to ``shell_path -c``.
            shell: Run through the shell.
            shell_path: Shell used with ``shell``.
        """
        if not argv:
            raise ValueError("A command is required")

        self.argv = list(argv)
        self.shell = shell
        self.shell_path = shell_path
        self.process: subprocess.Popen[bytes] | None = None
        self._exhausted = False

    @property
    def title(self) -> str:
        """Shell-quoted command line, used as the root label."""
        if self.shell:
            return " ".join(self.argv)
        return shlex.join(self.argv)

    @property
    def returncode(self) -> int | None:
        return self.process.returncode if self.process is not None else None

    def start(self) -> None:
        """Spawn the command.

        Raises:
            StreamReadError: If the command cannot be started.
        """
        command = [self.shell_path, "-c", " ".join(self.argv)] if self.shell else self.argv
        try:
            self.process = subprocess.Popen(
                command,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise StreamReadError(f"Cannot run {self.title}: {e}") from e
        logger.debug(f"Started {self.title} (pid {self.process.pid})")

    def __iter__(self) -> Iterator[str]:
        if self.process is None:
            self.start()
        assert self.process is not None and self.process.stdout is not None
        yield from iter_lines(self.process.stdout)
        self._exhausted = True

    def stop(self) -> int | None:
        """Wait for the command, terminating it if it is still running.

        Returns:
            The command's return code.
        """
        if self.process is None:
            return None

        try:
            if self._exhausted:
                self.process.wait()
            elif self.process.poll() is None:
                # Output was abandoned (interrupt or read error)
                self.process.terminate()
                try:
                    self.process.wait(timeout=5)
                except subprocess.TimeoutExpired:
                    logger.warning(f"{self.title} did not exit, killing it")
                    self.process.kill()
                    self.process.wait()
        finally:
            if self.process.stdout is not None:
                self.process.stdout.close()

        logger.debug(f"{self.title} exited with {self.process.returncode}")
        return self.process.returncode

    def __enter__(self) -> CommandSource:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()

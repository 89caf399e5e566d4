"""Levelled, coloured logging to standard error."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import IO, Iterable

from termcolor import colored


class Level(IntEnum):
    """Severity of a log message, lowest first."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4


_COLORS = {
    Level.DEBUG: "cyan",
    Level.INFO: "blue",
    Level.WARN: "yellow",
    Level.ERROR: "red",
    Level.FATAL: "light_red",
}

_NAME_WIDTH = len("error")


def debug_requested(argv: Iterable[str]) -> bool:
    """Return True if the command line asks for debug output."""
    return any(arg in ("-debug", "--debug") for arg in argv)


@dataclass
class Logger:
    """Writes messages at or above ``level`` to ``stream`` (standard error by default)."""

    level: Level = Level.INFO
    stream: IO[str] | None = None
    color: bool = True

    def log(self, level: Level, *args: object) -> None:
        if level < self.level:
            return
        name = Level(level).name.ljust(_NAME_WIDTH)
        prefix = colored(name, _COLORS[Level(level)]) if self.color else name
        print(prefix, *args, file=self.stream if self.stream is not None else sys.stderr)

    def debug(self, *args: object) -> None:
        self.log(Level.DEBUG, *args)

    def info(self, *args: object) -> None:
        self.log(Level.INFO, *args)

    def warn(self, *args: object) -> None:
        self.log(Level.WARN, *args)

    def error(self, *args: object) -> None:
        self.log(Level.ERROR, *args)

    def fatal(self, *args: object) -> None:
        """Log at FATAL level and exit with status 1."""
        self.log(Level.FATAL, *args)
        sys.exit(1)

    def fatal_if_err(self, err: BaseException | None) -> None:
        if err is not None:
            self.fatal(err)


log = Logger(level=Level.DEBUG if debug_requested(sys.argv) else Level.INFO)
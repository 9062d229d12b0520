"""Human-readable progress lines with severity tags."""

import logging
from enum import Enum

import click

_logging = logging.getLogger(__name__)


class Level(Enum):
    INFO = "INFO"
    OK = "OK"
    WARN = "WARN"
    FAIL = "FAIL"
    COPY = "COPY"
    SKIP = "SKIP"
    OVRW = "OVRW"


_COLORS = {
    Level.INFO: "cyan",
    Level.OK: "green",
    Level.WARN: "yellow",
    Level.FAIL: "red",
    Level.COPY: "green",
    Level.SKIP: "bright_black",
    Level.OVRW: "magenta",
}

_LOG_LEVELS = {
    Level.WARN: logging.WARNING,
    Level.FAIL: logging.ERROR,
}

# Widest tag is four characters
_TAG_WIDTH = 4


def format_status(level: Level, message: str) -> str:
    """Format a status line.

    Examples:
        >>> format_status(Level.COPY, "profile.ps1")
        '[COPY] profile.ps1'
        >>> format_status(Level.OK, "done")
        '[OK  ] done'
    """
    return f"[{level.value.ljust(_TAG_WIDTH)}] {message}"


def format_progress(index: int, total: int, name: str) -> str:
    """Format a step progress line.

    Examples:
        >>> format_progress(1, 4, "Scoop bootstrap")
        '[ 25%] Scoop bootstrap'
    """
    percent = int(index * 100 / total) if total else 100
    return f"[{percent:3d}%] {name}"


class Reporter:
    """Writes colored status lines to the terminal and mirrors them to logging."""

    def __init__(self, err: bool = False):
        self.err = err

    def status(self, level: Level, message: str) -> None:
        click.secho(format_status(level, message), fg=_COLORS[level], err=self.err)
        _logging.log(_LOG_LEVELS.get(level, logging.INFO), "%s %s", level.value, message)

    def info(self, message: str) -> None:
        self.status(Level.INFO, message)

    def ok(self, message: str) -> None:
        self.status(Level.OK, message)

    def warn(self, message: str) -> None:
        self.status(Level.WARN, message)

    def fail(self, message: str) -> None:
        self.status(Level.FAIL, message)

    def progress(self, index: int, total: int, name: str) -> None:
        click.secho(format_progress(index, total, name), bold=True, err=self.err)
        _logging.info("step %d/%d: %s", index, total, name)

    def summary(self, outcomes: list) -> None:
        """Print the final table of step outcomes."""
        click.echo("", err=self.err)
        click.echo("=" * 60, err=self.err)
        click.echo("Summary", err=self.err)
        click.echo("=" * 60, err=self.err)
        width = max((len(o.name) for o in outcomes), default=10)
        for outcome in outcomes:
            color = {"ok": "green", "skipped": "bright_black"}.get(outcome.status, "red")
            line = f"  {outcome.name.ljust(width)}  {outcome.status}"
            if outcome.error:
                line += f"  ({outcome.error})"
            click.secho(line, fg=color, err=self.err)
        click.echo("=" * 60, err=self.err)

"""Synchronous external command execution."""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Sequence

from shellstrap.errors import CommandError

DEFAULT_TIMEOUT = 60
INSTALL_TIMEOUT = 900

_logging = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return (self.stdout.strip() or self.stderr.strip())


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_command(
    argv: Sequence[str],
    timeout: int | None = DEFAULT_TIMEOUT,
    check: bool = False,
) -> CommandResult:
    """Run a command and capture its output.

    A missing executable or a timeout is reported as a failed result with
    return code 127 or 124 rather than raised, so callers only deal with
    one failure shape.

    Raises:
        CommandError: If check is True and the command did not succeed
    """
    argv_list = list(argv)
    _logging.debug(f"Running command: {_fmt_argv(argv_list)}")
    try:
        completed = subprocess.run(
            argv_list,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
        result = CommandResult(argv_list, completed.returncode, completed.stdout or "", completed.stderr or "")
    except subprocess.TimeoutExpired:
        _logging.error(f"Command timed out after {timeout} seconds: {_fmt_argv(argv_list)}")
        result = CommandResult(argv_list, 124, "", f"Command timed out after {timeout} seconds")
    except OSError as e:
        _logging.error(f"Command execution failed: {type(e).__name__}: {e} | Command: {_fmt_argv(argv_list)}")
        result = CommandResult(argv_list, 127, "", f"Error: {e}")

    if result.stderr:
        _logging.debug(f"stderr: {result.stderr.strip()}")

    if check and not result.succeeded:
        raise CommandError(argv_list, result.returncode, result.output)
    return result

"""Administrator privilege check and elevated relaunch.

Startup runs in two phases. The unprivileged process only checks privilege
and, with the user's consent, starts a fresh elevated process with the same
flags and exits 0. The elevated process (or one that was privileged from the
start) goes straight on to provisioning.
"""

import logging
import os
import subprocess
import sys
from typing import Callable, Sequence

import click
import questionary
from prompt_toolkit.styles import Style

from shellstrap.errors import format_error
from shellstrap.paths import is_windows

_logging = logging.getLogger(__name__)

EXIT_HANDOFF = 0
EXIT_DECLINED = 1

# ShellExecuteW returns a value greater than 32 on success
_SHELL_EXECUTE_OK = 32
_SW_SHOWNORMAL = 1

PROMPT = "Administrator privileges are required. Relaunch elevated?"

_STYLE = Style(
    [
        ("qmark", "fg:ansiyellow bold"),
        ("question", "bold"),
    ]
)


def is_admin() -> bool:
    if is_windows():
        import ctypes

        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def relaunch_command(argv: Sequence[str]) -> list[str]:
    """Command line that re-enters this program with the given flags."""
    return [sys.executable, "-m", "shellstrap", *argv]


def relaunch_elevated(argv: Sequence[str]) -> int | None:
    """Start an elevated copy of this program.

    Returns None when the launch could not start. Otherwise returns the exit
    code to finish with: 0 once ShellExecuteW hands off on Windows, or the
    exit code of the sudo child, which runs to completion.
    """
    command = relaunch_command(argv)
    _logging.info(f"relaunching elevated: {command}")
    if is_windows():
        import ctypes

        rc = ctypes.windll.shell32.ShellExecuteW(
            None,
            "runas",
            command[0],
            subprocess.list2cmdline(command[1:]),
            # Relative --manifest and --log-file paths resolve against this
            os.getcwd(),
            _SW_SHOWNORMAL,
        )
        return EXIT_HANDOFF if rc > _SHELL_EXECUTE_OK else None
    try:
        return subprocess.call(["sudo", *command])
    except OSError as e:
        _logging.error(f"sudo unavailable: {e}")
        return None


def confirm_elevation(message: str = PROMPT) -> bool:
    """Ask a yes/no question; questionary on a TTY, click otherwise."""
    if sys.stdin.isatty():
        answer = questionary.confirm(message, default=False, style=_STYLE).ask()
        return bool(answer)
    return click.confirm(message, default=False)


class ElevationGate:
    """Precondition run once before any provisioning step."""

    def __init__(
        self,
        check: Callable[[], bool] = is_admin,
        confirm: Callable[[str], bool] = confirm_elevation,
        relaunch: Callable[[Sequence[str]], int | None] = relaunch_elevated,
    ):
        self._check = check
        self._confirm = confirm
        self._relaunch = relaunch

    def enforce(self, argv: Sequence[str], assume_yes: bool = False) -> None:
        """Return when privileged; otherwise hand off or refuse.

        Raises:
            SystemExit: 0 after a successful elevated relaunch, 1 when the
                user declines or the relaunch could not start, or the
                elevated run's own exit code when it failed
        """
        if self._check():
            _logging.debug("running with administrator privileges")
            return

        if not (assume_yes or self._confirm(PROMPT)):
            click.echo(
                format_error("administrator privileges are required, nothing was changed"),
                err=True,
            )
            raise SystemExit(EXIT_DECLINED)

        code = self._relaunch(list(argv))
        if code is None:
            click.echo(format_error("could not relaunch with administrator privileges"), err=True)
            raise SystemExit(EXIT_DECLINED)
        if code != EXIT_HANDOFF:
            click.echo(format_error(f"elevated run exited with code {code}"), err=True)
            raise SystemExit(code)

        click.echo("Continuing in the elevated process.")
        raise SystemExit(EXIT_HANDOFF)


__all__ = [
    "ElevationGate",
    "is_admin",
    "relaunch_command",
    "relaunch_elevated",
    "confirm_elevation",
]

"""Personal-machine bootstrap: package manager, shell modules, profile pack and fonts."""

import logging

from shellstrap.config import BootstrapOptions, Manifest, load_manifest, validate_manifest
from shellstrap.errors import (
    CommandError,
    ConfigError,
    DeployError,
    FatalStepError,
    FetchError,
    ShellstrapError,
    StepFailed,
    format_error,
    format_suggestion,
)
from shellstrap.execution import DEFAULT_TIMEOUT, INSTALL_TIMEOUT, CommandResult, run_command

__version__ = "0.3.0"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_console_handler: logging.Handler | None = None
_file_handler: logging.Handler | None = None


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Configure the root logger.

    Warnings and errors go to stderr by default; --debug lowers the console
    level to DEBUG so every external command and its stderr is shown. A log
    file always receives DEBUG records, whatever the console level.
    """
    global _console_handler, _file_handler
    root = logging.getLogger()
    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    if _console_handler is None:
        _console_handler = logging.StreamHandler()
        _console_handler.setFormatter(formatter)
        root.addHandler(_console_handler)
    _console_handler.setLevel(logging.DEBUG if debug else logging.WARNING)

    if log_file and _file_handler is None:
        _file_handler = logging.FileHandler(log_file, encoding="utf-8")
        _file_handler.setFormatter(formatter)
        _file_handler.setLevel(logging.DEBUG)
        root.addHandler(_file_handler)

    # Handlers filter by their own level; the root must pass everything they want
    root.setLevel(logging.DEBUG if debug or _file_handler is not None else logging.WARNING)


__all__ = [
    "__version__",
    "setup_logging",
    "BootstrapOptions",
    "Manifest",
    "load_manifest",
    "validate_manifest",
    "ShellstrapError",
    "ConfigError",
    "CommandError",
    "DeployError",
    "FetchError",
    "FatalStepError",
    "StepFailed",
    "format_error",
    "format_suggestion",
    "CommandResult",
    "run_command",
    "DEFAULT_TIMEOUT",
    "INSTALL_TIMEOUT",
]

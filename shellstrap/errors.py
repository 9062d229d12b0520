"""Error types and formatting utilities for consistent error messages.

Error Style Guide:
- User-facing errors use 'Error: ' prefix
- Field errors use structured format: '<entity> field '<field>' <issue>'
- Use present tense: 'must be', 'is required'
- Include actionable hints where helpful
"""


class ShellstrapError(Exception):
    """Base class for all errors raised by shellstrap."""


class ConfigError(ShellstrapError):
    """Raised when the manifest cannot be loaded or fails validation."""


class CommandError(ShellstrapError):
    """Raised when an external tool exits with a non-zero code."""

    def __init__(self, argv: list[str], returncode: int, output: str = ""):
        self.argv = argv
        self.returncode = returncode
        self.output = output
        detail = f": {output.strip()}" if output and output.strip() else ""
        super().__init__(f"'{' '.join(argv)}' exited with {returncode}{detail}")


class FetchError(ShellstrapError):
    """Raised when every transport failed to retrieve a URL."""


class DeployError(ShellstrapError):
    """Raised when an archive cannot be extracted or placed."""


class StepFailed(ShellstrapError):
    """Raised by a step whose batch had one or more failed items."""

    def __init__(self, message: str, failed: list[str]):
        self.failed = failed
        super().__init__(f"{message}: {', '.join(failed)}")


class FatalStepError(ShellstrapError):
    """Raised by the orchestrator when a step declared fatal fails."""

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"step '{step}' failed: {cause}")


def format_error(message: str) -> str:
    """Format an error message with consistent prefix.

    Examples:
        >>> format_error("manifest not found")
        'Error: manifest not found'
    """
    return f"Error: {message}"


def format_field_error(entity: str, field: str, issue: str) -> str:
    """Format a field validation error with structured format.

    Examples:
        >>> format_field_error("Manifest", "apps", "must be a list")
        "Manifest field 'apps' must be a list"
    """
    return f"{entity} field '{field}' {issue}"


def format_suggestion(message: str, suggestion: str) -> str:
    """Format an error message with a helpful suggestion.

    Examples:
        >>> format_suggestion("2 font packages failed", "re-run with --fonts to retry them")
        'Error: 2 font packages failed. Hint: re-run with --fonts to retry them'
    """
    return f"{format_error(message)}. Hint: {suggestion}"


__all__ = [
    "ShellstrapError",
    "ConfigError",
    "CommandError",
    "FetchError",
    "DeployError",
    "StepFailed",
    "FatalStepError",
    "format_error",
    "format_field_error",
    "format_suggestion",
]

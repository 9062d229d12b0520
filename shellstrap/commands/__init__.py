"""CLI command definitions for shellstrap."""

import sys

from shellstrap.commands.bootstrap import bootstrap, run_bootstrap
from shellstrap.commands.utils import parse_font_names

cli = bootstrap


def main(argv: list[str] | None = None) -> None:
    """Console entry point; keeps the raw flags for an elevated relaunch."""
    args = list(sys.argv[1:] if argv is None else argv)
    cli.main(args=args, prog_name="shellstrap", obj={"argv": args})


__all__ = [
    "cli",
    "main",
    "bootstrap",
    "run_bootstrap",
    "parse_font_names",
]

"""Bootstrap command implementation."""

import logging
import sys

import click

from shellstrap import (
    BootstrapOptions,
    ConfigError,
    FatalStepError,
    Manifest,
    __version__,
    format_error,
    format_suggestion,
    load_manifest,
    setup_logging,
)
from shellstrap.commands.utils import notify_completion, parse_font_names
from shellstrap.elevation import ElevationGate
from shellstrap.orchestrator import Orchestrator, attempt
from shellstrap.paths import get_manifest_path
from shellstrap.reporter import Reporter
from shellstrap.steps import Provisioner

_logging = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_FAILURE = 1


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--overwrite-existing",
    is_flag=True,
    help="Replace existing profile and theme files, backing up the originals",
)
@click.option("--skip-fonts", is_flag=True, help="Do not install Nerd Fonts")
@click.option(
    "--all-nerd-fonts",
    is_flag=True,
    help="Install every font package of the latest Nerd Fonts release",
)
@click.option("--skip-oh-my-posh", is_flag=True, help="Do not install oh-my-posh")
@click.option("--skip-scoop-apps", is_flag=True, help="Do not add scoop buckets or apps")
@click.option(
    "--fonts",
    multiple=True,
    metavar="NAME[,NAME...]",
    help="Font families to install instead of the defaults (repeatable)",
)
@click.option("--yes", "-y", is_flag=True, help="Relaunch elevated without asking")
@click.option("--debug", is_flag=True, help="Enable debug output for troubleshooting")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Also write a debug log to this file",
)
@click.option(
    "--manifest",
    type=click.Path(dir_okay=False),
    default=None,
    help="Provisioning manifest (default: bundled manifest.yaml)",
)
@click.version_option(__version__, prog_name="shellstrap")
@click.pass_context
def bootstrap(
    ctx,
    overwrite_existing: bool,
    skip_fonts: bool,
    all_nerd_fonts: bool,
    skip_oh_my_posh: bool,
    skip_scoop_apps: bool,
    fonts: tuple[str, ...],
    yes: bool,
    debug: bool,
    log_file: str | None,
    manifest: str | None,
):
    """Set up this machine: scoop, shell modules, oh-my-posh, profile pack and fonts."""
    options = BootstrapOptions(
        overwrite_existing=overwrite_existing,
        skip_fonts=skip_fonts,
        all_nerd_fonts=all_nerd_fonts,
        skip_oh_my_posh=skip_oh_my_posh,
        skip_scoop_apps=skip_scoop_apps,
        fonts=parse_font_names(fonts),
        assume_yes=yes,
        debug=debug,
        manifest_path=manifest,
    )
    setup_logging(debug, log_file)

    try:
        loaded = load_manifest(get_manifest_path(options.manifest_path))
    except ConfigError as e:
        click.echo(format_error(str(e)), err=True)
        sys.exit(EXIT_FAILURE)

    raw_argv = (ctx.obj or {}).get("argv")
    ElevationGate().enforce(raw_argv if raw_argv is not None else options.to_argv(), assume_yes=yes)

    sys.exit(run_bootstrap(options, loaded))


def run_bootstrap(
    options: BootstrapOptions,
    manifest: Manifest,
    reporter: Reporter | None = None,
    provisioner: Provisioner | None = None,
) -> int:
    """Run every step and return the process exit code."""
    reporter = reporter or Reporter()
    provisioner = provisioner or Provisioner(options, manifest, reporter)
    orchestrator = Orchestrator(reporter)

    _logging.debug(f"options: {options}")
    try:
        orchestrator.run_all(provisioner.build_steps())
    except FatalStepError as e:
        reporter.summary(orchestrator.outcomes)
        click.echo(format_error(str(e)), err=True)
        return EXIT_FAILURE

    reporter.summary(orchestrator.outcomes)
    failures = orchestrator.failures
    if failures:
        reporter.warn(
            format_suggestion(
                f"{len(failures)} step(s) did not complete: {', '.join(f.name for f in failures)}",
                "re-run shellstrap, finished items are skipped",
            )
        )
        message = "Setup finished with errors. See the summary in the terminal."
    else:
        reporter.ok("All steps completed")
        message = "Setup complete. Restart your terminal to load the new profile."

    attempt(lambda: notify_completion(message))
    return EXIT_SUCCESS

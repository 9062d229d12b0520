"""The provisioning steps, in the order they must run."""

import logging
import tempfile
from pathlib import Path
from typing import Callable

from shellstrap import paths
from shellstrap.clients import OH_MY_POSH_ID, PowerShellClient, ScoopClient, WingetClient
from shellstrap.config import BootstrapOptions, Manifest
from shellstrap.deployer import (
    NESTED_ARCHIVE_PATTERNS,
    deploy_to_roots,
    deploy_tree,
    extract_archive,
)
from shellstrap.errors import CommandError, StepFailed
from shellstrap.execution import CommandResult
from shellstrap.fetcher import fetch
from shellstrap.fonts import FontRegistrar, default_registrar, install_font_batch, resolve_font_packages
from shellstrap.idempotency import (
    app_present,
    installed_buckets,
    module_present,
    oh_my_posh_present,
)
from shellstrap.orchestrator import Step
from shellstrap.reporter import Level, Reporter

_logging = logging.getLogger(__name__)

PROFILE_ARCHIVE_NAME = "profile-pack.zip"


def _check(result: CommandResult) -> CommandResult:
    if not result.succeeded:
        raise CommandError(result.argv, result.returncode, result.output)
    return result


class Provisioner:
    """Holds the collaborators every step needs and exposes one method per step."""

    def __init__(
        self,
        options: BootstrapOptions,
        manifest: Manifest,
        reporter: Reporter | None = None,
        powershell: PowerShellClient | None = None,
        scoop: ScoopClient | None = None,
        winget: WingetClient | None = None,
        download: Callable[[str, Path], Path] = fetch,
        registrar_factory: Callable[[Path], FontRegistrar] = default_registrar,
    ):
        self.options = options
        self.manifest = manifest
        self.reporter = reporter or Reporter()
        self.powershell = powershell or PowerShellClient()
        self.scoop = scoop or ScoopClient(self.powershell)
        self.winget = winget or WingetClient()
        self.download = download
        self.registrar_factory = registrar_factory

    def build_steps(self) -> list[Step]:
        opts = self.options
        return [
            Step("Execution policy", self.set_execution_policy, fatal=True),
            Step("Scoop bootstrap", self.bootstrap_scoop),
            Step(
                "Scoop buckets and apps",
                self.install_scoop_packages,
                skip_reason="--skip-scoop-apps" if opts.skip_scoop_apps else None,
            ),
            Step("Shell modules", self.install_modules),
            Step(
                "oh-my-posh",
                self.install_oh_my_posh,
                skip_reason="--skip-oh-my-posh" if opts.skip_oh_my_posh else None,
            ),
            Step("Profile pack", self.deploy_profile_pack),
            Step(
                "Nerd Fonts",
                self.install_fonts,
                skip_reason="--skip-fonts" if opts.skip_fonts else None,
            ),
        ]

    def set_execution_policy(self) -> None:
        _check(self.powershell.set_execution_policy("RemoteSigned"))

    def bootstrap_scoop(self) -> None:
        if self.scoop.is_available():
            self.reporter.status(Level.SKIP, "scoop is already installed")
            return
        _check(self.scoop.bootstrap(run_as_admin=True))
        if not self.scoop.is_available():
            raise StepFailed("scoop not found after install", ["scoop"])

    def install_scoop_packages(self) -> None:
        failed = []
        attempted = set()

        # Buckets are git repositories
        if not app_present(self.scoop, "git"):
            self._install_app("git", failed)
            attempted.add("git")

        present = installed_buckets(self.scoop)
        for bucket in self.manifest.buckets:
            if bucket in present:
                self.reporter.status(Level.SKIP, f"bucket {bucket}")
                continue
            result = self.scoop.add_bucket(bucket)
            if result.succeeded:
                self.reporter.ok(f"bucket {bucket} added")
            else:
                self.reporter.fail(f"bucket {bucket}: {result.output}")
                failed.append(f"bucket {bucket}")

        for app in self.manifest.apps:
            if app in attempted:
                continue
            if app_present(self.scoop, app):
                self.reporter.status(Level.SKIP, f"app {app}")
                continue
            self._install_app(app, failed)

        if failed:
            raise StepFailed("some scoop items failed", failed)

    def _install_app(self, app: str, failed: list[str]) -> None:
        result = self.scoop.install(app)
        if result.succeeded:
            self.reporter.ok(f"app {app} installed")
        else:
            self.reporter.fail(f"app {app}: {result.output}")
            failed.append(app)

    def install_modules(self) -> None:
        failed = []
        for module in self.manifest.modules:
            if module_present(self.powershell, module):
                self.reporter.status(Level.SKIP, f"module {module}")
                continue
            result = self.powershell.install_module(module)
            if result.succeeded:
                self.reporter.ok(f"module {module} installed")
            else:
                self.reporter.fail(f"module {module}: {result.output}")
                failed.append(module)
        if failed:
            raise StepFailed("some modules failed", failed)

    def install_oh_my_posh(self) -> None:
        if oh_my_posh_present(self.winget):
            self.reporter.status(Level.SKIP, "oh-my-posh is already installed")
            return
        _check(self.winget.install_package(OH_MY_POSH_ID, source="winget"))

    def deploy_profile_pack(self) -> None:
        overwrite = self.options.overwrite_existing
        theme_archive_name = self.manifest.theme_archive_name

        with tempfile.TemporaryDirectory(prefix="shellstrap-pack-", ignore_cleanup_errors=True) as tmp:
            work = Path(tmp)
            archive = self.download(self.manifest.profile_pack_url, work / PROFILE_ARCHIVE_NAME)
            pack_root = extract_archive(archive, work / "pack")

            deployments = deploy_to_roots(
                pack_root,
                paths.get_profile_roots(),
                overwrite=overwrite,
                exclude=(theme_archive_name, *NESTED_ARCHIVE_PATTERNS),
                reporter=self.reporter,
            )

            theme_archive = pack_root / theme_archive_name
            if theme_archive.is_file():
                theme_root = extract_archive(theme_archive, work / "themes")
                self.reporter.info(f"Deploying themes to {paths.get_theme_dir()}")
                deploy_tree(theme_root, paths.get_theme_dir(), overwrite=overwrite, reporter=self.reporter)
            else:
                self.reporter.warn(f"{theme_archive_name} not found in profile pack")

        failed = [str(d.root) for d in deployments if not d.succeeded]
        if failed:
            raise StepFailed("profile pack could not be deployed to", failed)

    def install_fonts(self) -> None:
        packages = resolve_font_packages(self.options, self.manifest)
        if not packages:
            self.reporter.warn("no font packages selected")
            return
        registrar = self.registrar_factory(paths.get_font_dir())
        result = install_font_batch(packages, registrar, self.reporter, self.download)
        if result.failed:
            raise StepFailed("font packages failed", result.failed)


__all__ = ["Provisioner", "PROFILE_ARCHIVE_NAME"]

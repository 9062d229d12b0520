"""Thin wrappers around the external command-line tools."""

import os
import shutil
from pathlib import Path
from typing import Callable, Sequence

from shellstrap.execution import DEFAULT_TIMEOUT, INSTALL_TIMEOUT, CommandResult, run_command

Runner = Callable[..., CommandResult]

SCOOP_INSTALLER_URL = "https://get.scoop.sh"
OH_MY_POSH_ID = "JanDeDobbeleer.OhMyPosh"


def ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal.

    Examples:
        >>> ps_quote("it's")
        "'it''s'"
    """
    return "'" + value.replace("'", "''") + "'"


def _scoop_shims_dir() -> Path:
    return Path(os.environ.get("SCOOP", str(Path.home() / "scoop"))) / "shims"


class PowerShellClient:
    """Runs PowerShell scripts through pwsh or Windows PowerShell."""

    def __init__(self, executable: str | None = None, runner: Runner = run_command):
        self._executable = executable
        self._run = runner

    @property
    def executable(self) -> str | None:
        return self._executable or shutil.which("pwsh") or shutil.which("powershell")

    def is_available(self) -> bool:
        return self.executable is not None

    def run(self, script: str, timeout: int | None = DEFAULT_TIMEOUT) -> CommandResult:
        exe = self.executable or "powershell"
        return self._run(
            [exe, "-NoProfile", "-NonInteractive", "-ExecutionPolicy", "Bypass", "-Command", script],
            timeout=timeout,
        )

    def set_execution_policy(self, policy: str = "RemoteSigned") -> CommandResult:
        return self.run(f"Set-ExecutionPolicy {policy} -Scope CurrentUser -Force")

    def module_available(self, name: str) -> CommandResult:
        return self.run(
            f"if (Get-Module -ListAvailable -Name {ps_quote(name)}) {{ exit 0 }} else {{ exit 1 }}"
        )

    def install_module(self, name: str) -> CommandResult:
        return self.run(
            f"Install-Module -Name {ps_quote(name)} -Repository PSGallery "
            "-Scope CurrentUser -Force -AllowClobber",
            timeout=INSTALL_TIMEOUT,
        )


class ScoopClient:
    """Thin wrapper around the scoop CLI."""

    def __init__(
        self,
        powershell: PowerShellClient | None = None,
        runner: Runner = run_command,
    ):
        self._powershell = powershell or PowerShellClient(runner=runner)
        self._run = runner

    @property
    def executable(self) -> str | None:
        # The shims directory is not on PATH until a new shell starts,
        # so look there too right after bootstrap.
        search = os.pathsep.join([os.environ.get("PATH", ""), str(_scoop_shims_dir())])
        return shutil.which("scoop", path=search)

    def is_available(self) -> bool:
        return self.executable is not None

    def bootstrap(self, run_as_admin: bool = True) -> CommandResult:
        script = f"Invoke-RestMethod -Uri {SCOOP_INSTALLER_URL} -OutFile \"$env:TEMP\\install-scoop.ps1\"; "
        script += "& \"$env:TEMP\\install-scoop.ps1\""
        if run_as_admin:
            script += " -RunAsAdmin"
        return self._powershell.run(script, timeout=INSTALL_TIMEOUT)

    def list_buckets_json(self) -> CommandResult:
        """Bucket listing serialized by PowerShell; shape varies by scoop version."""
        return self._powershell.run("scoop bucket list | ConvertTo-Json -Compress")

    def add_bucket(self, name: str) -> CommandResult:
        return self._scoop(["bucket", "add", name], timeout=INSTALL_TIMEOUT)

    def which(self, app: str) -> CommandResult:
        return self._scoop(["which", app])

    def install(self, app: str) -> CommandResult:
        return self._scoop(["install", app], timeout=INSTALL_TIMEOUT)

    def _scoop(self, args: Sequence[str], timeout: int | None = DEFAULT_TIMEOUT) -> CommandResult:
        exe = self.executable or "scoop"
        return self._run([exe, *args], timeout=timeout)


class WingetClient:
    """Thin wrapper around the winget CLI."""

    def __init__(self, executable: str | None = None, runner: Runner = run_command):
        self._executable = executable
        self._run = runner

    @property
    def executable(self) -> str | None:
        return self._executable or shutil.which("winget")

    def is_available(self) -> bool:
        return self.executable is not None

    def list_package(self, package_id: str) -> CommandResult:
        return self._run(
            [self.executable or "winget", "list", "--id", package_id, "--exact",
             "--accept-source-agreements"],
        )

    def install_package(self, package_id: str, source: str = "winget") -> CommandResult:
        return self._run(
            [self.executable or "winget", "install", "--id", package_id, "--exact",
             "--source", source, "--silent",
             "--accept-package-agreements", "--accept-source-agreements"],
            timeout=INSTALL_TIMEOUT,
        )


__all__ = [
    "PowerShellClient",
    "ScoopClient",
    "WingetClient",
    "ps_quote",
    "OH_MY_POSH_ID",
]

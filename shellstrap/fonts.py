"""Nerd Font package selection, download and system-wide registration."""

import logging
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from shellstrap.config import BootstrapOptions, Manifest
from shellstrap.deployer import extract_archive
from shellstrap.errors import DeployError, FetchError, format_suggestion
from shellstrap.execution import run_command
from shellstrap.fetcher import fetch, fetch_json
from shellstrap.idempotency import font_present
from shellstrap.orchestrator import attempt
from shellstrap.reporter import Level, Reporter

_logging = logging.getLogger(__name__)

FONT_EXTENSIONS = (".ttf", ".otf")
FONTS_REGISTRY_KEY = r"SOFTWARE\Microsoft\Windows NT\CurrentVersion\Fonts"
HWND_BROADCAST = 0xFFFF
WM_FONTCHANGE = 0x001D
SMTO_ABORTIFHUNG = 0x0002
FONT_CHANGE_TIMEOUT_MS = 1000


@dataclass(frozen=True)
class FontPackage:
    archive_name: str
    download_url: str

    @property
    def name(self) -> str:
        return self.archive_name.removesuffix(".zip")


@dataclass
class FontBatchResult:
    installed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    files_installed: int = 0
    files_skipped: int = 0


def package_for(name: str, download_base: str) -> FontPackage:
    """Build the package for a font family name.

    Examples:
        >>> package_for("FiraCode", "https://example.com/dl").download_url
        'https://example.com/dl/FiraCode.zip'
    """
    archive = name if name.endswith(".zip") else f"{name}.zip"
    return FontPackage(archive_name=archive, download_url=f"{download_base.rstrip('/')}/{archive}")


def packages_from_release(release: Any) -> list[FontPackage]:
    """Every .zip asset of a release listing."""
    if not isinstance(release, dict):
        raise FetchError("Release listing is not a JSON object")
    packages = []
    for asset in release.get("assets") or []:
        name = asset.get("name") if isinstance(asset, dict) else None
        url = asset.get("browser_download_url") if isinstance(asset, dict) else None
        if name and url and name.endswith(".zip"):
            packages.append(FontPackage(archive_name=name, download_url=url))
    return packages


def resolve_font_packages(
    options: BootstrapOptions,
    manifest: Manifest,
    get_json: Callable[[str], Any] = fetch_json,
) -> list[FontPackage]:
    """Pick the packages to install.

    --all-nerd-fonts lists the latest release, --fonts names families
    explicitly, and otherwise the manifest's default set is used.
    """
    if options.all_nerd_fonts:
        return packages_from_release(get_json(manifest.font_release_api))
    names = options.fonts or tuple(manifest.default_fonts)
    return [package_for(name, manifest.font_download_base) for name in names]


class FontRegistrar:
    """Copies font files into the font directory.

    Subclasses add the platform registration and change notification.
    """

    def __init__(self, font_dir: Path):
        self.font_dir = font_dir

    def install(self, font_file: Path) -> bool:
        """Install one font file; False when a same-named font is already present."""
        if font_present(self.font_dir, font_file.name):
            return False
        self.font_dir.mkdir(parents=True, exist_ok=True)
        target = self.font_dir / font_file.name
        shutil.copy2(font_file, target)
        try:
            self.register(target)
        except Exception:
            # An unregistered copy would look installed to the next run
            target.unlink(missing_ok=True)
            raise
        return True

    def register(self, installed: Path) -> None:
        pass

    def notify_changed(self) -> None:
        pass


class WindowsFontRegistrar(FontRegistrar):
    """Registers fonts in the machine Fonts registry key and the GDI font table."""

    def register(self, installed: Path) -> None:
        import ctypes
        import winreg

        kind = "OpenType" if installed.suffix.lower() == ".otf" else "TrueType"
        with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, FONTS_REGISTRY_KEY, 0, winreg.KEY_SET_VALUE) as key:
            winreg.SetValueEx(key, f"{installed.stem} ({kind})", 0, winreg.REG_SZ, installed.name)
        ctypes.windll.gdi32.AddFontResourceW(str(installed))

    def notify_changed(self) -> None:
        import ctypes
        from ctypes import wintypes

        result = wintypes.DWORD()
        ctypes.windll.user32.SendMessageTimeoutW(
            HWND_BROADCAST,
            WM_FONTCHANGE,
            0,
            0,
            SMTO_ABORTIFHUNG,
            FONT_CHANGE_TIMEOUT_MS,
            ctypes.byref(result),
        )


class FontconfigRegistrar(FontRegistrar):
    """User font directory refreshed with fc-cache."""

    def notify_changed(self) -> None:
        run_command(["fc-cache", "-f", str(self.font_dir)], check=True)


def default_registrar(font_dir: Path) -> FontRegistrar:
    if sys.platform == "win32":
        return WindowsFontRegistrar(font_dir)
    return FontconfigRegistrar(font_dir)


def install_font_package(
    package: FontPackage,
    registrar: FontRegistrar,
    reporter: Reporter,
    work_dir: Path,
    download: Callable[[str, Path], Path] = fetch,
) -> tuple[int, int]:
    """Download, extract and install one package; returns (installed, skipped) file counts.

    Raises:
        FetchError: If the archive cannot be downloaded
        DeployError: If it cannot be extracted or holds no font files
    """
    archive = download(package.download_url, work_dir / package.archive_name)
    extracted = extract_archive(archive, work_dir / package.name)
    font_files = [
        path for path in sorted(extracted.rglob("*"))
        if path.is_file() and path.suffix.lower() in FONT_EXTENSIONS
    ]
    if not font_files:
        raise DeployError(f"No font files in {package.archive_name}")

    installed = skipped = 0
    for font_file in font_files:
        if registrar.install(font_file):
            installed += 1
            reporter.status(Level.COPY, font_file.name)
        else:
            skipped += 1
            reporter.status(Level.SKIP, font_file.name)
    return installed, skipped


def install_font_batch(
    packages: list[FontPackage],
    registrar: FontRegistrar,
    reporter: Reporter | None = None,
    download: Callable[[str, Path], Path] = fetch,
) -> FontBatchResult:
    """Install every package, continuing past individual failures."""
    reporter = reporter or Reporter()
    result = FontBatchResult()

    for package in packages:
        reporter.info(f"Font package {package.name}")
        with tempfile.TemporaryDirectory(prefix="shellstrap-font-", ignore_cleanup_errors=True) as tmp:
            try:
                installed, skipped = install_font_package(
                    package, registrar, reporter, Path(tmp), download
                )
            except (FetchError, DeployError, OSError) as e:
                reporter.fail(f"{package.name}: {e}")
                result.failed.append(package.name)
                continue
        result.installed.append(package.name)
        result.files_installed += installed
        result.files_skipped += skipped
        reporter.ok(f"{package.name}: {installed} installed, {skipped} already present")

    if result.files_installed:
        attempt(registrar.notify_changed)

    if result.failed:
        reporter.warn(
            format_suggestion(
                f"{len(result.failed)} font package(s) failed: {', '.join(result.failed)}",
                "re-run with --fonts " + ",".join(result.failed),
            )
        )
    return result


__all__ = [
    "FontPackage",
    "FontBatchResult",
    "FontRegistrar",
    "WindowsFontRegistrar",
    "FontconfigRegistrar",
    "default_registrar",
    "package_for",
    "packages_from_release",
    "resolve_font_packages",
    "install_font_package",
    "install_font_batch",
]

"""Run options and manifest loading."""

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from shellstrap.errors import ConfigError, format_field_error
from shellstrap.paths import get_manifest_path


@dataclass(frozen=True)
class BootstrapOptions:
    """Command-line switches, captured once at startup and passed down."""
    overwrite_existing: bool = False
    skip_fonts: bool = False
    all_nerd_fonts: bool = False
    skip_oh_my_posh: bool = False
    skip_scoop_apps: bool = False
    fonts: tuple[str, ...] = ()
    assume_yes: bool = False
    debug: bool = False
    manifest_path: str | None = None

    def to_argv(self) -> list[str]:
        """Rebuild the command-line flags, used when relaunching elevated."""
        argv = []
        if self.overwrite_existing:
            argv.append("--overwrite-existing")
        if self.skip_fonts:
            argv.append("--skip-fonts")
        if self.all_nerd_fonts:
            argv.append("--all-nerd-fonts")
        if self.skip_oh_my_posh:
            argv.append("--skip-oh-my-posh")
        if self.skip_scoop_apps:
            argv.append("--skip-scoop-apps")
        for font in self.fonts:
            argv.extend(["--fonts", font])
        if self.assume_yes:
            argv.append("--yes")
        if self.debug:
            argv.append("--debug")
        if self.manifest_path:
            argv.extend(["--manifest", self.manifest_path])
        return argv


@dataclass
class Manifest:
    """What to provision: buckets, apps, modules, fonts and source URLs."""
    profile_pack_url: str
    font_release_api: str
    font_download_base: str
    buckets: list[str] = field(default_factory=list)
    apps: list[str] = field(default_factory=list)
    modules: list[str] = field(default_factory=list)
    default_fonts: list[str] = field(default_factory=list)
    theme_archive_name: str = "themes.zip"


_REQUIRED_URLS = ("profile_pack_url", "font_release_api", "font_download_base")
_NAME_LISTS = ("buckets", "apps", "modules", "default_fonts")


def validate_manifest(data: object) -> Manifest:
    """Validate and convert a raw mapping to a Manifest.

    Raises:
        ConfigError: If validation fails, naming the offending field
    """
    if not isinstance(data, dict):
        raise ConfigError(f"Manifest must be a mapping, got {type(data).__name__}")

    for name in _REQUIRED_URLS:
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ConfigError(format_field_error("Manifest", name, "must be a non-empty string"))
        if not value.startswith("https://"):
            raise ConfigError(format_field_error("Manifest", name, "must be an https:// URL"))

    for name in _NAME_LISTS:
        value = data.get(name, [])
        if value is None:
            value = []
        if not isinstance(value, list):
            raise ConfigError(format_field_error("Manifest", name, "must be a list"))
        for i, item in enumerate(value):
            if not isinstance(item, str) or not item.strip():
                raise ConfigError(f"{name}[{i}] must be a non-empty string")

    theme_archive = data.get("theme_archive_name", "themes.zip")
    if not isinstance(theme_archive, str) or not theme_archive.endswith(".zip"):
        raise ConfigError(
            format_field_error("Manifest", "theme_archive_name", "must name a .zip file")
        )

    return Manifest(
        profile_pack_url=data["profile_pack_url"],
        font_release_api=data["font_release_api"],
        font_download_base=data["font_download_base"].rstrip("/"),
        buckets=list(data.get("buckets") or []),
        apps=list(data.get("apps") or []),
        modules=list(data.get("modules") or []),
        default_fonts=list(data.get("default_fonts") or []),
        theme_archive_name=theme_archive,
    )


def load_manifest(path: Path | None = None) -> Manifest:
    """Load the manifest from YAML.

    Args:
        path: Manifest file; defaults to the resolved manifest location

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    manifest_path = path or get_manifest_path()
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Manifest not found: {manifest_path}")
    except PermissionError:
        raise ConfigError(f"Permission denied reading manifest: {manifest_path}")
    except UnicodeDecodeError:
        raise ConfigError(f"Manifest is not valid UTF-8: {manifest_path}")

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Manifest syntax error in {manifest_path}: {e}") from e

    return validate_manifest(data)


__all__ = [
    "BootstrapOptions",
    "Manifest",
    "validate_manifest",
    "load_manifest",
]

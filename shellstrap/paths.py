"""Well-known filesystem locations used by the bootstrap.

Every location can be redirected with an environment variable so the
deployment can be exercised against a scratch directory:

- SHELLSTRAP_DOCUMENTS: local documents root (default ~/Documents)
- SHELLSTRAP_ONEDRIVE: cloud-synced root (default %OneDrive%)
- SHELLSTRAP_THEME_DIR: flattened theme directory
- SHELLSTRAP_FONT_DIR: system font directory
- SHELLSTRAP_MANIFEST: manifest file overriding the bundled one
"""

import os
import sys
from pathlib import Path

# One profile directory per PowerShell major-version track
PROFILE_DIR_NAMES = ("PowerShell", "WindowsPowerShell")


def is_windows() -> bool:
    return sys.platform == "win32"


def get_documents_dir() -> Path:
    """Return the local documents root."""
    if "SHELLSTRAP_DOCUMENTS" in os.environ:
        return Path(os.environ["SHELLSTRAP_DOCUMENTS"])
    return Path.home() / "Documents"


def get_onedrive_documents_dir() -> Path | None:
    """Return the cloud-synced documents root, or None when not detected."""
    raw = os.environ.get("SHELLSTRAP_ONEDRIVE") or os.environ.get("OneDrive")
    if not raw:
        return None
    documents = Path(raw) / "Documents"
    return documents if documents.is_dir() else None


def get_profile_roots() -> list[Path]:
    """Return every directory that should receive the profile pack.

    One root per shell track under the local documents folder, plus a
    mirrored PowerShell root when a OneDrive documents folder exists.
    """
    roots = [get_documents_dir() / name for name in PROFILE_DIR_NAMES]
    onedrive = get_onedrive_documents_dir()
    if onedrive is not None:
        roots.append(onedrive / PROFILE_DIR_NAMES[0])
    return roots


def get_theme_dir() -> Path:
    """Return the flattened oh-my-posh theme directory."""
    if "SHELLSTRAP_THEME_DIR" in os.environ:
        return Path(os.environ["SHELLSTRAP_THEME_DIR"])
    if is_windows():
        local_appdata = os.environ.get("LOCALAPPDATA", str(Path.home() / "AppData" / "Local"))
        return Path(local_appdata) / "Programs" / "oh-my-posh" / "themes"
    return Path.home() / ".config" / "oh-my-posh" / "themes"


def get_font_dir() -> Path:
    """Return the directory fonts are installed into."""
    if "SHELLSTRAP_FONT_DIR" in os.environ:
        return Path(os.environ["SHELLSTRAP_FONT_DIR"])
    if is_windows():
        return Path(os.environ.get("WINDIR", r"C:\Windows")) / "Fonts"
    return Path.home() / ".local" / "share" / "fonts"


def get_packaged_manifest_path() -> Path:
    """Return path to the bundled default manifest."""
    return Path(__file__).parent / "data" / "manifest.yaml"


def get_manifest_path(override: str | None = None) -> Path:
    """Return the manifest to load.

    Priority:
    1. explicit override (``--manifest``)
    2. SHELLSTRAP_MANIFEST environment variable
    3. bundled manifest
    """
    if override:
        return Path(override)
    if "SHELLSTRAP_MANIFEST" in os.environ:
        return Path(os.environ["SHELLSTRAP_MANIFEST"])
    return get_packaged_manifest_path()

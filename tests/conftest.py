"""Pytest fixtures and utilities for shellstrap tests."""

import tempfile
import zipfile
from pathlib import Path
from typing import Generator

import pytest

from shellstrap.config import Manifest
from shellstrap.execution import CommandResult
from shellstrap.reporter import Reporter


def make_result(returncode: int = 0, stdout: str = "", stderr: str = "", argv=None) -> CommandResult:
    """Build a CommandResult as returned by the command runner."""
    return CommandResult(list(argv or ["tool"]), returncode, stdout, stderr)


def make_zip(path: Path, files: dict[str, bytes]) -> Path:
    """Write a zip archive holding the given member name -> content mapping."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return path


def snapshot(root: Path) -> dict[str, bytes]:
    """Relative path -> content for every file under root."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def reporter() -> Reporter:
    return Reporter()


@pytest.fixture
def source_files(temp_dir: Path) -> Path:
    """A profile pack source directory with two files and a nested archive."""
    source = temp_dir / "source"
    source.mkdir()
    (source / "Microsoft.PowerShell_profile.ps1").write_text("# new profile\n")
    (source / "aliases.ps1").write_text("Set-Alias ll ls\n")
    make_zip(source / "themes.zip", {"themes/agnoster.omp.json": b"{}"})
    return source


@pytest.fixture
def sandbox(temp_dir: Path, monkeypatch) -> dict[str, Path]:
    """Point every well-known location into the temporary directory."""
    locations = {
        "documents": temp_dir / "Documents",
        "themes": temp_dir / "themes",
        "fonts": temp_dir / "Fonts",
    }
    monkeypatch.setenv("SHELLSTRAP_DOCUMENTS", str(locations["documents"]))
    monkeypatch.setenv("SHELLSTRAP_THEME_DIR", str(locations["themes"]))
    monkeypatch.setenv("SHELLSTRAP_FONT_DIR", str(locations["fonts"]))
    monkeypatch.delenv("SHELLSTRAP_ONEDRIVE", raising=False)
    monkeypatch.delenv("OneDrive", raising=False)
    monkeypatch.delenv("SHELLSTRAP_MANIFEST", raising=False)
    return locations


@pytest.fixture
def manifest() -> Manifest:
    return Manifest(
        profile_pack_url="https://example.com/pack.zip",
        font_release_api="https://api.github.com/repos/ryanoasis/nerd-fonts/releases/latest",
        font_download_base="https://example.com/fonts",
        buckets=["extras", "nerd-fonts"],
        apps=["git", "fzf", "neovim"],
        modules=["Terminal-Icons"],
        default_fonts=["CascadiaCode", "FiraCode"],
        theme_archive_name="themes.zip",
    )

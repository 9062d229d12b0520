"""Tests for archive extraction and skip/overwrite-with-backup placement."""

import shutil
from datetime import datetime
from pathlib import Path

import pytest

from shellstrap.deployer import (
    BackupDir,
    DeployAction,
    backup_dir_name,
    deploy,
    deploy_to_roots,
    deploy_tree,
    extract_archive,
    unwrap_single_dir,
)
from shellstrap.errors import DeployError

from .conftest import make_zip, snapshot

FIXED_NOW = datetime(2024, 5, 1, 9, 30, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


def backups_of(dest: Path) -> list[Path]:
    return sorted(p for p in dest.parent.iterdir() if p.name.startswith(f"{dest.name}Backup_"))


class TestDeployFreshMachine:
    """No existing profile files."""

    def test_every_file_copied(self, source_files, temp_dir, reporter):
        """Every source file is copied; nothing skipped or overwritten."""
        dest = temp_dir / "Documents" / "PowerShell"

        result = deploy(source_files, dest, overwrite=False, reporter=reporter)

        assert result.count(DeployAction.COPY) == 2
        assert result.count(DeployAction.SKIP) == 0
        assert result.count(DeployAction.OVRW) == 0
        assert (dest / "aliases.ps1").read_text() == "Set-Alias ll ls\n"

    def test_destination_created(self, source_files, temp_dir, reporter):
        """Missing destination directories are created recursively."""
        dest = temp_dir / "a" / "b" / "c"
        deploy(source_files, dest, reporter=reporter)
        assert dest.is_dir()

    def test_nested_archive_excluded(self, source_files, temp_dir, reporter):
        """Nested archives are left to their own procedure."""
        dest = temp_dir / "dest"
        deploy(source_files, dest, reporter=reporter)
        assert not (dest / "themes.zip").exists()

    def test_subdirectories_not_descended(self, source_files, temp_dir, reporter):
        """Only immediate files are placed."""
        (source_files / "sub").mkdir()
        (source_files / "sub" / "deep.ps1").write_text("deep")
        dest = temp_dir / "dest"

        deploy(source_files, dest, reporter=reporter)

        assert not (dest / "sub").exists()

    def test_reports_copy_lines(self, source_files, temp_dir, reporter, capsys):
        """Each placed file is reported with the COPY tag."""
        deploy(source_files, temp_dir / "dest", reporter=reporter)
        out = capsys.readouterr().out
        assert out.count("[COPY]") == 2

    def test_missing_source_raises(self, temp_dir, reporter):
        with pytest.raises(DeployError, match="Source directory not found"):
            deploy(temp_dir / "nope", temp_dir / "dest", reporter=reporter)


class TestDeployExistingFiles:
    """Existing profile files at the destination."""

    @pytest.fixture
    def populated(self, temp_dir):
        dest = temp_dir / "Documents" / "PowerShell"
        dest.mkdir(parents=True)
        (dest / "Microsoft.PowerShell_profile.ps1").write_text("# my old profile\n")
        (dest / "aliases.ps1").write_text("# my old aliases\n")
        (dest / "unrelated.txt").write_text("keep me")
        return dest

    def test_no_overwrite_skips_all(self, source_files, populated, reporter):
        """Every file is reported SKIP and the destination is unchanged."""
        before = snapshot(populated)

        result = deploy(source_files, populated, overwrite=False, reporter=reporter)

        assert result.count(DeployAction.SKIP) == 2
        assert result.count(DeployAction.COPY) == 0
        assert snapshot(populated) == before
        assert result.backup_dir is None
        assert backups_of(populated) == []

    def test_overwrite_replaces_and_backs_up(self, source_files, populated, reporter):
        """Every file is OVRW and originals land in the backup directory."""
        result = deploy(
            source_files, populated, overwrite=True, reporter=reporter, clock=fixed_clock
        )

        assert result.count(DeployAction.OVRW) == 2
        assert (populated / "aliases.ps1").read_text() == "Set-Alias ll ls\n"
        assert result.backup_dir == populated.with_name("PowerShellBackup_20240501_093000")
        assert (result.backup_dir / "aliases.ps1").read_text() == "# my old aliases\n"
        assert (
            result.backup_dir / "Microsoft.PowerShell_profile.ps1"
        ).read_text() == "# my old profile\n"

    def test_overwrite_leaves_unrelated_files(self, source_files, populated, reporter):
        deploy(source_files, populated, overwrite=True, reporter=reporter)
        assert (populated / "unrelated.txt").read_text() == "keep me"

    def test_original_bytes_preserved(self, source_files, populated, reporter):
        """Every pre-existing file has a byte-identical copy under the backup."""
        before = snapshot(populated)

        result = deploy(source_files, populated, overwrite=True, reporter=reporter)

        backed_up = snapshot(result.backup_dir)
        for name, content in backed_up.items():
            assert before[name] == content
        assert set(backed_up) == {"aliases.ps1", "Microsoft.PowerShell_profile.ps1"}

    def test_single_backup_dir_per_call(self, source_files, populated, reporter):
        deploy(source_files, populated, overwrite=True, reporter=reporter)
        assert len(backups_of(populated)) == 1


class TestIdempotence:
    def test_second_run_without_overwrite_is_noop(self, source_files, temp_dir, reporter):
        """Running twice leaves identical contents and no backups."""
        dest = temp_dir / "dest"
        deploy(source_files, dest, overwrite=False, reporter=reporter)
        first = snapshot(dest)

        result = deploy(source_files, dest, overwrite=False, reporter=reporter)

        assert snapshot(dest) == first
        assert result.count(DeployAction.SKIP) == 2
        assert backups_of(dest) == []


class TestBackupDir:
    def test_name_is_sibling_with_timestamp(self):
        path = backup_dir_name(Path("/docs/PowerShell"), FIXED_NOW)
        assert path == Path("/docs/PowerShellBackup_20240501_093000")

    def test_lazy_when_no_collision(self, source_files, temp_dir, reporter):
        """overwrite=True without collisions creates no backup directory."""
        dest = temp_dir / "dest"

        result = deploy(source_files, dest, overwrite=True, reporter=reporter)

        assert result.count(DeployAction.COPY) == 2
        assert result.backup_dir is None
        assert backups_of(dest) == []

    def test_not_created_until_ensure(self, temp_dir):
        backup = BackupDir(temp_dir / "dest", clock=fixed_clock)
        assert backup.path is None
        assert list(temp_dir.iterdir()) == []

    def test_ensure_is_idempotent(self, temp_dir):
        backup = BackupDir(temp_dir / "dest", clock=fixed_clock)
        assert backup.ensure() == backup.ensure()

    def test_same_second_collision_gets_suffix(self, temp_dir):
        """Two deploys within the same second never share a backup directory."""
        dest = temp_dir / "dest"
        first = BackupDir(dest, clock=fixed_clock).ensure()
        second = BackupDir(dest, clock=fixed_clock).ensure()
        third = BackupDir(dest, clock=fixed_clock).ensure()

        assert first.name == "destBackup_20240501_093000"
        assert second.name == "destBackup_20240501_093000_2"
        assert third.name == "destBackup_20240501_093000_3"

    def test_repeated_overwrite_deploys_keep_separate_backups(
        self, source_files, temp_dir, reporter
    ):
        dest = temp_dir / "dest"
        deploy(source_files, dest, reporter=reporter)
        first = deploy(source_files, dest, overwrite=True, reporter=reporter, clock=fixed_clock)
        second = deploy(source_files, dest, overwrite=True, reporter=reporter, clock=fixed_clock)

        assert first.backup_dir != second.backup_dir
        assert len(backups_of(dest)) == 2


class TestDeployTree:
    def test_preserves_relative_subpaths(self, temp_dir, reporter):
        source = temp_dir / "themes"
        (source / "extra").mkdir(parents=True)
        (source / "agnoster.omp.json").write_text("{}")
        (source / "extra" / "nested.omp.json").write_text("{}")
        dest = temp_dir / "out"

        result = deploy_tree(source, dest, reporter=reporter)

        assert (dest / "agnoster.omp.json").is_file()
        assert (dest / "extra" / "nested.omp.json").is_file()
        assert result.count(DeployAction.COPY) == 2

    def test_nested_overwrite_backup_keeps_subpath(self, temp_dir, reporter):
        source = temp_dir / "themes"
        (source / "extra").mkdir(parents=True)
        (source / "extra" / "nested.omp.json").write_text("new")
        dest = temp_dir / "out"
        (dest / "extra").mkdir(parents=True)
        (dest / "extra" / "nested.omp.json").write_text("old")

        result = deploy_tree(source, dest, overwrite=True, reporter=reporter)

        assert (dest / "extra" / "nested.omp.json").read_text() == "new"
        assert (result.backup_dir / "extra" / "nested.omp.json").read_text() == "old"


class TestDeployToRoots:
    def test_each_root_gets_files(self, source_files, temp_dir, reporter):
        roots = [temp_dir / "PowerShell", temp_dir / "WindowsPowerShell"]

        deployments = deploy_to_roots(source_files, roots, reporter=reporter)

        assert all(d.succeeded for d in deployments)
        for root in roots:
            assert (root / "aliases.ps1").is_file()

    def test_failure_on_first_root_does_not_stop_second(
        self, source_files, temp_dir, reporter, mocker
    ):
        """A failure writing to one root still attempts the next."""
        blocked = temp_dir / "blocked"
        good = temp_dir / "good"
        real_copy = shutil.copy2

        def copy2(src, dst, *args, **kwargs):
            if Path(dst).parent == blocked:
                raise PermissionError(13, "Permission denied", str(dst))
            return real_copy(src, dst, *args, **kwargs)

        mocker.patch("shellstrap.deployer.shutil.copy2", side_effect=copy2)

        deployments = deploy_to_roots(source_files, [blocked, good], reporter=reporter)

        assert not deployments[0].succeeded
        assert "Permission denied" in deployments[0].error
        assert deployments[1].succeeded
        assert (good / "aliases.ps1").is_file()

    def test_file_in_place_of_root_is_recorded(self, source_files, temp_dir, reporter):
        not_a_dir = temp_dir / "file"
        not_a_dir.write_text("x")
        good = temp_dir / "good"

        deployments = deploy_to_roots(source_files, [not_a_dir, good], reporter=reporter)

        assert [d.succeeded for d in deployments] == [False, True]

    def test_each_root_has_own_backup(self, source_files, temp_dir, reporter):
        roots = [temp_dir / "A", temp_dir / "B"]
        deploy_to_roots(source_files, roots, reporter=reporter)

        deployments = deploy_to_roots(
            source_files, roots, overwrite=True, reporter=reporter, clock=fixed_clock
        )

        assert deployments[0].result.backup_dir.name == "ABackup_20240501_093000"
        assert deployments[1].result.backup_dir.name == "BBackup_20240501_093000"


class TestExtractArchive:
    def test_unwraps_single_top_level_dir(self, temp_dir):
        archive = make_zip(
            temp_dir / "pack.zip",
            {"pack-main/profile.ps1": b"x", "pack-main/themes.zip": b"y"},
        )

        root = extract_archive(archive, temp_dir / "out")

        assert root.name == "pack-main"
        assert (root / "profile.ps1").read_bytes() == b"x"

    def test_flat_archive_root(self, temp_dir):
        archive = make_zip(temp_dir / "f.zip", {"a.ttf": b"1", "b.ttf": b"2"})
        root = extract_archive(archive, temp_dir / "out")
        assert root == (temp_dir / "out").resolve()

    def test_rejects_path_traversal(self, temp_dir):
        archive = make_zip(temp_dir / "evil.zip", {"../escape.txt": b"x"})
        with pytest.raises(DeployError, match="escapes"):
            extract_archive(archive, temp_dir / "out")
        assert not (temp_dir / "escape.txt").exists()

    def test_corrupt_archive(self, temp_dir):
        bad = temp_dir / "bad.zip"
        bad.write_bytes(b"not a zip")
        with pytest.raises(DeployError, match="Not a valid zip"):
            extract_archive(bad, temp_dir / "out")

    def test_unwrap_stops_at_files(self, temp_dir):
        (temp_dir / "a" / "b").mkdir(parents=True)
        (temp_dir / "a" / "b" / "f").write_text("")
        assert unwrap_single_dir(temp_dir) == temp_dir / "a" / "b"

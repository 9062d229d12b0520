"""Archive extraction and skip/overwrite-with-backup file placement.

Placement rules for every file, whatever the resource:

- no file of that name at the destination: copy it (COPY)
- one exists and overwrite is off: leave it untouched (SKIP)
- one exists and overwrite is on: copy the existing file into the backup
  directory, then replace it (OVRW)

The backup directory is a sibling of the destination named
``<dest>Backup_<YYYYmmdd_HHMMSS>``. It is created on the first overwrite of
a deploy call and reused for the rest of that call; a call that overwrites
nothing creates no backup directory.
"""

import fnmatch
import logging
import shutil
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from shellstrap.errors import DeployError
from shellstrap.reporter import Level, Reporter

_logging = logging.getLogger(__name__)

BACKUP_INFIX = "Backup_"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
NESTED_ARCHIVE_PATTERNS = ("*.zip",)

Clock = Callable[[], datetime]


class DeployAction(Enum):
    COPY = "COPY"
    SKIP = "SKIP"
    OVRW = "OVRW"


@dataclass(frozen=True)
class DeploymentTarget:
    source_dir: Path
    dest_dir: Path
    overwrite: bool = False


@dataclass
class DeployResult:
    dest_dir: Path
    entries: list[tuple[DeployAction, Path]] = field(default_factory=list)
    backup_dir: Path | None = None

    def count(self, action: DeployAction) -> int:
        return sum(1 for a, _ in self.entries if a == action)


@dataclass
class RootDeployment:
    root: Path
    result: DeployResult | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def backup_dir_name(dest_dir: Path, now: datetime) -> Path:
    """Return the backup directory for dest_dir at a given time.

    Examples:
        >>> backup_dir_name(Path("/docs/PowerShell"), datetime(2024, 5, 1, 9, 30, 0)).name
        'PowerShellBackup_20240501_093000'
    """
    return dest_dir.with_name(f"{dest_dir.name}{BACKUP_INFIX}{now.strftime(TIMESTAMP_FORMAT)}")


class BackupDir:
    """Backup directory bound to one deploy call, created on first use."""

    def __init__(self, dest_dir: Path, clock: Clock = datetime.now):
        self._dest_dir = dest_dir
        self._clock = clock
        self.path: Path | None = None

    def ensure(self) -> Path:
        if self.path is not None:
            return self.path
        base = backup_dir_name(self._dest_dir, self._clock())
        candidate = base
        suffix = 2
        while True:
            try:
                candidate.mkdir(parents=True)
                break
            except FileExistsError:
                # Another deploy in the same second already owns this name
                candidate = base.with_name(f"{base.name}_{suffix}")
                suffix += 1
        _logging.info(f"created backup directory {candidate}")
        self.path = candidate
        return candidate

    def preserve(self, existing: Path, relative: Path) -> Path:
        target = self.ensure() / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(existing, target)
        return target


def unwrap_single_dir(root: Path) -> Path:
    """Descend through a lone top-level directory, as source archives wrap their content."""
    current = root
    while True:
        children = list(current.iterdir())
        if len(children) == 1 and children[0].is_dir():
            current = children[0]
        else:
            return current


def extract_archive(archive: Path, dest: Path) -> Path:
    """Extract a zip archive into dest and return the content root.

    Raises:
        DeployError: If the archive is corrupt or a member escapes dest
    """
    dest.mkdir(parents=True, exist_ok=True)
    root = dest.resolve()
    try:
        with zipfile.ZipFile(archive) as zf:
            for member in zf.namelist():
                target = (root / member).resolve()
                if target != root and root not in target.parents:
                    raise DeployError(f"Archive member escapes extraction directory: {member}")
            zf.extractall(root)
    except zipfile.BadZipFile as e:
        raise DeployError(f"Not a valid zip archive: {archive}: {e}") from e
    return unwrap_single_dir(root)


def _is_excluded(name: str, exclude: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(name.lower(), pattern.lower()) for pattern in exclude)


def _place(
    source: Path,
    dest_dir: Path,
    relative: Path,
    overwrite: bool,
    backup: BackupDir,
) -> DeployAction:
    target = dest_dir / relative
    if not target.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, target)
        return DeployAction.COPY
    if not overwrite:
        return DeployAction.SKIP
    backup.preserve(target, relative)
    shutil.copy2(source, target)
    return DeployAction.OVRW


def _deploy_files(
    files: list[tuple[Path, Path]],
    dest_dir: Path,
    overwrite: bool,
    reporter: Reporter | None,
    clock: Clock,
) -> DeployResult:
    reporter = reporter or Reporter()
    dest_dir.mkdir(parents=True, exist_ok=True)
    backup = BackupDir(dest_dir, clock)
    result = DeployResult(dest_dir=dest_dir)

    for source, relative in files:
        action = _place(source, dest_dir, relative, overwrite, backup)
        result.entries.append((action, relative))
        reporter.status(Level[action.value], str(dest_dir / relative))

    result.backup_dir = backup.path
    if backup.path is not None:
        reporter.info(f"Originals saved to {backup.path}")
    return result


def deploy(
    source_dir: Path,
    dest_dir: Path,
    overwrite: bool = False,
    exclude: Iterable[str] = NESTED_ARCHIVE_PATTERNS,
    reporter: Reporter | None = None,
    clock: Clock = datetime.now,
) -> DeployResult:
    """Place the immediate files of source_dir into dest_dir.

    Subdirectories are not descended into, and files matching an exclude
    pattern (nested archives by default) are left for their own procedure.
    """
    if not source_dir.is_dir():
        raise DeployError(f"Source directory not found: {source_dir}")
    exclude = tuple(exclude)
    files = [
        (path, Path(path.name))
        for path in sorted(source_dir.iterdir())
        if path.is_file() and not _is_excluded(path.name, exclude)
    ]
    return _deploy_files(files, dest_dir, overwrite, reporter, clock)


def deploy_tree(
    source_dir: Path,
    dest_dir: Path,
    overwrite: bool = False,
    reporter: Reporter | None = None,
    clock: Clock = datetime.now,
) -> DeployResult:
    """Place every file under source_dir into dest_dir, keeping relative subpaths."""
    if not source_dir.is_dir():
        raise DeployError(f"Source directory not found: {source_dir}")
    files = [
        (path, path.relative_to(source_dir))
        for path in sorted(source_dir.rglob("*"))
        if path.is_file()
    ]
    return _deploy_files(files, dest_dir, overwrite, reporter, clock)


def deploy_to_roots(
    source_dir: Path,
    roots: Iterable[Path],
    overwrite: bool = False,
    exclude: Iterable[str] = NESTED_ARCHIVE_PATTERNS,
    reporter: Reporter | None = None,
    clock: Clock = datetime.now,
) -> list[RootDeployment]:
    """Deploy the same content to each root independently.

    A failure on one root is recorded and reported; the remaining roots are
    still attempted, each with its own backup directory.
    """
    reporter = reporter or Reporter()
    exclude = tuple(exclude)
    deployments = []
    targets = [DeploymentTarget(source_dir, root, overwrite) for root in roots]
    for target in targets:
        reporter.info(f"Deploying to {target.dest_dir}")
        try:
            result = deploy(
                target.source_dir, target.dest_dir, target.overwrite, exclude, reporter, clock
            )
            deployments.append(RootDeployment(root=target.dest_dir, result=result))
        except (OSError, DeployError) as e:
            reporter.fail(f"Deployment to {target.dest_dir} failed: {e}")
            deployments.append(RootDeployment(root=target.dest_dir, error=str(e)))
    return deployments


__all__ = [
    "DeployAction",
    "DeploymentTarget",
    "DeployResult",
    "RootDeployment",
    "BackupDir",
    "backup_dir_name",
    "unwrap_single_dir",
    "extract_archive",
    "deploy",
    "deploy_tree",
    "deploy_to_roots",
]

"""Presence checks against the authoritative tool for each resource kind.

Every check answers a plain bool and has no side effects. When the query
itself cannot run (tool missing, timeout, unparsable output) the resource is
treated as absent; the install attempt that follows is what reports the
real problem.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Iterable

from shellstrap.clients import OH_MY_POSH_ID, PowerShellClient, ScoopClient, WingetClient

_logging = logging.getLogger(__name__)

_TABLE_HEADERS = {"name", "----"}


def _extract_name(item: object) -> str | None:
    match item:
        case None:
            return None
        case str():
            return item
        case {"Name": str(name)} | {"name": str(name)}:
            return name
        case object(name=str(name)):
            return name
        case _:
            return str(item)


def normalize_names(items: Iterable[object]) -> set[str]:
    """Collapse heterogeneous listing output into a set of names.

    Each entry is tried in order: a plain string, a record exposing a
    ``Name``/``name`` field, and finally its string form.

    Examples:
        >>> sorted(normalize_names(["main", {"Name": "extras"}, " versions "]))
        ['extras', 'main', 'versions']
    """
    names = set()
    for item in items:
        name = _extract_name(item)
        if name is not None and name.strip():
            names.add(name.strip())
    return names


def _parse_listing(output: str) -> list[object]:
    if not output.strip():
        return []
    try:
        parsed = json.loads(output)
    except json.JSONDecodeError:
        # Plain table or one name per line
        names = []
        for line in output.splitlines():
            token = line.strip().split(maxsplit=1)[0] if line.strip() else ""
            if token and token.lower() not in _TABLE_HEADERS:
                names.append(token)
        return names
    # ConvertTo-Json unwraps single-element arrays
    if isinstance(parsed, list):
        return parsed
    return [parsed]


def installed_buckets(scoop: ScoopClient) -> set[str]:
    """Return the set of bucket names scoop reports, empty on any failure."""
    try:
        result = scoop.list_buckets_json()
    except OSError as e:
        _logging.debug(f"bucket listing failed: {e}")
        return set()
    if not result.succeeded:
        _logging.debug(f"bucket listing exited with {result.returncode}: {result.output}")
        return set()
    return normalize_names(_parse_listing(result.stdout))


def bucket_present(scoop: ScoopClient, name: str) -> bool:
    return name in installed_buckets(scoop)


def app_present(scoop: ScoopClient, name: str) -> bool:
    """An app is present when ``scoop which`` resolves it."""
    if not scoop.is_available():
        return False
    try:
        return scoop.which(name).succeeded
    except OSError:
        return False


def module_present(powershell: PowerShellClient, name: str) -> bool:
    if not powershell.is_available():
        return False
    try:
        return powershell.module_available(name).succeeded
    except OSError:
        return False


def font_present(font_dir: Path, file_name: str) -> bool:
    return (font_dir / file_name).is_file()


def oh_my_posh_present(winget: WingetClient) -> bool:
    if winget.is_available():
        try:
            if winget.list_package(OH_MY_POSH_ID).succeeded:
                return True
        except OSError:
            pass
    return shutil.which("oh-my-posh") is not None


__all__ = [
    "normalize_names",
    "installed_buckets",
    "bucket_present",
    "app_present",
    "module_present",
    "font_present",
    "oh_my_posh_present",
]

"""HTTPS retrieval with a resumable transport and a direct-client fallback.

Transports are tried in order. The resumable one (BITS on Windows, curl
elsewhere) is used when its binary exists; any failure of it falls through
to a plain requests download. There is no retry and no caching: a failure of
the last transport is raised to the caller.
"""

import logging
import os
import shutil
import ssl
from pathlib import Path
from typing import Any, Protocol

import requests
from requests.adapters import HTTPAdapter

from shellstrap.clients import PowerShellClient, ps_quote
from shellstrap.errors import FetchError
from shellstrap.execution import INSTALL_TIMEOUT, run_command
from shellstrap.paths import is_windows

_logging = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
USER_AGENT = "shellstrap"


class TLS12Adapter(HTTPAdapter):
    """HTTPS adapter that refuses anything older than TLS 1.2."""

    def init_poolmanager(self, *args, **kwargs):
        context = ssl.create_default_context()
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        kwargs["ssl_context"] = context
        return super().init_poolmanager(*args, **kwargs)


def create_session() -> requests.Session:
    session = requests.Session()
    session.mount("https://", TLS12Adapter())
    session.headers["User-Agent"] = USER_AGENT
    return session


class Transport(Protocol):
    name: str

    def is_available(self) -> bool:
        ...

    def download(self, url: str, dest: Path) -> None:
        ...


class BitsTransport:
    """Background Intelligent Transfer Service through PowerShell."""

    name = "bits"

    def __init__(self, powershell: PowerShellClient | None = None):
        self._powershell = powershell or PowerShellClient()

    def is_available(self) -> bool:
        return is_windows() and self._powershell.is_available()

    def download(self, url: str, dest: Path) -> None:
        script = (
            "[Net.ServicePointManager]::SecurityProtocol = "
            "[Net.SecurityProtocolType]::Tls12 -bor [Net.SecurityProtocolType]::Tls13; "
            f"Start-BitsTransfer -Source {ps_quote(url)} -Destination {ps_quote(str(dest))} "
            "-ErrorAction Stop"
        )
        result = self._powershell.run(script, timeout=None)
        if not result.succeeded:
            raise FetchError(f"BITS transfer failed ({result.returncode}): {result.output}")


class CurlTransport:
    """curl with resume support (-C -)."""

    name = "curl"

    def __init__(self, runner=run_command):
        self._run = runner

    def is_available(self) -> bool:
        return shutil.which("curl") is not None

    def download(self, url: str, dest: Path) -> None:
        result = self._run(
            ["curl", "--tlsv1.2", "--proto", "=https", "-fsSL", "-C", "-", "-o", str(dest), url],
            timeout=INSTALL_TIMEOUT,
        )
        if not result.succeeded:
            raise FetchError(f"curl failed ({result.returncode}): {result.output}")


class RequestsTransport:
    """Direct streaming GET with requests."""

    name = "requests"

    def __init__(self, session: requests.Session | None = None):
        self._session = session

    def is_available(self) -> bool:
        return True

    def download(self, url: str, dest: Path) -> None:
        session = self._session or create_session()
        with session.get(url, stream=True) as response:
            response.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)


def default_transports() -> list[Transport]:
    resumable: Transport = BitsTransport() if is_windows() else CurlTransport()
    return [resumable, RequestsTransport()]


def fetch(url: str, dest: Path, transports: list[Transport] | None = None) -> Path:
    """Download url to dest.

    Raises:
        FetchError: If the URL is not HTTPS or every available transport failed
    """
    if not url.startswith("https://"):
        raise FetchError(f"Refusing non-HTTPS URL: {url}")

    dest.parent.mkdir(parents=True, exist_ok=True)
    errors = []
    for transport in transports if transports is not None else default_transports():
        if not transport.is_available():
            _logging.debug(f"transport {transport.name} unavailable, skipping")
            continue
        _logging.debug(f"fetching {url} via {transport.name}")
        try:
            transport.download(url, dest)
            return dest
        except (FetchError, OSError, requests.RequestException) as e:
            _logging.warning(f"{transport.name} failed for {url}: {e}")
            errors.append(f"{transport.name}: {e}")

    if not errors:
        raise FetchError(f"No transport available to fetch {url}")
    raise FetchError(f"Failed to fetch {url} ({'; '.join(errors)})")


def fetch_json(url: str, session: requests.Session | None = None) -> Any:
    """GET a JSON document, adding a GitHub bearer token when GITHUB_TOKEN is set.

    Raises:
        FetchError: On transport, HTTP status or decoding failure
    """
    session = session or create_session()
    headers = {"Accept": "application/vnd.github+json"}
    token = os.environ.get("GITHUB_TOKEN")
    if token and "api.github.com" in url:
        headers["Authorization"] = f"Bearer {token}"
    try:
        response = session.get(url, headers=headers)
        response.raise_for_status()
        return response.json()
    except requests.RequestException as e:
        raise FetchError(f"Failed to fetch {url}: {e}") from e
    except ValueError as e:
        raise FetchError(f"Invalid JSON from {url}: {e}") from e


__all__ = [
    "BitsTransport",
    "CurlTransport",
    "RequestsTransport",
    "TLS12Adapter",
    "create_session",
    "default_transports",
    "fetch",
    "fetch_json",
]

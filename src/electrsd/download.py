#
# src/electrsd/download.py
#
"""
Fetches prebuilt electrs release archives, verifies and unpacks them.

This sits entirely in front of the executable resolver: it only produces a
path on disk, which is then validated like any other candidate.
"""

import hashlib
import io
import os
import zipfile
from pathlib import Path

import httpx
import structlog

from electrsd.exceptions import DownloadError
from electrsd.versions import ElectrsVersion, electrs_name

log = structlog.get_logger("download")

# --- Constants ---
DEFAULT_ENDPOINT = "https://github.com/RCasatta/electrsd/releases/download/electrs_releases"
DEFAULT_TIMEOUT = 120.0  # seconds
ENDPOINT_ENV = "ELECTRSD_DOWNLOAD_ENDPOINT"
SKIP_DOWNLOAD_ENV = "ELECTRSD_SKIP_DOWNLOAD"
VERSION_ENV = "ELECTRSD_VERSION"
CACHE_DIR_ENV = "ELECTRSD_CACHE_DIR"
SHA256_FILE_ENV = "ELECTRSD_SHA256_FILE"


def cache_dir() -> Path:
    if os.environ.get(CACHE_DIR_ENV):
        return Path(os.environ[CACHE_DIR_ENV])
    return Path.home() / ".cache" / "electrsd"


def exe_destination(version: ElectrsVersion, root: Path | None = None) -> Path:
    return (root or cache_dir()) / "electrs" / electrs_name(version) / "electrs"


def expected_sha256(filename: str, manifest: Path) -> str:
    """Looks up `filename` in a `<hex>  <filename>` manifest (sha256sum format)."""
    try:
        lines = manifest.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise DownloadError(f"Cannot read checksum manifest '{manifest}'", details=e) from e
    for line in lines:
        tokens = line.split("  ")
        if len(tokens) == 2 and tokens[1].strip() == filename:
            return tokens[0].strip().lower()
    raise DownloadError(f"No checksum for '{filename}' in '{manifest}'")


def download(
    version: ElectrsVersion,
    endpoint: str | None = None,
    root: Path | None = None,
    sha256_file: Path | None = None,
    client: httpx.Client | None = None,
) -> Path:
    """
    Makes sure the electrs binary for `version` is present in the cache.

    Args:
        version: Release to fetch.
        endpoint: Base URL, defaults to `ELECTRSD_DOWNLOAD_ENDPOINT` or the
            upstream release page.
        root: Cache root, defaults to `ELECTRSD_CACHE_DIR` or ~/.cache/electrsd.
        sha256_file: Checksum manifest, defaults to `ELECTRSD_SHA256_FILE`.
            Archives without a matching entry are never installed.
        client: Optional httpx client, mostly for tests.

    Returns:
        Path of the executable.
    """
    destination = exe_destination(version, root)
    if destination.exists():
        log.debug("Executable already downloaded", path=str(destination))
        return destination

    archive_name = f"{electrs_name(version)}.zip"
    manifest = sha256_file or (Path(os.environ[SHA256_FILE_ENV]) if os.environ.get(SHA256_FILE_ENV) else None)
    if manifest is None:
        raise DownloadError(
            f"No checksum manifest configured for '{archive_name}'. "
            f"Set {SHA256_FILE_ENV} or pass sha256_file."
        )
    expected = expected_sha256(archive_name, manifest)

    base = (endpoint or os.environ.get(ENDPOINT_ENV) or DEFAULT_ENDPOINT).rstrip("/")
    url = f"{base}/{archive_name}"
    dl_log = log.bind(url=url, version=version.feature_name)
    dl_log.info("Downloading electrs release")

    own_client = client is None
    http = client or httpx.Client(timeout=DEFAULT_TIMEOUT, follow_redirects=True)
    try:
        response = http.get(url)
        response.raise_for_status()
        payload = response.content
    except httpx.HTTPError as e:
        raise DownloadError(f"Download of '{url}' failed", details=e) from e
    finally:
        if own_client:
            http.close()

    actual = hashlib.sha256(payload).hexdigest()
    if actual != expected:
        raise DownloadError(f"Checksum mismatch for '{archive_name}': expected {expected}, got {actual}")

    try:
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            members = archive.infolist()
            if not members:
                raise DownloadError(f"Archive '{archive_name}' is empty")
            data = archive.read(members[0])
    except zipfile.BadZipFile as e:
        raise DownloadError(f"Archive '{archive_name}' is not a valid zip file", details=e) from e

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        partial = destination.with_suffix(".part")
        partial.write_bytes(data)
        partial.chmod(0o755)
        partial.replace(destination)
    except OSError as e:
        raise DownloadError(f"Could not install executable to '{destination}'", details=e) from e

    dl_log.info("electrs release installed", path=str(destination), sha256=actual)
    return destination


def get_path(version: "ElectrsVersion | str", endpoint: str | None = None) -> Path:
    """Collaborator entry point: the on-disk path for `version`, downloading if needed."""
    return download(ElectrsVersion.parse(version), endpoint=endpoint)


def downloaded_exe_path() -> Path | None:
    """
    The cached executable for `ELECTRSD_VERSION`, unless `ELECTRSD_SKIP_DOWNLOAD` is set.

    Nothing is fetched here; use `download` or `electrsd download` first.
    """
    if os.environ.get(SKIP_DOWNLOAD_ENV) is not None:
        return None
    tag = os.environ.get(VERSION_ENV)
    if not tag:
        return None
    return exe_destination(ElectrsVersion.parse(tag))


# 🔼⚙️

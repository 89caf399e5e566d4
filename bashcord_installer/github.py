"""Fetching release data from GitHub and downloading the mod's asar."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from .constants import RELEASE_URL, USER_AGENT
from .discovery import fix_ownership
from .log import log

ASSET_NAME = "desktop.asar"

_HASH_RE = re.compile(rb"// Equicord (\w+)")
_TIMEOUT = 60
_CHUNK = 64 * 1024


class DownloadError(RuntimeError):
    """Downloading the latest build failed."""


@dataclass(frozen=True)
class ReleaseAsset:
    """A downloadable file attached to a release."""

    name: str
    download_url: str


@dataclass(frozen=True)
class GithubRelease:
    """The parts of a GitHub release the installer uses."""

    name: str = ""
    tag_name: str = ""
    assets: tuple[ReleaseAsset, ...] = field(default_factory=tuple)

    @classmethod
    def from_json(cls, data: Any) -> GithubRelease:
        """Build a release from the decoded JSON of the GitHub API."""
        if not isinstance(data, Mapping):
            raise ValueError("GitHub release JSON must be an object")
        assets = tuple(
            ReleaseAsset(
                name=str(asset.get("name", "")),
                download_url=str(asset.get("browser_download_url", "")),
            )
            for asset in data.get("assets") or ()
            if isinstance(asset, Mapping)
        )
        return cls(
            name=str(data.get("name") or ""),
            tag_name=str(data.get("tag_name") or ""),
            assets=assets,
        )


def fetch_release(url: str, session: requests.Session | None = None) -> GithubRelease:
    """GET ``url`` and decode it as a GitHub release."""
    log.debug("Fetching", url)
    http = session if session is not None else requests
    try:
        res = http.get(url, headers={"User-Agent": USER_AGENT}, timeout=_TIMEOUT)
    except requests.RequestException as err:
        log.error("Failed to send Request", err)
        raise
    with res:
        try:
            return GithubRelease.from_json(res.json())
        except ValueError as err:
            log.error("Failed to decode GitHub JSON Response", err)
            raise


def latest_hash_from_name(name: str) -> str:
    """The build hash is the last space-separated word of the release name."""
    return name[name.rfind(" ") + 1:]


def read_installed_hash(path: str | os.PathLike) -> str | None:
    """Read the build hash from an installed asar file or dev directory, if any."""
    path = os.fspath(path)
    if not os.path.exists(path):
        return None
    if os.path.isdir(path):
        path = os.path.join(path, "main.js")
    try:
        with open(path, "rb") as fh:
            content = fh.read()
    except OSError:
        return None

    log.debug("Found existing Equicord Install. Checking for hash...")
    match = _HASH_RE.search(content)
    if match is None:
        log.debug("Didn't find hash")
        return None
    installed = match.group(1).decode("ascii")
    log.debug("Existing hash is", installed)
    return installed


class BuildManager:
    """Tracks the installed and latest mod builds and installs new ones."""

    def __init__(self, equicord_file: str | os.PathLike, dev_install: bool = False) -> None:
        self.equicord_file = os.fspath(equicord_file)
        self.dev_install = dev_install
        self.release: GithubRelease | None = None
        self.error: BaseException | None = None
        self.latest_hash = "Unknown"
        self.installed_hash = "None"
        log.debug("Is Dev Install: ", dev_install)
        if not dev_install:
            self.installed_hash = read_installed_hash(self.equicord_file) or "None"

    def fetch_latest(self) -> bool:
        """Fetch the latest release; return True on success and record any error."""
        if self.dev_install:
            return True
        try:
            release = fetch_release(RELEASE_URL)
        except (requests.RequestException, ValueError) as err:
            self.error = err
            return False
        self.error = None
        self.release = release
        self.latest_hash = latest_hash_from_name(release.name)
        log.debug("Finished fetching GitHub Data")
        log.debug(
            "Latest hash is",
            self.latest_hash,
            "Local Install is",
            "up to date!" if self.latest_hash == self.installed_hash else "outdated!",
        )
        return True

    def install_latest(self) -> None:
        """Download the latest desktop.asar over the installed one."""
        log.debug("Installing latest builds...")
        if self.dev_install:
            log.debug("Skipping due to dev install")
            return

        assets = self.release.assets if self.release is not None else ()
        download_url = next((a.download_url for a in assets if a.name == ASSET_NAME), "")
        if not download_url:
            err = DownloadError("Didn't find desktop.asar download link")
            log.error(err)
            raise err

        log.debug("Downloading desktop.asar")
        try:
            res = requests.get(download_url, stream=True, timeout=_TIMEOUT)
        except requests.RequestException as err:
            log.error("Failed to download desktop.asar:", err)
            raise DownloadError(str(err)) from err

        with res:
            if res.status_code >= 300:
                err = DownloadError(f"{res.status_code} {res.reason}")
                log.error("Failed to download desktop.asar:", err)
                raise err
            try:
                out = open(self.equicord_file, "wb")
            except OSError as err:
                log.error("Failed to create", self.equicord_file + ":", err)
                raise
            read = 0
            with out:
                try:
                    for chunk in res.iter_content(_CHUNK):
                        out.write(chunk)
                        read += len(chunk)
                except requests.RequestException as err:
                    log.error("Failed to download to", self.equicord_file + ":", err)
                    raise DownloadError(str(err)) from err
            content_length = res.headers.get("Content-Length", "")

        if str(read) != content_length:
            err = DownloadError(
                f"Unexpected end of input. Content-Length was {content_length}, "
                f"but I only read {read}"
            )
            log.error(str(err))
            raise err

        try:
            fix_ownership(self.equicord_file)
        except (OSError, KeyError, RuntimeError):
            pass

        self.installed_hash = self.latest_hash
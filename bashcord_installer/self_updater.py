"""Checking for and applying updates to the installer itself."""

from __future__ import annotations

import contextlib
import os
import subprocess
import sys
import tempfile
import time
from dataclasses import dataclass, field

import requests

from .constants import (
    INSTALLER_RELEASE_URL,
    INSTALLER_TAG,
    UI_TYPE,
    VERSION_UNKNOWN,
    UiType,
)
from .github import fetch_release
from .log import log

_BASE_URL = "https://github.com/Equicord/Equilotl/releases/latest/download/"
_TIMEOUT = 60
_CHUNK = 64 * 1024


class SelfUpdateError(RuntimeError):
    """The installer could not update or restart itself."""


def _platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def _own_executable() -> str:
    if getattr(sys, "frozen", False):
        return sys.executable
    return os.path.abspath(sys.argv[0])


def installer_download_link(platform: str, ui_type: UiType) -> str:
    """Download URL of the latest installer for ``platform``, or "" if there is none."""
    if platform == "windows":
        return _BASE_URL + ("EquilotlCli.exe" if ui_type == UiType.CLI else "Equilotl.exe")
    if platform == "darwin":
        return _BASE_URL + "Equilotl.MacOS.zip"
    if platform == "linux":
        return _BASE_URL + "EquilotlCli-linux"
    return ""


def can_update_self(is_outdated: bool, platform: str) -> bool:
    """Self-updating works when outdated, except on macOS."""
    return is_outdated and platform != "darwin"


def delete_old_executable(exe_path: str | None = None, attempts: int = 10) -> bool:
    """Remove the ``.old`` executable left by an update, retrying once a second."""
    old = (exe_path or _own_executable()) + ".old"
    for attempt in range(attempts):
        try:
            os.remove(old)
        except FileNotFoundError:
            return True
        except OSError as err:
            log.warn("Failed to remove old executable. Retrying in 1 second.", err)
            if attempt + 1 < attempts:
                time.sleep(1)
        else:
            return True
    return False


def relaunch_self() -> None:
    """Start a fresh copy of the installer with the same arguments and exit."""
    if getattr(sys, "frozen", False):
        argv = [sys.executable, *sys.argv[1:]]
    else:
        argv = [sys.executable, *sys.argv]
    log.debug("Restarting self with exe", argv[0], "and args", argv[1:])
    try:
        subprocess.Popen(argv, stdin=sys.stdin, stdout=sys.stdout, stderr=sys.stderr)
    except OSError as err:
        raise SelfUpdateError(f"Failed to start new process: {err}") from err
    sys.exit(0)


@dataclass
class SelfUpdater:
    """Knows the running installer's version and can replace its executable."""

    tag: str = INSTALLER_TAG
    ui_type: UiType = UI_TYPE
    platform: str = field(default_factory=_platform)
    exe_path: str | None = None
    is_outdated: bool = False

    def check(self) -> bool:
        """Compare with the latest installer release; return True if the check succeeded."""
        if self.tag == VERSION_UNKNOWN:
            log.debug("Disabling self updater as this is not a release build")
            return False
        log.debug("Checking for Installer Updates...")
        try:
            release = fetch_release(INSTALLER_RELEASE_URL)
        except (requests.RequestException, ValueError) as err:
            log.warn("Failed to check for self updates:", err)
            return False
        self.is_outdated = release.tag_name != self.tag
        log.debug("Is self outdated?", self.is_outdated)
        return True

    def update(self) -> None:
        """Download the latest installer and put it in place of the running one."""
        if not can_update_self(self.is_outdated, self.platform):
            raise SelfUpdateError("Cannot update self. Either no update available or macos")
        url = installer_download_link(self.platform, self.ui_type)
        if not url:
            raise SelfUpdateError("Failed to get installer download link")

        log.debug("Updating self from", url)
        exe = self.exe_path or _own_executable()
        exe_dir = os.path.dirname(os.path.abspath(exe))

        with requests.get(url, stream=True, timeout=_TIMEOUT) as res:
            try:
                fd, tmp_name = tempfile.mkstemp(prefix="EquilotlUpdate", dir=exe_dir)
            except OSError as err:
                raise SelfUpdateError(f"Failed to create tempfile: {err}") from err
            try:
                with os.fdopen(fd, "wb") as tmp:
                    try:
                        os.chmod(tmp_name, 0o755)
                    except OSError as err:
                        raise SelfUpdateError(f"Failed to chmod 755 {tmp_name}: {err}") from err
                    for chunk in res.iter_content(_CHUNK):
                        tmp.write(chunk)

                try:
                    os.remove(exe)
                except OSError:
                    try:
                        os.replace(exe, exe + ".old")
                    except OSError as err:
                        raise SelfUpdateError(
                            f"Failed to remove/rename own executable: {err}"
                        ) from err

                try:
                    os.replace(tmp_name, exe)
                except OSError as err:
                    raise SelfUpdateError(
                        "Failed to replace self with updated executable. "
                        f"Please manually redownload the installer: {err}"
                    ) from err
            finally:
                with contextlib.suppress(OSError):
                    os.remove(tmp_name)
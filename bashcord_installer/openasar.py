"""Installing and removing OpenAsar in a Discord install."""

from __future__ import annotations

import os

import requests

from .discovery import DiscordInstall, prepare_patch
from .log import log
from .util import exists_file

OPEN_ASAR_DOWNLOAD_LINK = "https://github.com/GooseMod/OpenAsar/releases/download/nightly/app.asar"

_ASAR_NAMES = ("_app.asar", "app.asar")
_BACKUP_NAMES = ("app.asar.backup", "app.asar.original")
_TIMEOUT = 60
_CHUNK = 64 * 1024


class OpenAsarError(RuntimeError):
    """OpenAsar could not be installed or removed."""


def _resources_dir(install: DiscordInstall) -> str:
    return os.path.dirname(os.path.normpath(install.app_path))


def find_asar_file(directory: str | os.PathLike) -> str:
    """Return the path of the Discord asar in ``directory``, preferring _app.asar."""
    directory = os.fspath(directory)
    for name in _ASAR_NAMES:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate):
            return candidate
    raise FileNotFoundError(f"Install at {directory} has no asar file")


def is_open_asar(install: DiscordInstall) -> bool:
    """Return whether the install's asar is OpenAsar; the answer is cached on ``install``."""
    if install.is_open_asar is not None:
        return install.is_open_asar
    try:
        with open(find_asar_file(_resources_dir(install)), "rb") as fh:
            result = b"OpenAsar" in fh.read()
    except OSError as err:
        log.error(str(err))
        result = False
    log.debug("Checking if", install.path, "is using OpenAsar:", result)
    install.is_open_asar = result
    return result


def install_open_asar(install: DiscordInstall) -> None:
    """Back up the install's asar and replace it with the OpenAsar nightly."""
    prepare_patch(install)
    directory = _resources_dir(install)
    asar = find_asar_file(directory)
    os.replace(asar, os.path.join(directory, "app.asar.backup"))

    with requests.get(OPEN_ASAR_DOWNLOAD_LINK, stream=True, timeout=_TIMEOUT) as res:
        if res.status_code >= 300:
            raise OpenAsarError(
                f"Failed to fetch OpenAsar - {res.status_code}: {res.status_code} {res.reason}"
            )
        with open(asar, "wb") as out:
            for chunk in res.iter_content(_CHUNK):
                out.write(chunk)

    install.is_open_asar = True


def uninstall_open_asar(install: DiscordInstall) -> None:
    """Restore the asar that was backed up when OpenAsar was installed."""
    prepare_patch(install)
    directory = _resources_dir(install)
    for name in _BACKUP_NAMES:
        backup = os.path.join(directory, name)
        if not exists_file(backup):
            continue
        asar = find_asar_file(directory)
        os.replace(backup, asar)
        install.is_open_asar = False
        return
    raise OpenAsarError("No app.asar.backup. Reinstall Discord")
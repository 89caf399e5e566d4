"""Patching and unpatching a Discord install so it loads the mod."""

from __future__ import annotations

import os
import shutil
import subprocess
from typing import Protocol

from .asar import write_app_asar
from .discovery import DiscordInstall, prepare_patch
from .log import log
from .util import busy_error


class PatchError(RuntimeError):
    """Patching or unpatching a Discord install failed."""


class _Builds(Protocol):
    equicord_file: str
    latest_hash: str
    installed_hash: str

    def install_latest(self) -> None: ...


def _getuid() -> int:
    getuid = getattr(os, "getuid", None)
    return getuid() if getuid is not None else -1


def _undo(renames: list[tuple[str, str]], what: str) -> None:
    log.error(f"Failed to {what}. Undoing partial {what}")
    for original, moved in reversed(renames):
        try:
            os.replace(moved, original)
        except OSError as err:
            log.error(f"Failed to undo partial {what}. This install is probably bricked.", err)
        else:
            log.info("Successfully undid all changes")


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)


def patch_app_asar(
    directory: str | os.PathLike, is_system_electron: bool, equicord_directory: str
) -> None:
    """Move Discord's app.asar aside and put a loader for ``equicord_directory`` in its place.

    Renames already done are undone if a later step fails.
    """
    directory = os.fspath(directory)
    app_asar = os.path.join(directory, "app.asar")
    moved_asar = os.path.join(directory, "_app.asar")
    renames: list[tuple[str, str]] = []

    try:
        log.debug("Renaming", app_asar, "to", moved_asar)
        try:
            os.replace(app_asar, moved_asar)
        except OSError as err:
            err = busy_error(err)
            log.error(str(err))
            raise err
        renames.append((app_asar, moved_asar))

        if is_system_electron:
            src, dst = app_asar + ".unpacked", moved_asar + ".unpacked"
            log.debug("Renaming", src, "to", dst)
            os.replace(src, dst)
            renames.append((src, dst))

        log.debug("Writing custom app.asar to", app_asar)
        write_app_asar(app_asar, equicord_directory)
    except BaseException:
        if renames:
            _undo(renames, "patch")
        raise


def unpatch_app_asar(directory: str | os.PathLike, is_system_electron: bool) -> None:
    """Put Discord's original app.asar back in place of the loader.

    Every step is attempted; if any fails, renames already done are undone and the
    last error is raised.
    """
    directory = os.fspath(directory)
    app_asar = os.path.join(directory, "app.asar")
    app_asar_tmp = os.path.join(directory, "app.asar.tmp")
    moved_asar = os.path.join(directory, "_app.asar")
    renames: list[tuple[str, str]] = []
    failure: BaseException | None = None

    log.debug("Deleting", app_asar)
    try:
        os.replace(app_asar, app_asar_tmp)
    except OSError as err:
        failure = busy_error(err)
        log.error(str(failure))
    else:
        renames.append((app_asar, app_asar_tmp))

    log.debug("Renaming", moved_asar, "to", app_asar)
    try:
        os.replace(moved_asar, app_asar)
    except OSError as err:
        failure = busy_error(err)
        log.error(str(failure))
    else:
        renames.append((moved_asar, app_asar))

    if is_system_electron:
        log.debug("Renaming", moved_asar + ".unpacked", "to", app_asar + ".unpacked")
        try:
            os.replace(moved_asar + ".unpacked", app_asar + ".unpacked")
        except OSError as err:
            log.error(str(err))
            failure = err

    if failure is not None:
        if renames:
            _undo(renames, "unpatch")
        raise failure

    try:
        _remove_all(app_asar_tmp)
    except OSError as err:
        log.warn(
            "Failed to delete temporary app.asar (patch folder) backup. "
            "This is whatever but you might want to delete it manually.",
            err,
        )


def grant_flatpak_access(install: DiscordInstall, equicord_directory: str) -> None:
    """Let a flatpak Discord read ``equicord_directory`` via ``flatpak override``."""
    name = next((e for e in install.path.split("/") if e.startswith("com.discordapp")), "")
    log.debug(
        "This is a flatpak. Trying to grant the Flatpak access to", equicord_directory + "..."
    )

    is_system_flatpak = install.path.startswith("/var")
    args = [] if is_system_flatpak else ["--user"]
    args += ["override", name, "--filesystem=" + equicord_directory]
    full_cmd = "flatpak " + " ".join(args)
    log.debug("Running", full_cmd)

    if not is_system_flatpak and _getuid() == 0:
        actual_user = os.environ.get("SUDO_USER", "")
        log.debug("This is a user install but we are root. Using su to run as", actual_user)
        command = ["su", "-", actual_user, "-c", "sh", "-c", full_cmd]
    else:
        command = ["flatpak", *args]

    try:
        subprocess.run(command, check=True)
    except (OSError, subprocess.CalledProcessError) as err:
        raise PatchError(
            f"Failed to grant Discord Flatpak access to {equicord_directory}: {err}"
        ) from err


def _asar_dir(install: DiscordInstall) -> str:
    return install.path if install.is_system_electron else os.path.dirname(
        os.path.normpath(install.app_path)
    )


def patch(install: DiscordInstall, builds: _Builds) -> bool:
    """Patch ``install``, downloading the latest build first if the local one is outdated.

    Returns False without patching if the download failed (the failure was already
    reported), True once the install is patched.
    """
    log.info("Patching " + install.path + "...")
    if builds.latest_hash != builds.installed_hash:
        try:
            builds.install_latest()
        except Exception as err:
            log.debug("Not patching because installing the latest build failed:", err)
            return False

    prepare_patch(install)

    if install.is_patched:
        log.info(install.path, "is already patched. Unpatching first...")
        try:
            unpatch(install)
        except PermissionError:
            raise
        except OSError as err:
            raise PatchError(
                f"patch: Failed to unpatch already patched install '{install.path}':\n{err}"
            ) from err

    patch_app_asar(_asar_dir(install), install.is_system_electron, builds.equicord_file)

    log.info("Successfully patched", install.path)
    install.is_patched = True

    if install.is_flatpak:
        grant_flatpak_access(install, builds.equicord_file)
    return True


def unpatch(install: DiscordInstall) -> None:
    """Restore ``install`` to Discord's original app.asar."""
    log.info("Unpatching " + install.path + "...")
    prepare_patch(install)
    unpatch_app_asar(_asar_dir(install), install.is_system_electron)
    log.info("Successfully unpatched", install.path)
    install.is_patched = False
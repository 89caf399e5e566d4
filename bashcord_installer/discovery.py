"""Finding Discord installs on Linux, macOS and Windows."""

from __future__ import annotations

import os
import sys
import threading
from dataclasses import dataclass
from typing import Iterator, MutableMapping

import psutil

from .constants import LINUX_DISCORD_NAMES
from .log import log
from .util import exists_file, get_branch

MACOS_NAMES = {
    "stable": "Discord.app",
    "ptb": "Discord PTB.app",
    "canary": "Discord Canary.app",
    "dev": "Discord Development.app",
}

WINDOWS_NAMES = {
    "stable": "Discord",
    "ptb": "DiscordPTB",
    "canary": "DiscordCanary",
    "dev": "DiscordDevelopment",
}

_FLATPAK_PREFIX = "com.discordapp."

_kill_lock = threading.Lock()


class RootUserError(RuntimeError):
    """The installer was started as root without a known real user."""


@dataclass
class DiscordInstall:
    """A Discord installation on disk."""

    path: str
    branch: str
    app_path: str
    is_patched: bool = False
    is_flatpak: bool = False
    is_system_electron: bool = False
    is_open_asar: bool | None = None


def _join(*parts: str) -> str:
    return os.path.normpath(os.path.join(*parts))


def _getuid() -> int:
    getuid = getattr(os, "getuid", None)
    return getuid() if getuid is not None else -1


def _geteuid() -> int:
    geteuid = getattr(os, "geteuid", None)
    return geteuid() if geteuid is not None else -1


def resolve_real_home(env: MutableMapping[str, str] | None = None) -> str:
    """Return the HOME of the real user, following SUDO_USER or DOAS_USER when run as root.

    ``env`` is updated in place the same way the process environment would be.
    """
    env = os.environ if env is None else env
    sudo_user = env.get("SUDO_USER", "")
    if not sudo_user:
        sudo_user = env.get("DOAS_USER", "")
        if sudo_user:
            env["SUDO_USER"] = sudo_user

    if sudo_user:
        if sudo_user == "root":
            raise RootUserError(
                "Equilotl must not be run as the root user. Please rerun as normal user. "
                "Use sudo or doas to run as root."
            )
        log.debug("Equilotl was run with root privileges, actual user is", sudo_user)
        log.debug("Looking up HOME of", sudo_user)
        try:
            import pwd

            home = pwd.getpwnam(sudo_user).pw_dir
        except (ImportError, KeyError) as err:
            log.warn("Failed to lookup HOME", err)
        else:
            log.debug("Actual HOME is", home)
            env["HOME"] = home
    elif _getuid() == 0:
        raise RootUserError(
            "Equilotl was run as root but neither SUDO_USER nor DOAS_USER are set. "
            "Please rerun me as a normal user, with sudo/doas, or manually set SUDO_USER to your username"
        )
    return env.get("HOME", "")


def linux_discord_dirs(home: str) -> list[str]:
    """Directories that may hold Discord installs on Linux."""
    return [
        "/AppImages",
        "/usr/share",
        "/usr/lib64",
        "/opt",
        _join(home, "Applications"),
        _join(home, ".local/share"),
        _join(home, ".local/bin"),
        _join(home, ".dvm"),
        "/var/lib/flatpak/app",
        _join(home, ".local/share/flatpak/app"),
    ]


def parse_discord_linux(p: str) -> DiscordInstall | None:
    """Inspect ``p`` as a Linux Discord install, resolving flatpak layouts."""
    name = os.path.basename(os.path.normpath(p))

    needs_flatpak_resolve = "/flatpak/" in p and "/current/active/files/" not in p
    if needs_flatpak_resolve:
        discord_name = name[len(_FLATPAK_PREFIX):].lower()
        if discord_name != "discord":
            # DiscordCanary -> discord-canary
            discord_name = discord_name[:7] + "-" + discord_name[7:]
        p = _join(p, "current/active/files", discord_name)

    resources = os.path.join(p, "resources")
    app = os.path.join(resources, "app")

    is_system_electron = False
    if exists_file(resources):
        is_patched = exists_file(os.path.join(resources, "_app.asar"))
    elif exists_file(os.path.join(p, "app.asar")):
        # System electron has no resources folder
        is_system_electron = True
        is_patched = exists_file(os.path.join(p, "_app.asar.unpacked"))
    else:
        log.warn("Tried to parse invalid Location:", p)
        return None

    return DiscordInstall(
        path=p,
        branch=get_branch(name),
        app_path=app,
        is_patched=is_patched,
        is_flatpak=needs_flatpak_resolve,
        is_system_electron=is_system_electron,
    )


def parse_discord_darwin(p: str, branch: str = "") -> DiscordInstall | None:
    """Inspect ``p`` as a macOS Discord application bundle."""
    if not exists_file(p):
        return None
    resources = os.path.join(p, "Contents", "Resources")
    if not exists_file(resources):
        return None
    if not branch:
        branch = get_branch(p.removesuffix(".app"))
    return DiscordInstall(
        path=p,
        branch=branch,
        app_path=os.path.join(resources, "app"),
        is_patched=exists_file(os.path.join(resources, "_app.asar")),
    )


def parse_discord_windows(p: str, branch: str = "") -> DiscordInstall | None:
    """Inspect ``p`` as a Windows Discord folder, choosing its newest app-* version."""
    try:
        with os.scandir(p) as it:
            entries = list(it)
    except FileNotFoundError:
        return None
    except OSError as err:
        log.warn("Error during readdir " + p + ":", err)
        return None

    app_path = ""
    is_patched = False
    for entry in entries:
        if not (entry.is_dir() and entry.name.startswith("app-")):
            continue
        resources = os.path.join(p, entry.name, "resources")
        if not exists_file(resources):
            continue
        app = os.path.join(resources, "app")
        if app > app_path:
            app_path = app
            is_patched = exists_file(os.path.join(resources, "_app.asar"))

    if not app_path:
        return None
    if not branch:
        branch = get_branch(p)
    return DiscordInstall(path=p, branch=branch, app_path=app_path, is_patched=is_patched)


def _platform() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    return "linux"


def parse_discord(p: str, branch: str = "") -> DiscordInstall | None:
    """Inspect ``p`` as a Discord install using the rules of the running platform."""
    platform = _platform()
    if platform == "windows":
        return parse_discord_windows(p, branch)
    if platform == "darwin":
        return parse_discord_darwin(p, branch)
    return parse_discord_linux(p)


def _find_linux() -> list[DiscordInstall]:
    discords = []
    for directory in linux_discord_dirs(resolve_real_home()):
        try:
            with os.scandir(directory) as it:
                children = sorted(it, key=lambda e: e.name)
        except FileNotFoundError:
            continue
        except OSError as err:
            log.warn("Error during readdir " + directory + ":", err)
            continue
        for child in children:
            if not child.is_dir(follow_symlinks=False) or child.name not in LINUX_DISCORD_NAMES:
                continue
            discord_dir = os.path.join(directory, child.name)
            if (discord := parse_discord_linux(discord_dir)) is not None:
                log.debug("Found Discord install at ", discord_dir)
                discords.append(discord)
    return discords


def _find_darwin() -> list[DiscordInstall]:
    bases = ["/Applications", os.path.join(os.environ.get("HOME", ""), "Applications")]
    discords = []
    for branch, dirname in MACOS_NAMES.items():
        for base in bases:
            p = os.path.join(base, dirname)
            if (discord := parse_discord_darwin(p, branch)) is not None:
                log.debug("Found Discord Install at", p)
                discords.append(discord)
    return discords


def _find_windows() -> list[DiscordInstall]:
    app_data = os.environ.get("LOCALAPPDATA", "")
    if not app_data:
        log.error("%LOCALAPPDATA% is empty???????")
        return []
    discords = []
    for branch, dirname in WINDOWS_NAMES.items():
        p = os.path.join(app_data, dirname)
        if (discord := parse_discord_windows(p, branch)) is not None:
            log.debug("Found Discord install at ", p)
            discords.append(discord)
    return discords


def find_discords() -> list[DiscordInstall]:
    """Return every Discord install found in the usual places for this platform."""
    platform = _platform()
    if platform == "windows":
        return _find_windows()
    if platform == "darwin":
        return _find_darwin()
    return _find_linux()


def prepare_patch(install: DiscordInstall) -> None:
    """On Windows, kill the running Discord of the install's branch and wait for it to exit."""
    if _platform() != "windows":
        return
    with _kill_lock:
        name = WINDOWS_NAMES.get(install.branch, "")
        log.debug("Trying to kill", name)
        target = name + ".exe"
        proc = next(
            (p for p in psutil.process_iter(["name"]) if p.info.get("name") == target),
            None,
        )
        if proc is None:
            log.debug("Didn't find process matching name")
            return
        try:
            proc.kill()
        except psutil.Error as err:
            log.warn("Failed to kill", name + ":", err)
            return
        log.debug("Waiting for", name, "to exit")
        try:
            proc.wait()
        except psutil.Error:
            pass


def _walk(root: str) -> Iterator[str]:
    def _raise(err: OSError) -> None:
        raise err

    yield root
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        for name in sorted(dirnames) + sorted(filenames):
            yield os.path.join(dirpath, name)


def fix_ownership(path: str) -> None:
    """When running as root on Linux, give ``path`` and everything below it to SUDO_USER."""
    if _platform() != "linux" or _geteuid() != 0:
        return

    log.debug("Fixing Ownership of", path)
    sudo_user = os.environ.get("SUDO_USER", "")
    if not sudo_user:
        raise RuntimeError("SUDO_USER was empty. This point should never be reached")

    import pwd

    log.debug("Looking up User", sudo_user)
    try:
        user = pwd.getpwnam(sudo_user)
    except KeyError as err:
        log.error("Lookup failed:", err)
        raise
    uid, gid = user.pw_uid, user.pw_gid
    log.debug("Lookup successful, Uid", uid, "Gid", gid)

    try:
        for entry in _walk(path):
            try:
                os.chown(entry, uid, gid)
            except OSError:
                log.debug("chown", f"{uid}:{gid}", entry + ":", "Failed")
                raise
            log.debug("chown", f"{uid}:{gid}", entry + ":", "Success!")
    except OSError as err:
        log.error("Failed to fix ownership:", err)
        raise


def check_scuffed_install() -> bool:
    """On Windows, report whether Discord was installed under ProgramData by mistake."""
    if _platform() != "windows":
        return False
    username = os.environ.get("USERNAME", "")
    program_data = os.environ.get("PROGRAMDATA", "")
    return any(
        exists_file(os.path.join(program_data, username, name)) for name in WINDOWS_NAMES.values()
    )
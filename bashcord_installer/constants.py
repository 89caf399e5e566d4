"""Release endpoints, build information and known Discord names."""

from __future__ import annotations

from enum import Enum

_GITHUB_API = "https://api.github.com/repos"
_MOD_REPO = "roothheo/Bashcord"
_INSTALLER_REPO = "Equicord/Equilotl"

RELEASE_URL = f"{_GITHUB_API}/{_MOD_REPO}/releases/latest"
INSTALLER_RELEASE_URL = f"{_GITHUB_API}/{_INSTALLER_REPO}/releases/latest"

VERSION_UNKNOWN = "Unknown"
INSTALLER_GIT_HASH = VERSION_UNKNOWN
INSTALLER_TAG = VERSION_UNKNOWN


class UiType(str, Enum):
    """Which front end the installer was built with."""

    GUI = "gui"
    CLI = "cli"


UI_TYPE = UiType.CLI


def user_agent(git_hash: str) -> str:
    """User-Agent header sent with GitHub requests."""
    name = _INSTALLER_REPO.split("/")[1]
    return f"{name}/{git_hash} (https://github.com/{_INSTALLER_REPO})"


USER_AGENT = user_agent(INSTALLER_GIT_HASH)

_CHANNELS = ("", "PTB", "Canary", "Development")
_CAPITALISED = tuple(f"Discord{channel}" for channel in _CHANNELS)

# Directory names Discord is known to be installed under on Linux,
# including the Flatpak application ids.
LINUX_DISCORD_NAMES: tuple[str, ...] = (
    *_CAPITALISED,
    *(name.lower() for name in _CAPITALISED),
    *(f"discord-{channel.lower()}" for channel in _CHANNELS if channel),
    *(f"com.discordapp.{name}" for name in _CAPITALISED),
)
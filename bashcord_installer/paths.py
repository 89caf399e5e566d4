"""Where the mod's asar lives and the directory that holds it."""

from __future__ import annotations

import os
from typing import Mapping

from platformdirs import user_config_dir

from .discovery import fix_ownership
from .log import log
from .util import exists_file

APP_NAME = "Bashcord"
ASAR_NAME = "bashcord.asar"


def resolve_base_dir(env: Mapping[str, str] | None = None) -> str:
    """Pick the data directory from the environment, falling back to the user config dir."""
    env = os.environ if env is None else env
    if directory := env.get("BASHCORD_USER_DATA_DIR", ""):
        log.debug("Using BASHCORD_USER_DATA_DIR")
        return directory
    if directory := env.get("DISCORD_USER_DATA_DIR", ""):
        log.debug("Using DISCORD_USER_DATA_DIR/../BashcordData")
        return os.path.normpath(os.path.join(directory, "..", "BashcordData"))
    log.debug("Using UserConfig")
    return user_config_dir(APP_NAME, appauthor=False, roaming=True)


def resolve_equicord_directory(env: Mapping[str, str] | None, base_dir: str) -> str:
    """Path of the downloaded mod asar: BASHCORD_DIRECTORY or a file inside ``base_dir``."""
    env = os.environ if env is None else env
    if directory := env.get("BASHCORD_DIRECTORY", ""):
        log.debug("Using BASHCORD_DIRECTORY")
        return directory
    return os.path.join(base_dir, ASAR_NAME)


def ensure_base_dir(base_dir: str) -> None:
    """Create ``base_dir`` if it is missing and hand it to the real user."""
    if exists_file(base_dir):
        return
    try:
        os.mkdir(base_dir, 0o755)
    except OSError as err:
        log.error("Failed to create", base_dir, err)
        raise
    fix_ownership(base_dir)
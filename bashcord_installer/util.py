"""Small filesystem and naming helpers."""

from __future__ import annotations

import os
import sys

from .log import log

_BRANCHES = ("canary", "development", "ptb")

_ERROR_SHARING_VIOLATION = 32


class FilesBusyError(OSError):
    """Discord's files are held open by another process."""


def exists_file(path: str | os.PathLike) -> bool:
    """Return True if ``path`` can be stat'ed."""
    try:
        os.stat(path)
    except OSError:
        found = False
    else:
        found = True
    log.debug("Checking if", path, "exists:", "Yes" if found else "No")
    return found


def is_directory(path: str | os.PathLike) -> bool:
    """Return True if ``path`` is a directory; log and return False on stat errors."""
    try:
        st = os.stat(path)
    except OSError as err:
        log.error("Error while checking if", path, "is directory:", err)
        return False
    result = os.path.isdir(path) if st is not None else False
    log.debug("Checking if", path, "is directory:", "Yes" if result else "No")
    return result


def get_branch(name: str) -> str:
    """Guess the Discord branch from a directory or app name."""
    lowered = name.lower()
    return next((b for b in _BRANCHES if lowered.endswith(b)), "stable")


def busy_error(err: BaseException) -> BaseException:
    """Replace a Windows sharing violation with a clearer error; pass others through."""
    if not sys.platform.startswith("win"):
        return err
    if isinstance(err, OSError) and getattr(err, "winerror", None) == _ERROR_SHARING_VIOLATION:
        return FilesBusyError(
            "Cannot patch because Discord's files are used by a different process."
            "\nMake sure you close Discord before trying to patch!"
        )
    return err
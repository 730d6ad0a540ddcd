from __future__ import annotations

import logging
import os
import sys
from enum import IntEnum
from pathlib import Path
from typing import Optional, Union

from platformdirs import user_data_dir


_logger = logging.getLogger(__name__)


class HostOS(IntEnum):
    LINUX = 0
    WINDOWS = 1
    MACOS = 2
    FREEBSD = 3
    OTHER = 4


def classify_host_os(platform: Optional[str] = None) -> HostOS:
    """Classify the host from `sys.platform` (or an explicit platform string).

    Android and iOS report their own platform names and fall into OTHER.
    """
    name = sys.platform if platform is None else platform
    if name.startswith("linux"):
        return HostOS.LINUX
    if name in ("win32", "cygwin"):
        return HostOS.WINDOWS
    if name == "darwin":
        return HostOS.MACOS
    if name.startswith("freebsd"):
        return HostOS.FREEBSD
    return HostOS.OTHER


def is_desktop_os(platform: Optional[str] = None) -> bool:
    """True on Linux, Windows, macOS and FreeBSD."""
    return classify_host_os(platform) != HostOS.OTHER


def is_frozen() -> bool:
    """Return True if running under a frozen bundle (e.g., PyInstaller)."""
    return bool(getattr(sys, "frozen", False))


def executable_dir() -> Path:
    """Return the directory of the running program.

    - Frozen bundle: directory of sys.executable.
    - Script: directory of the `__main__` module file.
    - Interactive sessions and embedded interpreters: the working directory.
    """
    if is_frozen():
        return Path(sys.executable).resolve().parent
    main = sys.modules.get("__main__")
    main_file = getattr(main, "__file__", None)
    if main_file:
        return Path(main_file).resolve().parent
    return Path.cwd().resolve()


def user_data_root() -> Path:
    """Per-user, non-roaming application data directory for this host.

    Windows: %LOCALAPPDATA%
    macOS:   ~/Library/Application Support
    Linux:   ~/.local/share (or $XDG_DATA_HOME)
    """
    return Path(user_data_dir(appname=None, appauthor=False, roaming=False))


def get_writable_absolute_path(
    relative: Union[str, os.PathLike[str]] = "", use_current: bool = False
) -> Path:
    """Resolve `relative` to an absolute path the current user can write to.

    With `use_current` on a desktop OS the path is anchored at the program's
    directory, otherwise at the per-user data directory. An absolute input is
    returned unchanged. No directories are created here.
    """
    if use_current and is_desktop_os():
        base = executable_dir()
    else:
        base = user_data_root()
    resolved = base / Path(relative)
    _logger.debug("Resolved writable path %s -> %s", relative, resolved)
    return resolved

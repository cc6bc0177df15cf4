"""Standard configuration locations.

Purpose
-------
Encapsulate the OS-specific rules behind ``std_cfg_layout``: which
directories count as the working, user and system locations for an
application. The adapter is the only component that understands these
filesystem conventions.

Contents
--------
* :class:`StandardLocations` – the filesystems to search, in precedence order.
* :class:`StandardLayoutResolver` – builds them for an application name.
* :func:`validate_app_name` – rejects names that would escape a directory.

System Role
-----------
Feeds :func:`lib_compiled_config.options.std_cfg_layout`. It honours
``LIB_COMPILED_CONFIG_HOME`` and ``LIB_COMPILED_CONFIG_ETC`` overrides (for
tests and custom deployments) and emits a debug event describing the
resolved locations.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from ...application.ports import FileSystem
from ...domain.errors import InvalidInput
from ...observability import log_debug
from ..filesystem.default import DirectoryFS


@dataclass(frozen=True, slots=True)
class StandardLocations:
    """Filesystems consulted by the standard layout.

    ``root`` serves absolute paths, ``local`` the working directory. ``home``
    is ``None`` when no user directory is known.
    """

    local: FileSystem
    root: FileSystem
    home: FileSystem | None
    etc: FileSystem


def validate_app_name(app: str) -> str:
    """Return *app* when it is usable as a file and directory name.

    Examples
    --------
    >>> validate_app_name("demo")
    'demo'
    >>> validate_app_name("../demo")
    Traceback (most recent call last):
    ...
    lib_compiled_config.domain.errors.InvalidInput: invalid application name '../demo'
    """

    if not app or app.startswith(".") or "/" in app or "\\" in app:
        raise InvalidInput(f"invalid application name '{app}'")
    return app


class StandardLayoutResolver:
    """Resolve the working, user and system locations for one application.

    Linux and macOS use ``$HOME/.<app>`` and ``/etc/<app>``; Windows uses
    ``%APPDATA%\\<app>`` and ``%ProgramData%\\<app>``.

    Examples
    --------
    >>> resolver = StandardLayoutResolver("demo", cwd="/srv", env={"HOME": "/home/me"}, platform="linux")
    >>> locations = resolver.locations()
    >>> locations.local, locations.home, locations.etc
    (DirectoryFS('/srv'), DirectoryFS('/home/me/.demo'), DirectoryFS('/etc/demo'))
    """

    def __init__(
        self,
        app: str,
        *,
        cwd: str | os.PathLike[str] | None = None,
        env: Mapping[str, str] | None = None,
        platform: str | None = None,
    ) -> None:
        self.app = validate_app_name(app)
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.env = dict(os.environ if env is None else env)
        self.platform = platform or sys.platform

    @property
    def _is_windows(self) -> bool:
        return self.platform.startswith("win")

    def locations(self) -> StandardLocations:
        locations = StandardLocations(
            local=DirectoryFS(self.cwd),
            root=DirectoryFS(self.cwd.anchor or "/"),
            home=self._home(),
            etc=self._etc(),
        )
        log_debug(
            "layout_resolved",
            source="layout",
            name=self.app,
            local=str(self.cwd),
            home=repr(locations.home),
            etc=repr(locations.etc),
        )
        return locations

    def _home(self) -> FileSystem | None:
        override = self.env.get("LIB_COMPILED_CONFIG_HOME")
        if override:
            return DirectoryFS(Path(override) / f".{self.app}")
        if self._is_windows:
            appdata = self.env.get("APPDATA")
            return DirectoryFS(Path(appdata) / self.app) if appdata else None
        home = self.env.get("HOME")
        return DirectoryFS(Path(home) / f".{self.app}") if home else None

    def _etc(self) -> FileSystem:
        override = self.env.get("LIB_COMPILED_CONFIG_ETC")
        if override:
            return DirectoryFS(Path(override) / self.app)
        if self._is_windows:
            return DirectoryFS(Path(self.env.get("ProgramData", r"C:\ProgramData")) / self.app)
        return DirectoryFS(Path("/etc") / self.app)

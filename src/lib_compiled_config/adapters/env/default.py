"""Environment variable expansion provider.

Purpose
-------
Resolve ``${NAME}`` placeholders against the process environment. The
mapping is injectable so tests never depend on the real environment.
"""

from __future__ import annotations

import os
from typing import Mapping


class EnvironmentExpander:
    """Look placeholder names up in an environment mapping.

    Examples
    --------
    >>> expander = EnvironmentExpander({"HOME": "/home/me"})
    >>> expander.expand("HOME"), expander.expand("MISSING")
    (('/home/me', True), ('', False))
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = os.environ if environ is None else environ

    def __repr__(self) -> str:
        return "EnvironmentExpander()"

    def expand(self, name: str) -> tuple[str, bool]:
        value = self._environ.get(name)
        if value is None:
            return "", False
        return value, True

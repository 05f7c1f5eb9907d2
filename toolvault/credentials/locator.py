"""Discovery of credential helper executables on the search path."""

import shutil
import sys
from pathlib import Path
from typing import Protocol

PRODUCT_NAME = "toolvault"


def helper_executable_name(backend_name: str, platform: str | None = None) -> str:
    """Build the helper executable name for a backend.

    Example:
        >>> helper_executable_name("osxkeychain", platform="darwin")
        'toolvault-credential-osxkeychain'
        >>> helper_executable_name("wincred", platform="win32")
        'toolvault-credential-wincred.exe'
    """
    platform = platform or sys.platform
    name = f"{PRODUCT_NAME}-credential-{backend_name}"
    if platform == "win32":
        name += ".exe"
    return name


class HelperLocator(Protocol):
    """Find a helper executable by name; None means it is not installed."""

    def locate(self, executable: str) -> Path | None: ...


class SearchPathLocator:
    """Look helpers up on PATH, or on an explicit search path."""

    def __init__(self, path: str | None = None) -> None:
        self.path = path

    def locate(self, executable: str) -> Path | None:
        found = shutil.which(executable, path=self.path)
        return Path(found) if found else None

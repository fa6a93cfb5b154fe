"""Provider factory for drivehandoff.

Provides a `get_provider(name)` function that returns a permission store instance.
"""
from typing import Optional

from .base import PermissionStore
from .drive_provider import DriveProvider


_PROVIDERS = {
    "gdrive": DriveProvider(),
}


def get_provider(name: str) -> Optional[PermissionStore]:
    """Return provider instance for given name or None if unsupported.

    Currently supports: gdrive
    """
    return _PROVIDERS.get(name)

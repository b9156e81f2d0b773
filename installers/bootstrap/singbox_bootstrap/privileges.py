"""Elevated privilege detection."""

from __future__ import annotations

import os
import platform

from .errors import PrivilegeError


def _windows_is_admin() -> bool:
    import ctypes  # type: ignore

    try:
        return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
    except (AttributeError, OSError):
        return False


def is_elevated(system: str | None = None) -> bool:
    system = system or platform.system()
    if system == "Windows":
        return _windows_is_admin()
    return os.geteuid() == 0


def require_elevated(system: str | None = None) -> None:
    if not is_elevated(system):
        raise PrivilegeError("This installer must be run as root (use sudo)")

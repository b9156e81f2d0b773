"""Installer error taxonomy and exit codes."""

from __future__ import annotations


class InstallerError(Exception):
    exit_code = 1

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class ArgumentError(InstallerError):
    exit_code = 2


class PrivilegeError(InstallerError):
    pass


class PlatformError(InstallerError):
    pass


class ResolutionError(InstallerError):
    pass


class DownloadError(InstallerError):
    def __init__(self, message: str, url: str, hint: str | None = None) -> None:
        super().__init__(message, hint)
        self.url = url


class InstallError(InstallerError):
    pass


class ServiceRegistrationError(InstallerError):
    """Raised by the unit registrar; the pipeline reports it as a warning."""

"""Core installer services for settings and logging."""

from .config import (
    InstallConfig,
    InstallerConfig,
    LoggingConfig,
    ReleaseConfig,
    ServiceConfig,
    load_config,
    redacted,
)
from .logging_setup import configure_logging, get_logger, install_crash_hooks

__all__ = [
    "InstallConfig",
    "InstallerConfig",
    "LoggingConfig",
    "ReleaseConfig",
    "ServiceConfig",
    "configure_logging",
    "get_logger",
    "install_crash_hooks",
    "load_config",
    "redacted",
]

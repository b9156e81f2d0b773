"""Release installer for the reF1nd sing-box binary."""

from .errors import (
    ArgumentError,
    DownloadError,
    InstallError,
    InstallerError,
    PlatformError,
    PrivilegeError,
    ResolutionError,
    ServiceRegistrationError,
)
from .installer import InstallTarget, install_binary
from .releases import AllReleasesStrategy, LatestStableStrategy, ReleaseLocator, normalize_version
from .resolver import AssetReference, PlatformTarget, asset_name, asset_url, detect_target, resolve_target
from .service import InstallResult, download_file, install_release, scoped_download_dir
from .systemd import RegistrationOutcome, SystemdRegistrar
from .verify import VerificationResult, verify_installation

__all__ = [
    "AllReleasesStrategy",
    "ArgumentError",
    "AssetReference",
    "DownloadError",
    "InstallError",
    "InstallResult",
    "InstallTarget",
    "InstallerError",
    "LatestStableStrategy",
    "PlatformError",
    "PlatformTarget",
    "PrivilegeError",
    "RegistrationOutcome",
    "ReleaseLocator",
    "ResolutionError",
    "ServiceRegistrationError",
    "SystemdRegistrar",
    "VerificationResult",
    "asset_name",
    "asset_url",
    "detect_target",
    "download_file",
    "install_binary",
    "install_release",
    "normalize_version",
    "resolve_target",
    "scoped_download_dir",
    "verify_installation",
]

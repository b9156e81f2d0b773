"""Shared install pipeline: resolve, download, install, register, verify."""

from __future__ import annotations

import http.client
import os
import shutil
import tempfile
import urllib.error
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from singbox_core.config import InstallerConfig
from singbox_core.logging_setup import get_logger

from .errors import DownloadError, PlatformError, ServiceRegistrationError
from .installer import InstallTarget, install_binary
from .releases import ReleaseLocator
from .resolver import AssetReference, PlatformTarget, detect_target
from .systemd import RegistrationOutcome, SystemdRegistrar
from .transport import ReleaseStoreClient
from .verify import VerificationResult, verify_installation

CHUNK_SIZE = 1024 * 1024


@contextmanager
def scoped_download_dir(prefix: str = "sing-box-install-") -> Iterator[Path]:
    """Temporary directory removed on every way out of the ``with`` block."""
    with tempfile.TemporaryDirectory(prefix=prefix) as tmp:
        yield Path(tmp)


def download_file(url: str, dest: Path, client: ReleaseStoreClient, hint: str | None = None) -> Path:
    """Download ``url`` to ``dest`` through a sibling part file.

    ``dest`` is only created once the whole body has been received; any
    failure leaves neither ``dest`` nor the part file behind.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, part_name = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=str(dest.parent))
    part = Path(part_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            try:
                with client.open(url) as response:
                    status = getattr(response, "status", 200)
                    if not 200 <= status < 300:
                        raise DownloadError(f"Download failed with HTTP {status}: {url}", url=url, hint=hint)
                    shutil.copyfileobj(response, fh, CHUNK_SIZE)
            except DownloadError:
                raise
            except (OSError, http.client.HTTPException) as exc:
                if isinstance(exc, urllib.error.HTTPError):
                    exc.close()
                raise DownloadError(f"Download failed: {url} ({exc})", url=url, hint=hint) from exc
        os.replace(part, dest)
    finally:
        part.unlink(missing_ok=True)
    return dest


@dataclass(frozen=True)
class InstallResult:
    target: PlatformTarget
    version: str
    asset: AssetReference
    installed_path: Path
    backed_up: bool
    service: RegistrationOutcome | None
    verification: VerificationResult


def install_release(
    config: InstallerConfig,
    pinned_version: str | None = None,
    target: PlatformTarget | None = None,
    locator: ReleaseLocator | None = None,
    registrar: SystemdRegistrar | None = None,
    verifier: Callable[..., VerificationResult] = verify_installation,
) -> InstallResult:
    log = get_logger()
    rel = config.release

    target = target or detect_target()
    log.info(f"Detected OS: {target.os_name}", extra={"event": "platform_os"})
    log.info(f"Detected Arch: {target.arch}", extra={"event": "platform_arch"})
    if not target.supported:
        raise PlatformError(f"Unsupported platform: {target}")

    client = ReleaseStoreClient(rel)
    locator = locator or ReleaseLocator(rel, client=client)
    version = locator.resolve(pinned_version)
    log.info(f"Version to install: {version}", extra={"event": "version_resolved"})

    asset = AssetReference(tool=rel.tool_name, version=version, target=target)
    url = asset.url(rel.download_base, rel.repo)
    hint = f"Available architectures may be limited. Check: {rel.releases_page}"
    install_target = InstallTarget(install_dir=config.install.install_dir, binary_name=config.install.binary_name)

    log.info(f"Downloading: {url}", extra={"event": "download_started"})
    with scoped_download_dir(prefix=f"{rel.tool_name}-install-") as tmp:
        staged = download_file(url, tmp / install_target.binary_name, client, hint=hint)
        backed_up = install_binary(staged, install_target)

    registrar = registrar or SystemdRegistrar(config.service)
    try:
        outcome: RegistrationOutcome | None = registrar.register(install_target.path)
    except ServiceRegistrationError as exc:
        log.warning(str(exc), extra={"event": "service_failed"})
        outcome = None

    verification = verifier(install_target.binary_name, install_target.install_dir)
    return InstallResult(
        target=target,
        version=version,
        asset=asset,
        installed_path=install_target.path,
        backed_up=backed_up,
        service=outcome,
        verification=verification,
    )

"""Backup-then-replace transition for the installed binary."""

from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from singbox_core.logging_setup import get_logger

from .errors import InstallError

BACKUP_SUFFIX = ".bak"


@dataclass(frozen=True)
class InstallTarget:
    install_dir: Path
    binary_name: str

    @property
    def path(self) -> Path:
        return self.install_dir / self.binary_name

    @property
    def backup_path(self) -> Path:
        return self.install_dir / (self.binary_name + BACKUP_SUFFIX)


def _degraded_hint(target: InstallTarget) -> str:
    return (
        f"No binary is installed at {target.path}. "
        f"Restore the previous version with: mv {target.backup_path} {target.path}"
    )


def install_binary(source: Path, target: InstallTarget) -> bool:
    """Copy ``source`` into place at ``target.path`` and remove ``source``.

    An existing binary is renamed to ``target.backup_path`` first, replacing
    any older backup, so only the most recent previous binary is kept. Nothing
    is rolled back automatically: if the move fails after the backup was
    taken, the backup is left for the operator to restore.

    Returns True when a previous binary was backed up.
    """
    log = get_logger()
    log.info(f"Installing to {target.path}...", extra={"event": "install_started"})

    try:
        target.install_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise InstallError(f"Cannot create install directory {target.install_dir}: {exc}") from exc

    backed_up = False
    if target.path.exists() or target.path.is_symlink():
        log.warning("Existing installation found, backing up...", extra={"event": "install_backup"})
        try:
            os.replace(target.path, target.backup_path)
        except OSError as exc:
            raise InstallError(f"Failed to back up {target.path} to {target.backup_path}: {exc}") from exc
        backed_up = True

    # Stage next to the target so the final step is a same-filesystem rename;
    # a partial copy never lands on target.path.
    part: Path | None = None
    try:
        fd, part_name = tempfile.mkstemp(prefix=f".{target.binary_name}.", suffix=".part", dir=str(target.install_dir))
        os.close(fd)
        part = Path(part_name)
        shutil.copyfile(str(source), str(part))
        part.chmod(0o755)
        os.replace(part, target.path)
    except OSError as exc:
        hint = _degraded_hint(target) if backed_up else None
        raise InstallError(f"Failed to move {source} to {target.path}: {exc}", hint=hint) from exc
    finally:
        if part is not None:
            part.unlink(missing_ok=True)

    source.unlink(missing_ok=True)

    log.info("Installation complete!", extra={"event": "install_complete"})
    return backed_up

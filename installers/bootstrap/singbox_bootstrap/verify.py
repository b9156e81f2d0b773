"""Post-install check that the binary is on PATH and runs."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from singbox_core.logging_setup import get_logger


@dataclass(frozen=True)
class VerificationResult:
    path: str | None
    version: str | None

    @property
    def found(self) -> bool:
        return self.path is not None


def verify_installation(
    binary_name: str,
    install_dir: Path,
    which: Callable[[str], str | None] = shutil.which,
    run: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> VerificationResult:
    log = get_logger()
    path = which(binary_name)
    if path is None:
        log.warning(
            f"{binary_name} not found in PATH. You may need to add {install_dir} to your PATH.",
            extra={"event": "verify_not_on_path"},
        )
        return VerificationResult(path=None, version=None)

    try:
        result = run([path, "version"], capture_output=True, text=True, check=False)
    except OSError as exc:
        log.warning(f"Could not run {path} version: {exc}", extra={"event": "verify_failed"})
        return VerificationResult(path=path, version=None)

    output = (result.stdout or "").strip()
    if result.returncode != 0:
        log.warning(f"{path} version exited with code {result.returncode}", extra={"event": "verify_failed"})
        return VerificationResult(path=path, version=output or None)

    log.info("Verification:", extra={"event": "verify_ok"})
    for line in output.splitlines():
        log.info(line)
    return VerificationResult(path=path, version=output)

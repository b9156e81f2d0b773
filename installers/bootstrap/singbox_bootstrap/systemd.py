"""systemd unit registration for the installed binary."""

from __future__ import annotations

import os
import subprocess
import tempfile
from enum import Enum
from pathlib import Path
from typing import Callable

from singbox_core.config import ServiceConfig
from singbox_core.logging_setup import get_logger

from .errors import ServiceRegistrationError


UNIT_TEMPLATE = """[Unit]
Description=sing-box service
Documentation=https://sing-box.sagernet.org
After=network-online.target nss-lookup.target
Wants=network-online.target
StartLimitIntervalSec=600
StartLimitBurst=5

[Service]
StateDirectory=sing-box
CapabilityBoundingSet=CAP_NET_ADMIN CAP_NET_RAW CAP_NET_BIND_SERVICE CAP_SYS_PTRACE CAP_DAC_READ_SEARCH
AmbientCapabilities=CAP_NET_ADMIN CAP_NET_RAW CAP_NET_BIND_SERVICE CAP_SYS_PTRACE CAP_DAC_READ_SEARCH
ExecStart={binary_path} -D {state_dir} -C {config_dir} run
ExecReload=/bin/kill -HUP $MAINPID
Restart=on-failure
RestartSec=10s
RestartPreventExitStatus=23
LimitNOFILE=infinity
LimitNPROC=infinity
TasksMax=infinity
LimitCORE=0
Nice=-10

[Install]
WantedBy=multi-user.target
"""


class RegistrationOutcome(Enum):
    CREATED = "created"
    SKIPPED_NO_INIT = "skipped_no_init"
    SKIPPED_EXISTS = "skipped_exists"
    SKIPPED_DISABLED = "skipped_disabled"


# The unit always points sing-box at these; only the binary path varies.
UNIT_STATE_DIR = Path("/var/lib/sing-box")
UNIT_CONFIG_DIR = Path("/etc/sing-box")


def render_unit(binary_path: Path) -> str:
    return UNIT_TEMPLATE.format(binary_path=binary_path, state_dir=UNIT_STATE_DIR, config_dir=UNIT_CONFIG_DIR)


class SystemdRegistrar:
    def __init__(self, config: ServiceConfig, run: Callable[..., subprocess.CompletedProcess] | None = None) -> None:
        self.config = config
        self._run = run or subprocess.run
        self._log = get_logger()

    @property
    def unit_path(self) -> Path:
        return self.config.unit_dir / self.config.unit_name

    @property
    def service_name(self) -> str:
        return self.config.unit_name.removesuffix(".service")

    def register(self, binary_path: Path) -> RegistrationOutcome:
        if not self.config.enabled:
            return RegistrationOutcome.SKIPPED_DISABLED

        if not self.config.unit_dir.is_dir():
            self._log.debug(f"{self.config.unit_dir} missing, not a systemd host", extra={"event": "service_no_init"})
            return RegistrationOutcome.SKIPPED_NO_INIT

        if self.unit_path.exists():
            self._log.warning("systemd service already exists, skipping...", extra={"event": "service_exists"})
            return RegistrationOutcome.SKIPPED_EXISTS

        self._log.info("Creating systemd service...", extra={"event": "service_create"})
        self._warn_on_unused_dirs()
        try:
            self.config.config_dir.mkdir(parents=True, exist_ok=True)
            self.config.state_dir.mkdir(parents=True, exist_ok=True)
            self._write_unit(render_unit(binary_path))
        except OSError as exc:
            raise ServiceRegistrationError(f"Failed to create {self.unit_path}: {exc}") from exc

        self._daemon_reload()
        self._log.info(
            f"systemd service created. Enable with: systemctl enable {self.service_name}",
            extra={"event": "service_created"},
        )
        return RegistrationOutcome.CREATED

    def _write_unit(self, text: str) -> None:
        # A unit that exists is never rewritten, so it must only appear complete.
        fd, part_name = tempfile.mkstemp(prefix=f".{self.config.unit_name}.", suffix=".part", dir=str(self.config.unit_dir))
        os.close(fd)
        part = Path(part_name)
        try:
            part.write_text(text, encoding="utf-8")
            part.chmod(0o644)
            os.replace(part, self.unit_path)
        finally:
            part.unlink(missing_ok=True)

    def _warn_on_unused_dirs(self) -> None:
        for configured, fixed in ((self.config.state_dir, UNIT_STATE_DIR), (self.config.config_dir, UNIT_CONFIG_DIR)):
            if Path(configured) != fixed:
                self._log.warning(
                    f"Creating {configured}, but the service unit uses {fixed}",
                    extra={"event": "service_dir_mismatch"},
                )

    def _daemon_reload(self) -> None:
        try:
            result = self._run(["systemctl", "daemon-reload"], capture_output=True, text=True, check=False)
        except OSError as exc:
            self._log.warning(f"systemctl daemon-reload failed: {exc}", extra={"event": "service_reload_failed"})
            return
        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit code {result.returncode}"
            self._log.warning(f"systemctl daemon-reload failed: {detail}", extra={"event": "service_reload_failed"})

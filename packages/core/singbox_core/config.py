"""Installer settings schema and load helpers."""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping


CONFIG_ENV = "SINGBOX_INSTALLER_CONFIG"
LOG_ENV = "SINGBOX_INSTALLER_LOG"
TOKEN_ENV = "GITHUB_TOKEN"
CA_BUNDLE_ENV = "SINGBOX_CA_BUNDLE"
INSECURE_TLS_ENV = "SINGBOX_ALLOW_INSECURE_TLS"


@dataclass
class ReleaseConfig:
    repo: str = "lurixo/reF1nd-releases"
    tool_name: str = "sing-box"
    api_base: str = "https://api.github.com"
    download_base: str = "https://github.com"
    github_token: str | None = None
    ca_bundle: str | None = None
    allow_insecure_tls: bool = False
    timeout_s: float | None = None

    @property
    def releases_page(self) -> str:
        return f"{self.download_base}/{self.repo}/releases"


@dataclass
class InstallConfig:
    install_dir: Path = Path("/usr/bin")
    binary_name: str = "sing-box"


@dataclass
class ServiceConfig:
    enabled: bool = True
    unit_dir: Path = Path("/etc/systemd/system")
    unit_name: str = "sing-box.service"
    state_dir: Path = Path("/var/lib/sing-box")
    config_dir: Path = Path("/etc/sing-box")


@dataclass
class LoggingConfig:
    log_file: Path | None = None
    keep_files: int = 7
    verbose: bool = False


@dataclass
class InstallerConfig:
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    install: InstallConfig = field(default_factory=InstallConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _merge(dataclass_type, raw: dict[str, Any]):
    defaults = dataclass_type()  # type: ignore[misc]
    for k, v in raw.items():
        if hasattr(defaults, k):
            setattr(defaults, k, v)
    return defaults


def _normalize_release(cfg: InstallerConfig) -> None:
    rel = cfg.release
    rel.repo = rel.repo.strip().strip("/")
    rel.api_base = rel.api_base.strip().rstrip("/")
    rel.download_base = rel.download_base.strip().rstrip("/")
    rel.github_token = (rel.github_token or "").strip() or None
    rel.ca_bundle = (rel.ca_bundle or "").strip() or None
    rel.allow_insecure_tls = bool(rel.allow_insecure_tls)
    if rel.timeout_s is not None:
        rel.timeout_s = float(max(1.0, float(rel.timeout_s)))


def _normalize_paths(cfg: InstallerConfig) -> None:
    cfg.install.install_dir = Path(cfg.install.install_dir)
    cfg.service.unit_dir = Path(cfg.service.unit_dir)
    cfg.service.state_dir = Path(cfg.service.state_dir)
    cfg.service.config_dir = Path(cfg.service.config_dir)
    if cfg.logging.log_file:
        cfg.logging.log_file = Path(cfg.logging.log_file)
    else:
        cfg.logging.log_file = None
    cfg.logging.keep_files = max(2, int(cfg.logging.keep_files))


def _apply_env(cfg: InstallerConfig, environ: Mapping[str, str]) -> None:
    token = environ.get(TOKEN_ENV, "").strip()
    if token:
        cfg.release.github_token = token

    ca_bundle = environ.get(CA_BUNDLE_ENV, "").strip()
    if ca_bundle:
        cfg.release.ca_bundle = ca_bundle

    if environ.get(INSECURE_TLS_ENV, "").strip() == "1":
        cfg.release.allow_insecure_tls = True

    log_file = environ.get(LOG_ENV, "").strip()
    if log_file:
        cfg.logging.log_file = Path(log_file)


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return raw if isinstance(raw, dict) else {}


def load_config(path: Path | None = None, environ: Mapping[str, str] | None = None) -> InstallerConfig:
    """Build the installer config from an optional JSON file plus the environment.

    ``environ`` defaults to ``os.environ``; the file path defaults to
    ``$SINGBOX_INSTALLER_CONFIG`` when set. Environment values win over the file.
    """
    environ = os.environ if environ is None else environ
    if path is None and environ.get(CONFIG_ENV, "").strip():
        path = Path(environ[CONFIG_ENV].strip())

    data = _read_file(path) if path is not None else {}
    cfg = InstallerConfig(
        release=_merge(ReleaseConfig, data.get("release", {}) or {}),
        install=_merge(InstallConfig, data.get("install", {}) or {}),
        service=_merge(ServiceConfig, data.get("service", {}) or {}),
        logging=_merge(LoggingConfig, data.get("logging", {}) or {}),
    )

    _apply_env(cfg, environ)
    _normalize_release(cfg)
    _normalize_paths(cfg)
    return cfg


def redacted(cfg: InstallerConfig) -> dict[str, Any]:
    data = asdict(cfg)
    if data["release"].get("github_token"):
        data["release"]["github_token"] = "***REDACTED***"
    return json.loads(json.dumps(data, default=str))

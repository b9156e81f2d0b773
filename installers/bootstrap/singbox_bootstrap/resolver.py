"""Host platform detection and release asset naming."""

from __future__ import annotations

import platform
from dataclasses import dataclass

UNKNOWN = "unknown"

SUPPORTED_OS = ("linux", "darwin", "windows")
SUPPORTED_ARCH = ("amd64v3", "arm64", "armv7", "386")

_WINDOWS_MARKERS = ("mingw", "msys", "cygwin", "windows")

_ARCH_MAP = {
    "x86_64": "amd64v3",
    "amd64": "amd64v3",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "armv7",
    "i386": "386",
    "i686": "386",
}


@dataclass(frozen=True)
class PlatformTarget:
    os_name: str
    arch: str

    @property
    def supported(self) -> bool:
        return self.os_name != UNKNOWN and self.arch != UNKNOWN

    def __str__(self) -> str:
        return f"{self.os_name}-{self.arch}"


@dataclass(frozen=True)
class AssetReference:
    tool: str
    version: str
    target: PlatformTarget

    @property
    def suffix(self) -> str:
        return expected_suffix(self.target)

    @property
    def name(self) -> str:
        return asset_name(self.tool, self.version, self.target)

    def url(self, download_base: str, repo: str) -> str:
        return asset_url(download_base, repo, self.version, self.name)


def _normalize_os(system: str) -> str:
    s = system.strip().lower()
    if s.startswith("linux"):
        return "linux"
    if s.startswith("darwin"):
        return "darwin"
    if s.startswith(_WINDOWS_MARKERS):
        return "windows"
    return UNKNOWN


def _normalize_arch(machine: str) -> str:
    return _ARCH_MAP.get(machine.strip().lower(), UNKNOWN)


def resolve_target(system: str, machine: str) -> PlatformTarget:
    return PlatformTarget(os_name=_normalize_os(system), arch=_normalize_arch(machine))


def detect_target() -> PlatformTarget:
    return resolve_target(platform.system(), platform.machine())


def expected_suffix(target: PlatformTarget) -> str:
    if target.os_name == "windows":
        return ".exe"
    return ""


def asset_name(tool: str, version: str, target: PlatformTarget) -> str:
    # Must match the published artifact names byte for byte.
    return f"{tool}-{version}-{target.os_name}-{target.arch}{expected_suffix(target)}"


def asset_url(download_base: str, repo: str, version: str, name: str) -> str:
    return f"{download_base}/{repo}/releases/download/v{version}/{name}"

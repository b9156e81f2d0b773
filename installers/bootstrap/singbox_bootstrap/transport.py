"""HTTPS plumbing shared by release lookups and asset downloads."""

from __future__ import annotations

import ssl
import urllib.request

from singbox_core.config import ReleaseConfig

try:
    import certifi
except Exception:  # pragma: no cover - fallback when optional dependency unavailable
    certifi = None


USER_AGENT = "singbox-installer/0.1 (+https://github.com/lurixo/reF1nd-releases)"
GITHUB_JSON = "application/vnd.github+json"


def build_ssl_context(ca_bundle: str | None = None, allow_insecure: bool = False) -> ssl.SSLContext:
    """Create TLS context for release store requests with explicit CA handling."""
    if allow_insecure:
        return ssl._create_unverified_context()

    if ca_bundle:
        return ssl.create_default_context(cafile=ca_bundle)

    if certifi is not None:
        return ssl.create_default_context(cafile=certifi.where())

    return ssl.create_default_context()


def request_headers(token: str | None, accept: str = "*/*") -> dict[str, str]:
    headers = {"User-Agent": USER_AGENT, "Accept": accept}
    if token:
        headers["Authorization"] = f"token {token}"
    return headers


class ReleaseStoreClient:
    """Opens release store URLs with the configured token, TLS context and timeout."""

    def __init__(self, config: ReleaseConfig) -> None:
        self.config = config
        self._context: ssl.SSLContext | None = None

    @property
    def ssl_context(self) -> ssl.SSLContext:
        if self._context is None:
            self._context = build_ssl_context(self.config.ca_bundle, self.config.allow_insecure_tls)
        return self._context

    def open(self, url: str, accept: str = "*/*"):
        request = urllib.request.Request(url, headers=request_headers(self.config.github_token, accept))
        if self.config.timeout_s is None:
            return urllib.request.urlopen(request, context=self.ssl_context)
        return urllib.request.urlopen(request, timeout=self.config.timeout_s, context=self.ssl_context)

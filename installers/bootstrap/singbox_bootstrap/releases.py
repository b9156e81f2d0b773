"""Release version resolution against the GitHub Releases API.

A pinned version short-circuits everything. Otherwise an ordered list of
strategies is tried and the first one that yields a tag wins:

1. ``LatestStableStrategy`` reads ``/releases/latest``.
2. ``AllReleasesStrategy`` reads ``/releases`` (newest first), which also
   covers repositories that only publish pre-releases.
"""

from __future__ import annotations

import http.client
import json
import urllib.error
from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence

from singbox_core.config import ReleaseConfig
from singbox_core.logging_setup import get_logger

from .errors import ResolutionError
from .transport import GITHUB_JSON, ReleaseStoreClient

EXCERPT_LINES = 20
EXCERPT_CHARS = 4000


@dataclass(frozen=True)
class ReleaseResponse:
    url: str
    text: str
    payload: Any = None
    status: int | None = None


Query = Callable[[str], ReleaseResponse]


class ResolutionStrategy(Protocol):
    description: str

    def resolve(self, query: Query) -> str | None: ...


def normalize_version(tag: str | None) -> str:
    if not tag:
        return ""
    tag = tag.strip()
    return tag[1:] if tag.startswith("v") else tag


def _tag_of(record: Any) -> str | None:
    if not isinstance(record, dict):
        return None
    tag = record.get("tag_name")
    if isinstance(tag, str) and tag.strip():
        return tag.strip()
    return None


class LatestStableStrategy:
    description = "stable release"
    endpoint = "releases/latest"

    def resolve(self, query: Query) -> str | None:
        return _tag_of(query(self.endpoint).payload)


class AllReleasesStrategy:
    description = "all releases"
    endpoint = "releases"

    def resolve(self, query: Query) -> str | None:
        payload = query(self.endpoint).payload
        if not isinstance(payload, list):
            return None
        for record in payload:
            tag = _tag_of(record)
            if tag:
                return tag
        return None


DEFAULT_STRATEGIES: tuple[ResolutionStrategy, ...] = (LatestStableStrategy(), AllReleasesStrategy())


def excerpt(text: str, max_lines: int = EXCERPT_LINES) -> str:
    lines = text.splitlines()[:max_lines]
    return "\n".join(lines)[:EXCERPT_CHARS]


class ReleaseLocator:
    def __init__(
        self,
        config: ReleaseConfig,
        client: ReleaseStoreClient | None = None,
        strategies: Sequence[ResolutionStrategy] | None = None,
    ) -> None:
        self.config = config
        self.client = client or ReleaseStoreClient(config)
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES
        self.last_response: ReleaseResponse | None = None
        self._log = get_logger()

    def endpoint_url(self, endpoint: str) -> str:
        return f"{self.config.api_base}/repos/{self.config.repo}/{endpoint}"

    def query(self, endpoint: str) -> ReleaseResponse:
        url = self.endpoint_url(endpoint)
        self._log.debug(f"GET {url}", extra={"event": "release_query"})
        status: int | None = None
        try:
            with self.client.open(url, accept=GITHUB_JSON) as resp:
                status = getattr(resp, "status", None)
                text = resp.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            status = exc.code
            try:
                text = exc.read().decode("utf-8", errors="replace")
            except (OSError, ValueError, http.client.HTTPException):
                text = f"HTTP {exc.code}: {exc.reason}"
            finally:
                exc.close()
        except (OSError, http.client.HTTPException) as exc:
            text = f"request to {url} failed: {exc}"

        try:
            payload = json.loads(text) if text else None
        except ValueError:
            payload = None

        response = ReleaseResponse(url=url, text=text, payload=payload, status=status)
        self.last_response = response
        return response

    def resolve(self, pinned_version: str | None = None) -> str:
        if pinned_version is not None:
            version = normalize_version(pinned_version)
            if not version:
                raise ResolutionError(f"Pinned version {pinned_version!r} is empty after normalization")
            self._log.debug(f"using pinned version {version}", extra={"event": "version_pinned"})
            return version

        self._log.info("Fetching latest version...", extra={"event": "version_lookup"})
        for index, strategy in enumerate(self.strategies):
            if index:
                previous = self.strategies[index - 1]
                self._log.info(
                    f"No {previous.description} found, checking {strategy.description}...",
                    extra={"event": "version_fallback"},
                )
            version = normalize_version(strategy.resolve(self.query))
            if version:
                return version

        last = self.last_response.text if self.last_response else ""
        raise ResolutionError(
            f"Failed to fetch latest version. API response:\n{excerpt(last)}",
            hint="Set GITHUB_TOKEN to raise the API rate limit, or pin a release with --version.",
        )

"""Fetch the minutes of a meeting from the W3C website or a local file."""

from __future__ import annotations

from collections.abc import Callable
import logging
from pathlib import Path

import httpx

from minutes_to_gh.errors import FetchError, MinutesNotFound
from minutes_to_gh.models.minutes import MinutesDocument
from minutes_to_gh.models.options import RunOptions
from minutes_to_gh.services.http import build_client

LOGGER = logging.getLogger(__name__)


Fetcher = Callable[[str], MinutesDocument]


class MinutesFetcher:
    """Resolve :class:`RunOptions` into a :class:`MinutesDocument`."""

    _ACCEPT = "text/html, application/xhtml+xml;q=0.9, */*;q=0.5"

    def __init__(
        self,
        *,
        client: httpx.Client | None = None,
        fetcher: Fetcher | None = None,
    ) -> None:
        self._client = client
        self._fetcher = fetcher or self._default_fetcher

    def fetch(self, options: RunOptions) -> MinutesDocument:
        """Return the minutes selected by ``options``.

        A local ``file`` takes precedence over the network; the permalinks still
        point at ``options.minutes_url``.
        """

        url = options.minutes_url
        LOGGER.debug("Minutes URL: %r", url)
        if options.file is not None:
            return self._read_file(Path(options.file), url)
        return self._fetcher(url)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def _read_file(self, path: Path, url: str) -> MinutesDocument:
        LOGGER.debug("Reading from file %s instead of URL", path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise FetchError(f"Failed loading minutes from file {path}: {exc}") from exc
        return MinutesDocument(url=url, html=text)

    def _default_fetcher(self, url: str) -> MinutesDocument:
        """Download ``url`` with ``httpx``, following redirects to the canonical location."""

        if self._client is None:
            self._client = build_client()
        try:
            response = self._client.get(url, headers={"Accept": self._ACCEPT})
            if response.status_code == 404:
                raise MinutesNotFound(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed loading minutes from {url}: {exc}") from exc
        return MinutesDocument(url=str(response.url), html=response.text)


__all__ = ["MinutesFetcher"]

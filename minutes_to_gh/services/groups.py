"""Load the repositories owned by W3C groups, to restrict which issues get comments."""

from __future__ import annotations

import logging
from typing import Iterable

import httpx

from minutes_to_gh.errors import FetchError
from minutes_to_gh.models.issue import IssueRef, Repository
from minutes_to_gh.services.http import build_client

LOGGER = logging.getLogger(__name__)

GROUPS_ROOT = "https://raw.githubusercontent.com/w3c/groups/main"


class GroupRepositoryLoader:
    """Read ``<group>/repositories.json`` from the ``w3c/groups`` repository."""

    def __init__(self, *, client: httpx.Client | None = None, root: str = GROUPS_ROOT) -> None:
        self._client = client
        self._root = root.rstrip("/")

    def load(self, groups: Iterable[str]) -> list[Repository]:
        """Return the repositories of every group in ``groups`` (e.g. ``wg/did``)."""

        repositories: list[Repository] = []
        for group in groups:
            for repository in self._load_group(group):
                if repository not in repositories:
                    repositories.append(repository)
        return repositories

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def _load_group(self, group: str) -> list[Repository]:
        if self._client is None:
            self._client = build_client()
        url = f"{self._root}/{group.strip('/')}/repositories.json"
        try:
            response = self._client.get(url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise FetchError(f"Failed loading repositories of group {group!r}: {exc}") from exc

        if not isinstance(payload, list):
            raise FetchError(f"Unexpected repositories.json for group {group!r}")

        repositories: list[Repository] = []
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            try:
                repositories.append(Repository.from_api(entry))
            except ValueError:
                LOGGER.warning("Ignoring malformed repository entry in group %r", group)
        LOGGER.debug("Group %s owns %d repositories", group, len(repositories))
        return repositories


def owns(repositories: Iterable[Repository], issue: IssueRef) -> bool:
    """Return ``True`` when one of ``repositories`` contains ``issue``."""

    return any(repository.contains(issue) for repository in repositories)


__all__ = ["GROUPS_ROOT", "GroupRepositoryLoader", "owns"]

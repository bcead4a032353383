"""Repository content providers.

The analysis stage only needs two calls: list a directory and read a file.
"""

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal
from urllib.parse import quote

import httpx

from researcher.config import settings
from researcher.core.exceptions import ContentFetchError
from researcher.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RepoEntry:
    """One item of a directory listing."""

    name: str
    path: str
    type: Literal["file", "dir"]


class RepositoryContentProvider(ABC):
    """Source of repository file listings and raw file contents."""

    @abstractmethod
    async def list_directory(self, owner: str, repo: str, path: str = "") -> list[RepoEntry]:
        """List the entries directly under ``path`` ("" is the repo root).

        Raises:
            ContentFetchError: If the listing cannot be fetched
        """

    @abstractmethod
    async def read_file(self, owner: str, repo: str, path: str) -> str:
        """Return the decoded text of a file.

        Raises:
            ContentFetchError: If the file cannot be read
        """

    async def aclose(self) -> None:
        """Release any held connections."""
        return None


class GitHubContentProvider(RepositoryContentProvider):
    """Reads repositories through the GitHub contents REST API."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._token = token if token is not None else settings.github_token
        self._api_url = (api_url or settings.github_api_url).rstrip("/")
        self._timeout = timeout or settings.http_timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self._api_url,
                headers=headers,
                timeout=self._timeout,
                follow_redirects=True,
            )
        return self._client

    async def _get_contents(self, owner: str, repo: str, path: str) -> Any:
        url = f"/repos/{owner}/{repo}/contents/{quote(path)}"
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise ContentFetchError(path or "/", str(e)) from e

        if response.status_code != 200:
            raise ContentFetchError(
                path or "/",
                f"GitHub API returned {response.status_code}",
                status=response.status_code,
            )
        return response.json()

    async def list_directory(self, owner: str, repo: str, path: str = "") -> list[RepoEntry]:
        data = await self._get_contents(owner, repo, path)

        # A file path returns a single object instead of a listing
        if not isinstance(data, list):
            return [RepoEntry(name=data.get("name", path), path=data.get("path", path), type="file")]

        entries: list[RepoEntry] = []
        for item in data:
            item_type = item.get("type")
            if item_type not in ("file", "dir"):
                continue
            entries.append(RepoEntry(name=item["name"], path=item["path"], type=item_type))
        return entries

    async def read_file(self, owner: str, repo: str, path: str) -> str:
        data = await self._get_contents(owner, repo, path)

        if isinstance(data, list) or "content" not in data:
            raise ContentFetchError(path, "path is not a file")

        raw = base64.b64decode(data["content"])
        return raw.decode("utf-8", errors="replace")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@lru_cache
def get_content_provider() -> RepositoryContentProvider:
    """Get the repository content provider singleton."""
    return GitHubContentProvider()

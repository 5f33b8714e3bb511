"""
GitHub File Source

Fetches the text files at ``HEAD`` of a GitHub repository through the
GraphQL API and returns them as ``SourceFile`` records.

The tree is walked breadth-first, one GraphQL request per directory.
Binary blobs are skipped. Any transport, HTTP or GraphQL error surfaces
as ``UpstreamFetchError``.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from datetime import UTC, datetime
from typing import Any, Final, Protocol
from urllib.parse import urlparse

import httpx

from repovec.core.errors import UpstreamFetchError, ValidationError
from repovec.models.schemas import SourceFile

logger = logging.getLogger(__name__)

GITHUB_HOSTS: Final[frozenset[str]] = frozenset({"github.com", "www.github.com"})
_SEGMENT = re.compile(r"^[A-Za-z0-9_.-]+$")

TREE_QUERY: Final[str] = """
query ($owner: String!, $name: String!, $expression: String!) {
  repository(owner: $owner, name: $name) {
    object(expression: $expression) {
      ... on Tree {
        entries {
          name
          type
          object {
            ... on Blob {
              text
              byteSize
              isBinary
            }
          }
        }
      }
    }
  }
}
"""


class FileSource(Protocol):
    async def fetch_files(self, url: str) -> list[SourceFile]:
        """
        Raises:
            UpstreamFetchError: Invalid locator, missing credentials or upstream failure.
        """
        ...


def normalize_url(url: str) -> str:
    """Lower-case and strip trailing slashes; the repository uniqueness key."""
    return url.strip().lower().rstrip("/")


def parse_repository_url(url: str) -> tuple[str, str]:
    """
    Extract ``(owner, name)`` from a GitHub repository URL.

    Accepts ``https://github.com/<owner>/<name>`` with an optional ``.git``
    suffix and trailing slashes.

    Raises:
        ValidationError: If the URL is not a GitHub repository URL.
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or parsed.netloc.lower() not in GITHUB_HOSTS:
        raise ValidationError(f"Not a GitHub repository URL: '{url}'")

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) != 2:
        raise ValidationError(f"Expected https://github.com/<owner>/<name>, got '{url}'")

    owner, name = parts
    name = name.removesuffix(".git")
    if not (_SEGMENT.match(owner) and _SEGMENT.match(name)):
        raise ValidationError(f"Invalid owner or repository name in '{url}'")
    return owner, name


def _extension(path: str) -> str:
    filename = path.rsplit("/", 1)[-1]
    return filename.rsplit(".", 1)[-1] if "." in filename else ""


class GitHubFileSource:
    """
    ``FileSource`` backed by the GitHub GraphQL API.

    Usage::

        source = GitHubFileSource(token=settings.GITHUB_TOKEN)
        files = await source.fetch_files("https://github.com/owner/repo")

    Args:
        token: GitHub token sent as a bearer credential (required).
        graphql_url: GraphQL endpoint.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests inject a MockTransport).
    """

    def __init__(
        self,
        token: str | None,
        graphql_url: str = "https://api.github.com/graphql",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._graphql_url = graphql_url
        self._timeout = timeout
        self._transport = transport

    async def fetch_files(self, url: str) -> list[SourceFile]:
        if not self._token:
            raise UpstreamFetchError("GITHUB_TOKEN is not configured")
        try:
            owner, name = parse_repository_url(url)
        except ValidationError as exc:
            raise UpstreamFetchError(str(exc)) from exc

        fetched_at = datetime.now(UTC).isoformat()
        files: list[SourceFile] = []
        pending: deque[str] = deque([""])

        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self._token}"},
        ) as client:
            while pending:
                directory = pending.popleft()
                for entry in await self._list_tree(client, owner, name, directory):
                    path = f"{directory}/{entry['name']}" if directory else entry["name"]
                    if entry.get("type") == "tree":
                        pending.append(path)
                        continue
                    blob = entry.get("object") or {}
                    if entry.get("type") != "blob" or blob.get("isBinary"):
                        continue
                    files.append(
                        SourceFile(
                            path=path,
                            content=blob.get("text") or "",
                            size=blob.get("byteSize") or 0,
                            extension=_extension(path),
                            last_modified=fetched_at,
                        )
                    )

        logger.info("Fetched %d files from %s/%s", len(files), owner, name)
        return files

    async def _list_tree(
        self,
        client: httpx.AsyncClient,
        owner: str,
        name: str,
        directory: str,
    ) -> list[dict[str, Any]]:
        payload = {
            "query": TREE_QUERY,
            "variables": {
                "owner": owner,
                "name": name,
                "expression": f"HEAD:{directory}",
            },
        }
        try:
            response = await client.post(self._graphql_url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamFetchError(
                f"GitHub API returned {exc.response.status_code} for {owner}/{name}"
            ) from exc
        except (httpx.RequestError, ValueError) as exc:
            raise UpstreamFetchError(
                f"Failed to fetch repository data for {owner}/{name}: {exc}"
            ) from exc

        if data.get("errors"):
            messages = "; ".join(e.get("message", "?") for e in data["errors"])
            raise UpstreamFetchError(f"GitHub GraphQL error for {owner}/{name}: {messages}")

        repository = (data.get("data") or {}).get("repository")
        if repository is None:
            raise UpstreamFetchError(f"Repository {owner}/{name} not found")

        tree = repository.get("object")
        if tree is None:
            # Empty repository (no HEAD yet)
            return []
        return list(tree.get("entries") or [])

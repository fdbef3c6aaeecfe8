"""
GitHub REST API client for Repoaudit.

Fetches repository metadata, directory listings and file contents.
Uses GITHUB_TOKEN environment variable for authentication.

Supports:
- Contents API (directory listing, base64 file reads)
- Contributors and paginated commit history
- Rate limit and not-found detection
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import time
from dataclasses import dataclass, field
from typing import Any, Iterator
from urllib.parse import quote

import requests

from . import __version__


logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
DEFAULT_PER_PAGE = 100
MAX_RETRIES = 3
RETRY_DELAY = 1.0
DEFAULT_MAX_COMMIT_PAGES = 10


@dataclass
class ContentEntry:
    """One item of a directory listing."""
    name: str
    path: str
    type: str  # file, dir, symlink, submodule
    size: int = 0


@dataclass
class Contributor:
    login: str
    contributions: int = 0


@dataclass
class Commit:
    sha: str
    author: str | None
    date: str | None
    login: str | None = None


@dataclass
class RepoMetadata:
    """Parsed repository metadata."""
    name: str
    full_name: str
    description: str | None
    default_branch: str
    owner: str
    created_at: str | None
    pushed_at: str | None
    fork: bool
    contributors: list[Contributor] = field(default_factory=list)
    commits: list[Commit] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "default_branch": self.default_branch,
            "owner": self.owner,
            "created_at": self.created_at,
            "pushed_at": self.pushed_at,
            "fork": self.fork,
            "contributors": [
                {"login": c.login, "contributions": c.contributions} for c in self.contributors
            ],
            "commit_count": len(self.commits),
        }


class GitHubAPIError(Exception):
    """Error from GitHub API."""
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(GitHubAPIError):
    """Rate limit exceeded."""
    def __init__(self, reset_time: int | None = None, status_code: int = 403):
        super().__init__("GitHub API rate limit exceeded", status_code)
        self.reset_time = reset_time


class NotFoundError(GitHubAPIError):
    """Repository or path does not exist (or is not visible with this token)."""
    def __init__(self, message: str):
        super().__init__(message, 404)


class GitHubClient:
    """GitHub REST API client with pagination and rate limit handling."""

    def __init__(self, token: str | None = None, session: requests.Session | None = None):
        self.token = token or os.environ.get("GITHUB_TOKEN")
        self.session = session or requests.Session()

        if self.token:
            self.session.headers["Authorization"] = f"token {self.token}"

        self.session.headers["Accept"] = "application/vnd.github.v3+json"
        self.session.headers["User-Agent"] = f"repoaudit/{__version__}"

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Make an API request with retry and rate limit handling."""
        url = f"{GITHUB_API_BASE}{endpoint}"

        for attempt in range(MAX_RETRIES):
            try:
                response = self.session.request(method, url, params=params, **kwargs)
            except requests.RequestException as e:
                if attempt < MAX_RETRIES - 1:
                    logger.debug("Retrying %s after error: %s", endpoint, e)
                    time.sleep(RETRY_DELAY * (attempt + 1))
                    continue
                raise GitHubAPIError(f"Request failed: {e}")

            # Check rate limit
            if response.status_code in (403, 429):
                remaining = response.headers.get("X-RateLimit-Remaining")
                if remaining == "0" or response.status_code == 429:
                    reset_time = int(response.headers.get("X-RateLimit-Reset", 0))
                    raise RateLimitError(reset_time, response.status_code)

            if response.status_code == 404:
                raise NotFoundError(f"Not found: {endpoint}")

            # Check for errors
            if response.status_code >= 400:
                raise GitHubAPIError(
                    f"GitHub API error: {response.status_code} - {response.text}",
                    response.status_code
                )

            return response

        raise GitHubAPIError("Max retries exceeded")

    def _paginate(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        max_pages: int | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Iterate through paginated API results."""
        params = params or {}
        params.setdefault("per_page", DEFAULT_PER_PAGE)
        page = 1

        while True:
            if max_pages and page > max_pages:
                break

            params["page"] = page
            response = self._request("GET", endpoint, params=params)
            items = response.json()

            if not items:
                break

            for item in items:
                yield item

            # Check if there are more pages
            if len(items) < params["per_page"]:
                break

            page += 1

    def list_directory(self, owner: str, repo: str, path: str = "") -> list[ContentEntry]:
        """
        List a directory through the contents API.

        Args:
            owner: Repository owner
            repo: Repository name
            path: Slash-delimited path, "" for the root

        Returns:
            Entries in the order GitHub returned them
        """
        endpoint = f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}".rstrip("/")
        data = self._request("GET", endpoint).json()

        if isinstance(data, dict):
            # Path points at a file, not a directory
            raise GitHubAPIError(f"Not a directory: {path}")

        return [
            ContentEntry(
                name=item.get("name", ""),
                path=item.get("path", ""),
                type=item.get("type", "file"),
                size=item.get("size") or 0,
            )
            for item in data
        ]

    def read_file(self, owner: str, repo: str, path: str) -> bytes:
        """Read a file's raw bytes through the contents API."""
        endpoint = f"/repos/{owner}/{repo}/contents/{quote(path, safe='/')}"
        data = self._request("GET", endpoint).json()

        if not isinstance(data, dict) or data.get("type") != "file":
            raise GitHubAPIError(f"Not a file: {path}")

        content = data.get("content") or ""
        if data.get("encoding", "base64") != "base64":
            # Files over the contents API limit come back with encoding "none"
            raise GitHubAPIError(f"Content not inline for {path}")

        try:
            return base64.b64decode(content)
        except (binascii.Error, ValueError) as e:
            raise GitHubAPIError(f"Could not decode {path}: {e}")

    def get_repository(
        self,
        owner: str,
        repo: str,
        max_commit_pages: int | None = DEFAULT_MAX_COMMIT_PAGES,
    ) -> RepoMetadata:
        """
        Get repository metadata with contributors and commits.

        Contributor and commit lookups are best-effort; failures leave the
        lists empty.
        """
        data = self._request("GET", f"/repos/{owner}/{repo}").json()
        owner_data = data.get("owner") or {}

        metadata = RepoMetadata(
            name=data.get("name", repo),
            full_name=data.get("full_name", f"{owner}/{repo}"),
            description=data.get("description"),
            default_branch=data.get("default_branch", "main"),
            owner=owner_data.get("login", owner),
            created_at=data.get("created_at"),
            pushed_at=data.get("pushed_at"),
            fork=bool(data.get("fork", False)),
        )

        try:
            metadata.contributors = self.list_contributors(owner, repo)
        except GitHubAPIError as e:
            logger.warning(f"Could not fetch contributors: {e}")

        try:
            metadata.commits = self.list_commits(owner, repo, max_pages=max_commit_pages)
        except GitHubAPIError as e:
            logger.warning(f"Could not fetch commits: {e}")

        return metadata

    def list_contributors(self, owner: str, repo: str) -> list[Contributor]:
        """First page (up to 100) of contributors."""
        response = self._request(
            "GET",
            f"/repos/{owner}/{repo}/contributors",
            params={"per_page": DEFAULT_PER_PAGE},
        )
        # Empty repositories return 204 with no body
        if response.status_code == 204 or not response.content:
            return []
        return [
            Contributor(login=item.get("login", ""), contributions=item.get("contributions", 0))
            for item in response.json()
        ]

    def list_commits(
        self,
        owner: str,
        repo: str,
        max_pages: int | None = DEFAULT_MAX_COMMIT_PAGES,
    ) -> list[Commit]:
        """Commits, newest first."""
        commits = []
        for item in self._paginate(f"/repos/{owner}/{repo}/commits", max_pages=max_pages):
            commit = item.get("commit") or {}
            author = commit.get("author") or {}
            user = item.get("author") or {}
            commits.append(Commit(
                sha=item.get("sha", ""),
                author=author.get("name"),
                date=author.get("date"),
                login=user.get("login"),
            ))
        return commits


class RepoContents:
    """Contents API bound to a single repository; what the crawler reads from."""

    def __init__(self, client: GitHubClient, owner: str, repo: str):
        self.client = client
        self.owner = owner
        self.repo = repo

    def list_directory(self, path: str) -> list[ContentEntry]:
        return self.client.list_directory(self.owner, self.repo, path)

    def read_file(self, path: str) -> bytes:
        return self.client.read_file(self.owner, self.repo, path)

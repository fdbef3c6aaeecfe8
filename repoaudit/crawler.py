"""
Repository crawling for Repoaudit.

Walks a repository tree through a ContentSource and builds a
RepositoryInventory:
- every kept file and directory path, parents before children
- decoded text of "important" files (source, config, docs)
- paths that could not be listed or read, with the reason

Skip rules come from config.SkipRules. A failure on the root listing is
fatal; any other failure is recorded and the walk continues.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol, Sequence

from .config import SkipRules
from .github import ContentEntry, GitHubAPIError, NotFoundError


logger = logging.getLogger(__name__)


class ContentSource(Protocol):
    """Anything that can list directories and read files of one repository."""

    def list_directory(self, path: str) -> Sequence[ContentEntry]: ...

    def read_file(self, path: str) -> bytes: ...


class CrawlError(Exception):
    """The crawl could not start."""


class RepositoryNotFoundError(CrawlError):
    """The repository (or its root) does not exist."""


def parent_path(path: str) -> str:
    return path.rpartition("/")[0]


def _ordered_unique(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True)
class RepositoryInventory:
    """Result of one crawl. Immutable once constructed."""
    files: tuple[str, ...] = ()
    directories: tuple[str, ...] = ()
    file_contents: Mapping[str, str] = field(default_factory=dict)
    inaccessible: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        files = _ordered_unique(self.files)
        known = set(files)
        stray = [path for path in self.file_contents if path not in known]
        if stray:
            raise ValueError(f"Contents recorded for unknown files: {', '.join(sorted(stray))}")

        object.__setattr__(self, "files", files)
        object.__setattr__(self, "directories", self._with_parents(self.directories, files))
        object.__setattr__(self, "file_contents", MappingProxyType(dict(self.file_contents)))
        object.__setattr__(self, "inaccessible", MappingProxyType(dict(self.inaccessible)))

    @staticmethod
    def _with_parents(directories: Iterable[str], files: Iterable[str]) -> tuple[str, ...]:
        """Directory list with every missing ancestor inserted before its children."""
        ordered: list[str] = []
        seen: set[str] = set()

        def add(path: str) -> None:
            if not path or path in seen:
                return
            add(parent_path(path))
            seen.add(path)
            ordered.append(path)

        for directory in directories:
            add(directory)
        for path in files:
            add(parent_path(path))
        return tuple(ordered)

    @property
    def file_paths(self) -> frozenset[str]:
        return frozenset(self.files)

    @property
    def directory_paths(self) -> frozenset[str]:
        return frozenset(self.directories)

    def content(self, path: str) -> str | None:
        """Fetched text of a file, or None if it was not fetched."""
        return self.file_contents.get(path)

    def has_directory_named(self, name: str) -> bool:
        """True if any directory's last segment equals name."""
        return any(d.rsplit("/", 1)[-1] == name for d in self.directories)


class _InventoryBuilder:
    """Mutable accumulator owned by a single thread."""

    def __init__(self) -> None:
        self.files: list[str] = []
        self.directories: list[str] = []
        self.contents: dict[str, str] = {}
        self.inaccessible: dict[str, str] = {}

    def merge(self, other: "_InventoryBuilder") -> None:
        self.files.extend(other.files)
        self.directories.extend(other.directories)
        self.contents.update(other.contents)
        self.inaccessible.update(other.inaccessible)

    def build(self) -> RepositoryInventory:
        return RepositoryInventory(
            files=tuple(self.files),
            directories=tuple(self.directories),
            file_contents=self.contents,
            inaccessible=self.inaccessible,
        )


class Crawler:
    """Depth-first crawler over a ContentSource."""

    def __init__(
        self,
        source: ContentSource,
        rules: SkipRules | None = None,
        max_workers: int = 1,
    ):
        self.source = source
        self.rules = rules or SkipRules()
        self.max_workers = max(1, max_workers)

    def crawl(self) -> RepositoryInventory:
        """
        Walk the whole repository.

        Returns:
            The finished inventory. Nothing is returned if the walk is
            interrupted, so a partial inventory is never visible.

        Raises:
            RepositoryNotFoundError: the root listing returned 404
            CrawlError: the root listing failed for any other reason
        """
        try:
            root_entries = list(self.source.list_directory(""))
        except NotFoundError as e:
            raise RepositoryNotFoundError(f"Repository not found: {e}") from e
        except GitHubAPIError as e:
            raise CrawlError(f"Could not list repository root: {e}") from e

        builder = _InventoryBuilder()
        if self.max_workers > 1:
            self._walk_parallel(root_entries, builder)
        else:
            self._walk(root_entries, builder)

        inventory = builder.build()
        logger.info(
            "Crawled %d directories and %d files (%d with content, %d inaccessible)",
            len(inventory.directories),
            len(inventory.files),
            len(inventory.file_contents),
            len(inventory.inaccessible),
        )
        return inventory

    def _walk(self, entries: Sequence[ContentEntry], builder: _InventoryBuilder) -> None:
        for entry in entries:
            if entry.type == "dir":
                self._visit_directory(entry.path, builder)
            elif entry.type == "file":
                self._visit_file(entry, builder)
            else:
                logger.debug("Ignoring %s entry %s", entry.type, entry.path)

    def _visit_directory(self, path: str, builder: _InventoryBuilder) -> None:
        if self.rules.skip_directory(path):
            logger.debug("Skipping directory %s", path)
            return

        builder.directories.append(path)
        try:
            children = self.source.list_directory(path)
        except GitHubAPIError as e:
            logger.warning(f"Could not access {path}: {e}")
            builder.inaccessible[path] = str(e)
            return

        self._walk(children, builder)

    def _visit_file(self, entry: ContentEntry, builder: _InventoryBuilder) -> None:
        if self.rules.skip_file(entry.path, entry.size):
            logger.debug("Skipping file %s (%d bytes)", entry.path, entry.size)
            return

        builder.files.append(entry.path)
        if not self.rules.is_important(entry.path):
            return

        try:
            builder.contents[entry.path] = self.source.read_file(entry.path).decode("utf-8")
        except GitHubAPIError as e:
            logger.warning(f"Could not fetch content for {entry.path}: {e}")
            builder.inaccessible[entry.path] = str(e)
        except UnicodeDecodeError as e:
            logger.warning(f"Could not decode {entry.path} as UTF-8: {e}")
            builder.inaccessible[entry.path] = f"not valid UTF-8: {e.reason}"

    def _walk_subtree(self, path: str) -> _InventoryBuilder:
        builder = _InventoryBuilder()
        self._visit_directory(path, builder)
        return builder

    def _walk_parallel(
        self,
        root_entries: Sequence[ContentEntry],
        builder: _InventoryBuilder,
    ) -> None:
        """Walk top-level directories concurrently, merging results in listing order."""
        executor = ThreadPoolExecutor(max_workers=self.max_workers)
        try:
            futures: dict[str, Future[_InventoryBuilder]] = {
                entry.path: executor.submit(self._walk_subtree, entry.path)
                for entry in root_entries
                if entry.type == "dir"
            }
            for entry in root_entries:
                if entry.type == "dir":
                    builder.merge(futures[entry.path].result())
                elif entry.type == "file":
                    self._visit_file(entry, builder)
        finally:
            executor.shutdown(wait=True, cancel_futures=True)

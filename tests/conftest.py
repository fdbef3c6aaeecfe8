from __future__ import annotations

import pytest

from repoaudit.crawler import Crawler, RepositoryInventory
from repoaudit.github import (
    Commit,
    ContentEntry,
    Contributor,
    GitHubAPIError,
    NotFoundError,
    RepoMetadata,
)


class FakeSource:
    """In-memory repository: file path -> text (or bytes)."""

    def __init__(self, files, sizes=None, failing=(), missing=False):
        self.files = dict(files)
        self.sizes = dict(sizes or {})
        self.failing = set(failing)
        self.missing = missing
        self.listed: list[str] = []
        self.read: list[str] = []

    def _children(self, path: str) -> list[ContentEntry]:
        prefix = f"{path}/" if path else ""
        children: dict[str, ContentEntry] = {}
        for file_path, data in self.files.items():
            if not file_path.startswith(prefix):
                continue
            head, sep, _ = file_path[len(prefix):].partition("/")
            child = prefix + head
            if child in children:
                continue
            if sep:
                children[child] = ContentEntry(name=head, path=child, type="dir")
            else:
                size = self.sizes.get(child, len(data))
                children[child] = ContentEntry(name=head, path=child, type="file", size=size)
        return list(children.values())

    def list_directory(self, path: str) -> list[ContentEntry]:
        self.listed.append(path)
        if self.missing and not path:
            raise NotFoundError("Not Found")
        if path in self.failing:
            raise GitHubAPIError(f"Server error listing {path}", 500)
        children = self._children(path)
        if path and not children:
            raise NotFoundError(f"Not Found: {path}")
        return children

    def read_file(self, path: str) -> bytes:
        self.read.append(path)
        if path in self.failing:
            raise GitHubAPIError(f"Server error reading {path}", 500)
        data = self.files[path]
        return data if isinstance(data, bytes) else data.encode("utf-8")


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture
def crawl():
    """Crawl an in-memory file mapping into an inventory."""
    def _crawl(files, **kwargs) -> RepositoryInventory:
        return Crawler(FakeSource(files, **kwargs)).crawl()
    return _crawl


EXPRESS_APP = {
    "package.json": (
        '{"name": "budget-tracker", "description": "Track your monthly budget",'
        ' "dependencies": {"express": "^4.18.0", "mongoose": "^7.0.0", "cors": "^2.8.5",'
        ' "helmet": "^7.0.0", "jsonwebtoken": "^9.0.0"},'
        ' "devDependencies": {"jest": "^29.0.0"}, "scripts": {"test": "jest"}}'
    ),
    "README.md": (
        "# Budget Tracker\n\nA finance dashboard.\n\n## Installation\n\nnpm install\n\n"
        "## API\n\nGET /api/expenses endpoint returns expenses.\n\n## Usage\n\nExample: ...\n"
    ),
    "index.js": (
        "// Entry point\n"
        "require('dotenv').config();\n"
        "const express = require('express');\n"
        "const cors = require('cors');\n"
        "const mongoose = require('mongoose');\n"
        "const app = express();\n"
        "app.use(cors());\n"
        "mongoose.connect(process.env.MONGO_URL);\n"
        "app.get('/health', (req, res) => res.json({ ok: true }));\n"
        "app.use((err, req, res, next) => { res.status(500).json({ error: err.message }); });\n"
        "app.listen(process.env.PORT || 3000);\n"
    ),
    "routes/expenses.js": "const router = require('express').Router();\nmodule.exports = router;\n",
    "controllers/expenseController.js": "exports.list = async (req, res) => res.json([]);\n",
    "models/expense.js": "const mongoose = require('mongoose');\n",
    "middleware/auth.js": "module.exports = (req, res, next) => next();\n",
    "config/db.js": "module.exports = { url: process.env.MONGO_URL };\n",
    "tests/expenses.test.js": "test('lists', () => {});\n",
    "public/logo.png": b"\x89PNG\r\n",
}


@pytest.fixture
def express_app() -> dict:
    return dict(EXPRESS_APP)


class FakeClient:
    """Stands in for GitHubClient: metadata plus an in-memory tree."""

    def __init__(self, files, metadata=None, **kwargs):
        self.source = FakeSource(files, **kwargs)
        self.metadata = metadata

    def get_repository(self, owner, repo):
        if self.metadata is None:
            raise NotFoundError(f"Not found: /repos/{owner}/{repo}")
        return self.metadata

    def list_directory(self, owner, repo, path=""):
        return self.source.list_directory(path)

    def read_file(self, owner, repo, path):
        return self.source.read_file(path)


def repo_metadata(**overrides) -> RepoMetadata:
    values = dict(
        name="budget-tracker",
        full_name="acme/budget-tracker",
        description="Track your monthly budget",
        default_branch="main",
        owner="acme",
        created_at="2025-07-02T09:00:00Z",
        pushed_at="2025-07-06T18:00:00Z",
        fork=False,
        contributors=[Contributor("alice", 30), Contributor("bob", 12)],
        commits=[Commit(sha=f"c{i}", author="alice", date=None) for i in range(15)],
    )
    values.update(overrides)
    return RepoMetadata(**values)


@pytest.fixture
def make_client():
    return FakeClient


@pytest.fixture
def metadata() -> RepoMetadata:
    return repo_metadata()

from __future__ import annotations

import base64
from unittest.mock import Mock, patch

import pytest
import requests

from repoaudit.github import (
    GitHubAPIError,
    GitHubClient,
    NotFoundError,
    RateLimitError,
    RepoContents,
)


def mock_response(status_code=200, json_data=None, headers=None, text="", content=b"x"):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.headers = headers or {}
    response.text = text
    response.content = content
    return response


def client_returning(*responses) -> GitHubClient:
    session = Mock()
    session.headers = {}
    session.request.side_effect = list(responses)
    return GitHubClient(token="test-token", session=session)


def test_token_and_headers_set():
    client = client_returning()

    assert client.session.headers["Authorization"] == "token test-token"
    assert client.session.headers["User-Agent"].startswith("repoaudit/")


def test_list_directory_parses_entries():
    client = client_returning(mock_response(json_data=[
        {"name": "src", "path": "src", "type": "dir", "size": 0},
        {"name": "README.md", "path": "README.md", "type": "file", "size": 120},
    ]))

    entries = client.list_directory("acme", "shop")

    assert [(e.path, e.type, e.size) for e in entries] == [("src", "dir", 0), ("README.md", "file", 120)]
    url = client.session.request.call_args.args[1]
    assert url == "https://api.github.com/repos/acme/shop/contents"


def test_list_directory_on_file_raises():
    client = client_returning(mock_response(json_data={"type": "file", "name": "a.js"}))

    with pytest.raises(GitHubAPIError, match="Not a directory"):
        client.list_directory("acme", "shop", "a.js")


def test_read_file_decodes_base64():
    encoded = base64.b64encode(b"console.log('hi')\n").decode()
    client = client_returning(mock_response(json_data={
        "type": "file", "encoding": "base64", "content": encoded[:8] + "\n" + encoded[8:],
    }))

    assert client.read_file("acme", "shop", "index.js") == b"console.log('hi')\n"


def test_content_paths_are_url_quoted():
    encoded = base64.b64encode(b"# Notes\n").decode()
    client = client_returning(mock_response(json_data={"type": "file", "encoding": "base64", "content": encoded}))

    client.read_file("acme", "shop", "docs/notes #1.md")

    url = client.session.request.call_args.args[1]
    assert url == "https://api.github.com/repos/acme/shop/contents/docs/notes%20%231.md"


def test_read_file_without_inline_content_raises():
    client = client_returning(mock_response(json_data={"type": "file", "encoding": "none", "content": ""}))

    with pytest.raises(GitHubAPIError, match="not inline"):
        client.read_file("acme", "shop", "huge.json")


def test_not_found_maps_to_not_found_error():
    client = client_returning(mock_response(status_code=404))

    with pytest.raises(NotFoundError) as excinfo:
        client.list_directory("acme", "missing")
    assert excinfo.value.status_code == 404


def test_rate_limit_error():
    client = client_returning(mock_response(
        status_code=403,
        headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"},
    ))

    with pytest.raises(RateLimitError) as excinfo:
        client.list_directory("acme", "shop")
    assert excinfo.value.reset_time == 1700000000


def test_forbidden_without_rate_limit_is_api_error():
    client = client_returning(mock_response(status_code=403, headers={"X-RateLimit-Remaining": "12"}, text="nope"))

    with pytest.raises(GitHubAPIError) as excinfo:
        client.list_directory("acme", "shop")
    assert not isinstance(excinfo.value, RateLimitError)
    assert excinfo.value.status_code == 403


def test_connection_errors_are_retried():
    client = client_returning(
        requests.ConnectionError("reset"),
        mock_response(json_data=[]),
    )

    with patch("repoaudit.github.time.sleep") as sleep:
        assert client.list_directory("acme", "shop") == []
    sleep.assert_called_once()


def test_connection_errors_exhaust_retries():
    client = client_returning(*[requests.ConnectionError("down")] * 3)

    with patch("repoaudit.github.time.sleep"):
        with pytest.raises(GitHubAPIError, match="Request failed"):
            client.list_directory("acme", "shop")


def test_get_repository_with_contributors_and_commits():
    client = GitHubClient(token="test-token")
    repo_data = {
        "name": "shop",
        "full_name": "acme/shop",
        "description": "A shop",
        "default_branch": "main",
        "owner": {"login": "acme"},
        "created_at": "2025-07-01T10:00:00Z",
        "pushed_at": "2025-07-06T10:00:00Z",
        "fork": False,
    }
    contributors = mock_response(json_data=[{"login": "alice", "contributions": 12}])
    commits = [
        {"sha": "abc", "commit": {"author": {"name": "Alice", "date": "2025-07-06T10:00:00Z"}},
         "author": {"login": "alice"}},
    ]

    with patch.object(client, "_request", side_effect=[mock_response(json_data=repo_data), contributors]), \
            patch.object(client, "_paginate", return_value=iter(commits)):
        metadata = client.get_repository("acme", "shop")

    assert metadata.full_name == "acme/shop"
    assert metadata.created_at == "2025-07-01T10:00:00Z"
    assert not metadata.fork
    assert [c.login for c in metadata.contributors] == ["alice"]
    assert metadata.commits[0].login == "alice"
    assert metadata.to_dict()["commit_count"] == 1


def test_get_repository_survives_contributor_failure():
    client = GitHubClient(token="test-token")
    repo_data = {"name": "shop", "full_name": "acme/shop", "fork": True, "owner": {"login": "acme"}}

    with patch.object(
        client, "_request",
        side_effect=[mock_response(json_data=repo_data), GitHubAPIError("boom", 500)],
    ), patch.object(client, "_paginate", return_value=iter([])):
        metadata = client.get_repository("acme", "shop")

    assert metadata.fork
    assert metadata.contributors == []


def test_empty_repository_has_no_contributors():
    client = client_returning(mock_response(status_code=204, content=b""))

    assert client.list_contributors("acme", "empty") == []


def test_repo_contents_binds_repository():
    client = Mock()
    contents = RepoContents(client, "acme", "shop")

    contents.list_directory("src")
    contents.read_file("src/index.js")

    client.list_directory.assert_called_once_with("acme", "shop", "src")
    client.read_file.assert_called_once_with("acme", "shop", "src/index.js")

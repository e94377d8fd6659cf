"""Unit tests for GitHubContentStore.

HTTP is faked by patching the session's ``request`` method.
"""

from __future__ import annotations

import base64
import json
from unittest.mock import patch

import pytest
import requests

from imghost.config import Settings
from imghost.exceptions import TransferError, ValidationError
from imghost.models.remote import RemoteFile
from imghost.uploaders.github import GitHubContentStore


def make_response(status: int, payload=None, headers: dict | None = None, text: str = "") -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    response._content = json.dumps(payload).encode() if payload is not None else text.encode()
    response.headers.update(headers or {})
    return response


@pytest.fixture
def github(settings) -> GitHubContentStore:
    return GitHubContentStore(settings, session=requests.Session())


class TestPutFile:
    """Test suite for uploads."""

    def test_upload_to_free_name(self, github):
        with patch.object(github.session, "request", side_effect=[
            make_response(404, {"message": "Not Found"}),
            make_response(201, {"content": {"path": "images/cat.png"}}),
        ]) as request:
            link = github.put_file("images", "cat.png", b"meow", "feat: upload cat.png")

        assert link.path == "images/cat.png"
        assert link.raw == "https://raw.githubusercontent.com/octo/pics/main/images/cat.png"
        assert link.blob == "https://github.com/octo/pics/blob/main/images/cat.png"

        probe, put = request.call_args_list
        assert probe.args == ("GET", "repos/octo/pics/contents/images/cat.png")
        assert probe.kwargs["params"] == {"ref": "main"}
        assert put.args == ("PUT", "repos/octo/pics/contents/images/cat.png")
        body = put.kwargs["json"]
        assert base64.b64decode(body["content"]) == b"meow"
        assert body["branch"] == "main"
        assert body["message"] == "feat: upload cat.png"
        assert body["committer"] == {"name": "Swift Image Host", "email": "noreply@example.com"}
        assert put.kwargs["timeout"] == 60

    def test_collision_picks_next_free_suffix(self, github):
        with patch.object(github.session, "request", side_effect=[
            make_response(200, {"sha": "a"}),
            make_response(200, {"sha": "b"}),
            make_response(404, {"message": "Not Found"}),
            make_response(201, {}),
        ]) as request:
            link = github.put_file("/images/", "cat.png", b"meow")

        probed = [c.args[1] for c in request.call_args_list[:3]]
        assert probed == [
            "repos/octo/pics/contents/images/cat.png",
            "repos/octo/pics/contents/images/cat-1.png",
            "repos/octo/pics/contents/images/cat-2.png",
        ]
        assert link.path == "images/cat-2.png"
        assert request.call_args_list[3].kwargs["json"]["message"] == "feat: upload cat-2.png"

    def test_gives_up_when_no_name_is_free(self, github):
        with patch.object(github.session, "request", return_value=make_response(200, {"sha": "a"})) as request:
            with pytest.raises(TransferError, match="No free name"):
                _ = github.put_file("images", "cat.png", b"meow")
        assert all(c.args[0] == "GET" for c in request.call_args_list)

    def test_filename_is_sanitized(self, github):
        with patch.object(github.session, "request", side_effect=[
            make_response(404, {}),
            make_response(201, {}),
        ]):
            link = github.put_file("", "my cat (2).png", b"meow")
        assert link.path == "my-cat-2.png"

    def test_missing_token_fails_without_requests(self, settings):
        settings.token = None
        github = GitHubContentStore(settings, session=requests.Session())
        with patch.object(github.session, "request") as request:
            with pytest.raises(TransferError, match="token"):
                _ = github.put_file("images", "cat.png", b"meow")
        request.assert_not_called()

    def test_unconfigured_repository(self, settings):
        settings.owner = ""
        github = GitHubContentStore(settings, session=requests.Session())
        with pytest.raises(ValidationError, match="GITHUB_OWNER"):
            _ = github.put_file("images", "cat.png", b"meow")

    def test_rejected_put_raises_transfer_error(self, github):
        with patch.object(github.session, "request", side_effect=[
            make_response(404, {}),
            make_response(422, {"message": "Invalid request"}),
        ]):
            with pytest.raises(TransferError) as excinfo:
                _ = github.put_file("images", "cat.png", b"meow")
        assert excinfo.value.status_code == 422
        assert str(excinfo.value).startswith("GitHub 422:")
        assert not excinfo.value.rate_limited

    def test_rate_limit_is_flagged(self, github):
        limited = make_response(
            403,
            {"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Remaining": "0"},
        )
        with patch.object(github.session, "request", return_value=limited):
            with pytest.raises(TransferError) as excinfo:
                _ = github.put_file("images", "cat.png", b"meow")
        assert excinfo.value.rate_limited
        assert "rate limited" in str(excinfo.value)

    def test_probe_server_error_is_not_treated_as_free(self, github):
        with patch.object(github.session, "request", return_value=make_response(500, text="oops")):
            with pytest.raises(TransferError, match="GitHub 500"):
                _ = github.put_file("images", "cat.png", b"meow")

    def test_network_failure(self, github):
        with patch.object(
            github.session,
            "request",
            side_effect=requests.exceptions.ConnectionError("connection refused"),
        ):
            with pytest.raises(TransferError, match="Network error"):
                _ = github.put_file("images", "cat.png", b"meow")


class TestFolders:
    """Test suite for folder listing and creation."""

    def test_list_directories_under_root(self, github):
        tree = {"tree": [
            {"path": "images", "type": "tree"},
            {"path": "images/2024", "type": "tree"},
            {"path": "images/2024/trip", "type": "tree"},
            {"path": "images/2024/a.png", "type": "blob"},
            {"path": "docs", "type": "tree"},
            {"path": "images-old", "type": "tree"},
        ]}
        with patch.object(github.session, "request", return_value=make_response(200, tree)) as request:
            dirs = github.list_directories()

        assert dirs == ["images", "images/2024", "images/2024/trip"]
        assert request.call_args.args == ("GET", "repos/octo/pics/git/trees/main")
        assert request.call_args.kwargs["params"] == {"recursive": "1"}

    def test_list_directories_includes_missing_root(self, github):
        with patch.object(github.session, "request", return_value=make_response(200, {"tree": []})):
            assert github.list_directories() == ["images"]

    def test_list_directories_without_root(self, github):
        github.settings.root_dir = ""
        tree = {"tree": [{"path": "b", "type": "tree"}, {"path": "a", "type": "tree"}]}
        with patch.object(github.session, "request", return_value=make_response(200, tree)):
            assert github.list_directories() == ["a", "b"]

    def test_list_files_only_returns_files(self, github):
        listing = [
            {"name": "a.png", "path": "images/a.png", "type": "file", "size": 12,
             "sha": "s1", "download_url": "https://raw/a.png"},
            {"name": "sub", "path": "images/sub", "type": "dir", "size": 0, "sha": "s2"},
        ]
        with patch.object(github.session, "request", return_value=make_response(200, listing)):
            files = github.list_files("images")
        assert files == [RemoteFile("a.png", "images/a.png", 12, "s1", "https://raw/a.png")]

    def test_list_files_missing_folder(self, github):
        with patch.object(github.session, "request", return_value=make_response(404, {})):
            assert github.list_files("nope") == []

    def test_create_directory_commits_gitkeep(self, github):
        with patch.object(github.session, "request", return_value=make_response(201, {})) as request:
            folder = github.create_directory("\\images\\new\\")

        assert folder == "images/new"
        assert request.call_args.args == ("PUT", "repos/octo/pics/contents/images/new/.gitkeep")
        body = request.call_args.kwargs["json"]
        assert body["content"] == ""
        assert body["message"] == "chore: create folder images/new"

    def test_create_directory_requires_path(self, github):
        with pytest.raises(ValidationError):
            _ = github.create_directory("///")


class TestConnection:
    """Test suite for connection checks and session setup."""

    def test_connection_reports_repository(self, github):
        with patch.object(github.session, "request", side_effect=[
            make_response(200, {"full_name": "octo/pics", "default_branch": "main"}),
            make_response(200, {"name": "main"}),
        ]) as request:
            info = github.test_connection()

        assert info.full_name == "octo/pics"
        assert info.default_branch == "main"
        assert request.call_args_list[1].args == ("GET", "repos/octo/pics/branches/main")

    def test_connection_missing_branch(self, github):
        with patch.object(github.session, "request", side_effect=[
            make_response(200, {"full_name": "octo/pics"}),
            make_response(404, {"message": "Branch not found"}),
        ]):
            with pytest.raises(TransferError, match="GitHub 404"):
                _ = github.test_connection()

    def test_session_headers(self, github):
        headers = github.session.headers
        assert headers["Authorization"] == "Bearer t0ken"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["User-Agent"].startswith("imghost/")

    def test_default_session_targets_api_root(self):
        github = GitHubContentStore(Settings(owner="o", repo="r"))
        assert github.session.base_url == "https://api.github.com/"
        assert "Authorization" not in github.session.headers

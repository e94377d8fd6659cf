"""GitHub Contents/Trees API store implementation."""

from __future__ import annotations

import base64
import logging
from typing import Any, final
from urllib.parse import quote

import requests
from requests.exceptions import RequestException
from requests_toolbelt.sessions import BaseUrlSession
from requests_toolbelt.utils.user_agent import user_agent

from imghost import __version__
from imghost.config import Settings, normalize_repo_path
from imghost.exceptions import TransferError, ValidationError
from imghost.models.remote import RemoteFile, RepositoryInfo
from imghost.models.upload import Link
from imghost.parsers.image_collector import sanitize_filename

logger = logging.getLogger(__name__)

API_URL = "https://api.github.com/"
RAW_URL = "https://raw.githubusercontent.com"
WEB_URL = "https://github.com"

# Collision probing gives up after this many renamed candidates
MAX_NAME_ATTEMPTS = 50


def _is_rate_limit(response: requests.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code == 403:
        if response.headers.get("X-RateLimit-Remaining") == "0":
            return True
        return "rate limit" in response.text.lower()
    return False


def _quote_path(path: str) -> str:
    return quote(path, safe="/")


@final
class GitHubContentStore:
    """Reads and writes repository files through the GitHub REST API."""

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        """Initialize the store.

        Args:
            settings: Repository coordinates, token and committer identity
            session: Preconfigured session, mostly for tests
        """
        self.settings = settings
        self.timeout: int = settings.http_timeout
        self.session = session or BaseUrlSession(base_url=API_URL)
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "User-Agent": user_agent("imghost", __version__),
        })
        if settings.token:
            self.session.headers["Authorization"] = f"Bearer {settings.token}"

    @property
    def _repo_endpoint(self) -> str:
        problems = self.settings.validate(require_token=False)
        if problems:
            raise ValidationError("; ".join(problems))
        return f"repos/{self.settings.owner}/{self.settings.repo}"

    def _require_token(self) -> None:
        if not self.settings.token:
            raise TransferError("GitHub token not set (GITHUB_TOKEN)")

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        allow: tuple[int, ...] = (),
    ) -> requests.Response:
        """Make an API request with error handling.

        Args:
            method: HTTP method
            endpoint: API path relative to the API root
            params: Query parameters
            json: JSON request body
            allow: Non-2xx status codes handed back instead of raised

        Returns:
            Response object

        Raises:
            TransferError: On network failure or an unexpected status code
        """
        logger.debug("%s %s", method, endpoint)
        try:
            response = self.session.request(
                method,
                endpoint,
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except RequestException as e:
            raise TransferError(f"Network error talking to GitHub: {e}") from e

        if response.status_code in allow or response.ok:
            return response

        rate_limited = _is_rate_limit(response)
        message = f"GitHub {response.status_code}: {response.text[:500]}"
        if rate_limited:
            message = f"{message} (rate limited, try again later)"
        raise TransferError(message, status_code=response.status_code, rate_limited=rate_limited)

    def _ref_params(self) -> dict[str, str]:
        return {"ref": self.settings.branch}

    def _committer(self) -> dict[str, str]:
        return {
            "name": self.settings.committer_name,
            "email": self.settings.committer_email,
        }

    def _path_exists(self, path_in_repo: str) -> bool:
        response = self._request(
            "GET",
            f"{self._repo_endpoint}/contents/{_quote_path(path_in_repo)}",
            params=self._ref_params(),
            allow=(404,),
        )
        return response.status_code != 404

    def _free_path(self, directory: str, name: str) -> str:
        """Find a path in ``directory`` not yet taken on the branch.

        ``photo.png`` becomes ``photo-1.png``, ``photo-2.png`` and so on.
        """
        prefix = f"{directory}/" if directory else ""
        stem, dot, ext = name.rpartition(".")
        if not dot:
            stem, ext = name, ""
        else:
            ext = f".{ext}"

        candidate = f"{prefix}{name}"
        for attempt in range(1, MAX_NAME_ATTEMPTS + 1):
            if not self._path_exists(candidate):
                return candidate
            candidate = f"{prefix}{stem}-{attempt}{ext}"
        raise TransferError(
            f"No free name for {name} in '{directory}' after {MAX_NAME_ATTEMPTS} attempts"
        )

    def link_for(self, path_in_repo: str) -> Link:
        """Build raw and web URLs for a repository path."""
        owner, repo = self.settings.owner, self.settings.repo
        branch = quote(self.settings.branch, safe="")
        return Link(
            path=path_in_repo,
            raw=f"{RAW_URL}/{owner}/{repo}/{branch}/{path_in_repo}",
            blob=f"{WEB_URL}/{owner}/{repo}/blob/{branch}/{path_in_repo}",
        )

    def put_file(
        self,
        target_dir: str,
        filename: str,
        content: bytes,
        message: str | None = None,
    ) -> Link:
        """Create a new file, renaming it if the name is already taken.

        Args:
            target_dir: Repository folder to write into
            filename: Requested filename, sanitized before use
            content: Raw file bytes
            message: Commit message, defaults to ``feat: upload <name>``

        Returns:
            Link to the created file

        Raises:
            TransferError: If the token is missing or any request fails
            ValidationError: If the repository is not configured
        """
        self._require_token()
        directory = normalize_repo_path(target_dir)
        path_in_repo = self._free_path(directory, sanitize_filename(filename))
        final_name = path_in_repo.rsplit("/", 1)[-1]

        body = {
            "message": message or f"feat: upload {final_name}",
            "content": base64.b64encode(content).decode("ascii"),
            "branch": self.settings.branch,
            "committer": self._committer(),
        }
        _ = self._request(
            "PUT",
            f"{self._repo_endpoint}/contents/{_quote_path(path_in_repo)}",
            json=body,
        )
        logger.debug("Uploaded %s (%d bytes)", path_in_repo, len(content))
        return self.link_for(path_in_repo)

    def create_directory(self, path: str) -> str:
        """Create a folder by committing an empty ``.gitkeep`` into it.

        Returns:
            The normalized folder path
        """
        self._require_token()
        folder = normalize_repo_path(path)
        if not folder:
            raise ValidationError("Folder path is empty")

        body = {
            "message": f"chore: create folder {folder}",
            "content": "",
            "branch": self.settings.branch,
            "committer": self._committer(),
        }
        _ = self._request(
            "PUT",
            f"{self._repo_endpoint}/contents/{_quote_path(folder + '/.gitkeep')}",
            json=body,
        )
        return folder

    def list_directories(self) -> list[str]:
        """List every folder on the branch at or below the root folder."""
        branch = quote(self.settings.branch, safe="")
        response = self._request(
            "GET",
            f"{self._repo_endpoint}/git/trees/{branch}",
            params={"recursive": "1"},
        )
        root = self.settings.root_dir
        found: set[str] = set()
        for entry in response.json().get("tree", []):
            if entry.get("type") != "tree":
                continue
            path = entry["path"].replace("\\", "/")
            if not root or path == root or path.startswith(f"{root}/"):
                found.add(path)
        if root:
            found.add(root)
        return sorted(found)

    def list_files(self, directory: str) -> list[RemoteFile]:
        """List the files (not subfolders) directly inside a folder.

        A folder that does not exist yields an empty list.
        """
        folder = normalize_repo_path(directory)
        response = self._request(
            "GET",
            f"{self._repo_endpoint}/contents/{_quote_path(folder)}",
            params=self._ref_params(),
            allow=(404,),
        )
        if response.status_code == 404:
            return []

        data = response.json()
        if not isinstance(data, list):
            return []
        return [
            RemoteFile(
                name=entry["name"],
                path=entry["path"],
                size=entry.get("size", 0),
                sha=entry.get("sha", ""),
                download_url=entry.get("download_url"),
            )
            for entry in data
            if entry.get("type") == "file"
        ]

    def test_connection(self) -> RepositoryInfo:
        """Check that the repository and branch are reachable.

        Raises:
            TransferError: If either lookup fails
        """
        repo = self._request("GET", self._repo_endpoint).json()
        branch = quote(self.settings.branch, safe="")
        _ = self._request("GET", f"{self._repo_endpoint}/branches/{branch}")
        return RepositoryInfo(
            full_name=repo.get("full_name", f"{self.settings.owner}/{self.settings.repo}"),
            default_branch=repo.get("default_branch", ""),
            branch=self.settings.branch,
        )

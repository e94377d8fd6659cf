"""Runtime settings loaded from the environment and an optional .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from imghost.exceptions import ValidationError

DEFAULT_BRANCH = "main"
DEFAULT_ROOT_DIR = "images"
DEFAULT_COMMITTER_NAME = "Swift Image Host"
DEFAULT_COMMITTER_EMAIL = "noreply@example.com"
DEFAULT_CONCURRENCY = 2
DEFAULT_HTTP_TIMEOUT = 60


def normalize_repo_path(path: str | None) -> str:
    """Use forward slashes and strip leading/trailing separators."""
    return (path or "").replace("\\", "/").strip().strip("/")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ValidationError(f"{name} must be a positive integer, got {value}")
    return value


@dataclass
class Settings:
    """Repository and uploader settings."""

    owner: str = ""
    repo: str = ""
    branch: str = DEFAULT_BRANCH
    token: str | None = None
    root_dir: str = DEFAULT_ROOT_DIR
    committer_name: str = DEFAULT_COMMITTER_NAME
    committer_email: str = DEFAULT_COMMITTER_EMAIL
    concurrency: int = DEFAULT_CONCURRENCY
    target_dir: str = ""
    http_timeout: int = DEFAULT_HTTP_TIMEOUT

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Settings:
        """Build settings from environment variables.

        Args:
            dotenv: Load a .env file from the working directory first

        Returns:
            Settings populated from GITHUB_* and IMGHOST_* variables

        Raises:
            ValidationError: If a numeric variable is malformed
        """
        if dotenv:
            _ = load_dotenv(find_dotenv(usecwd=True))

        root_dir = normalize_repo_path(os.getenv("IMGHOST_ROOT_DIR", DEFAULT_ROOT_DIR))
        return cls(
            owner=os.getenv("GITHUB_OWNER", "").strip(),
            repo=os.getenv("GITHUB_REPO", "").strip(),
            branch=os.getenv("GITHUB_BRANCH", "").strip() or DEFAULT_BRANCH,
            token=os.getenv("GITHUB_TOKEN", "").strip() or None,
            root_dir=root_dir,
            committer_name=os.getenv("IMGHOST_COMMITTER_NAME", "").strip() or DEFAULT_COMMITTER_NAME,
            committer_email=os.getenv("IMGHOST_COMMITTER_EMAIL", "").strip() or DEFAULT_COMMITTER_EMAIL,
            concurrency=_env_int("IMGHOST_CONCURRENCY", DEFAULT_CONCURRENCY),
            target_dir=normalize_repo_path(os.getenv("IMGHOST_TARGET_DIR")) or root_dir,
            http_timeout=_env_int("IMGHOST_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
        )

    def validate(self, require_token: bool = True) -> list[str]:
        """List configuration problems, empty when usable."""
        problems: list[str] = []
        if not self.owner:
            problems.append("GITHUB_OWNER is not set")
        if not self.repo:
            problems.append("GITHUB_REPO is not set")
        if not self.branch:
            problems.append("GITHUB_BRANCH is empty")
        if require_token and not self.token:
            problems.append("GITHUB_TOKEN is not set")
        return problems

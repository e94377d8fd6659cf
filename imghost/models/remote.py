"""Remote repository data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RemoteFile:
    """A file entry listed from a repository folder."""

    name: str
    path: str
    size: int
    sha: str
    download_url: str | None


@dataclass
class RepositoryInfo:
    """Result of a successful connection test."""

    full_name: str
    default_branch: str
    branch: str

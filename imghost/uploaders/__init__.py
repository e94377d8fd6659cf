"""Remote content stores and the byte sources they consume."""

from .content import BytesSource, ContentSource, FileSource
from .github import GitHubContentStore
from .store import ContentStore

__all__ = ["BytesSource", "ContentSource", "ContentStore", "FileSource", "GitHubContentStore"]

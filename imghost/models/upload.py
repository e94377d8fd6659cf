"""Upload item data model and its state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from imghost.exceptions import StateError

if TYPE_CHECKING:
    from imghost.uploaders.content import ContentSource


class UploadStatus(str, Enum):
    """Lifecycle states of an upload item."""

    QUEUED = "queued"
    UPLOADING = "uploading"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.DONE, UploadStatus.ERROR)


@dataclass(frozen=True)
class Link:
    """Remote locators of an uploaded file."""

    path: str
    raw: str
    blob: str

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def markdown(self) -> str:
        return f"![{self.name}]({self.raw})"

    @property
    def html(self) -> str:
        return f'<img src="{self.raw}" alt="{self.name}">'


@dataclass
class UploadItem:
    """One file pending, being, or having been transferred.

    Transitions are only performed through the methods below; each one
    checks the current status and raises StateError when the move is not
    allowed.
    """

    id: int
    name: str
    size_bytes: int
    source: ContentSource
    content_type: str | None = None
    status: UploadStatus = UploadStatus.QUEUED
    progress: int = 0
    link: Link | None = None
    error: str | None = field(default=None)

    def _expect(self, *allowed: UploadStatus) -> None:
        if self.status not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise StateError(
                f"Item {self.id} ({self.name}) is {self.status.value}, expected {names}"
            )

    def start(self) -> None:
        """Queued -> Uploading."""
        self._expect(UploadStatus.QUEUED)
        self.status = UploadStatus.UPLOADING
        self.progress = 0

    def advance(self, percent: int) -> bool:
        """Record observed progress while uploading.

        Values are clamped to 0..100 and never move backwards.

        Returns:
            True if the stored progress changed
        """
        self._expect(UploadStatus.UPLOADING)
        percent = max(0, min(100, int(percent)))
        if percent <= self.progress:
            return False
        self.progress = percent
        return True

    def succeed(self, link: Link) -> None:
        """Uploading -> Done."""
        self._expect(UploadStatus.UPLOADING)
        self.status = UploadStatus.DONE
        self.progress = 100
        self.link = link
        self.error = None

    def fail(self, message: str) -> None:
        """Uploading -> Error. Progress keeps its last value."""
        self._expect(UploadStatus.UPLOADING)
        self.status = UploadStatus.ERROR
        self.error = message or "Unknown upload error"
        self.link = None

    def requeue(self) -> None:
        """Error -> Queued, for an operator retry."""
        self._expect(UploadStatus.ERROR)
        self.status = UploadStatus.QUEUED
        self.progress = 0
        self.error = None

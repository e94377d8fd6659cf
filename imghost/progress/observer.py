"""Observer interface the upload queue reports to."""

from __future__ import annotations

from typing import Protocol

from imghost.models.upload import Link, UploadStatus


class QueueObserver(Protocol):
    """Receives item transitions and batch settlement from an UploadQueue."""

    def on_item_state_changed(
        self,
        item_id: int,
        status: UploadStatus,
        progress: int,
        link: Link | None,
        error: str | None,
    ) -> None: ...

    def on_batch_settled(self) -> None: ...


class NullObserver:
    """Observer that ignores everything."""

    def on_item_state_changed(
        self,
        item_id: int,
        status: UploadStatus,
        progress: int,
        link: Link | None,
        error: str | None,
    ) -> None:
        pass

    def on_batch_settled(self) -> None:
        pass

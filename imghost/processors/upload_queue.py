"""Upload queue coordination with a bounded number of concurrent transfers."""

from __future__ import annotations

import asyncio
import inspect
import logging
import mimetypes
from collections import Counter
from pathlib import Path
from typing import Iterable, final

from imghost.config import DEFAULT_CONCURRENCY, normalize_repo_path
from imghost.exceptions import StateError, TransferError, ValidationError
from imghost.models.upload import Link, UploadItem, UploadStatus
from imghost.parsers.image_collector import (
    ensure_supported_image,
    expand_image_paths,
    sanitize_filename,
)
from imghost.progress.observer import NullObserver, QueueObserver
from imghost.uploaders.content import BytesSource, ContentSource, FileSource
from imghost.uploaders.store import ContentStore

logger = logging.getLogger(__name__)

# Share of the progress bar given to reading the content; the store call
# reports no progress of its own and success jumps to 100.
READ_PROGRESS_SHARE = 90


@final
class UploadQueue:
    """Owns the items of one uploader session and drives them to completion.

    All bookkeeping runs on the event loop thread. ``schedule()`` never
    suspends: it launches one task per item it starts, and each task calls
    back into the scheduler when it settles so freed capacity is refilled.
    """

    def __init__(
        self,
        store: ContentStore,
        observer: QueueObserver | None = None,
        concurrency_limit: int = DEFAULT_CONCURRENCY,
        target_directory: str = "",
    ) -> None:
        """Initialize an empty queue.

        Args:
            store: Remote store the files are written to
            observer: Receives state changes and batch settlement
            concurrency_limit: Maximum number of simultaneous uploads
            target_directory: Repository folder uploads go into
        """
        self.store = store
        self.observer: QueueObserver = observer or NullObserver()
        self._items: list[UploadItem] = []
        self._next_id = 1
        self._running = 0
        self._limit = DEFAULT_CONCURRENCY
        self._batch_open = False
        self._tasks: set[asyncio.Task[None]] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self.target_directory = ""

        self.set_concurrency_limit(concurrency_limit)
        self.set_target_directory(target_directory)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[UploadItem]:
        """Items in insertion order."""
        return list(self._items)

    @property
    def running_count(self) -> int:
        return self._running

    @property
    def concurrency_limit(self) -> int:
        return self._limit

    @property
    def is_quiescent(self) -> bool:
        """True when no item is queued or uploading."""
        return not any(
            item.status in (UploadStatus.QUEUED, UploadStatus.UPLOADING)
            for item in self._items
        )

    def __len__(self) -> int:
        return len(self._items)

    def get(self, item_id: int) -> UploadItem:
        """Look up an item by id.

        Raises:
            StateError: If no such item is in the queue
        """
        for item in self._items:
            if item.id == item_id:
                return item
        raise StateError(f"No item with id {item_id} in the queue")

    def counts(self) -> dict[UploadStatus, int]:
        """Number of items per status."""
        tally = Counter(item.status for item in self._items)
        return {status: tally.get(status, 0) for status in UploadStatus}

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_concurrency_limit(self, limit: int) -> None:
        """Change the bound for future scheduling passes.

        Running uploads are not preempted when the limit shrinks.

        Raises:
            ValidationError: If ``limit`` is not a positive integer
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"Concurrency limit must be a positive integer, got {limit!r}")
        self._limit = limit

    def set_target_directory(self, path: str) -> None:
        self.target_directory = normalize_repo_path(path)

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def create_item(
        self,
        name: str,
        source: ContentSource,
        size_bytes: int | None = None,
    ) -> UploadItem:
        """Validate a file and wrap it in a new queued item.

        The item gets the next id but is not added to the queue.

        Raises:
            ValidationError: If the name is not an allowed image file
        """
        ensure_supported_image(name)
        item = UploadItem(
            id=self._next_id,
            name=sanitize_filename(name),
            size_bytes=source.size if size_bytes is None else size_bytes,
            source=source,
            content_type=mimetypes.guess_type(name)[0],
        )
        self._next_id += 1
        return item

    def enqueue(self, items: Iterable[UploadItem]) -> list[UploadItem]:
        """Append items in the queued state without starting any upload.

        The whole batch is checked first; a rejected item leaves the queue
        unchanged.

        Raises:
            ValidationError: If an item is not an allowed image file
            StateError: If an item is not queued or is already present
        """
        batch = list(items)
        known = {item.id for item in self._items}
        for item in batch:
            ensure_supported_image(item.name)
            if item.status is not UploadStatus.QUEUED:
                raise StateError(f"Item {item.id} is {item.status.value}, only queued items can be added")
            if item.id in known:
                raise StateError(f"Item {item.id} is already in the queue")
            known.add(item.id)

        for item in batch:
            self._items.append(item)
            self._next_id = max(self._next_id, item.id + 1)
            self._emit(item)
        return batch

    def add_paths(self, paths: Iterable[Path]) -> list[UploadItem]:
        """Validate files or folders from disk and enqueue their images."""
        files = expand_image_paths(paths)
        return self.enqueue([self.create_item(path.name, FileSource(path)) for path in files])

    def add_bytes(self, name: str, data: bytes) -> UploadItem:
        """Enqueue in-memory image data under ``name``."""
        return self.enqueue([self.create_item(name, BytesSource(data))])[0]

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    def remove(self, item_id: int) -> UploadItem:
        """Drop an item that is not currently uploading.

        Raises:
            StateError: If the item is uploading or unknown
        """
        item = self.get(item_id)
        if item.status is UploadStatus.UPLOADING:
            raise StateError(f"Item {item_id} ({item.name}) is uploading and cannot be removed")
        self._items.remove(item)
        return item

    def retry(self, item_id: int) -> None:
        """Put a failed item back in the queue and schedule.

        Raises:
            StateError: If the item is not in the error state
        """
        item = self.get(item_id)
        item.requeue()
        self._emit(item)
        _ = self.schedule()

    def schedule(self) -> int:
        """Start queued items while there is spare capacity.

        Must be called from a running event loop. Items are picked in
        insertion order.

        Returns:
            Number of uploads launched by this pass

        Raises:
            ValidationError: If no target directory is set
        """
        if not self.target_directory:
            raise ValidationError("Choose a target folder before uploading")
        return self._launch_available()

    async def wait_settled(self) -> None:
        """Wait until no upload is in flight."""
        await self._idle.wait()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_queued(self) -> UploadItem | None:
        return next((item for item in self._items if item.status is UploadStatus.QUEUED), None)

    def _launch_available(self) -> int:
        if not self.target_directory:
            return 0

        loop = asyncio.get_running_loop()
        launched = 0
        while self._running < self._limit:
            item = self._next_queued()
            if item is None:
                break
            item.start()
            self._running += 1
            self._batch_open = True
            self._idle.clear()
            self._emit(item)

            task = loop.create_task(self._transfer(item, self.target_directory))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            launched += 1

        if launched:
            logger.debug(
                "Launched %d upload(s), %d/%d running", launched, self._running, self._limit
            )
        return launched

    async def _transfer(self, item: UploadItem, target_dir: str) -> None:
        try:
            content = await item.source.read(lambda percent: self._report_read(item, percent))
            link = await self._put(target_dir, item.name, content)
        except (TransferError, ValidationError) as e:
            logger.debug("Upload of %s failed: %s", item.name, e)
            item.fail(str(e))
        except Exception as e:
            logger.exception("Upload of %s failed unexpectedly", item.name)
            item.fail(str(e) or e.__class__.__name__)
        else:
            item.succeed(link)

        self._emit(item)
        self._settle()

    async def _put(self, target_dir: str, filename: str, content: bytes) -> Link:
        message = f"feat: upload {filename}"
        if inspect.iscoroutinefunction(self.store.put_file):
            return await self.store.put_file(target_dir, filename, content, message)
        return await asyncio.to_thread(self.store.put_file, target_dir, filename, content, message)

    def _report_read(self, item: UploadItem, percent: int) -> None:
        if item.status is not UploadStatus.UPLOADING:
            return
        if item.advance(percent * READ_PROGRESS_SHARE // 100):
            self._emit(item)

    def _settle(self) -> None:
        self._running -= 1
        _ = self._launch_available()

        if self._running == 0:
            self._idle.set()

        if self._batch_open and self.is_quiescent:
            self._batch_open = False
            try:
                self.observer.on_batch_settled()
            except Exception:
                logger.exception("Queue observer failed on batch settlement")

    def _emit(self, item: UploadItem) -> None:
        try:
            self.observer.on_item_state_changed(
                item.id, item.status, item.progress, item.link, item.error
            )
        except Exception:
            logger.exception("Queue observer failed for item %d", item.id)

"""Byte sources handed to queue items."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Protocol, final

ProgressCallback = Callable[[int], None]

# Read granularity for files on disk
DEFAULT_CHUNK_SIZE = 64 * 1024


class ContentSource(Protocol):
    """Opaque handle to the bytes of one upload."""

    @property
    def size(self) -> int: ...

    async def read(self, on_progress: ProgressCallback | None = None) -> bytes: ...


@final
class FileSource:
    """Reads a local file in chunks, yielding to the event loop between them."""

    def __init__(self, path: Path, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.path = path
        self.chunk_size = chunk_size

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    async def read(self, on_progress: ProgressCallback | None = None) -> bytes:
        """Read the whole file.

        Args:
            on_progress: Called with the percentage read after each chunk

        Returns:
            File content

        Raises:
            OSError: If the file cannot be read
        """
        total = self.size
        loaded = 0
        chunks: list[bytes] = []
        with self.path.open("rb") as fh:
            while True:
                chunk = await asyncio.to_thread(fh.read, self.chunk_size)
                if not chunk:
                    break
                chunks.append(chunk)
                loaded += len(chunk)
                if on_progress and total:
                    on_progress(loaded * 100 // total)
        if on_progress:
            on_progress(100)
        return b"".join(chunks)

    def __repr__(self) -> str:
        return f"FileSource({str(self.path)!r})"


@final
class BytesSource:
    """In-memory content, e.g. pasted from the clipboard."""

    def __init__(self, data: bytes) -> None:
        self.data = data

    @property
    def size(self) -> int:
        return len(self.data)

    async def read(self, on_progress: ProgressCallback | None = None) -> bytes:
        await asyncio.sleep(0)
        if on_progress:
            on_progress(100)
        return self.data

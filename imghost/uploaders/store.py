"""Contract between the upload queue and a remote content store."""

from __future__ import annotations

from typing import Awaitable, Protocol, Union

from imghost.models.upload import Link


class ContentStore(Protocol):
    """Anything that can write one file into a remote folder.

    ``put_file`` may be a plain method (run in a worker thread by the queue)
    or a coroutine function (awaited directly). It raises TransferError on
    failure and resolves filename collisions itself, so the returned
    ``Link.path`` may differ from the requested name.
    """

    def put_file(
        self,
        target_dir: str,
        filename: str,
        content: bytes,
        message: str | None = None,
    ) -> Union[Link, Awaitable[Link]]: ...

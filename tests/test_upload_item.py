"""Tests for the upload item state machine."""

from __future__ import annotations

import pytest

from imghost.exceptions import StateError
from imghost.models.upload import Link, UploadItem, UploadStatus
from imghost.uploaders.content import BytesSource

LINK = Link(
    path="images/cat.png",
    raw="https://raw.githubusercontent.com/o/r/main/images/cat.png",
    blob="https://github.com/o/r/blob/main/images/cat.png",
)


@pytest.fixture
def item() -> UploadItem:
    return UploadItem(id=1, name="cat.png", size_bytes=3, source=BytesSource(b"cat"))


def test_new_item_is_queued(item):
    assert item.status is UploadStatus.QUEUED
    assert item.progress == 0
    assert item.link is None
    assert item.error is None


def test_happy_path(item):
    item.start()
    assert item.status is UploadStatus.UPLOADING
    assert item.advance(40)
    item.succeed(LINK)
    assert item.status is UploadStatus.DONE
    assert item.progress == 100
    assert item.link == LINK


def test_progress_never_goes_backwards(item):
    item.start()
    assert item.advance(50)
    assert not item.advance(20)
    assert not item.advance(50)
    assert item.progress == 50
    assert item.advance(250)
    assert item.progress == 100


def test_failure_keeps_progress(item):
    item.start()
    _ = item.advance(63)
    item.fail("GitHub 401: Bad credentials")
    assert item.status is UploadStatus.ERROR
    assert item.progress == 63
    assert item.error == "GitHub 401: Bad credentials"
    assert item.link is None


def test_failure_without_message_still_records_one(item):
    item.start()
    item.fail("")
    assert item.error


def test_requeue_resets_progress_and_error(item):
    item.start()
    _ = item.advance(30)
    item.fail("boom")
    item.requeue()
    assert item.status is UploadStatus.QUEUED
    assert item.progress == 0
    assert item.error is None


@pytest.mark.parametrize(
    "action",
    [
        lambda i: i.succeed(LINK),
        lambda i: i.fail("x"),
        lambda i: i.advance(10),
        lambda i: i.requeue(),
    ],
)
def test_queued_item_rejects_other_transitions(item, action):
    with pytest.raises(StateError):
        action(item)
    assert item.status is UploadStatus.QUEUED


def test_done_item_is_final(item):
    item.start()
    item.succeed(LINK)
    for action in (item.start, item.requeue, lambda: item.fail("x")):
        with pytest.raises(StateError):
            action()
    assert item.status is UploadStatus.DONE
    assert item.progress == 100


def test_terminal_states():
    assert UploadStatus.DONE.is_terminal
    assert UploadStatus.ERROR.is_terminal
    assert not UploadStatus.QUEUED.is_terminal
    assert not UploadStatus.UPLOADING.is_terminal


def test_link_snippets():
    assert LINK.name == "cat.png"
    assert LINK.markdown == f"![cat.png]({LINK.raw})"
    assert LINK.html == f'<img src="{LINK.raw}" alt="cat.png">'

"""Upload orchestration."""

from .upload_queue import UploadQueue

__all__ = ["UploadQueue"]

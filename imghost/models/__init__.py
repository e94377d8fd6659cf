"""Data models for the image uploader."""

from .remote import RemoteFile, RepositoryInfo
from .upload import Link, UploadItem, UploadStatus

__all__ = ["Link", "RemoteFile", "RepositoryInfo", "UploadItem", "UploadStatus"]

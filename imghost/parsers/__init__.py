"""File intake and validation utilities."""

from .image_collector import (
    SUPPORTED_IMAGE_EXTENSIONS,
    collect_image_files,
    ensure_supported_image,
    expand_image_paths,
    is_supported_image,
    sanitize_filename,
)

__all__ = [
    "SUPPORTED_IMAGE_EXTENSIONS",
    "collect_image_files",
    "ensure_supported_image",
    "expand_image_paths",
    "is_supported_image",
    "sanitize_filename",
]

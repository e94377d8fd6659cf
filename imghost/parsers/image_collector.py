"""Image file intake: extension allowlist, name sanitising and folder expansion."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable

from rich.console import Console

from imghost.exceptions import ValidationError

console = Console()

# Supported image file extensions
SUPPORTED_IMAGE_EXTENSIONS = {
    '.png', '.jpg', '.jpeg', '.gif', '.bmp', '.webp', '.tif', '.tiff', '.svg'
}

_WHITESPACE = re.compile(r'\s+')
_UNSAFE_CHARS = re.compile(r'[^a-zA-Z0-9._-]')


def is_supported_image(name: str) -> bool:
    """Check a filename against the image extension allowlist."""
    return Path(name).suffix.lower() in SUPPORTED_IMAGE_EXTENSIONS


def ensure_supported_image(name: str) -> None:
    """
    Reject filenames outside the image allowlist.

    Raises:
        ValidationError: If the extension is not a supported image type
    """
    if not is_supported_image(name):
        suffix = Path(name).suffix or "(none)"
        raise ValidationError(f"Unsupported file type {suffix} for '{name}'")


def sanitize_filename(name: str) -> str:
    """
    Make a filename safe for a repository path.

    Whitespace runs become a single dash and any character outside
    letters, digits, dot, underscore and dash is dropped.

    Args:
        name: Original filename (directory parts are ignored)

    Returns:
        str: The sanitized filename

    Raises:
        ValidationError: If nothing usable is left
    """
    base = Path(name.replace('\\', '/')).name
    cleaned = _UNSAFE_CHARS.sub('', _WHITESPACE.sub('-', base.strip()))
    if not cleaned.strip('.'):
        raise ValidationError(f"Filename '{name}' has no usable characters")
    return cleaned


def collect_image_files(folder_path: Path) -> list[Path]:
    """
    Collect all image files from a folder with supported extensions.

    Args:
        folder_path: Path to the folder to scan

    Returns:
        list[Path]: List of image file paths, sorted by name
    """
    if not folder_path.exists() or not folder_path.is_dir():
        console.print(f"[red]Warning: Folder does not exist or is not a directory: {folder_path}[/red]")
        return []

    image_files: list[Path] = []
    for file_path in folder_path.iterdir():
        if file_path.is_file() and file_path.suffix.lower() in SUPPORTED_IMAGE_EXTENSIONS:
            image_files.append(file_path)

    # Sort files by name for consistent ordering
    image_files.sort(key=lambda x: x.name.lower())

    if not image_files:
        console.print(f"[yellow]Warning: No image files found in folder: {folder_path}[/yellow]")

    return image_files


def expand_image_paths(paths: Iterable[Path]) -> list[Path]:
    """
    Turn a mix of files and folders into a flat list of image files.

    Folders contribute their supported images; files named explicitly must
    themselves be supported images.

    Args:
        paths: Files and/or folders picked by the operator

    Returns:
        list[Path]: Image files in the order given

    Raises:
        ValidationError: If a path is missing or an explicit file is not an image
    """
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(collect_image_files(path))
        elif path.is_file():
            ensure_supported_image(path.name)
            files.append(path)
        else:
            raise ValidationError(f"Path does not exist: {path}")
    return files

#!/usr/bin/env python3
"""
Image Host Uploader

A command-line tool for uploading images into a folder of a GitHub repository
and getting back raw, web, Markdown and HTML links for each of them.
Uploads run a few at a time; failed uploads can be retried once the batch
has settled.

Usage:
    uv run main.py [files or folders...] --target images/2024
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from imghost.config import Settings
from imghost.exceptions import UploaderError, ValidationError
from imghost.models.upload import UploadStatus
from imghost.processors.upload_queue import UploadQueue
from imghost.progress.tracker import QueueProgressTracker
from imghost.uploaders.github import GitHubContentStore

# Initialize Rich console for output
console = Console()


def configure_logging(verbose: bool) -> None:
    """Route log records through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # requests/urllib3 are chatty at debug level
    logging.getLogger("urllib3").setLevel(logging.INFO)


def validate_environment(settings: Settings, require_token: bool = True) -> bool:
    """
    Validate that required settings are present.

    Args:
        settings: Loaded settings
        require_token: Whether the command writes to the repository

    Returns:
        bool: True if settings are usable, False otherwise
    """
    problems = settings.validate(require_token=require_token)
    if problems:
        for problem in problems:
            console.print(f"[red]Error: {problem}.[/red]")
        console.print("Please create a .env file with your repository settings:")
        console.print("GITHUB_OWNER=you\nGITHUB_REPO=images\nGITHUB_TOKEN=ghp_...")
        return False

    console.print(
        f"[green]✓[/green] Repository {settings.owner}/{settings.repo} "
        f"on branch {settings.branch}"
    )
    return True


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        description="Upload images into a GitHub repository",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  uv run main.py shot.png photos/             # Upload into the default folder
  uv run main.py *.jpg --target images/trip   # Upload into a specific folder
  uv run main.py --list-dirs                  # Show available folders
  uv run main.py --test                       # Test repository access only
        """
    )

    _ = parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        help="Image files or folders to upload"
    )

    _ = parser.add_argument(
        "--target",
        "-t",
        help="Repository folder to upload into (default: IMGHOST_TARGET_DIR or the root folder)"
    )

    _ = parser.add_argument(
        "--concurrency",
        "-c",
        type=int,
        help="Number of simultaneous uploads (default: IMGHOST_CONCURRENCY or 2)"
    )

    _ = parser.add_argument(
        "--list-dirs",
        action="store_true",
        help="List folders under the root folder and exit"
    )

    _ = parser.add_argument(
        "--list-files",
        metavar="DIR",
        help="List files in a repository folder and exit"
    )

    _ = parser.add_argument(
        "--mkdir",
        metavar="PATH",
        help="Create a folder in the repository and exit"
    )

    _ = parser.add_argument(
        "--test",
        action="store_true",
        help="Test repository access and exit"
    )

    _ = parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be uploaded without uploading"
    )

    _ = parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not offer to retry failed uploads"
    )

    _ = parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output for debugging"
    )

    return parser.parse_args(argv)


def confirm_retry(failed: int) -> bool:
    """Ask the operator whether failed uploads should be retried."""
    response = console.input(
        f"[bold]{failed} upload(s) failed. Retry them? (y/N): [/bold]"
    )
    return response.lower().strip() in ("y", "yes")


async def run_queue(queue: UploadQueue, tracker: QueueProgressTracker, offer_retry: bool = True) -> None:
    """Upload everything queued, then retry failures for as long as the operator asks."""
    with tracker.live():
        _ = queue.schedule()
        await queue.wait_settled()

    while offer_retry:
        failed = [item for item in queue.items if item.status is UploadStatus.ERROR]
        if not failed or not confirm_retry(len(failed)):
            break
        with tracker.live():
            for item in failed:
                queue.retry(item.id)
            await queue.wait_settled()


def show_directories(store: GitHubContentStore) -> None:
    for directory in store.list_directories():
        console.print(directory)


def show_files(store: GitHubContentStore, directory: str) -> None:
    files = store.list_files(directory)
    if not files:
        console.print(f"[yellow]No files in {directory or '/'}[/yellow]")
        return

    table = Table(title=f"Files in {directory or '/'}")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Raw URL", overflow="fold")
    for remote in files:
        link = store.link_for(remote.path)
        table.add_row(remote.name, f"{remote.size:,}", link.raw)
    console.print(table)


def display_summary(queue: UploadQueue, start_time: float) -> None:
    """Display final upload summary.

    Args:
        queue: The upload queue
        start_time: Start time for duration calculation
    """
    counts = queue.counts()
    duration = time.time() - start_time
    console.print("\n" + "="*60)
    console.print("[bold green]Upload Summary[/bold green]")
    console.print("="*60)
    console.print(f"[blue]Uploaded:[/blue] {counts[UploadStatus.DONE]}")
    console.print(f"[red]Failed:[/red] {counts[UploadStatus.ERROR]}")
    console.print(f"[yellow]Upload time:[/yellow] {duration:.1f} seconds")
    console.print("="*60)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the uploader."""
    start_time = time.time()
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    console.print("[bold blue]Image Host Uploader[/bold blue]\n")

    try:
        settings = Settings.from_env()
    except ValidationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)

    writes = bool(args.paths or args.mkdir) and not args.dry_run
    if not validate_environment(settings, require_token=writes):
        sys.exit(1)

    store = GitHubContentStore(settings)

    try:
        if args.test:
            info = store.test_connection()
            console.print(
                f"[green]✓ Connected to {info.full_name} "
                f"(default branch {info.default_branch}, using {info.branch})[/green]"
            )
            sys.exit(0)

        if args.list_dirs:
            show_directories(store)
            sys.exit(0)

        if args.list_files is not None:
            show_files(store, args.list_files)
            sys.exit(0)

        if args.mkdir:
            folder = store.create_directory(args.mkdir)
            console.print(f"[green]✓ Created folder {folder}[/green]")
            sys.exit(0)
    except UploaderError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        sys.exit(1)

    if not args.paths:
        console.print("[yellow]Nothing to upload. Pass image files or folders.[/yellow]")
        sys.exit(1)

    tracker = QueueProgressTracker(console)
    try:
        queue = UploadQueue(
            store,
            concurrency_limit=args.concurrency if args.concurrency is not None else settings.concurrency,
            target_directory=args.target if args.target is not None else settings.target_dir,
        )
        tracker.attach(queue)
        _ = queue.add_paths(args.paths)
    except ValidationError as e:
        tracker.display_error(str(e))
        sys.exit(1)

    if not len(queue):
        tracker.display_warning("No supported images found")
        sys.exit(1)

    if args.dry_run:
        console.print("[yellow]DRY RUN MODE - No uploads will be performed[/yellow]\n")
        for item in queue.items:
            console.print(f"  - {item.name} ({item.size_bytes:,} bytes) → {queue.target_directory}/")
        sys.exit(0)

    console.print(
        f"Uploading {len(queue)} image(s) to {queue.target_directory}/ "
        f"({queue.concurrency_limit} at a time)\n"
    )

    try:
        asyncio.run(run_queue(queue, tracker, offer_retry=not args.yes))
    except ValidationError as e:
        tracker.display_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Upload interrupted by user.[/yellow]")
        display_summary(queue, start_time)
        sys.exit(1)

    tracker.display_upload_summary(queue.items)
    display_summary(queue, start_time)

    counts = queue.counts()
    if counts[UploadStatus.ERROR]:
        sys.exit(1)
    console.print("\n[green]Upload completed successfully![/green]")


if __name__ == "__main__":
    main()

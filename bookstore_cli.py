#!/usr/bin/env python3
"""Bookstore CLI - browse, upload, delete, view and download catalog books."""
import argparse
import asyncio
import sys
import json
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx
from tabulate import tabulate
from bookstore.async_client import AsyncCatalogClient
from bookstore.config import Config
from bookstore.errors import BookstoreError, NetworkError, ValidationError
from bookstore.models import UploadFile
from bookstore.resolvers import build_resolver
from bookstore.store import CatalogStore
import logging

logger = logging.getLogger(__name__)


def display_categories(groups, format_type: str):
    """Display the grouped catalog in the specified format."""
    if not groups:
        print("No books available. Upload one to get started!")
        return

    if format_type == "table":
        for category, books in groups.items():
            print(f"\n{category}")
            rows = [
                [book.id, book.title[:50] + "..." if len(book.title) > 50 else book.title]
                for book in books
            ]
            print(tabulate(rows, headers=["ID", "Title"], tablefmt="grid"))

    elif format_type == "json":
        data = {
            category: [
                {
                    "id": book.id,
                    "title": book.title,
                    "category": book.category,
                    "object_ref": book.object_ref,
                    "url": book.url
                }
                for book in books
            ]
            for category, books in groups.items()
        }
        print(json.dumps(data, indent=2))

    elif format_type == "compact":
        for category, books in groups.items():
            for book in books:
                print(f"[{category}] {book.title} ({book.id})")


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def load_upload(path: str) -> UploadFile:
    """Read the file picked for upload; a missing file counts as no file."""
    try:
        return UploadFile.from_path(path)
    except OSError as e:
        logger.warning(f"Cannot read {path}: {e}")
        raise ValidationError(f"Please select a file: cannot read {path}") from e


async def save_download(
    url: str,
    output: Path,
    timeout: int,
    transport: Optional[httpx.AsyncBaseTransport] = None
):
    """
    Stream a resolved download URL to a local file.

    Data goes to a .part file first, so a failed transfer leaves nothing at
    the output path.

    Args:
        url: Verified download URL
        output: Destination file
        timeout: Request timeout
        transport: Optional transport override (used by tests)
    """
    partial = output.with_name(output.name + ".part")
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                with open(partial, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
    except httpx.HTTPError as e:
        partial.unlink(missing_ok=True)
        raise NetworkError(f"Download failed: {e}") from e
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    partial.replace(output)


async def run(args, config: Config, transport: Optional[httpx.AsyncBaseTransport] = None):
    """Open a session, load the catalog and run one command."""
    async with AsyncCatalogClient(config.API_URL, timeout=config.DEFAULT_TIMEOUT, transport=transport) as client:
        store = CatalogStore(client, allowed_extensions=config.ALLOWED_EXTENSIONS)
        await store.refresh()

        if args.command == "list":
            display_categories(store.categories(), args.format)

        elif args.command == "upload":
            book = await store.upload(load_upload(args.file), args.title, args.category)
            print(f"✅ Uploaded {book.title} ({book.id}) to {book.category}")
            if store.state.last_error:
                print(f"⚠️  {store.state.error_message}")

        elif args.command == "delete":
            confirmed = args.yes or confirm(f"Are you sure you want to delete {args.id}?")
            await store.delete(args.id, confirmed=confirmed)
            if not confirmed:
                print("Cancelled")
            else:
                print(f"✅ Deleted {args.id}")
            if store.state.last_error:
                print(f"⚠️  {store.state.error_message}")

        elif args.command in ("view", "download"):
            async with build_resolver(config, lambda: store.snapshot, client, transport=transport) as resolver:
                if args.command == "view":
                    print(await resolver.resolve_view(args.id))
                else:
                    url = await resolver.resolve_download(args.id)
                    output = Path(args.output or Path(urlparse(url).path).name or args.id)
                    await save_download(url, output, config.DEFAULT_TIMEOUT, transport=transport)
                    logger.info(f"✅ Downloaded {args.id} to {output}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Bookstore - catalog upload & viewer CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List books grouped by category
  %(prog)s list

  # Upload a book
  %(prog)s upload dune.pdf --title "Dune" --category Scifi

  # Delete without prompting
  %(prog)s delete books/abc123 --yes

  # Resolve a view URL through the service instead of the CDN
  %(prog)s --strategy brokered view books/abc123
        """
    )
    parser.add_argument("--strategy", choices=["direct", "brokered"], help="Access resolution strategy")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    list_parser = subparsers.add_parser("list", help="List books by category")
    list_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    upload_parser = subparsers.add_parser("upload", help="Upload a new book")
    upload_parser.add_argument("file", help="File to upload")
    upload_parser.add_argument("--title", required=True, help="Book title")
    upload_parser.add_argument("--category", default="", help="Category (default: Uncategorized)")

    delete_parser = subparsers.add_parser("delete", help="Delete a book")
    delete_parser.add_argument("id", help="Book identifier")
    delete_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    view_parser = subparsers.add_parser("view", help="Print a verified view URL")
    view_parser.add_argument("id", help="Book identifier")

    download_parser = subparsers.add_parser("download", help="Download a book")
    download_parser.add_argument("id", help="Book identifier")
    download_parser.add_argument("--output", help="Output file (default: name from URL)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()
    if args.strategy:
        config.RESOLVER_STRATEGY = args.strategy

    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        asyncio.run(run(args, config))

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except BookstoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

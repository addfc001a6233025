"""Catalog state and the upload/delete pipeline."""
from contextlib import asynccontextmanager
from typing import Iterable, Optional
import logging

from bookstore.async_client import AsyncCatalogClient
from bookstore.categories import category_key, group_by_category
from bookstore.errors import BookstoreError, Busy, ValidationError
from bookstore.models import Book, CatalogSnapshot, CategoryGroup, OperationState, UploadFile
from bookstore.parse import parse_catalog_response, parse_created_book

logger = logging.getLogger(__name__)


class CatalogStore:
    """
    Owns the catalog snapshot and the busy/error state.

    Only one refresh, upload or delete runs at a time. A second call made
    while one is in flight is rejected with Busy rather than queued. The
    snapshot is replaced wholesale and survives every failure.
    """

    def __init__(
        self,
        client: AsyncCatalogClient,
        allowed_extensions: Optional[Iterable[str]] = None
    ):
        """
        Initialize the store.

        Args:
            client: Catalog service client
            allowed_extensions: File suffixes accepted for upload; None allows any
        """
        self.client = client
        self.allowed_extensions = (
            tuple(ext.lower() for ext in allowed_extensions)
            if allowed_extensions is not None else None
        )
        self.state = OperationState()
        self._snapshot: CatalogSnapshot = ()

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def categories(self) -> CategoryGroup:
        """Current snapshot grouped by category."""
        return group_by_category(self._snapshot)

    def dismiss_error(self):
        self.state.last_error = None

    @asynccontextmanager
    async def _operation(self, name: str):
        """
        Busy gate around one operation.

        Args:
            name: Operation name recorded in the state

        Raises:
            Busy: If another operation holds the gate
        """
        if self.state.busy:
            logger.warning(f"Rejected {name}: {self.state.operation} in progress")
            raise Busy(f"Cannot {name} while {self.state.operation} is in progress")

        self.state.busy = True
        self.state.operation = name
        self.state.last_error = None
        try:
            yield
        except BookstoreError as e:
            self.state.last_error = e
            logger.error(f"{name} failed: {e}")
            raise
        finally:
            self.state.busy = False
            self.state.operation = None

    async def refresh(self) -> CatalogSnapshot:
        """
        Reload the catalog from the service.

        Returns:
            The newly published snapshot

        Raises:
            NetworkError, ServiceError, InvalidResponse: On failure; the
                previous snapshot is kept
        """
        async with self._operation("refresh"):
            return await self._refresh()

    async def _refresh(self) -> CatalogSnapshot:
        payload = await self.client.list_books()
        snapshot = parse_catalog_response(payload)
        self._snapshot = snapshot
        logger.info(f"Catalog refreshed: {len(snapshot)} books")
        return snapshot

    def _validate_upload(self, upload: Optional[UploadFile], title: str):
        if upload is None:
            raise ValidationError("Please select a file")
        if self.allowed_extensions is not None and upload.extension not in self.allowed_extensions:
            allowed = ", ".join(self.allowed_extensions)
            raise ValidationError(f"Unsupported file type {upload.extension or '(none)'}; expected {allowed}")
        if not title or not title.strip():
            raise ValidationError("Please enter a title")

    async def upload(
        self,
        upload: Optional[UploadFile],
        title: str,
        category: Optional[str] = None
    ) -> Book:
        """
        Upload a new book and refresh the catalog.

        Args:
            upload: Selected file
            title: Book title, required
            category: Category; blank means Uncategorized

        Returns:
            The created Book as reported by the service

        Raises:
            ValidationError: On bad input, before any request
            Busy: If another operation is in flight
            InvalidResponse: If the service does not return an identifier
        """
        async with self._operation("upload"):
            self._validate_upload(upload, title)
            title = title.strip()
            category = category_key(category)

            payload = await self.client.create_book(upload, title, category)
            book = parse_created_book(payload, title, category)
            logger.info(f"Uploaded {book.title!r} as {book.id}")

            await self._refresh_after(f"upload of {book.id}")
            return book

    async def delete(self, book_id: str, confirmed: bool) -> None:
        """
        Delete a book after the caller has confirmed it.

        Args:
            book_id: Catalog identifier
            confirmed: The user's answer; False makes this a no-op

        Raises:
            ValidationError: On blank id
            Busy: If another operation is in flight
        """
        async with self._operation("delete"):
            if not book_id or not book_id.strip():
                raise ValidationError("Invalid book reference")
            if not confirmed:
                logger.info(f"Delete of {book_id} not confirmed; skipping")
                return

            await self.client.delete_book(book_id)
            logger.info(f"Deleted {book_id}")

            await self._refresh_after(f"delete of {book_id}")

    async def _refresh_after(self, what: str):
        # Mutation has succeeded by now; refresh failures are only recorded
        try:
            await self._refresh()
        except BookstoreError as e:
            self.state.last_error = e
            logger.error(f"Refresh after {what} failed: {e}")

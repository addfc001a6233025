"""Resolve catalog references to verified view/download URLs."""
import httpx
from abc import ABC, abstractmethod
from typing import Callable, Optional
import logging

from bookstore.async_client import AsyncCatalogClient
from bookstore.errors import CatalogReferenceError, NetworkError, NotFound
from bookstore.models import Book, CatalogSnapshot

logger = logging.getLogger(__name__)

SnapshotSource = Callable[[], CatalogSnapshot]


class AccessResolver(ABC):
    """
    Turn a book reference into a URL that is safe to show the user.

    Every lookup checks the locally held snapshot first, so unknown
    references never cost a network round trip. Resolution does not touch
    the store; it only reads the snapshot.
    """

    def __init__(self, snapshot_source: SnapshotSource):
        self.snapshot_source = snapshot_source

    def lookup(self, ref: str) -> Book:
        """
        Find a reference in the current snapshot.

        Args:
            ref: Book identifier

        Returns:
            The matching Book

        Raises:
            CatalogReferenceError: If the reference is blank or unknown
        """
        if ref and ref.strip():
            for book in self.snapshot_source():
                if book.id == ref:
                    return book
        logger.warning(f"Reference not in catalog: {ref!r}")
        raise CatalogReferenceError(f"Book not found in catalog: {ref}")

    async def resolve_view(self, ref: str) -> str:
        """Verified URL for viewing a book."""
        return await self._resolve(self.lookup(ref), download=False)

    async def resolve_download(self, ref: str) -> str:
        """Verified URL for downloading a book."""
        return await self._resolve(self.lookup(ref), download=True)

    @abstractmethod
    async def _resolve(self, book: Book, download: bool) -> str:
        ...

    async def close(self):
        """Release any resources held by the strategy."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class DirectProbeResolver(AccessResolver):
    """Build object-store URLs from templates and probe them with HEAD."""

    def __init__(
        self,
        snapshot_source: SnapshotSource,
        view_template: str,
        download_template: str,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the probing strategy.

        Args:
            snapshot_source: Callable returning the current snapshot
            view_template: URL template with an {object_ref} placeholder
            download_template: Attachment-disposition variant of the template
            timeout: Probe timeout in seconds
            transport: Optional transport override (used by tests)
        """
        super().__init__(snapshot_source)
        self.view_template = view_template
        self.download_template = download_template
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def object_url(self, book: Book, download: bool = False) -> str:
        template = self.download_template if download else self.view_template
        return template.replace("{object_ref}", book.object_ref)

    async def probe(self, url: str) -> bool:
        """
        Metadata-only existence check.

        Args:
            url: Object-store URL

        Returns:
            True if the object store reports the object as retrievable
        """
        try:
            response = await self.client.head(url, follow_redirects=True)
        except httpx.HTTPError as e:
            logger.error(f"Probe failed for {url}: {e}")
            raise NetworkError(f"Could not reach object store: {e}") from e

        logger.info(f"Probe {url}: {response.status_code}")
        return response.is_success

    async def _resolve(self, book: Book, download: bool) -> str:
        url = self.object_url(book, download)
        if not await self.probe(url):
            raise NotFound(f"File not found in object store: {book.object_ref}")
        return url

    async def close(self):
        await self.client.aclose()


class BrokeredResolver(AccessResolver):
    """Let the catalog service issue access URLs and vouch for existence."""

    def __init__(
        self,
        snapshot_source: SnapshotSource,
        client: AsyncCatalogClient,
        prefer_stream: bool = False
    ):
        super().__init__(snapshot_source)
        self.catalog = client
        self.prefer_stream = prefer_stream

    async def _resolve(self, book: Book, download: bool) -> str:
        # Service errors (unknown id, expired object) propagate as raised
        url = await self.catalog.get_access_url(book.id)
        if not download and self.prefer_stream:
            return self.catalog.stream_url(book.id)
        return url


def build_resolver(
    config,
    snapshot_source: SnapshotSource,
    client: AsyncCatalogClient,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> AccessResolver:
    """
    Pick the resolution strategy named in the configuration.

    Args:
        config: Config instance
        snapshot_source: Callable returning the current snapshot
        client: Catalog service client (used by the brokered strategy)
        transport: Optional transport override for the probing client

    Returns:
        AccessResolver implementation
    """
    strategy = (config.RESOLVER_STRATEGY or "").strip().lower()

    if strategy == "direct":
        return DirectProbeResolver(
            snapshot_source,
            config.VIEW_TEMPLATE,
            config.DOWNLOAD_TEMPLATE,
            timeout=config.DEFAULT_TIMEOUT,
            transport=transport
        )
    if strategy == "brokered":
        return BrokeredResolver(snapshot_source, client, prefer_stream=config.PREFER_STREAM)

    raise ValueError(f"Unknown resolver strategy: {config.RESOLVER_STRATEGY!r}")

"""Async HTTP client for the catalog service."""
import httpx
from typing import Any, Optional
import logging
from urllib.parse import quote

from bookstore.errors import InvalidResponse, NetworkError, NotFound, ServiceError
from bookstore.models import UploadFile

logger = logging.getLogger(__name__)


def service_message(response: httpx.Response) -> str:
    """Pull the service's own error message out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or f"HTTP {response.status_code}"


def raise_for_status(response: httpx.Response) -> None:
    """
    Translate a non-2xx response into a typed error.

    Args:
        response: Completed HTTP response

    Raises:
        NotFound: On 404
        ServiceError: On any other non-2xx status
    """
    if response.is_success:
        return
    message = service_message(response)
    if response.status_code == 404:
        raise NotFound(message, status_code=404)
    raise ServiceError(message, status_code=response.status_code)


class AsyncCatalogClient:
    """Async client for the remote book catalog service."""

    BOOKS_PATH = "/books"

    def __init__(
        self,
        base_url: str,
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: Service root, e.g. https://host/api
            timeout: Request timeout
            transport: Optional transport override (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        # Create async HTTP client
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def book_url(self, book_id: str, suffix: str = "") -> str:
        # Slashes in object-store ids stay literal
        return f"{self.base_url}{self.BOOKS_PATH}/{quote(book_id, safe='/')}{suffix}"

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Issue exactly one request and check its status.

        Args:
            method: HTTP method
            url: Absolute URL

        Returns:
            Successful response

        Raises:
            NetworkError: On transport failure
            NotFound, ServiceError: On non-2xx answers
        """
        logger.info(f"{method} {url}")
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise NetworkError(f"Could not reach catalog service: {e}") from e

        if not response.is_success:
            logger.warning(f"Status {response.status_code} for {method} {url}")
        raise_for_status(response)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponse(f"Service returned invalid JSON: {e}") from e

    async def list_books(self) -> Any:
        """Fetch the full catalog listing as decoded JSON."""
        response = await self._send("GET", f"{self.base_url}{self.BOOKS_PATH}")
        return self._json(response)

    async def create_book(self, upload: UploadFile, title: str, category: str) -> Any:
        """
        Upload a new book as multipart form data.

        Args:
            upload: File to send
            title: Book title
            category: Already-normalized category

        Returns:
            Decoded JSON body describing the new record
        """
        response = await self._send(
            "POST",
            f"{self.base_url}{self.BOOKS_PATH}",
            data={"title": title, "category": category},
            files={"file": (upload.filename, upload.content, upload.content_type)}
        )
        return self._json(response)

    async def delete_book(self, book_id: str) -> None:
        """Delete a book; the response body is ignored."""
        await self._send("DELETE", self.book_url(book_id))

    async def get_access_url(self, book_id: str) -> str:
        """
        Ask the service for an access URL.

        Args:
            book_id: Catalog identifier

        Returns:
            URL issued by the service
        """
        response = await self._send("GET", self.book_url(book_id, "/access-url"))
        body = self._json(response)
        if not isinstance(body, dict) or not body.get("url"):
            raise InvalidResponse(f"Service issued no access URL for {book_id}")
        return str(body["url"])

    def stream_url(self, book_id: str) -> str:
        """Embeddable view endpoint for a book. No request is made."""
        return self.book_url(book_id, "/stream")

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

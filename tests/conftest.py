"""Shared fixtures: an in-memory catalog service behind httpx.MockTransport."""
import asyncio

import httpx
import pytest

from bookstore.async_client import AsyncCatalogClient
from bookstore.store import CatalogStore

API_URL = "https://catalog.test/api"
CDN_HOST = "cdn.test"
VIEW_TEMPLATE = f"https://{CDN_HOST}/image/upload/{{object_ref}}"
DOWNLOAD_TEMPLATE = f"https://{CDN_HOST}/raw/upload/fl_attachment/{{object_ref}}"


class FakeCatalogService:
    """Routes requests for the catalog API and the object store."""

    def __init__(self, books=None, objects=None):
        self.books = list(books or [])
        self.objects = set(objects or [])
        self.requests = []
        self.offline = False
        self.list_payload = None
        self.create_payload = None
        self.next_id = 1

    def calls(self, method, path=None):
        return [
            r for r in self.requests
            if r.method == method and (path is None or r.url.path == path)
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("connection refused", request=request)

        if request.url.host == CDN_HOST:
            ref = request.url.path.rsplit("/", 1)[-1]
            if ref not in self.objects:
                return httpx.Response(404)
            if request.method == "GET":
                return httpx.Response(200, content=b"%PDF-1.4 " + ref.encode())
            return httpx.Response(200)

        path = request.url.path
        if path == "/api/books":
            if request.method == "GET":
                payload = self.list_payload if self.list_payload is not None else self.books
                return httpx.Response(200, json=payload)
            if request.method == "POST":
                return self._create(request)

        book_id = path[len("/api/books/"):]
        if book_id.endswith("/access-url"):
            book_id = book_id[:-len("/access-url")]
            if self._find(book_id) is None:
                return httpx.Response(404, json={"message": "Book not found"})
            return httpx.Response(200, json={"url": f"https://files.test/{book_id}?sig=abc"})

        if request.method == "DELETE":
            book = self._find(book_id)
            if book is None:
                return httpx.Response(404, json={"message": "Book not found"})
            self.books.remove(book)
            return httpx.Response(200)

        return httpx.Response(405)

    def _find(self, book_id):
        for book in self.books:
            if book.get("publicId") == book_id:
                return book
        return None

    def _create(self, request):
        if self.create_payload is not None:
            return httpx.Response(201, json=self.create_payload)
        fields = multipart_fields(request)
        record = {
            "publicId": f"b{self.next_id}",
            "title": fields["title"],
            "category": fields["category"],
        }
        self.next_id += 1
        self.books.append(record)
        return httpx.Response(201, json=record)


def multipart_fields(request: httpx.Request) -> dict:
    """Extract the plain text fields of a multipart body."""
    body = request.content.decode("utf-8", errors="replace")
    fields = {}
    for part in body.split("Content-Disposition: form-data; ")[1:]:
        header, _, value = part.partition("\r\n\r\n")
        if "filename=" in header:
            continue
        name = header.split('name="', 1)[1].split('"', 1)[0]
        fields[name] = value.split("\r\n--", 1)[0]
    return fields


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def service():
    return FakeCatalogService(
        books=[{"publicId": "a1", "title": "Dune", "category": "Scifi"}],
        objects={"a1"},
    )


@pytest.fixture
def transport(service):
    return httpx.MockTransport(service.handler)


@pytest.fixture
def make_store(transport):
    """Build a store whose client talks to the fake service."""
    def factory(**kwargs):
        client = AsyncCatalogClient(API_URL, transport=transport)
        return CatalogStore(client, **kwargs)
    return factory

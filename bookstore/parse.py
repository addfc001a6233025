"""Parse and validate catalog service responses."""
from typing import Any, Dict, List, Optional

from bookstore.categories import category_key
from bookstore.errors import InvalidResponse
from bookstore.models import Book, CatalogSnapshot

# Identifier spellings the service has used for the same field
ID_FIELDS = ("publicId", "id", "_id")
OBJECT_REF_FIELDS = ("publicId", "objectRef")


def _first_text(record: Dict[str, Any], fields) -> Optional[str]:
    for name in fields:
        value = record.get(name)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def parse_book(record: Any) -> Book:
    """
    Parse a single catalog record.

    Args:
        record: One element of the service's book list

    Returns:
        Book object

    Raises:
        InvalidResponse: If the record has no identifier or no title
    """
    if not isinstance(record, dict):
        raise InvalidResponse(f"Catalog entry is not an object: {record!r}")

    book_id = _first_text(record, ID_FIELDS)
    if not book_id:
        raise InvalidResponse("Catalog entry is missing its identifier")

    title = _first_text(record, ("title",))
    if not title:
        raise InvalidResponse(f"Catalog entry {book_id} is missing its title")

    return Book(
        id=book_id,
        title=title,
        category=category_key(record.get("category")),
        object_ref=_first_text(record, OBJECT_REF_FIELDS) or book_id,
        url=record.get("url") or None
    )


def parse_catalog_response(payload: Any) -> CatalogSnapshot:
    """
    Parse the full catalog listing.

    The whole response is rejected when any entry is malformed, so a
    snapshot is either complete or not published at all.

    Args:
        payload: Decoded JSON body of GET /books

    Returns:
        Snapshot tuple in service order

    Raises:
        InvalidResponse: If the payload is not a list or any entry is invalid
    """
    if isinstance(payload, dict) and isinstance(payload.get("books"), list):
        payload = payload["books"]

    if not isinstance(payload, list):
        raise InvalidResponse("Invalid response format from server")

    books: List[Book] = []
    seen_ids = set()

    for record in payload:
        book = parse_book(record)
        if book.id in seen_ids:
            raise InvalidResponse(f"Duplicate catalog entry: {book.id}")
        seen_ids.add(book.id)
        books.append(book)

    return tuple(books)


def parse_created_book(payload: Any, title: str, category: str) -> Book:
    """
    Parse the service's answer to an upload.

    Args:
        payload: Decoded JSON body of POST /books
        title: Title that was submitted
        category: Normalized category that was submitted

    Returns:
        The newly created Book

    Raises:
        InvalidResponse: If the response carries no identifier
    """
    if not isinstance(payload, dict) or not _first_text(payload, ID_FIELDS):
        raise InvalidResponse("Invalid response from server after upload")

    record = dict(payload)
    if not record.get("title"):
        record["title"] = title
    if not record.get("category"):
        record["category"] = category
    return parse_book(record)

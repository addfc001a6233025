"""Group a catalog snapshot by category."""
from typing import Any, Dict, List

from bookstore.models import UNCATEGORIZED, CatalogSnapshot, CategoryGroup


def category_key(value: Any) -> str:
    """Normalize a category; blank or missing means Uncategorized."""
    if value is None:
        return UNCATEGORIZED
    text = str(value).strip()
    return text or UNCATEGORIZED


def group_by_category(snapshot: CatalogSnapshot) -> CategoryGroup:
    """
    Group books by category.

    Args:
        snapshot: Catalog snapshot

    Returns:
        Mapping of category name to books, in order of first appearance
    """
    groups: Dict[str, List] = {}

    for book in snapshot:
        groups.setdefault(category_key(book.category), []).append(book)

    return {name: tuple(books) for name, books in groups.items()}

"""Data models for the book catalog."""
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from bookstore.errors import BookstoreError

UNCATEGORIZED = "Uncategorized"


@dataclass(frozen=True)
class Book:
    """Read replica of a catalog record owned by the remote service."""
    id: str
    title: str
    category: str = UNCATEGORIZED
    object_ref: str = ""
    url: Optional[str] = None

    def __post_init__(self):
        if not self.object_ref:
            # frozen dataclass, so bypass __setattr__
            object.__setattr__(self, "object_ref", self.id)


CatalogSnapshot = Tuple[Book, ...]
CategoryGroup = Dict[str, Tuple[Book, ...]]


@dataclass
class UploadFile:
    """A file picked for upload."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        return Path(self.filename).suffix.lower()

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "UploadFile":
        """
        Read a local file into memory.

        Args:
            path: Path to the file

        Returns:
            UploadFile with guessed content type
        """
        path = Path(path)
        content_type, _ = mimetypes.guess_type(path.name)
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=content_type or "application/octet-stream"
        )


@dataclass
class OperationState:
    """Busy/error flags shared with the presentation layer."""
    busy: bool = False
    operation: Optional[str] = None
    last_error: Optional[BookstoreError] = field(default=None)

    @property
    def error_message(self) -> Optional[str]:
        return str(self.last_error) if self.last_error else None

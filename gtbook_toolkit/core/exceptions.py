from __future__ import annotations

"""Book engine exception classes.

Every error raised by the hierarchy engine derives from :class:`GTBookError`
so front-ends can catch the whole family in one place. Caller errors
(unknown ids, blank titles) are raised before any mutation takes place;
:class:`PersistenceError` is the one case where the in-memory tree is already
ahead of the file on disk.
"""

from pathlib import Path
from typing import Optional, Union

__all__ = [
    "GTBookError",
    "NotFoundError",
    "ChapterNotFoundError",
    "MetadataNotFoundError",
    "MalformedDocumentError",
    "InvalidTitleError",
    "PersistenceError",
    "BookExistsError",
]


class GTBookError(Exception):
    """Base exception for all book engine errors.

    Carries the book root (when known) and the underlying exception that
    triggered the failure.
    """

    def __init__(self, message: str, book_root: Optional[Union[str, Path]] = None,
                 cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.book_root = book_root
        self.cause = cause

    def __str__(self) -> str:
        if self.book_root:
            return f"[Book: {self.book_root}] {super().__str__()}"
        return super().__str__()


class NotFoundError(GTBookError):
    """Raised when a chapter id or a metadata document does not exist."""
    pass


class ChapterNotFoundError(NotFoundError):
    """Raised when a chapter id is not present in the hierarchy index."""

    def __init__(self, chapter_id: str, book_root: Optional[Union[str, Path]] = None) -> None:
        super().__init__(f"Chapter not found for id '{chapter_id}'.", book_root)
        self.chapter_id = chapter_id


class MetadataNotFoundError(NotFoundError):
    """Raised when a book root holds no metadata document."""

    def __init__(self, path: Union[str, Path], cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Metadata document not found: {path}", Path(path).parent, cause)
        self.path = Path(path)


class MalformedDocumentError(GTBookError):
    """Raised when a metadata document cannot be decoded into a book.

    This covers empty documents, YAML syntax errors and documents whose
    structure does not match the expected book/chapter records.
    """
    pass


class InvalidTitleError(GTBookError):
    """Raised when a chapter or book title is empty or otherwise unusable."""

    def __init__(self, title: Optional[str], reason: str = "Title cannot be empty") -> None:
        super().__init__(f"{reason}: {title!r}")
        self.title = title


class PersistenceError(GTBookError):
    """Raised when writing a book file fails.

    The in-memory mutation that preceded the write has already been applied
    and is not rolled back; retrying the save is enough to resynchronise.
    """

    def __init__(self, path: Union[str, Path], cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Could not write {path}: {cause}", Path(path).parent, cause)
        self.path = Path(path)


class BookExistsError(GTBookError):
    """Raised when creating a book in a folder that already exists."""

    def __init__(self, path: Union[str, Path]) -> None:
        super().__init__(f"Folder '{path}' already exists.")
        self.path = Path(path)

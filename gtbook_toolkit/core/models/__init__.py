from __future__ import annotations

"""Shared data structures used across the GTBook core.

This package exposes the dataclasses describing a book and its chapter
forest, plus :class:`BookContext`, the in-memory handle services operate on.
Apart from deriving file paths, nothing here performs I/O, so the objects can
be reused in any context (unit-tests, editor integrations, scripts).
"""

from dataclasses import dataclass, field
from pathlib import Path
import threading
from typing import Iterator, List

from gtbook_toolkit.core.hierarchy import HierarchyIndex

__all__ = ["Chapter", "Book", "BookSettings", "BookContext"]


@dataclass
class Chapter:
    """A node of the chapter forest.

    A chapter does not know its parent; parentage is derived by the
    :class:`~gtbook_toolkit.core.hierarchy.HierarchyIndex`. The order of
    ``chapters`` is the reading order and is persisted as-is.
    """
    id: str
    title: str
    created_time: int = 0
    updated_time: int = 0
    chapters: List["Chapter"] = field(default_factory=list)

    def has_children(self) -> bool:
        """Return True if this chapter has sub-chapters."""
        return len(self.chapters) > 0

    def iter_subtree(self) -> Iterator["Chapter"]:
        """Yield this chapter and all of its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.chapters))


@dataclass
class Book:
    """Root aggregate: book-level fields and the ordered top-level forest."""
    title: str
    created_time: int = 0
    updated_time: int = 0
    chapters: List[Chapter] = field(default_factory=list)

    def iter_chapters(self) -> Iterator[Chapter]:
        """Yield every chapter of the book in pre-order."""
        for root in self.chapters:
            yield from root.iter_subtree()


@dataclass(frozen=True)
class BookSettings:
    """File layout of a book on disk.

    Attributes
    ----------
    meta_file
        Name of the metadata document inside the book root.
    chapters_dir
        Sub-directory holding one content file per chapter.
    content_extension
        Suffix of content files (``<id><extension>``).
    content_template
        Initial content written for a new chapter; ``{title}`` and ``{id}``
        are substituted.
    """
    meta_file: str = "gtbook.yaml"
    chapters_dir: str = "chapters"
    content_extension: str = ".md"
    content_template: str = "# {title}\n"


@dataclass(eq=False)
class BookContext:
    """In-memory handle of one loaded book.

    Attributes
    ----------
    root_dir
        Book root directory (holds the metadata document and chapters dir).
    book
        The decoded book; the single source of truth for the forest.
    settings
        File layout used to derive paths.
    index
        Derived parent/node lookup maps, rebuilt on construction.
    lock
        Re-entrant lock held by every mutating operation on this book.
    """

    root_dir: Path
    book: Book
    settings: BookSettings = field(default_factory=BookSettings)
    index: HierarchyIndex = field(default_factory=HierarchyIndex)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        self.root_dir = Path(self.root_dir)
        self.index.rebuild(self.book.chapters)

    @property
    def title(self) -> str:
        return self.book.title

    @property
    def metadata_path(self) -> Path:
        return self.root_dir / self.settings.meta_file

    @property
    def chapters_dir(self) -> Path:
        return self.root_dir / self.settings.chapters_dir

    def chapter_path(self, chapter_id: str) -> Path:
        """Return the content file path for *chapter_id*."""
        return self.chapters_dir / f"{chapter_id}{self.settings.content_extension}"

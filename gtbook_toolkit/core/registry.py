from __future__ import annotations

"""Registry of loaded books keyed by their root directory.

The :class:`BookRegistry` is the entry point front-ends use: it loads books
for workspace folders, caches their :class:`BookContext`, hands out the
structure editing service that mutates them, and notifies subscribers when a
book is (re)loaded, evicted, or its repository state changes.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from gtbook_toolkit.config import ConfigManager
from gtbook_toolkit.core.codec import MetadataCodec
from gtbook_toolkit.core.content import ChapterContentStore
from gtbook_toolkit.core.exceptions import (
    BookExistsError,
    InvalidTitleError,
    MalformedDocumentError,
    MetadataNotFoundError,
    PersistenceError,
)
from gtbook_toolkit.core.models import BookContext, BookSettings
from gtbook_toolkit.core.services import StructureEditingService
from gtbook_toolkit.core.utils import INVALID_TITLE_CHARS
from gtbook_toolkit.core.vcs import RepositoryStatusProvider, format_status

__all__ = ["BookRegistry", "BookObserver"]

logger = logging.getLogger(__name__)

# Receives the affected book, or None when a book was evicted.
BookObserver = Callable[[Optional[BookContext]], None]

PathLike = Union[str, Path]


class BookRegistry:
    """Maps book root paths to loaded :class:`BookContext` instances.

    Parameters
    ----------
    settings
        Book file layout; read from :class:`ConfigManager` when omitted.
    codec
        Metadata codec shared by loading and the editing service.
    content_store
        Content file hand-off used when chapters are created.
    vcs
        Optional repository status provider. The registry subscribes to it
        and re-notifies its own observers for the affected book.
    """

    def __init__(
        self,
        settings: Optional[BookSettings] = None,
        codec: Optional[MetadataCodec] = None,
        content_store: Optional[ChapterContentStore] = None,
        vcs: Optional[RepositoryStatusProvider] = None,
    ) -> None:
        self._settings = settings or ConfigManager().get_book_settings()
        self._codec = codec or MetadataCodec()
        self._content_store = content_store or ChapterContentStore()
        self._editing_service = StructureEditingService(self._codec, self._content_store)
        self._books: Dict[str, BookContext] = {}
        self._observers: List[BookObserver] = []
        self._vcs = vcs
        self._vcs_unsubscribe: Optional[Callable[[], None]] = None
        if vcs is not None:
            self._vcs_unsubscribe = vcs.subscribe(self._on_repository_changed)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def settings(self) -> BookSettings:
        return self._settings

    @property
    def editing_service(self) -> StructureEditingService:
        """Service performing every structural edit on registry books."""
        return self._editing_service

    @property
    def content_store(self) -> ChapterContentStore:
        return self._content_store

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, root_path: PathLike) -> BookContext:
        """Load (or load again) the book at *root_path* and cache it.

        Raises
        ------
        MetadataNotFoundError
            If the root holds no metadata document.
        MalformedDocumentError
            If the document cannot be read or decoded. Nothing is cached.
        """
        root = Path(root_path)
        book = self._codec.load(root / self._settings.meta_file)
        context = BookContext(root_dir=root, book=book, settings=self._settings)
        if context.index.duplicates:
            logger.warning("Book %s has duplicate chapter ids: %s", root, ", ".join(context.index.duplicates))
        self._books[self._key(root)] = context
        logger.info("Loaded book '%s' from %s (chapters=%d)", book.title, root, len(context.index))
        self._notify(context)
        return context

    def load_all(self, folders: Iterable[PathLike]) -> List[BookContext]:
        """Load every workspace folder that holds a book.

        Folders without a metadata document are skipped; malformed or
        unreadable books are logged and skipped so one broken folder does not
        hide the others.
        """
        loaded = []
        for folder in folders:
            try:
                loaded.append(self.load(folder))
            except MetadataNotFoundError:
                logger.info("No book found in %s", folder)
            except MalformedDocumentError as exc:
                logger.error("Skipping malformed book in %s: %s", folder, exc)
        return loaded

    def get(self, root_path: PathLike) -> Optional[BookContext]:
        """Cache lookup only; no I/O."""
        return self._books.get(self._key(root_path))

    def get_or_load(self, root_path: PathLike) -> BookContext:
        """Return the cached book, loading it on first access."""
        context = self.get(root_path)
        if context is None:
            context = self.load(root_path)
        return context

    def list(self) -> List[BookContext]:
        """All loaded books, in load order."""
        return list(self._books.values())

    def reload(self, root_path: PathLike) -> BookContext:
        """Evict the cached book and load it again from disk."""
        self.evict(root_path)
        return self.load(root_path)

    def evict(self, root_path: PathLike) -> bool:
        """Forget the book at *root_path* (workspace removal)."""
        context = self._books.pop(self._key(root_path), None)
        if context is None:
            return False
        logger.info("Evicted book %s", context.root_dir)
        self._notify(None)
        return True

    # ------------------------------------------------------------------
    # Book creation
    # ------------------------------------------------------------------

    def create_new(self, parent_dir: PathLike, title: str) -> Path:
        """Create ``<parent_dir>/<title>/`` with a fresh metadata document.

        The new book is not loaded into the registry.
        """
        clean_title = self._validate_book_title(title)
        book_dir = Path(parent_dir) / clean_title
        if book_dir.exists():
            raise BookExistsError(book_dir)

        meta_path = book_dir / self._settings.meta_file
        try:
            book_dir.mkdir(parents=True)
            meta_path.write_text(self._codec.default_document(clean_title), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to create book %s: %s", book_dir, exc)
            raise PersistenceError(meta_path, exc) from exc
        logger.info("Created book '%s' at %s", clean_title, book_dir)
        return book_dir

    @staticmethod
    def _validate_book_title(title: Optional[str]) -> str:
        if not isinstance(title, str) or not title.strip():
            raise InvalidTitleError(title, "Book title cannot be empty")
        clean = title.strip()
        if clean in (".", ".."):
            raise InvalidTitleError(title, "Book title cannot be '.' or '..'")
        if INVALID_TITLE_CHARS.search(clean):
            raise InvalidTitleError(
                title, 'Book title cannot contain the following characters: / \\ : * ? " < > |')
        return clean

    # ------------------------------------------------------------------
    # Observers and repository status
    # ------------------------------------------------------------------

    def subscribe(self, observer: BookObserver) -> Callable[[], None]:
        """Register *observer*; return a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def status(self, root_path: PathLike) -> str:
        """Version-control summary for the book, empty without a provider."""
        if self._vcs is None:
            return ""
        return format_status(self._vcs.state_for(Path(root_path)))

    def close(self) -> None:
        """Detach from the repository status provider."""
        if self._vcs_unsubscribe is not None:
            self._vcs_unsubscribe()
            self._vcs_unsubscribe = None

    def _on_repository_changed(self, root: Path) -> None:
        context = self.get(root)
        if context is not None:
            self._notify(context)

    def _notify(self, context: Optional[BookContext]) -> None:
        for observer in list(self._observers):
            try:
                observer(context)
            except Exception:
                logger.exception("Book observer %r failed", observer)

    @staticmethod
    def _key(root_path: PathLike) -> str:
        return str(Path(root_path).resolve())

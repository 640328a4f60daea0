from __future__ import annotations

"""YAML codec for the book metadata document (``gtbook.yaml``).

Document layout::

    title: My Book
    createdTime: 1700000000000
    updatedTime: 1700000000000
    chapters:
      - id: lq2x9k3a-3f9a1c
        title: Introduction
        createdTime: 1700000000000
        updatedTime: 1700000000000
        chapters: []

Decoding is forgiving about missing ``chapters`` lists (treated as empty at
every level) but rejects anything that is not a mapping of the shape above.
Encoding always stamps ``updatedTime`` and preserves chapter order exactly.
"""

import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Dict, List, Optional, Union

import yaml

from gtbook_toolkit.core.exceptions import (
    MalformedDocumentError,
    MetadataNotFoundError,
    PersistenceError,
)
from gtbook_toolkit.core.models import Book, Chapter
from gtbook_toolkit.core.utils import now_millis

__all__ = ["MetadataCodec"]

logger = logging.getLogger(__name__)

_HEADER = "# GTBook config\n"


class MetadataCodec:
    """Convert between :class:`Book` objects and metadata document text."""

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def decode(self, text: Optional[str]) -> Book:
        """Parse *text* into a :class:`Book`.

        Raises
        ------
        MalformedDocumentError
            If the document is empty, is not valid YAML, or does not describe
            a book mapping with chapter records.
        """
        if text is None or not text.strip():
            raise MalformedDocumentError("Metadata document is empty")
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise MalformedDocumentError(f"Metadata document is not valid YAML: {exc}", cause=exc) from exc

        if data is None:
            raise MalformedDocumentError("Metadata document is empty")
        if not isinstance(data, dict):
            raise MalformedDocumentError(
                f"Metadata document must be a mapping, got {type(data).__name__}")

        return Book(
            title=self._text(data.get("title"), "book title"),
            created_time=self._timestamp(data, "createdTime", "book"),
            updated_time=self._timestamp(data, "updatedTime", "book"),
            chapters=self._decode_chapters(data.get("chapters"), "book"),
        )

    def encode(self, book: Book) -> str:
        """Serialise *book*, stamping ``updated_time`` with the current time."""
        book.updated_time = now_millis()
        payload = {
            "title": book.title,
            "createdTime": book.created_time,
            "updatedTime": book.updated_time,
            "chapters": [self._encode_chapter(c) for c in book.chapters],
        }
        return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True, default_flow_style=False)

    @staticmethod
    def default_document(title: str) -> str:
        """Return the text of a fresh metadata document with an empty forest."""
        now = now_millis()
        payload = {"title": title, "createdTime": now, "updatedTime": now, "chapters": []}
        return _HEADER + yaml.safe_dump(payload, sort_keys=False, allow_unicode=True, default_flow_style=False)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def load(self, path: Union[str, Path]) -> Book:
        """Read and decode the metadata document at *path*."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise MetadataNotFoundError(path, cause=exc) from exc
        except IsADirectoryError as exc:
            raise MetadataNotFoundError(path, cause=exc) from exc
        except UnicodeDecodeError as exc:
            raise MalformedDocumentError(f"Metadata document is not UTF-8 text: {path}",
                                         book_root=path.parent, cause=exc) from exc
        except OSError as exc:
            raise MalformedDocumentError(f"Metadata document could not be read: {path}",
                                         book_root=path.parent, cause=exc) from exc
        try:
            book = self.decode(text)
        except MalformedDocumentError as exc:
            exc.book_root = path.parent
            raise
        logger.debug("Loaded metadata %s chapters=%d", path, sum(1 for _ in book.iter_chapters()))
        return book

    def save(self, book: Book, path: Union[str, Path]) -> None:
        """Encode *book* and write it to *path*.

        The document is written to a temporary sibling and moved into place,
        so a failed write never truncates the previous file.
        """
        path = Path(path)
        text = self.encode(book)
        tmp_name: Optional[str] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as fh:
                tmp_name = fh.name
                fh.write(text)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temporary file %s", tmp_name)
            logger.error("Failed to write metadata %s: %s", path, exc)
            raise PersistenceError(path, exc) from exc
        logger.debug("Saved metadata %s", path)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _decode_chapters(self, raw: Any, where: str) -> List[Chapter]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise MalformedDocumentError(f"'chapters' of {where} must be a list, got {type(raw).__name__}")
        chapters = []
        for position, record in enumerate(raw):
            chapters.append(self._decode_chapter(record, f"{where} > chapters[{position}]"))
        return chapters

    def _decode_chapter(self, record: Any, where: str) -> Chapter:
        if not isinstance(record, dict):
            raise MalformedDocumentError(f"Chapter record at {where} must be a mapping")
        raw_id = record.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int)) or str(raw_id) == "":
            raise MalformedDocumentError(f"Chapter record at {where} has no usable 'id'")
        chapter_id = str(raw_id)
        return Chapter(
            id=chapter_id,
            title=self._text(record.get("title"), f"title of {where}"),
            created_time=self._timestamp(record, "createdTime", where),
            updated_time=self._timestamp(record, "updatedTime", where),
            chapters=self._decode_chapters(record.get("chapters"), f"chapter {chapter_id}"),
        )

    def _encode_chapter(self, chapter: Chapter) -> Dict[str, Any]:
        return {
            "id": chapter.id,
            "title": chapter.title,
            "createdTime": chapter.created_time,
            "updatedTime": chapter.updated_time,
            "chapters": [self._encode_chapter(c) for c in chapter.chapters],
        }

    @staticmethod
    def _timestamp(record: Dict[str, Any], key: str, where: str) -> int:
        value = record.get(key)
        if value is None:
            return 0
        if isinstance(value, bool) or not isinstance(value, int):
            raise MalformedDocumentError(f"'{key}' of {where} must be an integer, got {value!r}")
        return value

    @staticmethod
    def _text(value: Any, what: str) -> str:
        if value is None:
            return ""
        if isinstance(value, (dict, list)):
            raise MalformedDocumentError(f"{what} must be a scalar")
        return str(value)

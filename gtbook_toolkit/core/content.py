from __future__ import annotations

"""Hand-off point for chapter content files.

Chapter bodies live in ``<book root>/chapters/<id>.md`` and are opaque to the
engine. This module only knows the naming convention: it creates the initial
stub for a new chapter and lists files that no longer belong to any chapter
so callers can reap them after a delete.
"""

import logging
from pathlib import Path
from typing import List, Optional

from gtbook_toolkit.core.exceptions import PersistenceError
from gtbook_toolkit.core.models import BookContext, Chapter

__all__ = ["ChapterContentStore"]

logger = logging.getLogger(__name__)


class ChapterContentStore:
    """Create and locate chapter content files for a book.

    Parameters
    ----------
    template
        Initial content of a new chapter file. ``{title}`` and ``{id}`` are
        substituted. Defaults to the book settings' template.
    """

    def __init__(self, template: Optional[str] = None) -> None:
        self._template = template

    def path_for(self, context: BookContext, chapter_id: str) -> Path:
        return context.chapter_path(chapter_id)

    def create_stub(self, context: BookContext, chapter: Chapter) -> Path:
        """Write the initial content file for *chapter* unless one exists."""
        path = self.path_for(context, chapter.id)
        if path.exists():
            logger.info("Content file already present for chapter %s: %s", chapter.id, path)
            return path
        template = self._template if self._template is not None else context.settings.content_template
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(template.format(title=chapter.title, id=chapter.id), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to create content file %s: %s", path, exc)
            raise PersistenceError(path, exc) from exc
        logger.debug("Created content stub %s", path)
        return path

    def orphaned(self, context: BookContext) -> List[Path]:
        """Return content files whose chapter id is not in the index."""
        directory = context.chapters_dir
        if not directory.is_dir():
            return []
        suffix = context.settings.content_extension
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.name.endswith(suffix) and p.name[: len(p.name) - len(suffix)] not in context.index
        )

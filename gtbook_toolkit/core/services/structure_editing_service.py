from __future__ import annotations

"""Service layer for structural edits on a book's chapter forest.

This module provides a UI-agnostic, testable service that owns every
mutation of the chapter tree: create, rename, delete, reorder among siblings
and batch reparenting (drag and drop).

Scope and guarantees:
- Operates on a :class:`~gtbook_toolkit.core.models.BookContext`; each
  mutation holds the context lock for its whole duration, including the
  metadata write.
- Caller errors (unknown chapter, blank title) raise before anything is
  touched.
- Sibling moves and batch moves treat impossible requests as no-ops and
  report them through ``OperationResult(success=False, ...)``.
- Every successful mutation persists the metadata document before
  returning. A failed write raises :class:`PersistenceError`; the in-memory
  change stays applied and :meth:`StructureEditingService.save` can retry.

Examples
--------
Basic usage:

    service = StructureEditingService()
    chapter = service.create_chapter(ctx, None, "Introduction")
    result = service.move_sibling(ctx, chapter.id, "up")
    if not result.success:
        print(result.message)

"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Iterable, List, Literal, Optional

from gtbook_toolkit.core.codec import MetadataCodec
from gtbook_toolkit.core.content import ChapterContentStore
from gtbook_toolkit.core.exceptions import ChapterNotFoundError, InvalidTitleError, PersistenceError
from gtbook_toolkit.core.hierarchy import HierarchyIndex
from gtbook_toolkit.core.models import BookContext, Chapter
from gtbook_toolkit.core.utils import generate_chapter_id, now_millis


__all__ = ["OperationResult", "StructureEditingService"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationResult:
    """Result of a structural editing operation.

    Attributes
    ----------
    success
        Whether the operation changed the tree.
    message
        Human-readable summary suitable for logs or UI display.
    details
        Optional structured details for diagnostics or caller logic.
    """
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None


class StructureEditingService:
    """Encapsulates structural edit operations on a chapter forest.

    The service is stateless with respect to books: every call receives the
    :class:`BookContext` to operate on. It is the only component that splices
    chapters in or out of ``chapters`` lists, and it keeps the context's
    :class:`HierarchyIndex` coherent after each splice.

    Parameters
    ----------
    codec
        Metadata codec used to persist the book after each mutation.
    content_store
        Optional content hand-off; when given, new chapters get a stub file.
    """

    def __init__(self, codec: Optional[MetadataCodec] = None,
                 content_store: Optional[ChapterContentStore] = None) -> None:
        self._codec = codec or MetadataCodec()
        self._content_store = content_store

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def create_chapter(self, context: BookContext, parent_id: Optional[str], title: str) -> Chapter:
        """Append a new chapter under *parent_id* (or at top level) and persist it.

        The content stub is best-effort: a failed stub write is logged and the
        persisted chapter is still returned.
        """
        clean_title = self._validate_title(title)
        logger.info("Edit: create_chapter parent=%s", parent_id)
        with context.lock:
            parent: Optional[Chapter] = None
            if parent_id is not None:
                parent = context.index.find(parent_id)
                if parent is None:
                    logger.warning("Edit FAIL: create_chapter parent_not_found parent=%s", parent_id)
                    raise ChapterNotFoundError(parent_id, context.root_dir)

            now = now_millis()
            chapter = Chapter(
                id=self._new_chapter_id(context.index),
                title=clean_title,
                created_time=now,
                updated_time=now,
            )
            owner = parent.chapters if parent is not None else context.book.chapters
            owner.append(chapter)
            context.index.add(chapter, parent_id)

            self._persist(context, "create_chapter")
            if self._content_store is not None:
                try:
                    self._content_store.create_stub(context, chapter)
                except PersistenceError as exc:
                    logger.warning("Edit: create_chapter content stub not written chapter=%s: %s", chapter.id, exc)

        logger.info("Edit OK: create_chapter chapter=%s parent=%s", chapter.id, parent_id)
        return chapter

    def rename_chapter(self, context: BookContext, chapter_id: str, new_title: str) -> OperationResult:
        """Change a chapter's title in place and persist."""
        logger.info("Edit: rename_chapter chapter=%s", chapter_id)
        clean_title = self._validate_title(new_title)
        with context.lock:
            chapter = self._require(context, chapter_id, "rename_chapter")
            chapter.title = clean_title
            chapter.updated_time = now_millis()
            self._persist(context, "rename_chapter")
        logger.info("Edit OK: rename_chapter chapter=%s", chapter_id)
        return OperationResult(True, "Renamed chapter.", {"chapter_id": chapter_id, "title": clean_title})

    def delete_chapter(self, context: BookContext, chapter_id: str) -> OperationResult:
        """Remove a chapter and its whole subtree, then persist once.

        Content files are left in place; ``details["deleted"]`` lists every
        removed id so the caller can reap them.
        """
        logger.info("Edit: delete_chapter chapter=%s", chapter_id)
        with context.lock:
            chapter = self._require(context, chapter_id, "delete_chapter")
            self._detach(context, chapter)
            removed = context.index.remove_subtree(chapter)
            if context.index.duplicates:
                # A surviving copy of a removed id has to take over its entry.
                context.index.rebuild(context.book.chapters)
            self._persist(context, "delete_chapter")
        logger.info("Edit OK: delete_chapter chapter=%s removed=%d", chapter_id, len(removed))
        return OperationResult(True, "Deleted chapter.", {"chapter_id": chapter_id, "deleted": removed})

    def move_sibling(
        self,
        context: BookContext,
        chapter_id: str,
        direction: Literal["up", "down"],
    ) -> OperationResult:
        """Swap a chapter with its previous ("up") or next ("down") sibling.

        Unknown ids and chapters already at the boundary are silent no-ops.
        """
        logger.info("Edit: move_sibling direction=%s chapter=%s", direction, chapter_id)
        if direction == "up":
            return self._move_sibling(context, chapter_id, delta=-1)
        if direction == "down":
            return self._move_sibling(context, chapter_id, delta=1)
        return OperationResult(False, f"Unsupported move direction '{direction}'.", {"allowed": ["up", "down"]})

    def move_subtree(
        self,
        context: BookContext,
        target_id: Optional[str],
        source_ids: Iterable[str],
    ) -> OperationResult:
        """Reparent a selection of chapters under *target_id* (``None`` = top level).

        The selection is filtered in a fixed order before anything moves:

        1. keep only local roots (drop chapters whose parent is also selected,
           they travel with that parent);
        2. for a top-level target, drop chapters that already are top-level;
        3. otherwise drop chapters that contain the target (or are the
           target), then chapters whose parent already is the target.

        Remaining chapters are appended to the target in selection order and
        the book is persisted once. Nothing is written when nothing moves.
        """
        ordered = list(dict.fromkeys(source_ids or []))
        logger.info("Edit: move_subtree count=%d target=%s", len(ordered), target_id)
        with context.lock:
            index = context.index
            target: Optional[Chapter] = None
            if target_id is not None:
                target = self._require(context, target_id, "move_subtree")
            for source_id in ordered:
                self._require(context, source_id, "move_subtree")

            candidates = self._local_roots(index, ordered)
            if target_id is None:
                candidates = [r for r in candidates if index.parent_id(r) is not None]
            else:
                # Dropping a chapter into its own subtree would create a cycle.
                candidates = [r for r in candidates if not index.is_ancestor_of(r, target_id)]
                candidates = [r for r in candidates if not index.is_direct_parent(target_id, r)]
            skipped = [s for s in ordered if s not in candidates]

            if not candidates:
                logger.info("Edit noop: move_subtree target=%s skipped=%d", target_id, len(skipped))
                return OperationResult(False, "Nothing to move.",
                                       {"moved": [], "skipped": skipped, "target_id": target_id})

            destination = target.chapters if target is not None else context.book.chapters
            for chapter_id in candidates:
                chapter = index.get(chapter_id)
                self._detach(context, chapter)
                destination.append(chapter)
                index.record_move(chapter_id, target_id)
                logger.debug("Reparented chapter=%s target=%s", chapter_id, target_id)

            self._persist(context, "move_subtree")

        logger.info("Edit OK: move_subtree moved=%d skipped=%d target=%s", len(candidates), len(skipped), target_id)
        return OperationResult(True, f"Moved {len(candidates)} chapter(s).",
                               {"moved": candidates, "skipped": skipped, "target_id": target_id})

    def save(self, context: BookContext) -> None:
        """Write the book as it is in memory (retry after a PersistenceError)."""
        with context.lock:
            self._persist(context, "save")

    # -------------------------------------------------------------------------
    # Queries for tree-view collaborators
    # -------------------------------------------------------------------------

    def get_tree(self, context: BookContext) -> List[Chapter]:
        return context.book.chapters

    def get_chapter(self, context: BookContext, chapter_id: str) -> Chapter:
        return context.index.get(chapter_id)

    def get_parent(self, context: BookContext, chapter_id: str) -> Optional[Chapter]:
        return context.index.parent(chapter_id)

    def effective_parent_id(self, context: BookContext, chapter_id: str) -> Optional[str]:
        return context.index.parent_id(chapter_id)

    def is_ancestor(self, context: BookContext, ancestor_id: str, chapter_id: str) -> bool:
        return context.index.is_ancestor_of(ancestor_id, chapter_id)

    def is_direct_parent(self, context: BookContext, parent_id: str, chapter_id: str) -> bool:
        return context.index.is_direct_parent(parent_id, chapter_id)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _move_sibling(self, context: BookContext, chapter_id: str, *, delta: int) -> OperationResult:
        direction = "up" if delta < 0 else "down"
        with context.lock:
            chapter = context.index.find(chapter_id)
            if chapter is None:
                logger.info("Edit noop: move_sibling chapter_not_found chapter=%s", chapter_id)
                return OperationResult(False, f"Chapter not found for id '{chapter_id}'.", {"chapter_id": chapter_id})

            siblings = self._owner_list(context, chapter_id)
            pos = self._position(siblings, chapter)
            new_pos = pos + delta
            if pos < 0 or new_pos < 0 or new_pos >= len(siblings):
                logger.info("Edit noop: move_sibling direction=%s boundary chapter=%s", direction, chapter_id)
                return OperationResult(False, f"Cannot move {direction} (at boundary).", {"chapter_id": chapter_id})

            siblings[pos], siblings[new_pos] = siblings[new_pos], siblings[pos]
            self._persist(context, "move_sibling")

        logger.info("Edit OK: move_sibling direction=%s chapter=%s", direction, chapter_id)
        return OperationResult(True, f"Moved chapter {direction}.", {"chapter_id": chapter_id, "index": new_pos})

    @staticmethod
    def _local_roots(index: HierarchyIndex, ordered: List[str]) -> List[str]:
        selected = set(ordered)
        return [s for s in ordered if index.parent_id(s) not in selected]

    @staticmethod
    def _owner_list(context: BookContext, chapter_id: str) -> List[Chapter]:
        parent = context.index.parent(chapter_id)
        return parent.chapters if parent is not None else context.book.chapters

    @staticmethod
    def _position(siblings: List[Chapter], chapter: Chapter) -> int:
        for i, sibling in enumerate(siblings):
            if sibling is chapter:
                return i
        for i, sibling in enumerate(siblings):
            if sibling.id == chapter.id:
                return i
        return -1

    def _detach(self, context: BookContext, chapter: Chapter) -> None:
        siblings = self._owner_list(context, chapter.id)
        pos = self._position(siblings, chapter)
        if pos < 0:
            logger.warning("Chapter %s missing from its owning list; index out of sync", chapter.id)
            return
        del siblings[pos]

    @staticmethod
    def _require(context: BookContext, chapter_id: str, operation: str) -> Chapter:
        chapter = context.index.find(chapter_id)
        if chapter is None:
            logger.warning("Edit FAIL: %s chapter_not_found chapter=%s", operation, chapter_id)
            raise ChapterNotFoundError(chapter_id, context.root_dir)
        return chapter

    @staticmethod
    def _validate_title(title: Optional[str]) -> str:
        if not isinstance(title, str) or not title.strip():
            raise InvalidTitleError(title, "Chapter title cannot be empty")
        return title.strip()

    @staticmethod
    def _new_chapter_id(index: HierarchyIndex) -> str:
        chapter_id = generate_chapter_id()
        while chapter_id in index:
            chapter_id = generate_chapter_id()
        return chapter_id

    def _persist(self, context: BookContext, operation: str) -> None:
        try:
            self._codec.save(context.book, context.metadata_path)
        except PersistenceError:
            logger.error("Edit FAIL: %s persist path=%s (in-memory change kept)", operation, context.metadata_path)
            raise

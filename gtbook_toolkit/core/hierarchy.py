from __future__ import annotations

"""Derived parent/node index over a chapter forest.

The forest held by :class:`~gtbook_toolkit.core.models.Book` is the single
source of truth. :class:`HierarchyIndex` is a cache over it: two maps
(``id -> parent id`` and ``id -> chapter``) that are fully rebuilt on load and
patched in place by the editing service after every mutation.

Ancestry walks are iterative over the parent map and carry a visited set, so
a corrupted index (a cycle) is reported and answered conservatively instead
of looping forever.
"""

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Set, Tuple, TYPE_CHECKING

from gtbook_toolkit.core.exceptions import ChapterNotFoundError

if TYPE_CHECKING:
    from gtbook_toolkit.core.models import Chapter

__all__ = ["HierarchyIndex"]

logger = logging.getLogger(__name__)


class HierarchyIndex:
    """Lookup maps answering parent and ancestry queries in O(1)/O(depth).

    Notes
    -----
    The index only holds references; it never owns chapters. Callers that
    splice chapters in or out of a children list are responsible for patching
    the index through :meth:`add`, :meth:`remove_subtree` or
    :meth:`record_move`.
    """

    def __init__(self) -> None:
        self._parent_of: Dict[str, Optional[str]] = {}
        self._node_of: Dict[str, Chapter] = {}
        self.duplicates: List[str] = []

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def rebuild(self, forest: Iterable[Chapter]) -> None:
        """Clear both maps and repopulate them from *forest* in pre-order.

        Duplicate ids are logged and recorded in :attr:`duplicates`; the
        first-seen mapping is kept.
        """
        self._parent_of.clear()
        self._node_of.clear()
        self.duplicates = []
        self._index_nodes([(chapter, None) for chapter in forest])
        if self.duplicates:
            logger.warning("Index rebuilt with %d duplicate chapter id(s): %s",
                           len(self.duplicates), ", ".join(self.duplicates))
        logger.debug("Index rebuilt: chapters=%d", len(self._node_of))

    def add(self, chapter: Chapter, parent_id: Optional[str]) -> None:
        """Index a newly inserted *chapter* and its subtree under *parent_id*."""
        self._index_nodes([(chapter, parent_id)])

    def remove_subtree(self, chapter: Chapter) -> List[str]:
        """Drop *chapter* and every descendant; return the removed ids.

        An entry is only dropped when it points at the node being removed, so a
        duplicate id indexed elsewhere in the forest keeps its mapping.
        """
        removed: List[str] = []
        for node in chapter.iter_subtree():
            if self._node_of.get(node.id) is node:
                del self._parent_of[node.id]
                del self._node_of[node.id]
            removed.append(node.id)
        return removed

    def record_move(self, node_id: str, new_parent_id: Optional[str]) -> None:
        """Point *node_id* at *new_parent_id* (``None`` for top level).

        Only the parent map changes; the caller must already have spliced the
        chapter into its new owning list.
        """
        if node_id not in self._node_of:
            raise ChapterNotFoundError(node_id)
        self._parent_of[node_id] = new_parent_id

    def _index_nodes(self, pending: List[Tuple[Chapter, Optional[str]]]) -> None:
        stack = list(reversed(pending))
        visited: Set[int] = set()
        while stack:
            chapter, parent_id = stack.pop()
            # The same object twice means the tree itself is cyclic.
            if id(chapter) in visited:
                logger.error("Chapter %s reached twice while indexing; skipping", chapter.id)
                continue
            visited.add(id(chapter))

            if chapter.id in self._node_of:
                logger.warning("Duplicate chapter id %s; keeping first occurrence", chapter.id)
                self.duplicates.append(chapter.id)
            else:
                self._parent_of[chapter.id] = parent_id
                self._node_of[chapter.id] = chapter

            for child in reversed(chapter.chapters):
                stack.append((child, chapter.id))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def __contains__(self, chapter_id: object) -> bool:
        return chapter_id in self._node_of

    def __len__(self) -> int:
        return len(self._node_of)

    def ids(self) -> List[str]:
        return list(self._node_of)

    def find(self, chapter_id: str) -> Optional[Chapter]:
        return self._node_of.get(chapter_id)

    def get(self, chapter_id: str) -> Chapter:
        """Return the chapter for *chapter_id* or raise ChapterNotFoundError."""
        try:
            return self._node_of[chapter_id]
        except KeyError:
            raise ChapterNotFoundError(chapter_id) from None

    def parent_id(self, chapter_id: str) -> Optional[str]:
        try:
            return self._parent_of[chapter_id]
        except KeyError:
            raise ChapterNotFoundError(chapter_id) from None

    def parent(self, chapter_id: str) -> Optional[Chapter]:
        """Return the parent chapter, or ``None`` for a top-level chapter."""
        pid = self.parent_id(chapter_id)
        if pid is None:
            return None
        return self._node_of.get(pid)

    # ------------------------------------------------------------------
    # Ancestry
    # ------------------------------------------------------------------

    def is_ancestor_of(self, ancestor_id: str, node_id: str) -> bool:
        """Return True if *node_id* lies in the subtree rooted at *ancestor_id*.

        A chapter counts as its own ancestor.
        """
        if ancestor_id == node_id:
            return True
        for current in self._walk_up(node_id):
            if current == ancestor_id:
                return True
        return False

    def is_direct_parent(self, parent_id: str, node_id: str) -> bool:
        return node_id in self._parent_of and self._parent_of[node_id] == parent_id

    def ancestors(self, chapter_id: str) -> List[str]:
        """Return ancestor ids of *chapter_id*, nearest first."""
        if chapter_id not in self._node_of:
            raise ChapterNotFoundError(chapter_id)
        return list(self._walk_up(chapter_id))

    def descendants(self, chapter_id: str) -> List[str]:
        """Return descendant ids of *chapter_id* in pre-order (excluding itself)."""
        node = self.get(chapter_id)
        return [n.id for n in node.iter_subtree()][1:]

    def depth(self, chapter_id: str) -> int:
        """Return 0 for a top-level chapter, 1 for its children, and so on."""
        return len(self.ancestors(chapter_id))

    def _walk_up(self, node_id: str) -> Iterator[str]:
        visited = {node_id}
        current = self._parent_of.get(node_id)
        while current is not None:
            if current in visited:
                logger.error("Cycle detected in parent map at chapter %s", current)
                return
            visited.add(current)
            yield current
            current = self._parent_of.get(current)

import logging

import pytest

from gtbook_toolkit.core.exceptions import ChapterNotFoundError
from gtbook_toolkit.core.hierarchy import HierarchyIndex
from gtbook_toolkit.core.models import Chapter


def ch(chapter_id, *children):
    return Chapter(id=chapter_id, title=f"Chapter {chapter_id}", chapters=list(children))


@pytest.fixture
def forest():
    """
    A
    ├── B
    │   └── B1
    │       └── B2
    └── C
    D
    """
    return [ch("A", ch("B", ch("B1", ch("B2"))), ch("C")), ch("D")]


@pytest.fixture
def index(forest):
    idx = HierarchyIndex()
    idx.rebuild(forest)
    return idx


class TestRebuild:

    def test_indexes_every_chapter(self, index):
        assert len(index) == 6
        assert index.ids() == ["A", "B", "B1", "B2", "C", "D"]

    def test_parent_ids(self, index):
        assert index.parent_id("A") is None
        assert index.parent_id("D") is None
        assert index.parent_id("B") == "A"
        assert index.parent_id("B2") == "B1"

    def test_rebuild_clears_previous_entries(self, index):
        index.rebuild([ch("X")])
        assert "A" not in index
        assert index.ids() == ["X"]

    def test_duplicate_ids_keep_first_and_warn(self, caplog):
        first = ch("dup")
        second = ch("dup")
        idx = HierarchyIndex()
        with caplog.at_level(logging.WARNING, logger="gtbook_toolkit.core.hierarchy"):
            idx.rebuild([ch("P", first), second])
        assert idx.get("dup") is first
        assert idx.parent_id("dup") == "P"
        assert idx.duplicates == ["dup"]
        assert "Duplicate chapter id dup" in caplog.text

    def test_cyclic_tree_does_not_hang(self):
        a = ch("A")
        b = ch("B")
        a.chapters.append(b)
        b.chapters.append(a)
        idx = HierarchyIndex()
        idx.rebuild([a])
        assert idx.ids() == ["A", "B"]


class TestLookups:

    def test_get_and_find(self, index, forest):
        assert index.get("A") is forest[0]
        assert index.find("missing") is None
        with pytest.raises(ChapterNotFoundError):
            index.get("missing")

    def test_parent(self, index, forest):
        assert index.parent("A") is None
        assert index.parent("C") is forest[0]

    def test_parent_of_unknown_raises(self, index):
        with pytest.raises(ChapterNotFoundError) as info:
            index.parent("missing")
        assert info.value.chapter_id == "missing"

    def test_contains(self, index):
        assert "B1" in index
        assert "Z" not in index


class TestAncestry:

    def test_self_is_ancestor(self, index):
        assert index.is_ancestor_of("B", "B")

    def test_transitive_ancestor(self, index):
        assert index.is_ancestor_of("A", "B2")
        assert index.is_ancestor_of("B", "B2")

    def test_not_ancestor(self, index):
        assert not index.is_ancestor_of("B2", "A")
        assert not index.is_ancestor_of("C", "B1")
        assert not index.is_ancestor_of("D", "B")

    def test_is_direct_parent(self, index):
        assert index.is_direct_parent("A", "B")
        assert not index.is_direct_parent("A", "B1")
        assert not index.is_direct_parent("A", "missing")

    def test_ancestors_nearest_first(self, index):
        assert index.ancestors("B2") == ["B1", "B", "A"]
        assert index.ancestors("D") == []

    def test_descendants_preorder(self, index):
        assert index.descendants("A") == ["B", "B1", "B2", "C"]
        assert index.descendants("C") == []

    def test_depth(self, index):
        assert index.depth("A") == 0
        assert index.depth("B2") == 3

    def test_cycle_in_parent_map_fails_safe(self, index, caplog):
        # Corrupt the map directly: A -> B2 while B2 is under A.
        index._parent_of["A"] = "B2"
        with caplog.at_level(logging.ERROR, logger="gtbook_toolkit.core.hierarchy"):
            assert not index.is_ancestor_of("D", "B")
        assert "Cycle detected" in caplog.text


class TestIncrementalUpdates:

    def test_add_subtree(self, index, forest):
        new = ch("N", ch("N1"))
        forest[1].chapters.append(new)
        index.add(new, "D")
        assert index.parent_id("N") == "D"
        assert index.parent_id("N1") == "N"

    def test_remove_subtree(self, index, forest):
        removed = index.remove_subtree(forest[0].chapters[0])
        assert removed == ["B", "B1", "B2"]
        for chapter_id in removed:
            assert chapter_id not in index
            with pytest.raises(ChapterNotFoundError):
                index.parent(chapter_id)
        assert "A" in index

    def test_remove_subtree_keeps_other_copy_of_duplicate_id(self):
        first = ch("dup")
        second = ch("dup", ch("inner"))
        idx = HierarchyIndex()
        idx.rebuild([ch("P", first), second])
        assert idx.get("dup") is first
        assert idx.remove_subtree(second) == ["dup", "inner"]
        assert idx.get("dup") is first
        assert idx.parent_id("dup") == "P"
        assert "inner" not in idx

    def test_record_move(self, index):
        index.record_move("B1", "D")
        assert index.parent_id("B1") == "D"
        assert index.is_ancestor_of("D", "B2")

    def test_record_move_unknown(self, index):
        with pytest.raises(ChapterNotFoundError):
            index.record_move("missing", None)

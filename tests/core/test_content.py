import pytest

from gtbook_toolkit.core.content import ChapterContentStore
from gtbook_toolkit.core.exceptions import PersistenceError
from gtbook_toolkit.core.models import BookSettings


def test_stub_uses_settings_template(make_context, make_chapter):
    chapter = make_chapter("x1", title="Prologue")
    context = make_context(chapter)
    path = ChapterContentStore().create_stub(context, chapter)
    assert path == context.root_dir / "chapters" / "x1.md"
    assert path.read_text(encoding="utf-8") == "# Prologue\n"


def test_explicit_template(make_context, make_chapter):
    chapter = make_chapter("x1", title="Prologue")
    context = make_context(chapter)
    path = ChapterContentStore("{id}: {title}").create_stub(context, chapter)
    assert path.read_text(encoding="utf-8") == "x1: Prologue"


def test_existing_file_not_overwritten(make_context, make_chapter):
    chapter = make_chapter("x1")
    context = make_context(chapter)
    path = context.chapter_path("x1")
    path.parent.mkdir(parents=True)
    path.write_text("keep me", encoding="utf-8")
    ChapterContentStore().create_stub(context, chapter)
    assert path.read_text(encoding="utf-8") == "keep me"


def test_write_failure_raises_persistence_error(make_context, make_chapter):
    chapter = make_chapter("x1")
    context = make_context(chapter)
    # A regular file where the chapters directory should be.
    context.chapters_dir.write_text("", encoding="utf-8")
    with pytest.raises(PersistenceError):
        ChapterContentStore().create_stub(context, chapter)


def test_orphaned_lists_unknown_ids(make_context, make_chapter):
    context = make_context(make_chapter("keep"))
    context.chapters_dir.mkdir()
    for name in ("keep.md", "gone.md", "notes.txt"):
        (context.chapters_dir / name).write_text("", encoding="utf-8")
    orphans = ChapterContentStore().orphaned(context)
    assert [p.name for p in orphans] == ["gone.md"]


def test_orphaned_without_directory(make_context):
    assert ChapterContentStore().orphaned(make_context()) == []


def test_custom_layout(tmp_path, make_chapter):
    from gtbook_toolkit.core.models import Book, BookContext

    settings = BookSettings(chapters_dir="text", content_extension=".txt")
    chapter = make_chapter("c9")
    context = BookContext(root_dir=tmp_path, book=Book(title="T", chapters=[chapter]), settings=settings)
    path = ChapterContentStore().create_stub(context, chapter)
    assert path == tmp_path / "text" / "c9.txt"

import pytest

from gtbook_toolkit.core.codec import MetadataCodec
from gtbook_toolkit.core.content import ChapterContentStore
from gtbook_toolkit.core.exceptions import PersistenceError
from gtbook_toolkit.core.models import Book, BookContext, Chapter
from gtbook_toolkit.core.services.structure_editing_service import StructureEditingService


class RecordingCodec(MetadataCodec):
    """MetadataCodec that counts writes and can be told to fail."""

    def __init__(self):
        self.saves = 0
        self.fail_with = None

    def save(self, book, path):
        if self.fail_with is not None:
            raise PersistenceError(path, self.fail_with)
        self.saves += 1
        super().save(book, path)


def _ch(chapter_id, *children):
    return Chapter(id=chapter_id, title=f"Chapter {chapter_id}", chapters=list(children))


@pytest.fixture
def codec():
    return RecordingCodec()


@pytest.fixture
def service(codec):
    return StructureEditingService(codec, ChapterContentStore())


@pytest.fixture
def book_context(tmp_path):
    """
    Create a small book:
    Top-level: A, D
    - A has children B, C
    - B has child B1
    """
    root = tmp_path / "book"
    root.mkdir()
    book = Book(title="Book", chapters=[_ch("A", _ch("B", _ch("B1")), _ch("C")), _ch("D")])
    return BookContext(root_dir=root, book=book)


@pytest.fixture
def ids_of():
    def collect(chapters):
        return [c.id for c in chapters]
    return collect


@pytest.fixture
def reload_book(codec):
    def reload(context):
        return codec.load(context.metadata_path)
    return reload

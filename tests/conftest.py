"""Shared fixtures for GTBook Toolkit tests.

Every test runs against an isolated user configuration directory and a fresh
:class:`ConfigManager` singleton, so nothing leaks into the real home
directory or between tests.
"""

import logging
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from gtbook_toolkit.config import ConfigManager
from gtbook_toolkit.core.models import Book, BookContext, BookSettings, Chapter
from gtbook_toolkit.core.registry import BookRegistry

# Configure test logging
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


SAMPLE_YAML = """\
# GTBook config
title: Sample Book
createdTime: 1700000000000
updatedTime: 1700000000000
chapters:
  - id: A
    title: Chapter A
    createdTime: 1700000000001
    updatedTime: 1700000000001
    chapters:
      - id: B
        title: Chapter B
        createdTime: 1700000000002
        updatedTime: 1700000000002
        chapters: []
      - id: C
        title: Chapter C
        createdTime: 1700000000003
        updatedTime: 1700000000003
  - id: D
    title: Chapter D
    createdTime: 1700000000004
    updatedTime: 1700000000004
    chapters: []
"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the user config dir at a temp folder and reset the singleton."""
    monkeypatch.setenv("GTBOOK_CONFIG_DIR", str(tmp_path / "user-config"))
    ConfigManager._instance = None
    yield
    ConfigManager._instance = None


@pytest.fixture
def sample_yaml():
    return SAMPLE_YAML


@pytest.fixture
def book_dir(tmp_path):
    """A book root holding the sample metadata document."""
    root = tmp_path / "sample-book"
    root.mkdir()
    (root / "gtbook.yaml").write_text(SAMPLE_YAML, encoding="utf-8")
    return root


@pytest.fixture
def registry():
    return BookRegistry(settings=BookSettings())


@pytest.fixture
def make_chapter():
    def factory(chapter_id, *children, title=None):
        return Chapter(id=chapter_id, title=title or f"Chapter {chapter_id}", chapters=list(children))
    return factory


@pytest.fixture
def make_context(tmp_path):
    """Build a BookContext over an in-memory forest rooted in a temp dir."""
    def factory(*roots, title="Test Book"):
        root_dir = tmp_path / "book"
        root_dir.mkdir(exist_ok=True)
        return BookContext(root_dir=root_dir, book=Book(title=title, chapters=list(roots)))
    return factory

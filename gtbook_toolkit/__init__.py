"""Top-level package for GTBook Toolkit.

This package hosts the GUI-agnostic hierarchy engine for chapter books.
Front-ends (editor extensions, scripts) should only depend on the public API
exposed here rather than importing internal modules directly.

Applications should call :func:`setup_logging` once at start-up; the engine
itself only emits records through ``logging``.
"""

from .core.models import Book, BookContext, Chapter  # re-export for convenience
from .core.registry import BookRegistry
from .core.services import OperationResult, StructureEditingService
from .logging_config import setup_logging

__all__: list[str] = [
    "Book",
    "BookContext",
    "BookRegistry",
    "Chapter",
    "OperationResult",
    "StructureEditingService",
    "setup_logging",
]

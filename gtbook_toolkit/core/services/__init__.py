from __future__ import annotations

"""High-level services operating on loaded books.

The structure editing service is the single entry point for mutating a
book's chapter forest.
"""

from .structure_editing_service import OperationResult, StructureEditingService  # noqa: F401

__all__: list[str] = [
    "OperationResult",
    "StructureEditingService",
]

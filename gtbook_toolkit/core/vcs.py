from __future__ import annotations

"""Version-control status handle.

The engine never talks to git itself. Integrations implement
:class:`RepositoryStatusProvider` and pass it to the
:class:`~gtbook_toolkit.core.registry.BookRegistry`, which subscribes for
change notifications and renders per-book status lines with
:func:`format_status`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

__all__ = ["RepositoryState", "RepositoryStatusProvider", "format_status"]

# Called with the root path of the repository whose state changed.
RepositoryListener = Callable[[Path], None]


@dataclass(frozen=True)
class RepositoryState:
    """Snapshot of a repository's pending work."""
    working_tree_changes: int = 0
    index_changes: int = 0
    ahead: int = 0

    @property
    def changed_files(self) -> int:
        return self.working_tree_changes + self.index_changes


class RepositoryStatusProvider(ABC):
    """Source of repository state for book roots."""

    @abstractmethod
    def state_for(self, root: Path) -> Optional[RepositoryState]:
        """Return the state of the repository rooted at *root*, if any."""

    @abstractmethod
    def subscribe(self, listener: RepositoryListener) -> Callable[[], None]:
        """Register *listener* for state changes; return an unsubscribe callable."""


def format_status(state: Optional[RepositoryState]) -> str:
    """Render e.g. ``"3 files changed, 1 unpushed commit"``; empty when clean."""
    if state is None:
        return ""
    messages = []
    if state.changed_files > 0:
        messages.append(f"{state.changed_files} files changed")
    if state.ahead > 0:
        messages.append(f"{state.ahead} unpushed commit{'' if state.ahead == 1 else 's'}")
    return ", ".join(messages)

from __future__ import annotations

"""Simple reusable helper functions.

These helpers are side-effect-free and contain no disk I/O; they can be used
across all layers of the toolkit.
"""

import re
import secrets
import time

__all__ = [
    "now_millis",
    "generate_chapter_id",
    "to_base36",
    "INVALID_TITLE_CHARS",
]

# Characters a book title may not contain since it becomes a folder name.
INVALID_TITLE_CHARS = re.compile(r'[/\\:*?"<>|]')

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def now_millis() -> int:
    """Return the current time as integer milliseconds since the epoch."""
    return int(time.time() * 1000)


def to_base36(value: int) -> str:
    """Return the lower-case base-36 representation of a non-negative int."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def generate_chapter_id() -> str:
    """Generate a collision-resistant chapter id.

    The id is a base-36 millisecond timestamp followed by six random hex
    characters, e.g. ``"lq2x9k3a-3f9a1c"``. Ids sort roughly by creation
    time and stay short enough to double as content file names.
    """
    return f"{to_base36(now_millis())}-{secrets.token_hex(3)}"

"""
Read position of one client in the target file.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


def _parse_non_negative(raw: Optional[str]) -> int:
    if raw is None:
        return 0
    try:
        value = int(str(raw).strip())
    except ValueError:
        return 0
    return value if value >= 0 else 0


@dataclass(frozen=True)
class Cursor:
    """(modification time, byte offset) already delivered to a client.

    ``mod_time_ns`` is nanoseconds since the epoch, as reported by
    ``os.stat().st_mtime_ns``.
    """

    mod_time_ns: int = 0
    offset: int = 0

    def __post_init__(self):
        if self.mod_time_ns < 0:
            raise ValueError(f"mod_time_ns must be non-negative, got {self.mod_time_ns}.")
        if self.offset < 0:
            raise ValueError(f"offset must be non-negative, got {self.offset}.")

    @classmethod
    def start(cls) -> "Cursor":
        return cls(0, 0)

    @classmethod
    def from_params(cls, mod_time: Optional[str], offset: Optional[str]) -> "Cursor":
        """Parse request parameters; anything missing or invalid becomes 0."""
        return cls(_parse_non_negative(mod_time), _parse_non_negative(offset))

    def to_params(self) -> dict[str, str]:
        return {"modTime": str(self.mod_time_ns), "offset": str(self.offset)}

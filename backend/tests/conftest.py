from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


BACKEND_ROOT = Path(__file__).resolve().parents[1]
BACKEND_SRC = BACKEND_ROOT / "src"

if str(BACKEND_SRC) not in sys.path:
    sys.path.insert(0, str(BACKEND_SRC))


BASE_MTIME_NS = 1_700_000_000_000_000_000


@pytest.fixture
def write_file():
    """Write bytes to a file and pin its modification time.

    Filesystem timestamp granularity varies, so tests set mtimes explicitly to
    make "has the file changed" deterministic. Each call moves the mtime one
    second forward unless ``mtime_ns`` is given.
    """
    state = {"mtime_ns": BASE_MTIME_NS}

    def _write(path: Path, data: bytes, *, append: bool = False, mtime_ns: int | None = None) -> int:
        with open(path, "ab" if append else "wb") as handle:
            handle.write(data)
        if mtime_ns is None:
            state["mtime_ns"] += 1_000_000_000
            mtime_ns = state["mtime_ns"]
        os.utime(path, ns=(mtime_ns, mtime_ns))
        return mtime_ns

    return _write

"""
frontail - follow a file from the browser.

Serves a page with the current content of one file and streams everything
appended to it afterwards over a WebSocket:
1. The page embeds the content plus a cursor (modification time, offset)
2. The browser opens /stream at that cursor
3. The server polls the file and pushes each new delta
4. On reconnect the browser resumes from its last cursor checkpoint
"""

from frontail.config import SessionTimings, Settings, load_settings
from frontail.cursor import Cursor
from frontail.detector import ChangeDetector, Delta
from frontail.errors import (
    FileUnavailable,
    FrontailError,
    ReadFailure,
    SeekFailure,
    StartupError,
    TransportError,
)
from frontail.session import FrameChannel, IntervalSchedule, TailSession

__version__ = "0.1.0"

__all__ = [
    # Config
    "Settings",
    "SessionTimings",
    "load_settings",

    # Cursor
    "Cursor",

    # Detector
    "ChangeDetector",
    "Delta",

    # Session
    "TailSession",
    "FrameChannel",
    "IntervalSchedule",

    # Errors
    "FrontailError",
    "FileUnavailable",
    "ReadFailure",
    "SeekFailure",
    "TransportError",
    "StartupError",
]

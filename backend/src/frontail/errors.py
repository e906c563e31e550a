"""
Error taxonomy for frontail.

File errors are recovered inside a session and shown to the client as text;
transport errors end only the owning session; startup errors end the process.
"""
from __future__ import annotations


class FrontailError(Exception):
    """Base class for every error raised by frontail."""


class FileUnavailable(FrontailError):
    """The target file could not be stat'ed or opened."""


class ReadFailure(FrontailError):
    """Reading the target file failed after it was opened."""


class SeekFailure(FrontailError):
    """The stored offset is no longer valid against the current file."""


class TransportError(FrontailError):
    """Receiving from, sending to, or upgrading the client connection failed."""


class StartupError(FrontailError):
    """Invalid configuration or the listening socket could not be bound."""


def describe_os_error(action: str, path: str, exc: OSError) -> str:
    reason = exc.strerror or str(exc)
    return f"{action} {path}: {reason.lower()}"

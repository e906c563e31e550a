"""
Configuration for frontail.
"""
from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from frontail.errors import StartupError

USAGE = "Usage: frontail [-p 8080] /path/filename"


@dataclass(frozen=True)
class SessionTimings:
    """Timers and limits applied to every streaming connection."""

    poll_period: float = 1.0
    heartbeat_period: float = 54.0
    read_deadline: float = 60.0
    write_deadline: float = 10.0
    max_frame_size: int = 512
    # False when the transport pings the client and enforces liveness itself
    app_heartbeats: bool = True


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and never mutated."""

    target_path: Path
    port: int = 8080
    host: str = "0.0.0.0"

    # Streaming timers (seconds)
    poll_period: float = 1.0
    # Must stay below read_deadline or idle clients get dropped
    heartbeat_period: float = 54.0
    read_deadline: float = 60.0
    write_deadline: float = 10.0

    # Largest frame accepted from a client (bytes)
    max_frame_size: int = 512

    # Re-read from offset 0 when the file shrinks below a client's offset
    rewind_on_truncate: bool = False

    # Let uvicorn send WebSocket ping frames instead of session heartbeats
    protocol_pings: bool = False

    log_level: str = "INFO"

    def __post_init__(self):
        if not 0 < self.port < 65536:
            raise StartupError(f"Invalid port {self.port}: expected 1-65535.")
        for name in ("poll_period", "heartbeat_period", "read_deadline", "write_deadline"):
            if getattr(self, name) <= 0:
                raise StartupError(f"{name} must be positive, got {getattr(self, name)}.")
        if self.heartbeat_period >= self.read_deadline:
            raise StartupError(
                f"heartbeat_period ({self.heartbeat_period}s) must be shorter than "
                f"read_deadline ({self.read_deadline}s)."
            )
        if self.max_frame_size <= 0:
            raise StartupError(f"max_frame_size must be positive, got {self.max_frame_size}.")

    @property
    def filename(self) -> str:
        return str(self.target_path)

    def session_timings(self) -> SessionTimings:
        return SessionTimings(
            poll_period=self.poll_period,
            heartbeat_period=self.heartbeat_period,
            read_deadline=self.read_deadline,
            write_deadline=self.write_deadline,
            max_frame_size=self.max_frame_size,
            app_heartbeats=not self.protocol_pings,
        )


def _load_dotenv() -> None:
    from dotenv import load_dotenv

    load_dotenv(dotenv_path=Path(".env"))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise StartupError(f"{name} must be an integer, got '{raw}'.") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="frontail",
        description="Stream the tail of a file to the browser.",
        usage=USAGE[len("Usage: "):],
    )
    parser.add_argument("path", nargs="?", help="File to follow.")
    parser.add_argument("-p", "--port", type=int, default=None, help="Listen port (default 8080).")
    parser.add_argument("--host", default=None, help="Listen address (default 0.0.0.0).")
    parser.add_argument(
        "--rewind-on-truncate",
        action="store_true",
        help="Restart from the beginning when the file shrinks below a client's offset.",
    )
    parser.add_argument(
        "--protocol-pings",
        action="store_true",
        help="Use WebSocket ping frames for liveness instead of binary heartbeats.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default INFO).")
    return parser


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """Build Settings from command line arguments with environment defaults."""
    _load_dotenv()
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code == 0:
            raise
        raise StartupError(USAGE) from exc

    if not args.path:
        raise StartupError(USAGE)

    port = args.port if args.port is not None else _env_int("FRONTAIL_PORT", 8080)
    host = args.host or os.getenv("FRONTAIL_HOST", "0.0.0.0")
    log_level = (args.log_level or os.getenv("FRONTAIL_LOG_LEVEL", "INFO")).upper()

    return Settings(
        target_path=Path(args.path),
        port=port,
        host=host,
        rewind_on_truncate=args.rewind_on_truncate,
        protocol_pings=args.protocol_pings,
        log_level=log_level,
    )

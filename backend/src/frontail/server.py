"""
Run the frontail server.
"""
from __future__ import annotations

import logging
import socket
import sys
from typing import Optional, Sequence

import uvicorn

from frontail.api import create_app
from frontail.config import Settings, load_settings
from frontail.errors import StartupError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind the listening socket before serving so bind failures are fatal."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise StartupError(f"cannot listen on {host}:{port}: {exc.strerror or exc}") from exc
    sock.set_inheritable(True)
    return sock


def build_config(settings: Settings) -> uvicorn.Config:
    """uvicorn config for ``settings``.

    Oversized client frames are rejected by the transport (close 1009) before
    they are buffered. By default sessions send their own binary heartbeats
    and only clients that echo them stay connected; with ``protocol_pings``
    uvicorn sends WebSocket ping frames and drops clients that miss a pong.
    """
    if settings.protocol_pings:
        ping_interval = settings.heartbeat_period
        ping_timeout = settings.read_deadline - settings.heartbeat_period
    else:
        ping_interval = None
        ping_timeout = None
    return uvicorn.Config(
        create_app(settings),
        log_level=settings.log_level.lower(),
        ws_max_size=settings.max_frame_size,
        ws_ping_interval=ping_interval,
        ws_ping_timeout=ping_timeout,
    )


def serve(settings: Settings) -> None:
    sock = bind_socket(settings.host, settings.port)
    config = build_config(settings)
    logger.info("Listening on %s:%d", settings.host, settings.port)
    try:
        uvicorn.Server(config).run(sockets=[sock])
    finally:
        sock.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        settings = load_settings(argv)
    except StartupError as exc:
        print(exc, file=sys.stderr)
        return 1

    configure_logging(settings.log_level)
    try:
        serve(settings)
    except StartupError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

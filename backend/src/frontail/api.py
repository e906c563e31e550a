"""
FastAPI gateway: bootstrap page and streaming endpoint.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import HTMLResponse
from opentelemetry.instrumentation.asyncio import AsyncioInstrumentor
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from pydantic import BaseModel
from fastapi.websockets import WebSocketDisconnect, WebSocketState

from frontail.client_ip import client_address
from frontail.config import Settings
from frontail.cursor import Cursor
from frontail.detector import ChangeDetector
from frontail.errors import TransportError
from frontail.page import render_page
from frontail.session import (
    BINARY,
    CLOSE,
    CLOSE_NORMAL,
    TEXT,
    Frame,
    TailSession,
    decode_delta,
    new_decoder,
)

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str


class WebSocketChannel:
    """FrameChannel over a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def receive(self) -> Frame:
        try:
            message = await self.websocket.receive()
        except (RuntimeError, OSError) as exc:
            raise TransportError(f"receive failed: {exc}") from exc
        if message["type"] == "websocket.disconnect":
            return Frame(CLOSE)
        if message.get("bytes") is not None:
            return Frame(BINARY, message["bytes"])
        return Frame(TEXT, (message.get("text") or "").encode("utf-8"))

    async def send_text(self, text: str) -> None:
        try:
            await self.websocket.send_text(text)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            raise TransportError(f"send failed: {exc}") from exc

    async def send_binary(self, data: bytes) -> None:
        try:
            await self.websocket.send_bytes(data)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            raise TransportError(f"send failed: {exc}") from exc

    async def close(self, code: int = CLOSE_NORMAL) -> None:
        if (
            self.websocket.client_state == WebSocketState.DISCONNECTED
            or self.websocket.application_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self.websocket.close(code=code)
        except (RuntimeError, OSError) as exc:
            raise TransportError(f"close failed: {exc}") from exc


def create_app(settings: Settings) -> FastAPI:
    detector = ChangeDetector(settings.target_path, rewind_on_truncate=settings.rewind_on_truncate)
    timings = settings.session_timings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        instrumentor = AsyncioInstrumentor()
        if not instrumentor.is_instrumented_by_opentelemetry:
            instrumentor.instrument()
        logger.info("Following %s", settings.filename)
        yield

    app = FastAPI(title="frontail", version="0.1.0", lifespan=lifespan)
    FastAPIInstrumentor.instrument_app(app)
    app.state.settings = settings
    app.state.detector = detector

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/", response_class=HTMLResponse)
    def home(request: Request) -> HTMLResponse:
        snapshot = detector.snapshot()
        if snapshot.error is not None:
            logger.warning("Bootstrap read failed: %s", snapshot.error)
            content = str(snapshot.error)
            cursor = Cursor.start()
        else:
            # A trailing partial character is left for the stream to deliver.
            content, cursor = decode_delta(new_decoder(), snapshot.data, snapshot.cursor)
        host = request.headers.get("host") or f"{settings.host}:{settings.port}"
        return HTMLResponse(render_page(settings.filename, content, cursor, host))

    @app.websocket("/stream")
    async def stream(websocket: WebSocket) -> None:
        params = websocket.query_params
        cursor = Cursor.from_params(params.get("modTime"), params.get("offset"))
        client = client_address(websocket.headers, websocket.client)
        try:
            await websocket.accept()
        except (RuntimeError, OSError) as exc:
            logger.warning("Upgrade failed for %s: %s", client, TransportError(str(exc)))
            return

        logger.info(
            "Connection established from %s at modTime=%d offset=%d",
            client,
            cursor.mod_time_ns,
            cursor.offset,
        )
        session = TailSession(WebSocketChannel(websocket), detector, cursor, timings, client=client)
        await session.run()

    return app

"""
Per-connection streaming session.

A session runs two tasks against one connection:

* the inbound loop only reads. It bounds frame size and drops the connection
  when no heartbeat acknowledgement arrives within the read deadline.
* the outbound loop is the only writer. It polls the file on one timer and
  sends heartbeats on another.

Whichever loop stops first sets ``closed``; the other task is cancelled and
the connection is closed once.

Heartbeats are empty binary data frames, not WebSocket ping control frames:
ASGI applications cannot send pings or see pongs. A client must answer each
one with a binary frame, as the bundled page does, or it is dropped once the
read deadline passes. Clients that only speak protocol-level ping/pong should
use a server started with ``--protocol-pings``, where the session sends no
heartbeats of its own and uvicorn pings the client instead.
"""
from __future__ import annotations

import asyncio
import codecs
import json
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

from frontail.config import SessionTimings
from frontail.cursor import Cursor
from frontail.detector import ChangeDetector
from frontail.errors import FrontailError, TransportError

logger = logging.getLogger(__name__)

TEXT = "text"
BINARY = "binary"
CLOSE = "close"

CLOSE_NORMAL = 1000
CLOSE_TOO_BIG = 1009

POLL = "poll"
HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class Frame:
    kind: str
    payload: bytes = b""


class FrameChannel(Protocol):
    """Minimal view of a message-oriented client connection.

    Implementations raise TransportError for any receive/send failure.
    """

    async def receive(self) -> Frame: ...

    async def send_text(self, text: str) -> None: ...

    async def send_binary(self, data: bytes) -> None: ...

    async def close(self, code: int = CLOSE_NORMAL) -> None: ...


class IntervalSchedule:
    """Independent periodic timers multiplexed onto one loop.

    Like a ticker, ticks missed while the loop was busy are dropped rather
    than replayed in a burst.
    """

    def __init__(self, periods: dict[str, float], clock: Callable[[], float]):
        self._clock = clock
        self._periods = dict(periods)
        now = clock()
        self._due = {name: now + period for name, period in self._periods.items()}

    def delay(self) -> float:
        return max(0.0, min(self._due.values()) - self._clock())

    def fired(self) -> list[str]:
        now = self._clock()
        names = [name for name, due in self._due.items() if due <= now]
        for name in names:
            next_due = self._due[name] + self._periods[name]
            self._due[name] = next_due if next_due > now else now + self._periods[name]
        return names


def encode_checkpoint(cursor: Cursor) -> bytes:
    return json.dumps(
        {"modTime": cursor.mod_time_ns, "offset": cursor.offset},
        separators=(",", ":"),
    ).encode("utf-8")


def new_decoder() -> codecs.IncrementalDecoder:
    return codecs.getincrementaldecoder("utf-8")(errors="replace")


def decode_delta(decoder: codecs.IncrementalDecoder, data: bytes, cursor: Cursor) -> tuple[str, Cursor]:
    """Decode ``data`` read up to ``cursor``.

    Returns the text and the cursor of the bytes that text covers: an
    incomplete trailing character stays in the decoder and is left out of the
    cursor, so a client resuming from it receives that character whole.
    """
    text = decoder.decode(data)
    pending, _ = decoder.getstate()
    return text, Cursor(cursor.mod_time_ns, cursor.offset - len(pending))


class TailSession:
    def __init__(
        self,
        channel: FrameChannel,
        detector: ChangeDetector,
        cursor: Optional[Cursor] = None,
        timings: Optional[SessionTimings] = None,
        client: str = "unknown",
    ):
        self.channel = channel
        self.detector = detector
        self.cursor = cursor or Cursor.start()
        self.timings = timings or SessionTimings()
        self.client = client
        self.last_error = ""
        self.close_code = CLOSE_NORMAL
        self.closed = asyncio.Event()
        self._decoder = new_decoder()

    async def run(self) -> str:
        """Drive the connection until either loop stops; returns the reason."""
        inbound = asyncio.create_task(self._inbound_loop())
        outbound = asyncio.create_task(self._outbound_loop())
        try:
            done, _ = await asyncio.wait({inbound, outbound}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self.closed.set()
            for task in (inbound, outbound):
                if not task.done():
                    task.cancel()
            await asyncio.gather(inbound, outbound, return_exceptions=True)
            await self._close_channel()

        finished = inbound if inbound in done else outbound
        exc = finished.exception()
        if exc is not None and not isinstance(exc, FrontailError):
            raise exc
        reason = str(exc) if exc is not None else "client closed the connection"
        logger.info(
            "Session for %s ended at offset %d: %s",
            self.client,
            self.cursor.offset,
            reason,
        )
        return reason

    async def _close_channel(self) -> None:
        try:
            await self.channel.close(self.close_code)
        except TransportError as exc:
            logger.debug("Close for %s failed: %s", self.client, exc)

    async def _inbound_loop(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timings.read_deadline
        while not self.closed.is_set():
            if not self.timings.app_heartbeats:
                # Liveness is the transport's job in this mode.
                frame = await self.channel.receive()
            else:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise TransportError(
                        f"no heartbeat acknowledgement within {self.timings.read_deadline}s"
                    )
                try:
                    frame = await asyncio.wait_for(self.channel.receive(), timeout=remaining)
                except asyncio.TimeoutError as exc:
                    raise TransportError(
                        f"no heartbeat acknowledgement within {self.timings.read_deadline}s"
                    ) from exc

            if frame.kind == CLOSE:
                return
            if len(frame.payload) > self.timings.max_frame_size:
                self.close_code = CLOSE_TOO_BIG
                raise TransportError(
                    f"frame of {len(frame.payload)} bytes exceeds the "
                    f"{self.timings.max_frame_size} byte limit"
                )
            if frame.kind == BINARY:
                deadline = loop.time() + self.timings.read_deadline

    async def _outbound_loop(self) -> None:
        loop = asyncio.get_running_loop()
        periods = {POLL: self.timings.poll_period}
        if self.timings.app_heartbeats:
            periods[HEARTBEAT] = self.timings.heartbeat_period
        schedule = IntervalSchedule(periods, loop.time)
        while not self.closed.is_set():
            try:
                await asyncio.wait_for(self.closed.wait(), timeout=schedule.delay())
                return
            except asyncio.TimeoutError:
                pass
            for event in schedule.fired():
                if event == POLL:
                    await self.poll_once()
                else:
                    await self._send(self.channel.send_binary, b"", "heartbeat")

    async def poll_once(self) -> None:
        """One poll cycle: read the delta and forward it (or a new error)."""
        delta = await asyncio.to_thread(self.detector.poll, self.cursor)

        if delta.error is not None:
            text = str(delta.error)
            if text == self.last_error:
                return
            self.last_error = text
            logger.warning("Poll failed for %s: %s", self.client, text)
            await self._send(self.channel.send_text, text, "error")
            return

        self.last_error = ""
        self.cursor = delta.cursor
        if not delta.data:
            return

        text, checkpoint = decode_delta(self._decoder, delta.data, self.cursor)
        if text:
            await self._send(self.channel.send_text, text, "delta")
        await self._send(self.channel.send_binary, encode_checkpoint(checkpoint), "checkpoint")

    async def _send(self, send: Callable[..., Awaitable[None]], payload, what: str) -> None:
        try:
            await asyncio.wait_for(send(payload), timeout=self.timings.write_deadline)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"{what} write timed out after {self.timings.write_deadline}s"
            ) from exc

"""asyncio TCP front-end: one session per connection, one JSON value per line."""

from __future__ import annotations

import asyncio
import logging

from irhvac.core.service import ControllerService

LOGGER = logging.getLogger(__name__)

READ_CHUNK = 1024


class StreamConnection:
    def __init__(self, writer: asyncio.StreamWriter) -> None:
        self._writer = writer
        self._closed = False

    @property
    def connected(self) -> bool:
        return not self._closed and not self._writer.is_closing()

    def write(self, data: bytes) -> None:
        if self.connected:
            self._writer.write(data)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()


async def _serve_connection(
    service: ControllerService,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    peer = writer.get_extra_info("peername")
    connection = StreamConnection(writer)
    slot = service.connect(connection)
    if slot is None:
        LOGGER.warning("Rejected connection from %s", peer)
        return
    LOGGER.info("Slot %d serving %s", slot, peer)

    try:
        while connection.connected:
            data = await reader.read(READ_CHUNK)
            if not data:
                break
            # Each complete line runs to completion (including broadcasts) here.
            try:
                service.receive(slot, data)
            except Exception:
                LOGGER.exception("Slot %d command failed", slot)
            await writer.drain()
    except (ConnectionError, asyncio.IncompleteReadError) as exc:
        LOGGER.info("Slot %d connection error: %s", slot, exc)
    finally:
        service.disconnect(slot, connection)


async def start_server(
    service: ControllerService,
    host: str | None = None,
    port: int | None = None,
) -> asyncio.AbstractServer:
    server = await asyncio.start_server(
        lambda r, w: _serve_connection(service, r, w),
        host=host if host is not None else service.host,
        port=port if port is not None else service.port,
    )
    for sock in server.sockets or ():
        LOGGER.info("Listening on %s", sock.getsockname())
    return server


async def serve_forever(
    service: ControllerService,
    host: str | None = None,
    port: int | None = None,
) -> None:
    server = await start_server(service, host, port)
    async with server:
        await server.serve_forever()


def run(service: ControllerService, host: str | None = None, port: int | None = None) -> None:
    try:
        asyncio.run(serve_forever(service, host, port))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; shutting down")
    finally:
        service.close()

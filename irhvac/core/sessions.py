"""Connected line-oriented sessions: slot table, line framing, and fan-out."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from irhvac.core.model import MAX_LINE_BYTES, MAX_SESSIONS
from irhvac.transports.base import Connection

LOGGER = logging.getLogger(__name__)

SessionId = int


def encode_line(payload: Any) -> bytes:
    return (json.dumps(payload, separators=(",", ":"), allow_nan=False) + "\n").encode("utf-8")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


@dataclass
class Session:
    connection: Connection
    buffer: bytearray = field(default_factory=bytearray)
    # Set after an overlong line; bytes are dropped up to the next newline.
    discarding: bool = False


class SessionTable:
    def __init__(self, max_sessions: int = MAX_SESSIONS, max_line_bytes: int = MAX_LINE_BYTES) -> None:
        self.max_sessions = max_sessions
        self.max_line_bytes = max_line_bytes
        self._slots: list[Session | None] = [None] * max_sessions

    def _live(self, slot: SessionId) -> Session | None:
        if slot < 0 or slot >= self.max_sessions:
            return None
        session = self._slots[slot]
        if session is None or not session.connection.connected:
            return None
        return session

    def connected_slots(self) -> list[SessionId]:
        return [slot for slot in range(self.max_sessions) if self._live(slot) is not None]

    def accept(self, connection: Connection) -> SessionId | None:
        for slot, session in enumerate(self._slots):
            if session is not None and session.connection.connected:
                continue
            if session is not None:
                session.connection.close()
            self._slots[slot] = Session(connection=connection)
            LOGGER.info("Session connected in slot %d", slot)
            return slot
        connection.close()
        LOGGER.warning("Session rejected: all %d slots in use", self.max_sessions)
        return None

    def release(self, slot: SessionId, connection: Connection | None = None) -> None:
        session = self._slots[slot]
        if session is None:
            return
        if connection is not None and session.connection is not connection:
            return
        session.connection.close()
        self._slots[slot] = None
        LOGGER.info("Session in slot %d disconnected", slot)

    def feed(self, slot: SessionId, data: bytes) -> list[str]:
        """Accumulate bytes for a session and return every completed, non-empty line."""
        session = self._live(slot)
        if session is None:
            return []
        lines: list[str] = []
        for byte in data:
            if byte == 0x0D:
                continue
            if byte == 0x0A:
                if session.discarding:
                    session.discarding = False
                    continue
                line = session.buffer.decode("utf-8", errors="replace")
                session.buffer.clear()
                if line.strip():
                    lines.append(line)
                continue
            if session.discarding:
                continue
            session.buffer.append(byte)
            if len(session.buffer) > self.max_line_bytes:
                LOGGER.warning("Slot %d line exceeds %d bytes; discarded", slot, self.max_line_bytes)
                session.buffer.clear()
                session.discarding = True
        return lines

    def send(self, slot: SessionId, payload: Any) -> bool:
        session = self._live(slot)
        if session is None:
            return False
        session.connection.write(encode_line(payload))
        return True

    def broadcast(self, payload: Any, exclude: SessionId | None = None) -> int:
        data = encode_line(payload)
        sent = 0
        for slot in range(self.max_sessions):
            if slot == exclude:
                continue
            session = self._live(slot)
            if session is None:
                continue
            session.connection.write(data)
            sent += 1
        return sent


class LineFrontEnd:
    """Turns session byte streams into engine commands and writes back responses."""

    def __init__(
        self,
        sessions: SessionTable,
        execute: Callable[[Any, SessionId | None], Any],
        snapshots: Callable[[], list[dict[str, Any]]],
    ) -> None:
        self.sessions = sessions
        self._execute = execute
        self._snapshots = snapshots

    def connect(self, connection: Connection) -> SessionId | None:
        slot = self.sessions.accept(connection)
        if slot is None:
            return None
        for state in self._snapshots():
            self.sessions.send(slot, state)
        return slot

    def disconnect(self, slot: SessionId, connection: Connection | None = None) -> None:
        self.sessions.release(slot, connection)

    def receive(self, slot: SessionId, data: bytes) -> None:
        for line in self.sessions.feed(slot, data):
            self.handle_line(slot, line)

    def handle_line(self, slot: SessionId, line: str) -> None:
        try:
            doc = json.loads(line, parse_constant=_reject_constant)
        except (ValueError, RecursionError):
            LOGGER.debug("Slot %d sent invalid JSON: %r", slot, line)
            self.sessions.send(slot, {"ok": False, "error": "invalid_json"})
            return
        response = self._execute(doc, slot)
        self.sessions.send(slot, response)

"""Blocking client for a running controller, used by the CLI `send` command."""

from __future__ import annotations

import json
import socket
from typing import Any

from irhvac.core.errors import TransportConnectError, TransportError, TransportSendError


class ControllerClient:
    def __init__(self, host: str, port: int, *, timeout_s: float = 3.0, settle_s: float = 0.2) -> None:
        self.host = host
        self.port = port
        self.timeout_s = timeout_s
        self.settle_s = settle_s

    def _read_line(self, sock: socket.socket, buffer: bytearray) -> bytes | None:
        while b"\n" not in buffer:
            chunk = sock.recv(1024)
            if not chunk:
                return None
            buffer.extend(chunk)
        line, _, rest = bytes(buffer).partition(b"\n")
        buffer[:] = rest
        return line

    def _drain_pushed(self, sock: socket.socket, buffer: bytearray) -> list[Any]:
        # The server pushes one state line per device right after connecting.
        pushed: list[Any] = []
        sock.settimeout(self.settle_s)
        try:
            while True:
                line = self._read_line(sock, buffer)
                if line is None:
                    break
                if line.strip():
                    pushed.append(json.loads(line))
        except (TimeoutError, socket.timeout):
            pass
        except ValueError as exc:
            raise TransportError(f"Controller sent invalid JSON: {exc}") from exc
        finally:
            sock.settimeout(self.timeout_s)
        return pushed

    def request(self, command: Any) -> tuple[list[Any], Any]:
        """Send one command and return (pushed snapshots, response)."""
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.timeout_s)
        except TimeoutError as exc:
            raise TransportConnectError(f"Connect to {self.host}:{self.port} timed out") from exc
        except OSError as exc:
            raise TransportConnectError(f"Connect to {self.host}:{self.port} failed: {exc}") from exc

        buffer = bytearray()
        try:
            pushed = self._drain_pushed(sock, buffer)
            try:
                sock.sendall((json.dumps(command) + "\n").encode("utf-8"))
            except OSError as exc:
                raise TransportSendError(f"Send to {self.host}:{self.port} failed: {exc}") from exc

            try:
                while True:
                    line = self._read_line(sock, buffer)
                    if line is None:
                        raise TransportError("Controller closed the connection without a response")
                    if line.strip():
                        return pushed, json.loads(line)
            except (TimeoutError, socket.timeout) as exc:
                raise TransportError("Timed out waiting for controller response") from exc
            except ValueError as exc:
                raise TransportError(f"Controller sent invalid JSON: {exc}") from exc
        finally:
            sock.close()

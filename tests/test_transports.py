from __future__ import annotations

import socket
import sys
import threading
import types

import pytest

from irhvac.core.channels import ChannelTable
from irhvac.core.errors import TransportConnectError, TransportSendError
from irhvac.core.model import AcCommand, ChannelConfig
from irhvac.transports.ac_encoder import UnavailableAcEncoder, load_encoder_factory
from irhvac.transports.dry_run import LoggingAcEncoder, LoggingSender
from irhvac.transports.pigpio_ir import PigpioSender
from irhvac.transports.tcp_client import ControllerClient


class FakePi:
    def __init__(self, fail_chain: bool = False) -> None:
        self.connected = True
        self.fail_chain = fail_chain
        self.waves: list[list[tuple[int, int, int]]] = []
        self.pending: list[tuple[int, int, int]] = []
        self.chains: list[list[int]] = []
        self.deleted: list[int] = []
        self.stopped = False

    def set_mode(self, gpio, mode) -> None:
        self.mode = (gpio, mode)

    def wave_add_new(self) -> None:
        self.pending = []

    def wave_add_generic(self, pulses) -> None:
        self.pending.extend(pulses)

    def wave_create(self) -> int:
        self.waves.append(self.pending)
        self.pending = []
        return len(self.waves) - 1

    def wave_chain(self, chain) -> None:
        if self.fail_chain:
            raise FakePigpio.error("chain too long")
        self.chains.append(list(chain))

    def wave_tx_busy(self) -> bool:
        return False

    def wave_delete(self, wave_id) -> None:
        self.deleted.append(wave_id)

    def stop(self) -> None:
        self.stopped = True
        self.connected = False


class FakePigpio(types.ModuleType):
    OUTPUT = 1

    class error(Exception):
        pass

    def __init__(self, pi: FakePi) -> None:
        super().__init__("pigpio")
        self._instance = pi

    def pi(self, **kwargs) -> FakePi:
        return self._instance

    @staticmethod
    def pulse(on, off, delay) -> tuple[int, int, int]:
        return (on, off, delay)


def test_pigpio_sender_plays_wave_chain(monkeypatch: pytest.MonkeyPatch) -> None:
    pi = FakePi()
    monkeypatch.setitem(sys.modules, "pigpio", FakePigpio(pi))

    sender = PigpioSender(4)
    sender.enable(38000)
    sender.mark(300)
    sender.mark(300)
    sender.space(500)
    sender.mark(600)
    sender.space(0)
    sender.flush()

    # Equal durations share one wave.
    assert pi.chains == [[0, 1, 0]]
    assert sorted(pi.deleted) == [0, 1]
    assert pi.waves[1] == [(0, 0, 500)]
    assert pi.waves[0][0] == (1 << 4, 0, 13)

    sender.close()
    assert pi.stopped is True


def test_pigpio_sender_wraps_wave_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    pi = FakePi(fail_chain=True)
    monkeypatch.setitem(sys.modules, "pigpio", FakePigpio(pi))

    sender = PigpioSender(4)
    sender.enable(38000)
    sender.mark(560)
    with pytest.raises(TransportSendError):
        sender.flush()
    assert pi.deleted == [0]


def test_pigpio_sender_without_library(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "pigpio", None)
    sender = PigpioSender(4)
    sender.enable(38000)
    sender.mark(560)
    with pytest.raises(TransportConnectError):
        sender.flush()


def test_channel_table_rebuild_closes_previous_outputs() -> None:
    table = ChannelTable(LoggingSender, LoggingAcEncoder)
    table.rebuild([ChannelConfig(gpio=17)])
    old = table.get(0)

    table.rebuild([ChannelConfig(gpio=18), ChannelConfig(gpio=19)])
    assert old.raw.closed and old.ac.closed
    assert len(table) == 2
    assert table.get(1).gpio == 19
    assert table.get(2) is None
    assert table.get(-1) is None


def test_unavailable_encoder_fails_sends() -> None:
    command = AcCommand(protocol="DAIKIN", model=-1, power=True, mode="cool", setpoint=22.0)
    assert UnavailableAcEncoder(17).send_ac(command) is False


def test_load_encoder_factory() -> None:
    assert load_encoder_factory("irhvac.transports.dry_run:LoggingAcEncoder") is LoggingAcEncoder

    with pytest.raises(TransportConnectError, match="module:factory"):
        load_encoder_factory("irhvac.transports.dry_run")
    with pytest.raises(TransportConnectError, match="Could not import"):
        load_encoder_factory("irhvac.no_such_module:factory")
    with pytest.raises(TransportConnectError, match="no callable"):
        load_encoder_factory("irhvac.transports.dry_run:missing")


def test_controller_client_skips_pushed_states() -> None:
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    received: list[bytes] = []

    def serve_once() -> None:
        conn, _ = listener.accept()
        with conn:
            conn.sendall(b'{"type":"state","id":"1"}\n')
            received.append(conn.makefile("rb").readline())
            conn.sendall(b'{"ok":true}\n')

    thread = threading.Thread(target=serve_once)
    thread.start()
    try:
        pushed, response = ControllerClient("127.0.0.1", port, timeout_s=2.0).request({"cmd": "help"})
    finally:
        thread.join(timeout=2)
        listener.close()

    assert pushed == [{"type": "state", "id": "1"}]
    assert response == {"ok": True}
    assert received == [b'{"cmd": "help"}\n']


def test_controller_client_connect_failure() -> None:
    listener = socket.create_server(("127.0.0.1", 0))
    port = listener.getsockname()[1]
    listener.close()

    with pytest.raises(TransportConnectError):
        ControllerClient("127.0.0.1", port, timeout_s=1.0).request({"cmd": "list"})

from __future__ import annotations

import json

from irhvac.core.sessions import LineFrontEnd, SessionTable, encode_line


class FakeConnection:
    def __init__(self) -> None:
        self.connected = True
        self.written: list[bytes] = []

    def write(self, data: bytes) -> None:
        self.written.append(data)

    def close(self) -> None:
        self.connected = False


def _frontend(table: SessionTable | None = None):
    calls: list[tuple[object, object]] = []

    def execute(doc, origin):
        calls.append((doc, origin))
        return {"ok": True, "echo": doc}

    def snapshots():
        return [{"type": "state", "id": "1"}, {"type": "state", "id": "2"}]

    return LineFrontEnd(table or SessionTable(), execute, snapshots), calls


def test_encode_line_is_compact() -> None:
    assert encode_line({"ok": True, "error": None}) == b'{"ok":true,"error":null}\n'


def test_lines_are_framed_across_chunks() -> None:
    table = SessionTable()
    slot = table.accept(FakeConnection())
    assert table.feed(slot, b'{"cmd":') == []
    assert table.feed(slot, b'"list"}\r\n\n  \n{"cmd":"help"}\n') == ['{"cmd":"list"}', '{"cmd":"help"}']


def test_oversized_line_is_discarded() -> None:
    table = SessionTable(max_line_bytes=8)
    slot = table.accept(FakeConnection())
    assert table.feed(slot, b"012345678\nok\n") == ["ok"]


def test_lowest_free_slot_and_rejection_when_full() -> None:
    table = SessionTable(max_sessions=2)
    first, second = FakeConnection(), FakeConnection()
    assert table.accept(first) == 0
    assert table.accept(second) == 1

    rejected = FakeConnection()
    assert table.accept(rejected) is None
    assert rejected.connected is False

    first.connected = False
    assert table.accept(FakeConnection()) == 0
    assert table.connected_slots() == [0, 1]


def test_release_ignores_reused_slot() -> None:
    table = SessionTable(max_sessions=1)
    stale = FakeConnection()
    table.accept(stale)
    stale.connected = False
    fresh = FakeConnection()
    assert table.accept(fresh) == 0

    table.release(0, stale)
    assert table.connected_slots() == [0]
    table.release(0, fresh)
    assert table.connected_slots() == []
    assert fresh.connected is False


def test_connect_pushes_all_snapshots() -> None:
    frontend, _ = _frontend()
    connection = FakeConnection()
    assert frontend.connect(connection) == 0
    assert [json.loads(line)["id"] for line in connection.written] == ["1", "2"]


def test_invalid_json_gets_error_response() -> None:
    frontend, calls = _frontend()
    connection = FakeConnection()
    slot = frontend.connect(connection)
    connection.written.clear()

    frontend.receive(slot, b"{not json\n")
    assert json.loads(connection.written[0]) == {"ok": False, "error": "invalid_json"}
    assert calls == []


def test_commands_run_with_origin_slot() -> None:
    frontend, calls = _frontend()
    frontend.connect(FakeConnection())
    connection = FakeConnection()
    slot = frontend.connect(connection)
    connection.written.clear()

    frontend.receive(slot, b'{"cmd":"list"}\n')
    assert calls == [({"cmd": "list"}, 1)]
    assert json.loads(connection.written[0]) == {"ok": True, "echo": {"cmd": "list"}}


def test_broadcast_excludes_origin() -> None:
    table = SessionTable()
    connections = [FakeConnection() for _ in range(3)]
    for connection in connections:
        table.accept(connection)
    connections[2].connected = False

    assert table.broadcast({"type": "state"}, exclude=0) == 1
    assert connections[0].written == []
    assert connections[1].written == [b'{"type":"state"}\n']


def test_overlong_line_tail_is_not_executed() -> None:
    table = SessionTable(max_line_bytes=8)
    slot = table.accept(FakeConnection())
    assert table.feed(slot, b'0123456789{"cmd":"x"}') == []
    assert table.feed(slot, b'"more"\nok\n') == ["ok"]


def test_deeply_nested_json_is_invalid() -> None:
    frontend, calls = _frontend()
    connection = FakeConnection()
    slot = frontend.connect(connection)
    connection.written.clear()

    frontend.receive(slot, b"[" * 4000 + b"\n")
    assert json.loads(connection.written[0]) == {"ok": False, "error": "invalid_json"}
    assert calls == []


def test_non_finite_numbers_are_invalid_json() -> None:
    frontend, calls = _frontend()
    connection = FakeConnection()
    slot = frontend.connect(connection)
    connection.written.clear()

    frontend.receive(slot, b'{"cmd":"send","id":"1","temp":NaN}\n{"temp":-Infinity}\n')
    assert [json.loads(line) for line in connection.written] == [{"ok": False, "error": "invalid_json"}] * 2
    assert calls == []

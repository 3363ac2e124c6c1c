from __future__ import annotations

import pytest

from irhvac.core.codecs import (
    decode_gc,
    decode_pronto,
    decode_racepoint,
    send_code,
    tokenize,
)
from irhvac.core.errors import CodecError, TransportSendError
from irhvac.transports.dry_run import LoggingSender

PRONTO_CODE = "0000 006D 0000 0002 0010 0010 0010 0400"


def test_tokenize_accepts_mixed_separators() -> None:
    assert tokenize(" 0000, 006D;0000\t0001  0010 ") == ["0000", "006D", "0000", "0001", "0010"]


def test_pronto_words_parse_leniently() -> None:
    code = decode_pronto("0000 006D 0000 0001 zz 0x10")
    assert code.words == (0, 0x6D, 0, 1, 0, 0x10)
    assert code.repeats == 0


def test_pronto_repeat_prefix() -> None:
    code = decode_pronto("R2 " + PRONTO_CODE)
    assert code.repeats == 2
    assert code.words[:2] == (0, 0x6D)


def test_pronto_too_short_is_rejected() -> None:
    with pytest.raises(CodecError):
        decode_pronto("0000 006D 0000 0001 0010")

    sender = LoggingSender()
    assert send_code(sender, "pronto", "0000 006D 0000 0001 0010") is False
    assert sender.calls == []
    assert sender.flushes == 0


def test_pronto_repeat_sequence_sent_once_without_intro() -> None:
    sender = LoggingSender()
    assert send_code(sender, "pronto", PRONTO_CODE) is True

    train = sender.pulse_train()
    assert train.frequency == 38028
    assert train.durations == (420, 420, 420, 26931)
    assert sender.flushes == 1


def test_pronto_repeat_prefix_repeats_sequence() -> None:
    sender = LoggingSender()
    assert send_code(sender, "pronto", "R2 " + PRONTO_CODE) is True
    assert sender.pulse_train().durations == (420, 420, 420, 26931) * 3


def test_pronto_non_raw_type_fails_without_output() -> None:
    sender = LoggingSender()
    assert send_code(sender, "pronto", "0100 006D 0000 0001 0010 0010") is False
    assert sender.calls == []


def test_pronto_zero_frequency_fails() -> None:
    sender = LoggingSender()
    assert send_code(sender, "pronto", "0000 0000 0000 0001 0010 0010") is False


def test_gc_prefix_is_stripped() -> None:
    assert decode_gc("sendir,1:1,1,38000,1,1,172,172").words == (38000, 1, 1, 172, 172)
    assert decode_gc("38000,1,1,172,172").words == (38000, 1, 1, 172, 172)


def test_gc_empty_is_rejected() -> None:
    with pytest.raises(CodecError):
        decode_gc("sendir,")


def test_gc_emits_marks_and_spaces() -> None:
    sender = LoggingSender()
    assert send_code(sender, "gc", "sendir,1:1,1,38000,1,1,172,172,22,64") is True

    train = sender.pulse_train()
    assert train.frequency == 38000
    assert train.durations == (4472, 4472, 572, 1664)
    assert sender.calls[-1] == ("space", 0)


def test_gc_repeats_restart_at_offset() -> None:
    sender = LoggingSender()
    assert send_code(sender, "gc", "38000,2,3,172,172,22,64") is True
    assert sender.pulse_train().durations == (4472, 4472, 572, 1664, 572, 1664)


def test_gc_spaces_have_a_floor() -> None:
    sender = LoggingSender()
    assert send_code(sender, "gc", "38000,1,1,10,1") is True
    assert sender.pulse_train().durations == (260, 80)


def test_long_marks_are_split() -> None:
    sender = LoggingSender()
    assert send_code(sender, "gc", "38000,1,1,3000,10") is True
    assert ("mark", 65535) in sender.calls
    assert ("mark", 12465) in sender.calls
    assert sender.pulse_train().durations == (78000, 260)


def test_racepoint_decodes_carrier_and_trims_trailing_zeros() -> None:
    code = decode_racepoint("0000 0000 9470 0041 0041 0000")
    assert code.frequency == 38000
    assert code.durations == (1711, 1711)


def test_racepoint_emit() -> None:
    sender = LoggingSender()
    assert send_code(sender, "racepoint", "000000009470004100410000") is True
    train = sender.pulse_train()
    assert train.frequency == 38000
    assert train.durations == (1711, 1711)


@pytest.mark.parametrize(
    "text",
    [
        "00009",
        "0000",
        "0000 0001 0002",
        "0000 9470",
        "9470 0000 0000",
    ],
)
def test_racepoint_rejects_malformed_codes(text: str) -> None:
    with pytest.raises(CodecError):
        decode_racepoint(text)


def test_unknown_encoding_fails() -> None:
    sender = LoggingSender()
    assert send_code(sender, "nec", "0x20DF10EF") is False
    assert sender.calls == []


def test_transport_failure_reports_false() -> None:
    class FailingSender(LoggingSender):
        def flush(self) -> None:
            raise TransportSendError("wave transmit failed")

    assert send_code(FailingSender(), "pronto", PRONTO_CODE) is False

"""Raw IR code formats: Pronto hex, GlobalCache sendir, and Racepoint hex blobs.

Each format has a pure ``decode_*`` step (text in, decoded words out or
``CodecError``) and an ``emit_*`` step that drives a ``RawSender`` with
enable/mark/space calls. ``send_code`` chains the two and reports plain
success/failure for the command engine.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from irhvac.core.errors import CodecError, TransportError
from irhvac.transports.base import RawSender

LOGGER = logging.getLogger(__name__)

ENCODINGS = ("pronto", "gc", "racepoint")

PRONTO_MIN_LENGTH = 6
PRONTO_FREQ_FACTOR = 0.241246

GC_MAX_REPEAT = 50
GC_MIN_SPACE_US = 80
GC_START_INDEX = 3

RACEPOINT_MIN_FREQ = 20000
RACEPOINT_MAX_FREQ = 60000

MAX_MARK_US = 65535

_TOKEN_SEP_RE = re.compile(r"[,; \t]+")
_HEX_PREFIX_RE = re.compile(r"^(?:0[xX])?([0-9a-fA-F]+)")
_DEC_PREFIX_RE = re.compile(r"^[+-]?\d+")
_NON_HEX_RE = re.compile(r"[^0-9a-fA-F]")


@dataclass(frozen=True)
class ProntoCode:
    words: tuple[int, ...]
    repeats: int = 0


@dataclass(frozen=True)
class GlobalCacheCode:
    words: tuple[int, ...]


@dataclass(frozen=True)
class RacepointCode:
    frequency: int
    durations: tuple[int, ...]


def tokenize(text: str) -> list[str]:
    return [token for token in _TOKEN_SEP_RE.split(text.strip()) if token]


def _hex_word(token: str) -> int:
    # Lenient like strtoul: leading hex digits count, garbage parses to 0.
    match = _HEX_PREFIX_RE.match(token)
    if not match:
        return 0
    return int(match.group(1), 16) & 0xFFFF


def _dec_word(token: str) -> int:
    match = _DEC_PREFIX_RE.match(token)
    if not match:
        return 0
    return int(match.group(0)) & 0xFFFF


def _usec_period(hz: int) -> int:
    if hz <= 0:
        hz = 1
    return (1_000_000 + hz // 2) // hz


def _mark(sender: RawSender, duration: int) -> None:
    while duration > 0:
        chunk = min(duration, MAX_MARK_US)
        sender.mark(chunk)
        duration -= chunk


def decode_pronto(text: str, repeats: int = 0) -> ProntoCode:
    tokens = tokenize(text)
    if tokens and len(tokens[0]) > 1 and tokens[0][0] in "Rr":
        repeats = _dec_word(tokens[0][1:])
        tokens = tokens[1:]

    if len(tokens) < PRONTO_MIN_LENGTH:
        raise CodecError(
            f"Pronto code has {len(tokens)} words, need at least {PRONTO_MIN_LENGTH}"
        )
    return ProntoCode(words=tuple(_hex_word(t) for t in tokens), repeats=repeats)


def emit_pronto(sender: RawSender, code: ProntoCode) -> None:
    words = code.words
    # Only raw (learned) codes carry timing; other Pronto types would emit nothing.
    if words[0] != 0:
        raise CodecError(f"Unsupported Pronto code type 0x{words[0]:04X}; only raw (0000) codes")
    if words[1] == 0:
        raise CodecError("Pronto frequency word must not be zero")

    hz = int(1_000_000 / (words[1] * PRONTO_FREQ_FACTOR))
    period_x10 = _usec_period(hz // 10)
    seq1_len = words[2] * 2
    seq2_len = words[3] * 2
    seq1_start = 4
    seq2_start = seq1_start + seq1_len
    repeats = code.repeats

    sender.enable(hz)
    if seq1_len > 0:
        if len(words) < seq1_start + seq1_len:
            LOGGER.warning("Pronto first sequence is truncated; nothing sent")
            return
        for i in range(seq1_start, seq1_start + seq1_len, 2):
            _mark(sender, words[i] * period_x10 // 10)
            sender.space(words[i + 1] * period_x10 // 10)
    else:
        # No first sequence means the repeat sequence goes out at least once.
        repeats += 1

    if seq2_len > 0:
        if len(words) < seq2_start + seq2_len:
            LOGGER.warning("Pronto repeat sequence is truncated; not repeated")
            return
        for _ in range(repeats):
            for i in range(seq2_start, seq2_start + seq2_len, 2):
                _mark(sender, words[i] * period_x10 // 10)
                sender.space(words[i + 1] * period_x10 // 10)


def decode_gc(text: str) -> GlobalCacheCode:
    stripped = text.strip()
    if stripped.startswith("sendir,"):
        stripped = stripped[len("sendir,"):]
    if stripped.startswith("1:1,1,"):
        stripped = stripped[len("1:1,1,"):]

    words = tuple(_dec_word(t) for t in tokenize(stripped))
    if not words:
        raise CodecError("GlobalCache code contains no values")
    return GlobalCacheCode(words=words)


def emit_gc(sender: RawSender, code: GlobalCacheCode) -> None:
    words = code.words
    header = list(words[:GC_START_INDEX]) + [0] * max(0, GC_START_INDEX - len(words))
    hz, repeat_count, repeat_offset = header
    period = _usec_period(hz)
    emits = min(repeat_count, GC_MAX_REPEAT)

    sender.enable(hz)
    for repeat in range(emits):
        start = repeat_offset + GC_START_INDEX - 1 if repeat else GC_START_INDEX
        for i in range(start, len(words)):
            if i & 1:
                _mark(sender, period * words[i])
            else:
                sender.space(max(GC_MIN_SPACE_US, period * words[i]))
    sender.space(0)


def decode_racepoint(text: str) -> RacepointCode:
    hex_digits = _NON_HEX_RE.sub("", text)
    if len(hex_digits) < 8 or len(hex_digits) % 4 != 0:
        raise CodecError(
            f"Racepoint code needs a multiple of 4 hex digits (at least 8), got {len(hex_digits)}"
        )

    words = [int(hex_digits[i : i + 4], 16) for i in range(0, len(hex_digits), 4)]

    frequency = 0
    start = 0
    for i, word in enumerate(words):
        if RACEPOINT_MIN_FREQ <= word <= RACEPOINT_MAX_FREQ:
            frequency = word
            start = i + 1
            break
    if frequency == 0:
        raise CodecError("Racepoint code has no carrier frequency word")
    if start >= len(words):
        raise CodecError("Racepoint carrier frequency is the last word; no pulses follow")

    end = len(words)
    while end > start and words[end - 1] == 0:
        end -= 1
    if end == start:
        raise CodecError("Racepoint code has no pulse data")

    durations = tuple(
        (cycles * 1_000_000 + frequency // 2) // frequency for cycles in words[start:end]
    )
    return RacepointCode(frequency=frequency, durations=durations)


def emit_racepoint(sender: RawSender, code: RacepointCode) -> None:
    sender.enable(code.frequency)
    for i, duration in enumerate(code.durations):
        if i & 1:
            sender.space(duration)
        else:
            _mark(sender, duration)
    sender.space(0)


def send_code(sender: RawSender, encoding: str, code: str, repeats: int = 0) -> bool:
    """Decode `code` in the given encoding and emit it; False on any format problem."""
    try:
        if encoding == "pronto":
            emit_pronto(sender, decode_pronto(code, repeats))
        elif encoding == "gc":
            emit_gc(sender, decode_gc(code))
        elif encoding == "racepoint":
            emit_racepoint(sender, decode_racepoint(code))
        else:
            LOGGER.warning("Unknown raw encoding '%s'", encoding)
            return False
        sender.flush()
    except CodecError as exc:
        LOGGER.warning("Could not send %s code: %s", encoding, exc)
        return False
    except TransportError as exc:
        LOGGER.error("IR output failed while sending %s code: %s", encoding, exc)
        return False
    return True

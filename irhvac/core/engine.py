"""Command engine: resolves wire commands against the registry and state store.

Every command is handled to completion within one `execute` call. Failures
are reported as ``{"ok": false, "error": <reason>}`` values; nothing a client
sends can raise out of `execute`.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from irhvac.core.catalog import is_supported
from irhvac.core.channels import ChannelTable, TransmissionChannel
from irhvac.core.codecs import send_code
from irhvac.core.errors import CommandError, TransportError
from irhvac.core.model import AcCommand, DeviceConfig, DeviceState
from irhvac.core.registry import Registry
from irhvac.core.state import INITIAL_STATE, StateStore, snapshot, states_differ

LOGGER = logging.getLogger(__name__)

COMMANDS = ("list", "send", "get", "get_all", "raw", "help")

HELP_EXAMPLES = (
    '{"cmd":"list"}',
    '{"cmd":"send","id":"1","power":"on","mode":"cool","temp":24,"fan":"auto"}',
    '{"cmd":"get","id":"1"}',
    '{"cmd":"get_all"}',
    '{"cmd":"raw","emitter":0,"encoding":"pronto","code":"0000 006D 0000 ..."}',
    '{"cmd":"raw","emitter":0,"encoding":"gc","code":"sendir,1:1,1,38000,1,1,172,172,..."}',
    '{"cmd":"raw","emitter":0,"encoding":"racepoint","code":"0000000000009470..."}',
)

_TRUE_STRINGS = {"on", "true", "yes", "1"}
_FALSE_STRINGS = {"off", "false", "no", "0"}

_CUSTOM_MODES = {"cool", "heat", "dry", "fan", "off"}
_CUSTOM_FANS = {"min", "low", "medium", "high", "max"}

_CATALOG_MODES = {
    "auto": "auto",
    "automatic": "auto",
    "cool": "cool",
    "cooling": "cool",
    "heat": "heat",
    "heating": "heat",
    "dry": "dry",
    "drying": "dry",
    "dehumidify": "dry",
    "fan": "fan",
    "fan_only": "fan",
    "fan-only": "fan",
    "fanonly": "fan",
    "off": "off",
    "stop": "off",
}
_CATALOG_FANS = {
    "auto": "auto",
    "automatic": "auto",
    "min": "min",
    "minimum": "min",
    "lowest": "min",
    "low": "low",
    "lo": "low",
    "medium": "medium",
    "med": "medium",
    "mid": "medium",
    "high": "high",
    "hi": "high",
    "max": "max",
    "maximum": "max",
    "highest": "max",
}
_SWING_V = {"auto", "off", "highest", "high", "middle", "low", "lowest"}
_SWING_H = {"auto", "off", "leftmax", "left", "middle", "right", "rightmax", "wide"}

Notifier = Callable[[dict[str, Any], int | None], Any]


def failure(reason: str) -> dict[str, Any]:
    return {"ok": False, "error": reason}


def parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return default


def normalize_mode(value: str) -> str:
    lowered = value.strip().lower()
    return lowered if lowered in _CUSTOM_MODES else "auto"


def normalize_fan(value: str) -> str:
    lowered = value.strip().lower()
    return lowered if lowered in _CUSTOM_FANS else "auto"


def parse_opmode(value: str) -> str:
    return _CATALOG_MODES.get(value.strip().lower(), "auto")


def parse_fanspeed(value: str) -> str:
    return _CATALOG_FANS.get(value.strip().lower(), "auto")


def _text(doc: Mapping[str, Any], key: str, default: str) -> str:
    value = doc.get(key)
    return value if isinstance(value, str) else default


def _number(doc: Mapping[str, Any], key: str) -> float | None:
    value = doc.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _integer(doc: Mapping[str, Any], key: str) -> int | None:
    value = doc.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _device_id(doc: Mapping[str, Any]) -> str:
    value = doc.get("id")
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value if isinstance(value, str) else ""


def _flag(value: Any, default: bool) -> bool:
    # Unrecognized strings read as false; other non-boolean values keep the default.
    if isinstance(value, str):
        return parse_bool(value, False)
    return parse_bool(value, default)


def _light(doc: Mapping[str, Any], previous: bool) -> bool:
    # Only an explicit `light` field changes the light flag.
    if doc.get("light") is None:
        return previous
    return _flag(doc["light"], previous)


def _power(doc: Mapping[str, Any]) -> bool:
    value = doc.get("power")
    power = True if value is None else _flag(value, True)
    if _text(doc, "command", "") == "off":
        power = False
    return power


class CommandEngine:
    def __init__(
        self,
        registry: Registry,
        states: StateStore,
        channels: ChannelTable,
        notifier: Notifier | None = None,
    ) -> None:
        self.registry = registry
        self.states = states
        self.channels = channels
        self.notifier = notifier
        self._handlers: dict[str, Callable[[Mapping[str, Any], int | None], Any]] = {
            "help": self._help,
            "list": self._list,
            "get": self._get,
            "get_all": self._get_all,
            "raw": self._raw,
            "send": self._send,
        }

    def execute(self, doc: Any, origin: int | None = None) -> Any:
        """Run one command. `origin` is the session that sent it, excluded from broadcasts."""
        if not isinstance(doc, Mapping):
            doc = {}
        cmd = _text(doc, "cmd", "send")
        LOGGER.info("Command '%s' from %s", cmd, "local" if origin is None else f"slot {origin}")
        handler = self._handlers.get(cmd)
        if handler is None:
            return failure("unknown_cmd")
        try:
            return handler(doc, origin)
        except CommandError as exc:
            LOGGER.info("Command '%s' failed: %s", cmd, exc.reason)
            return failure(exc.reason)

    def all_snapshots(self) -> list[dict[str, Any]]:
        snapshots = []
        for index, device in enumerate(self.registry.devices):
            snapshots.append(snapshot(device.id, self.states.ensure_initialized(index)))
        return snapshots

    def report_current_temp(self, device_id: str, value: float, origin: int | None = None) -> dict[str, Any]:
        """Apply an external temperature reading and broadcast it if it changed the state."""
        if not device_id:
            return failure("missing_id")
        index = self.registry.find_index(device_id)
        if index < 0:
            return failure("unknown_id")
        reading = _number({"value": value}, "value")
        if reading is None:
            return failure("invalid_temp")
        previous = self.states.get(index)
        if not previous.initialized:
            previous = INITIAL_STATE
        return self._commit(index, device_id, previous, replace(previous, current_temp=reading), origin)

    def _lookup(self, doc: Mapping[str, Any]) -> tuple[int, DeviceConfig]:
        device_id = _device_id(doc)
        if not device_id:
            raise CommandError("missing_id")
        index = self.registry.find_index(device_id)
        if index < 0:
            raise CommandError("unknown_id", f"Unknown device '{device_id}'")
        return index, self.registry.devices[index]

    def _commit(
        self,
        index: int,
        device_id: str,
        previous: DeviceState,
        current: DeviceState,
        origin: int | None,
    ) -> dict[str, Any]:
        self.states.commit(index, current)
        state = snapshot(device_id, current)
        if states_differ(previous, current) and self.notifier is not None:
            self.notifier(state, origin)
        return state

    def _help(self, doc: Mapping[str, Any], origin: int | None) -> dict[str, Any]:
        return {"ok": True, "help": {"commands": list(COMMANDS), "examples": list(HELP_EXAMPLES)}}

    def _list(self, doc: Mapping[str, Any], origin: int | None) -> dict[str, Any]:
        return {
            "ok": True,
            "emitters": [
                {"index": index, "gpio": channel.gpio}
                for index, channel in enumerate(self.registry.channels)
            ],
            "hvacs": [
                {
                    "id": device.id,
                    "protocol": device.protocol,
                    "emitter": device.channel,
                    "model": device.model,
                    "custom": device.is_custom,
                }
                for device in self.registry.devices
            ],
        }

    def _get(self, doc: Mapping[str, Any], origin: int | None) -> dict[str, Any]:
        index, device = self._lookup(doc)
        return snapshot(device.id, self.states.ensure_initialized(index))

    def _get_all(self, doc: Mapping[str, Any], origin: int | None) -> list[dict[str, Any]]:
        return self.all_snapshots()

    def _raw(self, doc: Mapping[str, Any], origin: int | None) -> dict[str, Any]:
        emitter = _integer(doc, "emitter")
        channel = self.channels.get(0 if emitter is None else emitter)
        if channel is None:
            raise CommandError("invalid_emitter")
        ok = send_code(channel.raw, _text(doc, "encoding", "pronto"), _text(doc, "code", ""))
        if not ok:
            raise CommandError("send_failed")
        return {"ok": True}

    def _send(self, doc: Mapping[str, Any], origin: int | None) -> dict[str, Any]:
        index, device = self._lookup(doc)
        channel = self.channels.get(device.channel)
        if channel is None:
            raise CommandError("invalid_emitter")

        stored = self.states.get(index)
        previous = stored if stored.initialized else INITIAL_STATE

        if device.is_custom:
            current = self._send_custom(doc, device, channel, previous, stored.initialized)
        else:
            current = self._send_catalog(doc, device, channel, previous, stored.initialized)
        return self._commit(index, device.id, previous, current, origin)

    def _current_temp(
        self,
        doc: Mapping[str, Any],
        previous: DeviceState,
        setpoint: float,
        was_initialized: bool,
    ) -> float:
        override = _number(doc, "current_temp")
        if override is not None:
            return override
        if not was_initialized:
            return setpoint
        return previous.current_temp

    def _send_custom(
        self,
        doc: Mapping[str, Any],
        device: DeviceConfig,
        channel: TransmissionChannel,
        previous: DeviceState,
        was_initialized: bool,
    ) -> DeviceState:
        profile = device.custom
        encoding = _text(doc, "encoding", profile.encoding)
        power = _power(doc)
        code = _text(doc, "code", "")
        temp_key = _integer(doc, "temp")

        if not power:
            if not profile.off_code:
                raise CommandError("missing_custom_off")
            code = profile.off_code
        elif not code and temp_key is not None:
            code = profile.code_for(temp_key) or ""
            if not code:
                raise CommandError("missing_temp_code", f"No code for {temp_key} on '{device.id}'")
        if not code:
            raise CommandError("missing_code")

        setpoint = _number(doc, "temp")
        if setpoint is None:
            setpoint = previous.setpoint
        mode = normalize_mode(_text(doc, "mode", previous.mode))

        current = DeviceState(
            initialized=True,
            power=power,
            mode=mode if power else "off",
            setpoint=setpoint,
            current_temp=self._current_temp(doc, previous, setpoint, was_initialized),
            fan=normalize_fan(_text(doc, "fan", previous.fan)),
            light=_light(doc, previous.light),
        )
        if not send_code(channel.raw, encoding, code):
            raise CommandError("send_failed")
        return current

    def _send_catalog(
        self,
        doc: Mapping[str, Any],
        device: DeviceConfig,
        channel: TransmissionChannel,
        previous: DeviceState,
        was_initialized: bool,
    ) -> DeviceState:
        protocol = device.catalog.protocol
        if not is_supported(protocol):
            raise CommandError("unsupported_protocol", f"Unsupported protocol '{protocol}'")

        power = _power(doc)
        mode = parse_opmode(_text(doc, "mode", "auto")) if power else "off"
        setpoint = _number(doc, "temp")
        if setpoint is None:
            setpoint = 24.0
        model = _integer(doc, "model")
        swing_v = _text(doc, "swingv", "off").strip().lower()
        swing_h = _text(doc, "swingh", "off").strip().lower()
        sleep = _integer(doc, "sleep")
        clock = _integer(doc, "clock")

        command = AcCommand(
            protocol=protocol,
            model=device.model if model is None else model,
            power=power,
            mode=mode,
            setpoint=setpoint,
            celsius=parse_bool(doc.get("celsius", True), True),
            fan=parse_fanspeed(_text(doc, "fan", "auto")),
            swing_v=swing_v if swing_v in _SWING_V else "off",
            swing_h=swing_h if swing_h in _SWING_H else "off",
            quiet=parse_bool(doc.get("quiet", False), False),
            turbo=parse_bool(doc.get("turbo", False), False),
            econo=parse_bool(doc.get("econo", False), False),
            light=_light(doc, previous.light),
            filter=parse_bool(doc.get("filter", False), False),
            clean=parse_bool(doc.get("clean", False), False),
            beep=parse_bool(doc.get("beep", False), False),
            sleep=-1 if sleep is None else sleep,
            clock=-1 if clock is None else clock,
        )

        try:
            ok = channel.ac.send_ac(command)
        except TransportError as exc:
            LOGGER.error("Catalog encoder failed for '%s': %s", device.id, exc)
            ok = False
        if not ok:
            raise CommandError("send_failed")

        return DeviceState(
            initialized=True,
            power=power,
            mode=mode,
            setpoint=setpoint,
            current_temp=self._current_temp(doc, previous, setpoint, was_initialized),
            fan=command.fan,
            light=command.light,
        )

"""Core data models used across registry, engine, sessions, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field

CUSTOM_PROTOCOL = "CUSTOM"

FAN_SPEEDS = ("auto", "min", "low", "medium", "high", "max")

MAX_SESSIONS = 4
MAX_CHANNELS = 8
MAX_DEVICES = 32
MAX_CUSTOM_TEMPS = 16
MAX_DEVICE_ID = 99
MAX_LINE_BYTES = 4096
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 4998


@dataclass(frozen=True)
class ChannelConfig:
    gpio: int


@dataclass(frozen=True)
class CustomProfile:
    encoding: str = ""
    off_code: str = ""
    temps: dict[int, str] = field(default_factory=dict)

    def code_for(self, temp: int) -> str | None:
        return self.temps.get(temp)


@dataclass(frozen=True)
class CatalogProfile:
    protocol: str


@dataclass(frozen=True)
class DeviceConfig:
    id: str
    protocol: str
    channel: int = -1
    model: int = -1
    profile: CustomProfile | CatalogProfile | None = None

    @property
    def is_custom(self) -> bool:
        return isinstance(self.profile, CustomProfile) or self.protocol == CUSTOM_PROTOCOL

    @property
    def custom(self) -> CustomProfile:
        if isinstance(self.profile, CustomProfile):
            return self.profile
        return CustomProfile()

    @property
    def catalog(self) -> CatalogProfile:
        if isinstance(self.profile, CatalogProfile):
            return self.profile
        return CatalogProfile(protocol=self.protocol)


@dataclass(frozen=True)
class ControllerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    channels: tuple[ChannelConfig, ...] = ()
    devices: tuple[DeviceConfig, ...] = ()


@dataclass(frozen=True)
class DeviceState:
    initialized: bool = False
    power: bool = False
    mode: str = "off"
    setpoint: float = 24.0
    current_temp: float = 24.0
    fan: str = "auto"
    light: bool = False


@dataclass(frozen=True)
class AcCommand:
    """Full parameter set handed to a catalog AC encoder."""

    protocol: str
    model: int
    power: bool
    mode: str
    setpoint: float
    celsius: bool = True
    fan: str = "auto"
    swing_v: str = "off"
    swing_h: str = "off"
    quiet: bool = False
    turbo: bool = False
    econo: bool = False
    light: bool = False
    filter: bool = False
    clean: bool = False
    beep: bool = False
    sleep: int = -1
    clock: int = -1


@dataclass(frozen=True)
class PulseTrain:
    """Carrier frequency plus alternating mark/space durations in microseconds."""

    frequency: int
    durations: tuple[int, ...]

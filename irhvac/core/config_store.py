"""Loading, validation, and saving of the controller configuration document."""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from irhvac.core.catalog import is_supported, normalize_protocol
from irhvac.core.errors import ConfigLoadError, ConfigValidationError
from irhvac.core.model import (
    CUSTOM_PROTOCOL,
    DEFAULT_HOST,
    DEFAULT_PORT,
    ChannelConfig,
    ControllerConfig,
    CustomProfile,
    DeviceConfig,
)
from irhvac.core.registry import build_profile

CONFIG_ENV_VAR = "IRHVAC_CONFIG"
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys and keeps on/off as strings.

    The implicit bool resolver is stripped so that a custom profile's `off` key
    and on/off values load as the strings the command engine expects, instead
    of YAML 1.1 booleans.
    """


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[Any, Any]:
    mapping: dict[Any, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in configuration document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@lru_cache(maxsize=1)
def _load_schema_validator() -> Any:
    schema_text = resources.files("irhvac.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "irhvac/config.yaml"


def _normalize_temps(doc: dict[str, Any]) -> None:
    # YAML reads `18: code` with an int key, JSON with a string key.
    for hvac in doc.get("hvacs") or []:
        custom = hvac.get("custom") if isinstance(hvac, dict) else None
        if isinstance(custom, dict) and isinstance(custom.get("temps"), dict):
            custom["temps"] = {str(k): v for k, v in custom["temps"].items()}


def config_from_document(doc: dict[str, Any], source: str = "<document>") -> ControllerConfig:
    _normalize_temps(doc)
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    channels = tuple(ChannelConfig(gpio=int(e["gpio"])) for e in doc.get("emitters", []))

    devices: list[DeviceConfig] = []
    seen: set[str] = set()
    for hvac in doc.get("hvacs", []):
        device_id = hvac["id"]
        if device_id in seen:
            raise ConfigValidationError(f"Duplicate device id '{device_id}' in {source}")
        seen.add(device_id)

        protocol = normalize_protocol(hvac["protocol"])
        custom: CustomProfile | None = None
        if "custom" in hvac:
            protocol = CUSTOM_PROTOCOL
            block = hvac["custom"]
            custom = CustomProfile(
                encoding=block.get("encoding", ""),
                off_code=block.get("off", ""),
                temps={int(k): v for k, v in block.get("temps", {}).items()},
            )
        elif protocol != CUSTOM_PROTOCOL and not is_supported(protocol):
            LOGGER.warning("Device '%s' uses unsupported protocol '%s'", device_id, protocol)

        channel = int(hvac.get("emitter", -1))
        if channel >= len(channels):
            LOGGER.warning("Device '%s' refers to missing channel %d", device_id, channel)

        devices.append(
            DeviceConfig(
                id=device_id,
                protocol=protocol,
                channel=channel,
                model=int(hvac.get("model", -1)),
                profile=build_profile(protocol, custom),
            )
        )

    return ControllerConfig(
        host=doc.get("host", DEFAULT_HOST),
        port=int(doc.get("telnet_port", DEFAULT_PORT)),
        channels=channels,
        devices=tuple(devices),
    )


def config_to_document(config: ControllerConfig) -> dict[str, Any]:
    hvacs: list[dict[str, Any]] = []
    for device in config.devices:
        entry: dict[str, Any] = {
            "id": device.id,
            "protocol": device.protocol,
            "emitter": device.channel,
            "model": device.model,
        }
        if device.is_custom:
            custom = device.custom
            entry["custom"] = {
                "encoding": custom.encoding,
                "off": custom.off_code,
                "temps": {str(temp): code for temp, code in custom.temps.items()},
            }
        hvacs.append(entry)

    return {
        "host": config.host,
        "telnet_port": config.port,
        "emitters": [{"gpio": channel.gpio} for channel in config.channels],
        "hvacs": hvacs,
    }


def load_config(path: Path | None = None) -> ControllerConfig:
    path = path or default_config_path()
    if not path.exists():
        LOGGER.info("No configuration at %s; starting empty", path)
        return ControllerConfig()

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read configuration {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML/JSON in {path}: {exc}") from exc

    if loaded is None:
        return ControllerConfig()
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Configuration {path} must contain a mapping at root")
    return config_from_document(loaded, str(path))


def save_config(config: ControllerConfig, path: Path | None = None) -> Path:
    path = path or default_config_path()
    text = yaml.safe_dump(config_to_document(config), sort_keys=False)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not write configuration {path}: {exc}") from exc
    LOGGER.info("Configuration saved to %s", path)
    return path

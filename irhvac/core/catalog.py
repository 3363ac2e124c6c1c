"""Catalog of named AC protocols understood by the external encoder."""

from __future__ import annotations

from functools import lru_cache
from importlib import resources

import yaml

from irhvac.core.errors import ConfigValidationError
from irhvac.core.model import CUSTOM_PROTOCOL


@lru_cache(maxsize=1)
def catalog_protocols() -> tuple[str, ...]:
    text = resources.files("irhvac.catalog").joinpath("protocols.yaml").read_text(encoding="utf-8")
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid protocol catalog: {exc}") from exc
    if not isinstance(loaded, dict) or not isinstance(loaded.get("protocols"), list):
        raise ConfigValidationError("Protocol catalog must contain a 'protocols' list")
    return tuple(str(name).upper() for name in loaded["protocols"])


def normalize_protocol(name: str) -> str:
    return name.strip().upper()


def is_supported(name: str) -> bool:
    normalized = normalize_protocol(name)
    if not normalized or normalized == CUSTOM_PROTOCOL:
        return False
    return normalized in catalog_protocols()

"""Core data models used across the config loader, synchronizer, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class PreferenceKey:
    domain: str
    key: str
    user: str = "any"
    host: str = "current"


@dataclass(frozen=True)
class ControllerProfile:
    id: str
    name: str
    preference: PreferenceKey
    registry_class: str
    registry_property: str
    capability_marker: str


@dataclass(frozen=True)
class Settings:
    verbose: bool = False
    format: str = "text"


@dataclass(frozen=True)
class OpaqueValue:
    """A non-boolean value read from an OS store."""

    type_name: str


@dataclass(frozen=True)
class DeviceState:
    name: str
    enabled: bool


@dataclass(frozen=True)
class TransactionResult:
    preference_value: bool
    devices: tuple[DeviceState, ...]
    errors: tuple[str, ...] = field(default=())

    def device_values(self) -> dict[str, bool]:
        """Map service name to value.

        Registry names may repeat across services (every AppleIRController
        instance is usually named the same); the last one enumerated wins here.
        Use `devices` for one row per service.
        """
        return {device.name: device.enabled for device in self.devices}

    def as_dict(self) -> dict[str, Any]:
        return {
            "preference": self.preference_value,
            "devices": [{"name": d.name, "enabled": d.enabled} for d in self.devices],
            "errors": list(self.errors),
        }

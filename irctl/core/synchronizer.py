"""Read/write transactions over the preference store and registry services.

The preference store is the cross-boot source of truth, so a write always
lands there (and is flushed) before any registry service is touched. Device
order follows the registry's enumeration order.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Callable

from irctl.backends.base import PreferenceStore, ServiceHandle
from irctl.core.enumerator import ServiceEnumerator
from irctl.core.errors import (
    ElevationRequiredError,
    NoDeviceFoundError,
    PerServiceError,
    PersistError,
    TypeMismatchError,
)
from irctl.core.model import ControllerProfile, DeviceState, OpaqueValue, TransactionResult

LOGGER = logging.getLogger(__name__)


def running_as_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


class FlagSynchronizer:
    def __init__(
        self,
        preferences: PreferenceStore,
        enumerator: ServiceEnumerator,
        profile: ControllerProfile,
        *,
        is_privileged: Callable[[], bool] = running_as_root,
    ) -> None:
        self.preferences = preferences
        self.enumerator = enumerator
        self.profile = profile
        self.is_privileged = is_privileged

    def read_state(self) -> TransactionResult:
        preference_value = self._read_preference()

        devices: list[DeviceState] = []
        errors: list[str] = []
        matched = 0
        with self.enumerator.enumerate() as services:
            for service in services:
                matched += 1
                try:
                    devices.append(self._read_service(service))
                except PerServiceError as exc:
                    LOGGER.error("%s", exc)
                    errors.append(str(exc))
                finally:
                    service.release()

        if matched == 0:
            raise NoDeviceFoundError(f"Failed to match any {self.profile.registry_class}")

        return TransactionResult(
            preference_value=preference_value,
            devices=tuple(devices),
            errors=tuple(errors),
        )

    def write_state(self, value: bool) -> TransactionResult:
        """Write `value` to both stores and return the re-read, verified state."""
        if not self.is_privileged():
            raise ElevationRequiredError("This operation must be performed as root")

        key = self.profile.preference
        self.preferences.set_value(key, value)
        if not self.preferences.synchronize(key):
            raise PersistError(
                f"Failed to synchronize preferences for {key.domain}; "
                f"stored value of {key.key} is indeterminate"
            )

        errors: list[str] = []
        with self.enumerator.enumerate() as services:
            for service in services:
                try:
                    self._write_service(service, value)
                except PerServiceError as exc:
                    LOGGER.error("%s", exc)
                    errors.append(str(exc))
                finally:
                    service.release()

        result = self.read_state()
        return dataclasses.replace(result, errors=tuple(errors) + result.errors)

    def _read_preference(self) -> bool:
        key = self.profile.preference
        value = self.preferences.copy_value(key)
        if not isinstance(value, bool):
            if value is None:
                found = "no value"
            elif isinstance(value, OpaqueValue):
                found = value.type_name
            else:
                found = type(value).__name__
            raise TypeMismatchError(
                f"Preference {key.domain} {key.key} must be a boolean, found {found}"
            )
        return value

    def _read_service(self, service: ServiceHandle) -> DeviceState:
        name = service.name()
        LOGGER.debug("Found %s: %s", self.profile.registry_class, name)

        prop = self.profile.registry_property
        enabled = service.get_property(prop)
        if enabled is None:
            raise PerServiceError(f"Service {name} has no {prop} property")
        if not isinstance(enabled, bool):
            raise PerServiceError(f"Service {name} property {prop} is not a boolean")
        return DeviceState(name=name, enabled=enabled)

    def _write_service(self, service: ServiceHandle, value: bool) -> None:
        name = service.name()
        LOGGER.debug("Setting property for %s to %d", name, value)
        service.set_property(self.profile.registry_property, value)

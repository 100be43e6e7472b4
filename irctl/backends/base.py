"""OS collaborator interfaces consumed by the synchronization core."""

from __future__ import annotations

from contextlib import AbstractContextManager
from collections.abc import Sequence
from typing import Protocol

from irctl.core.model import OpaqueValue, PreferenceKey

PreferenceValue = bool | OpaqueValue | None


class PreferenceStore(Protocol):
    def copy_value(self, key: PreferenceKey) -> PreferenceValue:
        """Return the stored value, or None when the key is absent."""

    def set_value(self, key: PreferenceKey, value: bool) -> None:
        """Set the value in memory; durable only after `synchronize`."""

    def synchronize(self, key: PreferenceKey) -> bool:
        """Flush the preference domain, returning False on failure."""


class HIDDevice(Protocol):
    def get_property(self, name: str) -> object | None: ...

    def describe(self) -> str: ...


class HIDDeviceSource(Protocol):
    def copy_devices(self) -> AbstractContextManager[Sequence[HIDDevice]]:
        """Return every attached HID device; raises HIDEnumerationError on failure."""


class ServiceHandle(Protocol):
    def name(self) -> str: ...

    def get_property(self, name: str) -> PreferenceValue: ...

    def set_property(self, name: str, value: bool) -> None: ...

    def release(self) -> None: ...


class ServiceIterator(Protocol):
    def next_service(self) -> ServiceHandle | None:
        """Return the next matched service, or None once exhausted."""

    def release(self) -> None: ...


class ServiceRegistry(Protocol):
    def matching_services(self, class_name: str) -> ServiceIterator:
        """Run a class-name match query; raises EnumerationError on failure."""


class Backend(Protocol):
    preferences: PreferenceStore
    hid: HIDDeviceSource
    registry: ServiceRegistry

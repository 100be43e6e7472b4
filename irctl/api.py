"""Stable public API for building tooling on top of irctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Callable

from irctl.backends.base import Backend
from irctl.core.errors import (
    BackendUnavailableError,
    CapabilityAbsentError,
    ConfigError,
    ElevationRequiredError,
    EnumerationError,
    IrctlError,
    NoDeviceFoundError,
    PerServiceError,
    PersistError,
    ProfileValidationError,
    TypeMismatchError,
)
from irctl.core.model import ControllerProfile, DeviceState, PreferenceKey, TransactionResult
from irctl.core.service import IRControlService

__all__ = [
    "IrctlError",
    "BackendUnavailableError",
    "CapabilityAbsentError",
    "ConfigError",
    "ElevationRequiredError",
    "EnumerationError",
    "NoDeviceFoundError",
    "PerServiceError",
    "PersistError",
    "ProfileValidationError",
    "TypeMismatchError",
    "ControllerProfile",
    "DeviceState",
    "PreferenceKey",
    "TransactionResult",
    "Client",
]


class Client:
    """Public client for reading and toggling the IR receiver flag.

    Every call runs one complete transaction: the capability check, then a
    read, or a write followed by a verifying read.
    """

    def __init__(
        self,
        *,
        backend: Backend | None = None,
        profile: ControllerProfile | None = None,
        is_privileged: Callable[[], bool] | None = None,
    ) -> None:
        self._service = IRControlService(
            backend=backend,
            profile=profile,
            is_privileged=is_privileged,
        )

    @property
    def profile(self) -> ControllerProfile:
        return self._service.profile

    def is_available(self) -> bool:
        return self._service.is_available()

    def status(self) -> TransactionResult:
        return self._service.status()

    def set_enabled(self, value: bool) -> TransactionResult:
        return self._service.set_enabled(value)

    def enable(self) -> TransactionResult:
        return self._service.set_enabled(True)

    def disable(self) -> TransactionResult:
        return self._service.set_enabled(False)

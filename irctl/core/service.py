"""Service layer used by the CLI and the public client."""

from __future__ import annotations

from collections.abc import Callable

from irctl.backends.base import Backend
from irctl.core.config_loader import load_profile
from irctl.core.enumerator import ServiceEnumerator
from irctl.core.errors import CapabilityAbsentError
from irctl.core.model import ControllerProfile, TransactionResult
from irctl.core.probe import CapabilityProbe
from irctl.core.synchronizer import FlagSynchronizer, running_as_root


def _default_backend() -> Backend:
    from irctl.backends.macos import MacOSBackend

    return MacOSBackend()


class IRControlService:
    def __init__(
        self,
        *,
        backend: Backend | None = None,
        profile: ControllerProfile | None = None,
        is_privileged: Callable[[], bool] | None = None,
    ) -> None:
        self.profile = profile or load_profile()
        self.backend = backend or _default_backend()
        self.probe = CapabilityProbe(self.backend.hid, marker=self.profile.capability_marker)
        self.synchronizer = FlagSynchronizer(
            self.backend.preferences,
            ServiceEnumerator(self.backend.registry, class_name=self.profile.registry_class),
            self.profile,
            is_privileged=is_privileged or running_as_root,
        )

    def is_available(self) -> bool:
        return self.probe.is_available()

    def status(self) -> TransactionResult:
        self._require_capability()
        return self.synchronizer.read_state()

    def set_enabled(self, value: bool) -> TransactionResult:
        self._require_capability()
        return self.synchronizer.write_state(value)

    def _require_capability(self) -> None:
        if not self.probe.is_available():
            raise CapabilityAbsentError(f"No {self.profile.capability_marker} available")

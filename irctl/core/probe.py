"""Detection of remote-control capable HID hardware."""

from __future__ import annotations

import logging

from irctl.backends.base import HIDDeviceSource
from irctl.core.errors import HIDEnumerationError

LOGGER = logging.getLogger(__name__)


class CapabilityProbe:
    def __init__(self, source: HIDDeviceSource, *, marker: str) -> None:
        self.source = source
        self.marker = marker

    def is_available(self) -> bool:
        """Return True when any attached HID device exposes the capability marker.

        A failure to enumerate HID devices is reported as "not available".
        """
        try:
            with self.source.copy_devices() as devices:
                for device in devices:
                    if device.get_property(self.marker) is None:
                        continue
                    if LOGGER.isEnabledFor(logging.DEBUG):
                        LOGGER.debug("Located %s:\n%s", self.marker, device.describe())
                    return True
        except HIDEnumerationError as exc:
            LOGGER.error("%s", exc)
            return False
        return False

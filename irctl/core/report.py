"""Human-readable rendering of transaction results."""

from __future__ import annotations

import logging

from irctl.core.model import TransactionResult

LOGGER = logging.getLogger(__name__)


def describe_boolean(value: object) -> str:
    # Upstream type gates guarantee a bool here; anything else is a bug.
    if not isinstance(value, bool):
        LOGGER.critical("Unexpected non-boolean value: %r", value)
        raise AssertionError(f"expected bool, got {type(value).__name__}")
    return "on" if value else "off"


def render_text(result: TransactionResult) -> list[str]:
    lines = [f"Userspace property value: {describe_boolean(result.preference_value)}"]
    for device in result.devices:
        lines.append(f"Kernel property value {device.name}: {describe_boolean(device.enabled)}")
    return lines

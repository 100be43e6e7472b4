from __future__ import annotations

import pytest

from irctl.core.model import DeviceState, TransactionResult
from irctl.core.report import describe_boolean, render_text


def test_describe_boolean() -> None:
    assert describe_boolean(True) == "on"
    assert describe_boolean(False) == "off"


@pytest.mark.parametrize("value", [None, 1, "on"])
def test_describe_boolean_rejects_non_booleans(value: object) -> None:
    with pytest.raises(AssertionError):
        describe_boolean(value)


def test_render_text() -> None:
    result = TransactionResult(
        preference_value=True,
        devices=(DeviceState("AppleIRController", True), DeviceState("Other", False)),
    )
    assert render_text(result) == [
        "Userspace property value: on",
        "Kernel property value AppleIRController: on",
        "Kernel property value Other: off",
    ]


def test_repeated_service_names_keep_one_row_each() -> None:
    result = TransactionResult(
        preference_value=True,
        devices=(DeviceState("AppleIRController", True), DeviceState("AppleIRController", False)),
    )
    assert len(result.as_dict()["devices"]) == 2
    assert render_text(result)[1:] == [
        "Kernel property value AppleIRController: on",
        "Kernel property value AppleIRController: off",
    ]
    assert result.device_values() == {"AppleIRController": False}

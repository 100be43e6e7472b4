from __future__ import annotations

import logging

import pytest

from fakes import FakeBackend, FakeService
from irctl.core.enumerator import ServiceEnumerator
from irctl.core.errors import (
    ElevationRequiredError,
    EnumerationError,
    NoDeviceFoundError,
    PersistError,
    TypeMismatchError,
)
from irctl.core.model import ControllerProfile, OpaqueValue
from irctl.core.synchronizer import FlagSynchronizer


def _synchronizer(
    backend: FakeBackend,
    profile: ControllerProfile,
    *,
    privileged: bool = True,
) -> FlagSynchronizer:
    return FlagSynchronizer(
        backend.preferences,
        ServiceEnumerator(backend.registry, class_name=profile.registry_class),
        profile,
        is_privileged=lambda: privileged,
    )


def test_read_state_reports_both_stores(profile: ControllerProfile) -> None:
    backend = FakeBackend(preference=True, services=[FakeService("AppleIRController", True)])

    result = _synchronizer(backend, profile).read_state()

    assert result.preference_value is True
    assert result.device_values() == {"AppleIRController": True}
    assert result.errors == ()


def test_read_state_releases_every_handle(profile: ControllerProfile) -> None:
    services = [FakeService("a", True), FakeService("b", fail_read=True)]
    backend = FakeBackend(services=services)

    _synchronizer(backend, profile).read_state()

    assert [s.releases for s in services] == [1, 1]
    assert backend.registry.iterators[0].released is True


def test_read_state_missing_preference_is_type_mismatch(profile: ControllerProfile) -> None:
    backend = FakeBackend(preference=None, services=[FakeService("a")])
    with pytest.raises(TypeMismatchError, match="no value"):
        _synchronizer(backend, profile).read_state()


def test_read_state_non_boolean_preference_is_type_mismatch(profile: ControllerProfile) -> None:
    backend = FakeBackend(preference=OpaqueValue(type_name="CFString"), services=[FakeService("a")])
    with pytest.raises(TypeMismatchError, match="CFString"):
        _synchronizer(backend, profile).read_state()


def test_read_state_without_services_fails(profile: ControllerProfile) -> None:
    backend = FakeBackend(services=[])
    with pytest.raises(NoDeviceFoundError, match="AppleIRController"):
        _synchronizer(backend, profile).read_state()


def test_read_state_enumeration_failure_is_fatal(profile: ControllerProfile) -> None:
    backend = FakeBackend(services=[FakeService("a")])
    backend.registry.fail = True
    with pytest.raises(EnumerationError):
        _synchronizer(backend, profile).read_state()


def test_read_state_skips_failing_services(
    profile: ControllerProfile, caplog: pytest.LogCaptureFixture
) -> None:
    backend = FakeBackend(
        services=[
            FakeService("nameless", fail_name=True),
            FakeService("unreadable", fail_read=True),
            FakeService("missing", None),
            FakeService("garbled", OpaqueValue(type_name="CFNumber")),
            FakeService("good", True),
        ]
    )

    with caplog.at_level(logging.ERROR, logger="irctl"):
        result = _synchronizer(backend, profile).read_state()

    assert result.device_values() == {"good": True}
    assert len(result.errors) == 4
    assert len([r for r in caplog.records if r.levelno == logging.ERROR]) == 4


def test_all_services_failing_is_not_no_device(profile: ControllerProfile) -> None:
    backend = FakeBackend(services=[FakeService("a", fail_read=True)])
    result = _synchronizer(backend, profile).read_state()
    assert result.devices == ()
    assert len(result.errors) == 1


def test_write_requires_privilege_and_touches_nothing(profile: ControllerProfile) -> None:
    service = FakeService("AppleIRController", False)
    backend = FakeBackend(preference=False, services=[service])
    synchronizer = _synchronizer(backend, profile, privileged=False)

    with pytest.raises(ElevationRequiredError) as exc:
        synchronizer.write_state(True)

    assert isinstance(exc.value, PermissionError)
    assert backend.events == []
    assert backend.registry.queries == []
    assert synchronizer.read_state().preference_value is False


def test_write_updates_preference_before_devices(profile: ControllerProfile) -> None:
    backend = FakeBackend(preference=False, services=[FakeService("a"), FakeService("b")])

    result = _synchronizer(backend, profile).write_state(True)

    assert backend.events[:2] == [("pref.set", True), ("pref.sync", True)]
    assert {event[1] for event in backend.events[2:]} == {"a", "b"}
    assert result.preference_value is True
    assert result.device_values() == {"a": True, "b": True}


def test_write_re_enumerates_for_verification(profile: ControllerProfile) -> None:
    backend = FakeBackend(services=[FakeService("a")])
    _synchronizer(backend, profile).write_state(True)
    assert len(backend.registry.queries) == 2
    assert all(iterator.released for iterator in backend.registry.iterators)


def test_failed_flush_stops_before_devices(profile: ControllerProfile) -> None:
    service = FakeService("a", False)
    backend = FakeBackend(preference=False, services=[service], sync_ok=False)

    with pytest.raises(PersistError, match="indeterminate"):
        _synchronizer(backend, profile).write_state(True)

    assert service.enabled is False
    assert backend.registry.queries == []


@pytest.mark.parametrize("value", [True, False])
def test_write_round_trip(profile: ControllerProfile, value: bool) -> None:
    backend = FakeBackend(preference=not value, services=[FakeService("a", not value)])
    result = _synchronizer(backend, profile).write_state(value)
    assert result.preference_value is value
    assert result.device_values() == {"a": value}


def test_write_is_idempotent_and_reversible(profile: ControllerProfile) -> None:
    backend = FakeBackend(preference=False, services=[FakeService("a")])
    synchronizer = _synchronizer(backend, profile)

    first = synchronizer.write_state(True)
    second = synchronizer.write_state(True)
    assert first == second

    flipped = synchronizer.write_state(False)
    assert flipped.preference_value is False
    assert flipped.device_values() == {"a": False}


def test_partial_write_failure_is_reported(
    profile: ControllerProfile, caplog: pytest.LogCaptureFixture
) -> None:
    backend = FakeBackend(
        preference=False,
        services=[
            FakeService("first", False),
            FakeService("stubborn", False, fail_write=True),
            FakeService("third", False),
        ],
    )

    with caplog.at_level(logging.ERROR, logger="irctl"):
        result = _synchronizer(backend, profile).write_state(True)

    assert result.device_values() == {"first": True, "stubborn": False, "third": True}
    assert result.errors == ("Failed to IORegistryEntrySetCFProperty: 0xe00002c2",)
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1


def test_write_skips_nameless_service(profile: ControllerProfile) -> None:
    nameless = FakeService("nameless", False, fail_name=True)
    backend = FakeBackend(services=[nameless, FakeService("named", False)])

    result = _synchronizer(backend, profile).write_state(True)

    assert nameless.enabled is False
    assert result.device_values() == {"named": True}
    assert nameless.releases == 2

"""Tests for virtual environment bootstrap, endowments and logging."""

import logging

import pytest

from sequester import Descriptor
from sequester import Realm
from sequester import RealmObject
from sequester import VirtualEnvironment
from sequester import create_virtual_environment
from sequester.errors import InternalRegistrationError
from sequester.logging import LOG_LEVEL_ENV_VAR
from sequester.logging import get_logger
from tests.fixtures.host_values import make_live_object


def test_shared_intrinsics_are_bound_to_guest_copies() -> None:
    """Verify host intrinsics resolve to the guest realm's own intrinsics."""
    host_realm: Realm = Realm("host")
    environment: VirtualEnvironment = create_virtual_environment(host_realm)
    guest_realm: Realm = environment.guest_realm

    for name in ("Object.prototype", "Function.prototype", "Object", "Error", "RangeError.prototype"):
        assert environment.to_guest_value(host_realm.intrinsic(name)) is guest_realm.intrinsic(name)
        assert environment.to_host_value(guest_realm.intrinsic(name)) is host_realm.intrinsic(name)
    assert environment.to_guest_value(host_realm.global_object) is environment.global_object


def test_wrapped_host_objects_inherit_from_guest_intrinsics() -> None:
    """Verify wrapped plain objects delegate to the guest Object.prototype."""
    host_realm: Realm = Realm("host")
    environment: VirtualEnvironment = create_virtual_environment(host_realm)
    guest_value: RealmObject = environment.to_guest_value(host_realm.create_object({"a": 1}))

    assert guest_value.get_prototype_of() is environment.guest_realm.object_prototype
    assert environment.guest_realm.instance_of(guest_value, environment.guest_realm.intrinsic("Object")) is True


def test_mapping_endowments_become_guest_globals() -> None:
    """Verify mapping endowments are installed as non-enumerable guest globals."""
    host_realm: Realm = Realm("host")
    shared: RealmObject = host_realm.create_object({"x": 1})
    environment: VirtualEnvironment = create_virtual_environment(
        host_realm,
        endowments={"shared": shared, "answer": 42},
    )

    assert environment.get_global("answer") == 42
    assert environment.get_global("shared") is environment.to_guest_value(shared)
    descriptor: Descriptor | None = environment.global_object.get_own_property("shared")
    assert descriptor is not None
    assert descriptor.enumerable is False
    assert descriptor.writable is True


def test_object_endowments_keep_their_descriptors() -> None:
    """Verify a host endowment object contributes its descriptors verbatim."""
    host_realm: Realm = Realm("host")
    endowments: RealmObject = host_realm.create_object()
    endowments.define_own_property("VERSION", Descriptor.data("1.0", writable=False, configurable=False))
    environment: VirtualEnvironment = create_virtual_environment(host_realm, endowments=endowments)

    descriptor: Descriptor | None = environment.global_object.get_own_property("VERSION")
    assert descriptor == Descriptor.data("1.0", writable=False, configurable=False)


def test_guest_expandos_do_not_reach_the_host() -> None:
    """Verify attributes added by the guest stay in the guest view."""
    host_realm: Realm = Realm("host")
    expandable: RealmObject = host_realm.create_object({"x": 1})
    environment: VirtualEnvironment = create_virtual_environment(host_realm, endowments={"expandable": expandable})
    guest_value: RealmObject = environment.get_global("expandable")

    assert guest_value.set("y", 2) is True
    assert guest_value.get("y") == 2
    assert guest_value.get("x") == 1
    assert expandable.get_own_property("y") is None
    assert expandable.get("x") == 1


def test_host_expandos_are_visible_only_through_live_values() -> None:
    """Verify host-side additions show through dynamic views but not static ones."""
    host_realm: Realm = Realm("host")
    static_host: RealmObject = host_realm.create_object()
    live_host: RealmObject = make_live_object(host_realm, {})
    environment: VirtualEnvironment = create_virtual_environment(
        host_realm,
        endowments={"staticValue": static_host, "liveValue": live_host},
    )
    static_guest: RealmObject = environment.get_global("staticValue")
    live_guest: RealmObject = environment.get_global("liveValue")
    assert static_guest.get("added") is None

    static_host.set("added", "host")
    live_host.set("added", "host")
    assert static_guest.get("added") is None
    assert live_guest.get("added") == "host"


def test_invalid_endowments_are_rejected() -> None:
    """Verify endowments must be a mapping or a host object."""
    host_realm: Realm = Realm("host")
    with pytest.raises(TypeError):
        create_virtual_environment(host_realm, endowments=["not", "a", "mapping"])
    with pytest.raises(TypeError):
        create_virtual_environment(host_realm, endowments=Realm("other").create_object())
    with pytest.raises(TypeError):
        create_virtual_environment(host_realm, endowments={1: "bad key"})
    with pytest.raises(TypeError):
        create_virtual_environment(host_realm, distortions={"a": "b"})


def test_existing_guest_realm_is_reused() -> None:
    """Verify a caller-supplied guest realm becomes the environment's realm."""
    host_realm: Realm = Realm("host")
    guest_realm: Realm = Realm("sandbox")
    environment: VirtualEnvironment = create_virtual_environment(host_realm, guest_realm=guest_realm)

    assert environment.guest_realm is guest_realm
    assert environment.global_object is guest_realm.global_object


def test_logger_level_follows_environment_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify the log level is read from the environment."""
    monkeypatch.setenv(LOG_LEVEL_ENV_VAR, "debug")
    logger: logging.Logger = get_logger("sequester.tests.level_probe")
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1
    assert get_logger("sequester.tests.level_probe") is logger
    assert len(logger.handlers) == 1


def test_registration_failure_is_logged(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture) -> None:
    """Verify a rejected wrapper registration leaves a warning."""
    host_realm: Realm = Realm("host")
    environment: VirtualEnvironment = create_virtual_environment(host_realm)

    def reject(near: RealmObject, far: RealmObject, lookup_key: object = None) -> None:
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(environment.broker.guest_factory.identity_map, "set_entries", reject)
    with caplog.at_level(logging.WARNING, logger="sequester.factory"):
        with pytest.raises(InternalRegistrationError):
            environment.to_guest_value(host_realm.create_object())
    assert "Failed to register a wrapper" in caplog.text

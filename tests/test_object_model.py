"""Tests for the realm object model and the invariant-checked proxy."""

import pytest

from sequester import Descriptor
from sequester import Realm
from sequester import RealmException
from sequester import RealmObject
from sequester import RealmProxy
from sequester import RevokedProxyError
from sequester import Symbol
from sequester.objects import freeze
from sequester.objects import is_frozen
from sequester.objects import is_sealed
from sequester.objects import seal
from sequester.proxy import REVOKED_MESSAGE
from sequester.proxy import ProxyHandler
from sequester.proxy import create_revoked_proxy
from sequester.proxy import is_array


class LyingHandler(ProxyHandler):
    """Handler that hides every attribute of its target."""

    def get_own_property(self, target: RealmObject, key: object) -> Descriptor | None:
        return None


def test_symbol_registry_returns_shared_symbols() -> None:
    """Verify registered symbols are shared and fresh symbols are unique."""
    first: Symbol = Symbol.for_key("shared")
    second: Symbol = Symbol.for_key("shared")
    assert first is second
    assert Symbol("shared") is not first


def test_non_configurable_attribute_refuses_reshape() -> None:
    """Verify a locked slot keeps its shape once defined."""
    realm: Realm = Realm("host")
    target: RealmObject = realm.create_object()
    target.define_own_property("k", Descriptor.data(1, writable=False, configurable=False))

    assert target.define_own_property("k", Descriptor(configurable=True)) is False
    assert target.define_own_property("k", Descriptor(value=2)) is False
    assert target.define_own_property("k", Descriptor(value=1)) is True
    assert target.delete("k") is False
    assert target.get("k") == 1


def test_set_creates_attribute_on_receiver_through_parent_chain() -> None:
    """Verify writes land on the receiver and inherited read-only slots refuse."""
    realm: Realm = Realm("host")
    parent: RealmObject = realm.create_object()
    parent.define_own_property("locked", Descriptor.data("p", writable=False))
    child: RealmObject = realm.create_object(proto=parent)

    assert child.set("fresh", 1) is True
    assert child.get_own_property("fresh") == Descriptor.data(1)
    assert parent.get_own_property("fresh") is None
    assert child.set("locked", "c") is False
    assert child.get("locked") == "p"


def test_accessor_receives_receiver() -> None:
    """Verify getters and setters run with the receiver as ``this``."""
    realm: Realm = Realm("host")
    seen: list[object] = []

    def getter(this_arg: object, args: list[object]) -> object:
        seen.append(this_arg)
        return "read"

    def setter(this_arg: object, args: list[object]) -> object:
        seen.append(args[0])
        return None

    holder: RealmObject = realm.create_object()
    holder.define_own_property(
        "x",
        Descriptor.accessor(realm.create_function(getter), realm.create_function(setter)),
    )
    assert holder.get("x") == "read"
    assert holder.set("x", 5) is True
    assert seen == [holder, 5]


def test_freeze_and_seal_levels() -> None:
    """Verify the integrity levels report what they applied."""
    realm: Realm = Realm("host")
    sealed: RealmObject = seal(realm.create_object({"a": 1}))
    frozen: RealmObject = freeze(realm.create_object({"a": 1}))

    assert is_sealed(sealed) is True
    assert is_frozen(sealed) is False
    assert sealed.set("a", 2) is True
    assert is_frozen(frozen) is True
    assert frozen.set("a", 2) is False
    assert frozen.set("b", 2) is False


def test_own_keys_orders_strings_before_symbols() -> None:
    """Verify symbol keys are reported after string keys."""
    realm: Realm = Realm("host")
    marker: Symbol = Symbol("marker")
    target: RealmObject = realm.create_object()
    target.define_own_property(marker, Descriptor.data(True))
    target.define_own_property("b", Descriptor.data(1))
    target.define_own_property("a", Descriptor.data(2))
    assert target.own_keys() == ["b", "a", marker]


def test_error_constructor_builds_realm_local_stack() -> None:
    """Verify error objects carry their message and a stack naming their realm."""
    realm: Realm = Realm("host")
    error: RealmObject = realm.create_error("RangeError", "x")

    assert error.get("message") == "x"
    assert error.get("stack") == "RangeError: x\n    at <host>"
    assert realm.instance_of(error, realm.intrinsic("RangeError")) is True
    assert realm.instance_of(error, realm.intrinsic("Error")) is True
    assert realm.instance_of(error, realm.intrinsic("TypeError")) is False


def test_throw_error_raises_realm_exception() -> None:
    """Verify realm throws surface as ``RealmException`` carrying the thrown value."""
    realm: Realm = Realm("host")
    with pytest.raises(RealmException) as exc_info:
        realm.throw_error("TypeError", "bad")
    assert realm.instance_of(exc_info.value.value, realm.intrinsic("TypeError")) is True
    assert str(exc_info.value) == "TypeError: bad"


def test_proxy_forwards_by_default() -> None:
    """Verify the base handler forwards every operation to the target."""
    realm: Realm = Realm("host")
    target: RealmObject = realm.create_object({"a": 1})
    proxy: RealmProxy = RealmProxy(target, ProxyHandler())

    assert proxy.get("a") == 1
    assert proxy.set("b", 2) is True
    assert target.get("b") == 2
    assert proxy.own_keys() == ["a", "b"]
    assert proxy.delete("a") is True
    assert target.get_own_property("a") is None


def test_proxy_rejects_hiding_non_configurable_attribute() -> None:
    """Verify handler results are checked against the target's locked slots."""
    realm: Realm = Realm("host")
    target: RealmObject = realm.create_object()
    target.define_own_property("k", Descriptor.data(1, configurable=False))
    target.define_own_property("loose", Descriptor.data(1))
    proxy: RealmProxy = RealmProxy(target, LyingHandler())

    assert proxy.get_own_property("loose") is None
    with pytest.raises(RealmException) as exc_info:
        proxy.get_own_property("k")
    assert realm.instance_of(exc_info.value.value, realm.intrinsic("TypeError")) is True


def test_revoked_proxy_rejects_every_operation() -> None:
    """Verify a revoked proxy throws the same TypeError for all operations."""
    realm: Realm = Realm("guest")
    proxy: RealmProxy = create_revoked_proxy(realm.create_object())
    assert proxy.is_revoked is True

    operations: list[object] = [
        lambda: proxy.get("x"),
        lambda: proxy.set("x", 1),
        lambda: proxy.delete("x"),
        lambda: proxy.has_property("x"),
        lambda: proxy.own_keys(),
        lambda: proxy.get_prototype_of(),
        lambda: proxy.is_extensible(),
        lambda: proxy.prevent_extensions(),
        lambda: proxy.define_own_property("x", Descriptor.data(1)),
        lambda: is_array(proxy),
    ]
    for operation in operations:
        with pytest.raises(RevokedProxyError) as exc_info:
            operation()
        assert exc_info.value.value.get("message") == REVOKED_MESSAGE
        assert realm.instance_of(exc_info.value.value, realm.intrinsic("TypeError")) is True


def test_is_array_sees_through_live_proxies() -> None:
    """Verify sequence detection and its behaviour on plain objects."""
    realm: Realm = Realm("host")
    plain: RealmObject = realm.create_object()
    assert is_array([1, 2]) is True
    assert is_array((1,)) is True
    assert is_array(plain) is False
    assert is_array(RealmProxy(plain, ProxyHandler())) is False

"""Host realm value builders shared by the membrane tests."""

from sequester.factory import LIVE_VALUE_MARKER
from sequester.objects import Descriptor
from sequester.objects import PropertyKey
from sequester.objects import RealmFunction
from sequester.objects import RealmObject
from sequester.proxy import ProxyHandler
from sequester.realm import Realm


class IntrospectionFailingHandler(ProxyHandler):
    """Handler that refuses to report its delegation parent."""

    realm: Realm

    def __init__(self, realm: Realm) -> None:
        """Initialize the handler.

        :param realm: Realm whose ``TypeError`` is thrown.
        """
        self.realm = realm

    def get_prototype_of(self, target: RealmObject) -> RealmObject | None:
        """Refuse introspection.

        :param target: Proxy target.
        :raises RealmException: Always.
        """
        self.realm.throw_error("TypeError", "introspection refused")


class ProbeFailingHandler(ProxyHandler):
    """Handler that refuses every ``has`` query."""

    realm: Realm

    def __init__(self, realm: Realm) -> None:
        """Initialize the handler.

        :param realm: Realm whose ``Error`` is thrown.
        """
        self.realm = realm

    def has(self, target: RealmObject, key: PropertyKey) -> bool:
        """Refuse the probe.

        :param target: Proxy target.
        :param key: Probed key.
        :raises RealmException: Always.
        """
        self.realm.throw_error("Error", "probe refused")


def make_live_object(realm: Realm, attributes: dict[PropertyKey, object]) -> RealmObject:
    """Create a host object carrying the live-value marker.

    :param realm: Host realm.
    :param attributes: Initial data attributes.
    :returns: Marked host object.
    """
    created: RealmObject = realm.create_object(attributes)
    created.define_own_property(LIVE_VALUE_MARKER, Descriptor.data(True, enumerable=False))
    return created


def make_throwing_function(realm: Realm, kind: str, message: str) -> RealmFunction:
    """Create a host function that always throws one realm error.

    :param realm: Host realm.
    :param kind: Error family thrown.
    :param message: Error message.
    :returns: Host function.
    """

    def behavior(this_arg: object, args: list[object]) -> object:
        realm.throw_error(kind, message)

    return realm.create_function(behavior, name=f"throw{kind}")


def make_boundary_hooks(realm: Realm) -> RealmObject:
    """Create a host object whose members fail in different ways.

    ``a`` is an accessor whose getter and setter throw ``Error``; ``b`` is a
    method throwing ``RangeError``.

    :param realm: Host realm.
    :returns: Host object.
    """

    def getter(this_arg: object, args: list[object]) -> object:
        realm.throw_error("Error", "a() getter throws")

    def setter(this_arg: object, args: list[object]) -> object:
        realm.throw_error("Error", f"a() setter throws for argument: {args[0]}")

    def method(this_arg: object, args: list[object]) -> object:
        realm.throw_error("RangeError", f"b() method throws for argument: {args[0]}")

    hooks: RealmObject = realm.create_object()
    hooks.define_own_property(
        "a",
        Descriptor.accessor(
            realm.create_function(getter, name="get a"),
            realm.create_function(setter, name="set a"),
        ),
    )
    hooks.define_own_property("b", Descriptor.data(realm.create_function(method, name="b", length=1)))
    return hooks


def make_point_constructor(realm: Realm) -> RealmFunction:
    """Create a host constructor storing its first argument as ``x``.

    :param realm: Host realm.
    :returns: Host constructor.
    """

    def behavior(this_arg: object, args: list[object]) -> object:
        if isinstance(this_arg, RealmObject) is True:
            this_arg.set("x", args[0] if len(args) > 0 else None)
        return None

    return realm.create_function(behavior, name="Point", length=1, constructor=True)


def make_echo_function(realm: Realm) -> RealmFunction:
    """Create a host function returning its first argument.

    :param realm: Host realm.
    :returns: Host function.
    """

    def behavior(this_arg: object, args: list[object]) -> object:
        return args[0] if len(args) > 0 else None

    return realm.create_function(behavior, name="echo", length=1)


def make_callback_runner(realm: Realm) -> RealmFunction:
    """Create a host function that calls ``args[0]`` with ``args[1]``.

    :param realm: Host realm.
    :returns: Host function.
    """

    def behavior(this_arg: object, args: list[object]) -> object:
        callback: object = args[0]
        if isinstance(callback, RealmObject) is False:
            realm.throw_error("TypeError", "callback is not a function")
        return callback.call(None, [args[1]])

    return realm.create_function(behavior, name="runCallback", length=2)


class ExtensionRefusingHandler(ProxyHandler):
    """Handler that locks its target but reports the request as refused."""

    def prevent_extensions(self, target: RealmObject) -> bool:
        """Lock the target and report failure.

        :param target: Proxy target.
        :returns: Always ``False``.
        """
        target.prevent_extensions()
        return False

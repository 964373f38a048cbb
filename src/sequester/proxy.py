"""Intercepting objects that route fundamental operations to a handler.

A :class:`RealmProxy` owns a target object and a handler. Every fundamental
operation is dispatched to the matching handler trap and the result is then
checked against the target so that a handler can never report a shape that
contradicts a non-configurable attribute or a locked target.
"""

from typing import NoReturn

from sequester.errors import RevokedProxyError
from sequester.objects import ABSENT
from sequester.objects import Descriptor
from sequester.objects import PropertyKey
from sequester.objects import RealmObject
from sequester.objects import Symbol
from sequester.objects import same_value
from sequester.objects import validate_and_apply_descriptor

REVOKED_MESSAGE: str = "Cannot perform operation on a revoked proxy"


class ProxyHandler:
    """Handler whose traps forward every operation to the target unchanged."""

    def get_prototype_of(self, target: RealmObject) -> RealmObject | None:
        return target.get_prototype_of()

    def set_prototype_of(self, target: RealmObject, proto: object) -> bool:
        return target.set_prototype_of(proto)

    def is_extensible(self, target: RealmObject) -> bool:
        return target.is_extensible()

    def prevent_extensions(self, target: RealmObject) -> bool:
        return target.prevent_extensions()

    def get_own_property(self, target: RealmObject, key: PropertyKey) -> Descriptor | None:
        return target.get_own_property(key)

    def define_own_property(self, target: RealmObject, key: PropertyKey, desc: Descriptor) -> bool:
        return target.define_own_property(key, desc)

    def has(self, target: RealmObject, key: PropertyKey) -> bool:
        return target.has_property(key)

    def get(self, target: RealmObject, key: PropertyKey, receiver: object) -> object:
        return target.get(key, receiver)

    def set(self, target: RealmObject, key: PropertyKey, value: object, receiver: object) -> bool:
        return target.set(key, value, receiver)

    def delete(self, target: RealmObject, key: PropertyKey) -> bool:
        return target.delete(key)

    def own_keys(self, target: RealmObject) -> list[PropertyKey]:
        return target.own_keys()

    def apply(self, target: RealmObject, this_arg: object, args: list[object]) -> object:
        return target.call(this_arg, args)

    def construct(self, target: RealmObject, args: list[object], new_target: object) -> object:
        return target.construct(args, new_target)


class RealmProxy(RealmObject):
    """Object whose behaviour is defined by a handler over a target."""

    _target: RealmObject | None
    _handler: ProxyHandler | None
    _target_is_callable: bool
    _target_is_constructor: bool

    def __init__(self, target: RealmObject, handler: ProxyHandler) -> None:
        """Initialize a proxy.

        :param target: Object that anchors identity and invariant checks.
        :param handler: Trap implementation.
        """
        self.realm = target.realm
        self._properties = {}
        self._proto = None
        self._extensible = True
        self._target = target
        self._handler = handler
        self._target_is_callable = target.is_callable
        self._target_is_constructor = target.is_constructor

    @property
    def is_callable(self) -> bool:  # type: ignore[override]
        return self._target_is_callable

    @property
    def is_constructor(self) -> bool:  # type: ignore[override]
        return self._target_is_constructor

    @property
    def is_revoked(self) -> bool:
        return self._handler is None

    def revoke(self) -> None:
        """Permanently disable every operation on this proxy."""
        self._target = None
        self._handler = None

    def _throw_revoked(self) -> NoReturn:
        raise RevokedProxyError(self.realm.create_error("TypeError", REVOKED_MESSAGE))

    def _require_live(self) -> tuple[RealmObject, ProxyHandler]:
        """Return the target and handler of a live proxy.

        :returns: Tuple of ``(target, handler)``.
        :raises RevokedProxyError: If the proxy was revoked.
        """
        target: RealmObject | None = self._target
        handler: ProxyHandler | None = self._handler
        if target is None or handler is None:
            self._throw_revoked()
        return target, handler

    def _violation(self, message: str) -> NoReturn:
        self.realm.throw_error("TypeError", message)

    def get_prototype_of(self) -> RealmObject | None:
        target, handler = self._require_live()
        proto: object = handler.get_prototype_of(target)
        if proto is not None and isinstance(proto, RealmObject) is False:
            self._violation("get_prototype_of trap returned neither object nor null")
        if target.is_extensible() is False and proto is not target.get_prototype_of():
            self._violation("get_prototype_of trap result differs from non-extensible target")
        return proto  # type: ignore[return-value]

    def set_prototype_of(self, proto: object) -> bool:
        target, handler = self._require_live()
        accepted: bool = bool(handler.set_prototype_of(target, proto))
        if accepted is True and target.is_extensible() is False and proto is not target.get_prototype_of():
            self._violation("set_prototype_of trap reported success for a locked target")
        return accepted

    def is_extensible(self) -> bool:
        target, handler = self._require_live()
        result: bool = bool(handler.is_extensible(target))
        if result != target.is_extensible():
            self._violation("is_extensible trap result does not reflect the target")
        return result

    def prevent_extensions(self) -> bool:
        target, handler = self._require_live()
        result: bool = bool(handler.prevent_extensions(target))
        if result is True and target.is_extensible() is True:
            self._violation("prevent_extensions trap reported success for an extensible target")
        return result

    def get_own_property(self, key: PropertyKey) -> Descriptor | None:
        target, handler = self._require_live()
        result: Descriptor | None = handler.get_own_property(target, key)
        target_desc: Descriptor | None = target.get_own_property(key)
        if result is None:
            if target_desc is None:
                return None
            if target_desc.configurable is False:
                self._violation(f"get_own_property trap hid non-configurable attribute {key!r}")
            if target.is_extensible() is False:
                self._violation(f"get_own_property trap hid attribute {key!r} of a locked target")
            return None

        completed: Descriptor = result.complete()
        compatible: bool = validate_and_apply_descriptor(None, key, target.is_extensible(), completed, target_desc)
        if compatible is False:
            self._violation(f"get_own_property trap reported an incompatible descriptor for {key!r}")
        if completed.configurable is False:
            if target_desc is None or target_desc.configurable is True:
                self._violation(f"get_own_property trap reported {key!r} non-configurable but the target disagrees")
            if completed.is_data() is True and completed.writable is False and target_desc.writable is True:
                self._violation(f"get_own_property trap reported {key!r} non-writable but the target disagrees")
        return completed

    def define_own_property(self, key: PropertyKey, desc: Descriptor) -> bool:
        target, handler = self._require_live()
        accepted: bool = bool(handler.define_own_property(target, key, desc))
        if accepted is False:
            return False
        target_desc: Descriptor | None = target.get_own_property(key)
        setting_non_configurable: bool = desc.configurable is False
        if target_desc is None:
            if target.is_extensible() is False:
                self._violation(f"define_own_property trap added {key!r} to a locked target")
            if setting_non_configurable is True:
                self._violation(f"define_own_property trap reported {key!r} non-configurable but the target lacks it")
            return True
        compatible: bool = validate_and_apply_descriptor(None, key, target.is_extensible(), desc, target_desc)
        if compatible is False:
            self._violation(f"define_own_property trap accepted an incompatible descriptor for {key!r}")
        if setting_non_configurable is True and target_desc.configurable is True:
            self._violation(f"define_own_property trap reported {key!r} non-configurable but the target disagrees")
        return True

    def has_property(self, key: PropertyKey) -> bool:
        target, handler = self._require_live()
        result: bool = bool(handler.has(target, key))
        if result is False:
            target_desc: Descriptor | None = target.get_own_property(key)
            if target_desc is not None:
                if target_desc.configurable is False:
                    self._violation(f"has trap hid non-configurable attribute {key!r}")
                if target.is_extensible() is False:
                    self._violation(f"has trap hid attribute {key!r} of a locked target")
        return result

    def get(self, key: PropertyKey, receiver: object = ABSENT) -> object:
        target, handler = self._require_live()
        if receiver is ABSENT:
            receiver = self
        value: object = handler.get(target, key, receiver)
        target_desc: Descriptor | None = target.get_own_property(key)
        if target_desc is not None and target_desc.configurable is False:
            if target_desc.is_data() is True and target_desc.writable is False:
                if same_value(value, target_desc.value) is False:
                    self._violation(f"get trap result differs from read-only attribute {key!r}")
            if target_desc.is_accessor() is True and target_desc.getter is None and value is not None:
                self._violation(f"get trap returned a value for getter-less attribute {key!r}")
        return value

    def set(self, key: PropertyKey, value: object, receiver: object = ABSENT) -> bool:
        target, handler = self._require_live()
        if receiver is ABSENT:
            receiver = self
        accepted: bool = bool(handler.set(target, key, value, receiver))
        if accepted is False:
            return False
        target_desc: Descriptor | None = target.get_own_property(key)
        if target_desc is not None and target_desc.configurable is False:
            if target_desc.is_data() is True and target_desc.writable is False:
                if same_value(value, target_desc.value) is False:
                    self._violation(f"set trap reported success for read-only attribute {key!r}")
            if target_desc.is_accessor() is True and target_desc.setter is None:
                self._violation(f"set trap reported success for setter-less attribute {key!r}")
        return True

    def delete(self, key: PropertyKey) -> bool:
        target, handler = self._require_live()
        accepted: bool = bool(handler.delete(target, key))
        if accepted is False:
            return False
        target_desc: Descriptor | None = target.get_own_property(key)
        if target_desc is not None:
            if target_desc.configurable is False:
                self._violation(f"delete trap reported success for non-configurable attribute {key!r}")
            if target.is_extensible() is False:
                self._violation(f"delete trap reported success for attribute {key!r} of a locked target")
        return True

    def own_keys(self) -> list[PropertyKey]:
        target, handler = self._require_live()
        keys: list[PropertyKey] = list(handler.own_keys(target))
        for key in keys:
            if isinstance(key, (str, Symbol)) is False:
                self._violation("own_keys trap returned a non-key value")
        reported: set[object] = {_key_identity(key) for key in keys}
        if len(reported) != len(keys):
            self._violation("own_keys trap returned duplicate entries")

        target_keys: list[PropertyKey] = target.own_keys()
        target_extensible: bool = target.is_extensible()
        for target_key in target_keys:
            target_desc: Descriptor | None = target.get_own_property(target_key)
            must_report: bool = target_extensible is False or (
                target_desc is not None and target_desc.configurable is False
            )
            if must_report is True and _key_identity(target_key) not in reported:
                self._violation(f"own_keys trap omitted required key {target_key!r}")
        if target_extensible is False and len(keys) != len(target_keys):
            self._violation("own_keys trap reported extra keys for a locked target")
        return keys

    def call(self, this_arg: object, args: list[object]) -> object:
        target, handler = self._require_live()
        if self._target_is_callable is False:
            self.realm.throw_error("TypeError", "proxy target is not a function")
        return handler.apply(target, this_arg, list(args))

    def construct(self, args: list[object], new_target: object = ABSENT) -> object:
        target, handler = self._require_live()
        if self._target_is_constructor is False:
            self.realm.throw_error("TypeError", "proxy target is not a constructor")
        if new_target is ABSENT:
            new_target = self
        result: object = handler.construct(target, list(args), new_target)
        if isinstance(result, RealmObject) is False:
            self._violation("construct trap returned a non-object")
        return result

    def describe_error(self) -> str:
        return f"<proxy from realm {self.realm.name!r}>"


def _key_identity(key: PropertyKey) -> object:
    if isinstance(key, str) is True:
        return ("str", key)
    return ("sym", id(key))


def is_array(value: object) -> bool:
    """Report whether ``value`` is a sequence, seeing through proxies.

    :param value: Candidate value.
    :returns: ``True`` for Python lists and tuples.
    :raises RevokedProxyError: If ``value`` is, or wraps, a revoked proxy.
    """
    if isinstance(value, (list, tuple)) is True:
        return True
    if isinstance(value, RealmProxy) is True:
        target, handler = value._require_live()
        _ = handler
        return is_array(target)
    return False


def create_revoked_proxy(target: RealmObject) -> RealmProxy:
    """Create a proxy that is revoked before anyone can use it.

    :param target: Placeholder target.
    :returns: Revoked proxy.
    """
    proxy: RealmProxy = RealmProxy(target, ProxyHandler())
    proxy.revoke()
    return proxy

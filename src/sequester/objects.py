"""Realm-native object model shared by host and guest realms.

Every value that crosses the membrane is either a primitive, a sequence, or a
:class:`RealmObject` owned by exactly one realm. Objects expose the fundamental
operations the membrane intercepts: attribute read, write, delete, query and
definition, key enumeration, delegation parent access, extensibility, call and
construct.
"""

import math
import threading
import weakref
from collections.abc import Callable
from typing import TYPE_CHECKING
from typing import Union

if TYPE_CHECKING:
    from sequester.realm import Realm

_SYMBOL_REGISTRY_LOCK: threading.Lock = threading.Lock()
_SYMBOL_REGISTRY: dict[str, "Symbol"] = {}
PRIMITIVE_TYPES: tuple[type, ...] = (type(None), bool, int, float, complex, str, bytes)


class Symbol:
    """Unique attribute key that can never collide with a string key."""

    description: str

    def __init__(self, description: str = "") -> None:
        """Create a fresh symbol.

        :param description: Debug description.
        """
        self.description = description

    @classmethod
    def for_key(cls, name: str) -> "Symbol":
        """Return the process-wide symbol registered under ``name``.

        :param name: Registry key.
        :returns: The same symbol object for the same key.
        """
        with _SYMBOL_REGISTRY_LOCK:
            existing: Symbol | None = _SYMBOL_REGISTRY.get(name)
            if existing is not None:
                return existing
            created: Symbol = cls(name)
            _SYMBOL_REGISTRY[name] = created
            return created

    def __repr__(self) -> str:
        return f"Symbol({self.description})"


PropertyKey = Union[str, Symbol]


class _Absent:
    """Marker type for descriptor fields that are not present."""

    _instance: "_Absent | None" = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: _Absent = _Absent()


class Descriptor:
    """Attribute descriptor, either partial (for definition) or complete.

    A data descriptor carries ``value``/``writable``, an accessor descriptor
    carries ``getter``/``setter``. Fields that were not supplied hold
    :data:`ABSENT`.
    """

    value: object
    writable: object
    getter: object
    setter: object
    enumerable: object
    configurable: object

    def __init__(
        self,
        value: object = ABSENT,
        writable: object = ABSENT,
        getter: object = ABSENT,
        setter: object = ABSENT,
        enumerable: object = ABSENT,
        configurable: object = ABSENT,
    ) -> None:
        """Initialize a descriptor.

        :param value: Stored value for data attributes.
        :param writable: Whether the stored value may change.
        :param getter: Accessor read function or ``None``.
        :param setter: Accessor write function or ``None``.
        :param enumerable: Whether the key is reported as enumerable.
        :param configurable: Whether the attribute may be reshaped or deleted.
        :raises TypeError: If data and accessor fields are mixed.
        """
        is_data: bool = value is not ABSENT or writable is not ABSENT
        is_accessor: bool = getter is not ABSENT or setter is not ABSENT
        if is_data is True and is_accessor is True:
            raise TypeError("Descriptor cannot mix value/writable with getter/setter")
        self.value = value
        self.writable = writable
        self.getter = getter
        self.setter = setter
        self.enumerable = enumerable
        self.configurable = configurable

    @classmethod
    def data(
        cls,
        value: object,
        writable: bool = True,
        enumerable: bool = True,
        configurable: bool = True,
    ) -> "Descriptor":
        """Build a complete data descriptor.

        :param value: Stored value.
        :param writable: Writable flag.
        :param enumerable: Enumerable flag.
        :param configurable: Configurable flag.
        :returns: Complete data descriptor.
        """
        return cls(value=value, writable=writable, enumerable=enumerable, configurable=configurable)

    @classmethod
    def accessor(
        cls,
        getter: object = None,
        setter: object = None,
        enumerable: bool = True,
        configurable: bool = True,
    ) -> "Descriptor":
        """Build a complete accessor descriptor.

        :param getter: Read function or ``None``.
        :param setter: Write function or ``None``.
        :param enumerable: Enumerable flag.
        :param configurable: Configurable flag.
        :returns: Complete accessor descriptor.
        """
        return cls(getter=getter, setter=setter, enumerable=enumerable, configurable=configurable)

    def is_data(self) -> bool:
        return self.value is not ABSENT or self.writable is not ABSENT

    def is_accessor(self) -> bool:
        return self.getter is not ABSENT or self.setter is not ABSENT

    def is_generic(self) -> bool:
        return self.is_data() is False and self.is_accessor() is False

    def is_empty(self) -> bool:
        return self.is_generic() is True and self.enumerable is ABSENT and self.configurable is ABSENT

    def copy(self) -> "Descriptor":
        return Descriptor(
            value=self.value,
            writable=self.writable,
            getter=self.getter,
            setter=self.setter,
            enumerable=self.enumerable,
            configurable=self.configurable,
        )

    def complete(self) -> "Descriptor":
        """Return a complete descriptor with defaults filled in.

        :returns: Complete data or accessor descriptor.
        """
        enumerable: bool = self.enumerable is True
        configurable: bool = self.configurable is True
        if self.is_accessor() is True:
            getter: object = None if self.getter is ABSENT else self.getter
            setter: object = None if self.setter is ABSENT else self.setter
            return Descriptor.accessor(getter, setter, enumerable=enumerable, configurable=configurable)
        value: object = None if self.value is ABSENT else self.value
        return Descriptor.data(value, writable=self.writable is True, enumerable=enumerable, configurable=configurable)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Descriptor) is False:
            return NotImplemented
        return (
            same_value(self.value, other.value)
            and self.writable == other.writable
            and same_value(self.getter, other.getter)
            and same_value(self.setter, other.setter)
            and self.enumerable == other.enumerable
            and self.configurable == other.configurable
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields: list[str] = []
        for name in ("value", "writable", "getter", "setter", "enumerable", "configurable"):
            field_value: object = getattr(self, name)
            if field_value is not ABSENT:
                fields.append(f"{name}={field_value!r}")
        return "Descriptor(" + ", ".join(fields) + ")"


def is_primitive(value: object) -> bool:
    """Report whether ``value`` passes across realms unchanged.

    :param value: Candidate value.
    :returns: ``True`` for null-equivalents, scalars, strings, bytes and symbols.
    """
    if isinstance(value, PRIMITIVE_TYPES) is True:
        return True
    return isinstance(value, Symbol)


def same_value(left: object, right: object) -> bool:
    """Compare two realm values for attribute-invariant purposes.

    Objects compare by identity, everything else by type and equality with
    ``NaN`` equal to itself.

    :param left: First value.
    :param right: Second value.
    :returns: ``True`` when the values are indistinguishable.
    """
    if left is right:
        return True
    if isinstance(left, RealmObject) is True or isinstance(right, RealmObject) is True:
        return False
    if type(left) is not type(right):
        return False
    if isinstance(left, float) is True and math.isnan(left) is True:
        return math.isnan(right)
    try:
        return bool(left == right)
    except Exception:
        return False


def _ordered_keys(keys: list[PropertyKey]) -> list[PropertyKey]:
    """Order keys with strings first, then symbols, preserving insertion order."""
    string_keys: list[PropertyKey] = [key for key in keys if isinstance(key, str) is True]
    symbol_keys: list[PropertyKey] = [key for key in keys if isinstance(key, Symbol) is True]
    return string_keys + symbol_keys


def validate_and_apply_descriptor(
    target: "RealmObject | None",
    key: PropertyKey,
    extensible: bool,
    desc: Descriptor,
    current: Descriptor | None,
) -> bool:
    """Validate a definition request against the current attribute and apply it.

    With ``target`` set to ``None`` the call only checks compatibility.

    :param target: Object to update, or ``None`` for a dry run.
    :param key: Attribute key.
    :param extensible: Whether the object accepts new attributes.
    :param desc: Requested, possibly partial, descriptor.
    :param current: Current complete descriptor or ``None``.
    :returns: ``True`` when the request is compatible.
    """
    if current is None:
        if extensible is False:
            return False
        if target is not None:
            target._properties[key] = desc.complete()
        return True

    if desc.is_empty() is True:
        return True

    if current.configurable is False:
        if desc.configurable is True:
            return False
        if desc.enumerable is not ABSENT and desc.enumerable != current.enumerable:
            return False
        if desc.is_generic() is False and desc.is_accessor() != current.is_accessor():
            return False
        if current.is_accessor() is True:
            if desc.getter is not ABSENT and same_value(desc.getter, current.getter) is False:
                return False
            if desc.setter is not ABSENT and same_value(desc.setter, current.setter) is False:
                return False
        elif current.writable is False:
            if desc.writable is True:
                return False
            if desc.value is not ABSENT and same_value(desc.value, current.value) is False:
                return False

    if target is not None:
        enumerable: object = current.enumerable if desc.enumerable is ABSENT else desc.enumerable
        configurable: object = current.configurable if desc.configurable is ABSENT else desc.configurable
        updated: Descriptor
        if current.is_data() is True and desc.is_accessor() is True:
            updated = Descriptor.accessor(
                None if desc.getter is ABSENT else desc.getter,
                None if desc.setter is ABSENT else desc.setter,
                enumerable=enumerable is True,
                configurable=configurable is True,
            )
        elif current.is_accessor() is True and desc.is_data() is True:
            updated = Descriptor.data(
                None if desc.value is ABSENT else desc.value,
                writable=desc.writable is True,
                enumerable=enumerable is True,
                configurable=configurable is True,
            )
        elif current.is_accessor() is True:
            updated = Descriptor.accessor(
                current.getter if desc.getter is ABSENT else desc.getter,
                current.setter if desc.setter is ABSENT else desc.setter,
                enumerable=enumerable is True,
                configurable=configurable is True,
            )
        else:
            updated = Descriptor.data(
                current.value if desc.value is ABSENT else desc.value,
                writable=(current.writable if desc.writable is ABSENT else desc.writable) is True,
                enumerable=enumerable is True,
                configurable=configurable is True,
            )
        target._properties[key] = updated
    return True


class RealmObject:
    """Ordinary object owned by one realm."""

    realm: "Realm"
    _properties: dict[PropertyKey, Descriptor]
    _proto: "RealmObject | None"
    _extensible: bool

    is_callable: bool = False
    is_constructor: bool = False
    # owned by identity maps, keyed weakly by map
    identity_slots: "weakref.WeakKeyDictionary[object, RealmObject] | None" = None
    counterpart_slots: "weakref.WeakKeyDictionary[object, object] | None" = None

    def __init__(self, realm: "Realm", proto: "RealmObject | None" = None) -> None:
        """Initialize an empty object.

        :param realm: Owning realm.
        :param proto: Delegation parent.
        """
        self.realm = realm
        self._properties = {}
        self._proto = proto
        self._extensible = True

    def get_prototype_of(self) -> "RealmObject | None":
        return self._proto

    def set_prototype_of(self, proto: object) -> bool:
        """Change the delegation parent.

        :param proto: New parent object or ``None``.
        :returns: ``False`` when the object is locked or a cycle would form.
        """
        if proto is not None and isinstance(proto, RealmObject) is False:
            self.realm.throw_error("TypeError", "Object prototype may only be an object or null")
        if proto is self._proto:
            return True
        if self._extensible is False:
            return False
        cursor: RealmObject | None = proto  # type: ignore[assignment]
        while cursor is not None:
            if cursor is self:
                return False
            if type(cursor).get_prototype_of is not RealmObject.get_prototype_of:
                break
            cursor = cursor._proto
        self._proto = proto  # type: ignore[assignment]
        return True

    def is_extensible(self) -> bool:
        return self._extensible

    def prevent_extensions(self) -> bool:
        self._extensible = False
        return True

    def get_own_property(self, key: PropertyKey) -> Descriptor | None:
        """Return a copy of one own attribute descriptor.

        :param key: Attribute key.
        :returns: Complete descriptor or ``None`` when absent.
        """
        current: Descriptor | None = self._properties.get(key)
        if current is None:
            return None
        return current.copy()

    def define_own_property(self, key: PropertyKey, desc: Descriptor) -> bool:
        """Create or reshape one own attribute.

        :param key: Attribute key.
        :param desc: Partial descriptor.
        :returns: ``False`` when the request conflicts with the current shape.
        """
        current: Descriptor | None = self._properties.get(key)
        return validate_and_apply_descriptor(self, key, self._extensible, desc, current)

    def has_property(self, key: PropertyKey) -> bool:
        own: Descriptor | None = self.get_own_property(key)
        if own is not None:
            return True
        parent: RealmObject | None = self.get_prototype_of()
        if parent is None:
            return False
        return parent.has_property(key)

    def get(self, key: PropertyKey, receiver: object = ABSENT) -> object:
        """Read an attribute through the delegation chain.

        :param key: Attribute key.
        :param receiver: ``this`` value for accessors, defaults to the object.
        :returns: Attribute value or ``None``.
        """
        if receiver is ABSENT:
            receiver = self
        desc: Descriptor | None = self.get_own_property(key)
        if desc is None:
            parent: RealmObject | None = self.get_prototype_of()
            if parent is None:
                return None
            return parent.get(key, receiver)
        if desc.is_data() is True:
            return desc.value
        getter: object = desc.getter
        if isinstance(getter, RealmObject) is False:
            return None
        return getter.call(receiver, [])

    def set(self, key: PropertyKey, value: object, receiver: object = ABSENT) -> bool:
        """Write an attribute, honouring inherited setters and read-only slots.

        :param key: Attribute key.
        :param value: New value.
        :param receiver: Object receiving new data attributes.
        :returns: ``False`` when the write was refused.
        """
        if receiver is ABSENT:
            receiver = self
        own: Descriptor | None = self.get_own_property(key)
        return ordinary_set_with_own_descriptor(self, key, value, receiver, own)

    def delete(self, key: PropertyKey) -> bool:
        current: Descriptor | None = self._properties.get(key)
        if current is None:
            return True
        if current.configurable is True:
            del self._properties[key]
            return True
        return False

    def own_keys(self) -> list[PropertyKey]:
        return _ordered_keys(list(self._properties.keys()))

    def call(self, this_arg: object, args: list[object]) -> object:
        self.realm.throw_error("TypeError", "object is not a function")
        return None

    def construct(self, args: list[object], new_target: object = ABSENT) -> object:
        self.realm.throw_error("TypeError", "object is not a constructor")
        return None

    def describe_error(self) -> str:
        """Describe this object without running realm code.

        :returns: ``"<kind>: <message>"`` for error objects, a short tag otherwise.
        """
        message_desc: Descriptor | None = self._properties.get("message")
        message: object = None
        if message_desc is not None and message_desc.is_data() is True:
            message = message_desc.value
        kind: str = "object"
        cursor: RealmObject | None = self._proto
        while cursor is not None and type(cursor) is RealmObject:
            name_desc: Descriptor | None = cursor._properties.get("name")
            if name_desc is not None and isinstance(name_desc.value, str) is True:
                kind = name_desc.value
                break
            cursor = cursor._proto
        if isinstance(message, str) is True:
            return f"{kind}: {message}"
        return f"<{kind} from realm {self.realm.name!r}>"

    def __repr__(self) -> str:
        return f"<{type(self).__name__} realm={self.realm.name!r} at 0x{id(self):x}>"


def ordinary_set_with_own_descriptor(
    target: RealmObject,
    key: PropertyKey,
    value: object,
    receiver: object,
    own: Descriptor | None,
) -> bool:
    """Apply the ordinary attribute write algorithm.

    :param target: Object whose chain is searched.
    :param key: Attribute key.
    :param value: Value to write.
    :param receiver: Object that receives data attributes.
    :param own: Own descriptor of ``target`` for ``key`` or ``None``.
    :returns: ``False`` when the write was refused.
    """
    if own is None:
        parent: RealmObject | None = target.get_prototype_of()
        if parent is not None:
            return parent.set(key, value, receiver)
        own = Descriptor.data(None)

    if own.is_data() is True:
        if own.writable is False:
            return False
        if isinstance(receiver, RealmObject) is False:
            return False
        existing: Descriptor | None = receiver.get_own_property(key)
        if existing is not None:
            if existing.is_accessor() is True:
                return False
            if existing.writable is False:
                return False
            return receiver.define_own_property(key, Descriptor(value=value))
        return receiver.define_own_property(key, Descriptor.data(value))

    setter: object = own.setter
    if isinstance(setter, RealmObject) is False:
        return False
    setter.call(receiver, [value])
    return True


Behavior = Callable[[object, list[object]], object]


class RealmFunction(RealmObject):
    """Callable realm object backed by a Python behaviour."""

    _behavior: Behavior
    is_callable: bool = True

    def __init__(
        self,
        realm: "Realm",
        behavior: Behavior,
        proto: RealmObject | None = None,
        is_constructor: bool = False,
    ) -> None:
        """Initialize a function object.

        :param realm: Owning realm.
        :param behavior: Python callable receiving ``(this, args)``.
        :param proto: Delegation parent.
        :param is_constructor: Whether ``construct`` is supported.
        """
        super().__init__(realm, proto)
        self._behavior = behavior
        self.is_constructor = is_constructor

    def call(self, this_arg: object, args: list[object]) -> object:
        return self._behavior(this_arg, list(args))

    def construct(self, args: list[object], new_target: object = ABSENT) -> object:
        """Instantiate through this constructor.

        :param args: Constructor arguments.
        :param new_target: Constructor whose ``prototype`` seeds the instance.
        :returns: The new instance, or the object returned by the behaviour.
        """
        if self.is_constructor is False:
            self.realm.throw_error("TypeError", "function is not a constructor")
        if new_target is ABSENT:
            new_target = self
        proto: object = None
        if isinstance(new_target, RealmObject) is True:
            proto = new_target.get("prototype")
        if isinstance(proto, RealmObject) is False:
            proto = self.realm.object_prototype
        instance: RealmObject = RealmObject(self.realm, proto)  # type: ignore[arg-type]
        result: object = self._behavior(instance, list(args))
        if isinstance(result, RealmObject) is True:
            return result
        return instance


def define_property_or_throw(target: RealmObject, key: PropertyKey, desc: Descriptor) -> None:
    """Define an attribute and throw a realm ``TypeError`` when refused.

    :param target: Object to update.
    :param key: Attribute key.
    :param desc: Partial descriptor.
    :raises RealmException: If the definition was refused.
    """
    accepted: bool = target.define_own_property(key, desc)
    if accepted is False:
        target.realm.throw_error("TypeError", f"Cannot redefine property: {key!r}")


def get_own_property_descriptors(target: RealmObject) -> dict[PropertyKey, Descriptor]:
    """Return every own descriptor keyed by attribute key.

    :param target: Object to inspect.
    :returns: Ordered mapping of complete descriptors.
    """
    descriptors: dict[PropertyKey, Descriptor] = {}
    for key in target.own_keys():
        desc: Descriptor | None = target.get_own_property(key)
        if desc is not None:
            descriptors[key] = desc
    return descriptors


def _set_integrity_level(target: RealmObject, frozen: bool) -> bool:
    """Seal or freeze ``target``.

    :param target: Object to lock.
    :param frozen: Also make data attributes read-only.
    :returns: ``False`` when the object refused to stop extending.
    """
    locked: bool = target.prevent_extensions()
    if locked is False:
        return False
    for key in target.own_keys():
        if frozen is False:
            define_property_or_throw(target, key, Descriptor(configurable=False))
            continue
        current: Descriptor | None = target.get_own_property(key)
        if current is None:
            continue
        if current.is_accessor() is True:
            define_property_or_throw(target, key, Descriptor(configurable=False))
        else:
            define_property_or_throw(target, key, Descriptor(writable=False, configurable=False))
    return True


def seal(target: RealmObject) -> RealmObject:
    """Prevent extensions and make every own attribute non-configurable.

    :param target: Object to seal.
    :returns: The same object.
    :raises RealmException: If the object refused to be sealed.
    """
    if _set_integrity_level(target, frozen=False) is False:
        target.realm.throw_error("TypeError", "Cannot seal object")
    return target


def freeze(target: RealmObject) -> RealmObject:
    """Seal ``target`` and make every own data attribute read-only.

    :param target: Object to freeze.
    :returns: The same object.
    :raises RealmException: If the object refused to be frozen.
    """
    if _set_integrity_level(target, frozen=True) is False:
        target.realm.throw_error("TypeError", "Cannot freeze object")
    return target


def _test_integrity_level(target: RealmObject, frozen: bool) -> bool:
    if target.is_extensible() is True:
        return False
    for key in target.own_keys():
        current: Descriptor | None = target.get_own_property(key)
        if current is None:
            continue
        if current.configurable is True:
            return False
        if frozen is True and current.is_data() is True and current.writable is True:
            return False
    return True


def is_sealed(target: RealmObject) -> bool:
    return _test_integrity_level(target, frozen=False)


def is_frozen(target: RealmObject) -> bool:
    return _test_integrity_level(target, frozen=True)
